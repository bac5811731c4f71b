"""Scalar API reference page.

Uses string.Template for zero-dependency HTML generation. The Scalar bundle
itself is loaded from a CDN and fetches the OpenAPI document from
``document_url``.

Examples:
    >>> from app.core.docs_ui import render_scalar_page
    >>> html = render_scalar_page(
    ...     title="Demo", document_url="/openapi/v1.json", configuration={}
    ... )
"""

from __future__ import annotations

import html
import json
from string import Template
from typing import Any

_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>$title</title>
<style>
  body { margin: 0; }
</style>
</head>
<body>
<noscript>The API reference requires JavaScript.</noscript>
<script id="api-reference" data-url="$document_url"></script>
<script>
  document.getElementById("api-reference").dataset.configuration =
    JSON.stringify($configuration);
</script>
<script src="$cdn_url"></script>
</body>
</html>
""")


def _script_json(value: Any) -> str:
    """Serialize a value for embedding inside a <script> element."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def render_scalar_page(
    title: str,
    document_url: str,
    configuration: dict[str, Any],
    cdn_url: str = "https://cdn.jsdelivr.net/npm/@scalar/api-reference",
) -> str:
    """Render the Scalar API reference page.

    Args:
        title: Page title (the service name).
        document_url: URL of the OpenAPI document to render.
        configuration: Scalar configuration options (theme, dark mode, ...).
        cdn_url: URL of the Scalar bundle.

    Returns:
        Complete HTML document as a string.
    """
    return _TEMPLATE.substitute(
        title=html.escape(title),
        document_url=html.escape(document_url, quote=True),
        configuration=_script_json(configuration),
        cdn_url=html.escape(cdn_url, quote=True),
    )
