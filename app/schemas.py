"""
Pydantic schemas for request/response validation.
"""
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TestModel(BaseModel):
    """Two-field payload echoed by the Test Model endpoint.

    Field names follow the wire format (``Title``, ``Description``); the
    lower-case spellings are accepted as well.
    """
    __test__ = False  # not a pytest test class

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "Title": "A title",
                "Description": "A longer description",
            }
        },
    )

    title: str = Field(
        default="",
        validation_alias=AliasChoices("Title", "title"),
        serialization_alias="Title",
    )
    description: str = Field(
        default="",
        validation_alias=AliasChoices("Description", "description"),
        serialization_alias="Description",
    )


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str
    detail: Any = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    api_versions: list[str]
    auth_enabled: bool
