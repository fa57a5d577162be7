"""Shared envelope schemas.

Describe the common response wrappers so the OpenAPI docs show them.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with attribute mapping enabled."""

    model_config = ConfigDict(from_attributes=True)


class ErrorPayload(BaseSchema):
    code: str = Field(description="Machine-readable error code.")
    message: str = Field(description="Human-readable error message.")
    details: dict[str, Any] = Field(default_factory=dict, description="Extra error details.")


class ErrorResponse(BaseSchema):
    """Error envelope."""

    request_id: str = Field(description="Server-generated request id.")
    error: ErrorPayload = Field(description="Error body.")


T = TypeVar("T")


class SuccessResponse(BaseSchema, Generic[T]):
    """Success envelope."""

    request_id: str = Field(description="Server-generated request id.")
    data: T = Field(description="Response payload.")
    meta: dict[str, Any] = Field(default_factory=dict, description="Extra response metadata.")
