"""Shared API schemas: the response envelope and camelCase base model."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys.

    Requests accept both camelCase and snake_case field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """Envelope wrapping every API response.

    Attributes:
        success: Whether the request succeeded.
        message: Human readable outcome.
        data: Response payload.
    """

    success: bool = True
    message: str = ""
    data: T | None = None


class MessageData(CamelModel):
    message: str


class IdsRequest(CamelModel):
    """Request body carrying a list of ids."""

    ids: list[int] = Field(..., min_length=1)


def ok(data: T | None = None, message: str = "") -> ApiResponse[T]:
    """Build a successful envelope."""
    return ApiResponse(success=True, message=message, data=data)
