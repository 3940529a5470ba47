"""
Response envelope and shared schema base.

Every endpoint answers with ``{"success": ..., "data": ..., "error": ...,
"code": ...}``. JSON keys are camelCase on the wire.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(ApiModel, Generic[T]):
    """Successful response wrapper."""

    success: bool = True
    data: T | None = None
    message: str | None = None


def error_envelope(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the error body returned for every failed request."""
    content: dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        content["details"] = details
    return content
