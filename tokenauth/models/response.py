"""Uniform response envelope."""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import Field

from tokenauth.models.auth import CamelModel

T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    """Envelope wrapping every response body.

    Attributes:
        success: False for every error response
        message: Human-readable outcome
        data: Payload, if any
        error: Stable error code (errors only)
        status_code: HTTP status repeated in the body
        timestamp: When the response was produced (UTC)
        correlation_id: Request tracking ID (errors only)
    """

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[str] = None

    @classmethod
    def ok(cls, message: str, data: Optional[T] = None, status_code: int = 200) -> "ApiResponse[T]":
        return cls(message=message, data=data, status_code=status_code)

    @classmethod
    def failure(
        cls,
        message: str,
        status_code: int,
        error: str,
        data: Optional[T] = None,
        correlation_id: Optional[str] = None,
    ) -> "ApiResponse[T]":
        return cls(
            success=False,
            message=message,
            error=error,
            data=data,
            status_code=status_code,
            correlation_id=correlation_id,
        )
