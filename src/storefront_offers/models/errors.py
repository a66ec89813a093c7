"""Error models for the storefront offers client."""
from __future__ import annotations

from typing import Any, Optional


class StorefrontError(Exception):
    """Base exception for the storefront offers client."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "STOREFRONT_ERROR"
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class APIError(StorefrontError):
    """Non-2xx response from the storefront API."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.status_code = status_code

    @property
    def server_message(self) -> Optional[str]:
        """The message the server sent, if it sent one."""
        return self.details.get("server_message")

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "APIError":
        """Create APIError from a decoded response body.

        The storefront backend answers errors as ``{"success": false,
        "message": "..."}``; the error middleware uses ``{"error": ...}``.
        """
        if not isinstance(body, dict):
            return cls(
                message=f"HTTP {status_code}",
                status_code=status_code,
                code="API_ERROR",
            )

        message = body.get("message")
        error_data = body.get("error", body.get("detail"))
        if not message and isinstance(error_data, str):
            message = error_data
        elif not message and isinstance(error_data, dict):
            message = error_data.get("message")

        if isinstance(error_data, list):
            return cls(
                message=message or "Validation Error",
                status_code=status_code,
                code="VALIDATION_ERROR",
                details={"errors": error_data, "server_message": message},
            )

        return cls(
            message=message or f"HTTP {status_code}",
            status_code=status_code,
            code="API_ERROR",
            details={"server_message": message} if message else {},
        )


class AuthenticationError(StorefrontError):
    """Missing, expired or rejected bearer token."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="AUTHENTICATION_ERROR")


class RateLimitError(StorefrontError):
    """Rate limit exceeded error."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[float] = None):
        super().__init__(message, code="RATE_LIMIT_EXCEEDED")
        self.retry_after = retry_after


class NetworkError(StorefrontError):
    """Transport failure before a response was received."""

    def __init__(self, message: str = "network"):
        super().__init__(message, code="NETWORK_ERROR")


class MalformedResponseError(StorefrontError):
    """Response body could not be decoded or has the wrong envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, code="MALFORMED_RESPONSE", details={"status_code": status_code})
        self.status_code = status_code


class OperationCancelled(StorefrontError):
    """The cancellation token bound to the operation fired."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message, code="CANCELLED")


class DuplicateClaimError(StorefrontError):
    """A claim record already exists for this (offer, user) pair."""

    def __init__(self, offer_id: str, user_id: str):
        super().__init__(
            "You have already claimed this offer",
            code="ALREADY_CLAIMED",
            details={"offer_id": offer_id, "user_id": user_id},
        )
        self.offer_id = offer_id
        self.user_id = user_id
