"""Typed errors raised by services, hooks and stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

__all__ = [
    "ServiceError",
    "ServiceException",
    "NotFound",
    "InvalidInput",
    "GeneralError",
]


@dataclass
class ServiceError:
    """Structured error information carried by :class:`ServiceException`."""

    message: str
    status_code: int
    error_type: str = "general_error"
    details: Optional[Any] = None


class ServiceException(Exception):
    """Exception that carries structured error information."""

    status_code = 500
    error_type = "general_error"

    def __init__(self, message: str, details: Any = None):
        self.error = ServiceError(
            message=message,
            status_code=self.status_code,
            error_type=self.error_type,
            details=details,
        )
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        """Return the JSON body used by the REST layer."""
        content: dict[str, Any] = {
            "error": self.error.message,
            "error_type": self.error.error_type,
        }
        if self.error.details is not None:
            content["details"] = self.error.details
        return content


class NotFound(ServiceException):
    """The requested record id does not exist."""

    status_code = 404
    error_type = "not_found"


class InvalidInput(ServiceException):
    """Input data is missing required fields or is malformed."""

    status_code = 400
    error_type = "bad_request"


class GeneralError(ServiceException):
    """An unexpected failure inside a store or hook."""
