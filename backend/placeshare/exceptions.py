"""
PlaceShare Backend: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure a service can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Handlers registered in main.py turn them into JSON error
       responses with the matching HTTP status code.
Who:   Raised by services, the auth dependency and the geocoder; caught by
       the global handlers.

Exception Hierarchy:
    PlaceShareError (base)
    ├── ValidationError        → 422 Unprocessable Entity
    ├── GeocodeError           → 422 Unprocessable Entity
    ├── NotFoundError          → 404 Not Found
    ├── ForbiddenError         → 403 Forbidden
    ├── AuthenticationError    → 401 Unauthorized
    ├── StoreUnavailableError  → 500 Internal Server Error
    └── FileStorageError       → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class PlaceShareError(Exception):
    """
    Base exception for all PlaceShare application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only returned for client errors)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PlaceShareError):
    """
    Raised when client input fails validation.

    When:    Empty title or address, description shorter than 5 characters,
             bad email or password on signup, duplicate email, bad upload.
    """

    status_code = 422
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Invalid inputs passed, please check your data.",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class GeocodeError(PlaceShareError):
    """
    Raised when an address cannot be resolved to coordinates.

    Covers both "no such address" and "geocoding service failed", the
    context carries the upstream status so the two can be told apart in logs.
    """

    status_code = 422
    error_code = "geocode_error"

    def __init__(
        self,
        message: str = "Could not find location for the specified address.",
        address: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if address:
            ctx["address"] = address
        super().__init__(message=message, context=ctx)
        self.address = address


class NotFoundError(PlaceShareError):
    """
    Raised when a requested resource does not exist.

    Also raised by PlaceService.get_by_owner when the user exists but owns
    no places.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ForbiddenError(PlaceShareError):
    """Raised when the requester is not the creator of the place they act on."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to modify this place.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationError(PlaceShareError):
    """
    Raised when a request cannot be tied to a user.

    When:    Missing or malformed bearer token, bad signature, expired token,
             or a login with unknown email / wrong password.
    """

    status_code = 401
    error_code = "authentication_failed"

    def __init__(
        self,
        message: str = "Authentication failed!",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(PlaceShareError):
    """
    Raised when a database call fails or a transaction is aborted.

    The message returned to the client is always generic. Driver details
    stay in the server log.
    """

    status_code = 500
    error_code = "store_unavailable"

    def __init__(
        self,
        message: str = "Something went wrong, please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(PlaceShareError):
    """Raised when an uploaded image cannot be written to the storage volume."""

    status_code = 500
    error_code = "file_storage_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
