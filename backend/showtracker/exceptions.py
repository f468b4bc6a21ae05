"""
Show Tracker - Custom exceptions and the FastAPI handler that renders them.

Every error returned by the API has the body ``{"error": <code>, "message": <text>}``.
"""
import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ShowTrackerException(Exception):
    """Base exception for Show Tracker"""
    status_code = 500

    def __init__(self, message: str, code: str = "internal", status_code: Optional[int] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.message = message
        self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        super().__init__(message)

    def to_dict(self):
        return {
            'error': self.code,
            'message': self.message
        }


class ConfigurationError(ShowTrackerException):
    """A required setting (the TVDB API key) is missing"""
    def __init__(self, message: str = "TheTVDB API key not configured"):
        super().__init__(message, code="tvdb_not_configured", status_code=500)


class AuthenticationError(ShowTrackerException):
    """Missing or invalid bearer ID token"""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="unauthorized", status_code=401)


class ValidationError(ShowTrackerException):
    def __init__(self, code: str, message: str):
        super().__init__(message, code=code, status_code=400)


class NotFoundError(ShowTrackerException):
    def __init__(self, message: str, code: str = "show_not_found"):
        super().__init__(message, code=code, status_code=404)


class ThrottledError(ShowTrackerException):
    """Manual refresh requested inside the cooldown window"""
    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            "Too many refresh requests",
            code="too_many_requests",
            status_code=429,
            headers={"Retry-After": str(retry_after)},
        )

    def to_dict(self):
        payload = super().to_dict()
        payload['retryAfterSeconds'] = self.retry_after
        return payload


class MissingPinError(ShowTrackerException):
    """No TVDB PIN stored for the user and none supplied on the request"""
    def __init__(self, message: str = "TVDB PIN not set for this user"):
        super().__init__(message, code="pin_required", status_code=400)


class AuthError(ShowTrackerException):
    """TheTVDB rejected the API key / PIN or answered without a token"""
    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message, code="tvdb_auth_failed", status_code=500)


class UpstreamError(ShowTrackerException):
    """Non-success HTTP status from TheTVDB"""
    def __init__(self, status: int, path: str):
        self.status = status
        self.path = path
        super().__init__(f"TVDB request failed ({status}) for {path}", code="upstream_error", status_code=500)


async def show_tracker_exception_handler(request: Request, exc: ShowTrackerException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)
