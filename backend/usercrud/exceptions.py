"""Service-level errors mapped to HTTP status codes by the API layer."""

from typing import Any, Optional


class ServiceError(Exception):
    http_code = 500

    def __init__(self, message: Any, error: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class InvalidArgument(ServiceError):
    http_code = 400


class Unauthenticated(ServiceError):
    http_code = 401


class PermissionDenied(ServiceError):
    http_code = 403


class NotFound(ServiceError):
    http_code = 404


class AlreadyExists(ServiceError):
    http_code = 409


class Internal(ServiceError):
    http_code = 500
