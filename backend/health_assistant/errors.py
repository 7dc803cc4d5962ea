from __future__ import annotations


class AppError(RuntimeError):
    """Base error. `status_code` is used where a route reports errors as HTTP statuses."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class ConflictError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ConfigError(AppError):
    status_code = 500


class UpstreamError(AppError):
    """A third-party API answered with a failure status or an unexpected payload."""

    status_code = 502

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


class ServerError(AppError):
    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
