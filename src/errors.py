"""Application errors carrying an HTTP-style status code."""
from __future__ import annotations


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class InvalidScheduleConfig(AppError):
    status_code = 400


class TransactionFailure(AppError):
    """Opaque failure of an atomic multi-record write."""

    status_code = 500

    def __init__(self, message: str = "Failed to process the request"):
        super().__init__(message)
