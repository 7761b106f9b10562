"""Custom exceptions for the Gigben application."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Codes carried in every response envelope."""

    SUCCESS = "SUCCESS"
    VALIDATION_FAILED = "ERROR_VALIDATION_FAILED"
    EMAIL_ALREADY_EXISTS = "ERROR_EMAIL_ALREADY_EXISTS"
    INVALID_EMAIL_PASSWORD = "ERROR_INVALID_EMAIL_PASSWORD"
    INVALID_VERIFICATION_CODE = "ERROR_INVALID_VERIFICATION_CODE"
    NO_PERMISSION = "ERROR_NO_PERMISSION"
    BANK_NOT_LINKED = "ERROR_BANK_NOT_LINKED"
    SOMETHING_BAD_HAPPENED = "ERROR_SOMETHING_BAD_HAPPENED"


class GigbenError(Exception):
    """Base exception for all Gigben errors."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.SOMETHING_BAD_HAPPENED

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def errors(self) -> Any:
        """Payload rendered under ``errors`` in the error envelope."""
        return self.details.get("errors", self.details or [])


class ValidationError(GigbenError):
    """Raised when input validation fails."""

    status_code = 400
    code = ErrorCode.VALIDATION_FAILED


class EmailAlreadyExistsError(GigbenError):
    """Raised when an email address is already registered."""

    status_code = 409
    code = ErrorCode.EMAIL_ALREADY_EXISTS


class InvalidCredentialsError(GigbenError):
    """Raised when an email/password pair does not match."""

    status_code = 401
    code = ErrorCode.INVALID_EMAIL_PASSWORD


class InvalidVerificationCodeError(GigbenError):
    """Raised when a verification code is wrong or expired."""

    status_code = 401
    code = ErrorCode.INVALID_VERIFICATION_CODE


class NoPermissionError(GigbenError):
    """Raised when a request carries no valid session."""

    status_code = 401
    code = ErrorCode.NO_PERMISSION


class BankNotLinkedError(GigbenError):
    """Raised when a user has no bank snapshot yet."""

    status_code = 404
    code = ErrorCode.BANK_NOT_LINKED


class AggregationProviderError(GigbenError):
    """Raised when a call to the aggregation provider fails."""

    pass
