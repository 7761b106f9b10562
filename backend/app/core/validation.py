"""Request validation.

Each ``validate_*`` function checks one request body and returns a
:class:`ValidationResult` holding the cleaned values and any field errors.
Handlers call ``result.raise_for_errors()`` before touching a service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from email_validator import EmailNotValidError, validate_email

from app.core.exceptions import ValidationError

MIN_PASSWORD_LENGTH = 8


@dataclass
class FieldError:
    param: str
    msg: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"param": self.param, "msg": self.msg, "value": self.value}


@dataclass
class ValidationResult:
    values: dict[str, Any] = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, param: str, msg: str, value: Any = None) -> None:
        self.errors.append(FieldError(param=param, msg=msg, value=value))

    def raise_for_errors(self) -> dict[str, Any]:
        """Return the cleaned values, or raise ``ValidationError`` with field detail."""
        if not self.ok:
            raise ValidationError(
                "Validation Failed",
                details={"errors": [error.to_dict() for error in self.errors]},
            )
        return self.values


def normalize_email(value: str) -> str:
    """Validate an email address and return its lowercase normalized form."""
    result = validate_email(value, check_deliverability=False)
    return result.normalized.lower()


def _check_email(result: ValidationResult, value: Any, missing_msg: str | None = None) -> None:
    if missing_msg and not _present(value):
        result.add_error("email", missing_msg, value)
        return
    try:
        result.values["email"] = normalize_email(str(value or ""))
    except EmailNotValidError:
        result.add_error("email", "email is not valid", value)


def _check_required(result: ValidationResult, param: str, value: Any, msg: str) -> None:
    if not _present(value):
        result.add_error(param, msg, value)
        return
    result.values[param] = str(value).strip()


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def validate_signup(email: Any, password: Any) -> ValidationResult:
    result = ValidationResult()
    _check_email(result, email)
    if password is None or len(str(password)) < MIN_PASSWORD_LENGTH:
        result.add_error(
            "password",
            f"password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    else:
        result.values["password"] = str(password)
    return result


def validate_login(email: Any, password: Any) -> ValidationResult:
    result = ValidationResult()
    _check_email(result, email)
    if not _present(password):
        result.add_error("password", "password cannot be blank")
    else:
        result.values["password"] = str(password)
    return result


def validate_verification(code: Any) -> ValidationResult:
    result = ValidationResult()
    _check_required(result, "code", code, "code field is missing")
    if result.ok and not result.values["code"].isdigit():
        result.add_error("code", "code must be numeric", code)
    return result


def validate_plaid_login(public_token: Any) -> ValidationResult:
    result = ValidationResult()
    _check_required(result, "plaidPublicToken", public_token, "plaidPublicToken field is missing")
    return result


def validate_early_access(email: Any) -> ValidationResult:
    result = ValidationResult()
    _check_email(result, email, missing_msg="email field is missing")
    return result
