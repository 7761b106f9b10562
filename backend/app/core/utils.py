"""
Core utilities for Gigben backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder

from app.core.exceptions import ErrorCode


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def success_object(message: str, **data: Any) -> dict[str, Any]:
    """Build the success envelope: ``{code, message, ...data}``."""
    return {"code": ErrorCode.SUCCESS.value, "message": message, **jsonable_encoder(data)}


def error_object(code: ErrorCode, message: str, errors: Any = None) -> dict[str, Any]:
    """Build the error envelope: ``{code, message, errors}``."""
    return {
        "code": code.value,
        "message": message,
        "errors": jsonable_encoder(errors if errors is not None else []),
    }


def to_plain(payload: Any) -> Any:
    """Convert provider SDK payloads into JSON-safe builtins.

    Dates become ISO strings so the result can be stored in any document
    store verbatim.
    """
    if hasattr(payload, "to_dict"):
        payload = payload.to_dict()
    return jsonable_encoder(payload)
