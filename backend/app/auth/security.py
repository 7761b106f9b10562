"""
Credential primitives

Password and verification-code hashing (bcrypt through passlib) and signed
session tokens (JWT through python-jose).
"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import Settings
from app.core.exceptions import NoPermissionError
from app.core.utils import utc_now
from app.schemas.records import UserRecord

VERIFICATION_CODE_DIGITS = 6


def generate_verification_code() -> str:
    """Return a random 6-digit numeric code (no leading zero)."""
    low = 10 ** (VERIFICATION_CODE_DIGITS - 1)
    return str(low + secrets.randbelow(9 * low))


class CredentialManager:
    """Hashes secrets and issues/decodes session tokens."""

    def __init__(self, settings: Settings) -> None:
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.bcrypt_rounds,
        )
        self.jwt_secret = settings.jwt_secret
        self.jwt_algorithm = settings.jwt_algorithm
        self.token_lifetime = timedelta(hours=settings.token_expire_hours)

    def hash_secret(self, value: str) -> str:
        return self.pwd_context.hash(value)

    def verify_secret(self, value: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        return self.pwd_context.verify(value, hashed)

    def issue_token(self, user: UserRecord, now: Optional[datetime] = None) -> str:
        issued_at = now or utc_now()
        payload = {
            "user": {
                "id": user.id,
                "email": user.email,
                "verified": user.account_verified,
            },
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.token_lifetime).timestamp()),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode a session token.

        Raises:
            NoPermissionError: If the token is expired, tampered with or malformed
        """
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except ExpiredSignatureError as e:
            raise NoPermissionError("Authentication token has expired") from e
        except JWTError as e:
            raise NoPermissionError("Invalid authentication token") from e

        user = payload.get("user")
        if not isinstance(user, dict) or not user.get("id"):
            raise NoPermissionError("Invalid authentication token")
        return payload
