"""
Session Token Authentication

Verifies the bearer token issued at signup/login and extracts the user it
was issued for.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.dependencies import get_credentials
from app.auth.security import CredentialManager
from app.core.exceptions import NoPermissionError

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """Represents the user a session token was issued to."""

    id: str
    email: Optional[str] = None
    verified: bool = False

    @classmethod
    def from_token(cls, decoded_token: dict) -> "AuthenticatedUser":
        """Create AuthenticatedUser from a decoded session token."""
        user = decoded_token["user"]
        return cls(
            id=user["id"],
            email=user.get("email"),
            verified=bool(user.get("verified", False)),
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    manager: CredentialManager = Depends(get_credentials),
) -> AuthenticatedUser:
    """
    Dependency that verifies the session token and returns the current user.

    Usage:
        @router.post("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None:
        raise NoPermissionError("Missing authentication token")

    decoded_token = manager.decode_token(credentials.credentials)
    return AuthenticatedUser.from_token(decoded_token)
