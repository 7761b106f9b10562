from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.auth.security import CredentialManager, generate_verification_code
from app.core.config import Settings
from app.core.exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    NoPermissionError,
)
from app.core.logging import get_logger
from app.core.utils import utc_now
from app.repositories.firestore_repo import Repository
from app.schemas.records import UserRecord

logger = get_logger("gigben.services.auth")


@dataclass
class AuthResult:
    """Outcome of an auth operation.

    ``verification_code`` is the plaintext code to email, set only when a new
    code was issued.
    """

    user: UserRecord
    token: str
    verification_code: Optional[str] = None


class AuthService:
    def __init__(
        self,
        repository: Repository,
        credentials: CredentialManager,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[], str] = generate_verification_code,
    ) -> None:
        self.repository = repository
        self.credentials = credentials
        self.code_ttl = timedelta(minutes=settings.verification_code_ttl_minutes)
        self.clock = clock
        self.code_generator = code_generator

    async def signup(self, email: str, password: str) -> AuthResult:
        """Create an unverified account and issue its first verification code.

        Raises:
            EmailAlreadyExistsError: If the email is already registered
        """
        existing = await self.repository.get_user_by_email(email)
        if existing:
            logger.info("Signup rejected: email already registered")
            raise EmailAlreadyExistsError("Account with that email address already exists")

        code = self.code_generator()
        now = self.clock()
        user = UserRecord(
            email=email,
            password_hash=self.credentials.hash_secret(password),
            account_verified=False,
            verification_code_hash=self.credentials.hash_secret(code),
            verification_code_issued_at=now,
            created_at=now,
            updated_at=now,
        )
        await self.repository.create_user(user)
        logger.info(f"Created user {user.id}")
        return AuthResult(user=user, token=self.credentials.issue_token(user, now=now), verification_code=code)

    async def verify(self, user_id: str, code: str) -> UserRecord:
        """Mark an account verified if ``code`` matches and has not expired.

        Raises:
            NoPermissionError: If the user no longer exists
            InvalidVerificationCodeError: If the code is wrong, missing or expired
        """
        user = await self.repository.get_user(user_id)
        if not user:
            raise NoPermissionError("No permission")

        if user.account_verified:
            logger.debug(f"User {user_id} already verified")
            return user

        if not self.credentials.verify_secret(code, user.verification_code_hash):
            logger.info(f"Verification failed for {user_id}: code mismatch")
            raise InvalidVerificationCodeError("Invalid verification code")

        if self._code_expired(user):
            logger.info(f"Verification failed for {user_id}: code expired")
            raise InvalidVerificationCodeError("Verification code has expired")

        verified = user.touched(
            now=self.clock(),
            account_verified=True,
            verification_code_hash=None,
            verification_code_issued_at=None,
        )
        await self.repository.update_user(verified)
        logger.info(f"User {user_id} verified")
        return verified

    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a token.

        Unverified accounts get a freshly generated code on every attempt.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        user = await self.repository.get_user_by_email(email)
        if not user or not self.credentials.verify_secret(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        code = None
        if not user.account_verified:
            user, code = await self._reissue_code(user)

        return AuthResult(user=user, token=self.credentials.issue_token(user, now=self.clock()), verification_code=code)

    async def resend_verification(self, user_id: str) -> AuthResult:
        """Issue a new code for an unverified account; verified accounts are left alone."""
        user = await self.repository.get_user(user_id)
        if not user:
            raise NoPermissionError("No permission")

        code = None
        if not user.account_verified:
            user, code = await self._reissue_code(user)

        return AuthResult(user=user, token=self.credentials.issue_token(user, now=self.clock()), verification_code=code)

    async def _reissue_code(self, user: UserRecord) -> tuple[UserRecord, str]:
        code = self.code_generator()
        now = self.clock()
        updated = user.touched(
            now=now,
            verification_code_hash=self.credentials.hash_secret(code),
            verification_code_issued_at=now,
        )
        await self.repository.update_user(updated)
        logger.info(f"Issued new verification code for {user.id}")
        return updated, code

    def _code_expired(self, user: UserRecord) -> bool:
        issued_at = user.verification_code_issued_at
        if issued_at is None:
            return True
        return self.clock() - issued_at > self.code_ttl
