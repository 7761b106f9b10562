from __future__ import annotations

from app.core.exceptions import EmailAlreadyExistsError
from app.core.logging import get_logger
from app.repositories.firestore_repo import Repository
from app.schemas.records import EarlyAccessEntry

logger = get_logger("gigben.services.early_access")


class EarlyAccessService:
    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    async def add(self, email: str) -> EarlyAccessEntry:
        """Add an email to the early-access waitlist.

        Raises:
            EmailAlreadyExistsError: If the email is already on the list
        """
        if await self.repository.get_early_access_by_email(email):
            raise EmailAlreadyExistsError("Email address already exists")

        entry = await self.repository.create_early_access(EarlyAccessEntry(email=email))
        logger.info(f"Added early access entry {entry.id}")
        return entry
