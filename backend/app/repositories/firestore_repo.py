"""
Firestore Repository

Repository implementation using Firestore for data persistence, through the
Firebase Admin SDK's async client.

Data Structure:
    users/{user_id}                          - User accounts
    banks/{user_id}                          - Latest bank snapshot per user (without transactions)
    banks/{user_id}/transactions/{00000000}  - Snapshot transactions (sub-collection)
    early_access/{entry_id}                  - Early-access waitlist signups
"""

from typing import Any, Optional

import firebase_admin
from firebase_admin import firestore_async
from google.cloud.firestore_v1 import FieldFilter

from app.core.config import Settings
from app.core.logging import get_logger
from app.repositories.local_repo import LocalRepository
from app.schemas.records import BankSnapshot, EarlyAccessEntry, UserRecord

logger = get_logger("gigben.repositories.firestore")


class FirestoreRepository:
    """Repository using Firestore for data persistence."""

    # Firestore batch write limit
    BATCH_SIZE = 500

    def __init__(self, db: Any = None) -> None:
        if db is None:
            # Initialize Firebase Admin SDK with Application Default Credentials
            if not firebase_admin._apps:
                firebase_admin.initialize_app()
            db = firestore_async.client()

        self.db = db

        # Collection references
        self.users_collection = "users"
        self.banks_collection = "banks"
        self.early_access_collection = "early_access"

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        data = await self._get_document(self.users_collection, user_id)
        return UserRecord.model_validate(data) if data else None

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        data = await self._find_one(self.users_collection, "email", email)
        return UserRecord.model_validate(data) if data else None

    async def create_user(self, user: UserRecord) -> UserRecord:
        await self.db.collection(self.users_collection).document(user.id).set(user.model_dump())
        logger.debug(f"Created user document {user.id}")
        return user

    async def update_user(self, user: UserRecord) -> UserRecord:
        await self.db.collection(self.users_collection).document(user.id).set(user.model_dump())
        return user

    # =========================================================================
    # Bank snapshots
    # =========================================================================

    async def get_bank(self, user_id: str) -> Optional[BankSnapshot]:
        """Load a snapshot with its transactions from the sub-collection."""
        bank_ref = self.db.collection(self.banks_collection).document(user_id)
        doc = await bank_ref.get()
        if not doc.exists:
            return None

        data = doc.to_dict()
        data.pop("transaction_count", None)
        data["transactions"] = await self._load_transactions(bank_ref)
        return BankSnapshot.model_validate(data)

    async def save_bank(self, snapshot: BankSnapshot) -> BankSnapshot:
        """Replace the snapshot, keyed by user id.

        Transactions go to the ``transactions`` sub-collection so the snapshot
        document stays under Firestore's size limit; the previous ones are
        deleted first.
        """
        bank_ref = self.db.collection(self.banks_collection).document(snapshot.user_id)
        payload = snapshot.model_dump(exclude={"transactions"})
        payload["transaction_count"] = len(snapshot.transactions)

        await self._delete_collection(bank_ref.collection("transactions"))
        await self._save_transactions_batch(bank_ref, snapshot.transactions)
        await bank_ref.set(payload)
        logger.debug(
            f"Saved bank snapshot for {snapshot.user_id}: "
            f"{len(snapshot.accounts)} accounts, {len(snapshot.transactions)} transactions"
        )
        return snapshot

    async def _save_transactions_batch(self, bank_ref: Any, transactions: list[dict[str, Any]]) -> None:
        """Save transactions to the sub-collection using batch writes."""
        transactions_ref = bank_ref.collection("transactions")

        for i in range(0, len(transactions), self.BATCH_SIZE):
            batch = self.db.batch()
            for idx, txn in enumerate(transactions[i:i + self.BATCH_SIZE]):
                # Sequential IDs keep provider order
                position = i + idx
                batch.set(transactions_ref.document(f"{position:08d}"), {**txn, "_index": position})
            await batch.commit()

    async def _load_transactions(self, bank_ref: Any) -> list[dict[str, Any]]:
        transactions = []
        async for doc in bank_ref.collection("transactions").order_by("_index").stream():
            txn = doc.to_dict()
            txn.pop("_index", None)
            transactions.append(txn)
        return transactions

    async def _delete_collection(self, collection_ref: Any) -> None:
        """Delete every document in a collection, one batch at a time."""
        while True:
            batch = self.db.batch()
            deleted = 0
            async for doc in collection_ref.limit(self.BATCH_SIZE).stream():
                batch.delete(doc.reference)
                deleted += 1
            if deleted:
                await batch.commit()
            if deleted < self.BATCH_SIZE:
                return

    # =========================================================================
    # Early access
    # =========================================================================

    async def get_early_access_by_email(self, email: str) -> Optional[EarlyAccessEntry]:
        data = await self._find_one(self.early_access_collection, "email", email)
        return EarlyAccessEntry.model_validate(data) if data else None

    async def create_early_access(self, entry: EarlyAccessEntry) -> EarlyAccessEntry:
        await self.db.collection(self.early_access_collection).document(entry.id).set(entry.model_dump())
        return entry

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        doc = await self.db.collection(collection).document(document_id).get()
        if not doc.exists:
            return None
        return doc.to_dict()

    async def _find_one(self, collection: str, field: str, value: Any) -> dict[str, Any] | None:
        query = self.db.collection(collection).where(filter=FieldFilter(field, "==", value)).limit(1)
        async for doc in query.stream():
            return doc.to_dict()
        return None


Repository = FirestoreRepository | LocalRepository


def build_repository(settings: Settings) -> Repository:
    """Create the document store selected by ``STORAGE_BACKEND``."""
    if settings.storage_backend == "local":
        logger.info(f"Using local JSON repository at {settings.local_data_dir}")
        return LocalRepository(settings.local_data_dir)
    logger.info("Using Firestore repository")
    return FirestoreRepository()
