import json
from pathlib import Path
from typing import Any, Optional

from app.schemas.records import BankSnapshot, EarlyAccessEntry, UserRecord


class LocalRepository:
    """JSON-file document store with the same interface as FirestoreRepository.

    Used for local development (``STORAGE_BACKEND=local``) and tests.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.data_dir = base_dir or Path(__file__).resolve().parents[2] / "data"
        self.user_dir = self.data_dir / "users"
        self.bank_dir = self.data_dir / "banks"
        self.early_access_dir = self.data_dir / "early_access"
        for directory in (self.user_dir, self.bank_dir, self.early_access_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # Users

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        data = self._read(self.user_dir / f"{user_id}.json")
        return UserRecord.model_validate(data) if data else None

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        data = self._find(self.user_dir, "email", email)
        return UserRecord.model_validate(data) if data else None

    async def create_user(self, user: UserRecord) -> UserRecord:
        self._write(self.user_dir / f"{user.id}.json", user.model_dump(mode="json"))
        return user

    async def update_user(self, user: UserRecord) -> UserRecord:
        return await self.create_user(user)

    # Bank snapshots

    async def get_bank(self, user_id: str) -> Optional[BankSnapshot]:
        data = self._read(self.bank_dir / f"{user_id}.json")
        return BankSnapshot.model_validate(data) if data else None

    async def save_bank(self, snapshot: BankSnapshot) -> BankSnapshot:
        self._write(self.bank_dir / f"{snapshot.user_id}.json", snapshot.model_dump(mode="json"))
        return snapshot

    # Early access

    async def get_early_access_by_email(self, email: str) -> Optional[EarlyAccessEntry]:
        data = self._find(self.early_access_dir, "email", email)
        return EarlyAccessEntry.model_validate(data) if data else None

    async def create_early_access(self, entry: EarlyAccessEntry) -> EarlyAccessEntry:
        self._write(self.early_access_dir / f"{entry.id}.json", entry.model_dump(mode="json"))
        return entry

    @staticmethod
    def _read(path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    @staticmethod
    def _write(path: Path, payload: dict[str, Any]) -> None:
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    @staticmethod
    def _find(directory: Path, field: str, value: Any) -> dict[str, Any] | None:
        for path in sorted(directory.glob("*.json")):
            data = json.loads(path.read_text(encoding="utf-8"))
            if data.get(field) == value:
                return data
        return None
