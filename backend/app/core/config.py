"""Runtime configuration for the Gigben API.

Values come from environment variables (``app.main`` loads the project ``.env``
first). Settings are built once per process and cached by :func:`get_settings`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

DEFAULT_JWT_SECRET = "change-me"

LOCALHOST_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(LOCALHOST_ORIGINS))

    # Session tokens and hashing
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24
    bcrypt_rounds: int = 10
    verification_code_ttl_minutes: int = 9

    # Persistence
    storage_backend: str = "firestore"
    local_data_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")

    # Aggregation provider
    plaid_client_id: str = ""
    plaid_secret: str = ""
    plaid_env: str = "sandbox"
    plaid_page_size: int = 500

    # Outgoing mail
    smtp_host: str = ""
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = True
    email_from: str = '"Gigben" <do-not-reply@gigben.com>'
    early_access_notify: list[str] = field(default_factory=list)

    # Dashboard matching rules
    income_sources: list[str] = field(
        default_factory=lambda: ["Uber", "Lyft", "DoorDash", "Postmates", "Fiverr", "Upwork"]
    )
    income_categories: list[str] = field(default_factory=lambda: ["Payroll"])
    deduction_categories: list[str] = field(
        default_factory=lambda: ["Tax", "Insurance", "Bank Fees", "Interest"]
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current process environment."""
        defaults = cls()
        settings = cls(
            environment=os.environ.get("ENVIRONMENT", defaults.environment),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
            jwt_secret=os.environ.get("JWT_SECRET", defaults.jwt_secret),
            jwt_algorithm=os.environ.get("JWT_ALGORITHM", defaults.jwt_algorithm),
            token_expire_hours=int(os.environ.get("TOKEN_EXPIRE_HOURS", defaults.token_expire_hours)),
            bcrypt_rounds=int(os.environ.get("BCRYPT_ROUNDS", defaults.bcrypt_rounds)),
            verification_code_ttl_minutes=int(
                os.environ.get("VERIFICATION_CODE_TTL_MINUTES", defaults.verification_code_ttl_minutes)
            ),
            storage_backend=os.environ.get("STORAGE_BACKEND", defaults.storage_backend).lower(),
            local_data_dir=Path(os.environ.get("LOCAL_DATA_DIR", str(defaults.local_data_dir))),
            plaid_client_id=os.environ.get("PLAID_CLIENT_ID", ""),
            plaid_secret=os.environ.get("PLAID_SECRET", ""),
            plaid_env=os.environ.get("PLAID_ENV", defaults.plaid_env).lower(),
            plaid_page_size=int(os.environ.get("PLAID_PAGE_SIZE", defaults.plaid_page_size)),
            smtp_host=os.environ.get("SMTP_HOST", ""),
            smtp_port=int(os.environ.get("SMTP_PORT", defaults.smtp_port)),
            smtp_user=os.environ.get("SMTP_USER", ""),
            smtp_password=os.environ.get("SMTP_PASSWORD", ""),
            smtp_use_ssl=_env_bool("SMTP_USE_SSL", defaults.smtp_use_ssl),
            email_from=os.environ.get("EMAIL_FROM", defaults.email_from),
            early_access_notify=_env_list("EARLY_ACCESS_NOTIFY", defaults.early_access_notify),
            income_sources=_env_list("INCOME_SOURCES", defaults.income_sources),
            income_categories=_env_list("INCOME_CATEGORIES", defaults.income_categories),
            deduction_categories=_env_list("DEDUCTION_CATEGORIES", defaults.deduction_categories),
        )
        settings.check()
        return settings

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host)

    def check(self) -> None:
        """Reject configurations that must never reach production."""
        if self.is_production and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set in production")
        if self.storage_backend not in {"firestore", "local"}:
            raise RuntimeError(f"Unknown STORAGE_BACKEND: {self.storage_backend}")


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
