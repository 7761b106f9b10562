"""
Request-scoped dependencies.

Long-lived clients (document store, aggregation provider, mailer) are built
once in the app lifespan and held on ``app.state``; services are cheap and
built per request around them. Tests swap any of these through
``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from app.adapters.plaid_client import PlaidAdapter
from app.auth.security import CredentialManager
from app.core.config import Settings, get_settings
from app.repositories.firestore_repo import Repository
from app.services.auth_service import AuthService
from app.services.bank_service import BankService
from app.services.dashboard_service import DashboardService
from app.services.early_access_service import EarlyAccessService
from app.services.email_service import EmailService


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_plaid_client(request: Request) -> PlaidAdapter:
    return request.app.state.plaid


def get_mailer(request: Request) -> EmailService:
    return request.app.state.mailer


def get_credentials(settings: Settings = Depends(get_settings)) -> CredentialManager:
    return CredentialManager(settings)


def get_auth_service(
    repository: Repository = Depends(get_repository),
    credentials: CredentialManager = Depends(get_credentials),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(repository, credentials, settings)


def get_early_access_service(repository: Repository = Depends(get_repository)) -> EarlyAccessService:
    return EarlyAccessService(repository)


def get_bank_service(
    repository: Repository = Depends(get_repository),
    plaid: PlaidAdapter = Depends(get_plaid_client),
) -> BankService:
    return BankService(repository, plaid)


def get_dashboard_service(
    bank_service: BankService = Depends(get_bank_service),
    settings: Settings = Depends(get_settings),
) -> DashboardService:
    return DashboardService(bank_service, settings)
