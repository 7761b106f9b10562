from fastapi import APIRouter, BackgroundTasks, Depends

from app.auth.jwt_auth import AuthenticatedUser, get_current_user
from app.api.dependencies import (
    get_auth_service,
    get_bank_service,
    get_dashboard_service,
    get_early_access_service,
    get_mailer,
)
from app.core.utils import success_object
from app.core.validation import (
    validate_early_access,
    validate_login,
    validate_plaid_login,
    validate_signup,
    validate_verification,
)
from app.schemas.models import (
    EarlyAccessRequest,
    LoginRequest,
    PlaidLoginRequest,
    SignupRequest,
    VerifyRequest,
)
from app.services.auth_service import AuthResult, AuthService
from app.services.bank_service import BankService
from app.services.dashboard_service import DashboardService
from app.services.early_access_service import EarlyAccessService
from app.services.email_service import EmailService

router = APIRouter()
v1 = APIRouter(prefix="/v1")


def _schedule_code_email(result: AuthResult, background_tasks: BackgroundTasks, mailer: EmailService) -> None:
    if result.verification_code:
        background_tasks.add_task(mailer.send_verification_code, result.user.email, result.verification_code)


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@v1.get("/test")
async def hello(user: AuthenticatedUser = Depends(get_current_user)) -> dict:
    """Token round-trip check for the front-end."""
    return success_object("Hello World!")


# =============================================================================
# Accounts
# =============================================================================


@v1.post("/signup")
async def signup(
    payload: SignupRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
    mailer: EmailService = Depends(get_mailer),
) -> dict:
    """Create an account and email its verification code."""
    values = validate_signup(payload.email, payload.password).raise_for_errors()
    result = await service.signup(values["email"], values["password"])
    _schedule_code_email(result, background_tasks, mailer)
    return success_object("Sign up success", token=result.token)


@v1.post("/verify")
async def verify(
    payload: VerifyRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """Confirm the emailed code for the signed-in account."""
    values = validate_verification(payload.code).raise_for_errors()
    verified = await service.verify(user.id, values["code"])
    token = service.credentials.issue_token(verified)
    return success_object("Account verified", token=token)


@v1.post("/verificationEmail")
async def verification_email(
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    mailer: EmailService = Depends(get_mailer),
) -> dict:
    """Send a fresh verification code to the signed-in account."""
    result = await service.resend_verification(user.id)
    _schedule_code_email(result, background_tasks, mailer)
    if result.verification_code is None:
        return success_object("Account already verified")
    return success_object("Verification email sent")


@v1.post("/login")
async def login(
    payload: LoginRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
    mailer: EmailService = Depends(get_mailer),
) -> dict:
    """Sign in; unverified accounts are sent a new code."""
    values = validate_login(payload.email, payload.password).raise_for_errors()
    result = await service.login(values["email"], values["password"])
    _schedule_code_email(result, background_tasks, mailer)
    return success_object(
        "Login success",
        token=result.token,
        accountVerified=result.user.account_verified,
    )


# =============================================================================
# Bank linking
# =============================================================================


@v1.post("/plaidLogin")
async def plaid_login(
    payload: PlaidLoginRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: BankService = Depends(get_bank_service),
) -> dict:
    """Exchange a Link public token and store the user's bank snapshot."""
    values = validate_plaid_login(payload.plaid_public_token).raise_for_errors()
    snapshot = await service.link(user.id, values["plaidPublicToken"])
    return success_object("Bank account linked", accounts=snapshot.accounts)


# =============================================================================
# Dashboard
# =============================================================================


@v1.post("/dashboard/status")
async def dashboard_status(
    user: AuthenticatedUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    return success_object("Dashboard status", **await service.status(user.id))


@v1.post("/dashboard/income")
async def dashboard_income(
    user: AuthenticatedUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    return success_object("Dashboard income", **await service.income(user.id))


@v1.post("/dashboard/netpay")
async def dashboard_net_pay(
    user: AuthenticatedUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    return success_object("Dashboard net pay", **await service.net_pay(user.id))


@v1.post("/dashboard/deductions")
async def dashboard_deductions(
    user: AuthenticatedUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    return success_object("Dashboard deductions", **await service.deductions(user.id))


@v1.post("/dashboard/expenses")
async def dashboard_expenses(
    user: AuthenticatedUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    return success_object("Dashboard expenses", **await service.expenses(user.id))


# =============================================================================
# Early access
# =============================================================================


@v1.post("/addEarlyAccessUser")
async def add_early_access_user(
    payload: EarlyAccessRequest,
    background_tasks: BackgroundTasks,
    service: EarlyAccessService = Depends(get_early_access_service),
    mailer: EmailService = Depends(get_mailer),
) -> dict:
    """Join the early-access waitlist and notify the team."""
    values = validate_early_access(payload.email).raise_for_errors()
    entry = await service.add(values["email"])
    background_tasks.add_task(mailer.send_early_access_notification, entry.email)
    return success_object("Early access sign up success")


router.include_router(v1)
