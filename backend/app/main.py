from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.adapters.plaid_client import PlaidAdapter
from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.exceptions import ErrorCode, GigbenError
from app.core.logging import get_logger, setup_logging
from app.core.utils import error_object
from app.repositories.firestore_repo import build_repository
from app.services.email_service import EmailService

# Load environment variables from .env file in project root
# backend/app/main.py -> backend -> project root
env_path = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(env_path)

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger("gigben.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.repository = build_repository(settings)
    app.state.plaid = PlaidAdapter.from_settings(settings)
    app.state.mailer = EmailService(settings)
    logger.info(f"Gigben API started (environment={settings.environment})")
    yield


app = FastAPI(title="Gigben API", version="0.1.0", lifespan=lifespan)

# Allow preview deployments of the web client in production
allow_origin_regex = r"https://gigben-web-.*\.vercel\.app" if settings.is_production else None

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(GigbenError)
async def gigben_error_handler(request: Request, exc: GigbenError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_object(exc.code, exc.message, exc.errors),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"param": ".".join(str(part) for part in error["loc"][1:]), "msg": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_object(ErrorCode.VALIDATION_FAILED, "Validation Failed", errors),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_object(ErrorCode.SOMETHING_BAD_HAPPENED, "Something bad happened :(", str(exc)),
    )


app.include_router(api_router)
