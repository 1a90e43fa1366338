"""
api/main.py -- FastAPI application entry point for BikeHub Accounts.

Run with:      uvicorn asgi:app --reload
               python main.py --port 3001

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- adds CORS headers for allowed browser origins
  2. log_requests          -- one access-log line per request

Lifespan reads Settings exactly once and builds every long-lived object onto
app.state: the shared Engine, the three stores, PasswordHasher, TokenCodec and
the two services. Nothing below the API layer calls get_settings() -- the
signing secret reaches TokenCodec only through its constructor.

Error envelopes:
  400 {"errors": [...]}  -- payload validation (ours or FastAPI's)
  4xx {"message": "..."} -- every other failure
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from accounts.store import AccountStore
from api.models import HealthResponse, MessageResponse, ValidationErrorResponse
from api.routes.v1.accounts import router as accounts_router
from api.routes.v1.admins import router as admins_router
from api.routes.v1.users import router as users_router
from auth.authentication import AuthenticationService
from auth.errors import AuthServiceError, AuthTokenError, ValidationError
from auth.passwords import PasswordHasher
from auth.registration import RegistrationService
from auth.schemas import format_errors
from auth.store import AdminStore, UserStore, create_db_engine
from auth.tokens import TokenCodec
from core.config import get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("bikehub.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Settings first -- a missing APP_SECRET raises here and the server
         never starts accepting requests.
      2. Engine and stores -- tables are created on first use.
      3. Hasher and codec, then the services that depend on them.
    """
    settings = get_settings()
    if settings.debug:
        logging.getLogger("bikehub").setLevel(logging.DEBUG)
    logger.info("BikeHub Accounts API starting up")

    app.state.engine = create_db_engine(settings.database_url)
    app.state.user_store = UserStore(app.state.engine)
    app.state.admin_store = AdminStore(app.state.engine)
    app.state.account_store = AccountStore(app.state.engine)
    logger.info("Database initialized")

    hasher = PasswordHasher()
    app.state.token_codec = TokenCodec(
        secret_key=settings.app_secret,
        expire_seconds=settings.token_expire_seconds,
    )
    app.state.registration = RegistrationService(
        app.state.user_store,
        app.state.admin_store,
        hasher,
        registration_code=settings.admin_registration_code,
    )
    app.state.authentication = AuthenticationService(
        app.state.user_store,
        app.state.admin_store,
        hasher,
        app.state.token_codec,
    )
    logger.info("Auth initialized (token_expire_seconds=%d)", settings.token_expire_seconds)

    yield

    app.state.engine.dispose()
    logger.info("BikeHub Accounts API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="BikeHub Accounts API",
    description="Registration, login and session tokens for BikeHub users and administrators.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(admins_router, prefix="/api/v1", tags=["Admins"])
app.include_router(accounts_router, prefix="/api/v1", tags=["Accounts"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Translate the auth error taxonomy into its HTTP envelope.

    ValidationError carries a list and gets {"errors": [...]}; every other
    member gets {"message": ...}. AuthTokenError also advertises the Bearer
    scheme, as RFC 6750 asks for on 401s.
    """
    if isinstance(exc, ValidationError):
        content = ValidationErrorResponse(errors=exc.errors).model_dump()
    else:
        content = MessageResponse(message=exc.message).model_dump()
    response = JSONResponse(status_code=exc.status_code, content=content)
    if isinstance(exc, AuthTokenError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the same {"errors": [...]} shape the services use."""
    return JSONResponse(
        status_code=400,
        content=ValidationErrorResponse(errors=format_errors(exc.errors())).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return {"message": ...} for FastAPI/Starlette HTTP exceptions (404 on unknown paths, 405, ...)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the server log only. The client receives a generic
    message, never exception text that could carry internal details.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=MessageResponse(message="An unexpected error occurred.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
