from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.application.errors import (
    ApplicationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PersistenceFailureError,
    ValidationError,
)
from app.config import settings
from app.infrastructure.logging import configure_logging, get_logger
from app.interfaces.api.v1.router import api_router

logger = get_logger(__name__)

OPENAPI_DESCRIPTION = """
Multi-tenant bookkeeping API for school fee collection and teacher payroll.

Each school works in monthly billing periods. Setting up a new period closes the
current one and rolls balances forward: unpaid fees and salaries carry over,
advance payments are drawn down one month at a time.

How to call this API:
- Authenticate at `POST /api/v1/auth/token`.
- Use `Authorization: Bearer <access_token>` in protected endpoints.
- Send `X-School-Id` with a school where the user has membership.
"""

OPENAPI_TAGS = [
    {"name": "health", "description": "Service health and connectivity checks."},
    {"name": "auth", "description": "Authentication and token issuance."},
    {"name": "billing-periods", "description": "Monthly period setup (rollover), deletion and ledger reads."},
    {"name": "parents", "description": "Fee-paying parents, fee history and advance payments."},
    {"name": "teachers", "description": "Teachers, salary history and salary advances."},
    {"name": "payments", "description": "Recording fee and salary payments against ledger rows."},
    {"name": "reports", "description": "Per-period collection and payroll summary."},
]

ERROR_STATUS_CODES: list[tuple[type[ApplicationError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PersistenceFailureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    logger.info("app_startup", app_name=settings.app_name, version=settings.app_version)
    yield
    logger.info("app_shutdown", app_name=settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=OPENAPI_DESCRIPTION,
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": f"{settings.app_name} is running"}


@app.exception_handler(ApplicationError)
async def handle_application_error(request: Request, exc: ApplicationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, mapped_status in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            status_code = mapped_status
            break
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, detail=str(exc))
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "kind": exc.kind})


app.include_router(api_router)
