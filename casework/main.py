"""FastAPI application entry point."""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from casework.core.config import settings
from casework.core.structured_logging import build_log_context, configure_logging
from casework.db.session import engine
from casework.services.errors import CaseworkError

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Applicant data must not leave the system
    )
    logger.info("Sentry initialized for error tracking")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Casework API",
    description="Welfare case management API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(CaseworkError)
async def casework_error_handler(request: Request, exc: CaseworkError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    content = {"detail": "Internal server error"}
    if not settings.is_production:
        content["error"] = str(exc)
        content["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


# ============================================================================
# Routers
# ============================================================================

from casework.routers import (  # noqa: E402
    applicants,
    attachments,
    auth,
    case_types,
    cases,
    counseling_forms,
    cover_letter_forms,
    dashboard,
    executive_levels,
    jamaat,
    jamiat,
    notifications,
    roles,
    users,
    welfare_checklist,
    workflow_stages,
)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Case management
app.include_router(cases.router, prefix="/api/cases", tags=["cases"])
app.include_router(applicants.router, prefix="/api/applicants", tags=["applicants"])
app.include_router(attachments.router, prefix="/api/attachments", tags=["attachments"])
app.include_router(welfare_checklist.router, prefix="/api/welfare-checklist", tags=["welfare-checklist"])
app.include_router(counseling_forms.router, prefix="/api/counseling-forms", tags=["counseling-forms"])
app.include_router(cover_letter_forms.router, prefix="/api/cover-letter-forms", tags=["cover-letter-forms"])

# Workflow configuration
app.include_router(workflow_stages.router, prefix="/api/workflow-stages", tags=["workflow-stages"])

# Masters
app.include_router(jamiat.router, prefix="/api/jamiat", tags=["jamiat"])
app.include_router(jamaat.router, prefix="/api/jamaat", tags=["jamaat"])
app.include_router(case_types.router, prefix="/api/case-types", tags=["case-types"])
app.include_router(executive_levels.router, prefix="/api/executive-levels", tags=["executive-levels"])

# Administration
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(roles.router, prefix="/api/roles", tags=["roles"])

# Per-user widgets
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
