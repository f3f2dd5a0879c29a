"""API routers."""

from casework.routers.auth import router as auth_router
from casework.routers.cases import router as cases_router
from casework.routers.notifications import router as notifications_router
from casework.routers.workflow_stages import router as workflow_stages_router

__all__ = [
    "auth_router",
    "cases_router",
    "notifications_router",
    "workflow_stages_router",
]
