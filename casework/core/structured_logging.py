"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any

from casework.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Configure root logging once at process start."""
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT)


def build_log_context(
    *,
    user_id: int | None = None,
    case_id: int | None = None,
    stage_id: int | None = None,
    action: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict of identifiers only (no applicant data)."""
    context: dict[str, Any] = {}
    if user_id is not None:
        context["user_id"] = user_id
    if case_id is not None:
        context["case_id"] = case_id
    if stage_id is not None:
        context["stage_id"] = stage_id
    if action:
        context["action"] = action
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
