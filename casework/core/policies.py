"""Centralized RBAC policies for API endpoints.

Every protected endpoint names one policy. A policy passes when the user holds
one of its legacy roles OR the permission resolver grants (resource, action).
Either side may be empty: a policy with resource=None is a pure allow-list,
one with no legacy roles is purely table-driven.
"""

from dataclasses import dataclass

from casework.core.permissions import (
    LEGACY_ADMIN_ROLES,
    SUPER_ADMIN_ONLY,
    WELFARE_ROLES,
)
from casework.db.enums import Role


@dataclass(frozen=True)
class ActionPolicy:
    resource: str | None
    action: str | None
    legacy_roles: frozenset[str] = frozenset()


_ADMINS = frozenset({Role.SUPER_ADMIN.value, Role.ADMIN.value})


POLICIES: dict[str, ActionPolicy] = {
    # Cases
    "cases.read": ActionPolicy("cases", "read", LEGACY_ADMIN_ROLES),
    "cases.create": ActionPolicy("cases", "create", LEGACY_ADMIN_ROLES),
    "cases.update": ActionPolicy("cases", "update", LEGACY_ADMIN_ROLES),
    "cases.delete": ActionPolicy("cases", "delete"),
    "cases.close": ActionPolicy("cases", "close_case"),
    "cases.welfare_review": ActionPolicy(None, None, WELFARE_ROLES | _ADMINS),
    "cases.executive_review": ActionPolicy(
        None, None, frozenset({Role.EXECUTIVE.value}) | _ADMINS
    ),
    "cases.resubmit_welfare": ActionPolicy(
        None, None, frozenset({Role.DCM.value, Role.ZI.value}) | _ADMINS
    ),
    # Applicants
    "applicants.read": ActionPolicy("applicants", "read", LEGACY_ADMIN_ROLES),
    "applicants.create": ActionPolicy("applicants", "create", _ADMINS),
    "applicants.update": ActionPolicy("applicants", "update", _ADMINS),
    "applicants.delete": ActionPolicy("applicants", "delete", _ADMINS),
    "applicants.fetch": ActionPolicy("applicants", "fetch", LEGACY_ADMIN_ROLES),
    # Welfare checklist
    "checklist.manage": ActionPolicy("welfare_checklist", "manage", SUPER_ADMIN_ONLY),
    "checklist.read": ActionPolicy("welfare_checklist", "read", WELFARE_ROLES | _ADMINS),
    "checklist.fill": ActionPolicy("welfare_checklist", "fill", WELFARE_ROLES | _ADMINS),
    # Counseling forms
    "counseling_forms.read": ActionPolicy("counseling_forms", "read", LEGACY_ADMIN_ROLES),
    "counseling_forms.update": ActionPolicy("counseling_forms", "update", LEGACY_ADMIN_ROLES),
    "counseling_forms.complete": ActionPolicy("counseling_forms", "complete", LEGACY_ADMIN_ROLES),
    # Cover letters
    "cover_letters.read": ActionPolicy("cover_letter_forms", "read", LEGACY_ADMIN_ROLES),
    "cover_letters.update": ActionPolicy("cover_letter_forms", "update", LEGACY_ADMIN_ROLES),
    "cover_letters.submit": ActionPolicy("cover_letter_forms", "submit"),
    # Attachments
    "attachments.read": ActionPolicy("attachments", "read", LEGACY_ADMIN_ROLES),
    "attachments.upload": ActionPolicy("attachments", "upload", LEGACY_ADMIN_ROLES),
    "attachments.delete": ActionPolicy("attachments", "delete", _ADMINS),
    # Masters
    "master.read": ActionPolicy("master", "read", LEGACY_ADMIN_ROLES),
    "master.create": ActionPolicy("master", "create", _ADMINS),
    "master.update": ActionPolicy("master", "update", _ADMINS),
    "master.delete": ActionPolicy("master", "delete", _ADMINS),
    # Administration
    "users.read": ActionPolicy("users", "read", _ADMINS),
    "users.create": ActionPolicy("users", "create"),
    "users.update": ActionPolicy("users", "update"),
    "users.delete": ActionPolicy("users", "delete"),
    "roles.manage": ActionPolicy(None, None, SUPER_ADMIN_ONLY),
    "dashboard.read": ActionPolicy("dashboard", "read", LEGACY_ADMIN_ROLES),
}


def get_policy(key: str) -> ActionPolicy:
    try:
        return POLICIES[key]
    except KeyError:
        raise KeyError(f"Unknown policy '{key}'") from None
