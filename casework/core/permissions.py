"""Permission registry with metadata for UI and validation.

A permission is a (resource, action) pair. Roles hold grants either as a JSON
blob ({resource: [action, ...]}) or as role_permissions rows; the action
"all" grants every action on its resource.

super_admin always has every permission.
"""

from dataclasses import dataclass
from enum import Enum

from casework.db.enums import Role


WILDCARD_ACTION = "all"


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    resource: str
    action: str
    label: str
    category: str

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action}"


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    CASES = "Cases"
    APPLICANTS = "Applicants"
    WORKFLOW = "Workflow"
    ADMINISTRATION = "Administration"
    MASTERS = "Masters"


def _perm(resource: str, action: str, label: str, category: PermissionCategory) -> PermissionDef:
    return PermissionDef(resource, action, label, category.value)


# =============================================================================
# Permission Registry
# =============================================================================

_DEFS: list[PermissionDef] = [
    # Cases
    _perm("cases", "read", "View all cases", PermissionCategory.CASES),
    _perm("cases", "create", "Create cases", PermissionCategory.CASES),
    _perm("cases", "update", "Edit cases", PermissionCategory.CASES),
    _perm("cases", "delete", "Delete cases", PermissionCategory.CASES),
    _perm("cases", "assign", "Assign cases", PermissionCategory.CASES),
    _perm("cases", "close_case", "Close cases", PermissionCategory.CASES),
    _perm("cases", "case_assigned", "Only see assigned cases", PermissionCategory.CASES),
    # Applicants
    _perm("applicants", "read", "View applicants", PermissionCategory.APPLICANTS),
    _perm("applicants", "create", "Create applicants", PermissionCategory.APPLICANTS),
    _perm("applicants", "update", "Edit applicants", PermissionCategory.APPLICANTS),
    _perm("applicants", "delete", "Delete applicants", PermissionCategory.APPLICANTS),
    _perm("applicants", "fetch", "Fetch from ITS API", PermissionCategory.APPLICANTS),
    # Workflow
    _perm("welfare_checklist", "read", "View welfare checklist", PermissionCategory.WORKFLOW),
    _perm("welfare_checklist", "fill", "Fill welfare checklist", PermissionCategory.WORKFLOW),
    _perm("welfare_checklist", "manage", "Manage checklist items", PermissionCategory.WORKFLOW),
    _perm("counseling_forms", "read", "View counseling forms", PermissionCategory.WORKFLOW),
    _perm("counseling_forms", "update", "Edit counseling forms", PermissionCategory.WORKFLOW),
    _perm("counseling_forms", "complete", "Complete counseling forms", PermissionCategory.WORKFLOW),
    _perm("cover_letter_forms", "read", "View cover letters", PermissionCategory.WORKFLOW),
    _perm("cover_letter_forms", "update", "Edit cover letters", PermissionCategory.WORKFLOW),
    _perm("cover_letter_forms", "submit", "Submit cover letters", PermissionCategory.WORKFLOW),
    _perm("attachments", "read", "View attachments", PermissionCategory.WORKFLOW),
    _perm("attachments", "upload", "Upload attachments", PermissionCategory.WORKFLOW),
    _perm("attachments", "delete", "Delete attachments", PermissionCategory.WORKFLOW),
    # Administration
    _perm("users", "read", "View users", PermissionCategory.ADMINISTRATION),
    _perm("users", "create", "Create users", PermissionCategory.ADMINISTRATION),
    _perm("users", "update", "Edit users", PermissionCategory.ADMINISTRATION),
    _perm("users", "delete", "Delete users", PermissionCategory.ADMINISTRATION),
    _perm("roles", "manage", "Manage roles", PermissionCategory.ADMINISTRATION),
    _perm("dashboard", "read", "View dashboard", PermissionCategory.ADMINISTRATION),
    # Masters (stages, case types, jamiat/jamaat, executive levels)
    _perm("master", "read", "View master data", PermissionCategory.MASTERS),
    _perm("master", "create", "Create master data", PermissionCategory.MASTERS),
    _perm("master", "update", "Edit master data", PermissionCategory.MASTERS),
    _perm("master", "delete", "Delete master data", PermissionCategory.MASTERS),
]

PERMISSION_REGISTRY: dict[str, PermissionDef] = {p.key: p for p in _DEFS}


# =============================================================================
# Legacy allow-lists
# =============================================================================

# Bootstrap roles that some endpoints admit without consulting the permission
# tables. Each endpoint opts in through its ActionPolicy in core/policies.py.
LEGACY_ADMIN_ROLES: frozenset[str] = frozenset(
    {Role.SUPER_ADMIN.value, Role.ADMIN.value, Role.DCM.value}
)
WELFARE_ROLES: frozenset[str] = frozenset(
    {Role.WELFARE_REVIEWER.value, Role.WELFARE.value}
)
SUPER_ADMIN_ONLY: frozenset[str] = frozenset({Role.SUPER_ADMIN.value})


# =============================================================================
# Role Defaults (seeded by the CLI)
# =============================================================================

ROLE_DEFAULTS: dict[str, dict[str, list[str]]] = {
    Role.SUPER_ADMIN.value: {},  # implicit: everything
    Role.ADMIN.value: {
        "cases": [WILDCARD_ACTION],
        "applicants": [WILDCARD_ACTION],
        "users": [WILDCARD_ACTION],
        "master": [WILDCARD_ACTION],
        "welfare_checklist": ["read", "manage"],
        "counseling_forms": [WILDCARD_ACTION],
        "cover_letter_forms": [WILDCARD_ACTION],
        "attachments": [WILDCARD_ACTION],
        "dashboard": ["read"],
    },
    Role.DCM.value: {
        "cases": ["read", "create", "update", "assign"],
        "applicants": ["read", "create", "update", "fetch"],
        "counseling_forms": ["read", "update", "complete"],
        "cover_letter_forms": ["read", "update", "submit"],
        "attachments": ["read", "upload"],
        "master": ["read"],
        "dashboard": ["read"],
    },
    Role.ZI.value: {
        "cases": ["read", "update"],
        "applicants": ["read"],
        "counseling_forms": ["read"],
        "attachments": ["read"],
        "dashboard": ["read"],
    },
    Role.COUNSELOR.value: {
        "cases": ["case_assigned", "update"],
        "applicants": ["read"],
        "counseling_forms": ["read", "update", "complete"],
        "cover_letter_forms": ["read", "update", "submit"],
        "attachments": ["read", "upload"],
    },
    Role.WELFARE_REVIEWER.value: {
        "cases": ["read"],
        "welfare_checklist": ["read", "fill"],
        "counseling_forms": ["read"],
        "cover_letter_forms": ["read"],
        "attachments": ["read"],
        "dashboard": ["read"],
    },
    Role.WELFARE.value: {
        "cases": ["read"],
        "welfare_checklist": ["read", "fill"],
        "counseling_forms": ["read"],
        "cover_letter_forms": ["read"],
        "attachments": ["read"],
    },
    Role.EXECUTIVE.value: {
        "cases": ["read"],
        "counseling_forms": ["read"],
        "cover_letter_forms": ["read"],
        "attachments": ["read"],
        "dashboard": ["read"],
    },
    Role.FINANCE.value: {
        "cases": ["read", "close_case"],
        "attachments": ["read"],
        "dashboard": ["read"],
    },
}


def get_all_permissions() -> list[PermissionDef]:
    """Get all permission definitions."""
    return list(PERMISSION_REGISTRY.values())


def is_valid_permission(resource: str, action: str) -> bool:
    if action == WILDCARD_ACTION:
        return any(p.resource == resource for p in _DEFS)
    return f"{resource}:{action}" in PERMISSION_REGISTRY


def get_role_default_permissions(role: str) -> dict[str, list[str]]:
    """Get default grants for a built-in role (empty for unknown roles)."""
    return {k: list(v) for k, v in ROLE_DEFAULTS.get(role, {}).items()}
