"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Built-in role names.

    Roles live in the `roles` table and administrators may add more; these are
    the names seeded by the CLI and referenced by the legacy allow-lists.
    """
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    DCM = "dcm"
    COUNSELOR = "counselor"
    ZI = "zi"
    WELFARE_REVIEWER = "welfare_reviewer"
    WELFARE = "welfare"
    EXECUTIVE = "executive"
    FINANCE = "finance"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a built-in role."""
        return value in cls._value2member_map_


class CaseStatus(str, Enum):
    """
    Known case statuses.

    The column itself is an open string: stages may carry their own
    `associated_statuses`, and executive levels produce
    `submitted_to_executive_<n>`.
    """
    DRAFT = "draft"
    ASSIGNED = "assigned"
    IN_COUNSELING = "in_counseling"
    COVER_LETTER_GENERATED = "cover_letter_generated"
    SUBMITTED_TO_WELFARE = "submitted_to_welfare"
    WELFARE_APPROVED = "welfare_approved"
    WELFARE_REJECTED = "welfare_rejected"
    WELFARE_PROCESSING_REWORK = "welfare_processing_rework"
    EXECUTIVE_APPROVED = "executive_approved"
    EXECUTIVE_REJECTED = "executive_rejected"
    FINANCE_DISBURSEMENT = "finance_disbursement"
    COMPLETED = "completed"
    CLOSED = "closed"


# Dashboard pipeline ordering
PIPELINE_STATUS_ORDER: tuple[str, ...] = (
    CaseStatus.DRAFT.value,
    CaseStatus.ASSIGNED.value,
    CaseStatus.IN_COUNSELING.value,
    CaseStatus.COVER_LETTER_GENERATED.value,
    CaseStatus.SUBMITTED_TO_WELFARE.value,
    CaseStatus.WELFARE_APPROVED.value,
    CaseStatus.WELFARE_REJECTED.value,
    CaseStatus.WELFARE_PROCESSING_REWORK.value,
    CaseStatus.EXECUTIVE_APPROVED.value,
    CaseStatus.EXECUTIVE_REJECTED.value,
    CaseStatus.FINANCE_DISBURSEMENT.value,
    CaseStatus.COMPLETED.value,
    CaseStatus.CLOSED.value,
)

TERMINAL_STATUSES = frozenset({CaseStatus.COMPLETED.value, CaseStatus.CLOSED.value})


class CommentType(str, Enum):
    GENERAL = "general"
    APPROVAL = "approval"
    REWORK = "rework"
    REJECTION = "rejection"
    CLOSURE = "closure"


class NotificationType(str, Enum):
    WORKFLOW_STAGE = "workflow_stage"
    CASE_ASSIGNED = "case_assigned"
    REWORK = "rework"
    GENERAL = "general"


class StageGrant(str, Enum):
    """Per-stage grant flags (maps to `can_<value>` columns)."""
    VIEW = "view"
    APPROVE = "approve"
    REJECT = "reject"
    REVIEW = "review"
    EDIT = "edit"
    DELETE = "delete"
    CREATE = "create"


class AttachmentStage(str, Enum):
    WORK_PLACE_PHOTO = "work_place_photo"
    QUOTATION = "quotation"
    PRODUCT_BROCHURE = "product_brochure"
    INCOME_TAX_RETURN = "income_tax_return"
    FINANCIAL_STATEMENTS = "financial_statements"
    OTHER_DOCUMENTS = "other_documents"


class SlaUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"
    BUSINESS_DAYS = "business_days"
    WEEKS = "weeks"
    MONTHS = "months"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
