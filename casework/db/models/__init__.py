"""SQLAlchemy ORM models."""

from casework.db.models.applicants import Applicant
from casework.db.models.attachments import CaseAttachment
from casework.db.models.auth import Role, RolePermission, User, UserRole
from casework.db.models.cases import (
    Case,
    CaseClosure,
    CaseComment,
    CaseWorkflowEvent,
    StatusHistory,
)
from casework.db.models.checklist import (
    WelfareChecklistCategory,
    WelfareChecklistItem,
    WelfareChecklistResponse,
)
from casework.db.models.counseling import CounselingForm
from casework.db.models.cover_letters import CoverLetterForm
from casework.db.models.masters import CaseType, ExecutiveLevel
from casework.db.models.notifications import Notification
from casework.db.models.organizations import Jamaat, Jamiat
from casework.db.models.workflow_stages import (
    WorkflowStage,
    WorkflowStageRole,
    WorkflowStageUser,
)

__all__ = [
    "Applicant",
    "Case",
    "CaseAttachment",
    "CaseClosure",
    "CaseComment",
    "CaseType",
    "CaseWorkflowEvent",
    "CounselingForm",
    "CoverLetterForm",
    "ExecutiveLevel",
    "Jamaat",
    "Jamiat",
    "Notification",
    "Role",
    "RolePermission",
    "StatusHistory",
    "User",
    "UserRole",
    "WelfareChecklistCategory",
    "WelfareChecklistItem",
    "WelfareChecklistResponse",
    "WorkflowStage",
    "WorkflowStageRole",
    "WorkflowStageUser",
]
