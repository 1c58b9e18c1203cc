from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AgencyStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class ModelStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class TeamRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, Enum):
    INVITED = "invited"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class PermissionScope(str, Enum):
    ALL = "all"
    ASSIGNED = "assigned"


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    APPROVED = "approved"
    CANCELLED = "cancelled"


class RequestPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


# Most urgent first, used for ordering the portal's open requests
PRIORITY_ORDER: list["RequestPriority"] = [
    RequestPriority.URGENT,
    RequestPriority.HIGH,
    RequestPriority.NORMAL,
    RequestPriority.LOW,
]


class UploadStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class FileType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class InvitationKind(str, Enum):
    TEAM = "team"
    MODEL = "model"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    EXPIRED = "expired"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ViewerClass(str, Enum):
    PRIVILEGED = "privileged"
    PUBLIC = "public"


class ActorType(str, Enum):
    TEAM_MEMBER = "team_member"
    MODEL = "model"
    SYSTEM = "system"


class ErrorBody(BaseModel):
    detail: str
    code: Optional[str] = None
