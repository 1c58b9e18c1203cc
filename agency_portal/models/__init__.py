# SQLModel definitions, imported here so metadata is populated for Alembic and create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .agency import Agency  # noqa: F401
from .creator_model import CreatorModel  # noqa: F401
from .team import TeamMember, ModelAssignment  # noqa: F401
from .gallery import GalleryItem  # noqa: F401
from .content import ContentRequest, Upload  # noqa: F401
from .invitation import Invitation  # noqa: F401
from .audit import AuditEvent  # noqa: F401
