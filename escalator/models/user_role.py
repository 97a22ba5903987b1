"""Role directory model.

Maps users to role tags inside a workspace. Managed by the user
directory; the escalation engine only reads it for role expansion.
"""

import uuid

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from escalator.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# Role tags offered by the rule editor
KNOWN_ROLES = ("admin", "owner", "manager", "superintendent", "inspector")


class UserRole(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "user_id", "role", name="uq_user_roles_workspace_user_role"
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<UserRole(user={self.user_id}, role={self.role})>"
