"""
Role assignment model.

Links a user (owned by the identity provider) to exactly one role.
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from zimship.app.db.session import Base


class RoleAssignment(Base):
    __tablename__ = "role_assignments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # One role per user
    user_id = Column(Integer, unique=True, nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)

    assigned_by = Column(Integer, nullable=True)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RoleAssignment(user={self.user_id}, role={self.role_id})>"
