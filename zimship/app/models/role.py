"""
Role database model.

A role is a named bundle of permissions assignable to staff users.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from zimship.app.db.session import Base


class Role(Base):
    """
    Role model.

    ``permissions`` holds a permissions document keyed by permission
    section (see ``domain.permissions.schema``). ``is_protected`` marks
    roles that can never be deleted, in addition to the built-in
    protected names.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    permissions = Column(JSON, nullable=False, default=dict)
    is_protected = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}', protected={self.is_protected})>"
