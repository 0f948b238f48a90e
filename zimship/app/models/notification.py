"""
Notification Database Model.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Enum
from sqlalchemy.sql import func
from zimship.app.db.session import Base
import enum


class NotificationType(str, enum.Enum):
    SHIPMENT_UPDATE = "shipment_update"
    ROLE_UPDATE = "role_update"
    SYSTEM = "system"


class Notification(Base):
    """
    In-App Notification.

    ``user_id`` is None for notifications addressed to the staff inbox.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Recipient
    user_id = Column(Integer, nullable=True, index=True)

    # Content
    type = Column(Enum(NotificationType), default=NotificationType.SYSTEM, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(String(64), nullable=True, index=True)
    metadata_payload = Column(JSON, nullable=True)

    # State
    is_read = Column(Boolean, default=False, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, title='{self.title}')>"
