"""
Notification Service.

Records in-app notifications for shipment and role events. Delivery over
email/SMS is handled outside this service.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from zimship.app.models.notification import Notification, NotificationType


@dataclass
class NotificationEvent:
    type: NotificationType
    related_id: Any
    payload: Dict[str, Any] = field(default_factory=dict)
    title: Optional[str] = None
    message: Optional[str] = None
    user_id: Optional[int] = None


_DEFAULT_TITLES = {
    NotificationType.SHIPMENT_UPDATE: "Shipment Update",
    NotificationType.ROLE_UPDATE: "Role Update",
    NotificationType.SYSTEM: "System Notice",
}


class NotificationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(self, event: NotificationEvent) -> Notification:
        """
        Persist a notification for ``event``.

        Raises on failure; callers that treat notifications as best-effort
        must catch.
        """
        notif = Notification(
            user_id=event.user_id,
            type=event.type,
            title=event.title or _DEFAULT_TITLES.get(event.type, "Notification"),
            message=event.message or "",
            related_id=None if event.related_id is None else str(event.related_id),
            metadata_payload=event.payload or None,
        )
        try:
            self.db.add(notif)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return notif
