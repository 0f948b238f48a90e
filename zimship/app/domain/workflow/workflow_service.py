"""
Shipment Workflow Service (Domain Logic).

Applies validated status transitions to persisted shipments.

Flow:
1. Validate the requested status is canonical
2. Read the current persisted status
3. Check the transition table
4. Conditional write (only if the status is still the one read in step 2)
5. Append status history and commit
6. Best-effort notification (failures are logged, never raised)

Steps run sequentially; the store and notifier are injected so the service
can be exercised without a database.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from zimship.app.core.exceptions import (
    InvalidTransitionError,
    ResourceNotFoundError,
)
from zimship.app.domain.workflow.transitions import is_transition_allowed
from zimship.app.models.notification import NotificationType
from zimship.app.models.shipment_enums import ShipmentStatus
from zimship.app.services.notification_service import NotificationEvent

logger = logging.getLogger("zimship")


@dataclass(frozen=True)
class TransitionResult:
    shipment_id: int
    previous_status: str
    new_status: ShipmentStatus
    updated_at: datetime


class ShipmentWorkflowService:

    def __init__(self, store, notifier=None):
        """
        Args:
            store: Persistence collaborator (read_shipment_status,
                write_shipment_status, append_status_history, commit, rollback)
            notifier: Notification collaborator exposing ``notify(event)``
        """
        self.store = store
        self.notifier = notifier

    async def apply_transition(
        self,
        shipment_id: int,
        next_status,
        actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move a shipment to ``next_status``.

        Raises:
            InvalidTransitionError: status not canonical, not reachable from the
                persisted status, or changed concurrently
            ResourceNotFoundError: shipment does not exist
            PersistenceError: the store failed
        """
        target = ShipmentStatus.parse(next_status)
        if target is None:
            raise InvalidTransitionError(
                None, next_status,
                reason=f"'{next_status}' is not a recognised shipment status"
            )

        current = await self.store.read_shipment_status(shipment_id)
        if current is None:
            raise ResourceNotFoundError("Shipment", shipment_id)

        if not is_transition_allowed(current, target):
            logger.info(
                "Status transition rejected",
                extra={"shipment_id": shipment_id, "current": current, "requested": target.value}
            )
            raise InvalidTransitionError(current, target.value)

        updated_at = await self.store.write_shipment_status(
            shipment_id, target, expected_current=current
        )
        if updated_at is None:
            await self.store.rollback()
            logger.warning(
                "Status changed concurrently",
                extra={"shipment_id": shipment_id, "expected": current, "requested": target.value}
            )
            raise InvalidTransitionError(
                current, target.value,
                reason=f"Shipment {shipment_id} was updated by someone else; reload and try again"
            )

        await self.store.append_status_history(
            shipment_id, current, target, changed_by=actor_id, notes=notes
        )
        await self.store.commit()

        logger.info(
            "Shipment status changed",
            extra={"shipment_id": shipment_id, "from": current, "to": target.value, "actor_id": actor_id}
        )

        await self._notify(shipment_id, current, target, notes)

        return TransitionResult(
            shipment_id=shipment_id,
            previous_status=current,
            new_status=target,
            updated_at=updated_at,
        )

    async def _notify(self, shipment_id: int, previous: str, target: ShipmentStatus, notes: Optional[str]):
        if self.notifier is None:
            return
        event = NotificationEvent(
            type=NotificationType.SHIPMENT_UPDATE,
            related_id=shipment_id,
            title="Shipment Status Updated",
            message=f"Shipment status changed from {previous} to {target.value}",
            payload={"previous_status": previous, "new_status": target.value, "notes": notes},
        )
        try:
            await self.notifier.notify(event)
        except Exception:
            logger.exception(
                "Notification dispatch failed",
                extra={"shipment_id": shipment_id, "new_status": target.value}
            )
