"""
SQLAlchemy-backed store for shipments and roles.

All database failures surface as PersistenceError so callers can offer a
retry. Status writes are conditional on the status read beforehand.
"""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from zimship.app.core.config import settings
from zimship.app.core.exceptions import ConflictError, PersistenceError
from zimship.app.models.role import Role
from zimship.app.models.role_assignment import RoleAssignment
from zimship.app.models.shipment import Shipment
from zimship.app.models.shipment_enums import INITIAL_STATUS, ShipmentStatus
from zimship.app.models.shipment_status_history import ShipmentStatusHistory

logger = logging.getLogger("zimship")

TRACKING_ALPHABET = string.ascii_uppercase + string.digits


def generate_tracking_number() -> str:
    """Customer-facing tracking number, e.g. ``ZS-7K2M9QXA``."""
    body = "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(settings.tracking_number_length))
    return f"{settings.tracking_number_prefix}-{body}"


class SqlAlchemyStore:
    """Persistence collaborator bound to one request's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, operation: str, exc: Exception):
        await self.db.rollback()
        logger.error(
            "Persistence failure",
            extra={"operation": operation, "exception_type": type(exc).__name__}
        )
        raise PersistenceError(f"Failed to {operation.replace('_', ' ')}", operation=operation) from exc

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self._fail("commit", exc)

    async def rollback(self) -> None:
        await self.db.rollback()

    # --- Shipments ---

    async def create_shipment(
        self,
        origin: str,
        destination: str,
        user_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Shipment:
        shipment = Shipment(
            tracking_number=generate_tracking_number(),
            origin=origin,
            destination=destination,
            user_id=user_id,
            status=INITIAL_STATUS.value,
            metadata_payload=metadata,
        )
        try:
            self.db.add(shipment)
            await self.db.commit()
            await self.db.refresh(shipment)
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Tracking number collision, please retry") from exc
        except SQLAlchemyError as exc:
            await self._fail("create_shipment", exc)
        return shipment

    async def read_shipment(self, shipment_id: int) -> Optional[Shipment]:
        try:
            result = await self.db.execute(select(Shipment).where(Shipment.id == shipment_id))
        except SQLAlchemyError as exc:
            await self._fail("read_shipment", exc)
        return result.scalar_one_or_none()

    async def read_shipment_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        try:
            result = await self.db.execute(
                select(Shipment).where(Shipment.tracking_number == tracking_number)
            )
        except SQLAlchemyError as exc:
            await self._fail("read_shipment_by_tracking_number", exc)
        return result.scalar_one_or_none()

    async def list_shipments(
        self,
        status: Optional[ShipmentStatus] = None,
        page: int = 1,
        page_size: int = 50,
        statuses: Optional[Iterable[ShipmentStatus]] = None,
    ) -> Tuple[List[Shipment], int]:
        """Page of shipments, newest first, matching ``status`` and/or any of ``statuses``."""
        count_query = select(func.count(Shipment.id))
        query = select(Shipment)
        if status is not None:
            count_query = count_query.where(Shipment.status == status.value)
            query = query.where(Shipment.status == status.value)
        if statuses is not None:
            values = sorted(s.value for s in statuses)
            count_query = count_query.where(Shipment.status.in_(values))
            query = query.where(Shipment.status.in_(values))

        offset = (page - 1) * page_size
        query = query.order_by(Shipment.created_at.desc(), Shipment.id.desc()).offset(offset).limit(page_size)

        try:
            total = (await self.db.execute(count_query)).scalar()
            shipments = (await self.db.execute(query)).scalars().all()
        except SQLAlchemyError as exc:
            await self._fail("list_shipments", exc)
        return list(shipments), total

    async def read_shipment_status(self, shipment_id: int) -> Optional[str]:
        """Current persisted status, or None if the shipment does not exist."""
        try:
            result = await self.db.execute(select(Shipment.status).where(Shipment.id == shipment_id))
        except SQLAlchemyError as exc:
            await self._fail("read_shipment_status", exc)
        return result.scalar_one_or_none()

    async def write_shipment_status(
        self,
        shipment_id: int,
        status: ShipmentStatus,
        expected_current: Optional[str] = None,
    ) -> Optional[datetime]:
        """
        Set the status and refresh ``updated_at``.

        With ``expected_current`` the update only applies while the row still
        holds that status. Returns the new ``updated_at`` or None when no row
        matched. Not committed; call ``commit``.
        """
        now = datetime.now(timezone.utc)
        stmt = (
            update(Shipment)
            .where(Shipment.id == shipment_id)
            .values(status=status.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if expected_current is not None:
            stmt = stmt.where(Shipment.status == expected_current)

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            await self._fail("write_shipment_status", exc)
        return now if result.rowcount > 0 else None

    async def append_status_history(
        self,
        shipment_id: int,
        previous_status: str,
        new_status: ShipmentStatus,
        changed_by: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> ShipmentStatusHistory:
        entry = ShipmentStatusHistory(
            shipment_id=shipment_id,
            previous_status=previous_status,
            new_status=new_status.value,
            changed_by=changed_by,
            notes=notes,
        )
        try:
            self.db.add(entry)
            await self.db.flush()
        except SQLAlchemyError as exc:
            await self._fail("append_status_history", exc)
        return entry

    async def list_status_history(self, shipment_id: int) -> List[ShipmentStatusHistory]:
        query = (
            select(ShipmentStatusHistory)
            .where(ShipmentStatusHistory.shipment_id == shipment_id)
            .order_by(ShipmentStatusHistory.created_at.asc(), ShipmentStatusHistory.id.asc())
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as exc:
            await self._fail("list_status_history", exc)
        return list(result.scalars().all())

    # --- Roles ---

    async def read_role(self, role_id: int) -> Optional[Role]:
        try:
            result = await self.db.execute(select(Role).where(Role.id == role_id))
        except SQLAlchemyError as exc:
            await self._fail("read_role", exc)
        return result.scalar_one_or_none()

    async def read_role_by_name(self, name: str) -> Optional[Role]:
        try:
            result = await self.db.execute(select(Role).where(Role.name == name))
        except SQLAlchemyError as exc:
            await self._fail("read_role_by_name", exc)
        return result.scalar_one_or_none()

    async def list_roles(self) -> List[Role]:
        try:
            result = await self.db.execute(select(Role).order_by(Role.name))
        except SQLAlchemyError as exc:
            await self._fail("list_roles", exc)
        return list(result.scalars().all())

    async def write_role(self, role: Role) -> Role:
        """Insert or update a role and commit."""
        try:
            self.db.add(role)
            await self.db.commit()
            await self.db.refresh(role)
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(f"Role '{role.name}' already exists", details={"name": role.name}) from exc
        except SQLAlchemyError as exc:
            await self._fail("write_role", exc)
        return role

    async def delete_role(self, role_id: int) -> bool:
        try:
            await self.db.execute(delete(RoleAssignment).where(RoleAssignment.role_id == role_id))
            result = await self.db.execute(delete(Role).where(Role.id == role_id))
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self._fail("delete_role", exc)
        return result.rowcount > 0

    async def assign_role(self, user_id: int, role_id: int, assigned_by: Optional[int] = None) -> RoleAssignment:
        """Give ``user_id`` the role, replacing any previous assignment."""
        try:
            result = await self.db.execute(select(RoleAssignment).where(RoleAssignment.user_id == user_id))
            assignment = result.scalar_one_or_none()
            if assignment is None:
                assignment = RoleAssignment(user_id=user_id, role_id=role_id, assigned_by=assigned_by)
                self.db.add(assignment)
            else:
                assignment.role_id = role_id
                assignment.assigned_by = assigned_by
            await self.db.commit()
            await self.db.refresh(assignment)
        except SQLAlchemyError as exc:
            await self._fail("assign_role", exc)
        return assignment

    async def read_user_role(self, user_id: int) -> Optional[Role]:
        query = (
            select(Role)
            .join(RoleAssignment, RoleAssignment.role_id == Role.id)
            .where(RoleAssignment.user_id == user_id)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as exc:
            await self._fail("read_user_role", exc)
        return result.scalar_one_or_none()
