"""
Shipment API Endpoints.

Booking, lookup, and status workflow for shipments. Status changes go
through the shipment workflow service; the transition table is the only
source of allowed next statuses.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from zimship.app.core.exceptions import ResourceNotFoundError
from zimship.app.core.guards import require_permission
from zimship.app.db.session import get_db
from zimship.app.domain.workflow.transitions import allowed_next_statuses, is_terminal, status_badge
from zimship.app.domain.workflow.workflow_service import ShipmentWorkflowService
from zimship.app.models.shipment_enums import ShipmentStatus, STATUS_GROUPS
from zimship.app.schemas.shipment import (
    ShipmentCreate, ShipmentResponse, ShipmentListResponse,
    StatusUpdateRequest, StatusTransitionResponse, NextStatusesResponse,
    StatusOption, StatusBadgeResponse, StatusHistoryResponse, TrackingResponse,
)
from zimship.app.services.audit import log_event, AuditAction
from zimship.app.services.notification_service import NotificationService
from zimship.app.services.shipment_store import SqlAlchemyStore

router = APIRouter(prefix="/shipments", tags=["Shipments"])


def _badge(value) -> StatusBadgeResponse:
    badge = status_badge(value)
    return StatusBadgeResponse(label=badge.label, color_class=badge.color_class, icon=badge.icon)


def _sorted(statuses) -> List[ShipmentStatus]:
    order = list(ShipmentStatus)
    return sorted(statuses, key=order.index)


@router.get("/statuses", response_model=List[StatusOption])
async def list_statuses():
    """
    Canonical shipment statuses with display badges and allowed next statuses.

    Used to populate status filters and selectors.
    """
    return [
        StatusOption(
            status=s,
            badge=_badge(s),
            next_statuses=_sorted(allowed_next_statuses(s)),
            is_terminal=is_terminal(s),
        )
        for s in ShipmentStatus
    ]


@router.get("/track/{tracking_number}", response_model=TrackingResponse)
async def track_shipment(
    tracking_number: str = Path(..., description="Tracking number, e.g. ZS-7K2M9QXA"),
    db: AsyncSession = Depends(get_db)
):
    """Public tracking lookup: current status and badge only."""
    shipment = await SqlAlchemyStore(db).read_shipment_by_tracking_number(tracking_number)
    if not shipment:
        raise ResourceNotFoundError("Shipment", tracking_number)

    return TrackingResponse(
        tracking_number=shipment.tracking_number,
        status=shipment.status,
        badge=_badge(shipment.status),
        updated_at=shipment.updated_at,
    )


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(
    shipment_data: ShipmentCreate,
    current_user: dict = Depends(require_permission("shipments", "write")),
    db: AsyncSession = Depends(get_db)
):
    """
    Book a new shipment.

    New shipments always start at 'Booking Confirmed' with a generated
    tracking number.
    """
    store = SqlAlchemyStore(db)
    shipment = await store.create_shipment(
        origin=shipment_data.origin,
        destination=shipment_data.destination,
        user_id=shipment_data.user_id,
        metadata=shipment_data.metadata,
    )

    await log_event(
        db=db,
        action=AuditAction.SHIPMENT_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        entity_type="shipment",
        entity_id=shipment.id,
        metadata={"tracking_number": shipment.tracking_number}
    )

    return ShipmentResponse.model_validate(shipment)


@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    status_filter: Optional[str] = Query(None, alias="status", description="Exact canonical status"),
    group: Optional[str] = Query(None, description="Status group: pending_collection, in_transit or terminal"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(require_permission("shipments", "read")),
    db: AsyncSession = Depends(get_db)
):
    """
    List shipments, optionally filtered by status and/or status group.

    The status filter must be one of the canonical statuses.
    """
    filter_status = None
    if status_filter is not None:
        filter_status = ShipmentStatus.parse(status_filter)
        if filter_status is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown shipment status '{status_filter}'"
            )

    group_statuses = None
    if group is not None:
        group_statuses = STATUS_GROUPS.get(group)
        if group_statuses is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown status group '{group}'"
            )

    shipments, total = await SqlAlchemyStore(db).list_shipments(
        status=filter_status, page=page, page_size=page_size, statuses=group_statuses
    )

    return ShipmentListResponse(
        shipments=[ShipmentResponse.model_validate(s) for s in shipments],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_permission("shipments", "read")),
    db: AsyncSession = Depends(get_db)
):
    shipment = await SqlAlchemyStore(db).read_shipment(shipment_id)
    if not shipment:
        raise ResourceNotFoundError("Shipment", shipment_id)
    return ShipmentResponse.model_validate(shipment)


@router.get("/{shipment_id}/next-statuses", response_model=NextStatusesResponse)
async def get_next_statuses(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_permission("shipments", "read")),
    db: AsyncSession = Depends(get_db)
):
    """Statuses the shipment may move to next (empty once terminal)."""
    store = SqlAlchemyStore(db)
    current = await store.read_shipment_status(shipment_id)
    if current is None:
        raise ResourceNotFoundError("Shipment", shipment_id)

    return NextStatusesResponse(
        shipment_id=shipment_id,
        current_status=current,
        next_statuses=_sorted(allowed_next_statuses(current))
    )


@router.patch("/{shipment_id}/status", response_model=StatusTransitionResponse)
async def update_shipment_status(
    request: StatusUpdateRequest,
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_permission("shipments", "write")),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a shipment to its next status.

    Returns 409 (ERR_WORKFLOW_001) if the workflow does not allow the
    change, 503 (ERR_PERSISTENCE_001) if the store failed.
    """
    service = ShipmentWorkflowService(SqlAlchemyStore(db), NotificationService(db))
    result = await service.apply_transition(
        shipment_id,
        request.status,
        actor_id=current_user["user_id"],
        notes=request.notes,
    )

    await log_event(
        db=db,
        action=AuditAction.SHIPMENT_STATUS_CHANGED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        entity_type="shipment",
        entity_id=shipment_id,
        metadata={
            "previous_status": result.previous_status,
            "new_status": result.new_status.value,
            "notes": request.notes,
        }
    )

    return StatusTransitionResponse(
        shipment_id=result.shipment_id,
        previous_status=result.previous_status,
        new_status=result.new_status,
        updated_at=result.updated_at,
        badge=_badge(result.new_status)
    )


@router.get("/{shipment_id}/history", response_model=List[StatusHistoryResponse])
async def get_status_history(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_permission("shipments", "read")),
    db: AsyncSession = Depends(get_db)
):
    """Accepted status changes, oldest first."""
    store = SqlAlchemyStore(db)
    if await store.read_shipment_status(shipment_id) is None:
        raise ResourceNotFoundError("Shipment", shipment_id)

    history = await store.list_status_history(shipment_id)
    return [StatusHistoryResponse.model_validate(h) for h in history]
