"""
Tests for ShipmentWorkflowService with an in-memory store.
"""

import logging
from datetime import datetime, timezone

import pytest

from zimship.app.core.exceptions import (
    InvalidTransitionError,
    PersistenceError,
    ResourceNotFoundError,
)
from zimship.app.domain.workflow.workflow_service import ShipmentWorkflowService
from zimship.app.models.notification import NotificationType
from zimship.app.models.shipment_enums import ShipmentStatus


class InMemoryStore:
    """Dict-backed stand-in for SqlAlchemyStore."""

    def __init__(self, statuses=None):
        self.statuses = dict(statuses or {})
        self.history = []
        self.commits = 0
        self.rollbacks = 0

    async def read_shipment_status(self, shipment_id):
        return self.statuses.get(shipment_id)

    async def write_shipment_status(self, shipment_id, status, expected_current=None):
        if shipment_id not in self.statuses:
            return None
        if expected_current is not None and self.statuses[shipment_id] != expected_current:
            return None
        self.statuses[shipment_id] = status.value
        return datetime.now(timezone.utc)

    async def append_status_history(self, shipment_id, previous_status, new_status, changed_by=None, notes=None):
        self.history.append((shipment_id, previous_status, new_status.value, changed_by, notes))

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def store():
    return InMemoryStore({1: "Processing in Warehouse (UK)", 2: "Delivered", 3: "Pending Collection"})


@pytest.fixture
def notifier(mocker):
    notifier = mocker.Mock()
    notifier.notify = mocker.AsyncMock()
    return notifier


@pytest.mark.asyncio
async def test_apply_transition_updates_status(store, notifier):
    service = ShipmentWorkflowService(store, notifier)

    result = await service.apply_transition(1, "In Transit", actor_id=7, notes="Loaded on flight BA65")

    assert result.previous_status == "Processing in Warehouse (UK)"
    assert result.new_status is ShipmentStatus.IN_TRANSIT
    assert result.updated_at is not None
    assert store.statuses[1] == "In Transit"
    assert store.history == [(1, "Processing in Warehouse (UK)", "In Transit", 7, "Loaded on flight BA65")]
    assert store.commits == 1


@pytest.mark.asyncio
async def test_apply_transition_sends_notification(store, notifier):
    service = ShipmentWorkflowService(store, notifier)

    await service.apply_transition(1, ShipmentStatus.CUSTOMS_CLEARANCE)

    notifier.notify.assert_awaited_once()
    event = notifier.notify.await_args.args[0]
    assert event.type == NotificationType.SHIPMENT_UPDATE
    assert event.related_id == 1
    assert event.payload["new_status"] == "Customs Clearance"
    assert event.payload["previous_status"] == "Processing in Warehouse (UK)"


@pytest.mark.asyncio
async def test_skipping_ahead_is_rejected(store, notifier):
    service = ShipmentWorkflowService(store, notifier)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await service.apply_transition(1, "Delivered")

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["retryable"] is False
    assert store.statuses[1] == "Processing in Warehouse (UK)"
    assert store.history == []
    notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_terminal_status_cannot_move(store):
    service = ShipmentWorkflowService(store)

    with pytest.raises(InvalidTransitionError):
        await service.apply_transition(2, "Cancelled")
    assert store.statuses[2] == "Delivered"


@pytest.mark.asyncio
async def test_non_canonical_target_is_rejected(store, mocker):
    read = mocker.spy(store, "read_shipment_status")
    service = ShipmentWorkflowService(store)

    with pytest.raises(InvalidTransitionError):
        await service.apply_transition(1, "in transit")

    read.assert_not_called()


@pytest.mark.asyncio
async def test_non_canonical_current_status_is_stuck(store):
    service = ShipmentWorkflowService(store)

    with pytest.raises(InvalidTransitionError):
        await service.apply_transition(3, "Ready for Pickup")
    assert store.statuses[3] == "Pending Collection"


@pytest.mark.asyncio
async def test_missing_shipment(store):
    service = ShipmentWorkflowService(store)

    with pytest.raises(ResourceNotFoundError):
        await service.apply_transition(404, "Cancelled")


@pytest.mark.asyncio
async def test_repeating_a_transition_is_rejected(store):
    service = ShipmentWorkflowService(store)

    await service.apply_transition(1, "In Transit")
    with pytest.raises(InvalidTransitionError):
        await service.apply_transition(1, "In Transit")

    assert store.statuses[1] == "In Transit"
    assert len(store.history) == 1


@pytest.mark.asyncio
async def test_concurrent_change_loses_race(store, mocker):
    """Status changes between the read and the conditional write."""
    original_read = store.read_shipment_status

    async def stale_read(shipment_id):
        current = await original_read(shipment_id)
        store.statuses[shipment_id] = "Cancelled"
        return current

    mocker.patch.object(store, "read_shipment_status", side_effect=stale_read)
    service = ShipmentWorkflowService(store)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await service.apply_transition(1, "In Transit")

    assert "updated by someone else" in exc_info.value.message
    assert store.statuses[1] == "Cancelled"
    assert store.history == []
    assert store.rollbacks == 1
    assert store.commits == 0


@pytest.mark.asyncio
async def test_store_failure_propagates_as_retryable(store, mocker):
    mocker.patch.object(
        store, "write_shipment_status",
        side_effect=PersistenceError("Failed to write shipment status", operation="write_shipment_status")
    )
    service = ShipmentWorkflowService(store)

    with pytest.raises(PersistenceError) as exc_info:
        await service.apply_transition(1, "In Transit")

    assert exc_info.value.status_code == 503
    assert exc_info.value.details["retryable"] is True
    assert store.history == []


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_transition(store, notifier, caplog):
    notifier.notify.side_effect = RuntimeError("notifications table locked")
    service = ShipmentWorkflowService(store, notifier)

    with caplog.at_level(logging.ERROR, logger="zimship"):
        result = await service.apply_transition(1, "Cancelled")

    assert result.new_status is ShipmentStatus.CANCELLED
    assert store.statuses[1] == "Cancelled"
    assert store.commits == 1
    assert "Notification dispatch failed" in caplog.text
