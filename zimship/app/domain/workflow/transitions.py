"""
Shipment Status Transitions.

Static transition table for the shipment lifecycle plus the display
metadata used by dashboards. Everything here is pure and immutable, so it
is safe to share across requests.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Union

from zimship.app.models.shipment_enums import ShipmentStatus, TERMINAL_STATUSES

S = ShipmentStatus

STATUS_TRANSITIONS = MappingProxyType({
    S.BOOKING_CONFIRMED: frozenset({S.READY_FOR_PICKUP, S.CANCELLED}),
    S.READY_FOR_PICKUP: frozenset({S.PROCESSING_UK, S.CANCELLED}),
    S.PROCESSING_UK: frozenset({S.IN_TRANSIT, S.CUSTOMS_CLEARANCE, S.CANCELLED}),
    S.IN_TRANSIT: frozenset({S.CUSTOMS_CLEARANCE, S.CANCELLED}),
    S.CUSTOMS_CLEARANCE: frozenset({S.PROCESSING_ZW, S.CANCELLED}),
    S.PROCESSING_ZW: frozenset({S.OUT_FOR_DELIVERY, S.CANCELLED}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
})

StatusLike = Union[ShipmentStatus, str]


def allowed_next_statuses(current: StatusLike) -> FrozenSet[ShipmentStatus]:
    """
    Statuses reachable in one step from ``current``.

    Unknown statuses get no forward transitions.
    """
    status = ShipmentStatus.parse(current)
    if status is None:
        return frozenset()
    return STATUS_TRANSITIONS.get(status, frozenset())


def is_transition_allowed(current: StatusLike, next_status: StatusLike) -> bool:
    """True iff ``next_status`` is an exact member of ``allowed_next_statuses(current)``."""
    target = ShipmentStatus.parse(next_status)
    if target is None:
        return False
    return target in allowed_next_statuses(current)


def is_terminal(status: StatusLike) -> bool:
    return ShipmentStatus.parse(status) in TERMINAL_STATUSES


@dataclass(frozen=True)
class StatusBadge:
    label: str
    color_class: str
    icon: str


NEUTRAL_BADGE_COLOR = "bg-gray-100 text-gray-800"
NEUTRAL_BADGE_ICON = "circle-help"

STATUS_BADGES = MappingProxyType({
    S.BOOKING_CONFIRMED: StatusBadge("Booking Confirmed", "bg-blue-100 text-blue-800", "clipboard-check"),
    S.READY_FOR_PICKUP: StatusBadge("Ready for Pickup", "bg-yellow-100 text-yellow-800", "package"),
    S.PROCESSING_UK: StatusBadge("UK Warehouse", "bg-purple-100 text-purple-800", "warehouse"),
    S.IN_TRANSIT: StatusBadge("In Transit", "bg-sky-100 text-sky-800", "plane"),
    S.CUSTOMS_CLEARANCE: StatusBadge("Customs", "bg-orange-100 text-orange-800", "file-check"),
    S.PROCESSING_ZW: StatusBadge("ZW Warehouse", "bg-indigo-100 text-indigo-800", "warehouse"),
    S.OUT_FOR_DELIVERY: StatusBadge("Out for Delivery", "bg-cyan-100 text-cyan-800", "truck"),
    S.DELIVERED: StatusBadge("Delivered", "bg-green-100 text-green-800", "check-circle"),
    S.CANCELLED: StatusBadge("Cancelled", "bg-red-100 text-red-800", "x-circle"),
})


def status_badge(status: StatusLike) -> StatusBadge:
    """
    Display metadata for a status.

    Unrecognised statuses keep their raw text and get a neutral gray badge.
    """
    known = ShipmentStatus.parse(status)
    if known is None:
        label = status.value if isinstance(status, ShipmentStatus) else str(status)
        return StatusBadge(label, NEUTRAL_BADGE_COLOR, NEUTRAL_BADGE_ICON)
    return STATUS_BADGES[known]
