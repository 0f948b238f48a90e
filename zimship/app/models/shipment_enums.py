"""
Shipment Status Enumeration.
"""

import enum
from typing import Optional


class ShipmentStatus(str, enum.Enum):
    """
    Shipment lifecycle status.

    The value doubles as the storage value and the display label, so it is
    compared exactly (case-sensitive).

    Status flow:
        BOOKING_CONFIRMED → READY_FOR_PICKUP → PROCESSING_UK
        → IN_TRANSIT | CUSTOMS_CLEARANCE → PROCESSING_ZW
        → OUT_FOR_DELIVERY → DELIVERED
        Any non-terminal status can transition to CANCELLED
    """
    BOOKING_CONFIRMED = "Booking Confirmed"
    READY_FOR_PICKUP = "Ready for Pickup"
    PROCESSING_UK = "Processing in Warehouse (UK)"
    IN_TRANSIT = "In Transit"
    CUSTOMS_CLEARANCE = "Customs Clearance"
    PROCESSING_ZW = "Processing in Warehouse (ZW)"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value) -> Optional["ShipmentStatus"]:
        """Return the member for an exact canonical value, or None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


INITIAL_STATUS = ShipmentStatus.BOOKING_CONFIRMED

PENDING_COLLECTION_STATUSES = frozenset({
    ShipmentStatus.BOOKING_CONFIRMED,
    ShipmentStatus.READY_FOR_PICKUP,
})

IN_TRANSIT_STATUSES = frozenset({
    ShipmentStatus.PROCESSING_UK,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.CUSTOMS_CLEARANCE,
    ShipmentStatus.PROCESSING_ZW,
    ShipmentStatus.OUT_FOR_DELIVERY,
})

TERMINAL_STATUSES = frozenset({
    ShipmentStatus.DELIVERED,
    ShipmentStatus.CANCELLED,
})

# Dashboard groupings, addressable as ``?group=`` on shipment listings
STATUS_GROUPS = {
    "pending_collection": PENDING_COLLECTION_STATUSES,
    "in_transit": IN_TRANSIT_STATUSES,
    "terminal": TERMINAL_STATUSES,
}
