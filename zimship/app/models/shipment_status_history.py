"""
Shipment status history model.

One row per accepted status transition.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from zimship.app.db.session import Base


class ShipmentStatusHistory(Base):
    __tablename__ = "shipment_status_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    shipment_id = Column(Integer, ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)

    previous_status = Column(String(64), nullable=False)
    new_status = Column(String(64), nullable=False)

    # Staff member who made the change (None for system actions)
    changed_by = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return (
            f"<ShipmentStatusHistory(shipment={self.shipment_id}, "
            f"'{self.previous_status}' -> '{self.new_status}')>"
        )
