"""
Shipment database model.

A shipment is a single UK-to-Zimbabwe parcel order tracked from booking
through delivery.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from zimship.app.db.session import Base
from zimship.app.models.shipment_enums import INITIAL_STATUS


class Shipment(Base):
    """
    Shipment model.

    ``status`` is a plain string column so rows written by older booking
    flows with non-canonical values can still be loaded; the workflow
    service only ever writes canonical values.
    """
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    tracking_number = Column(String(32), unique=True, nullable=False, index=True)

    # Ownership (customer account, external)
    user_id = Column(Integer, nullable=True, index=True)

    # Route
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)

    # Status
    status = Column(String(64), default=INITIAL_STATUS.value, nullable=False, index=True)

    # Sender / recipient / collection details
    metadata_payload = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Shipment(id={self.id}, tracking='{self.tracking_number}', status='{self.status}')>"
