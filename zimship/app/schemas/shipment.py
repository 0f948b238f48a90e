"""
Shipment Pydantic schemas.

Defines request and response models for shipments and status workflow.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any
from zimship.app.models.shipment_enums import ShipmentStatus


class ShipmentCreate(BaseModel):
    """Schema for booking a new shipment."""
    origin: str = Field(..., min_length=1, max_length=255, description="Collection location (UK)")
    destination: str = Field(..., min_length=1, max_length=255, description="Delivery location (ZW)")
    user_id: Optional[int] = Field(None, description="Customer account ID")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Sender, recipient and collection details")


class StatusBadgeResponse(BaseModel):
    label: str
    color_class: str
    icon: str


class ShipmentResponse(BaseModel):
    """Schema for shipment response."""
    id: int
    tracking_number: str
    user_id: Optional[int]
    origin: str
    destination: str
    status: str
    metadata_payload: Optional[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TrackingResponse(BaseModel):
    """Public tracking view; route and customer details are left out."""
    tracking_number: str
    status: str
    badge: StatusBadgeResponse
    updated_at: datetime


class ShipmentListResponse(BaseModel):
    """Schema for paginated shipment list."""
    shipments: List[ShipmentResponse]
    total: int
    page: int
    page_size: int


class StatusUpdateRequest(BaseModel):
    """
    Schema for a status change.

    ``status`` is kept as a plain string so non-canonical values reach the
    workflow and are rejected as invalid transitions.
    """
    status: str = Field(..., min_length=1, max_length=64)
    notes: Optional[str] = Field(None, max_length=1000, description="Note about this status change")


class StatusTransitionResponse(BaseModel):
    shipment_id: int
    previous_status: str
    new_status: ShipmentStatus
    updated_at: datetime
    badge: StatusBadgeResponse


class NextStatusesResponse(BaseModel):
    shipment_id: int
    current_status: str
    next_statuses: List[ShipmentStatus]


class StatusOption(BaseModel):
    status: ShipmentStatus
    badge: StatusBadgeResponse
    next_statuses: List[ShipmentStatus]
    is_terminal: bool


class StatusHistoryResponse(BaseModel):
    id: int
    shipment_id: int
    previous_status: str
    new_status: str
    changed_by: Optional[int]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
