"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from zimship.app.api.v1.endpoints import shipments, roles

router = APIRouter()

# Shipment booking and status workflow
router.include_router(shipments.router)

# Role administration
router.include_router(roles.router)
