"""
Database seeding script for the built-in roles.

Creates the protected Admin, Support and Manager roles.
Run this script after database is set up but before first use.
"""

import asyncio
import logging

from zimship.app.core.observability import configure_logging
from zimship.app.db.session import AsyncSessionLocal, engine, Base
from zimship.app.domain.permissions.role_service import RoleService
from zimship.app.services.shipment_store import SqlAlchemyStore

# Import models to ensure they are registered with Base
from zimship.app.models.role import Role  # noqa: F401
from zimship.app.models.role_assignment import RoleAssignment  # noqa: F401

logger = logging.getLogger("zimship")

BUILTIN_ROLES = [
    {
        "name": "Admin",
        "description": "Full access to all features",
        "permissions": {"admin": True},
    },
    {
        "name": "Manager",
        "description": "Can manage shipments and view reports",
        "permissions": {
            "shipments": {"read": True, "write": True, "delete": True},
            "users": {"read": True},
            "reports": {"read": True, "write": True},
            "support": {"read": True},
        },
    },
    {
        "name": "Support",
        "description": "Can view shipments and help customers",
        "permissions": {
            "shipments": {"read": True, "write": True},
            "users": {"read": True},
            "support": {"read": True, "write": True},
        },
    },
]


async def seed_roles():
    """Create any built-in role that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        store = SqlAlchemyStore(db)
        service = RoleService(store)

        for role_def in BUILTIN_ROLES:
            if await store.read_role_by_name(role_def["name"]) is not None:
                logger.info("Role already exists, skipping", extra={"role_name": role_def["name"]})
                continue
            role = await service.create_role(is_protected=True, **role_def)
            logger.info("Seeded role", extra={"role_id": role.id, "role_name": role.name})


if __name__ == "__main__":
    configure_logging("INFO")
    asyncio.run(seed_roles())
