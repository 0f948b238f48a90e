"""
Security guards for permission-based access control.

Provides dependencies for protecting endpoints with the role permission
model.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zimship.app.core.dependencies import get_current_user
from zimship.app.core.exceptions import InsufficientPermissionsError
from zimship.app.db.session import get_db
from zimship.app.domain.permissions.evaluator import default_permissions, has_permission
from zimship.app.domain.permissions.role_service import RoleService
from zimship.app.domain.permissions.schema import PermissionSection, section_spec
from zimship.app.services.shipment_store import SqlAlchemyStore


def require_permission(section, action=None):
    """
    Dependency factory for permission-based access control.

    Usage:
        @router.patch("/shipments/{shipment_id}/status")
        async def update_status(
            current_user: dict = Depends(require_permission("shipments", "write"))
        ):
            ...

    A role with the ``admin`` flag passes every check.

    Args:
        section: Permission section to check
        action: Action within the section (omit for boolean sections)

    Returns:
        FastAPI dependency returning the user payload with a ``permissions`` key

    Raises:
        InsufficientPermissionsError (403) if the caller's role lacks the permission
    """
    # Section/action are checked when the route is declared
    spec = section_spec(section)
    if spec is None:
        raise ValueError(f"Unknown permission section: {section!r}")
    has_permission(default_permissions(), spec.section, action)

    async def permission_checker(
        current_user: dict = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> dict:
        permissions = await RoleService(SqlAlchemyStore(db)).permissions_for_user(current_user["user_id"])

        allowed = has_permission(permissions, PermissionSection.ADMIN)
        if not allowed and spec.section is not PermissionSection.ADMIN:
            allowed = has_permission(permissions, spec.section, action)

        if not allowed:
            required = spec.section.value if action is None else f"{spec.section.value}.{getattr(action, 'value', action)}"
            raise InsufficientPermissionsError(
                message=f"Access denied. Required permission: {required}",
                details={"required": required}
            )

        return {**current_user, "permissions": permissions}

    return permission_checker


require_admin = require_permission(PermissionSection.ADMIN)
