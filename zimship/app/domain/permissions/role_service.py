"""
Role Service (Domain Logic).

Role administration on top of the permission evaluator. Permissions
documents are validated strictly before every write and read leniently,
and protected roles are checked before any delete or rename reaches the
store. Role changes send a best-effort ROLE_UPDATE notification.
"""

import logging
from typing import Any, Dict, Optional

from zimship.app.core.exceptions import (
    ConflictError,
    ProtectedRoleError,
    ResourceNotFoundError,
)
from zimship.app.domain.permissions.evaluator import (
    is_protected_role,
    load_permissions,
    validate_permissions_shape,
)
from zimship.app.models.notification import NotificationType
from zimship.app.models.role import Role
from zimship.app.services.notification_service import NotificationEvent

logger = logging.getLogger("zimship")


def role_is_protected(role: Role) -> bool:
    return is_protected_role(role.name) or bool(role.is_protected)


class RoleService:

    def __init__(self, store, notifier=None):
        self.store = store
        self.notifier = notifier

    async def get_role(self, role_id: int) -> Role:
        role = await self.store.read_role(role_id)
        if role is None:
            raise ResourceNotFoundError("Role", role_id)
        return role

    async def create_role(
        self,
        name: str,
        description: Optional[str] = None,
        permissions: Optional[Dict[str, Any]] = None,
        is_protected: bool = False,
    ) -> Role:
        doc = validate_permissions_shape(permissions)

        if await self.store.read_role_by_name(name) is not None:
            raise ConflictError(f"Role '{name}' already exists", details={"name": name})

        role = Role(
            name=name,
            description=description,
            permissions=doc,
            is_protected=is_protected or is_protected_role(name),
        )
        role = await self.store.write_role(role)
        logger.info("Role created", extra={"role_id": role.id, "role_name": role.name})
        await self._notify("created", role)
        return role

    async def update_role(
        self,
        role_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permissions: Optional[Dict[str, Any]] = None,
        is_protected: Optional[bool] = None,
    ) -> Role:
        """
        Update a role. Only the supplied fields change.

        Renaming a protected role, or clearing the protected flag of a
        built-in protected role, raises ProtectedRoleError.
        """
        role = await self.get_role(role_id)
        doc = validate_permissions_shape(permissions) if permissions is not None else None

        if name is not None and name != role.name:
            if role_is_protected(role):
                raise ProtectedRoleError(role.name, action="rename")
            if await self.store.read_role_by_name(name) is not None:
                raise ConflictError(f"Role '{name}' already exists", details={"name": name})
            role.name = name

        if is_protected is not None:
            if not is_protected and is_protected_role(role.name):
                raise ProtectedRoleError(role.name, action="unprotect")
            role.is_protected = is_protected

        if description is not None:
            role.description = description

        if doc is not None:
            role.permissions = doc

        role = await self.store.write_role(role)
        logger.info("Role updated", extra={"role_id": role.id, "role_name": role.name})
        await self._notify("updated", role)
        return role

    async def delete_role(self, role_id: int) -> Role:
        """
        Delete a role.

        Raises:
            ResourceNotFoundError: unknown role
            ProtectedRoleError: the role is protected; nothing is deleted
        """
        role = await self.get_role(role_id)
        if role_is_protected(role):
            logger.warning("Protected role delete rejected", extra={"role_id": role.id, "role_name": role.name})
            raise ProtectedRoleError(role.name)

        await self.store.delete_role(role_id)
        logger.info("Role deleted", extra={"role_id": role_id, "role_name": role.name})
        await self._notify("deleted", role)
        return role

    async def assign_role(self, user_id: int, role_id: int, assigned_by: Optional[int] = None):
        role = await self.get_role(role_id)
        assignment = await self.store.assign_role(user_id, role_id, assigned_by=assigned_by)
        await self._notify("assigned", role, user_id=user_id)
        return assignment

    async def permissions_for_user(self, user_id: int) -> Dict[str, Any]:
        """Normalised permissions of the user's role; all-false when unassigned."""
        role = await self.store.read_user_role(user_id)
        if role is None:
            return load_permissions(None)
        return load_permissions(role.permissions, role.name)

    async def _notify(self, change: str, role: Role, user_id: Optional[int] = None):
        if self.notifier is None:
            return
        if user_id is None:
            message = f"Role '{role.name}' was {change}"
        else:
            message = f"You were assigned the role '{role.name}'"
        event = NotificationEvent(
            type=NotificationType.ROLE_UPDATE,
            related_id=role.id,
            title="Role Updated",
            message=message,
            payload={"role_name": role.name, "change": change},
            user_id=user_id,
        )
        try:
            await self.notifier.notify(event)
        except Exception:
            logger.exception(
                "Notification dispatch failed",
                extra={"role_id": role.id, "change": change}
            )
