"""
Role Management API Endpoints.

Admin-only role CRUD and assignment with audit logging. Protected roles
(Admin, Support, Manager, or any role flagged is_protected) cannot be
deleted or renamed.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from zimship.app.core.guards import require_admin
from zimship.app.db.session import get_db
from zimship.app.domain.permissions.evaluator import describe_schema, load_permissions
from zimship.app.domain.permissions.role_service import RoleService
from zimship.app.models.role import Role
from zimship.app.schemas.role import (
    RoleCreate, RoleUpdate, RoleResponse, RoleListResponse,
    RoleAssignmentResponse, RoleActionResponse,
)
from zimship.app.services.audit import log_event, AuditAction
from zimship.app.services.notification_service import NotificationService
from zimship.app.services.shipment_store import SqlAlchemyStore

router = APIRouter(prefix="/admin/roles", tags=["Admin - Roles"])


def _role_response(role: Role) -> RoleResponse:
    # Roles saved under an older schema are returned in the current shape
    return RoleResponse(
        id=role.id,
        name=role.name,
        description=role.description,
        permissions=load_permissions(role.permissions, role.name),
        is_protected=bool(role.is_protected),
        created_at=role.created_at,
        updated_at=role.updated_at,
    )


@router.get("/schema")
async def get_permission_schema(admin: dict = Depends(require_admin)):
    """Permission sections, their type, and the actions each one supports."""
    return describe_schema()


@router.get("", response_model=RoleListResponse)
async def list_roles(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    roles = await SqlAlchemyStore(db).list_roles()
    return RoleListResponse(roles=[_role_response(r) for r in roles], total=len(roles))


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a role.

    Missing permission sections default to no access; unknown sections or
    actions are rejected with ERR_SCHEMA_001.
    """
    role = await RoleService(SqlAlchemyStore(db), NotificationService(db)).create_role(
        name=role_data.name,
        description=role_data.description,
        permissions=role_data.permissions,
        is_protected=role_data.is_protected,
    )

    await log_event(
        db=db,
        action=AuditAction.ROLE_CREATED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="role",
        entity_id=role.id,
        metadata={"name": role.name}
    )

    return _role_response(role)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: int = Path(..., description="Role ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    role = await RoleService(SqlAlchemyStore(db)).get_role(role_id)
    return _role_response(role)


@router.patch("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_data: RoleUpdate,
    role_id: int = Path(..., description="Role ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Update a role's name, description, permissions, or protected flag."""
    role = await RoleService(SqlAlchemyStore(db), NotificationService(db)).update_role(
        role_id,
        name=role_data.name,
        description=role_data.description,
        permissions=role_data.permissions,
        is_protected=role_data.is_protected,
    )

    await log_event(
        db=db,
        action=AuditAction.ROLE_UPDATED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="role",
        entity_id=role.id,
        metadata=role_data.model_dump(exclude_none=True)
    )

    return _role_response(role)


@router.delete("/{role_id}", response_model=RoleActionResponse)
async def delete_role(
    role_id: int = Path(..., description="Role ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a role and its user assignments.

    Returns 403 (ERR_ROLE_001) for protected roles.
    """
    role = await RoleService(SqlAlchemyStore(db), NotificationService(db)).delete_role(role_id)

    audit_log = await log_event(
        db=db,
        action=AuditAction.ROLE_DELETED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="role",
        entity_id=role_id,
        metadata={"name": role.name}
    )

    return RoleActionResponse(
        success=True,
        message=f"Role '{role.name}' has been deleted",
        role_id=role_id,
        action=AuditAction.ROLE_DELETED,
        audit_log_id=audit_log.id
    )


@router.put("/{role_id}/users/{user_id}", response_model=RoleAssignmentResponse)
async def assign_role(
    role_id: int = Path(..., description="Role ID"),
    user_id: int = Path(..., description="User ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Assign a role to a user, replacing their previous role."""
    assignment = await RoleService(SqlAlchemyStore(db), NotificationService(db)).assign_role(
        user_id, role_id, assigned_by=admin["user_id"]
    )

    await log_event(
        db=db,
        action=AuditAction.ROLE_ASSIGNED,
        actor_id=admin["user_id"],
        actor_username=admin.get("sub"),
        entity_type="role",
        entity_id=role_id,
        metadata={"user_id": user_id}
    )

    return RoleAssignmentResponse.model_validate(assignment)
