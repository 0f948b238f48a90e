"""
Role Pydantic schemas.

Permissions are accepted as raw documents and normalised by the role
service, so schema violations come back as ERR_SCHEMA_001.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any


class RoleCreate(BaseModel):
    """Schema for creating a role."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: Optional[Dict[str, Any]] = None
    is_protected: bool = False


class RoleUpdate(BaseModel):
    """Schema for updating a role."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: Optional[Dict[str, Any]] = None
    is_protected: Optional[bool] = None


class RoleResponse(BaseModel):
    """Schema for role response."""
    id: int
    name: str
    description: Optional[str]
    permissions: Dict[str, Any]
    is_protected: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RoleListResponse(BaseModel):
    roles: List[RoleResponse]
    total: int


class RoleAssignmentResponse(BaseModel):
    user_id: int
    role_id: int
    assigned_by: Optional[int]
    assigned_at: datetime

    class Config:
        from_attributes = True


class RoleActionResponse(BaseModel):
    """Schema for role admin action response."""
    success: bool
    message: str
    role_id: int
    action: str
    audit_log_id: int
