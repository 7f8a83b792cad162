"""
Pydantic schemas for permission management.

Request and response models for the catalog, roles, role assignments,
permission checks and audit logs.
"""
from datetime import datetime
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from grantcue.features.permissions.catalog import is_valid_permission_name, is_valid_role_name
from grantcue.features.permissions.legacy import is_legacy_permission


# ============================================================================
# Permission Schemas
# ============================================================================

class PermissionResponse(BaseModel):
    """Catalog entry."""
    id: str
    name: str
    category: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PermissionCategory(BaseModel):
    """Permissions grouped by category for role editors."""
    category: str
    permissions: List[PermissionResponse] = []


class PermissionGroupResponse(BaseModel):
    """Named bundle of permissions commonly checked together."""
    name: str
    permissions: List[str]


# ============================================================================
# Role Schemas
# ============================================================================

class RoleResponse(BaseModel):
    """Schema for role response."""
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    is_system_role: bool
    organization_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RoleWithPermissions(RoleResponse):
    """Schema for role with permissions."""
    permissions: List[PermissionResponse] = []


class RoleCreate(BaseModel):
    """Schema for creating a custom role in the current organization."""
    name: str = Field(..., min_length=1, max_length=50, description="Slug: lowercase letters and underscores")
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    permission_ids: List[str] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def name_slug(cls, v: str) -> str:
        """Validate role name format."""
        if not is_valid_role_name(v):
            raise ValueError('Role name must contain only lowercase letters and underscores')
        return v


class RoleUpdate(BaseModel):
    """Schema for updating a custom role; the permission list replaces the old one."""
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    permission_ids: List[str] = Field(default_factory=list)


# ============================================================================
# Assignment Schemas
# ============================================================================

class AssignRoleToUser(BaseModel):
    """Assign a role to a user in the current organization."""
    user_id: str = Field(..., description="User ID")
    role_id: str = Field(..., description="Role ID")


class RoleAssignmentResponse(BaseModel):
    id: str
    user_id: str
    role_id: str
    organization_id: str
    assigned_by_id: Optional[str] = None
    assigned_at: datetime
    role: Optional[RoleResponse] = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Permission Check Schemas
# ============================================================================

class PermissionCheckRequest(BaseModel):
    """Fine-grained (``grants:edit``) or legacy (``manage_team``) permission name."""
    permission: str = Field(..., min_length=1, max_length=100)

    @field_validator('permission')
    @classmethod
    def permission_format(cls, v: str) -> str:
        """Accept `resource:action` names and the legacy names only."""
        if not (is_valid_permission_name(v) or is_legacy_permission(v)):
            raise ValueError('Permission must be resource:action or a legacy permission name')
        return v


class PermissionCheckResponse(BaseModel):
    has_permission: bool
    reason: Optional[str] = None


class EffectivePermissionsResponse(BaseModel):
    """The caller's effective permission set in their current organization."""
    user_id: str
    organization_id: Optional[str]
    is_platform_admin: bool
    state: str
    roles: List[RoleResponse] = []
    primary_role: Optional[RoleResponse] = None
    permissions: List[PermissionResponse] = []


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    organization_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    pages: int
