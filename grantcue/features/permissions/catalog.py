"""
Static permission catalog.

Defines every fine-grained permission, the system roles and the permissions
each system role carries. The database rows seeded by
``scripts.seed_permissions`` are generated from these definitions; at runtime
the resolver reads the rows, never this module.

Permission names follow the pattern ``resource:action``.
"""
import re
from enum import Enum
from typing import NamedTuple


PERMISSION_NAME_PATTERN = re.compile(r"^[a-z_]+:[a-z_]+$")
ROLE_NAME_PATTERN = re.compile(r"^[a-z_]+$")


class PermissionName(str, Enum):
    """All fine-grained permissions available in the system."""

    # Grant permissions
    GRANTS_VIEW = "grants:view"
    GRANTS_CREATE = "grants:create"
    GRANTS_EDIT = "grants:edit"
    GRANTS_DELETE = "grants:delete"
    GRANTS_EXPORT = "grants:export"

    # Task permissions
    TASKS_VIEW = "tasks:view"
    TASKS_CREATE = "tasks:create"
    TASKS_ASSIGN = "tasks:assign"
    TASKS_EDIT = "tasks:edit"
    TASKS_DELETE = "tasks:delete"
    TASKS_COMPLETE = "tasks:complete"

    # Document permissions
    DOCUMENTS_VIEW = "documents:view"
    DOCUMENTS_UPLOAD = "documents:upload"
    DOCUMENTS_EDIT = "documents:edit"
    DOCUMENTS_DELETE = "documents:delete"
    DOCUMENTS_DOWNLOAD = "documents:download"

    # Team permissions
    TEAM_VIEW = "team:view"
    TEAM_INVITE = "team:invite"
    TEAM_REMOVE = "team:remove"
    TEAM_EDIT_ROLES = "team:edit_roles"
    TEAM_VIEW_PERFORMANCE = "team:view_performance"

    # Organization permissions
    ORG_VIEW_SETTINGS = "org:view_settings"
    ORG_EDIT_SETTINGS = "org:edit_settings"
    ORG_EDIT_PROFILE = "org:edit_profile"
    ORG_DELETE = "org:delete"

    # Billing permissions
    BILLING_VIEW = "billing:view"
    BILLING_MANAGE = "billing:manage"
    BILLING_VIEW_INVOICES = "billing:view_invoices"

    # Integration permissions
    INTEGRATIONS_VIEW = "integrations:view"
    INTEGRATIONS_MANAGE = "integrations:manage"
    INTEGRATIONS_CONFIGURE = "integrations:configure"

    # Reports permissions
    REPORTS_VIEW = "reports:view"
    REPORTS_CREATE = "reports:create"
    REPORTS_EXPORT = "reports:export"
    REPORTS_SCHEDULE = "reports:schedule"

    # Workflow permissions
    WORKFLOWS_VIEW = "workflows:view"
    WORKFLOWS_CREATE = "workflows:create"
    WORKFLOWS_EDIT = "workflows:edit"
    WORKFLOWS_DELETE = "workflows:delete"
    WORKFLOWS_APPROVE = "workflows:approve"

    # CRM permissions
    CRM_VIEW = "crm:view"
    CRM_CREATE = "crm:create"
    CRM_EDIT = "crm:edit"
    CRM_DELETE = "crm:delete"

    # Admin permissions
    ADMIN_MANAGE_ROLES = "admin:manage_roles"
    ADMIN_VIEW_AUDIT_LOGS = "admin:view_audit_logs"
    ADMIN_PLATFORM_ACCESS = "admin:platform_access"

    @property
    def resource(self) -> str:
        return self.value.split(":", 1)[0]


class PermissionDefinition(NamedTuple):
    name: PermissionName
    category: str
    description: str


# resource prefix -> catalog category
_CATEGORIES = {
    "grants": "grants",
    "tasks": "tasks",
    "documents": "documents",
    "team": "team",
    "org": "organization",
    "billing": "billing",
    "integrations": "integrations",
    "reports": "reports",
    "workflows": "workflows",
    "crm": "crm",
    "admin": "admin",
}

_DESCRIPTIONS = {
    PermissionName.GRANTS_VIEW: "View grants and grant details",
    PermissionName.GRANTS_CREATE: "Create new grants",
    PermissionName.GRANTS_EDIT: "Edit existing grants",
    PermissionName.GRANTS_DELETE: "Delete grants",
    PermissionName.GRANTS_EXPORT: "Export grant data",
    PermissionName.TASKS_VIEW: "View tasks",
    PermissionName.TASKS_CREATE: "Create new tasks",
    PermissionName.TASKS_ASSIGN: "Assign tasks to team members",
    PermissionName.TASKS_EDIT: "Edit existing tasks",
    PermissionName.TASKS_DELETE: "Delete tasks",
    PermissionName.TASKS_COMPLETE: "Mark tasks as complete",
    PermissionName.DOCUMENTS_VIEW: "View documents",
    PermissionName.DOCUMENTS_UPLOAD: "Upload new documents",
    PermissionName.DOCUMENTS_EDIT: "Edit document metadata",
    PermissionName.DOCUMENTS_DELETE: "Delete documents",
    PermissionName.DOCUMENTS_DOWNLOAD: "Download documents",
    PermissionName.TEAM_VIEW: "View team members",
    PermissionName.TEAM_INVITE: "Invite new team members",
    PermissionName.TEAM_REMOVE: "Remove team members",
    PermissionName.TEAM_EDIT_ROLES: "Modify team member roles",
    PermissionName.TEAM_VIEW_PERFORMANCE: "View team performance metrics",
    PermissionName.ORG_VIEW_SETTINGS: "View organization settings",
    PermissionName.ORG_EDIT_SETTINGS: "Edit organization settings",
    PermissionName.ORG_EDIT_PROFILE: "Edit organization profile",
    PermissionName.ORG_DELETE: "Delete organization",
    PermissionName.BILLING_VIEW: "View billing information",
    PermissionName.BILLING_MANAGE: "Manage billing and subscriptions",
    PermissionName.BILLING_VIEW_INVOICES: "View invoices",
    PermissionName.INTEGRATIONS_VIEW: "View integrations",
    PermissionName.INTEGRATIONS_MANAGE: "Manage integrations (connect/disconnect)",
    PermissionName.INTEGRATIONS_CONFIGURE: "Configure integration settings",
    PermissionName.REPORTS_VIEW: "View reports",
    PermissionName.REPORTS_CREATE: "Create custom reports",
    PermissionName.REPORTS_EXPORT: "Export reports",
    PermissionName.REPORTS_SCHEDULE: "Schedule automated reports",
    PermissionName.WORKFLOWS_VIEW: "View approval workflows",
    PermissionName.WORKFLOWS_CREATE: "Create approval workflows",
    PermissionName.WORKFLOWS_EDIT: "Edit approval workflows",
    PermissionName.WORKFLOWS_DELETE: "Delete approval workflows",
    PermissionName.WORKFLOWS_APPROVE: "Approve workflow requests",
    PermissionName.CRM_VIEW: "View funder CRM data",
    PermissionName.CRM_CREATE: "Create funder records",
    PermissionName.CRM_EDIT: "Edit funder records",
    PermissionName.CRM_DELETE: "Delete funder records",
    PermissionName.ADMIN_MANAGE_ROLES: "Manage custom roles and permissions",
    PermissionName.ADMIN_VIEW_AUDIT_LOGS: "View system audit logs",
    PermissionName.ADMIN_PLATFORM_ACCESS: "Access platform admin features",
}


def category_of(name: PermissionName) -> str:
    return _CATEGORIES[name.resource]


PERMISSION_DEFINITIONS: list[PermissionDefinition] = [
    PermissionDefinition(name, category_of(name), _DESCRIPTIONS[name])
    for name in PermissionName
]


# ============================================================================
# System Roles
# ============================================================================

class SystemRoleName(str, Enum):
    ORG_ADMIN = "org_admin"
    GRANT_CREATOR = "grant_creator"
    GRANT_VIEWER = "grant_viewer"
    TASK_MANAGER = "task_manager"
    BILLING_ADMIN = "billing_admin"
    CONTRIBUTOR = "contributor"
    PLATFORM_ADMIN = "platform_admin"


# Preferred for display when a user holds several roles
PRIMARY_ROLE_NAME = SystemRoleName.ORG_ADMIN.value


class SystemRoleDefinition(NamedTuple):
    name: SystemRoleName
    display_name: str
    description: str
    permissions: frozenset[PermissionName]


P = PermissionName

SYSTEM_ROLE_DEFINITIONS: list[SystemRoleDefinition] = [
    SystemRoleDefinition(
        SystemRoleName.ORG_ADMIN,
        "Organization Admin",
        "Full access to organization settings, team, billing, and all features",
        frozenset(p for p in PermissionName if p is not P.ADMIN_PLATFORM_ACCESS),
    ),
    SystemRoleDefinition(
        SystemRoleName.GRANT_CREATOR,
        "Grant Creator",
        "Can create, edit, and manage grants and related tasks",
        frozenset({
            P.GRANTS_VIEW, P.GRANTS_CREATE, P.GRANTS_EDIT, P.GRANTS_DELETE, P.GRANTS_EXPORT,
            P.TASKS_VIEW, P.TASKS_CREATE, P.TASKS_ASSIGN, P.TASKS_EDIT, P.TASKS_DELETE,
            P.TASKS_COMPLETE,
            P.DOCUMENTS_VIEW, P.DOCUMENTS_UPLOAD, P.DOCUMENTS_EDIT, P.DOCUMENTS_DELETE,
            P.DOCUMENTS_DOWNLOAD,
            P.TEAM_VIEW, P.TEAM_VIEW_PERFORMANCE,
            P.ORG_VIEW_SETTINGS,
            P.REPORTS_VIEW, P.REPORTS_EXPORT,
            P.WORKFLOWS_VIEW, P.WORKFLOWS_APPROVE,
            P.CRM_VIEW, P.CRM_CREATE, P.CRM_EDIT,
        }),
    ),
    SystemRoleDefinition(
        SystemRoleName.GRANT_VIEWER,
        "Grant Viewer",
        "Read-only access to grants and reports",
        frozenset({
            P.GRANTS_VIEW, P.GRANTS_EXPORT,
            P.TASKS_VIEW,
            P.DOCUMENTS_VIEW, P.DOCUMENTS_DOWNLOAD,
            P.TEAM_VIEW,
            P.ORG_VIEW_SETTINGS,
            P.REPORTS_VIEW, P.REPORTS_EXPORT,
            P.WORKFLOWS_VIEW,
            P.CRM_VIEW,
        }),
    ),
    SystemRoleDefinition(
        SystemRoleName.TASK_MANAGER,
        "Task Manager",
        "Can create, assign, and manage tasks",
        frozenset({
            P.GRANTS_VIEW,
            P.TASKS_VIEW, P.TASKS_CREATE, P.TASKS_ASSIGN, P.TASKS_EDIT, P.TASKS_DELETE,
            P.TASKS_COMPLETE,
            P.DOCUMENTS_VIEW, P.DOCUMENTS_UPLOAD, P.DOCUMENTS_DOWNLOAD,
            P.TEAM_VIEW, P.TEAM_VIEW_PERFORMANCE,
            P.ORG_VIEW_SETTINGS,
            P.REPORTS_VIEW,
            P.WORKFLOWS_VIEW,
        }),
    ),
    SystemRoleDefinition(
        SystemRoleName.BILLING_ADMIN,
        "Billing Admin",
        "Manage billing, subscriptions, and view invoices",
        frozenset({
            P.GRANTS_VIEW,
            P.TASKS_VIEW,
            P.TEAM_VIEW,
            P.ORG_VIEW_SETTINGS,
            P.BILLING_VIEW, P.BILLING_MANAGE, P.BILLING_VIEW_INVOICES,
            P.REPORTS_VIEW,
            P.INTEGRATIONS_VIEW,
        }),
    ),
    SystemRoleDefinition(
        SystemRoleName.CONTRIBUTOR,
        "Contributor",
        "Standard team member with grant and task access",
        frozenset({
            P.GRANTS_VIEW, P.GRANTS_CREATE, P.GRANTS_EDIT,
            P.TASKS_VIEW, P.TASKS_CREATE, P.TASKS_EDIT, P.TASKS_COMPLETE,
            P.DOCUMENTS_VIEW, P.DOCUMENTS_UPLOAD, P.DOCUMENTS_DOWNLOAD,
            P.TEAM_VIEW,
            P.ORG_VIEW_SETTINGS,
            P.REPORTS_VIEW,
            P.WORKFLOWS_VIEW,
            P.CRM_VIEW,
        }),
    ),
    SystemRoleDefinition(
        SystemRoleName.PLATFORM_ADMIN,
        "Platform Admin",
        "System-wide administrative access",
        frozenset(PermissionName),
    ),
]

del P


# ============================================================================
# Permission Groups
# Common permission combinations for checking related permissions at once
# ============================================================================

PERMISSION_GROUPS: dict[str, tuple[PermissionName, ...]] = {
    "GRANT_FULL": (
        PermissionName.GRANTS_VIEW, PermissionName.GRANTS_CREATE,
        PermissionName.GRANTS_EDIT, PermissionName.GRANTS_DELETE,
    ),
    "GRANT_EDIT": (
        PermissionName.GRANTS_VIEW, PermissionName.GRANTS_CREATE, PermissionName.GRANTS_EDIT,
    ),
    "GRANT_VIEW": (PermissionName.GRANTS_VIEW,),
    "TASK_FULL": (
        PermissionName.TASKS_VIEW, PermissionName.TASKS_CREATE, PermissionName.TASKS_ASSIGN,
        PermissionName.TASKS_EDIT, PermissionName.TASKS_DELETE,
    ),
    "TASK_MANAGE": (
        PermissionName.TASKS_VIEW, PermissionName.TASKS_CREATE,
        PermissionName.TASKS_ASSIGN, PermissionName.TASKS_EDIT,
    ),
    "TASK_VIEW": (PermissionName.TASKS_VIEW,),
    "TEAM_FULL": (
        PermissionName.TEAM_VIEW, PermissionName.TEAM_INVITE,
        PermissionName.TEAM_REMOVE, PermissionName.TEAM_EDIT_ROLES,
    ),
    "TEAM_MANAGE": (
        PermissionName.TEAM_VIEW, PermissionName.TEAM_INVITE, PermissionName.TEAM_EDIT_ROLES,
    ),
    "TEAM_VIEW": (PermissionName.TEAM_VIEW,),
    "BILLING_FULL": (
        PermissionName.BILLING_VIEW, PermissionName.BILLING_MANAGE,
        PermissionName.BILLING_VIEW_INVOICES,
    ),
    "BILLING_VIEW": (PermissionName.BILLING_VIEW,),
    "ORG_ADMIN": (
        PermissionName.ORG_VIEW_SETTINGS, PermissionName.ORG_EDIT_SETTINGS,
        PermissionName.ORG_EDIT_PROFILE,
    ),
    "ORG_VIEW": (PermissionName.ORG_VIEW_SETTINGS,),
}


def is_valid_permission_name(name: str) -> bool:
    return bool(PERMISSION_NAME_PATTERN.match(name))


def is_valid_role_name(name: str) -> bool:
    return bool(ROLE_NAME_PATTERN.match(name))
