"""
Permission management feature module.

Organization-scoped RBAC: a static permission catalog, system and custom
roles, per-organization role assignments, and a per-identity query façade
(``PermissionContext``) that answers permission checks for route guards.
"""
