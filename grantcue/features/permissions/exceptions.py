# grantcue/features/permissions/exceptions.py
from fastapi import HTTPException, status


# Authentication & Authorization Exceptions
class InvalidTokenError(HTTPException):
    def __init__(self, message: str = "Missing or invalid token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedError(HTTPException):
    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


class NotOrganizationMemberError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this organization",
        )


# Resource Not Found Exceptions
class OrganizationNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found"
        )


class RoleNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")


class AssignmentNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail="Role assignment not found"
        )


# Validation / Conflict Exceptions
class InvalidRoleDataError(HTTPException):
    def __init__(self, message: str = "Invalid role data") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class SystemRoleImmutableError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="System roles cannot be modified or deleted",
        )


class RoleConflictError(HTTPException):
    def __init__(self, message: str = "Role with this name already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)
