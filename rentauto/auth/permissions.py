# rentauto/auth/permissions.py
# Role based access matrix. Permissions are "resource:action" strings.

from typing import FrozenSet, Iterable, Optional
from fastapi import HTTPException, status
from rentauto.core.config import settings
from rentauto.models.shared.enums import UserRole
import logging

logger = logging.getLogger(__name__)


def _grant(resource: str, *actions: str) -> FrozenSet[str]:
    return frozenset(f"{resource}:{action}" for action in actions)


# Collection listings and statistics: any authenticated user
READ_ONLY = (
    _grant("vehicle", "list", "read")
    | _grant("customer", "list")
    | _grant("rental", "list")
    | _grant("maintenance", "list")
    | _grant("report", "read")
)

FLEET_MANAGER = (
    READ_ONLY
    | _grant("vehicle", "create", "update", "delete")
    | _grant("customer", "read", "validate", "create", "update")
    | _grant("rental", "read", "create", "update", "confirm", "start", "complete", "cancel")
    | _grant("maintenance", "read", "create", "update", "start", "complete", "cancel")
)

# Routes that historically shipped with their role check disabled. While
# STRICT_ROLE_POLICY is off every authenticated role keeps this access.
RELAXED = (
    _grant("customer", "read", "validate", "create", "update", "delete")
    | _grant("rental", "read", "create", "update", "confirm", "start", "complete", "cancel")
    | _grant("maintenance", "read", "create", "update", "start", "complete", "cancel", "delete")
)

ROLE_PERMISSIONS = {
    UserRole.ADMIN.value: frozenset({"system:admin"}),
    UserRole.FLEET_MANAGER.value: FLEET_MANAGER,
    UserRole.CUSTOMER.value: READ_ONLY,
}


def permissions_for_role(role: str, strict: Optional[bool] = None) -> FrozenSet[str]:
    """Resolve the effective permission set for a role"""
    if strict is None:
        strict = settings.STRICT_ROLE_POLICY
    granted = ROLE_PERMISSIONS.get(role, frozenset())
    if not strict:
        granted = granted | RELAXED
    return granted


class PermissionChecker:
    """
    Check what a role may do
    """

    def __init__(self, role: str, strict: Optional[bool] = None):
        self.role = role
        self.permissions = permissions_for_role(role, strict)
        logger.debug(f"PermissionChecker initialized for role {role} with {len(self.permissions)} permissions")

    def can(self, resource: str, action: str) -> bool:
        """
        Check if role can perform action on resource

        Examples:
            can("rental", "start")
        """
        permission_key = f"{resource}:{action}"
        if permission_key in self.permissions:
            return True

        # Check for system admin (full access)
        if "system:admin" in self.permissions:
            logger.debug(f"Permission granted: {permission_key} (via system:admin)")
            return True

        logger.debug(f"Permission denied: {permission_key} for role {self.role}")
        return False

    def cannot(self, resource: str, action: str) -> bool:
        return not self.can(resource, action)

    def require(self, resource: str, action: str, custom_message: Optional[str] = None):
        """
        Require permission or raise HTTPException
        """
        if self.cannot(resource, action):
            message = custom_message or f"Insufficient permissions to {action} {resource}"
            logger.warning(f"Permission check failed for role {self.role}: {message}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=message
            )

    def has_any(self, *permission_tuples) -> bool:
        """
        Check if role has any of the given permissions (OR logic)
        """
        return any(self.can(resource, action) for resource, action in permission_tuples)

    def has_all(self, *permission_tuples) -> bool:
        """
        Check if role has all of the given permissions (AND logic)
        """
        return all(self.can(resource, action) for resource, action in permission_tuples)

    def missing(self, permission_tuples: Iterable[tuple]) -> list:
        return [f"{r}:{a}" for r, a in permission_tuples if self.cannot(r, a)]

