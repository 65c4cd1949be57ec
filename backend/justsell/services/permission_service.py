# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create audit trail.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and inactive users have no permissions
- Log denials only: permission grants are not logged
- Static table: role -> permissions lives in justsell.permissions.roles
"""

from ..extensions import db
from ..errors import PermissionDeniedError
from ..models import User, SecurityEvent
from ..permissions import DEFAULT_ROLE_PERMISSIONS
from justsell.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    store_id: int | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCESS
    - LOGOUT
    - AGE_VERIFICATION_OVERRIDE
    """
    event = SecurityEvent(
        user_id=user_id,
        store_id=store_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def get_user_permissions(user: User) -> frozenset[str]:
    """Permission codes granted by the user's role."""
    if user is None or not user.is_active:
        return frozenset()
    return DEFAULT_ROLE_PERMISSIONS.get(user.role, frozenset())


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are written to security_events.

    Usage:
        require_permission(g.current_user, "CREATE_TRANSACTION", resource="/api/transactions")
    """
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        store_id=user.store_id if user else None,
    )
    raise PermissionDeniedError(
        f"Permission denied: {permission_code}",
        details={"required_permission": permission_code, "role": user.role if user else None},
    )
