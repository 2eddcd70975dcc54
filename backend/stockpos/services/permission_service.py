# Overview: Service-layer operations for permission checks.

"""
Permission Checking

WHY: "Who may do this" is decided in one place, as a function of
(actor, action), instead of role-name comparisons scattered across callers.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown actions are denied
- Inactive users can do nothing
- Denials are logged; grants are not
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import User
from ..permissions import ACTION_DEFINITIONS, ROLE_CAPABILITIES

logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


class ActorNotFound(PermissionDeniedError):
    """Raised when the acting user does not exist or is deactivated."""
    pass


def require_actor(actor_id: int | None) -> User:
    if actor_id is None:
        raise ActorNotFound("Actor required")
    user = db.session.get(User, actor_id)
    if user is None or not user.is_active:
        raise ActorNotFound(f"User {actor_id} not found or inactive")
    return user


def can(actor: User | None, action: str) -> bool:
    if actor is None or not actor.is_active:
        return False
    if action not in ACTION_DEFINITIONS:
        return False
    return action in ROLE_CAPABILITIES.get(actor.role, frozenset())


def require_permission(actor: User, action: str) -> None:
    if not can(actor, action):
        logger.warning(
            "Permission denied: user=%s role=%s action=%s",
            getattr(actor, "id", None), getattr(actor, "role", None), action,
        )
        raise PermissionDeniedError(f"User lacks permission: {action}")


def get_user_actions(actor: User) -> list[str]:
    """Actions the actor may perform, for UIs that hide unavailable features."""
    return sorted(action for action in ACTION_DEFINITIONS if can(actor, action))
