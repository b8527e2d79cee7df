"""
Who may do what with a blog.

Every function here is pure and total: a missing actor (anonymous request),
a missing blog, or an actor whose account is not active yields ``False``.
Services call the relevant predicate before any mutation and turn a denial
into ``AuthorizationError`` (or ``NotFoundError`` for reads).
"""

from typing import Any, Optional

from ..models.enums import BlogStatus, UserRole, UserStatus

OWNER_DELETABLE_STATUSES = (BlogStatus.PENDING, BlogStatus.REJECTED)


def _is_active(actor: Any) -> bool:
    return actor is not None and getattr(actor, "status", None) == UserStatus.ACTIVE


def is_admin(actor: Any) -> bool:
    return _is_active(actor) and getattr(actor, "role", None) == UserRole.ADMIN


def is_owner(actor: Any, blog: Any) -> bool:
    if not _is_active(actor) or blog is None:
        return False
    actor_id = getattr(actor, "id", None)
    owner_id = getattr(blog, "user_id", None)
    if actor_id is None or owner_id is None:
        return False
    return str(actor_id) == str(owner_id)


def can_view(actor: Optional[Any], blog: Optional[Any]) -> bool:
    if blog is None:
        return False
    if is_admin(actor):
        return True
    if getattr(blog, "is_deleted", False):
        return False
    if blog.status == BlogStatus.PUBLISHED:
        return True
    return is_owner(actor, blog)


def can_edit(actor: Optional[Any], blog: Optional[Any]) -> bool:
    if blog is None:
        return False
    if is_admin(actor):
        return True
    return is_owner(actor, blog) and blog.status != BlogStatus.PUBLISHED


def can_delete(actor: Optional[Any], blog: Optional[Any]) -> bool:
    if blog is None:
        return False
    if is_admin(actor):
        return True
    return is_owner(actor, blog) and blog.status in OWNER_DELETABLE_STATUSES


def can_set_promotion_flags(actor: Optional[Any]) -> bool:
    return is_admin(actor)


def can_change_status_directly(actor: Optional[Any]) -> bool:
    return is_admin(actor)
