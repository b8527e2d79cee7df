"""
Blog moderation state machine.

States: draft, pending, published, rejected. Each transition checks the
actor against :mod:`blog_policy` first, then mutates the blog in memory.
Persisting the result is the caller's job, so a failed check never leaves a
half-written document behind.

    pending   --approve (admin)-->           published
    pending   --reject (admin)-->            rejected
    rejected  --request re-approval (owner)--> pending
    pending/rejected --owner edit-->         pending
    any       --admin edit with status-->    that status
"""

from datetime import datetime, timezone
from typing import Optional

from ..exceptions import AuthorizationError, ValidationError
from ..models.blog import Blog
from ..models.enums import BlogStatus
from ..models.user import User
from . import blog_policy


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _mark_published(blog: Blog, actor: User):
    blog.status = BlogStatus.PUBLISHED
    blog.approved_at = _now()
    blog.approved_by = actor.id
    blog.clear_rejection()


def _mark_rejected(blog: Blog, actor: User, reason: str):
    blog.status = BlogStatus.REJECTED
    blog.rejected_at = _now()
    blog.rejected_by = actor.id
    blog.rejection_reason = reason
    blog.clear_approval()


def initial_status(blog: Blog, actor: User):
    """Admins publish straight away; everybody else waits for review"""
    if blog_policy.can_change_status_directly(actor):
        _mark_published(blog, actor)
    else:
        blog.status = BlogStatus.PENDING
        blog.clear_approval()
        blog.clear_rejection()
        blog.reset_promotion_flags()


def approve(
    blog: Blog,
    actor: User,
    is_featured: bool = False,
    is_hot: bool = False,
    is_popular: bool = False,
):
    if not blog_policy.can_change_status_directly(actor):
        raise AuthorizationError("Admin access required")
    if blog.status == BlogStatus.PUBLISHED:
        raise ValidationError("Blog is already published")

    _mark_published(blog, actor)
    blog.is_featured = is_featured
    blog.is_hot = is_hot
    blog.is_popular = is_popular


def reject(blog: Blog, actor: User, reason: Optional[str]):
    if not blog_policy.can_change_status_directly(actor):
        raise AuthorizationError("Admin access required")
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required")
    if blog.status == BlogStatus.PUBLISHED:
        raise ValidationError("Cannot reject a published blog")

    _mark_rejected(blog, actor, reason.strip())


def request_reapproval(blog: Blog, actor: Optional[User]):
    if not blog_policy.is_owner(actor, blog):
        raise AuthorizationError("You can only request re-approval for your own blogs")
    if blog.status != BlogStatus.REJECTED:
        raise ValidationError("Only rejected blogs can be submitted for re-approval")

    blog.status = BlogStatus.PENDING
    blog.clear_rejection()


def apply_owner_edit(blog: Blog, actor: Optional[User]):
    """A content edit by a non-admin sends the blog back to the review queue"""
    if not blog_policy.can_edit(actor, blog):
        if blog.status == BlogStatus.PUBLISHED and blog_policy.is_owner(actor, blog):
            raise AuthorizationError("Published blogs can only be edited by an admin")
        raise AuthorizationError("Not authorized to update this blog")

    if blog_policy.can_change_status_directly(actor):
        return

    blog.status = BlogStatus.PENDING
    blog.clear_approval()
    blog.clear_rejection()
    blog.reset_promotion_flags()


def apply_admin_status(
    blog: Blog,
    actor: User,
    status: BlogStatus,
    rejection_reason: Optional[str] = None,
):
    """Set any status directly, keeping the decision metadata consistent with it"""
    if not blog_policy.can_change_status_directly(actor):
        raise AuthorizationError("Admin access required")

    if status == BlogStatus.PUBLISHED:
        if blog.status != BlogStatus.PUBLISHED or blog.approved_at is None:
            _mark_published(blog, actor)
        else:
            blog.clear_rejection()
    elif status == BlogStatus.REJECTED:
        reason = (rejection_reason or "").strip() or blog.rejection_reason
        if not reason:
            raise ValidationError("Rejection reason is required")
        _mark_rejected(blog, actor, reason)
    else:
        blog.status = status
        blog.clear_approval()
        blog.clear_rejection()


def apply_promotion_flags(
    blog: Blog,
    actor: User,
    is_featured: Optional[bool] = None,
    is_hot: Optional[bool] = None,
    is_popular: Optional[bool] = None,
):
    if not blog_policy.can_set_promotion_flags(actor):
        raise AuthorizationError("Only admins can set promotion flags")
    if is_featured is not None:
        blog.is_featured = is_featured
    if is_hot is not None:
        blog.is_hot = is_hot
    if is_popular is not None:
        blog.is_popular = is_popular
