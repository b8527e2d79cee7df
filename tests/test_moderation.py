from beanie import PydanticObjectId
import pytest

from app.exceptions import AuthorizationError, ValidationError
from app.models.blog import Blog
from app.models.enums import BlogStatus, UserRole, UserStatus
from app.models.user import User
from app.services import moderation


def make_actor(role=UserRole.USER) -> User:
    return User(
        id=PydanticObjectId(),
        username=f"{role.value}-{PydanticObjectId()}",
        email="someone@example.com",
        password_hash="x",
        role=role,
        status=UserStatus.ACTIVE,
    )


def make_blog(owner: User, status=BlogStatus.PENDING, **fields) -> Blog:
    return Blog(
        id=PydanticObjectId(),
        title="Title",
        slug="title",
        user_id=owner.id,
        category_id=PydanticObjectId(),
        status=status,
        **fields,
    )


@pytest.fixture
def admin_actor():
    return make_actor(UserRole.ADMIN)


@pytest.fixture
def owner():
    return make_actor()


def test_initial_status_for_admin_is_published(admin_actor):
    blog = make_blog(admin_actor)
    moderation.initial_status(blog, admin_actor)
    assert blog.status == BlogStatus.PUBLISHED
    assert blog.approved_at is not None
    assert blog.approved_by == admin_actor.id


def test_initial_status_for_user_is_pending_without_flags(owner):
    blog = make_blog(owner, status=BlogStatus.PUBLISHED, is_featured=True, is_hot=True)
    moderation.initial_status(blog, owner)
    assert blog.status == BlogStatus.PENDING
    assert (blog.is_featured, blog.is_hot, blog.is_popular) == (False, False, False)
    assert blog.approved_at is None


def test_approve_defaults_flags_to_false(admin_actor, owner):
    blog = make_blog(owner, rejection_reason="old", rejected_by=admin_actor.id)
    moderation.approve(blog, admin_actor)
    assert blog.status == BlogStatus.PUBLISHED
    assert blog.is_featured is False
    assert blog.rejection_reason is None
    assert blog.rejected_by is None


def test_approve_published_blog_fails(admin_actor, owner):
    blog = make_blog(owner, status=BlogStatus.PUBLISHED)
    with pytest.raises(ValidationError):
        moderation.approve(blog, admin_actor)


def test_non_admin_cannot_approve(owner):
    blog = make_blog(owner)
    with pytest.raises(AuthorizationError):
        moderation.approve(blog, owner)


def test_reject_sets_metadata_and_clears_approval(admin_actor, owner):
    blog = make_blog(owner, approved_by=admin_actor.id)
    moderation.reject(blog, admin_actor, "  Needs sources ")
    assert blog.status == BlogStatus.REJECTED
    assert blog.rejection_reason == "Needs sources"
    assert blog.rejected_at is not None
    assert blog.approved_by is None


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_reject_requires_reason(admin_actor, owner, reason):
    with pytest.raises(ValidationError):
        moderation.reject(make_blog(owner), admin_actor, reason)


def test_reapproval_moves_rejected_to_pending(admin_actor, owner):
    blog = make_blog(owner)
    moderation.reject(blog, admin_actor, "Too short")
    moderation.request_reapproval(blog, owner)
    assert blog.status == BlogStatus.PENDING
    assert blog.rejection_reason is None
    assert blog.rejected_at is None


@pytest.mark.parametrize("status", [BlogStatus.PENDING, BlogStatus.PUBLISHED])
def test_reapproval_only_from_rejected(owner, status):
    with pytest.raises(ValidationError):
        moderation.request_reapproval(make_blog(owner, status=status), owner)


def test_reapproval_by_someone_else_is_forbidden(admin_actor, owner):
    blog = make_blog(owner)
    moderation.reject(blog, admin_actor, "Too short")
    with pytest.raises(AuthorizationError):
        moderation.request_reapproval(blog, make_actor())


def test_owner_edit_resets_to_pending(admin_actor, owner):
    blog = make_blog(owner, is_featured=True)
    moderation.reject(blog, admin_actor, "Typos")
    moderation.apply_owner_edit(blog, owner)
    assert blog.status == BlogStatus.PENDING
    assert blog.is_featured is False
    assert blog.rejection_reason is None


def test_owner_edit_of_published_blog_is_forbidden(owner):
    blog = make_blog(owner, status=BlogStatus.PUBLISHED)
    with pytest.raises(AuthorizationError):
        moderation.apply_owner_edit(blog, owner)


def test_admin_edit_keeps_status(admin_actor, owner):
    blog = make_blog(owner, status=BlogStatus.PUBLISHED, is_hot=True)
    moderation.apply_owner_edit(blog, admin_actor)
    assert blog.status == BlogStatus.PUBLISHED
    assert blog.is_hot is True


def test_admin_status_to_draft_clears_decisions(admin_actor, owner):
    blog = make_blog(owner)
    moderation.approve(blog, admin_actor)
    moderation.apply_admin_status(blog, admin_actor, BlogStatus.DRAFT)
    assert blog.status == BlogStatus.DRAFT
    assert blog.approved_at is None


def test_admin_status_rejected_needs_reason(admin_actor, owner):
    with pytest.raises(ValidationError):
        moderation.apply_admin_status(make_blog(owner), admin_actor, BlogStatus.REJECTED)


def test_only_admin_sets_promotion_flags(admin_actor, owner):
    blog = make_blog(owner)
    with pytest.raises(AuthorizationError):
        moderation.apply_promotion_flags(blog, owner, is_featured=True)
    moderation.apply_promotion_flags(blog, admin_actor, is_featured=True)
    assert blog.is_featured is True
    assert blog.is_hot is False
