"""Read-side view models for blogs.

Nothing in here talks to the database: owners and categories are loaded by
the caller (usually in one batch per page) and handed in.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel

from ..models.blog import Blog
from ..models.category import Category
from ..models.user import User
from . import blog_policy


class CategorySummary(BaseModel):
    id: str
    name: str
    slug: str


class AuthorSummary(BaseModel):
    id: str
    name: str
    username: str
    email: Optional[str] = None
    role: str


class BlogView(BaseModel):
    id: str
    title: str
    slug: str
    description: str
    excerpt: str
    image_url: Optional[str] = None
    status: str

    category: Optional[CategorySummary] = None
    author: Optional[AuthorSummary] = None

    tags: List[str] = []
    keywords: List[str] = []

    views: int = 0
    likes: int = 0
    bookmarks: int = 0
    is_liked: bool = False
    is_bookmarked: bool = False

    is_featured: bool = False
    is_hot: bool = False
    is_popular: bool = False
    read_time: int = 0

    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None

    created_at: datetime
    updated_at: datetime


def summarize_category(category: Optional[Category]) -> Optional[CategorySummary]:
    if category is None:
        return None
    return CategorySummary(id=str(category.id), name=category.name, slug=category.slug)


def summarize_author(
    owner: Optional[User], include_email: bool = True
) -> Optional[AuthorSummary]:
    if owner is None:
        return None
    return AuthorSummary(
        id=str(owner.id),
        name=owner.display_name,
        username=owner.username,
        email=owner.email if include_email else None,
        role=owner.role.value,
    )


def project_blog(
    blog: Blog,
    owner: Optional[User] = None,
    category: Optional[Category] = None,
    viewer: Optional[User] = None,
) -> BlogView:
    viewer_is_admin = blog_policy.is_admin(viewer)
    viewer_id = str(viewer.id) if viewer is not None and viewer.id is not None else None
    # Author e-mail is only shown to admins and to the author
    include_email = viewer_is_admin or (
        owner is not None and viewer_id is not None and viewer_id == str(owner.id)
    )

    liked_by = {str(uid) for uid in blog.liked_by}
    bookmarked_by = {str(uid) for uid in blog.bookmarked_by}

    return BlogView(
        id=str(blog.id),
        title=blog.title,
        slug=blog.slug,
        description=blog.description,
        excerpt=blog.excerpt,
        image_url=blog.image_url,
        status=blog.status.value,
        category=summarize_category(category),
        author=summarize_author(owner, include_email=include_email),
        tags=list(blog.tags),
        keywords=list(blog.keywords),
        views=blog.views,
        likes=max(0, blog.likes),
        bookmarks=max(0, blog.bookmarks),
        is_liked=viewer_id in liked_by if viewer_id else False,
        is_bookmarked=viewer_id in bookmarked_by if viewer_id else False,
        is_featured=blog.is_featured,
        is_hot=blog.is_hot,
        is_popular=blog.is_popular,
        read_time=blog.read_time,
        approved_at=blog.approved_at,
        approved_by=str(blog.approved_by) if viewer_is_admin and blog.approved_by else None,
        rejected_at=blog.rejected_at,
        rejected_by=str(blog.rejected_by) if viewer_is_admin and blog.rejected_by else None,
        rejection_reason=blog.rejection_reason,
        created_at=blog.created_at,
        updated_at=blog.updated_at,
    )


def project_blogs(
    blogs: Iterable[Blog],
    owners: Dict[str, User],
    categories: Dict[str, Category],
    viewer: Optional[User] = None,
) -> List[Dict[str, Any]]:
    """Project a page of blogs into JSON-ready dicts"""
    return [
        project_blog(
            blog,
            owner=owners.get(str(blog.user_id)),
            category=categories.get(str(blog.category_id)),
            viewer=viewer,
        ).model_dump(mode="json")
        for blog in blogs
    ]
