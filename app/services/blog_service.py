"""
Blog operations: authoring, moderation, engagement and listings.

Every mutation asks :mod:`blog_policy` (directly or through
:mod:`moderation`) before touching the document. Peripheral work (sitemap
refresh, old image cleanup) is queued on ``BackgroundTasks`` so it only runs
after the write committed.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from beanie import PydanticObjectId
from bson import ObjectId
from fastapi import BackgroundTasks, UploadFile
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..exceptions import ConflictError, NotFoundError, ValidationError, AuthorizationError
from ..input_sanitizer import sanitizer
from ..models.admin_action import ActionType
from ..models.blog import Blog
from ..models.category import Category
from ..models.enums import BlogStatus
from ..models.user import User
from ..utils import (
    batch_get,
    create_search_filter,
    duplicate_key_field,
    normalize_terms,
    paginate_query,
    save_document,
    slugify,
    to_query_datetime,
)
from . import blog_policy, moderation
from .admin_service import AdminService
from .projections import project_blog, project_blogs
from .sitemap_service import SitemapService
from .storage import storage_service

logger = logging.getLogger(__name__)

IMAGE_FOLDER = "blogs"
SORTABLE_FIELDS = {"created_at", "updated_at", "approved_at", "title", "views", "likes"}
TRENDING_WINDOW_DAYS = 7
RELATED_LIMIT = 4


class BlogInput(BaseModel):
    """Fields accepted by create and update; ``None`` means 'leave unchanged'"""

    title: Optional[str] = None
    description: Optional[str] = None
    excerpt: Optional[str] = None
    slug: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    keywords: Optional[str] = None

    # Admin only
    status: Optional[BlogStatus] = None
    rejection_reason: Optional[str] = None
    is_featured: Optional[bool] = None
    is_hot: Optional[bool] = None
    is_popular: Optional[bool] = None
    created_at: Optional[datetime] = None


def _object_id(value: Any, detail: str = "Blog not found") -> PydanticObjectId:
    if isinstance(value, ObjectId):
        return PydanticObjectId(value)
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise NotFoundError(detail)
    return PydanticObjectId(value)


def _conflict_from(exc: DuplicateKeyError) -> ConflictError:
    field = duplicate_key_field(exc, ["title", "slug"])
    if field == "slug":
        return ConflictError("Blog with this slug already exists")
    return ConflictError("Blog with this title already exists")


async def _resolve_category(value: Optional[str]) -> Category:
    if not value or not str(value).strip():
        raise ValidationError("Category is required")
    value = str(value).strip()

    category = None
    if ObjectId.is_valid(value):
        category = await Category.get(PydanticObjectId(value))
    if category is None:
        category = await Category.find_one({"slug": value})
    if category is None:
        raise ValidationError("Category not found")
    return category


async def _category_filter(value: Optional[str]) -> Optional[PydanticObjectId]:
    """Listing filters accept a category id or slug"""
    if not value:
        return None
    if ObjectId.is_valid(value):
        return PydanticObjectId(value)
    category = await Category.find_one({"slug": value})
    # Unknown slug: filter on a fresh id so the listing comes back empty
    return category.id if category else PydanticObjectId()


def _sort_args(sort_by: str, order: str) -> Tuple[str, str]:
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by '{sort_by}'")
    return sort_by, "asc" if order == "asc" else "desc"


class BlogService:
    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    @staticmethod
    async def present(blogs: List[Blog], viewer: Optional[User] = None) -> List[Dict[str, Any]]:
        owners = await batch_get(User, [b.user_id for b in blogs])
        categories = await batch_get(Category, [b.category_id for b in blogs])
        return project_blogs(blogs, owners, categories, viewer)

    @staticmethod
    async def present_one(blog: Blog, viewer: Optional[User] = None) -> Dict[str, Any]:
        owner = await User.get(blog.user_id)
        category = await Category.get(blog.category_id)
        return project_blog(blog, owner=owner, category=category, viewer=viewer).model_dump(
            mode="json"
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    async def _load(blog_id: str, include_deleted: bool = False) -> Blog:
        blog = await Blog.get(_object_id(blog_id))
        if blog is None or (blog.is_deleted and not include_deleted):
            raise NotFoundError("Blog not found")
        return blog

    @staticmethod
    async def _load_visible(blog_id: str, actor: Optional[User]) -> Blog:
        """Hidden blogs are reported as missing, not forbidden"""
        blog = await BlogService._load(blog_id)
        if not blog_policy.can_view(actor, blog):
            raise NotFoundError("Blog not found")
        return blog

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_content(blog: Blog, data: BlogInput, creating: bool = False):
        if data.title is not None or creating:
            title = sanitizer.sanitize_text(data.title)
            if not title:
                raise ValidationError("Title is required")
            blog.title = title

        if data.description is not None or creating:
            description = sanitizer.sanitize_html(data.description)
            if not description:
                raise ValidationError("Description is required")
            blog.set_description(description)

        if data.excerpt is not None:
            blog.excerpt = sanitizer.sanitize_text(data.excerpt)

        if data.slug is not None and data.slug.strip():
            blog.slug = slugify(data.slug)
        elif creating:
            blog.slug = slugify(blog.title)
        if not blog.slug:
            raise ValidationError("Slug must contain letters or digits")

        if data.tags is not None:
            blog.tags = normalize_terms(data.tags)
        if data.keywords is not None:
            blog.keywords = normalize_terms(data.keywords)

    @staticmethod
    def _apply_admin_fields(blog: Blog, actor: User, data: BlogInput):
        moderation.apply_promotion_flags(
            blog, actor, data.is_featured, data.is_hot, data.is_popular
        )
        if data.created_at is not None:
            created_at = data.created_at
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            blog.created_at = created_at

    @staticmethod
    def _schedule_sitemap(background_tasks: Optional[BackgroundTasks]):
        if background_tasks is not None:
            background_tasks.add_task(SitemapService.regenerate_and_upload)

    @staticmethod
    async def create_blog(
        actor: User,
        data: BlogInput,
        image: Optional[UploadFile] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Blog:
        category = await _resolve_category(data.category)

        blog = Blog(
            title="",
            slug="",
            user_id=actor.id,
            category_id=category.id,
        )
        BlogService._apply_content(blog, data, creating=True)
        moderation.initial_status(blog, actor)

        if blog_policy.can_set_promotion_flags(actor):
            BlogService._apply_admin_fields(blog, actor, data)

        if image is not None:
            blog.image_url, blog.image_key = await storage_service.upload_form_image(
                image, IMAGE_FOLDER
            )

        try:
            await blog.insert()
        except DuplicateKeyError as e:
            await storage_service.delete_file(blog.image_key)
            raise _conflict_from(e)
        except Exception:
            await storage_service.delete_file(blog.image_key)
            raise

        logger.info(f"Blog '{blog.slug}' created by {actor.email} as {blog.status.value}")
        if blog.status == BlogStatus.PUBLISHED:
            BlogService._schedule_sitemap(background_tasks)
        return blog

    @staticmethod
    async def _save_edit(
        blog: Blog,
        data: BlogInput,
        image: Optional[UploadFile],
        background_tasks: Optional[BackgroundTasks],
    ) -> Blog:
        """Shared tail of every edit path once the state transition is decided"""
        was_published = blog.status == BlogStatus.PUBLISHED

        if data.category is not None:
            blog.category_id = (await _resolve_category(data.category)).id
        BlogService._apply_content(blog, data)

        old_image_key = blog.image_key
        uploaded_key = None
        if image is not None:
            blog.image_url, blog.image_key = await storage_service.upload_form_image(
                image, IMAGE_FOLDER
            )
            uploaded_key = blog.image_key

        blog.update_timestamp()
        try:
            await save_document(blog)
        except DuplicateKeyError as e:
            await storage_service.delete_file(uploaded_key)
            raise _conflict_from(e)
        except Exception:
            await storage_service.delete_file(uploaded_key)
            raise

        if uploaded_key and old_image_key and background_tasks is not None:
            background_tasks.add_task(storage_service.delete_file, old_image_key)
        if blog.status == BlogStatus.PUBLISHED and not was_published:
            BlogService._schedule_sitemap(background_tasks)
        return blog

    @staticmethod
    async def update_blog(
        actor: User,
        blog_id: str,
        data: BlogInput,
        image: Optional[UploadFile] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Blog:
        """Owner or admin edit; a non-admin edit always goes back to review"""
        blog = await BlogService._load_visible(blog_id, actor)
        moderation.apply_owner_edit(blog, actor)

        if blog_policy.can_change_status_directly(actor):
            BlogService._apply_admin_fields(blog, actor, data)
            if data.status is not None:
                moderation.apply_admin_status(blog, actor, data.status, data.rejection_reason)

        blog = await BlogService._save_edit(blog, data, image, background_tasks)
        if blog_policy.is_admin(actor):
            await AdminService.log_admin_action(
                actor, ActionType.UPDATE, "blogs", blog.id, {"status": blog.status.value}
            )
        return blog

    @staticmethod
    async def update_own_blog(
        actor: User,
        blog_id: str,
        data: BlogInput,
        image: Optional[UploadFile] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Blog:
        """Author-only edit path; admin-only fields are ignored here"""
        blog = await BlogService._load_visible(blog_id, actor)
        if not blog_policy.is_owner(actor, blog):
            raise AuthorizationError("Not authorized to update this blog")
        moderation.apply_owner_edit(blog, actor)

        return await BlogService._save_edit(blog, data, image, background_tasks)

    @staticmethod
    async def admin_update_blog(
        admin: User,
        blog_id: str,
        data: BlogInput,
        image: Optional[UploadFile] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Blog:
        blog = await BlogService._load(blog_id)
        BlogService._apply_admin_fields(blog, admin, data)
        if data.status is not None:
            moderation.apply_admin_status(blog, admin, data.status, data.rejection_reason)

        blog = await BlogService._save_edit(blog, data, image, background_tasks)
        await AdminService.log_admin_action(
            admin,
            ActionType.UPDATE,
            "blogs",
            blog.id,
            {"status": blog.status.value, "fields": sorted(data.model_dump(exclude_none=True))},
        )
        return blog

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    @staticmethod
    async def approve_blog(
        admin: User,
        blog_id: str,
        is_featured: bool = False,
        is_hot: bool = False,
        is_popular: bool = False,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Blog:
        blog = await BlogService._load(blog_id)
        moderation.approve(blog, admin, is_featured, is_hot, is_popular)
        blog.update_timestamp()
        await blog.save()

        await AdminService.log_admin_action(
            admin,
            ActionType.APPROVE,
            "blogs",
            blog.id,
            {"is_featured": is_featured, "is_hot": is_hot, "is_popular": is_popular},
        )
        BlogService._schedule_sitemap(background_tasks)
        return blog

    @staticmethod
    async def reject_blog(admin: User, blog_id: str, reason: Optional[str]) -> Blog:
        blog = await BlogService._load(blog_id)
        moderation.reject(blog, admin, reason)
        blog.update_timestamp()
        await blog.save()

        await AdminService.log_admin_action(
            admin, ActionType.REJECT, "blogs", blog.id, {"rejection_reason": blog.rejection_reason}
        )
        return blog

    @staticmethod
    async def request_reapproval(actor: User, blog_id: str) -> Blog:
        blog = await BlogService._load_visible(blog_id, actor)
        moderation.request_reapproval(blog, actor)
        blog.update_timestamp()
        await blog.save()
        return blog

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    @staticmethod
    async def delete_blog(actor: User, blog_id: str) -> None:
        """Soft delete; owners may only remove blogs that never went live"""
        blog = await BlogService._load_visible(blog_id, actor)
        if not blog_policy.can_delete(actor, blog):
            if blog.status == BlogStatus.PUBLISHED and blog_policy.is_owner(actor, blog):
                raise AuthorizationError("You cannot delete a published blog. Please contact admin.")
            raise AuthorizationError("Not authorized to delete this blog")

        await blog.set({Blog.is_deleted: True, Blog.updated_at: datetime.now(timezone.utc)})
        if blog_policy.is_admin(actor):
            await AdminService.log_admin_action(
                actor, ActionType.DELETE, "blogs", blog.id, {"soft": True}
            )

    @staticmethod
    async def admin_delete_blog(
        admin: User, blog_id: str, background_tasks: Optional[BackgroundTasks] = None
    ) -> None:
        blog = await BlogService._load(blog_id, include_deleted=True)
        was_live = blog.status == BlogStatus.PUBLISHED and not blog.is_deleted

        await blog.delete()
        await AdminService.log_admin_action(
            admin, ActionType.DELETE, "blogs", blog.id, {"title": blog.title, "soft": False}
        )

        if background_tasks is not None:
            if blog.image_key:
                background_tasks.add_task(storage_service.delete_file, blog.image_key)
            if was_live:
                background_tasks.add_task(SitemapService.regenerate_and_upload)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get_blog(actor: Optional[User], blog_id: str) -> Blog:
        return await BlogService._load_visible(blog_id, actor)

    @staticmethod
    async def get_own_blog(actor: User, blog_id: str) -> Blog:
        """The edit view of a blog: its author or an admin"""
        blog = await BlogService._load_visible(blog_id, actor)
        if not (blog_policy.is_owner(actor, blog) or blog_policy.is_admin(actor)):
            raise AuthorizationError("Not authorized to view this blog")
        return blog

    @staticmethod
    async def read_by_slug(actor: Optional[User], slug: str) -> Tuple[Blog, List[Blog]]:
        """Public read: counts a view on published blogs and finds related ones"""
        blog = await Blog.find_one({"slug": slug, "is_deleted": False})
        if blog is None or not blog_policy.can_view(actor, blog):
            raise NotFoundError("Blog not found")

        related: List[Blog] = []
        if blog.status == BlogStatus.PUBLISHED:
            updated = await Blog.get_motor_collection().find_one_and_update(
                {"_id": blog.id},
                {"$inc": {"views": 1}},
                projection={"views": 1},
                return_document=ReturnDocument.AFTER,
            )
            blog.views = updated["views"] if updated else blog.views + 1

            related = (
                await Blog.find(
                    {
                        "category_id": blog.category_id,
                        "_id": {"$ne": blog.id},
                        "status": BlogStatus.PUBLISHED.value,
                        "is_deleted": False,
                    }
                )
                .sort([("views", -1)])
                .limit(RELATED_LIMIT)
                .to_list()
            )
        return blog, related

    @staticmethod
    async def list_published(
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        hot: Optional[bool] = None,
        popular: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 9,
    ) -> Tuple[List[Blog], Dict[str, Any], List[Blog]]:
        filters: Dict[str, Any] = {"status": BlogStatus.PUBLISHED.value, "is_deleted": False}
        category_id = await _category_filter(category)
        if category_id is not None:
            filters["category_id"] = category_id
        if featured:
            filters["is_featured"] = True
        if hot:
            filters["is_hot"] = True
        if popular:
            filters["is_popular"] = True
        search_filter = create_search_filter(search, ["title", "description", "excerpt"])
        if search_filter:
            filters.update(search_filter)

        blogs, pagination = await paginate_query(
            Blog, filters, sort_by="created_at", sort_order="desc", page=page, limit=limit
        )

        since = to_query_datetime(
            datetime.now(timezone.utc) - timedelta(days=TRENDING_WINDOW_DAYS)
        )
        trending = (
            await Blog.find(
                {
                    "status": BlogStatus.PUBLISHED.value,
                    "is_deleted": False,
                    "created_at": {"$gte": since},
                }
            )
            .sort([("views", -1)])
            .limit(10)
            .to_list()
        )
        return blogs, pagination, trending

    @staticmethod
    async def status_counts(match: Dict[str, Any]) -> Dict[str, int]:
        """``{total, draft, pending, published, rejected}`` for blogs matching ``match``"""
        pipeline = [
            {"$match": match},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ]
        rows = await Blog.aggregate(pipeline).to_list()
        counts = {status.value: 0 for status in BlogStatus}
        for row in rows:
            if row["_id"] in counts:
                counts[row["_id"]] = row["count"]
        counts["total"] = sum(counts.values())
        return counts

    @staticmethod
    async def list_for_owner(
        actor: User, status: Optional[BlogStatus] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Blog], Dict[str, Any], Dict[str, int]]:
        base = {"user_id": actor.id, "is_deleted": False}
        filters = dict(base)
        if status is not None:
            filters["status"] = status.value

        blogs, pagination = await paginate_query(Blog, filters, page=page, limit=limit)
        stats = await BlogService.status_counts(base)
        return blogs, pagination, stats

    @staticmethod
    async def list_bookmarks(
        actor: User, page: int = 1, limit: int = 10
    ) -> Tuple[List[Blog], Dict[str, Any]]:
        filters = {
            "bookmarked_by": actor.id,
            "status": BlogStatus.PUBLISHED.value,
            "is_deleted": False,
        }
        return await paginate_query(Blog, filters, page=page, limit=limit)

    @staticmethod
    async def stats_for(actor: User) -> Dict[str, int]:
        match: Dict[str, Any] = {"is_deleted": False}
        if not blog_policy.is_admin(actor):
            match["user_id"] = actor.id
        return await BlogService.status_counts(match)

    @staticmethod
    async def list_pending(
        search: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Blog], Dict[str, Any]]:
        filters: Dict[str, Any] = {"status": BlogStatus.PENDING.value, "is_deleted": False}
        search_filter = create_search_filter(search, ["title", "excerpt"])
        if search_filter:
            filters.update(search_filter)
        return await paginate_query(
            Blog, filters, sort_by="created_at", sort_order="asc", page=page, limit=limit
        )

    @staticmethod
    async def admin_list(
        status: Optional[BlogStatus] = None,
        category: Optional[str] = None,
        user: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Blog], Dict[str, Any], Dict[str, int]]:
        sort_by, order = _sort_args(sort_by, order)

        filters: Dict[str, Any] = {"is_deleted": False}
        if status is not None:
            filters["status"] = status.value
        category_id = await _category_filter(category)
        if category_id is not None:
            filters["category_id"] = category_id
        if user:
            if not ObjectId.is_valid(user):
                raise ValidationError("Invalid user id")
            filters["user_id"] = PydanticObjectId(user)
        search_filter = create_search_filter(search, ["title", "description", "excerpt", "tags"])
        if search_filter:
            filters.update(search_filter)

        blogs, pagination = await paginate_query(
            Blog, filters, sort_by=sort_by, sort_order=order, page=page, limit=limit
        )
        stats = await BlogService.status_counts({"is_deleted": False})
        return blogs, pagination, stats

    # ------------------------------------------------------------------
    # Engagement
    # ------------------------------------------------------------------

    @staticmethod
    async def _toggle_membership(
        actor: User, blog_id: str, set_field: str, counter_field: str, verb: str
    ) -> Tuple[int, bool]:
        """
        Add or remove the actor from ``set_field`` and move ``counter_field``
        with it in one conditional update, so concurrent toggles cannot push
        the counter out of step with the set.
        """
        blog = await BlogService._load_visible(blog_id, actor)
        if blog.status != BlogStatus.PUBLISHED:
            raise ValidationError(f"Only published blogs can be {verb}")

        collection = Blog.get_motor_collection()
        user_id = actor.id
        member = user_id in getattr(blog, set_field)

        if member:
            update_filter = {"_id": blog.id, set_field: user_id}
            update = {"$pull": {set_field: user_id}, "$inc": {counter_field: -1}}
        else:
            update_filter = {"_id": blog.id, set_field: {"$ne": user_id}}
            update = {"$addToSet": {set_field: user_id}, "$inc": {counter_field: 1}}

        doc = await collection.find_one_and_update(
            update_filter, update, return_document=ReturnDocument.AFTER
        )
        if doc is None:
            # A concurrent toggle already applied; report the current state
            doc = await collection.find_one({"_id": blog.id})

        members = doc.get(set_field, [])
        count = len(members)
        if doc.get(counter_field) != count:
            await collection.update_one({"_id": blog.id}, {"$set": {counter_field: count}})
        return max(0, count), user_id in members

    @staticmethod
    async def toggle_like(actor: User, blog_id: str) -> Tuple[int, bool]:
        return await BlogService._toggle_membership(actor, blog_id, "liked_by", "likes", "liked")

    @staticmethod
    async def toggle_bookmark(actor: User, blog_id: str) -> Tuple[int, bool]:
        return await BlogService._toggle_membership(
            actor, blog_id, "bookmarked_by", "bookmarks", "bookmarked"
        )

