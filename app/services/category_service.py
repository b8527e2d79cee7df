"""
Blog category management
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import BackgroundTasks, UploadFile
from pymongo.errors import DuplicateKeyError

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models.admin_action import ActionType
from ..models.blog import Blog
from ..models.category import Category
from ..models.enums import BlogStatus
from ..models.user import User
from ..utils import create_search_filter, get_or_404, paginate_query, save_document, slugify
from .admin_service import AdminService
from .storage import storage_service

logger = logging.getLogger(__name__)

IMAGE_FOLDER = "blog-categories"


def category_to_dict(category: Category) -> Dict[str, Any]:
    return {
        "id": str(category.id),
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image_url": category.image_url,
        "status": category.status,
        "created_at": category.created_at,
        "updated_at": category.updated_at,
    }


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Category name is required")
    slug = slugify(cleaned)
    if not slug:
        raise ValidationError("Category name must contain letters or digits")
    return cleaned


class CategoryService:
    @staticmethod
    async def _save(category: Category, insert: bool = False):
        try:
            if insert:
                await category.insert()
            else:
                await save_document(category)
        except DuplicateKeyError:
            raise ConflictError("Category with this name already exists")

    @staticmethod
    async def list_categories(
        status: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        filters: Dict[str, Any] = {}
        if status is not None:
            filters["status"] = status
        search_filter = create_search_filter(search, ["name", "description"])
        if search_filter:
            filters.update(search_filter)

        return await paginate_query(
            Category,
            filters,
            sort_by="created_at",
            sort_order="desc",
            page=page,
            limit=limit,
            transform_func=lambda items: [category_to_dict(c) for c in items],
        )

    @staticmethod
    async def published_counts() -> Dict[str, int]:
        """Published, non-deleted blog count keyed by category id"""
        pipeline = [
            {"$match": {"status": BlogStatus.PUBLISHED.value, "is_deleted": False}},
            {"$group": {"_id": "$category_id", "count": {"$sum": 1}}},
        ]
        rows = await Blog.aggregate(pipeline).to_list()
        return {str(row["_id"]): row["count"] for row in rows}

    @staticmethod
    async def list_with_counts() -> List[Dict[str, Any]]:
        categories = await Category.find({"status": True}).sort("name").to_list()
        counts = await CategoryService.published_counts()

        result = []
        for category in categories:
            item = category_to_dict(category)
            item["blog_count"] = counts.get(str(category.id), 0)
            result.append(item)
        return result

    @staticmethod
    async def get_by_slug(slug: str) -> Category:
        category = await Category.find_one({"slug": slug})
        if not category:
            raise NotFoundError("Blog category not found")
        return category

    @staticmethod
    async def create_category(
        admin: User,
        name: Optional[str],
        description: Optional[str] = None,
        image: Optional[UploadFile] = None,
    ) -> Category:
        cleaned = _clean_name(name)
        category = Category(
            name=cleaned,
            slug=slugify(cleaned),
            description=(description or "").strip(),
        )

        if image is not None:
            category.image_url, category.image_key = await storage_service.upload_form_image(
                image, IMAGE_FOLDER
            )

        try:
            await CategoryService._save(category, insert=True)
        except Exception:
            # The uploaded image is orphaned
            await storage_service.delete_file(category.image_key)
            raise

        await AdminService.log_admin_action(
            admin, ActionType.CREATE, "blog_categories", category.id, {"name": category.name}
        )
        return category

    @staticmethod
    async def update_category(
        admin: User,
        category_id: str,
        background_tasks: BackgroundTasks,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[bool] = None,
        image: Optional[UploadFile] = None,
    ) -> Category:
        category = await get_or_404(Category, category_id, "Blog category not found")
        before = category_to_dict(category)

        if name is not None and name.strip() != category.name:
            cleaned = _clean_name(name)
            category.name = cleaned
            category.slug = slugify(cleaned)

        if description is not None:
            category.description = description.strip()
        if status is not None:
            category.status = status

        old_image_key = category.image_key
        uploaded_key = None
        if image is not None:
            category.image_url, category.image_key = await storage_service.upload_form_image(
                image, IMAGE_FOLDER
            )
            uploaded_key = category.image_key

        category.update_timestamp()
        try:
            await CategoryService._save(category)
        except Exception:
            await storage_service.delete_file(uploaded_key)
            raise

        if uploaded_key and old_image_key:
            background_tasks.add_task(storage_service.delete_file, old_image_key)

        await AdminService.log_admin_action(
            admin,
            ActionType.UPDATE,
            "blog_categories",
            category.id,
            AdminService.diff(
                before,
                category_to_dict(category),
                ["name", "slug", "description", "status", "image_url"],
            ),
        )
        return category

    @staticmethod
    async def delete_category(
        admin: User, category_id: str, background_tasks: BackgroundTasks
    ) -> None:
        category = await get_or_404(Category, category_id, "Blog category not found")

        blog_count = await Blog.find(
            {"category_id": category.id, "is_deleted": False}
        ).count()
        if blog_count > 0:
            raise ConflictError("Cannot delete category with associated blogs")

        await category.delete()
        if category.image_key:
            background_tasks.add_task(storage_service.delete_file, category.image_key)

        await AdminService.log_admin_action(
            admin, ActionType.DELETE, "blog_categories", category.id, {"name": category.name}
        )
        logger.info(f"Category {category.slug} deleted")
