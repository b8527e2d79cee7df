"""
Home page feed assembled from the latest published blogs
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId

from ..models.blog import Blog
from ..models.category import Category
from ..models.enums import BlogStatus
from ..utils import ensure_utc
from .blog_service import BlogService
from .category_service import CategoryService, category_to_dict

logger = logging.getLogger(__name__)

FEED_SIZE = 30
FEATURED_SIZE = 3
TRENDING_SIZE = 8
TRENDING_MIN = 4
TRENDING_WINDOW_DAYS = 30
LATEST_SIZE = 8
POPULAR_SIZE = 4
TOP_CATEGORIES = 3
CATEGORY_POSTS = 3

PUBLISHED = {"status": BlogStatus.PUBLISHED.value, "is_deleted": False}


def trending_score(blog: Blog) -> int:
    return blog.views + blog.likes * 2


def pick_featured(blogs: List[Blog]) -> List[Blog]:
    featured = [b for b in blogs if b.is_featured][:FEATURED_SIZE]
    return featured or blogs[:FEATURED_SIZE]


def pick_trending(blogs: List[Blog], now: datetime) -> List[Blog]:
    """
    Recent blogs ranked by views plus twice the likes. When fewer than
    ``TRENDING_MIN`` qualify, the list is padded with the newest others.
    """
    if len(blogs) < TRENDING_MIN:
        return list(blogs)

    since = now - timedelta(days=TRENDING_WINDOW_DAYS)
    recent = [b for b in blogs if ensure_utc(b.created_at) >= since]
    recent.sort(key=trending_score, reverse=True)
    if len(recent) >= TRENDING_MIN:
        return recent[:TRENDING_SIZE]

    taken = {b.id for b in recent}
    padding = sorted(
        (b for b in blogs if b.id not in taken),
        key=lambda b: ensure_utc(b.created_at),
        reverse=True,
    )
    return recent + padding[: TRENDING_SIZE - len(recent)]


def pick_popular(blogs: List[Blog], day_of_month: int) -> List[Blog]:
    """Most viewed blogs, with a window that shifts by day of month"""
    if len(blogs) < POPULAR_SIZE:
        return list(blogs)

    by_views = sorted(blogs, key=lambda b: b.views, reverse=True)
    offset = day_of_month % max(1, len(by_views) - 3)
    popular = by_views[offset : offset + POPULAR_SIZE]
    if len(popular) < POPULAR_SIZE:
        popular += by_views[: POPULAR_SIZE - len(popular)]
    return popular


class HomeService:
    @staticmethod
    async def categories_by_count() -> List[Dict[str, Any]]:
        categories = await Category.find({"status": True}).to_list()
        counts = await CategoryService.published_counts()

        result = []
        for category in categories:
            item = category_to_dict(category)
            item["description"] = category.description or f"Explore {category.name} articles"
            item["blog_count"] = counts.get(str(category.id), 0)
            result.append(item)
        result.sort(key=lambda c: (-c["blog_count"], c["name"]))
        return result

    @staticmethod
    async def home_page(now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        blogs = (
            await Blog.find(PUBLISHED).sort([("created_at", -1)]).limit(FEED_SIZE).to_list()
        )
        categories = await HomeService.categories_by_count()

        popular = await BlogService.present(pick_popular(blogs, now.day))
        for position, post in enumerate(popular, start=1):
            post["position"] = position

        category_posts: Dict[str, List[Dict[str, Any]]] = {}
        for category in categories[:TOP_CATEGORIES]:
            posts: List[Blog] = []
            if blogs:
                posts = (
                    await Blog.find({**PUBLISHED, "category_id": PydanticObjectId(category["id"])})
                    .sort([("created_at", -1)])
                    .limit(CATEGORY_POSTS)
                    .to_list()
                )
            category_posts[category["slug"]] = await BlogService.present(posts)

        return {
            "featured_posts": await BlogService.present(pick_featured(blogs)),
            "trending_posts": await BlogService.present(pick_trending(blogs, now)),
            "latest_posts": await BlogService.present(blogs[:LATEST_SIZE]),
            "popular_posts": popular,
            "categories": categories,
            "category_posts": category_posts,
            "meta": {
                "total_blogs": len(blogs),
                "total_categories": len(categories),
                "has_content": bool(blogs),
                "timestamp": now.isoformat(),
            },
        }
