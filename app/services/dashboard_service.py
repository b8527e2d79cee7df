"""
Admin dashboard reporting.

Read only. Every blog figure leaves soft-deleted blogs out. Dates are
bucketed with ``$year``/``$month``/``$dayOfMonth`` and labelled in Python so
empty months and days can be zero-filled.
"""

import asyncio
import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..models.blog import Blog
from ..models.category import Category
from ..models.enums import BlogStatus, UserStatus
from ..models.user import User
from ..utils import batch_get, ensure_utc, format_time_ago, to_query_datetime

logger = logging.getLogger(__name__)

CHART_COLORS = ["#3B82F6", "#10B981", "#8B5CF6", "#EF4444", "#F59E0B"]
FALLBACK_COLOR = "#6B7280"
ANALYTICS_PERIODS = {"week": 7, "month": 30, "year": 365}

LIVE = {"is_deleted": False}


def month_window(months: int, now: datetime) -> List[Tuple[int, int]]:
    """``(year, month)`` pairs for the last ``months`` calendar months, oldest first"""
    year, month = now.year, now.month
    window = []
    for _ in range(months):
        window.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(window))


def month_label(year: int, month: int) -> str:
    return f"{calendar.month_abbr[month]} {year}"


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


async def _sum(field: str, match: Dict[str, Any]) -> int:
    rows = await Blog.aggregate(
        [{"$match": match}, {"$group": {"_id": None, "total": {"$sum": f"${field}"}}}]
    ).to_list()
    return rows[0]["total"] if rows else 0


async def count_by_month(
    model,
    match: Dict[str, Any],
    months: int = 6,
    now: Optional[datetime] = None,
    split_field: Optional[str] = None,
    split_values: Optional[List[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Documents created per calendar month, zero-filled.

    Without ``split_field`` each row is ``{name, year, month, count}``; with
    it, one counter per ``split_values`` entry replaces ``count``.
    """
    now = now or datetime.now(timezone.utc)
    window = month_window(months, now)
    since = datetime(window[0][0], window[0][1], 1)

    group_id: Dict[str, Any] = {
        "year": {"$year": "$created_at"},
        "month": {"$month": "$created_at"},
    }
    if split_field:
        group_id["split"] = f"${split_field}"

    rows = await model.aggregate(
        [
            {"$match": {**match, "created_at": {"$gte": since}}},
            {"$group": {"_id": group_id, "count": {"$sum": 1}}},
        ]
    ).to_list()

    buckets: Dict[Tuple[int, int], Dict[str, Any]] = {}
    for year, month in window:
        row: Dict[str, Any] = {"name": month_label(year, month), "year": year, "month": month}
        if split_field:
            row.update({value: 0 for value in split_values or []})
        else:
            row["count"] = 0
        buckets[(year, month)] = row

    for row in rows:
        key = (row["_id"]["year"], row["_id"]["month"])
        if key not in buckets:
            continue
        if split_field:
            split = row["_id"].get("split")
            if split in buckets[key]:
                buckets[key][split] = row["count"]
        else:
            buckets[key]["count"] = row["count"]

    return [buckets[key] for key in window]


async def count_by_day(model, match: Dict[str, Any], extra: Optional[Dict[str, Any]] = None):
    group = {
        "_id": {
            "year": {"$year": "$created_at"},
            "month": {"$month": "$created_at"},
            "day": {"$dayOfMonth": "$created_at"},
        },
        "count": {"$sum": 1},
    }
    group.update(extra or {})
    rows = await model.aggregate([{"$match": match}, {"$group": group}]).to_list()

    result = []
    for row in rows:
        day = row.pop("_id")
        row["date"] = f"{day['year']:04d}-{day['month']:02d}-{day['day']:02d}"
        result.append(row)
    return sorted(result, key=lambda r: r["date"])


class DashboardService:
    @staticmethod
    async def headline_counts(now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or datetime.now(timezone.utc)
        today = to_query_datetime(_start_of_day(now))

        (
            total_users,
            total_blogs,
            published,
            pending,
            rejected,
            total_views,
            total_likes,
            today_users,
            today_blogs,
            active_users,
        ) = await asyncio.gather(
            User.find_all().count(),
            Blog.find(LIVE).count(),
            Blog.find({**LIVE, "status": BlogStatus.PUBLISHED.value}).count(),
            Blog.find({**LIVE, "status": BlogStatus.PENDING.value}).count(),
            Blog.find({**LIVE, "status": BlogStatus.REJECTED.value}).count(),
            _sum("views", LIVE),
            _sum("likes", LIVE),
            User.find({"created_at": {"$gte": today}}).count(),
            Blog.find({**LIVE, "created_at": {"$gte": today}}).count(),
            User.find({"status": UserStatus.ACTIVE.value}).count(),
        )
        return {
            "total_users": total_users,
            "total_blogs": total_blogs,
            "published_blogs": published,
            "pending_blogs": pending,
            "rejected_blogs": rejected,
            "total_views": total_views,
            "total_likes": total_likes,
            "today_users": today_users,
            "today_blogs": today_blogs,
            "active_users": active_users,
        }

    @staticmethod
    async def category_distribution(limit: int = 5) -> List[Dict[str, Any]]:
        categories = await Category.find({"status": True}).to_list()
        rows = await Blog.aggregate(
            [{"$match": LIVE}, {"$group": {"_id": "$category_id", "count": {"$sum": 1}}}]
        ).to_list()
        counts = {str(row["_id"]): row["count"] for row in rows}

        ranked = sorted(
            categories, key=lambda c: (-counts.get(str(c.id), 0), c.name)
        )[:limit]
        return [
            {
                "name": category.name,
                "value": counts.get(str(category.id), 0),
                "color": CHART_COLORS[i] if i < len(CHART_COLORS) else FALLBACK_COLOR,
            }
            for i, category in enumerate(ranked)
        ]

    @staticmethod
    async def top_blogs(limit: int = 5) -> List[Dict[str, Any]]:
        blogs = (
            await Blog.find(LIVE).sort([("views", -1), ("likes", -1)]).limit(limit).to_list()
        )
        owners = await batch_get(User, [b.user_id for b in blogs])
        categories = await batch_get(Category, [b.category_id for b in blogs])
        result = []
        for blog in blogs:
            owner = owners.get(str(blog.user_id))
            category = categories.get(str(blog.category_id))
            result.append(
                {
                    "id": str(blog.id),
                    "title": blog.title,
                    "slug": blog.slug,
                    "views": blog.views,
                    "likes": blog.likes,
                    "bookmarks": blog.bookmarks,
                    "category": category.name if category else "Uncategorized",
                    "author": owner.username if owner else "Unknown",
                }
            )
        return result

    @staticmethod
    async def recent_activity(limit: int = 5, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        blogs = await Blog.find(LIVE).sort([("created_at", -1)]).limit(limit).to_list()
        users = await User.find_all().sort([("created_at", -1)]).limit(limit).to_list()
        owners = await batch_get(User, [b.user_id for b in blogs])

        actions = {
            BlogStatus.PUBLISHED: ("published a new blog", "publish"),
            BlogStatus.PENDING: ("submitted blog for review", "submit"),
            BlogStatus.REJECTED: ("blog was rejected", "reject"),
            BlogStatus.DRAFT: ("saved a draft", "draft"),
        }

        events = []
        for blog in blogs:
            owner = owners.get(str(blog.user_id))
            action, kind = actions[blog.status]
            events.append(
                (
                    blog.created_at,
                    {
                        "id": str(blog.id),
                        "user": owner.username if owner else "Unknown",
                        "action": action,
                        "title": blog.title,
                        "type": kind,
                    },
                )
            )
        for user in users:
            events.append(
                (
                    user.created_at,
                    {
                        "id": str(user.id),
                        "user": user.username,
                        "action": "registered as new user",
                        "type": "register",
                    },
                )
            )

        events.sort(key=lambda e: ensure_utc(e[0]), reverse=True)
        result = []
        for created_at, event in events[:limit]:
            event["time"] = format_time_ago(created_at, now)
            result.append(event)
        return result

    @staticmethod
    async def pending_reviews(limit: int = 5, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        blogs = (
            await Blog.find({**LIVE, "status": BlogStatus.PENDING.value})
            .sort([("created_at", -1)])
            .limit(limit)
            .to_list()
        )
        owners = await batch_get(User, [b.user_id for b in blogs])
        categories = await batch_get(Category, [b.category_id for b in blogs])
        return [
            {
                "id": str(blog.id),
                "title": blog.title,
                "author": owners[str(blog.user_id)].username
                if str(blog.user_id) in owners
                else "Unknown",
                "category": categories[str(blog.category_id)].name
                if str(blog.category_id) in categories
                else "Uncategorized",
                "submitted": format_time_ago(blog.created_at, now),
            }
            for blog in blogs
        ]

    @staticmethod
    async def stats() -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        statuses = [s.value for s in (BlogStatus.PUBLISHED, BlogStatus.PENDING, BlogStatus.REJECTED)]

        (
            counts,
            user_growth,
            blog_stats,
            distribution,
            top,
            activity,
            pending,
        ) = await asyncio.gather(
            DashboardService.headline_counts(now),
            count_by_month(User, {}, months=6, now=now),
            count_by_month(
                Blog, LIVE, months=6, now=now, split_field="status", split_values=statuses
            ),
            DashboardService.category_distribution(),
            DashboardService.top_blogs(),
            DashboardService.recent_activity(now=now),
            DashboardService.pending_reviews(now=now),
        )

        return {
            "stats": counts,
            "charts": {
                "user_growth": [{"name": m["name"], "users": m["count"]} for m in user_growth],
                "blog_stats": [
                    {"name": m["name"], **{s: m[s] for s in statuses}} for m in blog_stats
                ],
                "category_distribution": distribution,
            },
            "top_blogs": top,
            "recent_activities": activity,
            "pending_reviews": pending,
        }

    @staticmethod
    async def analytics(period: str = "month") -> Dict[str, Any]:
        days = ANALYTICS_PERIODS.get(period, ANALYTICS_PERIODS["month"])
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        window = {"$gte": to_query_datetime(start), "$lte": to_query_datetime(end)}

        blog_match = {**LIVE, "created_at": window}
        blog_daily = await count_by_day(
            Blog,
            blog_match,
            {"total_views": {"$sum": "$views"}, "total_likes": {"$sum": "$likes"}},
        )
        user_daily = await count_by_day(User, {"created_at": window})

        rows = await Blog.aggregate(
            [
                {"$match": blog_match},
                {
                    "$group": {
                        "_id": "$category_id",
                        "count": {"$sum": 1},
                        "avg_views": {"$avg": "$views"},
                        "avg_likes": {"$avg": "$likes"},
                    }
                },
            ]
        ).to_list()
        categories = await batch_get(Category, [row["_id"] for row in rows])
        category_analytics = sorted(
            (
                {
                    "category": categories[str(row["_id"])].name
                    if str(row["_id"]) in categories
                    else None,
                    "count": row["count"],
                    "avg_views": round(row["avg_views"] or 0, 2),
                    "avg_likes": round(row["avg_likes"] or 0, 2),
                }
                for row in rows
            ),
            key=lambda r: -r["count"],
        )

        return {
            "period": period if period in ANALYTICS_PERIODS else "month",
            "start_date": start,
            "end_date": end,
            "blog_analytics": blog_daily,
            "user_analytics": user_daily,
            "category_analytics": category_analytics,
        }

    @staticmethod
    async def overview() -> Dict[str, Any]:
        counts, categories_count = await asyncio.gather(
            DashboardService.headline_counts(),
            Category.find({"status": True}).count(),
        )
        recent_blogs = await Blog.find(LIVE).sort([("created_at", -1)]).limit(5).to_list()
        recent_users = await User.find_all().sort([("created_at", -1)]).limit(5).to_list()

        return {
            "counts": {**counts, "categories": categories_count},
            "recent_blogs": [
                {
                    "id": str(b.id),
                    "title": b.title,
                    "slug": b.slug,
                    "status": b.status.value,
                    "created_at": b.created_at,
                }
                for b in recent_blogs
            ],
            "recent_users": [
                {
                    "id": str(u.id),
                    "username": u.username,
                    "email": u.email,
                    "role": u.role.value,
                    "created_at": u.created_at,
                }
                for u in recent_users
            ],
        }
