from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import NotFoundError
from app.models.user import User
from app.utils import (
    build_pagination,
    calculate_read_time,
    create_search_filter,
    ensure_utc,
    format_time_ago,
    get_or_404,
    normalize_terms,
    paginate_query,
    slugify,
    to_query_datetime,
    word_count,
)

from conftest import make_user

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Hello World", "hello-world"),
        ("  Café & Crème -- Brûlée  ", "cafe-creme-brulee"),
        ("snake_case title", "snake-case-title"),
        ("!!!", ""),
        (None, ""),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_read_time_ignores_markup_and_rounds_up():
    assert word_count("<p>one <b>two</b></p>three") == 3
    assert calculate_read_time("") == 0
    assert calculate_read_time("word " * 200) == 1
    assert calculate_read_time("word " * 201) == 2


def test_normalize_terms():
    assert normalize_terms("News, world , news,,") == ["news", "world"]
    assert normalize_terms(["A", " b ", "a"]) == ["a", "b"]
    assert normalize_terms(None) == []


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "30 seconds ago"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=2, hours=1), "2 days ago"),
        (timedelta(days=400), "1 years ago"),
    ],
)
def test_format_time_ago(delta, expected):
    assert format_time_ago(NOW - delta, NOW) == expected


def test_naive_and_aware_datetimes():
    naive = datetime(2024, 1, 1, 8, 0)
    assert ensure_utc(naive).tzinfo is timezone.utc
    assert ensure_utc(None) is None
    assert to_query_datetime(NOW) == datetime(2024, 6, 10, 12, 0)
    # Naive datetimes from Mongo are treated as UTC
    assert format_time_ago(datetime(2024, 6, 10, 11, 0), NOW) == "60 minutes ago"


def test_search_filter_escapes_regex():
    assert create_search_filter("  ", ["title"]) is None
    assert create_search_filter("a.b", ["title", "slug"]) == {
        "$or": [
            {"title": {"$regex": r"a\.b", "$options": "i"}},
            {"slug": {"$regex": r"a\.b", "$options": "i"}},
        ]
    }


def test_build_pagination():
    assert build_pagination(2, 10, 21) == {"page": 2, "limit": 10, "total": 21, "pages": 3}
    assert build_pagination(1, 10, 0)["pages"] == 0


async def test_paginate_query_with_transform():
    for name in ("anna", "bert", "carl"):
        await make_user(name)

    names, pagination = await paginate_query(
        User,
        {},
        sort_by="username",
        sort_order="asc",
        page=2,
        limit=2,
        transform_func=lambda users: [u.username for u in users],
    )
    assert names == ["carl"]
    assert pagination == {"page": 2, "limit": 2, "total": 3, "pages": 2}


async def test_get_or_404_hides_malformed_ids():
    with pytest.raises(NotFoundError, match="User not found"):
        await get_or_404(User, "not-an-object-id", "User not found")
