from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.models.enums import BlogStatus
from app.services.home_service import pick_featured, pick_popular, pick_trending

from conftest import make_blog, make_category

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def post(n, views=0, likes=0, age_days=1, is_featured=False):
    return SimpleNamespace(
        id=n,
        views=views,
        likes=likes,
        is_featured=is_featured,
        created_at=NOW - timedelta(days=age_days),
    )


def test_featured_falls_back_to_newest():
    blogs = [post(i) for i in range(5)]
    assert [b.id for b in pick_featured(blogs)] == [0, 1, 2]

    blogs[3].is_featured = True
    assert [b.id for b in pick_featured(blogs)] == [3]


def test_trending_ranks_recent_blogs_by_score():
    blogs = [
        post(1, views=10, likes=0),
        post(2, views=0, likes=6),
        post(3, views=5, likes=1),
        post(4, views=1),
        post(5, views=999, age_days=60),
    ]
    assert [b.id for b in pick_trending(blogs, NOW)] == [2, 1, 3, 4]


def test_trending_pads_with_newest_when_few_are_recent():
    blogs = [
        post(1, views=3),
        post(2, views=50, age_days=40),
        post(3, views=80, age_days=90),
        post(4, views=1, age_days=45),
    ]
    assert [b.id for b in pick_trending(blogs, NOW)] == [1, 2, 4, 3]


def test_small_feeds_are_returned_as_is():
    blogs = [post(1), post(2)]
    assert pick_trending(blogs, NOW) == blogs
    assert pick_popular(blogs, 10) == blogs


def test_popular_window_shifts_with_the_day():
    blogs = [post(i, views=100 - i) for i in range(6)]
    assert [b.id for b in pick_popular(blogs, 3)] == [0, 1, 2, 3]
    assert [b.id for b in pick_popular(blogs, 5)] == [2, 3, 4, 5]


async def test_home_page_sections(client, author, category):
    sports = await make_category("Sports")
    await make_category("Empty")
    for i in range(5):
        await make_blog(author, category, title=f"World {i}", views=i)
    await make_blog(author, sports, title="Match report", is_featured=True)
    await make_blog(author, sports, title="Queued", status=BlogStatus.PENDING)

    response = await client.get("/api/page/home")
    assert response.status_code == 200
    body = response.json()
    data = body["data"]

    assert [p["title"] for p in data["featured_posts"]] == ["Match report"]
    assert len(data["latest_posts"]) == 6
    assert len(data["trending_posts"]) == 6
    assert [p["position"] for p in data["popular_posts"]] == [1, 2, 3, 4]
    assert [c["slug"] for c in data["categories"]] == ["world-news", "sports", "empty"]
    assert data["categories"][2]["description"] == "Explore Empty articles"
    assert len(data["category_posts"]["world-news"]) == 3
    assert [p["title"] for p in data["category_posts"]["sports"]] == ["Match report"]
    assert data["category_posts"]["empty"] == []
    assert body["meta"]["total_blogs"] == 6
    assert body["meta"]["has_content"] is True


async def test_fresh_home_page_is_not_cached(client):
    response = await client.get("/api/page/home/fresh")
    assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    body = response.json()
    assert body["meta"]["has_content"] is False
    assert body["data"]["category_posts"] == {}
