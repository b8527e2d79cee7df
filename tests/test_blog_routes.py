from unittest.mock import AsyncMock, patch

import pytest

from app.exceptions import DependencyError
from app.models.blog import Blog
from app.models.enums import BlogStatus
from app.services.storage import storage_service

from conftest import auth_headers, make_blog


def blog_form(category, /, **overrides):
    form = {
        "title": "Hello World",
        "description": "<p>Hello there, world.</p><script>alert(1)</script>",
        "category": str(category.id),
        "tags": "News, world , news",
    }
    form.update(overrides)
    return form


async def test_user_blog_starts_pending_and_admin_approval_publishes(
    client, author, admin, category, sitemap_upload
):
    response = await client.post(
        "/api/blogs/",
        data=blog_form(category, is_featured="true"),
        headers=auth_headers(author),
    )
    assert response.status_code == 201
    created = response.json()["data"]
    assert created["status"] == "pending"
    assert created["is_featured"] is False
    assert created["slug"] == "hello-world"
    assert created["tags"] == ["news", "world"]
    assert "<script>" not in created["description"]
    sitemap_upload.assert_not_awaited()

    response = await client.put(
        f"/api/blogs/approve/{created['id']}", headers=auth_headers(admin)
    )
    assert response.status_code == 200
    approved = response.json()["data"]
    assert approved["status"] == "published"
    assert approved["approved_at"] is not None
    assert approved["is_featured"] is False
    sitemap_upload.assert_awaited()


async def test_admin_blog_is_published_immediately(client, admin, category):
    response = await client.post(
        "/api/blogs/",
        data=blog_form(category, category=category.slug, is_hot="true"),
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "published"
    assert data["approved_at"] is not None
    assert data["is_hot"] is True


async def test_create_requires_authentication(client, category):
    response = await client.post("/api/blogs/", data=blog_form(category))
    assert response.status_code == 401
    assert response.json()["success"] is False


async def test_duplicate_title_is_a_conflict(client, author, category):
    await make_blog(author, category, title="Hello World")
    response = await client.post(
        "/api/blogs/", data=blog_form(category), headers=auth_headers(author)
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "already exists" in body["message"]


async def test_unknown_category_is_rejected(client, author, category):
    response = await client.post(
        "/api/blogs/",
        data=blog_form(category, category="no-such-category"),
        headers=auth_headers(author),
    )
    assert response.status_code == 400


async def test_owner_cannot_edit_or_delete_published_blog(client, author, category):
    blog = await make_blog(author, category)
    headers = auth_headers(author)

    response = await client.put(
        f"/api/blogs/{blog.id}", data={"title": "New title"}, headers=headers
    )
    assert response.status_code == 403

    response = await client.delete(f"/api/blogs/{blog.id}", headers=headers)
    assert response.status_code == 403


async def test_owner_edit_sends_blog_back_to_review(client, author, admin, category):
    blog = await make_blog(
        author,
        category,
        status=BlogStatus.REJECTED,
        rejection_reason="Too short",
        rejected_by=admin.id,
    )
    response = await client.put(
        f"/api/blogs/user/{blog.id}",
        data={"description": "<p>" + "word " * 450 + "</p>"},
        headers=auth_headers(author),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["rejection_reason"] is None
    assert data["read_time"] == 3


async def test_owner_soft_deletes_pending_blog(client, author, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    headers = auth_headers(author)

    response = await client.delete(f"/api/blogs/{blog.id}", headers=headers)
    assert response.status_code == 200

    stored = await Blog.get(blog.id)
    assert stored is not None and stored.is_deleted is True

    response = await client.get(f"/api/blogs/{blog.id}", headers=headers)
    assert response.status_code == 404


async def test_stranger_cannot_delete(client, author, reader, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    response = await client.delete(f"/api/blogs/{blog.id}", headers=auth_headers(reader))
    # Pending blogs are invisible to other readers
    assert response.status_code == 404


async def test_hidden_blog_is_not_found_for_anonymous(client, author, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    response = await client.get(f"/api/blogs/{blog.id}")
    assert response.status_code == 404
    response = await client.get("/api/blogs/not-an-id")
    assert response.status_code == 404


async def test_reapproval_flow(client, author, admin, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)

    response = await client.put(
        f"/api/blogs/reject/{blog.id}",
        json={"rejection_reason": "Please add sources"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "rejected"

    response = await client.put(
        f"/api/blogs/request-reapproval/{blog.id}", headers=auth_headers(author)
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["rejection_reason"] is None
    assert data["rejected_at"] is None

    response = await client.put(
        f"/api/blogs/request-reapproval/{blog.id}", headers=auth_headers(author)
    )
    assert response.status_code == 400


async def test_reject_without_reason_fails(client, author, admin, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    response = await client.put(f"/api/blogs/reject/{blog.id}", headers=auth_headers(admin))
    assert response.status_code == 400


async def test_moderation_routes_require_admin(client, author, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    response = await client.put(
        f"/api/blogs/approve/{blog.id}", headers=auth_headers(author)
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"


async def test_like_toggle_is_idempotent_per_user(client, author, reader, category):
    blog = await make_blog(author, category)
    headers = auth_headers(reader)

    first = await client.put(f"/api/blogs/{blog.id}/like", headers=headers)
    assert first.json()["data"] == {"likes": 1, "is_liked": True}

    second = await client.put(f"/api/blogs/{blog.id}/like", headers=headers)
    assert second.json()["data"] == {"likes": 0, "is_liked": False}

    stored = await Blog.get(blog.id)
    assert stored.likes == 0
    assert stored.liked_by == []


async def test_likes_from_two_users_are_counted_separately(client, author, reader, category):
    blog = await make_blog(author, category)
    await client.put(f"/api/blogs/{blog.id}/like", headers=auth_headers(reader))
    response = await client.put(f"/api/blogs/{blog.id}/like", headers=auth_headers(author))
    assert response.json()["data"]["likes"] == 2


async def test_cannot_like_unpublished_blog(client, author, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    response = await client.put(f"/api/blogs/{blog.id}/like", headers=auth_headers(author))
    assert response.status_code == 400


async def test_bookmark_shows_up_in_my_bookmarks(client, author, reader, category):
    blog = await make_blog(author, category)
    headers = auth_headers(reader)

    response = await client.put(f"/api/blogs/{blog.id}/bookmark", headers=headers)
    assert response.json()["data"] == {"bookmarks": 1, "is_bookmarked": True}

    response = await client.get("/api/blogs/my-bookmarks", headers=headers)
    body = response.json()
    assert [b["id"] for b in body["data"]] == [str(blog.id)]
    assert body["data"][0]["is_bookmarked"] is True
    assert body["pagination"]["total"] == 1


async def test_read_by_slug_counts_views_and_finds_related(client, author, category):
    blog = await make_blog(author, category, title="Main story")
    await make_blog(author, category, title="Side story", views=10)
    await make_blog(author, category, title="Waiting story", status=BlogStatus.PENDING)

    response = await client.get(f"/api/blogs/slug/{blog.slug}")
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["views"] == 1
    assert [r["slug"] for r in body["related"]] == ["side-story"]
    # Author email is private to the author and admins
    assert body["data"]["author"]["email"] is None

    await client.get(f"/api/blogs/slug/{blog.slug}")
    assert (await Blog.get(blog.id)).views == 2


async def test_published_listing_filters_and_paginates(client, author, category):
    for i in range(3):
        await make_blog(author, category, title=f"Story {i}", is_featured=(i == 0))
    await make_blog(author, category, title="Pending story", status=BlogStatus.PENDING)
    await make_blog(author, category, title="Removed story", is_deleted=True)

    response = await client.get("/api/blogs/published", params={"limit": 2})
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert len(body["data"]) == 2
    assert len(body["trending"]) == 3

    response = await client.get("/api/blogs/published", params={"featured": "true"})
    assert [b["title"] for b in response.json()["data"]] == ["Story 0"]

    response = await client.get(
        "/api/blogs/published", params={"category": category.slug, "search": "story 1"}
    )
    assert [b["title"] for b in response.json()["data"]] == ["Story 1"]


async def test_my_blogs_includes_status_counts(client, author, reader, category):
    await make_blog(author, category, title="Live")
    await make_blog(author, category, title="Queued", status=BlogStatus.PENDING)
    await make_blog(reader, category, title="Not mine")

    response = await client.get("/api/blogs/my-blogs", headers=auth_headers(author))
    body = response.json()
    assert body["pagination"]["total"] == 2
    assert body["stats"]["published"] == 1
    assert body["stats"]["pending"] == 1
    assert body["stats"]["total"] == 2


async def test_admin_list_and_pending_queue(client, author, admin, category):
    await make_blog(author, category, title="Live")
    await make_blog(author, category, title="Queued", status=BlogStatus.PENDING)

    response = await client.get("/api/blogs/", headers=auth_headers(admin))
    body = response.json()
    assert body["pagination"]["total"] == 2
    assert body["stats"]["total"] == 2

    response = await client.get("/api/blogs/pending", headers=auth_headers(admin))
    assert [b["title"] for b in response.json()["data"]] == ["Queued"]

    response = await client.get("/api/blogs/", headers=auth_headers(author))
    assert response.status_code == 403


async def test_admin_update_sets_flags_and_status(client, author, admin, category):
    blog = await make_blog(author, category, status=BlogStatus.PENDING)
    response = await client.put(
        f"/api/blogs/admin/{blog.id}",
        data={"status": "published", "is_popular": "true"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "published"
    assert data["is_popular"] is True
    assert data["approved_by"] == str(admin.id)


async def test_admin_hard_delete_removes_document(client, author, admin, category):
    blog = await make_blog(author, category)
    response = await client.delete(f"/api/blogs/admin/{blog.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert await Blog.get(blog.id) is None


async def test_get_own_blog_is_forbidden_for_others(client, author, reader, category):
    blog = await make_blog(author, category)
    response = await client.get(f"/api/blogs/user/{blog.id}", headers=auth_headers(reader))
    assert response.status_code == 403

    response = await client.get(f"/api/blogs/user/{blog.id}", headers=auth_headers(author))
    assert response.status_code == 200
    assert response.json()["data"]["author"]["email"] == author.email


@pytest.mark.parametrize("path", ["/api/blogs/stats", "/api/blogs/my-blogs"])
async def test_personal_routes_need_a_token(client, path):
    response = await client.get(path)
    assert response.status_code == 401


async def test_health_routes_carry_security_headers(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["x-frame-options"] == "DENY"
    assert "x-process-time" in response.headers

    response = await client.get("/")
    assert response.json()["success"] is True


IMAGE = {"image": ("cover.png", b"\x89PNG fake image bytes", "image/png")}


@pytest.fixture
def uploads():
    """Storage calls made by the blog service, with no bucket behind them"""
    with patch.object(
        storage_service,
        "upload_form_image",
        new_callable=AsyncMock,
        return_value=("https://cdn.example.com/blogs/new.jpg", "blogs/new.jpg"),
    ) as upload, patch.object(
        storage_service, "delete_file", new_callable=AsyncMock, return_value=True
    ) as delete:
        yield upload, delete


@pytest.mark.parametrize("path", ["/api/blogs/{id}", "/api/blogs/user/{id}"])
async def test_edit_to_taken_title_is_a_conflict(client, author, category, path):
    await make_blog(author, category, title="Taken")
    blog = await make_blog(author, category, title="Draft idea", status=BlogStatus.PENDING)

    response = await client.put(
        path.format(id=blog.id), data={"title": "Taken"}, headers=auth_headers(author)
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Blog with this title already exists"

    stored = await Blog.get(blog.id)
    assert stored.title == "Draft idea"
    assert stored.slug == "draft-idea"


async def test_admin_edit_to_taken_title_is_a_conflict(client, admin, author, category):
    await make_blog(author, category, title="Taken")
    blog = await make_blog(author, category, title="Other story")

    response = await client.put(
        f"/api/blogs/admin/{blog.id}", data={"title": "Taken"}, headers=auth_headers(admin)
    )
    assert response.status_code == 400
    assert (await Blog.get(blog.id)).title == "Other story"


async def test_soft_deleted_title_can_be_reused(client, author, category):
    headers = auth_headers(author)
    blog = await make_blog(author, category, title="Hello World", status=BlogStatus.PENDING)
    response = await client.delete(f"/api/blogs/{blog.id}", headers=headers)
    assert response.status_code == 200

    response = await client.post("/api/blogs/", data=blog_form(category), headers=headers)
    assert response.status_code == 201
    assert response.json()["data"]["slug"] == "hello-world"

    # The recreated blog is live again, so the title is taken once more
    response = await client.post("/api/blogs/", data=blog_form(category), headers=headers)
    assert response.status_code == 400


async def test_failed_edit_removes_the_new_image(client, author, category, uploads):
    upload, delete = uploads
    await make_blog(author, category, title="Taken")
    blog = await make_blog(author, category, title="Draft idea", status=BlogStatus.PENDING)

    response = await client.put(
        f"/api/blogs/user/{blog.id}",
        data={"title": "Taken"},
        files=IMAGE,
        headers=auth_headers(author),
    )
    assert response.status_code == 400
    upload.assert_awaited_once()
    delete.assert_awaited_once_with("blogs/new.jpg")
    assert (await Blog.get(blog.id)).image_key is None


async def test_new_image_replaces_the_old_one(client, author, category, uploads):
    upload, delete = uploads
    blog = await make_blog(
        author, category, status=BlogStatus.PENDING, image_key="blogs/old.jpg"
    )

    response = await client.put(
        f"/api/blogs/user/{blog.id}", files=IMAGE, headers=auth_headers(author)
    )
    assert response.status_code == 200
    assert response.json()["data"]["image_url"] == "https://cdn.example.com/blogs/new.jpg"
    delete.assert_awaited_once_with("blogs/old.jpg")
    assert (await Blog.get(blog.id)).image_key == "blogs/new.jpg"


async def test_image_upload_failure_aborts_create(client, author, category, uploads):
    upload, delete = uploads
    upload.side_effect = DependencyError("Image upload failed")

    response = await client.post(
        "/api/blogs/", data=blog_form(category), files=IMAGE, headers=auth_headers(author)
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Image upload failed"}
    assert await Blog.find_all().count() == 0


async def test_image_upload_failure_leaves_blog_unchanged(client, author, category, uploads):
    upload, delete = uploads
    upload.side_effect = DependencyError("Image upload failed")
    blog = await make_blog(
        author, category, status=BlogStatus.PENDING, image_key="blogs/old.jpg"
    )

    response = await client.put(
        f"/api/blogs/user/{blog.id}",
        data={"title": "Brand new title"},
        files=IMAGE,
        headers=auth_headers(author),
    )
    assert response.status_code == 500
    assert response.json()["success"] is False

    stored = await Blog.get(blog.id)
    assert stored.title == "A Day in the City"
    assert stored.image_key == "blogs/old.jpg"
    delete.assert_not_awaited()
