"""
Test fixtures: an in-memory Mongo bound to the Beanie documents, an HTTP
client for the app, and helpers to create users, categories and blogs.
"""

import os
import uuid
from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, patch

# Settings are read at import time
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017/daily_world_blog_test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["SENDER_EMAIL"] = ""
os.environ["SENDER_PASSWORD"] = ""
os.environ["FTP_HOST"] = ""

import pytest
import pytest_asyncio
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app import db as app_db
from app.auth import AuthService
from app.main import app
from app.models.blog import Blog
from app.models.category import Category
from app.models.enums import BlogStatus, UserRole, UserStatus
from app.models.user import User
from app.utils import slugify


@pytest_asyncio.fixture(autouse=True)
async def database():
    client = AsyncMongoMockClient()
    db = client[f"test_{uuid.uuid4().hex}"]
    await init_beanie(database=db, document_models=app_db.DOCUMENT_MODELS)
    app_db.mark_initialized()
    yield db


@pytest.fixture(autouse=True)
def sitemap_upload():
    """Published blogs schedule a sitemap refresh; keep it off the filesystem"""
    with patch(
        "app.services.sitemap_service.SitemapService.regenerate_and_upload",
        new_callable=AsyncMock,
        return_value=True,
    ) as mocked:
        yield mocked


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(
    username: str,
    role: UserRole = UserRole.USER,
    status: UserStatus = UserStatus.ACTIVE,
    password: str = "secret123",
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        name=username.title(),
        password_hash=AuthService.get_password_hash(password),
        role=role,
        status=status,
    )
    await user.insert()
    return user


def auth_headers(user: User) -> Dict[str, str]:
    token = AuthService.issue_tokens(user).access_token
    return {"Authorization": f"Bearer {token}"}


async def make_category(name: str = "World News", enabled: bool = True) -> Category:
    category = Category(name=name, slug=slugify(name), status=enabled)
    await category.insert()
    return category


async def make_blog(
    owner: User,
    category: Category,
    title: str = "A Day in the City",
    status: BlogStatus = BlogStatus.PUBLISHED,
    **fields,
) -> Blog:
    description = fields.pop("description", "<p>Some words about the city.</p>")
    blog = Blog(
        title=title,
        slug=slugify(title),
        user_id=owner.id,
        category_id=category.id,
        status=status,
        **fields,
    )
    blog.set_description(description)
    await blog.insert()
    return blog


@pytest_asyncio.fixture
async def admin() -> User:
    return await make_user("admin", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def author() -> User:
    return await make_user("author")


@pytest_asyncio.fixture
async def reader() -> User:
    return await make_user("reader")


@pytest_asyncio.fixture
async def category() -> Category:
    return await make_category()
