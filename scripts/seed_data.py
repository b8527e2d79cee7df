import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import List

import os
import sys

from faker import Faker

# Add the project root to Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from app.auth import AuthService
from app.db import init_db
from app.models.blog import Blog
from app.models.category import Category
from app.models.enums import BlogStatus, UserRole
from app.models.user import User
from app.utils import slugify

fake = Faker()

CATEGORY_NAMES = ["World", "Technology", "Business", "Health", "Travel", "Sports"]
ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "password")


def get_random_timestamp(days_ago: int = 180):
    return datetime.now(timezone.utc) - timedelta(days=random.randint(0, days_ago))


async def create_admin_user() -> User:
    """Create the admin account unless one with the same email exists."""
    existing = await User.find_one({"email": ADMIN_EMAIL})
    if existing:
        print(f"Admin {ADMIN_EMAIL} already exists, skipping")
        return existing

    admin = User(
        username="admin",
        name="Admin User",
        email=ADMIN_EMAIL,
        password_hash=AuthService.get_password_hash(ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_verified=True,
        is_approved=True,
    )
    await admin.insert()
    print(f"Created admin user: {ADMIN_EMAIL}")
    return admin


async def create_users(count: int = 10) -> List[User]:
    users = []
    for _ in range(count):
        username = f"{fake.user_name()}{random.randint(10, 999)}"
        user = User(
            username=username,
            name=fake.name(),
            email=f"{username}@example.com",
            password_hash=AuthService.get_password_hash("password"),
            role=random.choice([UserRole.USER, UserRole.BLOGGER]),
            bio=fake.sentence(),
            location=fake.city(),
            created_at=get_random_timestamp(),
        )
        await user.insert()
        users.append(user)
    print(f"Created {len(users)} users")
    return users


async def create_categories() -> List[Category]:
    categories = []
    for name in CATEGORY_NAMES:
        category = await Category.find_one({"slug": slugify(name)})
        if category is None:
            category = Category(
                name=name,
                slug=slugify(name),
                description=f"Latest {name.lower()} stories",
            )
            await category.insert()
        categories.append(category)
    print(f"{len(categories)} categories ready")
    return categories


async def create_blogs(
    authors: List[User], categories: List[Category], admin: User, count: int = 40
) -> List[Blog]:
    blogs = []
    for _ in range(count):
        title = fake.unique.sentence(nb_words=6).rstrip(".")
        status = random.choice(list(BlogStatus))
        created_at = get_random_timestamp()

        blog = Blog(
            title=title,
            slug=slugify(title),
            user_id=random.choice(authors).id,
            category_id=random.choice(categories).id,
            status=status,
            tags=[fake.word() for _ in range(3)],
            views=random.randint(0, 2000) if status == BlogStatus.PUBLISHED else 0,
            created_at=created_at,
            updated_at=created_at,
        )
        blog.set_description(
            "".join(f"<p>{paragraph}</p>" for paragraph in fake.paragraphs(nb=5))
        )
        blog.excerpt = fake.sentence(nb_words=20)

        if status == BlogStatus.PUBLISHED:
            blog.approved_at = created_at
            blog.approved_by = admin.id
            blog.is_featured = random.random() < 0.15
            blog.is_hot = random.random() < 0.15
        elif status == BlogStatus.REJECTED:
            blog.rejected_at = created_at
            blog.rejected_by = admin.id
            blog.rejection_reason = "Needs more sources"

        await blog.insert()
        blogs.append(blog)
    print(f"Created {len(blogs)} blogs")
    return blogs


async def main():
    await init_db()
    admin = await create_admin_user()
    users = await create_users()
    categories = await create_categories()
    await create_blogs(users, categories, admin)
    print("Seeding complete")


if __name__ == "__main__":
    asyncio.run(main())
