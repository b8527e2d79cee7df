# app/db.py
import asyncio
import logging
import time
from urllib.parse import urlparse
from typing import Optional

import motor.motor_asyncio
from beanie import init_beanie

from .config import settings
from .models.user import User
from .models.blog import Blog
from .models.category import Category
from .models.subscriber import Subscriber
from .models.contact import ContactMessage
from .models.admin_action import AdminAction

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "daily_world_blog"

DOCUMENT_MODELS = [
    User,
    Blog,
    Category,
    Subscriber,
    ContactMessage,
    AdminAction,
]

# Globals (one client + one beanie-init flag per process)
_global_client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
_beanie_initialized = False
_beanie_lock = asyncio.Lock()


def _database_name() -> str:
    if settings.MONGO_DB_NAME:
        return settings.MONGO_DB_NAME
    parsed = urlparse(settings.MONGO_URI)
    return parsed.path.lstrip("/") or DEFAULT_DB_NAME


def _make_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    return motor.motor_asyncio.AsyncIOMotorClient(
        settings.MONGO_URI,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=5000,
        socketTimeoutMS=10000,
        maxPoolSize=10,
        appname="daily-world-blog-api",
        retryWrites=True,
        retryReads=True,
        tz_aware=True,
    )


async def get_db_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    """Return the process-wide Motor client, creating it on first use."""
    global _global_client

    if _global_client is None:
        _global_client = _make_client()
        logger.info("MongoDB client created for database '%s'", _database_name())
    return _global_client


async def init_beanie_if_needed() -> None:
    """
    Initialize Beanie once per process.

    Concurrent first requests wait on the lock; every later call returns
    immediately.
    """
    global _beanie_initialized

    if _beanie_initialized:
        return

    async with _beanie_lock:
        if _beanie_initialized:
            return

        start_time = time.time()
        try:
            client = await get_db_client()
            db = client.get_database(_database_name())
            await init_beanie(
                database=db,
                document_models=DOCUMENT_MODELS,
                allow_index_dropping=False,
            )
        except Exception:
            logger.exception("Beanie initialization failed")
            raise

        _beanie_initialized = True
        logger.info("Beanie models initialized in %.2fs", time.time() - start_time)


async def init_db() -> None:
    await init_beanie_if_needed()


def mark_initialized() -> None:
    """Flag Beanie as ready when models were bound to a database elsewhere."""
    global _beanie_initialized
    _beanie_initialized = True


def close_client() -> None:
    """
    Close and drop the process-global client (useful during cleanup/tests).
    """
    global _global_client, _beanie_initialized
    if _global_client is not None:
        _global_client.close()
    _global_client = None
    _beanie_initialized = False
