import logging
from datetime import timezone

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from ..config import Settings
from ..models import EXAM_QUESTIONS, STAGE_CATEGORIES, USERS

logger = logging.getLogger(__name__)


async def connect_to_db(settings: Settings) -> AsyncIOMotorClient:
    """
    Open the MongoDB connection pool and verify the server answers
    """
    client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True, tzinfo=timezone.utc)
    await client.admin.command("ping")
    logger.info("Connected to MongoDB")
    return client


def get_default_database(client: AsyncIOMotorClient, settings: Settings) -> AsyncIOMotorDatabase:
    # Database named in the URI wins over MONGODB_DB_NAME
    return client.get_default_database(default=settings.MONGODB_DB_NAME)


async def close_db_connection(client: AsyncIOMotorClient) -> None:
    client.close()
    logger.info("MongoDB connection closed")


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the indexes both collections rely on; safe to call repeatedly
    """
    questions = db[EXAM_QUESTIONS]
    await questions.create_index([("stage", ASCENDING), ("subject", ASCENDING), ("course", ASCENDING)])
    for field in ("stage", "subject", "course", "difficulty", "is_active"):
        await questions.create_index(field)
    await questions.create_index([("created_at", DESCENDING)])

    await db[STAGE_CATEGORIES].create_index("name", unique=True)
    await db[USERS].create_index("email")
    logger.info("Indexes ensured")


def get_db(request: Request) -> AsyncIOMotorDatabase:
    """
    Dependency returning the store handle attached to the application
    """
    return request.app.state.db
