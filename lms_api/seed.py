"""
Seed the sample stages, the three stage categories grouping them and,
optionally, an admin account. Running it again updates what already exists.

    python -m lms_api.seed --admin-email admin@example.com --admin-password secret123
"""

import argparse
import asyncio
import logging
from typing import Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from .config import settings
from .models import STAGE_CATEGORIES, STAGES, USERS
from .models.common import utcnow
from .models.user import UserRole
from .utils.database import close_db_connection, connect_to_db, ensure_indexes, get_default_database
from .utils.security import get_password_hash

logger = logging.getLogger(__name__)

STAGE_GROUPS = {
    "Primary": 6,
    "Preparatory": 3,
    "Secondary": 3,
}

CATEGORIES = [
    ("Primary Stage", "Primary", "Grades one to six of primary school"),
    ("Preparatory Stage", "Preparatory", "Grades one to three of preparatory school"),
    ("Secondary Stage", "Secondary", "Grades one to three of secondary school"),
]


def stage_names() -> Dict[str, List[str]]:
    return {group: [f"{group} {grade}" for grade in range(1, count + 1)] for group, count in STAGE_GROUPS.items()}


async def seed_stages(db: AsyncIOMotorDatabase) -> Dict[str, List[ObjectId]]:
    created = {}
    for group, names in stage_names().items():
        created[group] = []
        for name in names:
            stage = await db[STAGES].find_one({"name": name})
            if stage is None:
                result = await db[STAGES].insert_one({"name": name, "status": "active", "created_at": utcnow()})
                created[group].append(result.inserted_id)
                logger.info(f"Created stage {name}")
            else:
                created[group].append(stage["_id"])
    return created


async def seed_categories(db: AsyncIOMotorDatabase, stages: Dict[str, List[ObjectId]]) -> List[ObjectId]:
    category_ids = []
    for name, group, description in CATEGORIES:
        members = stages.get(group, [])
        if not members:
            logger.warning(f"No stages found for category {name}")
            continue

        now = utcnow()
        await db[STAGE_CATEGORIES].update_one(
            {"name": name},
            {
                "$set": {"description": description, "stages": members, "updated_at": now},
                "$setOnInsert": {"status": "active", "created_at": now},
            },
            upsert=True,
        )
        category = await db[STAGE_CATEGORIES].find_one({"name": name}, {"_id": 1})
        await db[STAGES].update_many({"_id": {"$in": members}}, {"$set": {"category": category["_id"]}})
        category_ids.append(category["_id"])
        logger.info(f"Category {name} holds {len(members)} stages")
    return category_ids


async def seed_admin(db: AsyncIOMotorDatabase, email: str, password: str, full_name: str = "Administrator") -> ObjectId:
    existing = await db[USERS].find_one({"email": email})
    if existing is not None:
        await db[USERS].update_one(
            {"_id": existing["_id"]},
            {"$set": {"password": get_password_hash(password), "role": UserRole.ADMIN.value, "is_active": True}},
        )
        logger.info(f"Updated admin {email}")
        return existing["_id"]

    result = await db[USERS].insert_one({
        "email": email,
        "full_name": full_name,
        "username": email.split("@")[0],
        "role": UserRole.ADMIN.value,
        "is_active": True,
        "password": get_password_hash(password),
        "created_at": utcnow(),
        "last_login": None,
    })
    logger.info(f"Created admin {email}")
    return result.inserted_id


async def seed(db: AsyncIOMotorDatabase, admin_email: Optional[str] = None, admin_password: Optional[str] = None) -> dict:
    await ensure_indexes(db)
    stages = await seed_stages(db)
    categories = await seed_categories(db, stages)
    admin = None
    if admin_email and admin_password:
        admin = await seed_admin(db, admin_email, admin_password)
    return {
        "stages": sum(len(ids) for ids in stages.values()),
        "categories": len(categories),
        "admin": str(admin) if admin else None,
    }


async def run(args: argparse.Namespace) -> dict:
    client = await connect_to_db(settings)
    try:
        return await seed(get_default_database(client, settings), args.admin_email, args.admin_password)
    finally:
        await close_db_connection(client)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Seed stages, stage categories and an admin account")
    parser.add_argument("--admin-email", help="email of the admin account to create or update")
    parser.add_argument("--admin-password", help="password of the admin account")
    args = parser.parse_args(argv)
    if bool(args.admin_email) != bool(args.admin_password):
        parser.error("--admin-email and --admin-password go together")

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    summary = asyncio.run(run(args))
    logger.info(f"Seeded {summary['stages']} stages and {summary['categories']} categories")


if __name__ == "__main__":
    main()
