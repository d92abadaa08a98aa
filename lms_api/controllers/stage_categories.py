import logging
import re
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as SchemaValidationError
from pymongo import DESCENDING, ReturnDocument

from ..errors import DuplicateNameError, NotFoundError, ValidationError, describe_validation_errors
from ..models import STAGE_CATEGORIES, STAGES
from ..models.common import is_object_id, parse_object_id, utcnow
from ..models.stage_category import StageCategoryCreate, StageCategoryDocument, StageCategoryUpdate
from .projections import project_categories, project_category

logger = logging.getLogger(__name__)


async def name_taken(db: AsyncIOMotorDatabase, name: str, exclude_id: Optional[ObjectId] = None) -> bool:
    """
    Early duplicate check; the unique index on ``name`` has the final word
    """
    query = {"name": name}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return await db[STAGE_CATEGORIES].find_one(query, {"_id": 1}) is not None


async def validate_stages(db: AsyncIOMotorDatabase, stage_ids: List[Optional[str]]) -> List[ObjectId]:
    """
    De-duplicate the submitted ids (keeping order, dropping blanks) and make
    sure each one names an existing stage
    """
    unique_ids = list(dict.fromkeys(i for i in stage_ids if i))
    resolved = []
    for stage_id in unique_ids:
        if not is_object_id(stage_id) or await db[STAGES].find_one({"_id": ObjectId(stage_id)}, {"_id": 1}) is None:
            raise ValidationError(f"Stage not found: {stage_id}")
        resolved.append(ObjectId(stage_id))
    return resolved


def _validated(data: dict) -> dict:
    try:
        return StageCategoryDocument(**data).model_dump()
    except SchemaValidationError as e:
        raise ValidationError(describe_validation_errors(e.errors()))


async def list_categories(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 50,
    search: str = "",
    status: Optional[str] = None,
) -> dict:
    query = {}
    if status:
        query["status"] = status
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"description": pattern}]

    docs = await (
        db[STAGE_CATEGORIES]
        .find(query)
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .skip((page - 1) * limit)
        .limit(limit)
        .to_list(limit)
    )
    total = await db[STAGE_CATEGORIES].count_documents(query)
    return {
        "success": True,
        "message": "Categories fetched successfully",
        "data": {
            "categories": await project_categories(db, docs),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        },
    }


async def get_category(db: AsyncIOMotorDatabase, category_id: str) -> dict:
    doc = await db[STAGE_CATEGORIES].find_one({"_id": parse_object_id(category_id, "category ID")})
    if doc is None:
        raise NotFoundError("Category not found")
    return {"success": True, "message": "Category fetched", "data": {"category": await project_category(db, doc)}}


async def create_category(db: AsyncIOMotorDatabase, payload: StageCategoryCreate) -> dict:
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if await name_taken(db, name):
        logger.warning(f"Rejected duplicate category name {name!r}")
        raise DuplicateNameError()

    stages = await validate_stages(db, payload.stages)
    document = _validated({
        "name": name,
        "description": payload.description,
        "stages": stages,
        "status": payload.status,
    })
    # DuplicateKeyError from a concurrent insert is translated by the app
    result = await db[STAGE_CATEGORIES].insert_one(document)
    document["_id"] = result.inserted_id
    logger.info(f"Stage category {result.inserted_id} created with {len(stages)} stages")
    return {"success": True, "message": "Category created", "data": {"category": await project_category(db, document)}}


async def update_category(db: AsyncIOMotorDatabase, category_id: str, payload: StageCategoryUpdate) -> dict:
    oid = parse_object_id(category_id, "category ID")
    existing = await db[STAGE_CATEGORIES].find_one({"_id": oid})
    if existing is None:
        raise NotFoundError("Category not found")

    changes = payload.model_dump(exclude_unset=True)
    update = {}
    if changes.get("name"):
        name = changes["name"].strip()
        if await name_taken(db, name, exclude_id=oid):
            logger.warning(f"Rejected rename of {oid} to duplicate name {name!r}")
            raise DuplicateNameError()
        update["name"] = name
    if changes.get("description") is not None:
        update["description"] = changes["description"]
    if changes.get("status"):
        update["status"] = changes["status"]
    if changes.get("stages") is not None:
        update["stages"] = await validate_stages(db, changes["stages"])

    merged = {k: v for k, v in existing.items() if k != "_id"}
    merged.update(update)
    merged["updated_at"] = utcnow()
    document = _validated(merged)

    updated = await db[STAGE_CATEGORIES].find_one_and_update(
        {"_id": oid},
        {"$set": document},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFoundError("Category not found")
    logger.info(f"Stage category {oid} updated: {sorted(update)}")
    return {"success": True, "message": "Category updated", "data": {"category": await project_category(db, updated)}}


async def delete_category(db: AsyncIOMotorDatabase, category_id: str) -> dict:
    oid = parse_object_id(category_id, "category ID")
    deleted = await db[STAGE_CATEGORIES].find_one_and_delete({"_id": oid})
    if deleted is None:
        raise NotFoundError("Category not found")
    logger.info(f"Stage category {oid} deleted")
    return {"success": True, "message": "Category deleted", "data": {"id": category_id}}
