import logging
import re
from typing import Any, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as SchemaValidationError
from pymongo import ASCENDING, DESCENDING

from ..errors import AppError, InvalidIdFormatError, NotFoundError, ValidationError, describe_validation_errors
from ..models import COURSES, EXAM_QUESTIONS, STAGES, SUBJECTS
from ..models.common import is_object_id, parse_object_id, utcnow
from ..models.exam_question import (
    SORT_FIELDS,
    DifficultyLevel,
    ExamQuestionCreate,
    ExamQuestionDocument,
    ExamQuestionUpdate,
)
from ..models.user import User
from ..utils.cache import Cache
from .projections import lookup_documents, project_question, project_questions

logger = logging.getLogger(__name__)

STATISTICS_NAMESPACE = "exam-question-statistics"

# request attribute -> (stored field, collection, label)
REFERENCES = {
    "stage_id": ("stage", STAGES, "Stage"),
    "subject_id": ("subject", SUBJECTS, "Subject"),
    "course_id": ("course", COURSES, "Course"),
}

EMPTY_SUMMARY = {
    "totalQuestions": 0,
    "easyQuestions": 0,
    "mediumQuestions": 0,
    "hardQuestions": 0,
    "activeQuestions": 0,
    "inactiveQuestions": 0,
}


def _count_if(condition: dict) -> dict:
    return {"$sum": {"$cond": [condition, 1, 0]}}


def summary_pipeline(match: dict) -> list:
    is_active = {"$eq": ["$is_active", True]}
    return [
        {"$match": match},
        {
            "$group": {
                "_id": None,
                "totalQuestions": {"$sum": 1},
                "easyQuestions": _count_if({"$eq": ["$difficulty", "easy"]}),
                "mediumQuestions": _count_if({"$eq": ["$difficulty", "medium"]}),
                "hardQuestions": _count_if({"$eq": ["$difficulty", "hard"]}),
                "activeQuestions": _count_if(is_active),
                "inactiveQuestions": {"$sum": {"$cond": [is_active, 0, 1]}},
            }
        },
    ]


async def _summary(db: AsyncIOMotorDatabase, match: dict) -> dict:
    rows = await db[EXAM_QUESTIONS].aggregate(summary_pipeline(match)).to_list(1)
    if not rows:
        return dict(EMPTY_SUMMARY)
    summary = {k: v for k, v in rows[0].items() if k != "_id"}
    return {**EMPTY_SUMMARY, **summary}


async def _distribution(db: AsyncIOMotorDatabase, match: dict, field: str, collection: str, label: str) -> list:
    rows = await db[EXAM_QUESTIONS].aggregate([
        {"$match": match},
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ]).to_list(None)
    names = await lookup_documents(db, collection, (row["_id"] for row in rows), {label: 1})
    return [
        {
            "id": str(row["_id"]) if row["_id"] is not None else None,
            "name": names.get(row["_id"], {}).get(label),
            "count": row["count"],
        }
        for row in rows
    ]


async def _require_reference(db: AsyncIOMotorDatabase, attribute: str, raw_id) -> ObjectId:
    field, collection, label = REFERENCES[attribute]
    oid = parse_object_id(raw_id, f"{label.lower()} ID")
    if await db[collection].find_one({"_id": oid}, {"_id": 1}) is None:
        raise NotFoundError(f"{label} not found")
    return oid


def _check_options(options, correct_answer: Optional[int] = None) -> None:
    if not isinstance(options, list) or len(options) < 2:
        raise ValidationError("At least 2 options are required")
    if correct_answer is not None and not 0 <= correct_answer < len(options):
        raise ValidationError("Invalid correct answer index")


def _validated_document(data: dict) -> dict:
    try:
        return ExamQuestionDocument(**data).model_dump()
    except SchemaValidationError as e:
        raise ValidationError(describe_validation_errors(e.errors()))


async def _load(db: AsyncIOMotorDatabase, question_id: str) -> dict:
    oid = parse_object_id(question_id, "question ID")
    doc = await db[EXAM_QUESTIONS].find_one({"_id": oid})
    if doc is None:
        raise NotFoundError("Exam question not found")
    return doc


async def _prepare_new(db: AsyncIOMotorDatabase, principal: User, payload: ExamQuestionCreate) -> dict:
    stage = await _require_reference(db, "stage_id", payload.stage_id)
    subject = await _require_reference(db, "subject_id", payload.subject_id)
    course = await _require_reference(db, "course_id", payload.course_id)
    _check_options(payload.options, payload.correct_answer)

    user_id = ObjectId(principal.id)
    return _validated_document({
        "stage": stage,
        "subject": subject,
        "course": course,
        "question": payload.question,
        "options": payload.options,
        "correct_answer": payload.correct_answer,
        "explanation": payload.explanation or "",
        "image": payload.image or "",
        "number_of_options": payload.number_of_options or len(payload.options),
        "difficulty": payload.difficulty or DifficultyLevel.MEDIUM,
        "created_by": user_id,
        "last_modified_by": user_id,
    })


def build_filter(
    stage_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    course_id: Optional[str] = None,
    difficulty: Optional[str] = None,
    is_active: Optional[str] = None,
    search: Optional[str] = None,
) -> dict:
    """
    Translate list query parameters into a MongoDB filter; empty strings
    mean "no filter"
    """
    query = {}
    for attribute, raw in (("stage_id", stage_id), ("subject_id", subject_id), ("course_id", course_id)):
        if raw:
            field, _, label = REFERENCES[attribute]
            query[field] = parse_object_id(raw, f"{label.lower()} ID")
    if difficulty:
        query["difficulty"] = difficulty
    if is_active is not None and is_active != "":
        query["is_active"] = is_active == "true"
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"question": pattern}, {"explanation": pattern}]
    return query


async def create_question(db: AsyncIOMotorDatabase, cache: Cache, principal: User, payload: ExamQuestionCreate) -> dict:
    doc = await _prepare_new(db, principal, payload)
    result = await db[EXAM_QUESTIONS].insert_one(doc)
    stored = await db[EXAM_QUESTIONS].find_one({"_id": result.inserted_id})
    await cache.invalidate(STATISTICS_NAMESPACE)
    logger.info(f"Exam question {result.inserted_id} created by {principal.id}")
    return {
        "success": True,
        "message": "Exam question created successfully",
        "data": await project_question(db, stored),
    }


async def list_questions(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    **filters,
) -> dict:
    query = build_filter(**filters)
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_by}")
    direction = DESCENDING if sort_order == "desc" else ASCENDING
    skip = (page - 1) * limit

    docs = await (
        db[EXAM_QUESTIONS]
        .find(query)
        .sort([(SORT_FIELDS[sort_by], direction), ("_id", direction)])
        .skip(skip)
        .limit(limit)
        .to_list(limit)
    )
    total = await db[EXAM_QUESTIONS].count_documents(query)

    return {
        "success": True,
        "data": await project_questions(db, docs),
        "pagination": {
            "currentPage": page,
            "totalPages": (total + limit - 1) // limit,
            "totalResults": total,
            "resultsPerPage": limit,
        },
        "statistics": await _summary(db, query),
    }


async def get_question(db: AsyncIOMotorDatabase, question_id: str) -> dict:
    doc = await _load(db, question_id)
    return {"success": True, "data": await project_question(db, doc)}


async def update_question(
    db: AsyncIOMotorDatabase,
    cache: Cache,
    principal: User,
    question_id: str,
    payload: ExamQuestionUpdate,
) -> dict:
    existing = await _load(db, question_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    if "options" in changes:
        _check_options(changes["options"], changes.get("correct_answer"))
        changes.setdefault("number_of_options", len(changes["options"]))

    for attribute in REFERENCES:
        if attribute in changes:
            field = REFERENCES[attribute][0]
            changes[field] = await _require_reference(db, attribute, changes.pop(attribute))

    merged = {k: v for k, v in existing.items() if k != "_id"}
    merged.update(changes)
    merged["last_modified_by"] = ObjectId(principal.id)
    merged["updated_at"] = utcnow()
    document = _validated_document(merged)

    await db[EXAM_QUESTIONS].update_one({"_id": existing["_id"]}, {"$set": document})
    await cache.invalidate(STATISTICS_NAMESPACE)
    logger.info(f"Exam question {existing['_id']} updated by {principal.id}: {sorted(changes)}")
    return {
        "success": True,
        "message": "Exam question updated successfully",
        "data": await project_question(db, {"_id": existing["_id"], **document}),
    }


async def delete_question(db: AsyncIOMotorDatabase, cache: Cache, question_id: str) -> dict:
    existing = await _load(db, question_id)
    await db[EXAM_QUESTIONS].delete_one({"_id": existing["_id"]})
    await cache.invalidate(STATISTICS_NAMESPACE)
    logger.info(f"Exam question {existing['_id']} deleted")
    return {"success": True, "message": "Exam question deleted successfully"}


async def toggle_status(db: AsyncIOMotorDatabase, cache: Cache, principal: User, question_id: str) -> dict:
    doc = await _load(db, question_id)
    doc["is_active"] = not doc.get("is_active", True)
    doc["last_modified_by"] = ObjectId(principal.id)
    doc["updated_at"] = utcnow()

    await db[EXAM_QUESTIONS].update_one(
        {"_id": doc["_id"]},
        {"$set": {
            "is_active": doc["is_active"],
            "last_modified_by": doc["last_modified_by"],
            "updated_at": doc["updated_at"],
        }},
    )
    await cache.invalidate(STATISTICS_NAMESPACE)
    state = "activated" if doc["is_active"] else "deactivated"
    logger.info(f"Exam question {doc['_id']} {state} by {principal.id}")
    return {
        "success": True,
        "message": f"Question {state} successfully",
        "data": await project_question(db, doc),
    }


async def list_by_course(db: AsyncIOMotorDatabase, course_id: str, is_active: str = "true") -> dict:
    query = {
        "course": parse_object_id(course_id, "course ID"),
        "is_active": is_active == "true",
    }
    docs = await (
        db[EXAM_QUESTIONS]
        .find(query)
        .sort([("created_at", ASCENDING), ("_id", ASCENDING)])
        .to_list(None)
    )
    return {"success": True, "data": await project_questions(db, docs), "count": len(docs)}


async def bulk_create(db: AsyncIOMotorDatabase, cache: Cache, principal: User, items: List[Any]) -> dict:
    """
    Validate and insert each item in order. The first invalid item stops the
    batch; items inserted before it stay and are reported in the error.
    """
    if not items:
        raise ValidationError("Questions array is required")

    created = []
    try:
        for index, item in enumerate(items):
            text = item.get("question") if isinstance(item, dict) else None
            try:
                payload = ExamQuestionCreate.model_validate(item)
                doc = await _prepare_new(db, principal, payload)
            except SchemaValidationError as e:
                raise _bulk_failure(ValidationError(describe_validation_errors(e.errors())), text, created, index)
            except AppError as e:
                raise _bulk_failure(e, text, created, index)

            result = await db[EXAM_QUESTIONS].insert_one(doc)
            doc["_id"] = result.inserted_id
            created.append(doc)
    finally:
        if created:
            await cache.invalidate(STATISTICS_NAMESPACE)

    logger.info(f"Bulk created {len(created)} exam questions for {principal.id}")
    return {
        "success": True,
        "message": f"{len(created)} exam questions created successfully",
        "data": await project_questions(db, created),
    }


def _bulk_failure(error: AppError, text, created: list, index: int) -> AppError:
    logger.warning(f"Bulk create stopped at item {index} after {len(created)} inserts: {error.message}")
    return AppError(
        f"{error.message} for question: {text}",
        status_code=error.status_code,
        code=error.code,
        data={"created": [str(doc["_id"]) for doc in created], "failedIndex": index},
    )


async def statistics(
    db: AsyncIOMotorDatabase,
    cache: Cache,
    course_id: Optional[str] = None,
    stage_id: Optional[str] = None,
    subject_id: Optional[str] = None,
) -> dict:
    match = {}
    for raw, field in ((course_id, "course"), (stage_id, "stage"), (subject_id, "subject")):
        if raw and raw != "undefined":
            if not is_object_id(raw):
                raise InvalidIdFormatError(f"Invalid {field} ID format")
            match[field] = ObjectId(raw)

    key = await cache.versioned_key(
        STATISTICS_NAMESPACE, *(str(match.get(f, "-")) for f in ("course", "stage", "subject"))
    )
    cached = await cache.get(key)
    if cached is not None:
        return cached

    response = {
        "success": True,
        "data": {
            "summary": await _summary(db, match),
            "stageDistribution": await _distribution(db, match, "stage", STAGES, "name"),
            "subjectDistribution": await _distribution(db, match, "subject", SUBJECTS, "title"),
        },
    }
    await cache.set(key, response)
    return response


async def migration_check(db: AsyncIOMotorDatabase) -> dict:
    """
    Report questions stored without a stage or subject reference
    """
    docs = await db[EXAM_QUESTIONS].find({"$or": [{"stage": None}, {"subject": None}]}).to_list(None)
    return {
        "success": True,
        "message": f"Found {len(docs)} questions that need migration",
        "data": {
            "questionsNeedingMigration": len(docs),
            "questions": [
                {
                    "id": str(doc["_id"]),
                    "question": doc.get("question", "")[:50] + "...",
                    "hasStage": bool(doc.get("stage")),
                    "hasSubject": bool(doc.get("subject")),
                    "hasCourse": bool(doc.get("course")),
                }
                for doc in docs
            ],
        },
    }
