"""
Read-side projection: resolve the references held by stored documents into
the display fields embedded in API responses. Missing references resolve to
``None``; referential integrity is only checked when a reference is set.
"""

from typing import Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..models import COURSES, STAGES, SUBJECTS, USERS
from ..models.exam_question import CourseReference, ExamQuestionRead, UserReference
from ..models.common import Reference
from ..models.stage_category import StageCategoryRead, StageSummary


async def lookup_documents(
    db: AsyncIOMotorDatabase,
    collection: str,
    ids: Iterable,
    fields: dict,
) -> Dict[ObjectId, dict]:
    wanted = list({i for i in ids if isinstance(i, ObjectId)})
    if not wanted:
        return {}
    docs = await db[collection].find({"_id": {"$in": wanted}}, fields).to_list(None)
    return {doc["_id"]: doc for doc in docs}


def _reference(doc: Optional[dict], model=Reference):
    if doc is None:
        return None
    data = {k: v for k, v in doc.items() if k != "_id"}
    return model(id=str(doc["_id"]), **data)


async def project_questions(db: AsyncIOMotorDatabase, docs: List[dict]) -> List[dict]:
    stages = await lookup_documents(db, STAGES, (d.get("stage") for d in docs), {"name": 1})
    subjects = await lookup_documents(db, SUBJECTS, (d.get("subject") for d in docs), {"title": 1})
    courses = await lookup_documents(db, COURSES, (d.get("course") for d in docs), {"title": 1, "instructor": 1})
    user_ids = [d.get("created_by") for d in docs] + [d.get("last_modified_by") for d in docs]
    users = await lookup_documents(db, USERS, user_ids, {"full_name": 1, "username": 1})

    projected = []
    for doc in docs:
        options = doc.get("options") or []
        answer = doc.get("correct_answer", 0)
        read = ExamQuestionRead(
            id=str(doc["_id"]),
            stage=_reference(stages.get(doc.get("stage"))),
            subject=_reference(subjects.get(doc.get("subject"))),
            course=_reference(courses.get(doc.get("course")), CourseReference),
            question=doc["question"],
            options=options,
            correct_answer=answer,
            correct_answer_text=options[answer] if 0 <= answer < len(options) else "",
            explanation=doc.get("explanation", ""),
            image=doc.get("image", ""),
            number_of_options=doc.get("number_of_options", len(options)),
            difficulty=doc.get("difficulty", "medium"),
            is_active=doc.get("is_active", True),
            created_by=_reference(users.get(doc.get("created_by")), UserReference),
            last_modified_by=_reference(users.get(doc.get("last_modified_by")), UserReference),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )
        projected.append(read.model_dump(mode="json", by_alias=True))
    return projected


async def project_question(db: AsyncIOMotorDatabase, doc: dict) -> dict:
    return (await project_questions(db, [doc]))[0]


async def project_categories(db: AsyncIOMotorDatabase, docs: List[dict]) -> List[dict]:
    member_ids = [stage_id for d in docs for stage_id in d.get("stages", [])]
    stages = await lookup_documents(db, STAGES, member_ids, {"name": 1, "status": 1})

    projected = []
    for doc in docs:
        members = [
            StageSummary(id=str(s["_id"]), name=s.get("name"), status=s.get("status"))
            for s in (stages.get(i) for i in doc.get("stages", []))
            if s is not None
        ]
        read = StageCategoryRead(
            id=str(doc["_id"]),
            name=doc["name"],
            description=doc.get("description", ""),
            stages=members,
            status=doc.get("status", "active"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )
        projected.append(read.model_dump(mode="json", by_alias=True))
    return projected


async def project_category(db: AsyncIOMotorDatabase, doc: dict) -> dict:
    return (await project_categories(db, [doc]))[0]
