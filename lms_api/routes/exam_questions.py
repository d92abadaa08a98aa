from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..controllers import exam_questions
from ..models.exam_question import BulkCreateRequest, ExamQuestionCreate, ExamQuestionUpdate
from ..models.user import User
from ..utils.cache import Cache, get_cache
from ..utils.database import get_db
from ..utils.security import get_current_admin

router = APIRouter(prefix="/exam-questions", tags=["exam-questions"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_exam_question(
    payload: ExamQuestionCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """
    Create a new exam question
    """
    return await exam_questions.create_question(db, cache, current_user, payload)


@router.get("")
async def list_exam_questions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    stage_id: Optional[str] = Query(None, alias="stageId"),
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    difficulty: Optional[str] = None,
    is_active: Optional[str] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    List exam questions with filtering, pagination and summary statistics
    """
    return await exam_questions.list_questions(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        stage_id=stage_id,
        subject_id=subject_id,
        course_id=course_id,
        difficulty=difficulty,
        is_active=is_active,
        search=search,
    )


# Fixed paths must be registered before /{question_id}
@router.get("/statistics")
@router.get("/statistics/{course_id}")
@router.get("/statistics/{course_id}/{stage_id}")
@router.get("/statistics/{course_id}/{stage_id}/{subject_id}")
async def get_question_statistics(
    course_id: Optional[str] = None,
    stage_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return await exam_questions.statistics(db, cache, course_id, stage_id, subject_id)


@router.get("/migrate/check")
async def check_migration(
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await exam_questions.migration_check(db)


@router.get("/course/{course_id}")
async def list_course_questions(
    course_id: str,
    is_active: str = Query("true", alias="isActive"),
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await exam_questions.list_by_course(db, course_id, is_active)


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def bulk_create_exam_questions(
    payload: BulkCreateRequest,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """
    Create several questions in one request, stopping at the first invalid one
    """
    return await exam_questions.bulk_create(db, cache, current_user, payload.questions)


@router.get("/{question_id}")
async def get_exam_question(
    question_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await exam_questions.get_question(db, question_id)


@router.put("/{question_id}")
async def update_exam_question(
    question_id: str,
    payload: ExamQuestionUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return await exam_questions.update_question(db, cache, current_user, question_id, payload)


@router.delete("/{question_id}")
async def delete_exam_question(
    question_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return await exam_questions.delete_question(db, cache, question_id)


@router.patch("/{question_id}/toggle-status")
async def toggle_exam_question_status(
    question_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """
    Flip the active flag of a question
    """
    return await exam_questions.toggle_status(db, cache, current_user, question_id)
