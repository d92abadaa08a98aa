"""
Server-rendered admin dashboards for the question catalog and the stage
categories. Form posts run the same controllers as the JSON API; a failed
action re-renders (or redirects) with the error and leaves data unchanged.
"""

import os
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as SchemaValidationError

from ..controllers import exam_questions, stage_categories
from ..errors import AppError, describe_validation_errors
from ..models import COURSES, STAGES, SUBJECTS
from ..models.exam_question import DifficultyLevel, ExamQuestionCreate
from ..models.stage_category import CategoryStatus, StageCategoryCreate
from ..models.user import User
from ..utils.cache import Cache, get_cache
from ..utils.database import get_db
from ..utils.security import get_current_admin

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))

router = APIRouter(prefix="/dashboard", tags=["dashboard"], include_in_schema=False)


def _redirect(request: Request, route: str, **params) -> RedirectResponse:
    url = request.url_for(route).include_query_params(**{k: v for k, v in params.items() if v})
    return RedirectResponse(str(url), status_code=status.HTTP_303_SEE_OTHER)


async def _choices(db: AsyncIOMotorDatabase, collection: str, label: str) -> list:
    docs = await db[collection].find({}, {label: 1}).sort(label, 1).to_list(None)
    return [{"id": str(d["_id"]), "label": d.get(label, "")} for d in docs]


async def _render_questions(
    request: Request,
    db: AsyncIOMotorDatabase,
    user: User,
    filters: dict,
    page: int = 1,
    message: Optional[str] = None,
    error: Optional[str] = None,
    form: Optional[dict] = None,
    status_code: int = status.HTTP_200_OK,
):
    try:
        listing = await exam_questions.list_questions(db, page=page, limit=20, **filters)
    except AppError as e:
        error = error or e.message
        filters = {}
        listing = await exam_questions.list_questions(db, page=1, limit=20)

    return templates.TemplateResponse(
        request,
        "exam_questions.html",
        {
            "user": user,
            "questions": listing["data"],
            "pagination": listing["pagination"],
            "statistics": listing["statistics"],
            "filters": filters,
            "stages": await _choices(db, STAGES, "name"),
            "subjects": await _choices(db, SUBJECTS, "title"),
            "courses": await _choices(db, COURSES, "title"),
            "difficulties": [d.value for d in DifficultyLevel],
            "form": form or {},
            "message": message,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/exam-questions", name="exam_question_dashboard")
async def exam_question_dashboard(
    request: Request,
    page: int = Query(1, ge=1),
    stage_id: str = Query("", alias="stageId"),
    subject_id: str = Query("", alias="subjectId"),
    course_id: str = Query("", alias="courseId"),
    difficulty: str = "",
    is_active: str = Query("", alias="isActive"),
    search: str = "",
    message: Optional[str] = None,
    error: Optional[str] = None,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    filters = {
        "stage_id": stage_id,
        "subject_id": subject_id,
        "course_id": course_id,
        "difficulty": difficulty,
        "is_active": is_active,
        "search": search,
    }
    return await _render_questions(request, db, current_user, filters, page, message, error)


@router.post("/exam-questions")
async def submit_exam_question(
    request: Request,
    stage_id: str = Form("", alias="stageId"),
    subject_id: str = Form("", alias="subjectId"),
    course_id: str = Form("", alias="courseId"),
    question: str = Form(""),
    options: str = Form(""),
    correct_answer: Optional[int] = Form(None, alias="correctAnswer"),
    explanation: str = Form(""),
    difficulty: DifficultyLevel = Form(DifficultyLevel.MEDIUM),
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """
    Create-question modal: one option per line, answer index is zero based
    """
    form = {
        "stageId": stage_id,
        "subjectId": subject_id,
        "courseId": course_id,
        "question": question,
        "options": [line.strip() for line in options.splitlines() if line.strip()],
        "correctAnswer": correct_answer,
        "explanation": explanation,
        "difficulty": difficulty.value,
    }
    try:
        payload = ExamQuestionCreate.model_validate(form)
        result = await exam_questions.create_question(db, cache, current_user, payload)
    except SchemaValidationError as e:
        error = describe_validation_errors(e.errors())
    except AppError as e:
        error = e.message
    else:
        return _redirect(request, "exam_question_dashboard", message=result["message"])

    return await _render_questions(
        request, db, current_user, {}, error=error, form=form, status_code=status.HTTP_400_BAD_REQUEST
    )


@router.post("/exam-questions/{question_id}/toggle")
async def toggle_exam_question(
    request: Request,
    question_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    try:
        result = await exam_questions.toggle_status(db, cache, current_user, question_id)
    except AppError as e:
        return _redirect(request, "exam_question_dashboard", error=e.message)
    return _redirect(request, "exam_question_dashboard", message=result["message"])


@router.post("/exam-questions/{question_id}/delete")
async def remove_exam_question(
    request: Request,
    question_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    try:
        result = await exam_questions.delete_question(db, cache, question_id)
    except AppError as e:
        return _redirect(request, "exam_question_dashboard", error=e.message)
    return _redirect(request, "exam_question_dashboard", message=result["message"])


async def _render_categories(
    request: Request,
    db: AsyncIOMotorDatabase,
    user: User,
    search: str = "",
    status_filter: Optional[str] = None,
    message: Optional[str] = None,
    error: Optional[str] = None,
    form: Optional[dict] = None,
    status_code: int = status.HTTP_200_OK,
):
    listing = await stage_categories.list_categories(db, page=1, limit=100, search=search, status=status_filter)
    return templates.TemplateResponse(
        request,
        "stage_categories.html",
        {
            "user": user,
            "categories": listing["data"]["categories"],
            "pagination": listing["data"]["pagination"],
            "stages": await _choices(db, STAGES, "name"),
            "statuses": [s.value for s in CategoryStatus],
            "search": search,
            "status_filter": status_filter or "",
            "form": form or {},
            "message": message,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/stage-categories", name="stage_category_dashboard")
async def stage_category_dashboard(
    request: Request,
    search: str = "",
    status_filter: str = Query("", alias="status"),
    message: Optional[str] = None,
    error: Optional[str] = None,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await _render_categories(request, db, current_user, search, status_filter or None, message, error)


@router.post("/stage-categories")
async def submit_stage_category(
    request: Request,
    name: str = Form(""),
    description: str = Form(""),
    stages: List[str] = Form([]),
    category_status: CategoryStatus = Form(CategoryStatus.ACTIVE, alias="status"),
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    form = {"name": name, "description": description, "stages": stages, "status": category_status.value}
    try:
        result = await stage_categories.create_category(db, StageCategoryCreate(**form))
    except AppError as e:
        return await _render_categories(
            request, db, current_user, error=e.message, form=form, status_code=status.HTTP_400_BAD_REQUEST
        )
    return _redirect(request, "stage_category_dashboard", message=result["message"])


@router.post("/stage-categories/{category_id}/delete")
async def remove_stage_category(
    request: Request,
    category_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        result = await stage_categories.delete_category(db, category_id)
    except AppError as e:
        return _redirect(request, "stage_category_dashboard", error=e.message)
    return _redirect(request, "stage_category_dashboard", message=result["message"])
