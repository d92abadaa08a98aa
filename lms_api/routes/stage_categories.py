from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..controllers import stage_categories
from ..models.stage_category import CategoryStatus, StageCategoryCreate, StageCategoryUpdate
from ..models.user import User
from ..utils.database import get_db
from ..utils.security import get_current_admin

router = APIRouter(prefix="/stage-categories", tags=["stage-categories"])


# public
@router.get("")
async def list_stage_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    search: str = "",
    status: Optional[CategoryStatus] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await stage_categories.list_categories(
        db, page=page, limit=limit, search=search, status=status.value if status else None
    )


@router.get("/{category_id}")
async def get_stage_category(category_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await stage_categories.get_category(db, category_id)


# admin
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_stage_category(
    payload: StageCategoryCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await stage_categories.create_category(db, payload)


@router.put("/{category_id}")
async def update_stage_category(
    category_id: str,
    payload: StageCategoryUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await stage_categories.update_category(db, category_id, payload)


@router.delete("/{category_id}")
async def delete_stage_category(
    category_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await stage_categories.delete_category(db, category_id)
