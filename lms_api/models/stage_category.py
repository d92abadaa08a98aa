from datetime import datetime
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import CamelModel, UtcDatetime, utcnow


class CategoryStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class StageCategoryCreate(CamelModel):
    name: Optional[str] = None
    description: str = ""
    stages: List[Optional[str]] = []
    status: CategoryStatus = CategoryStatus.ACTIVE

    model_config = ConfigDict(extra="forbid")


class StageCategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    stages: Optional[List[Optional[str]]] = None
    status: Optional[CategoryStatus] = None

    model_config = ConfigDict(extra="forbid")


class StageCategoryDocument(BaseModel):
    """Stored shape of a stage category"""

    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=300)
    stages: List[ObjectId] = []
    status: CategoryStatus = CategoryStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("Category name is required")
        return value


class StageSummary(CamelModel):
    id: str
    name: Optional[str] = None
    status: Optional[str] = None


class StageCategoryRead(CamelModel):
    id: str
    name: str
    description: str = ""
    stages: List[StageSummary] = []
    status: CategoryStatus
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
