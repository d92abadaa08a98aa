from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import CamelModel, Reference, UtcDatetime, utcnow

# (wire name, attribute name)
REQUIRED_FIELDS = (
    ("stageId", "stage_id"),
    ("subjectId", "subject_id"),
    ("courseId", "course_id"),
    ("question", "question"),
    ("options", "options"),
    ("correctAnswer", "correct_answer"),
)

SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "difficulty": "difficulty",
    "question": "question",
    "isActive": "is_active",
}


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


OptionText = Annotated[str, Field(min_length=1, max_length=500)]


class ExamQuestionCreate(CamelModel):
    """Payload of a single create (also one entry of a bulk create)"""

    stage_id: str
    subject_id: str
    course_id: str
    question: str
    options: List[Any]
    correct_answer: int
    explanation: Optional[str] = None
    image: Optional[str] = None
    number_of_options: Optional[int] = None
    difficulty: Optional[DifficultyLevel] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data):
        if isinstance(data, dict):
            for alias, name in REQUIRED_FIELDS:
                value = data.get(alias, data.get(name))
                # an empty options list and a 0 answer index count as present
                if value is None or (name not in ("correct_answer", "options") and not value):
                    raise ValueError("Missing required fields")
        return data


class ExamQuestionUpdate(CamelModel):
    stage_id: Optional[str] = None
    subject_id: Optional[str] = None
    course_id: Optional[str] = None
    question: Optional[str] = None
    options: Optional[List[Any]] = None
    correct_answer: Optional[int] = None
    explanation: Optional[str] = None
    image: Optional[str] = None
    number_of_options: Optional[int] = None
    difficulty: Optional[DifficultyLevel] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class BulkCreateRequest(BaseModel):
    questions: List[Any]


class ExamQuestionDocument(BaseModel):
    """Stored shape of an exam question; validated before every write"""

    stage: ObjectId
    subject: ObjectId
    course: ObjectId
    question: str = Field(min_length=10, max_length=1000)
    options: List[OptionText] = Field(min_length=2, max_length=6)
    correct_answer: int = Field(ge=0)
    explanation: str = Field(default="", max_length=1000)
    image: str = ""
    number_of_options: int = Field(default=4, ge=2, le=6)
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    is_active: bool = True
    created_by: ObjectId
    last_modified_by: ObjectId
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    @model_validator(mode="after")
    def check_answer_and_option_count(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("Correct answer index must be within options range")
        if self.number_of_options != len(self.options):
            raise ValueError("Number of options must match numberOfOptions field")
        return self


class CourseReference(Reference):
    instructor: Optional[str] = None


class UserReference(CamelModel):
    id: str
    full_name: Optional[str] = None
    username: Optional[str] = None


class ExamQuestionRead(CamelModel):
    id: str
    stage: Optional[Reference] = None
    subject: Optional[Reference] = None
    course: Optional[CourseReference] = None
    question: str
    options: List[str]
    correct_answer: int
    correct_answer_text: str = ""
    explanation: str = ""
    image: str = ""
    number_of_options: int
    difficulty: DifficultyLevel
    is_active: bool
    created_by: Optional[UserReference] = None
    last_modified_by: Optional[UserReference] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
