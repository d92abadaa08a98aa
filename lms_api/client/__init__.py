"""
Async API client and the client-side state slices built on it.
"""

from .exam_questions import ExamQuestionSlice
from .http import create_api_client
from .stage_categories import StageCategorySlice

__all__ = ["ExamQuestionSlice", "StageCategorySlice", "create_api_client"]
