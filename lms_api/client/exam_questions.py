from typing import List, Optional

from pydantic import Field

from .base import Slice, SliceState, drop_empty, replace_record

DEFAULT_PAGINATION = {
    "currentPage": 1,
    "totalPages": 1,
    "totalResults": 0,
    "resultsPerPage": 20,
}

FILTER_KEYS = ("stageId", "subjectId", "courseId", "difficulty", "isActive", "search")


def empty_filters() -> dict:
    return {key: "" for key in FILTER_KEYS}


class ExamQuestionState(SliceState):
    questions: List[dict] = []
    selected_question: Optional[dict] = None
    statistics: Optional[dict] = None
    overview: Optional[dict] = None
    migration: Optional[dict] = None
    pagination: dict = Field(default_factory=lambda: dict(DEFAULT_PAGINATION))
    filters: dict = Field(default_factory=empty_filters)


class ExamQuestionSlice(Slice):
    """Client state of the exam question catalog"""

    state_class = ExamQuestionState

    async def create(self, data: dict) -> Optional[dict]:
        body = await self._request("POST", "/exam-questions", "Failed to create exam question", json=data)
        if body is None:
            return None
        self.state.questions.insert(0, body["data"])
        self.state.pagination["totalResults"] += 1
        return body["data"]

    async def fetch_all(self, page: int = 1, limit: int = 20, **params) -> Optional[List[dict]]:
        query = drop_empty({**self.state.filters, "page": page, "limit": limit, **params})
        body = await self._request(
            "GET", "/exam-questions", "Failed to fetch exam questions", action=False, params=query
        )
        if body is None:
            return None
        self.state.questions = body["data"]
        self.state.pagination = body["pagination"]
        self.state.statistics = body["statistics"]
        return body["data"]

    async def fetch_one(self, question_id: str) -> Optional[dict]:
        body = await self._request("GET", f"/exam-questions/{question_id}", "Failed to fetch exam question")
        if body is None:
            return None
        self.state.selected_question = body["data"]
        return body["data"]

    async def update(self, question_id: str, data: dict) -> Optional[dict]:
        body = await self._request(
            "PUT", f"/exam-questions/{question_id}", "Failed to update exam question", json=data
        )
        if body is None:
            return None
        self._replace(body["data"])
        return body["data"]

    async def delete(self, question_id: str) -> Optional[str]:
        body = await self._request("DELETE", f"/exam-questions/{question_id}", "Failed to delete exam question")
        if body is None:
            return None
        self.state.questions = [q for q in self.state.questions if q["id"] != question_id]
        self.state.pagination["totalResults"] -= 1
        if self.state.selected_question and self.state.selected_question["id"] == question_id:
            self.state.selected_question = None
        return question_id

    async def toggle_status(self, question_id: str) -> Optional[dict]:
        body = await self._request(
            "PATCH", f"/exam-questions/{question_id}/toggle-status", "Failed to toggle question status"
        )
        if body is None:
            return None
        self._replace(body["data"])
        return body["data"]

    async def fetch_by_course(self, course_id: str, is_active: str = "true") -> Optional[List[dict]]:
        body = await self._request(
            "GET",
            f"/exam-questions/course/{course_id}",
            "Failed to fetch exam questions",
            action=False,
            params={"isActive": is_active},
        )
        if body is None:
            return None
        self.state.questions = body["data"]
        return body["data"]

    async def bulk_create(self, questions: List[dict]) -> Optional[List[dict]]:
        body = await self._request(
            "POST", "/exam-questions/bulk", "Failed to bulk create questions", json={"questions": questions}
        )
        if body is None:
            return None
        self.state.questions[:0] = body["data"]
        self.state.pagination["totalResults"] += len(body["data"])
        return body["data"]

    async def fetch_statistics(
        self,
        course_id: Optional[str] = None,
        stage_id: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> Optional[dict]:
        segments = [course_id, stage_id, subject_id]
        while segments and not segments[-1]:
            segments.pop()
        # the server reads a skipped leading segment as "undefined"
        path = "/".join(["/exam-questions/statistics"] + [s or "undefined" for s in segments])
        body = await self._request("GET", path, "Failed to fetch question statistics", action=False)
        if body is None:
            return None
        self.state.overview = body["data"]
        return body["data"]

    async def check_migration(self) -> Optional[dict]:
        body = await self._request("GET", "/exam-questions/migrate/check", "Failed to check migration status")
        if body is None:
            return None
        self.state.migration = body["data"]
        return body["data"]

    def _replace(self, record: dict) -> None:
        replace_record(self.state.questions, record)
        if self.state.selected_question and self.state.selected_question["id"] == record["id"]:
            self.state.selected_question = record

    # local reducers
    def set_filters(self, **filters) -> None:
        self.state.filters = {**self.state.filters, **filters}

    def clear_filters(self) -> None:
        self.state.filters = empty_filters()

    def select(self, question: dict) -> None:
        self.state.selected_question = question

    def clear_selection(self) -> None:
        self.state.selected_question = None
