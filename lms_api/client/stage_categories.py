from typing import List, Optional

from pydantic import Field

from .base import Slice, SliceState, drop_empty, replace_record

DEFAULT_PAGINATION = {"page": 1, "limit": 50, "total": 0, "pages": 0}


def empty_filters() -> dict:
    return {"search": "", "status": ""}


class StageCategoryState(SliceState):
    categories: List[dict] = []
    current_category: Optional[dict] = None
    pagination: dict = Field(default_factory=lambda: dict(DEFAULT_PAGINATION))
    filters: dict = Field(default_factory=empty_filters)


class StageCategorySlice(Slice):
    """Client state of the stage categories"""

    state_class = StageCategoryState

    async def fetch_all(self, page: int = 1, limit: int = 50, **params) -> Optional[List[dict]]:
        query = drop_empty({**self.state.filters, "page": page, "limit": limit, **params})
        body = await self._request(
            "GET", "/stage-categories", "Failed to fetch stage categories", action=False, params=query
        )
        if body is None:
            return None
        self.state.categories = body["data"]["categories"]
        self.state.pagination = body["data"]["pagination"]
        return self.state.categories

    async def fetch_one(self, category_id: str) -> Optional[dict]:
        body = await self._request(
            "GET", f"/stage-categories/{category_id}", "Failed to fetch stage category", action=False
        )
        if body is None:
            return None
        self.state.current_category = body["data"]["category"]
        return self.state.current_category

    async def create(self, data: dict) -> Optional[dict]:
        body = await self._request("POST", "/stage-categories", "Failed to create stage category", json=data)
        if body is None:
            return None
        category = body["data"]["category"]
        self.state.categories.insert(0, category)
        self.state.pagination["total"] += 1
        return category

    async def update(self, category_id: str, data: dict) -> Optional[dict]:
        body = await self._request(
            "PUT", f"/stage-categories/{category_id}", "Failed to update stage category", json=data
        )
        if body is None:
            return None
        category = body["data"]["category"]
        replace_record(self.state.categories, category)
        if self.state.current_category and self.state.current_category["id"] == category["id"]:
            self.state.current_category = category
        return category

    async def delete(self, category_id: str) -> Optional[str]:
        body = await self._request(
            "DELETE", f"/stage-categories/{category_id}", "Failed to delete stage category"
        )
        if body is None:
            return None
        deleted_id = body["data"]["id"]
        self.state.categories = [c for c in self.state.categories if c["id"] != deleted_id]
        self.state.pagination["total"] = max(self.state.pagination["total"] - 1, 0)
        if self.state.current_category and self.state.current_category["id"] == deleted_id:
            self.state.current_category = None
        return deleted_id

    # local reducers
    def set_filters(self, **filters) -> None:
        self.state.filters = {**self.state.filters, **filters}

    def clear_filters(self) -> None:
        self.state.filters = empty_filters()

    def select(self, category: dict) -> None:
        self.state.current_category = category

    def clear_selection(self) -> None:
        self.state.current_category = None

    def clear_categories(self) -> None:
        self.state.categories = []
