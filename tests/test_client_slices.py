import httpx
import pytest
from httpx import ASGITransport

from lms_api.client import ExamQuestionSlice, StageCategorySlice, create_api_client
from lms_api.models import STAGES

from .conftest import API_URL, DEVICE_INFO


@pytest.fixture
async def api(app, admin_token):
    async with create_api_client(
        base_url=API_URL, token=admin_token, device_info=DEVICE_INFO, transport=ASGITransport(app=app)
    ) as client:
        yield client


@pytest.fixture
def questions(api):
    return ExamQuestionSlice(api)


@pytest.fixture
def categories(api):
    return StageCategorySlice(api)


def test_client_headers(api, admin_token):
    assert api.headers["Authorization"] == f"Bearer {admin_token}"
    assert api.headers["Accept"] == "application/json"
    assert "screenResolution" in api.headers["X-Device-Info"]
    assert api.timeout.read == 30.0


async def test_create_prepends_and_bumps_total(questions, question_data):
    first = await questions.create(question_data(question="First slice question"))
    second = await questions.create(question_data(question="Second slice question"))

    assert [q["id"] for q in questions.state.questions] == [second["id"], first["id"]]
    assert questions.state.pagination["totalResults"] == 2
    assert questions.state.notification == "Exam question created successfully"
    assert questions.state.action_loading is False


async def test_failed_create_keeps_state(questions, question_data):
    await questions.create(question_data(question="First slice question"))

    result = await questions.create(question_data(options=["only"], correctAnswer=0))

    assert result is None
    assert questions.state.action_error == "At least 2 options are required"
    assert questions.state.notification == "At least 2 options are required"
    assert len(questions.state.questions) == 1
    assert questions.state.pagination["totalResults"] == 1


async def test_fetch_all_uses_non_empty_filters(questions, question_data):
    await questions.create(question_data(question="Easy slice question", difficulty="easy"))
    await questions.create(question_data(question="Hard slice question", difficulty="hard"))

    questions.set_filters(difficulty="hard")
    fetched = await questions.fetch_all()

    assert [q["question"] for q in fetched] == ["Hard slice question"]
    assert questions.state.pagination["totalResults"] == 1
    assert questions.state.statistics["hardQuestions"] == 1
    assert questions.state.loading is False

    questions.clear_filters()
    assert len(await questions.fetch_all()) == 2


async def test_update_and_toggle_replace_record(questions, question_data):
    created = await questions.create(question_data())
    await questions.fetch_one(created["id"])

    updated = await questions.update(created["id"], {"difficulty": "hard"})
    assert updated["difficulty"] == "hard"
    assert questions.state.questions[0]["difficulty"] == "hard"
    assert questions.state.selected_question["difficulty"] == "hard"

    toggled = await questions.toggle_status(created["id"])
    assert toggled["isActive"] is False
    assert questions.state.questions[0]["isActive"] is False
    assert questions.state.selected_question["isActive"] is False


async def test_delete_removes_record(questions, question_data):
    created = await questions.create(question_data())
    questions.select(created)

    assert await questions.delete(created["id"]) == created["id"]
    assert questions.state.questions == []
    assert questions.state.pagination["totalResults"] == 0
    assert questions.state.selected_question is None

    assert await questions.delete(created["id"]) is None
    assert questions.state.action_error == "Exam question not found"


async def test_bulk_create_and_course_listing(questions, question_data, catalog):
    created = await questions.bulk_create([question_data(question=f"Bulk slice question {n}") for n in range(3)])

    assert len(created) == 3
    assert questions.state.pagination["totalResults"] == 3

    by_course = await questions.fetch_by_course(catalog["courseId"])
    assert [q["question"] for q in by_course] == [f"Bulk slice question {n}" for n in range(3)]


async def test_statistics_with_skipped_course(questions, question_data, catalog):
    await questions.create(question_data())

    overview = await questions.fetch_statistics(stage_id=catalog["stageId"])

    assert overview["summary"]["totalQuestions"] == 1
    assert questions.state.overview == overview

    assert await questions.fetch_statistics(course_id="bad-id") is None
    assert questions.state.error == "Invalid course ID format"


async def test_migration_check(questions):
    report = await questions.check_migration()

    assert report == {"questionsNeedingMigration": 0, "questions": []}


async def test_local_reducers(questions):
    questions.set_filters(search="fractions", stageId="abc")
    assert questions.state.filters["search"] == "fractions"
    assert questions.state.filters["difficulty"] == ""

    questions.state.error = "boom"
    questions.state.action_error = "boom"
    questions.clear_error()
    assert questions.state.error is None and questions.state.action_error is None

    questions.select({"id": "1"})
    questions.clear_selection()
    assert questions.state.selected_question is None


async def test_transport_failure_uses_fallback_message():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with create_api_client(base_url=API_URL, transport=httpx.MockTransport(refuse)) as client:
        questions = ExamQuestionSlice(client)
        assert await questions.fetch_all() is None

    assert questions.state.error == "Failed to fetch exam questions"
    assert questions.state.loading is False
    assert questions.state.questions == []


async def test_category_slice_flow(categories, db):
    stage = await db[STAGES].insert_one({"name": "Primary 1", "status": "active"})

    created = await categories.create({"name": "Primary Stage", "stages": [str(stage.inserted_id)]})
    assert categories.state.categories[0]["id"] == created["id"]
    assert categories.state.pagination["total"] == 1

    assert await categories.create({"name": "Primary Stage"}) is None
    assert categories.state.action_error == "Category name already exists"
    assert len(categories.state.categories) == 1

    await categories.fetch_one(created["id"])
    updated = await categories.update(created["id"], {"description": "Grades one to six"})
    assert categories.state.categories[0]["description"] == "Grades one to six"
    assert categories.state.current_category == updated

    categories.set_filters(search="grades")
    listed = await categories.fetch_all()
    assert [c["name"] for c in listed] == ["Primary Stage"]
    assert categories.state.pagination["total"] == 1

    assert await categories.delete(created["id"]) == created["id"]
    assert categories.state.categories == []
    assert categories.state.current_category is None
