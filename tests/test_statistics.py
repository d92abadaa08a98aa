import pytest
from bson import ObjectId

from lms_api.models import STAGES, SUBJECTS
from lms_api.utils.cache import Cache


async def create(client, data):
    response = await client.post("/exam-questions", json=data)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
async def second_stage(db):
    result = await db[STAGES].insert_one({"name": "Primary 2", "status": "active"})
    return str(result.inserted_id)


@pytest.fixture
async def second_subject(db):
    result = await db[SUBJECTS].insert_one({"title": "Science"})
    return str(result.inserted_id)


async def test_statistics_over_whole_catalog(client, question_data, catalog, second_stage, second_subject):
    await create(client, question_data(question="Primary one question A", difficulty="easy"))
    await create(client, question_data(question="Primary one question B"))
    await create(
        client,
        question_data(question="Primary two science question", stageId=second_stage, subjectId=second_subject),
    )

    response = await client.get("/exam-questions/statistics")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["summary"]["totalQuestions"] == 3
    assert data["summary"]["easyQuestions"] == 1
    assert data["summary"]["mediumQuestions"] == 2
    assert data["stageDistribution"] == [
        {"id": catalog["stageId"], "name": "Primary 1", "count": 2},
        {"id": second_stage, "name": "Primary 2", "count": 1},
    ]
    assert data["subjectDistribution"][0] == {"id": catalog["subjectId"], "name": "Mathematics", "count": 2}


async def test_statistics_narrowed_by_path(client, question_data, catalog, second_stage):
    await create(client, question_data(question="Primary one question A"))
    await create(client, question_data(question="Primary two question A", stageId=second_stage))

    by_course = (await client.get(f"/exam-questions/statistics/{catalog['courseId']}")).json()["data"]
    assert by_course["summary"]["totalQuestions"] == 2

    by_stage = (
        await client.get(f"/exam-questions/statistics/{catalog['courseId']}/{second_stage}")
    ).json()["data"]
    assert by_stage["summary"]["totalQuestions"] == 1
    assert by_stage["stageDistribution"] == [{"id": second_stage, "name": "Primary 2", "count": 1}]

    by_subject = await client.get(
        f"/exam-questions/statistics/{catalog['courseId']}/{catalog['stageId']}/{catalog['subjectId']}"
    )
    assert by_subject.json()["data"]["summary"]["totalQuestions"] == 1


async def test_statistics_treats_undefined_segment_as_absent(client, question_data, second_stage):
    await create(client, question_data(question="Primary one question A"))
    await create(client, question_data(question="Primary two question A", stageId=second_stage))

    response = await client.get(f"/exam-questions/statistics/undefined/{second_stage}")

    assert response.status_code == 200
    assert response.json()["data"]["summary"]["totalQuestions"] == 1


async def test_statistics_of_empty_catalog(client):
    data = (await client.get(f"/exam-questions/statistics/{ObjectId()}")).json()["data"]

    assert data["summary"] == {
        "totalQuestions": 0,
        "easyQuestions": 0,
        "mediumQuestions": 0,
        "hardQuestions": 0,
        "activeQuestions": 0,
        "inactiveQuestions": 0,
    }
    assert data["stageDistribution"] == []
    assert data["subjectDistribution"] == []


@pytest.mark.parametrize(
    "path,message",
    [
        ("/exam-questions/statistics/not-an-id", "Invalid course ID format"),
        (f"/exam-questions/statistics/{ObjectId()}/1234", "Invalid stage ID format"),
        (f"/exam-questions/statistics/{ObjectId()}/{ObjectId()}/zzzzzzzzzzzzzzzzzzzzzzzz", "Invalid subject ID format"),
    ],
)
async def test_statistics_rejects_malformed_ids(client, path, message):
    response = await client.get(path)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": message, "code": "INVALID_ID_FORMAT"}


def test_cache_keys_are_namespaced():
    cache = Cache(None, 60)

    assert cache.key("exam-question-statistics", "-", "abc") == "lms-cache:exam-question-statistics:-:abc"
    assert cache.enabled is False


async def test_disabled_cache_always_misses():
    cache = Cache(None, 60)

    assert await cache.set("lms-cache:x", {"a": 1}) is False
    assert await cache.get("lms-cache:x") is None
    await cache.invalidate("x")
