import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient

from lms_api.controllers.exam_questions import STATISTICS_NAMESPACE
from lms_api.main import create_app
from lms_api.models import EXAM_QUESTIONS
from lms_api.utils.cache import Cache

from .conftest import API_URL


@pytest.fixture
def redis():
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
async def cached_client(db, redis, admin_token):
    app = create_app(database=db, cache=Cache(redis, 60))
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=API_URL,
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as ac:
        yield ac


async def summary(client):
    response = await client.get("/exam-questions/statistics")
    assert response.status_code == 200
    return response.json()["data"]["summary"]


async def create(client, data):
    response = await client.post("/exam-questions", json=data)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_statistics_are_served_from_cache(cached_client, question_data, db, redis):
    await create(cached_client, question_data(question="Cached question one"))
    assert (await summary(cached_client))["totalQuestions"] == 1
    assert await redis.keys(f"lms-cache:{STATISTICS_NAMESPACE}:*")

    # a write that bypasses the API leaves the cached entry in place
    await db[EXAM_QUESTIONS].delete_one({"_id": (await db[EXAM_QUESTIONS].find_one({}))["_id"]})
    assert (await summary(cached_client))["totalQuestions"] == 1


async def test_every_write_invalidates_statistics(cached_client, question_data):
    first = await create(cached_client, question_data(question="Cached question one"))
    assert (await summary(cached_client))["totalQuestions"] == 1

    await create(cached_client, question_data(question="Cached question two"))
    assert (await summary(cached_client))["totalQuestions"] == 2

    await cached_client.patch(f"/exam-questions/{first['id']}/toggle-status")
    toggled = await summary(cached_client)
    assert toggled["inactiveQuestions"] == 1
    assert toggled["activeQuestions"] == 1

    await cached_client.put(f"/exam-questions/{first['id']}", json={"difficulty": "hard"})
    assert (await summary(cached_client))["hardQuestions"] == 1

    await cached_client.delete(f"/exam-questions/{first['id']}")
    assert (await summary(cached_client))["totalQuestions"] == 1

    response = await cached_client.post(
        "/exam-questions/bulk",
        json={"questions": [question_data(question=f"Cached bulk question {n}") for n in range(2)]},
    )
    assert response.status_code == 201
    assert (await summary(cached_client))["totalQuestions"] == 3


async def test_failed_bulk_create_still_invalidates(cached_client, question_data):
    assert (await summary(cached_client))["totalQuestions"] == 0

    response = await cached_client.post(
        "/exam-questions/bulk",
        json={"questions": [
            question_data(question="Cached bulk question ok"),
            question_data(question="Cached bulk question broken", options=["only"], correctAnswer=0),
        ]},
    )

    assert response.status_code == 400
    assert (await summary(cached_client))["totalQuestions"] == 1


async def test_late_write_of_old_generation_is_never_read(redis):
    cache = Cache(redis, 60)
    key = await cache.versioned_key(STATISTICS_NAMESPACE, "-", "-", "-")

    # a read that started before the invalidation stores its result afterwards
    await cache.invalidate(STATISTICS_NAMESPACE)
    await cache.set(key, {"summary": {"totalQuestions": 99}})

    fresh = await cache.versioned_key(STATISTICS_NAMESPACE, "-", "-", "-")
    assert fresh != key
    assert await cache.get(fresh) is None
