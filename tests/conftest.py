import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from lms_api.main import create_app
from lms_api.models import COURSES, STAGES, SUBJECTS, USERS
from lms_api.models.common import utcnow
from lms_api.utils.database import ensure_indexes
from lms_api.utils.security import create_access_token

API_URL = "http://test/api/v1"

DEVICE_INFO = {
    "platform": "Linux x86_64",
    "screenResolution": "1920x1080",
    "timezone": "Africa/Cairo",
}


async def insert_user(db, role="ADMIN", email="admin@example.com", **extra):
    doc = {
        "email": email,
        "full_name": f"{role.title()} User",
        "username": email.split("@")[0],
        "role": role,
        "is_active": True,
        "created_at": utcnow(),
        "last_login": None,
        **extra,
    }
    result = await db[USERS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def token_for(user: dict) -> str:
    return create_access_token({"sub": str(user["_id"]), "role": user["role"]})


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["lms_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def app(db):
    return create_app(database=db)


@pytest.fixture
async def admin(db):
    return await insert_user(db)


@pytest.fixture
def admin_token(admin):
    return token_for(admin)


@pytest.fixture
async def client(app, admin_token):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=API_URL,
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as ac:
        yield ac


@pytest.fixture
async def anonymous_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url=API_URL) as ac:
        yield ac


@pytest.fixture
async def catalog(db):
    stage = await db[STAGES].insert_one({"name": "Primary 1", "status": "active"})
    subject = await db[SUBJECTS].insert_one({"title": "Mathematics"})
    course = await db[COURSES].insert_one({"title": "Arithmetic basics", "instructor": "Mona Adel"})
    return {
        "stageId": str(stage.inserted_id),
        "subjectId": str(subject.inserted_id),
        "courseId": str(course.inserted_id),
    }


@pytest.fixture
def question_data(catalog):
    def build(**overrides):
        data = {
            **catalog,
            "question": "What is 2+2?",
            "options": ["3", "4", "5"],
            "correctAnswer": 1,
        }
        data.update(overrides)
        return data

    return build
