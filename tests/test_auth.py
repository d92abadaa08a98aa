import json

import pytest
from httpx import ASGITransport, AsyncClient

from lms_api.config import Settings
from lms_api.errors import AuthorizationError, DeviceInfoError
from lms_api.main import create_app
from lms_api.models import USERS
from lms_api.utils.device import parse_device_info
from lms_api.utils.security import create_access_token, decode_token, get_password_hash

from .conftest import API_URL, DEVICE_INFO, insert_user

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def member(db):
    return await insert_user(db, role="ADMIN", email="instructor@example.com", password=get_password_hash(PASSWORD))


def credentials(password=PASSWORD):
    return {"username": "instructor@example.com", "password": password}


async def test_login_with_device_header(anonymous_client, member, db):
    response = await anonymous_client.post(
        "/auth/login", data=credentials(), headers={"X-Device-Info": json.dumps(DEVICE_INFO)}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user_id"] == str(member["_id"])
    assert body["role"] == "ADMIN"
    assert response.headers["set-cookie"].startswith(f"access_token={body['access_token']}")
    stored = await db[USERS].find_one({"_id": member["_id"]})
    assert stored["last_login"] is not None


async def test_login_with_device_form_field(anonymous_client, member):
    response = await anonymous_client.post(
        "/auth/login", data={**credentials(), "deviceInfo": json.dumps(DEVICE_INFO)}
    )

    assert response.status_code == 200


async def test_login_without_device_info(anonymous_client, member):
    response = await anonymous_client.post("/auth/login", data=credentials())

    assert response.status_code == 400
    assert response.json()["code"] == "DEVICE_INFO_MISSING"


@pytest.mark.parametrize(
    "raw",
    ["not json", json.dumps(["Linux"]), json.dumps({"platform": "Linux", "timezone": "UTC"})],
)
async def test_login_with_invalid_device_info(anonymous_client, member, raw):
    response = await anonymous_client.post("/auth/login", data=credentials(), headers={"X-Device-Info": raw})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DEVICE_INFO"


async def test_device_check_can_be_disabled(db, member):
    app = create_app(settings=Settings(REQUIRE_DEVICE_INFO=False), database=db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url=API_URL) as ac:
        response = await ac.post("/auth/login", data=credentials())

    assert response.status_code == 200


async def test_login_with_wrong_password(anonymous_client, member):
    response = await anonymous_client.post(
        "/auth/login", data=credentials("wrong-password"), headers={"X-Device-Info": json.dumps(DEVICE_INFO)}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect email or password"


async def test_login_of_inactive_account(anonymous_client, member, db):
    await db[USERS].update_one({"_id": member["_id"]}, {"$set": {"is_active": False}})

    response = await anonymous_client.post(
        "/auth/login", data=credentials(), headers={"X-Device-Info": json.dumps(DEVICE_INFO)}
    )

    assert response.status_code == 403


async def test_session_cookie_authenticates(anonymous_client, member):
    token = create_access_token({"sub": str(member["_id"]), "role": "ADMIN"})
    response = await anonymous_client.get("/auth/me", headers={"Cookie": f"access_token={token}"})

    assert response.status_code == 200
    assert response.json()["data"]["email"] == "instructor@example.com"
    assert "password" not in response.json()["data"]


async def test_malformed_token_is_rejected(anonymous_client):
    response = await anonymous_client.get("/auth/me", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Could not validate credentials"


async def test_logout(client):
    response = await client.post("/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Successfully logged out"}


def test_parse_device_info_accepts_objects():
    assert parse_device_info(DEVICE_INFO) == DEVICE_INFO

    with pytest.raises(DeviceInfoError) as excinfo:
        parse_device_info({"platform": "Linux", "screenResolution": "", "timezone": "UTC"})
    assert excinfo.value.code == "INVALID_DEVICE_INFO"


async def test_tokens_follow_the_app_settings(db, member):
    rotated = Settings(SECRET_KEY="rotated-secret-key", REQUIRE_DEVICE_INFO=False)
    app = create_app(settings=rotated, database=db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url=API_URL) as ac:
        default_token = create_access_token({"sub": str(member["_id"]), "role": "ADMIN"})
        rejected = await ac.get("/auth/me", headers={"Authorization": f"Bearer {default_token}"})

        login = await ac.post("/auth/login", data=credentials())
        token = login.json()["access_token"]
        accepted = await ac.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert decode_token(token, rotated).sub == str(member["_id"])
    with pytest.raises(AuthorizationError):
        decode_token(token)
