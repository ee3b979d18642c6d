"""
PDCA Tracker - Test Configuration and Fixtures
"""
import asyncio
import os
from datetime import date, timedelta
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

os.environ['JWT_SECRET'] = 'test-jwt-secret-for-testing-only'
os.environ['LOG_LEVEL'] = 'WARNING'

from pdca_tracker.main import app
from pdca_tracker.core.config import settings
from pdca_tracker.db.mongo import Collections, ensure_indexes, get_db
from pdca_tracker.api.v1.auth import create_access_token, new_user_doc
from pdca_tracker.models.user import UserRole

fake = Faker()


class YieldingCollection:
    """
    Collection proxy that hands control back to the event loop around every
    call, the way a real driver round trip does. The in-memory client never
    suspends, so without this, gathered coroutines simply run one by one.
    """

    YIELDING_METHODS = {
        "find_one", "find_one_and_update", "insert_one", "update_one", "delete_one",
    }

    def __init__(self, collection):
        self._collection = collection

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if name not in self.YIELDING_METHODS:
            return attr

        async def call(*args, **kwargs):
            await asyncio.sleep(0)
            result = await attr(*args, **kwargs)
            await asyncio.sleep(0)
            return result

        return call


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Keep uploads inside the test's temporary directory"""
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
async def db():
    """Fresh in-memory MongoDB database for each test"""
    client = AsyncMongoMockClient()
    database = client["pdca_tracker_test"]
    await ensure_indexes(database)
    yield database


@pytest.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency overridden"""
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db, role: UserRole, password: str) -> dict:
    user = new_user_doc(
        name=fake.unique.name(),
        email=f"{fake.unique.user_name()}@example.com",
        password=password,
        role=role
    )
    await db[Collections.USERS].insert_one(user)
    user.pop("_id", None)
    user["plain_password"] = password
    return user


@pytest.fixture
async def admin_user(db) -> dict:
    return await _create_user(db, UserRole.ADMIN, "adminpassword123")


@pytest.fixture
async def regular_user(db) -> dict:
    return await _create_user(db, UserRole.USER, "userpassword123")


@pytest.fixture
async def other_user(db) -> dict:
    return await _create_user(db, UserRole.USER, "otherpassword123")


def headers_for(user: dict) -> dict:
    token, _ = create_access_token(user["id"], user["role"])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def user_headers(regular_user) -> dict:
    return headers_for(regular_user)


@pytest.fixture
def other_headers(other_user) -> dict:
    return headers_for(other_user)


def task_payload(**overrides) -> dict:
    data = {
        "department": "Assembly",
        "pdca_stage": "Do",
        "source": "Internal audit",
        "processes": "Cable cutting",
        "action": "Recalibrate the cutting station",
        "assignee": "Jane Doe",
        "due_date": (date.today() + timedelta(days=7)).isoformat(),
        "progress_percent": 0,
        "comments": "",
    }
    data.update(overrides)
    return data


def order_payload(**overrides) -> dict:
    data = {
        "project": "Line 4 retrofit",
        "requester": "John Smith",
        "description": "Replacement crimping dies",
        "category": "Tooling",
        "deadline": (date.today() + timedelta(days=14)).isoformat(),
        "total_price": 1250.5,
        "pam": "A. Martin",
        "supplier": "Komax",
        "request_frame": "Framework contract 2025",
        "process": "Connecting",
    }
    data.update(overrides)
    return data
