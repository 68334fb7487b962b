from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

import services.posts
from dependencies import get_current_user
from main import app, init_services
from models.user import User
from services.accounts import AccountStore
from services.feed import FeedAssembler
from services.firestore import FirestoreDB
from services.posts import PostRepository
from services.s3 import S3Service
from tests.fakes import FakeFirestoreClient

ALICE = "alice-uid"
BOB = "bob-uid"
CAROL = "carol-uid"


@pytest.fixture
def fake_client():
    client = FakeFirestoreClient()
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    client.data["users"] = {
        ALICE: {"username": "alice", "email": "alice@example.com", "created_at": created},
        BOB: {"username": "bob", "email": "bob@example.com", "created_at": created},
        CAROL: {"username": "carol", "email": "carol@example.com", "created_at": created},
    }
    return client


@pytest.fixture
def db(fake_client):
    return FirestoreDB(fake_client)


@pytest.fixture
def accounts(db):
    return AccountStore(db)


@pytest.fixture
def repo(db, accounts):
    return PostRepository(db, accounts)


@pytest.fixture
def feed(db, accounts):
    return FeedAssembler(db, accounts)


@pytest.fixture
def clock(monkeypatch):
    """Make every write one second later than the previous one"""
    state = {"now": datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)}

    def tick():
        state["now"] += timedelta(seconds=1)
        return state["now"]

    monkeypatch.setattr(services.posts, "_now", tick)
    return state


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def api(db, s3_client):
    """TestClient with services backed by the fake store, acting as ALICE"""
    init_services(app, db, S3Service("test-bucket", s3_client, "us-east-2"))
    caller = {"user": User(user_id=ALICE, email="alice@example.com")}
    app.dependency_overrides[get_current_user] = lambda: caller["user"]

    client = TestClient(app)
    client.caller = caller
    yield client

    app.dependency_overrides.clear()


@pytest.fixture
def act_as(api):
    """Switch the authenticated caller for subsequent requests"""
    def switch(user_id: str):
        api.caller["user"] = User(user_id=user_id)
    return switch
