import mongomock
import pytest
from fastapi.testclient import TestClient

from app import app, get_db
from auth import create_access_token


def make_signals(nullifier=1234567890, user_identifier=0xABCDEF):
    signals = [str(i) for i in range(21)]
    signals[7] = str(nullifier)
    signals[20] = str(user_identifier)
    return signals


def make_proof():
    return {
        "a": ["1", "2"],
        "b": [["3", "4"], ["5", "6"]],
        "c": ["7", "8"],
    }


@pytest.fixture
def db():
    return mongomock.MongoClient()["voting_forum_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_id(client):
    r = client.post("/user", json={"wallet_address": "0xabc", "passport_id": "P123"})
    assert r.status_code == 201
    return r.json()["data"]["id"]


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": "0x0000000000000000000000000000000000000001"})
    return {"Authorization": f"Bearer {token}"}
