import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import Database
from main import create_app
from security import Credentials

TEST_SECRET = "test-signing-secret-at-least-32-bytes-long"


@pytest.fixture()
def settings():
    # rounds=4 is bcrypt's minimum and keeps the suite fast
    return Settings(jwt_secret=TEST_SECRET, bcrypt_rounds=4, db_name="shop_test")


@pytest.fixture()
def database():
    return Database(mongomock.MongoClient()["shop_test"])


@pytest.fixture()
def credentials(settings):
    return Credentials.from_settings(settings)


@pytest.fixture()
def client(settings, database):
    app = create_app(settings, database)
    with TestClient(app) as client:
        yield client


def register(client, name="Alice", email="alice@example.com", password="s3cret-pass"):
    """Helper: POST /api/auth/register and return the response."""
    return client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
