import os

# Keep password hashing fast in tests.
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("JWT_SECRET", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture
def store():
    db = database.init_db(mongomock.MongoClient())
    yield db
    database.close_db()


@pytest.fixture
def client(store):
    return TestClient(app)
