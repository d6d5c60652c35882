"""
Shared fixtures: an in-memory Mongo store, seeded lessons and a test client.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import StoreContext
from main import create_app
from seed import seed_lessons


@pytest.fixture
def store():
    return StoreContext.from_client(mongomock.MongoClient(), "test_lessons")


@pytest.fixture
def seeded_store(store):
    seed_lessons(store.lessons)
    return store


@pytest.fixture
def images_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def client(seeded_store, images_dir):
    app = create_app(seeded_store, images_dir=images_dir)
    return TestClient(app)


@pytest.fixture
def lesson_id(seeded_store):
    """Hex id of the seeded Math lesson."""
    return str(seeded_store.lessons.find_one({"subject": "Math"})["_id"])
