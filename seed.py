"""
Reset the lesson collection to the canonical ten lessons.

Usage: python seed.py   (reads MONGO_URI / DB_NAME like the API)
"""

import logging
import sys

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from config import ConfigError, load_settings
from database import StoreContext
from logging_config import setup_logging
from schemas import Lesson

logger = logging.getLogger(__name__)

SEED_LESSONS = [
    Lesson(subject="Math", location="Hendon", price=100, spaces=5),
    Lesson(subject="Science", location="Colindale", price=90, spaces=5),
    Lesson(subject="English", location="Brent Cross", price=80, spaces=5),
    Lesson(subject="Coding", location="Golders Green", price=95, spaces=5),
    Lesson(subject="Art", location="Camden", price=70, spaces=5),
    Lesson(subject="Music", location="Barnet", price=85, spaces=5),
    Lesson(subject="Drama", location="Edgware", price=75, spaces=5),
    Lesson(subject="Robotics", location="Wembley", price=110, spaces=5),
    Lesson(subject="Chess", location="Mill Hill", price=65, spaces=5),
    Lesson(subject="French", location="Finchley", price=88, spaces=5),
]


def seed_lessons(lessons: Collection) -> int:
    """Delete every lesson and insert the seed set. Returns the count inserted."""
    lessons.delete_many({})
    result = lessons.insert_many([lesson.model_dump() for lesson in SEED_LESSONS])
    return len(result.inserted_ids)


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        setup_logging()
        logger.error("%s", exc)
        return 1

    setup_logging(settings.log_level)
    try:
        store = StoreContext.connect(settings)
    except PyMongoError as exc:
        logger.error("Failed to connect to MongoDB: %s", exc)
        return 1

    try:
        count = seed_lessons(store.lessons)
        logger.info("Seeded lessons: %d", count)
    except PyMongoError:
        logger.exception("Seeding failed")
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
