"""
MongoDB access for the lessons API.

``StoreContext`` owns the client and the two collections the service
uses. It is created once at startup and handed to route handlers through
the ``get_store`` dependency.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Request
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

LESSON_COLLECTION = "lesson"
ORDER_COLLECTION = "order"


@dataclass
class StoreContext:
    client: MongoClient
    db: Database
    lessons: Collection
    orders: Collection

    @classmethod
    def from_client(cls, client: MongoClient, db_name: str) -> "StoreContext":
        db = client[db_name]
        return cls(
            client=client,
            db=db,
            lessons=db[LESSON_COLLECTION],
            orders=db[ORDER_COLLECTION],
        )

    @classmethod
    def connect(cls, settings: Settings) -> "StoreContext":
        """Open a client, ping the server and log what we connected to.

        Any driver error propagates; callers treat it as fatal.
        """
        options = {}
        if settings.tls_insecure:
            options["tlsAllowInvalidCertificates"] = True

        logger.info("Attempting to connect to MongoDB...")
        client = MongoClient(settings.mongo_uri, **options)
        try:
            client.admin.command("ping")
            ctx = cls.from_client(client, settings.db_name)
            logger.info(
                "Connected to MongoDB database=%s lessons=%d orders=%d",
                settings.db_name,
                ctx.lessons.count_documents({}),
                ctx.orders.count_documents({}),
            )
        except Exception:
            client.close()
            raise
        return ctx

    def ping(self) -> None:
        self.db.command("ping")

    def close(self) -> None:
        self.client.close()
        logger.info("MongoDB connection closed")


def get_store(request: Request) -> StoreContext:
    return request.app.state.store


# Document helpers
def create_document(collection: Collection, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert ``data`` stamped with ``createdAt`` and return it with its ``_id``."""
    doc = dict(data)
    doc["createdAt"] = datetime.now(timezone.utc)
    result = collection.insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_documents(collection: Collection, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return list(collection.find(filter_dict or {}))
