import logging
import math
import re
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from bson.objectid import ObjectId
from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import DEFAULT_IMAGES_DIR, ConfigError, load_settings
from database import StoreContext, create_document, get_documents, get_store
from logging_config import setup_logging
from middleware import RequestLoggingMiddleware
from schemas import LESSON_UPDATABLE_FIELDS

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"[A-Za-z\s]+")
PHONE_RE = re.compile(r"[0-9]+")
# largest integer BSON can store
INT64_MAX = 2 ** 63 - 1


# Utility helpers
def to_json(doc):
    """Render store documents as JSON-ready data, ObjectIds as hex strings."""
    return jsonable_encoder(doc, custom_encoder={ObjectId: str})


def parse_number(text: str):
    """Return ``text`` as an int/float, or None if it is not numeric.

    Only ASCII numerals are accepted; ``Infinity`` is the one spelling of
    infinity recognised. Integral values outside int64 stay floats.
    """
    if not text.isascii() or "_" in text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    if math.isinf(value):
        return value if text.lstrip("+-") == "Infinity" else None
    if value.is_integer() and abs(value) <= INT64_MAX:
        return int(value)
    return value


def build_search_filter(q: str) -> dict:
    pattern = {"$regex": re.escape(q), "$options": "i"}
    clauses = [{"subject": pattern}, {"location": pattern}]
    number = parse_number(q)
    if number is not None:
        clauses.append({"price": number})
        clauses.append({"spaces": number})
    return {"$or": clauses}


def is_positive_int(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value.is_integer() and 0 < value <= INT64_MAX
    return isinstance(value, int) and 0 < value <= INT64_MAX


def validate_order(payload) -> dict:
    """Check an order body and return the cleaned fields.

    Raises HTTPException(400) on the first failing rule: name, phone,
    items, then each item's lessonId and quantity.
    """
    if not isinstance(payload, dict):
        payload = {}
    name = payload.get("name")
    phone = payload.get("phone")
    items = payload.get("items")

    if not isinstance(name, str) or not NAME_RE.fullmatch(name):
        raise HTTPException(status_code=400, detail="Invalid name")
    if not isinstance(phone, str) or not PHONE_RE.fullmatch(phone):
        raise HTTPException(status_code=400, detail="Invalid phone")
    if not isinstance(items, list) or not items:
        raise HTTPException(status_code=400, detail="No items in order")

    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            raise HTTPException(status_code=400, detail="Invalid lessonId")
        lesson_id = item.get("lessonId")
        if not isinstance(lesson_id, str) or not ObjectId.is_valid(lesson_id):
            raise HTTPException(status_code=400, detail="Invalid lessonId")
        quantity = item.get("quantity")
        if not is_positive_int(quantity):
            raise HTTPException(status_code=400, detail="Invalid quantity")
        cleaned.append({"lessonId": lesson_id, "quantity": int(quantity)})

    return {"name": name, "phone": phone, "items": cleaned}


def lesson_updates(payload) -> dict:
    if not isinstance(payload, dict):
        return {}
    return {k: payload[k] for k in LESSON_UPDATABLE_FIELDS if k in payload}


# Error rendering: every error body is {"error": "..."}
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.store is None:
        # started as ``uvicorn main:app``; configure from the environment
        settings = load_settings()
        setup_logging(settings.log_level)
        app.state.store = StoreContext.connect(settings)
        app.state.images_dir = settings.images_dir
    try:
        yield
    finally:
        app.state.store.close()


def create_app(store: Optional[StoreContext] = None, images_dir: Optional[Path] = None) -> FastAPI:
    app = FastAPI(title="Tutoring Lessons API", lifespan=lifespan)
    app.state.store = store
    app.state.images_dir = images_dir or DEFAULT_IMAGES_DIR

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/health/db")
    def health_db(store: StoreContext = Depends(get_store)):
        try:
            store.ping()
            return {
                "status": "connected",
                "database": store.db.name,
                "collections": {
                    "lessons": store.lessons.count_documents({}),
                    "orders": store.orders.count_documents({}),
                },
            }
        except PyMongoError:
            logger.exception("Database health check failed")
            return JSONResponse(
                status_code=500,
                content={"status": "disconnected", "error": "Database unavailable"},
            )

    @app.get("/images/{file_name}")
    def get_image(file_name: str, request: Request):
        images_dir = Path(request.app.state.images_dir).resolve()
        path = (images_dir / file_name).resolve()
        if path.parent != images_dir or not path.is_file():
            raise HTTPException(status_code=404, detail="Image not found")
        return FileResponse(path)

    # Lessons
    @app.get("/lessons")
    def list_lessons(store: StoreContext = Depends(get_store)):
        try:
            return to_json(get_documents(store.lessons))
        except PyMongoError:
            logger.exception("Failed to fetch lessons")
            raise HTTPException(status_code=500, detail="Failed to fetch lessons")

    @app.get("/search")
    def search_lessons(q: Optional[str] = None, store: StoreContext = Depends(get_store)):
        q = (q or "").strip()
        try:
            if not q:
                return to_json(get_documents(store.lessons))
            return to_json(get_documents(store.lessons, build_search_filter(q)))
        except PyMongoError:
            logger.exception("Search failed for q=%r", q)
            raise HTTPException(status_code=500, detail="Search failed")

    @app.put("/lessons/{lesson_id}")
    def update_lesson(lesson_id: str, payload: Any = Body(None), store: StoreContext = Depends(get_store)):
        if not ObjectId.is_valid(lesson_id):
            logger.info("PUT /lessons invalid id: %s", lesson_id)
            raise HTTPException(status_code=400, detail="Invalid id")

        updates = lesson_updates(payload)
        if not updates:
            logger.info("PUT /lessons no fields to update for id: %s", lesson_id)
            raise HTTPException(status_code=400, detail="No valid fields to update")

        try:
            doc = store.lessons.find_one_and_update(
                {"_id": ObjectId(lesson_id)},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                # older rows may carry the id as a plain string
                logger.info("PUT /lessons not found by ObjectId, trying string match for id: %s", lesson_id)
                doc = store.lessons.find_one_and_update(
                    {"_id": lesson_id},
                    {"$set": updates},
                    return_document=ReturnDocument.AFTER,
                )
        except PyMongoError:
            logger.exception("Failed to update lesson %s", lesson_id)
            raise HTTPException(status_code=500, detail="Failed to update lesson")

        if doc is None:
            raise HTTPException(status_code=404, detail="Lesson not found")
        return to_json(doc)

    # Orders
    @app.post("/orders", status_code=201)
    def create_order(payload: Any = Body(None), store: StoreContext = Depends(get_store)):
        fields = validate_order(payload)
        # No capacity check or decrement here; spaces change only via PUT /lessons/{id}.
        try:
            doc = create_document(store.orders, fields)
        except PyMongoError:
            logger.exception("Failed to create order")
            raise HTTPException(status_code=500, detail="Failed to create order")
        return to_json(doc)


app = create_app()


def main() -> None:
    import uvicorn

    try:
        settings = load_settings()
    except ConfigError as exc:
        setup_logging()
        logger.error("%s", exc)
        sys.exit(1)

    setup_logging(settings.log_level)
    try:
        store = StoreContext.connect(settings)
    except PyMongoError as exc:
        logger.error("Failed to connect to MongoDB: %s", exc)
        sys.exit(1)

    uvicorn.run(create_app(store, settings.images_dir), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
