"""
API Dependencies

Database, store and lifecycle engine injection; task body parsing.
"""

import json
from typing import Optional

from fastapi import Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ..config.settings import settings
from ..kernel.lifecycle import TaskLifecycle
from ..kernel.store import TaskStore
from ..storage.database import Database
from .models import TaskCreate


# =============================================================================
# Database
# =============================================================================

_db: Optional[Database] = None


def get_db() -> Database:
    """Get database instance."""
    global _db
    if _db is None:
        _db = Database(config=settings.database)
    return _db


# =============================================================================
# Services
# =============================================================================

def get_store(db: Database = Depends(get_db)) -> TaskStore:
    """Get task store."""
    return TaskStore(db)


def get_lifecycle(request: Request) -> TaskLifecycle:
    """Get the lifecycle engine created by the app lifespan."""
    return request.app.state.lifecycle


# =============================================================================
# Request bodies
# =============================================================================

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def get_task_payload(request: Request) -> TaskCreate:
    """Parse a task body sent as JSON or as an HTML form."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        data = {key: form.get(key) for key in form.keys()}
    else:
        raw = await request.body()
        try:
            data = json.loads(raw) if raw.strip() else {}
        except ValueError as e:
            raise RequestValidationError([{
                "type": "json_invalid",
                "loc": ("body", getattr(e, "pos", 0)),
                "msg": "JSON decode error",
                "input": {},
            }])

    try:
        return TaskCreate.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError([
            {**err, "loc": ("body", *err["loc"])} for err in e.errors()
        ])
