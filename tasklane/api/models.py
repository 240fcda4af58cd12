"""
API Models (Pydantic)

Request/Response schemas for the API.
"""

from typing import Optional
from pydantic import BaseModel, Field

from ..kernel.models import TaskStatus


# =============================================================================
# Tasks
# =============================================================================

class TaskCreate(BaseModel):
    """Create a new task."""
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Order lunch",
                "description": "Pick something for the team",
            }
        }
    }


class TaskResponse(BaseModel):
    """Task as returned by every endpoint. Durations are milliseconds."""
    id: int
    title: str
    description: str
    status: TaskStatus
    duration: int
    elapsedTime: int
    lastRunAt: Optional[str] = None
    completedAt: Optional[str] = None
    result: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


# =============================================================================
# Common
# =============================================================================

class ErrorResponse(BaseModel):
    """Error body."""
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
