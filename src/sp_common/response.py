"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,             // 0=success, non-0=error code
    "outcome": "Ok",       // request-interface outcome
    "message": "success",
    "data": { ... },       // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from src.sp_common.enums import Outcome


class ApiResponse(BaseModel):
    code: int = 0
    outcome: Outcome = Outcome.OK
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, outcome=Outcome.OK, message="success", data=data)


def error_response(code: int, message: str, outcome: Outcome = Outcome.FATAL) -> ApiResponse:
    return ApiResponse(code=code, outcome=outcome, message=message, data=None)
