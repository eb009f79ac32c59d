from __future__ import annotations

from pydantic import BaseModel


class HealthStatus(BaseModel):
    status: str  # "ok" | "error"
    timestamp: str
    service: str
    database: str | None = None  # "connected" | "disconnected"
    db_error: str | None = None


class HealthErrorResponse(BaseModel):
    status: str = "error"
    message: str
    timestamp: str
