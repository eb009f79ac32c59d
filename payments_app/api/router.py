from __future__ import annotations

from fastapi import APIRouter

from payments_app import health
from payments_app.api import diagnostics

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(diagnostics.router, prefix="/test", tags=["Diagnostics"])
