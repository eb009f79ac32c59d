from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UserContext(BaseModel):
    """Identity forwarded by the reverse proxy for the current request."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
