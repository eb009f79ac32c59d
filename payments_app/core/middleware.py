"""Request-scoped user context from proxy-supplied headers.

Trust boundary: ``X-User-ID`` and ``X-User-Email`` are set by the reverse proxy (NGINX)
after it has authenticated the caller. Nothing here verifies, signs or checks them.
The proxy must strip any client-supplied copies of these headers; if verification is
ever needed it belongs in the proxy, not in this middleware.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from payments_app.schemas import UserContext

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-ID"
USER_EMAIL_HEADER = "X-User-Email"


def extract_user_context(headers: Mapping[str, str]) -> UserContext | None:
    """Build a UserContext when both headers are present and non-empty.

    ``headers`` must be case-insensitive (Starlette ``Headers`` is).
    """
    user_id = headers.get(USER_ID_HEADER)
    user_email = headers.get(USER_EMAIL_HEADER)
    if not user_id or not user_email:
        return None
    return UserContext(id=user_id, email=user_email)


class UserContextMiddleware(BaseHTTPMiddleware):
    """Attach the proxy-supplied user to ``request.state``.

    Two access paths are set for downstream handlers:
    ``request.state.authenticated_user`` (``{"id": ..., "email": ...}``) and
    ``request.state.user_id`` / ``request.state.user_email``.
    Requests without both headers pass through untouched.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = extract_user_context(request.headers)
        if context is not None:
            request.state.authenticated_user = context.model_dump()
            request.state.user_id = context.id
            request.state.user_email = context.email
            logger.debug("User context attached for user_id=%s", context.id)
        return await call_next(request)
