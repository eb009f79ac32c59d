from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


async def fetch_upstream(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """Issue a single GET to a peer service and hand back the response untouched.

    There is no classification here: transport errors propagate to the caller.
    """
    logger.info("Calling upstream service %s", url)
    response = await client.get(url)
    logger.info("Upstream %s answered %s", url, response.status_code)
    return response
