from __future__ import annotations

import logging

from payments_app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=(level or settings.app_log_level).upper(),
        format=LOG_FORMAT,
    )
    # Library chatter is only useful when debugging a specific client.
    for noisy in ("aio_pika", "aiormq", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
