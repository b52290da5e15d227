from __future__ import annotations

import json
import logging

from app.gymdesk.core.config import settings


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logging.getLogger("gymdesk").setLevel(logging.INFO)


def log_json(logger: logging.Logger, payload: dict, *, level: int = logging.INFO) -> None:
    payload = {"service": settings.APP_NAME.lower(), **payload}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
