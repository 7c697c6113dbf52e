from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Optional

from django.conf import settings
from loguru import logger

LINE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"


def logging_settings() -> Dict[str, Any]:
    return dict(getattr(settings, "SAFEPLAN_LOGGING", None) or {})


def setup_logger(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Route loguru to stderr and, when a file is configured, to that file too.

    Arguments left as None fall back to `settings.SAFEPLAN_LOGGING`.
    """
    conf = logging_settings()
    level = (level or conf.get("LEVEL") or "INFO").upper()
    log_file = log_file or conf.get("FILE")

    logger.remove()
    logger.add(sys.stderr, level=level, format=LINE_FORMAT)
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, level=level, format=LINE_FORMAT, rotation="10 MB")

    logger.debug(f"[LOGGER] level={level} file={log_file or '-'}")
