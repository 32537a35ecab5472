from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install

from .config import Settings

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER = "ferry"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers (MASTER / WORKER modes)."""

    def format(self, record: logging.LogRecord) -> str:
        rec = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "lvl": record.levelname.lower(),
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            rec["error"] = self.formatException(record.exc_info)
        return json.dumps(rec, ensure_ascii=False, default=str)


def level_for(debug: str) -> int:
    if debug.upper() == "TRACE":
        return TRACE
    if debug:
        return logging.DEBUG
    return logging.INFO


def init_logger(settings: Settings) -> logging.Logger:
    """
    Configure the `ferry` logger tree plus the `orchestrator` / `connectors`
    module loggers according to FERRY_DEBUG and FERRY_LOGGING.
    """
    level = level_for(settings.debug)

    if settings.logging_mode == "TASK":
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", "%Y-%m-%d %H:%M:%S"))
    elif settings.logging_mode in ("MASTER", "WORKER"):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonLineFormatter())
    else:
        install()
        console = Console(stderr=True, no_color=not settings.logging_color)
        time_format = "%Y-%m-%d %H:%M:%S" if settings.debug.upper() == "LOW" else "%I:%M%p"
        handler = RichHandler(console=console, show_path=False, log_time_format=time_format)

    handler.setLevel(level)
    for name in (ROOT_LOGGER, "orchestrator", "connectors"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.setLevel(level)
        lg.propagate = False
    return logging.getLogger(ROOT_LOGGER)


def set_level(level: int) -> None:
    for name in (ROOT_LOGGER, "orchestrator", "connectors"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        for h in lg.handlers:
            h.setLevel(level)
