#!/usr/bin/env python3
from __future__ import annotations

import logging
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv

from connectors.runtime.context import TelemetryContext

from .commands import parse_invocation
from .config import Settings
from .constants import LOG_FLUSH_DELAY_S
from .diagnostics import build_pipeline
from .lifecycle import ExitDecision, LifecycleController
from .logging_setup import init_logger

logger = logging.getLogger(__name__)


def run(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> ExitDecision:
    """Parse, execute and report one command. Returns the exit decision."""
    settings = settings or Settings.from_env()

    invocation = parse_invocation(argv, settings)
    if invocation is None:
        return ExitDecision.SUCCESS

    context = TelemetryContext()
    pipeline = build_pipeline(settings, context)
    controller = LifecycleController(pipeline, context)
    with controller.signal_handlers():
        decision = controller.run(invocation)

    logger.debug("exit decision: %s", decision.name)
    return decision


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    settings = Settings.from_env()
    init_logger(settings)

    decision = run(argv, settings)

    time.sleep(LOG_FLUSH_DELAY_S)  # so log handlers can flush
    sys.exit(int(decision))


if __name__ == "__main__":
    main()
