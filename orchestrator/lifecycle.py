"""
Process lifecycle: run the selected command on a worker thread and race its
completion against interrupt (SIGINT) and kill (SIGTERM) requests.

The main thread blocks once on a queue fed by the worker and by the signal
handlers; whichever event arrives first decides the exit code:

  completion  -> SUCCESS (0) or COMMAND_ERROR (1)
  kill        -> KILL_SIGNAL (111), no grace period
  interrupt   -> cancel the token, wait up to the grace period for the
                 worker, then its own result or ABNORMAL_DEFAULT (11)

The worker records its result before it emits usage events and error
reports, so slow diagnostics never count against the grace period.

The worker is never force-stopped. It runs as a daemon thread, so an
abandoned worker ends with the process.
"""
from __future__ import annotations

import logging
import queue
import signal
import threading
import time
from contextlib import contextmanager
from enum import Enum, IntEnum
from typing import Iterator, Optional

from connectors.runtime.context import CancelToken, TelemetryContext

from .constants import CTX_ERROR, GRACE_PERIOD_S, INTERRUPT_FLUSH_S, KILL_FLUSH_S, REPORT_FLUSH_S
from .diagnostics import DiagnosticsPipeline
from .errors import FerryError, InternalFault
from .invocation import Invocation
from .ui import print_fatal, println

logger = logging.getLogger(__name__)


class ExitDecision(IntEnum):
    SUCCESS = 0
    COMMAND_ERROR = 1
    # the controller never obtained a command result (abandoned after interrupt)
    ABNORMAL_DEFAULT = 11
    KILL_SIGNAL = 111


class Termination(Enum):
    INTERRUPT = "interrupt"
    KILL = "kill"


_DONE = object()


class LifecycleController:
    def __init__(
        self,
        pipeline: DiagnosticsPipeline,
        context: TelemetryContext,
        *,
        grace_period: float = GRACE_PERIOD_S,
    ) -> None:
        self.pipeline = pipeline
        self.context = context
        self.grace_period = grace_period
        self.cancel = CancelToken()
        self.interrupted = False
        # SimpleQueue.put is reentrant, so signal handlers may call it
        self._events: "queue.SimpleQueue[object]" = queue.SimpleQueue()
        self._done = threading.Event()
        self._reported = threading.Event()
        self._result: ExitDecision = ExitDecision.ABNORMAL_DEFAULT

    def notify(self, kind: Termination) -> None:
        self._events.put(kind)

    @contextmanager
    def signal_handlers(self) -> Iterator[None]:
        """Route SIGINT to interrupt and SIGTERM to kill while the block runs."""
        previous = {
            signal.SIGINT: signal.signal(signal.SIGINT, lambda signum, frame: self.notify(Termination.INTERRUPT)),
            signal.SIGTERM: signal.signal(signal.SIGTERM, lambda signum, frame: self.notify(Termination.KILL)),
        }
        try:
            yield
        finally:
            for signum, handler in previous.items():
                if handler is not None:
                    signal.signal(signum, handler)

    def run(self, invocation: Invocation) -> ExitDecision:
        self.pipeline.bind(invocation)
        worker = threading.Thread(
            target=self._work, args=(invocation,), name=f"ferry-{invocation.event_name}", daemon=True
        )
        worker.start()

        first = self._events.get()

        if first is _DONE:
            return self._result

        if first is Termination.KILL:
            println("\nkilling process...")
            self.pipeline.flush(KILL_FLUSH_S)
            return ExitDecision.KILL_SIGNAL

        println("\ninterrupting...")
        self.interrupted = True
        deadline = time.monotonic() + self.grace_period
        self.cancel.cancel()
        threading.Thread(
            target=self.pipeline.flush, args=(INTERRUPT_FLUSH_S,), name="ferry-flush", daemon=True
        ).start()

        if not self._done.wait(self.grace_period):
            logger.debug("command did not stop within %.1fs; exiting anyway", self.grace_period)
            return ExitDecision.ABNORMAL_DEFAULT

        # the outcome is known; diagnostics get whatever is left of the grace period
        if not self._reported.wait(max(0.0, deadline - time.monotonic())):
            logger.debug("diagnostics still running at exit")
        return self._result

    def _work(self, invocation: Invocation) -> None:
        err: Optional[FerryError] = None
        try:
            try:
                err = self._execute(invocation)
                self._result = ExitDecision.SUCCESS if err is None else ExitDecision.COMMAND_ERROR
            finally:
                self._done.set()
            self._report(invocation, err)
        finally:
            self._reported.set()
            self._events.put(_DONE)

    def _execute(self, invocation: Invocation) -> Optional[FerryError]:
        """Run the command. Returns the failure, or None when it succeeded."""
        try:
            invocation.execute(self.cancel, self.context)
        except FerryError as e:
            return e
        except Exception as e:
            fault = InternalFault.capture(e)
            self.context.set(CTX_ERROR, fault.debug)
            logger.debug("recovered from unexpected error", exc_info=True)
            return fault

        if CTX_ERROR in self.context:
            return FerryError(str(self.context.get(CTX_ERROR)))
        return None

    def _report(self, invocation: Invocation, err: Optional[FerryError]) -> None:
        if err is None:
            self.pipeline.on_success(invocation)
            return

        self.pipeline.on_error(invocation, err)
        print_fatal(err)
        self.pipeline.flush(REPORT_FLUSH_S)
