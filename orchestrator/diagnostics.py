from __future__ import annotations

import logging
from typing import Optional

from connectors.runtime.context import TelemetryContext

from . import machine_identity
from .config import Settings
from .constants import CTX_ERROR
from .error_reports import DiagnosticEvent, ErrorReporter, SentrySink
from .errors import error_string
from .invocation import Invocation
from .telemetry import TelemetryEmitter, UsageEvent

logger = logging.getLogger(__name__)


class DiagnosticsPipeline:
    """
    Usage events and error reports for one process run.

    The lifecycle controller calls on_success / on_error exactly once per
    terminal transition, then flush() with a bounded window before exiting.
    """

    def __init__(self, emitter: TelemetryEmitter, reporter: ErrorReporter, context: TelemetryContext) -> None:
        self.emitter = emitter
        self.reporter = reporter
        self.context = context

    def bind(self, invocation: Invocation) -> None:
        self.emitter.bind(invocation)

    def on_success(self, invocation: Invocation) -> Optional[UsageEvent]:
        return self.emitter.track(invocation.event_name)

    def on_error(
        self, invocation: Invocation, err: Optional[BaseException]
    ) -> Optional[DiagnosticEvent]:
        if CTX_ERROR not in self.context:
            self.context.set(CTX_ERROR, error_string(err))
        self.emitter.track(invocation.event_name)
        return self.reporter.report(err, self.context, invocation.kind)

    def flush(self, timeout: float) -> None:
        try:
            self.reporter.flush(timeout)
        except Exception as e:
            logger.debug("flushing error reports failed: %s", e)


def build_pipeline(settings: Settings, context: TelemetryContext) -> DiagnosticsPipeline:
    machine_id = machine_identity.resolve(settings.project_id) if settings.telemetry_enabled else ""

    sink = None
    if settings.telemetry_enabled and settings.sentry_dsn:
        sink = SentrySink(settings.sentry_dsn, release=f"ferry@{settings.version}")

    emitter = TelemetryEmitter(
        enabled=settings.telemetry_enabled,
        version=settings.version,
        machine_id=machine_id,
        context=context,
        endpoint=settings.telemetry_url,
        package=settings.package,
    )
    reporter = ErrorReporter(
        enabled=settings.telemetry_enabled,
        machine_id=machine_id,
        project_id=settings.project_id,
        package=settings.package,
        sink=sink,
    )
    return DiagnosticsPipeline(emitter, reporter, context)
