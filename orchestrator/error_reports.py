"""
Structured error reports.

A report is built from the failing exception plus the run's TelemetryContext:
the cause text, a pretty-printed context dump beneath a divider, an exception
summary derived from the innermost traceback frame, and classification tags.
Which tags apply depends on the command kind (data movement vs connection
management), chosen once when the command is parsed.

Cancellations are never reported: they are the expected outcome of a user
interrupt.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import sentry_sdk

from connectors.runtime.context import TelemetryContext

from .constants import (
    CTX_CONN_TYPE,
    CTX_ERROR,
    CTX_RUN_MODE,
    CTX_STAGE,
    CTX_TASK,
    JSON_CONTEXT_KEYS,
    REPORT_DIVIDER,
    UNKNOWN_TYPE,
)
from .errors import FerryError, error_string, is_cancellation
from .invocation import CommandKind

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticEvent:
    exception_type: str
    exception_value: str
    message: str
    transaction: str
    tags: Dict[str, str] = field(default_factory=dict)
    user_id: str = ""
    level: str = "error"
    frames: List[Dict[str, Any]] = field(default_factory=list)


class ReportSink(Protocol):
    def send(self, event: DiagnosticEvent) -> None: ...

    def flush(self, timeout: float) -> None: ...


def parse_json_map(value: Any) -> Optional[Dict[str, Any]]:
    """Context entries like `task` are stored as JSON strings."""
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(str(value))
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def render_context(snapshot: Dict[str, Any]) -> str:
    shown = dict(snapshot)
    for key in JSON_CONTEXT_KEYS:
        if key in shown:
            shown[key] = parse_json_map(shown[key])
    return json.dumps(shown, indent=2, sort_keys=True, default=str)


def _frames(err: BaseException) -> List[traceback.FrameSummary]:
    # an InternalFault is raised by the worker; the interesting frames are the original's
    inner = getattr(err, "original", None)
    target = inner if isinstance(inner, BaseException) else err
    return list(traceback.extract_tb(target.__traceback__))


def exception_summary(err: BaseException) -> Dict[str, Any]:
    frames = _frames(err)
    if not frames:
        path_hash = hashlib.md5(type(err).__qualname__.encode("utf-8")).hexdigest()
        return {"type": type(err).__name__, "value": f"{type(err).__name__} [{path_hash}]", "frames": []}

    last = frames[-1]
    call_path = "|".join(f"{os.path.basename(f.filename)}:{f.name}" for f in frames)
    path_hash = hashlib.md5(call_path.encode("utf-8")).hexdigest()
    return {
        "type": last.name,
        "value": f"{last.name} ({os.path.basename(last.filename)}:{last.lineno}) [{path_hash}]",
        "frames": [
            {"filename": f.filename, "function": f.name, "lineno": f.lineno, "in_app": True}
            for f in frames
        ],
    }


class DataMovementReport:
    """`ferry run`: source/target pair from the serialized task."""

    def classify(
        self, snapshot: Dict[str, Any], *, package: str, project_id: str
    ) -> Tuple[str, Dict[str, str]]:
        task = parse_json_map(snapshot.get(CTX_TASK)) or {}
        source_type = str(task.get("source_type") or UNKNOWN_TYPE)
        target_type = str(task.get("target_type") or UNKNOWN_TYPE)

        tags = {
            "source_type": source_type,
            "target_type": target_type,
            "stage": str(snapshot.get(CTX_STAGE) or ""),
            "run_mode": str(snapshot.get(CTX_RUN_MODE) or ""),
            "package": package,
        }
        if task.get("mode"):
            tags["mode"] = str(task["mode"])
        if task.get("type"):
            tags["type"] = str(task["type"])
        if project_id:
            tags["project_id"] = project_id
        return f"{source_type} - {target_type}", tags


class ConnectionReport:
    """`ferry conns`: a single connection type, no source side."""

    def classify(
        self, snapshot: Dict[str, Any], *, package: str, project_id: str
    ) -> Tuple[str, Dict[str, str]]:
        conn_type = str(snapshot.get(CTX_CONN_TYPE) or UNKNOWN_TYPE)
        return conn_type, {"run_mode": "conns", "target_type": conn_type}


REPORT_STRATEGIES = {
    CommandKind.DATA_MOVEMENT: DataMovementReport(),
    CommandKind.CONNECTION_MANAGEMENT: ConnectionReport(),
}


class ErrorReporter:
    def __init__(
        self,
        *,
        enabled: bool,
        machine_id: str,
        project_id: str = "",
        package: str = "pip",
        sink: Optional[ReportSink] = None,
    ) -> None:
        self.enabled = enabled
        self.machine_id = machine_id
        self.project_id = project_id
        self.package = package
        self.sink = sink

    def build(
        self, err: Optional[BaseException], context: TelemetryContext, kind: CommandKind
    ) -> Optional[DiagnosticEvent]:
        """
        Reconcile the explicit error with the context's `error` entry and
        build the event. Returns None when there is nothing to report or the
        failure is a cancellation.
        """
        snapshot = context.snapshot()
        if err is None:
            if CTX_ERROR not in snapshot:
                return None
            err = FerryError(str(snapshot[CTX_ERROR]))

        if is_cancellation(err):
            logger.debug("not reporting cancellation: %s", err)
            return None

        cause = error_string(err)
        summary = exception_summary(err)
        transaction, tags = REPORT_STRATEGIES[kind].classify(
            snapshot, package=self.package, project_id=self.project_id
        )
        return DiagnosticEvent(
            exception_type=summary["type"],
            exception_value=summary["value"],
            message=f"{cause}\n\n{REPORT_DIVIDER}\n\n{render_context(snapshot)}",
            transaction=transaction,
            tags=tags,
            user_id=self.machine_id,
            frames=summary["frames"],
        )

    def report(
        self, err: Optional[BaseException], context: TelemetryContext, kind: CommandKind
    ) -> Optional[DiagnosticEvent]:
        if not self.enabled:
            return None
        event = self.build(err, context, kind)
        if event is None:
            return None
        if self.sink is None:
            logger.debug("no report collector configured; dropping %s", event.exception_type)
            return event
        try:
            self.sink.send(event)
        except Exception as e:  # delivery must never affect the command outcome
            logger.debug("could not queue error report: %s", e)
        return event

    def flush(self, timeout: float) -> None:
        if self.sink is not None:
            self.sink.flush(timeout)


class SentrySink:
    """Delivers DiagnosticEvents to a Sentry-compatible collector."""

    def __init__(self, dsn: str, *, release: str, environment: str = "production") -> None:
        sentry_sdk.init(
            dsn=dsn,
            release=release,
            environment=environment,
            default_integrations=False,
            auto_enabling_integrations=False,
            send_default_pii=False,
        )

    def send(self, event: DiagnosticEvent) -> None:
        payload = {
            "level": event.level,
            "message": event.message,
            "transaction": event.transaction,
            "exception": {
                "values": [
                    {
                        "type": event.exception_type,
                        "value": event.exception_value,
                        "stacktrace": {"frames": event.frames},
                    }
                ]
            },
        }
        with sentry_sdk.new_scope() as scope:
            scope.set_user({"id": event.user_id})
            for key, value in event.tags.items():
                scope.set_tag(key, value)
            sentry_sdk.capture_event(payload)

    def flush(self, timeout: float) -> None:
        sentry_sdk.flush(timeout=timeout)
