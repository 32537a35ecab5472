# orchestrator/run_task.py
from __future__ import annotations

import argparse
import json
import logging
import time
import uuid
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

from rich.panel import Panel

from connectors.runtime.context import CancelToken, TelemetryContext
from connectors.runtime.events import RuntimeEvent, emitter
from connectors.runtime.loader import load
from connectors.runtime.protocol import ReadSelection

from .config import Settings
from .constants import CTX_RUN_MODE, CTX_STAGE, CTX_TASK, CTX_TASK_OPTIONS, CTX_TASK_STATS
from .errors import FerryError
from .logging_setup import set_level
from .secrets import resolve_connection
from .ui import console, fmt_seconds, format_event_line

logger = logging.getLogger(__name__)

DEFAULT_MODE = "full-refresh"
MODES = ("full-refresh", "incremental", "truncate", "snapshot", "backfill", "append")


def _parse_options(raw: Optional[str], flag: str) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise FerryError(f"invalid JSON for {flag}: {e}") from e
    if not isinstance(parsed, dict):
        raise FerryError(f"{flag} must be a JSON object")
    return parsed


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        value = int(raw)
    except ValueError as e:
        raise FerryError(f"invalid --limit value: {raw}") from e
    if value < 0:
        raise FerryError("--limit must be zero or positive")
    return value


def _source_ref(args: argparse.Namespace) -> str:
    if args.src_conn:
        return args.src_conn
    stream = args.src_stream or ""
    # a bare local path implies the file connector
    return "file://" if stream.startswith("file://") or "://" not in stream else stream


def _target_ref(args: argparse.Namespace) -> str:
    if args.tgt_conn:
        return args.tgt_conn
    obj = args.tgt_object or ""
    return "file://" if obj.startswith("file://") or "://" not in obj else obj


def build_task(args: argparse.Namespace, settings: Settings) -> Dict[str, Any]:
    source = resolve_connection(settings.env_file, _source_ref(args))
    target = resolve_connection(settings.env_file, _target_ref(args))
    mode = (args.mode or DEFAULT_MODE).strip().lower()
    if mode not in MODES:
        raise FerryError(f"invalid mode '{mode}'. Expected one of: {', '.join(MODES)}")

    streams: List[str] = []
    if args.streams:
        streams = [s.strip() for s in args.streams.split(",") if s.strip()]
    elif args.src_stream:
        streams = [args.src_stream]

    return {
        "id": str(uuid.uuid4()),
        "source": source,
        "target": target,
        "source_type": source["type"] or "unknown",
        "target_type": target["type"] or "unknown",
        "type": f"{source['type'] or 'unknown'}-{target['type'] or 'unknown'}",
        "mode": mode,
        "streams": streams,
        "target_object": args.tgt_object or "",
        "limit": _parse_limit(args.limit),
        "primary_key": [k.strip() for k in (args.primary_key or "").split(",") if k.strip()],
        "update_key": args.update_key or "",
    }


def _public_task(task: Dict[str, Any]) -> Dict[str, Any]:
    """Task as recorded for diagnostics: connection props (credentials) are left out."""
    hidden = ("source", "target")
    return {k: v for k, v in task.items() if k not in hidden}


def run_task(
    args: argparse.Namespace,
    *,
    cancel: CancelToken,
    context: TelemetryContext,
    settings: Settings,
) -> Dict[str, Any]:
    if getattr(args, "debug", False):
        set_level(logging.DEBUG)

    context.set(CTX_RUN_MODE, "task")
    context.set(CTX_STAGE, "0 - task-creation")

    task = build_task(args, settings)
    options = {
        "source": _parse_options(args.src_options, "--src-options"),
        "target": _parse_options(args.tgt_options, "--tgt-options"),
        "bulk_export_flow_csv": settings.bulk_export_flow_csv,
    }
    context.set(CTX_TASK, json.dumps(_public_task(task), default=str))
    context.set(CTX_TASK_OPTIONS, json.dumps(options, default=str))

    context.set(CTX_STAGE, "1 - connector-loading")
    connector = load(task["source_type"])

    selection = ReadSelection(
        streams=task["streams"],
        mode=task["mode"],
        limit=task["limit"],
        options={**options["source"], **options["target"]},
    )

    started_mono = time.monotonic()
    status = None
    if settings.show_progress:
        status = console.status(f"[bold blue]{task['type']}[/bold blue] starting…")

    def on_event(ev: RuntimeEvent) -> None:
        line = format_event_line(ev)
        logger.debug(line)
        if status is not None:
            elapsed = fmt_seconds(time.monotonic() - started_mono)
            status.update(f"[dim]⏱ {elapsed}[/dim] {line}")

    context.set(CTX_STAGE, "2 - task-execution")
    logger.info("running %s (%s)", task["type"], task["mode"])
    with emitter(on_event), (status if status is not None else nullcontext()):
        result = connector.read(
            creds=task["source"], schema=task["target_object"], selection=selection, state={}, cancel=cancel
        )

    stats = dict(result.stats or {})
    stats["duration_ms"] = int((time.monotonic() - started_mono) * 1000)
    context.set(CTX_TASK_STATS, json.dumps(stats, default=str))
    context.set(CTX_STAGE, "3 - task-completed")

    console.print(Panel(f"[green]✅ Success[/green]\n{result.report_text or '(no report)'}", title="Report"))
    return stats
