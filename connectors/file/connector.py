# connectors/file/connector.py
from __future__ import annotations

import csv
import json
import os
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, Iterator, List, Optional

from connectors.runtime.context import CancelToken
from connectors.runtime.errors import FerryError
from connectors.runtime.events import emit
from connectors.runtime.protocol import Connector, ConnectorCapabilities, ReadResult, ReadSelection

CONNECTOR_NAME = "file"
COUNT_LOG_INTERVAL = 1000
APPEND_MODES = ("append", "incremental", "backfill")


def strip_scheme(url: str) -> str:
    return url[len("file://"):] if url.startswith("file://") else url


def _root(creds: Dict[str, Any]) -> Path:
    return Path(strip_scheme(str(creds.get("url") or creds.get("path") or ".")))


def _resolve(creds: Dict[str, Any], stream: str) -> Path:
    p = Path(strip_scheme(stream))
    return p if p.is_absolute() else _root(creds) / p


def _iter_records(path: Path, fmt: str) -> Iterator[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8", newline="") as f:
        if fmt == "csv":
            yield from csv.DictReader(f)
            return
        for line in f:
            line = line.strip()
            if line:
                yield json.loads(line)


def _format_of(path: Path, options: Dict[str, Any], key: str) -> str:
    fmt = (options.get(key) or path.suffix.lstrip(".") or "jsonl").lower()
    return "csv" if fmt == "csv" else "jsonl"


class FileConnector(Connector):
    """Moves CSV / JSON-lines files between local paths."""

    capabilities = ConnectorCapabilities(discover=True, incremental=True, targets=("file",))

    def check(self, creds: Dict[str, Any]) -> str:
        root = _root(creds)
        if not root.exists():
            raise FerryError(f"path does not exist: {root}")
        return f"file connection ok ({root})"

    def discover(self, creds: Dict[str, Any], pattern: Optional[str] = None) -> List[str]:
        root = _root(creds)
        if root.is_file():
            return [str(root)]
        if not root.is_dir():
            raise FerryError(f"path does not exist: {root}")
        return sorted(str(p.relative_to(root)) for p in root.glob(pattern or "*") if p.is_file())

    def read(
        self,
        *,
        creds: Dict[str, Any],
        schema: str,
        selection: ReadSelection,
        state: Dict[str, Any],
        cancel: CancelToken,
    ) -> ReadResult:
        if not selection.streams:
            raise FerryError("no source stream given (use --src-stream)")
        if not schema:
            raise FerryError("no target object given (use --tgt-object)")

        target = Path(strip_scheme(schema))
        target_fmt = _format_of(target, selection.options, "target_format")
        if target.parent and not target.parent.exists():
            os.makedirs(target.parent, exist_ok=True)

        file_mode = "a" if selection.mode in APPEND_MODES else "w"
        t0 = perf_counter()
        total = 0
        per_stream: Dict[str, int] = {}

        with open(target, file_mode, encoding="utf-8", newline="") as out:
            writer: Optional[csv.DictWriter] = None
            for stream in selection.streams:
                cancel.raise_if_cancelled()
                source = _resolve(creds, stream)
                if not source.exists():
                    raise FerryError(f"source file not found: {source}")
                emit("progress", "reading", connector=CONNECTOR_NAME, stream=stream, path=str(source))

                count = 0
                for record in _iter_records(source, _format_of(source, selection.options, "source_format")):
                    cancel.raise_if_cancelled()
                    if selection.limit is not None and total >= selection.limit:
                        break
                    if target_fmt == "csv":
                        if writer is None:
                            writer = csv.DictWriter(out, fieldnames=list(record.keys()), extrasaction="ignore")
                            if file_mode == "w" or out.tell() == 0:
                                writer.writeheader()
                        writer.writerow(record)
                    else:
                        out.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
                    count += 1
                    total += 1
                    if count % COUNT_LOG_INTERVAL == 0:
                        emit("count", "rows written", connector=CONNECTOR_NAME, stream=stream, count=count)

                per_stream[stream] = count
                emit("count", "stream done", connector=CONNECTOR_NAME, stream=stream, count=count)

        elapsed_ms = int((perf_counter() - t0) * 1000)
        return ReadResult(
            report_text=f"wrote {total} rows to {target} in {elapsed_ms} ms",
            stats={"rows": total, "streams": per_stream, "elapsed_ms": elapsed_ms, "target": str(target)},
        )


def connector() -> FileConnector:
    return FileConnector()
