from __future__ import annotations

import argparse
from typing import Any, Dict, List

import questionary
from rich.table import Table

from connectors.runtime.context import CancelToken, TelemetryContext
from connectors.runtime.loader import load
from connectors.runtime.protocol import Connector

from .config import Settings
from .constants import CTX_CONN_TYPE, CTX_RUN_MODE
from .errors import FerryError
from .secrets import (
    connection_type,
    delete_connection,
    get_connection,
    list_connections,
    sanitize_name,
    update_connection,
)
from .ui import console

SECRET_KEYS = ("password", "secret", "token", "key")


def _masked(key: str, value: Any) -> str:
    if any(s in key.lower() for s in SECRET_KEYS):
        return "****"
    return str(value)


def _require(settings: Settings, name: str, context: TelemetryContext) -> Dict[str, Any]:
    conn = get_connection(settings.env_file, name)
    if conn is None:
        raise FerryError(f"did not find connection '{name}' in {settings.env_file}")
    ctype = connection_type(conn)
    context.set(CTX_CONN_TYPE, ctype or "unknown")
    return conn


def _connector_for(name: str, conn: Dict[str, Any]) -> Connector:
    ctype = connection_type(conn)
    if not ctype:
        raise FerryError(
            f"connection '{name}' has no type",
            debug=f"connection '{name}' has no type: set `type` or a `url` with a scheme "
            f"(e.g. ferry conns set {name} type=file)",
        )
    return load(ctype)


def parse_properties(pairs: List[str]) -> Dict[str, str]:
    props: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise FerryError(f"invalid property '{pair}', expected key=value")
        props[key.strip().lower()] = value.strip()
    return props


def conns_list(args: argparse.Namespace, *, cancel: CancelToken, context: TelemetryContext, settings: Settings) -> None:
    context.set(CTX_RUN_MODE, "conns")
    conns = list_connections(settings.env_file)

    t = Table(title=f"Connections ({settings.env_file})", show_header=True, header_style="bold")
    t.add_column("Name")
    t.add_column("Type")
    t.add_column("Properties")
    for name in sorted(conns):
        props = conns[name]
        shown = ", ".join(f"{k}={_masked(k, v)}" for k, v in sorted(props.items()) if k != "type")
        t.add_row(name, connection_type(props) or "?", shown)
    console.print(t)


def conns_set(args: argparse.Namespace, *, cancel: CancelToken, context: TelemetryContext, settings: Settings) -> None:
    context.set(CTX_RUN_MODE, "conns")
    name = sanitize_name(args.name)
    props = parse_properties(args.properties)
    if not props:
        raise FerryError("no properties given, expected key=value pairs")

    merged = update_connection(settings.env_file, name, props)
    context.set(CTX_CONN_TYPE, connection_type(merged) or "unknown")
    console.print(f"[green]connection `{name}` has been set in {settings.env_file}[/green]")


def conns_unset(args: argparse.Namespace, *, cancel: CancelToken, context: TelemetryContext, settings: Settings) -> None:
    context.set(CTX_RUN_MODE, "conns")
    _require(settings, args.name, context)

    if not args.yes:
        confirmed = questionary.confirm(f"Really remove connection '{args.name}'?", default=False).ask()
        if not confirmed:
            console.print("[yellow]Aborted.[/yellow]")
            return

    delete_connection(settings.env_file, args.name)
    console.print(f"[green]connection `{args.name}` has been removed from {settings.env_file}[/green]")


def conns_test(args: argparse.Namespace, *, cancel: CancelToken, context: TelemetryContext, settings: Settings) -> None:
    context.set(CTX_RUN_MODE, "conns")
    conn = _require(settings, args.name, context)
    connector = _connector_for(args.name, conn)
    msg = connector.check(conn)
    console.print(f"[green]✅ success! {msg}[/green]")


def conns_discover(
    args: argparse.Namespace, *, cancel: CancelToken, context: TelemetryContext, settings: Settings
) -> None:
    context.set(CTX_RUN_MODE, "conns")
    conn = _require(settings, args.name, context)
    connector = _connector_for(args.name, conn)
    if not getattr(connector.capabilities, "discover", False):
        raise FerryError(f"connection type '{connection_type(conn)}' does not support discovery")

    cancel.raise_if_cancelled()
    streams = connector.discover(conn, args.pattern)

    t = Table(title=f"Streams in {args.name}", show_header=True, header_style="bold")
    t.add_column("#", justify="right")
    t.add_column("Stream")
    for i, stream in enumerate(streams, start=1):
        t.add_row(str(i), stream)
    console.print(t)
