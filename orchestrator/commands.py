from __future__ import annotations

import argparse
from typing import List, Optional

from .config import Settings
from .conns import conns_discover, conns_list, conns_set, conns_test, conns_unset
from .invocation import CommandKind, Invocation
from .run_task import MODES, run_task
from .update import update_cli

DESCRIPTION = "Moves data from a source to a target."
RUN_EPILOG = "Example: ferry run --src-stream file://orders.csv --tgt-object file://out/orders.jsonl"


def _add_run_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--src-conn", help="The source connection (name or URL).")
    p.add_argument("--src-stream", help="The source table, file path or stream name. Use `file://` for local paths.")
    p.add_argument("--src-options", help="In-line options to further configure the source (JSON).")
    p.add_argument("--tgt-conn", help="The target connection (name or URL).")
    p.add_argument("--tgt-object", help="The target table or file path. Use `file://` for local paths.")
    p.add_argument("--tgt-options", help="In-line options to further configure the target (JSON).")
    p.add_argument("--streams", help="Only run specific source streams (comma separated).")
    p.add_argument("-m", "--mode", help=f"The target load mode: {', '.join(MODES)}. Default is full-refresh.")
    p.add_argument("-l", "--limit", help="The maximum number of rows to move.")
    p.add_argument("--primary-key", help="The primary key for incremental loads (comma separated).")
    p.add_argument("--update-key", help="The update key for incremental loads.")
    p.add_argument("-d", "--debug", action="store_true", help="Set logging level to DEBUG.")


def build_parser(version: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ferry", description=f"{DESCRIPTION}\nVersion {version}")
    parser.add_argument("--version", action="version", version=version)
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Execute a run", epilog=RUN_EPILOG)
    _add_run_flags(run)
    run.set_defaults(handler=run_task, kind=CommandKind.DATA_MOVEMENT)

    conns = sub.add_parser("conns", help="Manage local connections in the ferry env file")
    conns.set_defaults(kind=CommandKind.CONNECTION_MANAGEMENT, group_parser=conns)
    conns_sub = conns.add_subparsers(dest="sub_command")

    p = conns_sub.add_parser("list", help="list local connections detected")
    p.set_defaults(handler=conns_list)

    p = conns_sub.add_parser("set", help="set a connection in the ferry env file")
    p.add_argument("name", help="The name of the connection to set")
    p.add_argument("properties", nargs="*", metavar="key=value", help="The key=value properties to set")
    p.set_defaults(handler=conns_set)

    p = conns_sub.add_parser("unset", help="remove a connection from the ferry env file")
    p.add_argument("name", help="The name of the connection to remove")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation.")
    p.set_defaults(handler=conns_unset)

    p = conns_sub.add_parser("test", help="test a local connection")
    p.add_argument("name", help="The name of the connection to test")
    p.set_defaults(handler=conns_test)

    p = conns_sub.add_parser("discover", help="list available streams in connection")
    p.add_argument("name", help="The name of the connection to discover")
    p.add_argument("-p", "--pattern", help="filter stream names by glob pattern (e.g. *.csv, dir/**/*.jsonl)")
    p.set_defaults(handler=conns_discover)

    update = sub.add_parser("update", help="Check for a newer ferry version")
    update.set_defaults(handler=update_cli, kind=CommandKind.DATA_MOVEMENT)

    return parser


def parse_invocation(
    argv: Optional[List[str]], settings: Settings, parser: Optional[argparse.ArgumentParser] = None
) -> Optional[Invocation]:
    """
    Parse the command line. Returns None when no runnable command was given
    (help was printed instead); such invocations are never tracked.
    """
    parser = parser or build_parser(settings.version)
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return None

    handler = getattr(args, "handler", None)
    if handler is None:
        # command group used without a subcommand
        getattr(args, "group_parser", parser).print_help()
        return None

    return Invocation(
        command=args.command,
        sub_command=getattr(args, "sub_command", None),
        kind=args.kind,
        handler=handler,
        args=args,
        settings=settings,
    )
