from orchestrator.commands import parse_invocation
from orchestrator.conns import conns_set
from orchestrator.invocation import CommandKind
from orchestrator.run_task import run_task
from orchestrator.update import update_cli


def test_run_is_data_movement(settings):
    inv = parse_invocation(["run", "--src-stream", "in.csv", "--tgt-object", "out.jsonl", "-m", "append"], settings)
    assert inv.command == "run"
    assert inv.sub_command is None
    assert inv.kind is CommandKind.DATA_MOVEMENT
    assert inv.handler is run_task
    assert inv.event_name == "run"
    assert inv.args.mode == "append"


def test_conns_subcommand(settings):
    inv = parse_invocation(["conns", "set", "local", "type=file", "url=file:///tmp"], settings)
    assert inv.command == "conns"
    assert inv.sub_command == "set"
    assert inv.kind is CommandKind.CONNECTION_MANAGEMENT
    assert inv.handler is conns_set
    assert inv.event_name == "conns_set"
    assert inv.args.properties == ["type=file", "url=file:///tmp"]


def test_update_is_data_movement(settings):
    inv = parse_invocation(["update"], settings)
    assert inv.handler is update_cli
    assert inv.kind is CommandKind.DATA_MOVEMENT


def test_bare_invocation_prints_help(settings, capsys):
    assert parse_invocation([], settings) is None
    assert "usage: ferry" in capsys.readouterr().out


def test_bare_group_prints_group_help(settings, capsys):
    assert parse_invocation(["conns"], settings) is None
    assert "discover" in capsys.readouterr().out
