import asyncio
import json

from core import app
from core.config_loader import TallyConfig


def test_parse_mode_prints_actions(capsys):
    assert app.run(["--parse", "Foo++ bar--"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "> Foo++ bar--"
    assert [json.loads(line) for line in lines[1:]] == [
        {"action_type": "tally.delta", "item": "foo", "op": "++"},
        {"action_type": "tally.delta", "item": "bar", "op": "--"},
    ]


def test_parse_mode_without_match(capsys):
    assert app.run(["--parse", "nothing to see"]) == 0
    assert capsys.readouterr().out.splitlines()[-1] == "actions: none"


def test_missing_config_exits_nonzero(tmp_path):
    assert app.run(["--config", str(tmp_path / "missing.conf")]) == 1


def test_schema_failure_is_fatal(tmp_path):
    # A directory cannot be opened as a database file.
    config = TallyConfig(db_path=str(tmp_path))

    assert asyncio.run(app.main(asyncio.Event(), config)) == 1
