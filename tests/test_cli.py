# tests/test_cli.py

from pathlib import Path

import pytest

from promptpacker import cli
from promptpacker.config import MAX_TOKEN_LIMIT


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.path is None
    assert args.max_tokens == MAX_TOKEN_LIMIT


def test_main_starts_app_with_resolved_path(tmp_path: Path, monkeypatch):
    started = {}

    class FakeApp:
        def __init__(self, initial_path=None, max_tokens=None):
            started["path"] = initial_path
            started["max_tokens"] = max_tokens

        def run(self):
            started["ran"] = True

    monkeypatch.setattr(cli, "PromptPackerApp", FakeApp)
    cli.main([str(tmp_path), "--max-tokens", "1000"])
    assert started == {"path": tmp_path.resolve(), "max_tokens": 1000, "ran": True}


def test_main_rejects_non_positive_budget():
    with pytest.raises(SystemExit) as exc:
        cli.main([".", "--max-tokens", "0"])
    assert exc.value.code == 2
