"""Tests for the JSONL logging sink."""

import json
import logging

import pytest
from nako_import.logging_setup import JsonlHandler
from nako_import.logging_setup import init_json_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def test_records_written_as_json_lines(tmp_path, restore_root_logger):
    path = tmp_path / "logs" / "nako-import.log.jsonl"
    init_json_logging(str(path), "debug")

    logging.getLogger("nako_import.resolver").debug("[import:resolve] plugin_csv.py -> /x", extra={"probes": 3})

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert records[-1]["lvl"] == "DEBUG"
    assert records[-1]["logger"] == "nako_import.resolver"
    assert records[-1]["message"] == "[import:resolve] plugin_csv.py -> /x"
    assert records[-1]["probes"] == 3


def test_reinit_replaces_handler(tmp_path, restore_root_logger):
    init_json_logging(str(tmp_path / "a.jsonl"))
    init_json_logging(str(tmp_path / "b.jsonl"))

    handlers = [h for h in logging.getLogger().handlers if isinstance(h, JsonlHandler)]
    assert len(handlers) == 1
    assert handlers[0].path.name == "b.jsonl"
