"""Tests for error message formatting helpers."""

from __future__ import annotations

import asyncio
from io import StringIO

from nako_import.utils.error_format import escape_markup
from nako_import.utils.error_format import format_error_message
from rich.console import Console


class TestFormatErrorMessage:
    def test_includes_type(self):
        assert format_error_message(ValueError("invalid input")) == "ValueError: invalid input"

    def test_type_not_duplicated(self):
        assert format_error_message(ValueError("ValueError happened")) == "ValueError happened"

    def test_empty_timeout_gets_friendly_message(self):
        assert format_error_message(TimeoutError(), include_type=False) == "Request timed out."

    def test_empty_cancelled_error(self):
        assert format_error_message(asyncio.CancelledError()) == "CancelledError: Operation was cancelled."

    def test_unknown_empty_error(self):
        assert format_error_message(RuntimeError()) == "RuntimeError: (no additional details)"


class TestEscapeMarkup:
    def test_bracketed_path_survives_printing(self):
        buf = StringIO()
        console = Console(file=buf, force_terminal=False)
        console.print(f"Not found: {escape_markup('[/opt/nako/lib]/plugin.py')}")
        assert "[/opt/nako/lib]/plugin.py" in buf.getvalue()

    def test_non_string_input(self):
        assert escape_markup(42) == "42"
