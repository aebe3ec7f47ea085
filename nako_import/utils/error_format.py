"""Safe error message formatting utilities.

Some exceptions stringify to an empty message (TimeoutError, CancelledError,
bare OSError subclasses). Import failures wrap such causes, so the wrapped
message must never end in an empty "reason".
"""

from __future__ import annotations

import asyncio

from rich.markup import escape as _escape_markup

FRIENDLY_MESSAGES: dict[type, str] = {
    TimeoutError: "Request timed out.",
    asyncio.CancelledError: "Operation was cancelled.",
    ConnectionResetError: "Connection was reset by the server.",
    PermissionError: "Permission denied.",
}


def format_error_message(e: BaseException, *, include_type: bool = True) -> str:
    """Format an exception into a non-empty display message.

    Examples:
        >>> format_error_message(ValueError("invalid input"))
        'ValueError: invalid input'

        >>> format_error_message(TimeoutError(), include_type=False)
        'Request timed out.'
    """
    error_str = str(e)
    error_type = type(e).__name__

    if error_str:
        if include_type and error_type not in error_str:
            return f"{error_type}: {error_str}"
        return error_str

    for exc_type, friendly_msg in FRIENDLY_MESSAGES.items():
        if isinstance(e, exc_type):
            return f"{error_type}: {friendly_msg}" if include_type else friendly_msg

    return f"{error_type}: (no additional details)"


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings."""
    return _escape_markup(str(value))
