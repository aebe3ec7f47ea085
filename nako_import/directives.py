"""Pure text processing for import directives - no file I/O.

Directive forms:
    !「plugin_csv.py」を取り込む
    !『lib/util.nako3』を取り込む。
    !"https://example.com/plugin_x.py"を取り込む
"""

import re
from collections.abc import Iterator
from re import Pattern

from .models import ImportDirective
from .models import SourceToken

DIRECTIVE_PATTERN: Pattern = re.compile(
    r"[!！]\s*(?:「(?P<corner>[^」]+)」|『(?P<white>[^』]+)』|\"(?P<quote>[^\"]+)\")\s*を\s*取(?:り)?込む"
)

COMMENT_PREFIXES = ("#", "//", "※")


def scan_directives(text: str, file: str | None, line_offset: int = 0) -> Iterator[ImportDirective]:
    """Yield import directives in textual order.

    Args:
        text: Source text
        file: Requesting file the directives are attributed to
        line_offset: Added to 1-based line numbers

    Examples:
        >>> [d.reference for d in scan_directives('!「plugin_csv.py」を取り込む', "main.nako3")]
        ['plugin_csv.py']
    """
    for number, line in enumerate(text.splitlines(), start=1):
        if line.lstrip().startswith(COMMENT_PREFIXES):
            continue
        for match in DIRECTIVE_PATTERN.finditer(line):
            reference = (match.group("corner") or match.group("white") or match.group("quote")).strip()
            yield ImportDirective(reference=reference, token=SourceToken(file=file, line=number + line_offset))
