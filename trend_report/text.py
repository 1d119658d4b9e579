"""Text cleanup helpers."""

import re

ANSI_ESCAPE = re.compile(r"\x1b\[(?:\d{1,3}(?:;\d{1,3})*)?[mK]")


def strip_ansi(text: str) -> str:
    """Remove terminal color and erase-line sequences."""
    return ANSI_ESCAPE.sub("", text)
