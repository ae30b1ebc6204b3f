"""
Terminal helpers for the Identity Reconciliation CLI.
"""

import sys
from typing import Optional, TextIO


class Colors:
    """ANSI color codes for terminal output."""

    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


def colorize(text: str, color: str, stream: Optional[TextIO] = None) -> str:
    """
    Wrap text in an ANSI color code when writing to a terminal.

    Args:
        text: Text to wrap.
        color: One of the Colors codes.
        stream: Stream the text is destined for (defaults to stdout).

    Returns:
        The colored text, or the plain text if the stream is not a TTY.
    """
    stream = stream or sys.stdout
    if not stream.isatty():
        return text
    return f"{color}{text}{Colors.ENDC}"
