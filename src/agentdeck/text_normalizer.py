"""
Text normalization for captured terminal output.

Pane captures arrive with colors, cursor movement, mode switches, window
title updates and carriage returns mixed into the text. Pattern matching
only works on the printable content, so everything else is removed here.

normalize_text never raises: a truncated or malformed escape sequence is
dropped along with its introducer.
"""

import re
from typing import List

# Order matters: the specific forms must match before the catch-all for a
# lone ESC, otherwise their parameter bytes would leak into the output.
_ESCAPE_SEQUENCE = re.compile(
    r"""
    \x1b\][^\x07\x1b\n]*(?:\x07|\x1b\\)?   # OSC (title etc.), BEL/ST terminated or cut off at EOL
  | \x1b[P^_X][^\x1b\n]*(?:\x1b\\)?        # DCS / PM / APC / SOS strings
  | \x1b\[[0-?]*[ -/]*[@-~]?               # CSI: colors, cursor movement, modes
  | \x1b[()*+][0-9A-Za-z]?                 # charset designation
  | \x1b[ -/]*[0-~]?                       # two-character escapes (ESC 7, ESC =, ...)
    """,
    re.VERBOSE,
)

# C1 CSI introducer (8-bit form of ESC [)
_C1_CSI_SEQUENCE = re.compile(r"\x9b[0-?]*[ -/]*[@-~]?")

# Everything non-printable that survives escape removal, except newline and tab
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")


def strip_ansi(text: str) -> str:
    """Remove escape sequences from text, leaving control characters alone."""
    text = _ESCAPE_SEQUENCE.sub("", text)
    return _C1_CSI_SEQUENCE.sub("", text)


def normalize_text(raw: str) -> str:
    """Reduce raw captured text to printable characters and newlines.

    Line boundaries are preserved: CRLF becomes LF, a bare carriage return
    is dropped, tabs become single spaces.

    Args:
        raw: Captured text, possibly containing escape sequences

    Returns:
        Clean text. Normalizing clean text returns it unchanged.
    """
    if not raw:
        return ""
    text = strip_ansi(raw)
    text = text.replace("\r\n", "\n").replace("\r", "")
    text = text.replace("\t", " ")
    return _CONTROL_CHARS.sub("", text)


def tail_lines(text: str, n: int) -> List[str]:
    """Return the last n non-empty lines of text.

    Blank lines are skipped so that the empty rows below a prompt do not
    push real content out of a small window.
    """
    if n <= 0 or not text:
        return []
    lines = [line for line in text.split("\n") if line.strip()]
    return lines[-n:]
