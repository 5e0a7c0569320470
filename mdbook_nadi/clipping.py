"""
Clipping of captured task output.

Task scripts can print setup or diagnostic output that should not end up in
the book. Printing the clip delimiter toggles between kept and discarded
segments, starting with kept:

    kept ----8<---- discarded ----8<---- kept
"""

import re

CLIP_DELIMITER = "----8<----"

# CSI / OSC escape sequences emitted by coloured terminal output
_ANSI_ESCAPE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07\x1b]*(?:\x07|\x1b\\)|[@-Z\\-_])")


def clip_output(response: str) -> str:
    """
    Normalize a captured response.

    Without a delimiter the trimmed response is returned. Otherwise only the
    even-indexed segments are kept, each trimmed, joined by newlines.
    """
    if CLIP_DELIMITER not in response:
        return response.strip()
    segments = response.split(CLIP_DELIMITER)
    return "\n".join(segment.strip() for segment in segments[::2])


def strip_ansi(value: str) -> str:
    """Remove terminal colour/control escape sequences."""
    return _ANSI_ESCAPE.sub("", value)
