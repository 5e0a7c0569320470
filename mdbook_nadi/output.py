"""
Output Renderers - Turn captured task output into document events
=================================================================

Every renderer takes a prefix fragment (usually the "Results:" label), the
captured payload, a renderer-specific argument string and the working
directory, and returns the prefix extended with a balanced fragment.

Format names:
    markdown               -> inline the payload as markdown
    verbose | txt | text   -> fenced code block (default)
    image | svg | png      -> image reference
    file                   -> fenced code block with a file's contents
    table                  -> markdown table constructs only
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from . import events as ev
from .cmark import parse_events
from .events import TABLE_TAGS, Event, EventKind
from .exceptions import TableFormatError

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "output"

OutputHandler = Callable[[List[Event], str, str, Path], List[Event]]

# Leaves allowed inside table cells
_CELL_LEAVES = frozenset({
    EventKind.TEXT,
    EventKind.CODE,
    EventKind.INLINE_HTML,
    EventKind.SOFT_BREAK,
    EventKind.HARD_BREAK,
})


def output_verbose(prefix: List[Event], payload: str, args: str, cwd: Path) -> List[Event]:
    """Fenced code block tagged with `args` (or "output")."""
    language = args.strip() or DEFAULT_LANGUAGE
    return prefix + ev.code_block(payload, language)


def output_markdown(prefix: List[Event], payload: str, args: str, cwd: Path) -> List[Event]:
    """Inline the payload as first-class markdown between line breaks."""
    return prefix + [ev.hard_break()] + ev.copy_events(parse_events(payload)) + [ev.hard_break()]


def output_image(prefix: List[Event], payload: str, args: str, cwd: Path) -> List[Event]:
    """Centered image; the destination is `args` or else the payload itself."""
    destination = args.strip() or payload.strip()
    return prefix + [
        ev.hard_break(),
        ev.inline_html('<span style="display: block; text-align: center">'),
        ev.start(ev.Tag.IMAGE, {"url": destination, "title": ""}),
        ev.end(ev.Tag.IMAGE),
        ev.inline_html("</span>"),
        ev.hard_break(),
    ]


def output_file(prefix: List[Event], payload: str, args: str, cwd: Path) -> List[Event]:
    """Embed the file named by the payload, relative to the working directory."""
    path = Path(cwd) / payload.strip()
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read output file {path}: {e}")
        contents = str(e)
    return prefix + ev.code_block(contents, args.strip() or DEFAULT_LANGUAGE)


def output_table(prefix: List[Event], payload: str, args: str, cwd: Path) -> List[Event]:
    """
    Embed table markup only.

    Raises:
        TableFormatError: If the payload holds anything besides tables
    """
    fragment: List[Event] = []
    depth = 0
    for event in parse_events(payload):
        if event.kind in (EventKind.START, EventKind.END) and event.tag in TABLE_TAGS:
            depth += 1 if event.is_start else -1
            fragment.append(event)
        elif depth > 0 and (event.kind in _CELL_LEAVES or event.tag in (
                ev.Tag.EMPHASIS, ev.Tag.STRONG, ev.Tag.STRIKETHROUGH, ev.Tag.LINK)):
            fragment.append(event)
        else:
            found = event.tag.value if event.tag else event.kind.value
            raise TableFormatError(f"Expected only table markup in output, found '{found}'")
    return prefix + [ev.hard_break()] + fragment + [ev.hard_break()]


OUTPUT_HANDLERS: Dict[str, OutputHandler] = {
    "markdown": output_markdown,
    "verbose": output_verbose,
    "txt": output_verbose,
    "text": output_verbose,
    "image": output_image,
    "svg": output_image,
    "png": output_image,
    "file": output_file,
    "table": output_table,
}


def output_handler(fmt: str) -> OutputHandler:
    """Look up a renderer by format name, falling back to verbose."""
    handler = OUTPUT_HANDLERS.get(fmt.strip())
    if handler is None:
        logger.debug(f"Unknown output format '{fmt}', using verbose")
        return output_verbose
    return handler


def split_format(args: str, default: str) -> Tuple[str, str]:
    """
    Split an argument string into (format name, renderer arguments).

    The format is the first space-delimited token of the trimmed string and
    the rest (after the first space) is passed through untouched.
    """
    trimmed = args.strip()
    if not trimmed:
        return default, ""
    fmt, _, rest = trimmed.partition(" ")
    return fmt, rest
