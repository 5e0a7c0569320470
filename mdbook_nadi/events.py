"""
Document Events - Flat event model for markdown documents

A chapter is handled as a flat sequence of events: START/END pairs for
container blocks and inline spans, plus leaf events for text runs, code
spans, raw html, breaks, rules, task-list markers and footnote references.

Events produced here never share mutable state with a parser buffer:
`copy_events` deep-copies a fragment when it is retained beyond the parse
that created it.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class EventKind(str, Enum):
    """Kinds of document events."""
    START = "start"
    END = "end"
    TEXT = "text"
    CODE = "code"
    HTML = "html"
    INLINE_HTML = "inline_html"
    SOFT_BREAK = "soft_break"
    HARD_BREAK = "hard_break"
    RULE = "rule"
    TASK_LIST_MARKER = "task_list_marker"
    FOOTNOTE_REFERENCE = "footnote_reference"


class Tag(str, Enum):
    """Block and span kinds carried by START/END events."""
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BLOCK_QUOTE = "block_quote"
    CODE_BLOCK = "code_block"
    LIST = "list"
    ITEM = "item"
    BLOCK_TEXT = "block_text"
    TABLE = "table"
    TABLE_HEAD = "table_head"
    TABLE_BODY = "table_body"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    STRIKETHROUGH = "strikethrough"
    LINK = "link"
    IMAGE = "image"
    FOOTNOTES = "footnotes"
    FOOTNOTE_DEFINITION = "footnote_definition"


TABLE_TAGS = frozenset({
    Tag.TABLE,
    Tag.TABLE_HEAD,
    Tag.TABLE_BODY,
    Tag.TABLE_ROW,
    Tag.TABLE_CELL,
})


@dataclass
class Event:
    """
    One unit of a document event stream.

    Attributes:
        kind: Event kind
        tag: Block/span kind, for START and END events only
        text: Payload of leaf events (text, code, html, footnote label)
        attrs: Tag attributes (heading level, link url, code info string...)
        props: Layout hints kept for re-serialization (list bullet, fence marker...)
    """
    kind: EventKind
    tag: Optional[Tag] = None
    text: str = ""
    attrs: Dict[str, Any] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_start(self) -> bool:
        return self.kind == EventKind.START

    @property
    def is_end(self) -> bool:
        return self.kind == EventKind.END

    @property
    def is_text(self) -> bool:
        return self.kind == EventKind.TEXT

    def is_start_of(self, tag: Tag) -> bool:
        return self.kind == EventKind.START and self.tag == tag

    def is_end_of(self, tag: Tag) -> bool:
        return self.kind == EventKind.END and self.tag == tag

    @property
    def info(self) -> str:
        """Info string of a code block start (empty for indented blocks)."""
        return self.attrs.get("info", "") or ""

    def copy(self) -> "Event":
        """Independent deep copy of this event."""
        return Event(
            kind=self.kind,
            tag=self.tag,
            text=str(self.text),
            attrs=copy.deepcopy(self.attrs),
            props=copy.deepcopy(self.props),
        )


# =============================================================================
# Constructors
# =============================================================================

def start(tag: Tag, attrs: Optional[Dict[str, Any]] = None, **props) -> Event:
    return Event(EventKind.START, tag=tag, attrs=dict(attrs or {}), props=props)


def end(tag: Tag) -> Event:
    return Event(EventKind.END, tag=tag)


def text(value: str) -> Event:
    return Event(EventKind.TEXT, text=value)


def inline_html(value: str) -> Event:
    return Event(EventKind.INLINE_HTML, text=value)


def hard_break() -> Event:
    return Event(EventKind.HARD_BREAK)


def code_block(body: str, info: str = "") -> List[Event]:
    """Fenced code block as a balanced START/TEXT/END triple."""
    attrs = {"info": info} if info else {}
    return [
        start(Tag.CODE_BLOCK, attrs, style="fenced"),
        text(body),
        end(Tag.CODE_BLOCK),
    ]


def with_info(event: Event, info: str) -> Event:
    """Copy of a code block start event with a different info string."""
    rewritten = event.copy()
    if info:
        rewritten.attrs["info"] = info
    else:
        rewritten.attrs.pop("info", None)
    return rewritten


# =============================================================================
# Fragment helpers
# =============================================================================

def copy_events(events: Iterable[Event]) -> List[Event]:
    """Deep-copy a fragment so it can outlive the buffer it was parsed from."""
    return [event.copy() for event in events]


def is_balanced(events: Iterable[Event]) -> bool:
    """Check that every START has a matching END, properly nested."""
    stack: List[Tag] = []
    for event in events:
        if event.kind == EventKind.START:
            stack.append(event.tag)
        elif event.kind == EventKind.END:
            if not stack or stack.pop() != event.tag:
                return False
    return not stack


def plain_text(events: Iterable[Event]) -> str:
    """Concatenate the payloads of text-like leaf events."""
    parts = []
    for event in events:
        if event.kind in (EventKind.TEXT, EventKind.CODE):
            parts.append(event.text)
        elif event.kind in (EventKind.SOFT_BREAK, EventKind.HARD_BREAK):
            parts.append("\n")
    return "".join(parts)
