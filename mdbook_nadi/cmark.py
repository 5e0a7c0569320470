"""
Markdown <-> Document Events
============================

Parsing uses mistune v3 in AST mode with the table, footnote, strikethrough
and task-list plugins (the same extensions mdBook enables for chapters).
The nested mistune AST is flattened into `Event` sequences; the reverse
direction rebuilds the AST from events and renders it with a
`MarkdownRenderer` extended to cover the plugin node types.
"""

import copy
import logging
import re
from functools import lru_cache
from typing import Any, Dict, List, Sequence

import mistune
from mistune.core import BlockState
from mistune.renderers.markdown import MarkdownRenderer

from .events import Event, EventKind, Tag
from .exceptions import SerializationError

logger = logging.getLogger(__name__)

MARKDOWN_PLUGINS = ["table", "footnotes", "strikethrough", "task_lists"]


# =============================================================================
# Node type tables
# =============================================================================

_TAG_BY_TYPE: Dict[str, Tag] = {
    "paragraph": Tag.PARAGRAPH,
    "heading": Tag.HEADING,
    "block_quote": Tag.BLOCK_QUOTE,
    "list": Tag.LIST,
    "list_item": Tag.ITEM,
    "block_text": Tag.BLOCK_TEXT,
    "table": Tag.TABLE,
    "table_head": Tag.TABLE_HEAD,
    "table_body": Tag.TABLE_BODY,
    "table_row": Tag.TABLE_ROW,
    "table_cell": Tag.TABLE_CELL,
    "emphasis": Tag.EMPHASIS,
    "strong": Tag.STRONG,
    "strikethrough": Tag.STRIKETHROUGH,
    "link": Tag.LINK,
    "image": Tag.IMAGE,
    "footnotes": Tag.FOOTNOTES,
    "footnote_item": Tag.FOOTNOTE_DEFINITION,
}
_TYPE_BY_TAG: Dict[Tag, str] = {tag: name for name, tag in _TAG_BY_TYPE.items()}
_TYPE_BY_TAG[Tag.CODE_BLOCK] = "block_code"

_LEAF_BY_TYPE: Dict[str, EventKind] = {
    "text": EventKind.TEXT,
    "codespan": EventKind.CODE,
    "block_html": EventKind.HTML,
    "block_error": EventKind.HTML,
    "inline_html": EventKind.INLINE_HTML,
    "softbreak": EventKind.SOFT_BREAK,
    "linebreak": EventKind.HARD_BREAK,
    "thematic_break": EventKind.RULE,
    "footnote_ref": EventKind.FOOTNOTE_REFERENCE,
}
_TYPE_BY_LEAF: Dict[EventKind, str] = {
    EventKind.TEXT: "text",
    EventKind.CODE: "codespan",
    EventKind.HTML: "block_html",
    EventKind.INLINE_HTML: "inline_html",
    EventKind.SOFT_BREAK: "softbreak",
    EventKind.HARD_BREAK: "linebreak",
    EventKind.RULE: "thematic_break",
    EventKind.FOOTNOTE_REFERENCE: "footnote_ref",
    EventKind.TASK_LIST_MARKER: "task_marker",
}

_INLINE_TAGS = frozenset({Tag.EMPHASIS, Tag.STRONG, Tag.STRIKETHROUGH, Tag.LINK, Tag.IMAGE})
_INLINE_LEAVES = frozenset({
    EventKind.TEXT,
    EventKind.CODE,
    EventKind.INLINE_HTML,
    EventKind.SOFT_BREAK,
    EventKind.HARD_BREAK,
    EventKind.FOOTNOTE_REFERENCE,
})
# Containers whose children are blocks; inline content is wrapped in a paragraph
_BLOCK_CONTAINERS = frozenset({"document", "block_quote", "list_item", "footnote_item"})

# Token keys that are structure, not layout
_STRUCTURAL_KEYS = frozenset({"type", "children", "raw", "attrs", "text", "label", "parent"})


# =============================================================================
# Parsing: markdown -> events
# =============================================================================

@lru_cache(maxsize=1)
def _markdown() -> mistune.Markdown:
    return mistune.create_markdown(renderer="ast", plugins=MARKDOWN_PLUGINS)


def parse_tokens(source: str) -> List[Dict[str, Any]]:
    """Parse markdown into a mistune AST (list of token dicts)."""
    tokens, _state = _markdown().parse(source)
    return tokens


def parse_events(source: str) -> List[Event]:
    """Parse markdown text into a flat list of document events."""
    return tokens_to_events(parse_tokens(source))


def tokens_to_events(tokens: Sequence[Dict[str, Any]]) -> List[Event]:
    """Flatten a mistune AST into document events."""
    events: List[Event] = []
    for token in tokens:
        _flatten(token, events)
    return events


def _layout(token: Dict[str, Any]) -> Dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in token.items() if k not in _STRUCTURAL_KEYS}


def _flatten(token: Dict[str, Any], out: List[Event]) -> None:
    ttype = token["type"]
    attrs = copy.deepcopy(token.get("attrs") or {})

    if ttype == "blank_line":
        return

    if ttype == "block_code":
        out.append(Event(EventKind.START, tag=Tag.CODE_BLOCK, attrs=attrs, props=_layout(token)))
        raw = token.get("raw", "")
        if raw:
            out.append(Event(EventKind.TEXT, text=raw))
        out.append(Event(EventKind.END, tag=Tag.CODE_BLOCK))
        return

    if ttype == "task_list_item":
        checked = bool(attrs.pop("checked", False))
        out.append(Event(EventKind.START, tag=Tag.ITEM, attrs=attrs, props=_layout(token)))
        out.append(Event(EventKind.TASK_LIST_MARKER, attrs={"checked": checked}))
        for child in token.get("children", []):
            _flatten(child, out)
        out.append(Event(EventKind.END, tag=Tag.ITEM))
        return

    tag = _TAG_BY_TYPE.get(ttype)
    if tag is not None:
        out.append(Event(EventKind.START, tag=tag, attrs=attrs, props=_layout(token)))
        for child in token.get("children", []):
            _flatten(child, out)
        out.append(Event(EventKind.END, tag=tag))
        return

    kind = _LEAF_BY_TYPE.get(ttype)
    if kind is not None:
        out.append(Event(kind, text=token.get("raw", ""), attrs=attrs))
        return

    logger.debug(f"Unsupported markdown node '{ttype}' kept as raw html")
    out.append(Event(EventKind.HTML, text=token.get("raw", "")))


# =============================================================================
# Serialization: events -> markdown
# =============================================================================

class _TreeBuilder:
    """Rebuilds a mistune AST from a flat event sequence."""

    def __init__(self):
        self.root: Dict[str, Any] = {"type": "document", "children": []}
        self.stack: List[Dict[str, Any]] = [self.root]
        self.tags: List[Tag] = []

    def _target(self, inline: bool) -> List[Dict[str, Any]]:
        parent = self.stack[-1]
        children = parent["children"]
        if inline and parent["type"] in _BLOCK_CONTAINERS:
            if not children or not children[-1].get("implicit"):
                children.append({"type": "paragraph", "children": [], "implicit": True})
            return children[-1]["children"]
        return children

    def feed(self, event: Event) -> None:
        if event.kind == EventKind.START:
            token = dict(copy.deepcopy(event.props))
            token["type"] = _TYPE_BY_TAG[event.tag]
            token["children"] = []
            if event.attrs:
                token["attrs"] = copy.deepcopy(event.attrs)
            self._target(event.tag in _INLINE_TAGS).append(token)
            self.stack.append(token)
            self.tags.append(event.tag)
        elif event.kind == EventKind.END:
            if not self.tags or self.tags[-1] != event.tag:
                expected = self.tags[-1].value if self.tags else "nothing"
                raise SerializationError(
                    f"Unbalanced events: end of '{event.tag.value}' while '{expected}' is open"
                )
            self.tags.pop()
            token = self.stack.pop()
            if token["type"] == "block_code":
                token["raw"] = "".join(c.get("raw", "") for c in token.pop("children"))
        else:
            token = {"type": _TYPE_BY_LEAF[event.kind]}
            if event.kind == EventKind.TASK_LIST_MARKER:
                token["attrs"] = {"checked": bool(event.attrs.get("checked"))}
            else:
                token["raw"] = event.text
            self._target(event.kind in _INLINE_LEAVES).append(token)

    def finish(self) -> List[Dict[str, Any]]:
        if self.tags:
            raise SerializationError(f"Unbalanced events: '{self.tags[-1].value}' never closed")
        return self.root["children"]


def events_to_tokens(events: Sequence[Event]) -> List[Dict[str, Any]]:
    """Rebuild a mistune AST from document events."""
    builder = _TreeBuilder()
    for event in events:
        builder.feed(event)
    return builder.finish()


_UNESCAPED_PIPE = re.compile(r"(?<!\\)\|")
_ALIGN_RULES = {None: "---", "left": ":--", "right": "--:", "center": ":-:"}


class BookMarkdownRenderer(MarkdownRenderer):
    """Markdown renderer covering the table/footnote/task-list plugin nodes."""

    def strikethrough(self, token, state) -> str:
        return "~~" + self.render_children(token, state) + "~~"

    def task_marker(self, token, state) -> str:
        return "[x] " if token["attrs"].get("checked") else "[ ] "

    def footnote_ref(self, token, state) -> str:
        return "[^" + token["raw"] + "]"

    def footnotes(self, token, state) -> str:
        return self.render_children(token, state)

    def footnote_item(self, token, state) -> str:
        key = token.get("attrs", {}).get("key", "")
        lines = self.render_children(token, state).strip().splitlines()
        body = "\n".join([lines[0] if lines else ""] + ["    " + l if l else "" for l in lines[1:]])
        return "[^" + key + "]: " + body + "\n\n"

    def table(self, token, state) -> str:
        rows = []
        for section in token["children"]:
            if section["type"] == "table_head":
                cells = section["children"]
                rows.append(self._table_row(cells, state))
                rules = [_ALIGN_RULES.get(c.get("attrs", {}).get("align"), "---") for c in cells]
                rows.append("| " + " | ".join(rules) + " |")
            else:
                for row in section["children"]:
                    rows.append(self._table_row(row["children"], state))
        return "\n".join(rows) + "\n\n"

    def _table_row(self, cells, state) -> str:
        rendered = [_UNESCAPED_PIPE.sub(r"\\|", self.render_children(c, state)) for c in cells]
        return "| " + " | ".join(rendered) + " |"


def render_tokens(tokens: List[Dict[str, Any]]) -> str:
    return BookMarkdownRenderer()(tokens, BlockState())


def render_events(events: Sequence[Event]) -> str:
    """
    Serialize document events back to markdown text.

    Raises:
        SerializationError: If the events are not properly balanced
    """
    return render_tokens(events_to_tokens(events))
