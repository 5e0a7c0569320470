"""
Chapter Processor - Event-stream state machine for one chapter
==============================================================

Scans the chapter's events left to right in one of three states:

    IDLE       outside any annotated block
    OPEN       annotated block started, no text seen yet
    GATHERING  collecting the block's text into the script

When an annotated block ends in GATHERING, its handler runs and the result
fragment is spliced right after the block. A block that ends while still
OPEN (no text at all) is passed through untouched and produces no result.
Blocks do not nest, so at most one block is in flight.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from . import events as ev
from .cmark import parse_events, render_events
from .config import NadiBookConfig
from .evaluator import TaskEvaluator
from .events import Event, Tag
from .exceptions import BlockError
from .handlers import SILENT_MARKER, CodeArgs, HandlerContext, code_args

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """States of the chapter scanner."""
    IDLE = "idle"
    OPEN = "open"
    GATHERING = "gathering"


class ChapterProcessor:
    """
    Runs the annotated code blocks of a chapter and splices in their results.

    All scan state lives in `process_events` locals, so one processor can be
    shared by chapters handled one after another or concurrently.
    """

    def __init__(self, evaluator: TaskEvaluator, config: Optional[NadiBookConfig] = None):
        self.evaluator = evaluator
        self.config = config or NadiBookConfig()

    def process(self, source: str, cwd: Path) -> str:
        """
        Rewrite one chapter's markdown.

        Raises:
            SerializationError: If the rewritten events cannot be serialized
        """
        return render_events(self.process_events(parse_events(source), cwd))

    def process_events(self, events: Sequence[Event], cwd: Path) -> List[Event]:
        """Run the annotated blocks found in `events` and return the new sequence."""
        ctx = HandlerContext(
            cwd=Path(cwd),
            evaluator=self.evaluator,
            result_label=self.config.result_label,
            error_label=self.config.error_label,
        )
        out: List[Event] = []
        state = ScanState.IDLE
        block: Optional[CodeArgs] = None
        opening: Optional[Event] = None
        body: List[Event] = []
        script = ""

        for event in events:
            if state == ScanState.IDLE:
                if event.is_start_of(Tag.CODE_BLOCK):
                    block = code_args(event.info)
                    if block is not None:
                        logger.debug(f"Found '{block.keyword}' block (args: {block.args!r})")
                        opening, body, state = event, [], ScanState.OPEN
                        continue
                out.append(event)

            elif state == ScanState.OPEN:
                if event.is_text:
                    script = event.text
                    body.append(event)
                    state = ScanState.GATHERING
                elif event.is_end_of(Tag.CODE_BLOCK):
                    out.append(opening)
                    out.extend(body)
                    out.append(event)
                    state = ScanState.IDLE
                else:
                    body.append(event)

            else:
                if event.is_text:
                    script += event.text
                    body.append(event)
                elif event.is_end_of(Tag.CODE_BLOCK):
                    if self.config.show_source:
                        out.append(ev.with_info(opening, block.keyword))
                        out.extend(self._displayed(body))
                        out.append(event)
                    out.extend(self._run_block(block, script, ctx))
                    state = ScanState.IDLE
                else:
                    body.append(event)

        if state != ScanState.IDLE:
            out.append(opening)
            out.extend(body)
        return out

    def _displayed(self, body: List[Event]) -> List[Event]:
        if not self.config.hide_silent_lines:
            return body
        shown = []
        for event in body:
            if event.is_text:
                kept = [l for l in event.text.splitlines(keepends=True) if not l.startswith(SILENT_MARKER)]
                event = ev.text("".join(kept))
            shown.append(event)
        return shown

    def _run_block(self, block: CodeArgs, script: str, ctx: HandlerContext) -> List[Event]:
        try:
            fragment = block.handler(script, block.args, ctx)
        except BlockError as e:
            logger.warning(f"'{block.keyword}' block failed: {e}")
            fragment = ctx.error_fragment(str(e))
        return ev.copy_events(fragment)


def process_chapter(source: str, cwd: Path, evaluator: TaskEvaluator,
                    config: Optional[NadiBookConfig] = None) -> str:
    """Convenience wrapper around `ChapterProcessor.process`."""
    return ChapterProcessor(evaluator, config).process(source, cwd)
