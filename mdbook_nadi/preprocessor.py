"""
mdBook Preprocessor
===================

mdBook sends `[context, book]` as JSON on stdin and reads the processed book
back from stdout. Every chapter (including nested sub-chapters) has its
content rewritten by the chapter processor. A chapter that fails for any
reason is logged and left as it was; the other chapters still run.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO, Tuple

from .chapter import ChapterProcessor
from .config import NadiBookConfig, load_config
from .evaluator import TaskEvaluator, create_evaluator
from .exceptions import ProtocolError, SerializationError
from .version import SUPPORTED_MDBOOK_VERSION, is_compatible_mdbook

logger = logging.getLogger(__name__)

PREPROCESSOR_NAME = "nadi-preprocessor"
CONFIG_TABLE = "nadi"
UNSUPPORTED_RENDERER = "not-supported"


def parse_input(stream: TextIO) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Read the `[context, book]` pair sent by mdBook.

    Raises:
        ProtocolError: If the input is not the expected JSON pair
    """
    try:
        data = json.load(stream)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Unable to parse the input: {e}")
    if not isinstance(data, list) or len(data) != 2 or not all(isinstance(d, dict) for d in data):
        raise ProtocolError("Expected a JSON array [context, book] on stdin")
    context, book = data

    mdbook_version = str(context.get("mdbook_version", ""))
    if mdbook_version and not is_compatible_mdbook(mdbook_version):
        logger.warning(
            f"The mdbook-nadi preprocessor was built against version {SUPPORTED_MDBOOK_VERSION} "
            f"of mdbook, but we're being called from version {mdbook_version}"
        )
    return context, book


def iter_chapters(sections: List[Any]) -> Iterator[Dict[str, Any]]:
    """Yield every chapter of a section list in document order, depth first."""
    for item in sections:
        if not isinstance(item, dict) or "Chapter" not in item:
            continue
        chapter = item["Chapter"]
        yield chapter
        yield from iter_chapters(chapter.get("sub_items") or [])


class NadiPreprocessor:
    """
    Runs nadi code blocks in every chapter of a book.

    Args:
        config: Preprocessor configuration (loaded from the context if None)
        evaluator: Task evaluator (built from the configuration if None)
    """

    name = PREPROCESSOR_NAME

    def __init__(self, config: Optional[NadiBookConfig] = None,
                 evaluator: Optional[TaskEvaluator] = None):
        self.config = config
        self.evaluator = evaluator

    def supports_renderer(self, renderer: str) -> bool:
        return renderer != UNSUPPORTED_RENDERER

    def resolve_config(self, context: Dict[str, Any]) -> NadiBookConfig:
        if self.config is not None:
            return self.config
        book_config = context.get("config") or {}
        table = (book_config.get("preprocessor") or {}).get(CONFIG_TABLE)
        return load_config(Path(context.get("root", ".")), table)

    def working_dir(self, context: Dict[str, Any], config: NadiBookConfig) -> Path:
        root = Path(context.get("root", "."))
        if config.working_dir == "root":
            return root
        src = ((context.get("config") or {}).get("book") or {}).get("src", "src")
        return root / src

    def run(self, context: Dict[str, Any], book: Dict[str, Any]) -> Dict[str, Any]:
        """Process every chapter of `book` in place and return it."""
        config = self.resolve_config(context)
        evaluator = self.evaluator or create_evaluator(config.nadi_command, config.nadi_args, config.timeout)
        processor = ChapterProcessor(evaluator, config)
        cwd = self.working_dir(context, config)

        for chapter in iter_chapters(book.get("sections") or []):
            self.process_chapter(processor, chapter, cwd)
        return book

    def process_chapter(self, processor: ChapterProcessor, chapter: Dict[str, Any], cwd: Path) -> bool:
        """Rewrite one chapter's content; returns False when it was left unchanged."""
        content = chapter.get("content")
        if not content:
            return False
        name = chapter.get("name", "<unnamed>")
        logger.debug(f"Processing chapter '{name}'")
        try:
            chapter["content"] = processor.process(content, cwd)
        except SerializationError as e:
            logger.error(f"Chapter '{name}' left unchanged: {e}")
            return False
        except Exception:
            logger.exception(f"Chapter '{name}' left unchanged after an unexpected error")
            return False
        return True

    def handle_preprocessing(self, stdin: TextIO, stdout: TextIO) -> None:
        """Full mdBook round trip: stdin JSON in, processed book JSON out."""
        context, book = parse_input(stdin)
        json.dump(self.run(context, book), stdout)
