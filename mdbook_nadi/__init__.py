"""
mdbook-nadi - mdBook preprocessor running nadi tasks inside markdown chapters
"""

from .version import __version__

from .exceptions import (
    NadiBookError,
    BlockError,
    ArgumentParseError,
    TemplateError,
    TableFormatError,
    TaskExecutionError,
    SerializationError,
    ConfigError,
    ProtocolError,
)
from .events import Event, EventKind, Tag
from .cmark import parse_events, render_events
from .clipping import CLIP_DELIMITER, clip_output
from .output import OUTPUT_HANDLERS, output_handler, split_format
from .evaluator import (
    TaskContext,
    TaskEvaluator,
    NadiCliEvaluator,
    create_evaluator,
    get_function_registry,
)
from .handlers import CODE_HANDLERS, CodeArgs, HandlerContext, code_args
from .config import NadiBookConfig, load_config
from .chapter import ChapterProcessor, process_chapter
from .preprocessor import NadiPreprocessor

__all__ = [
    "__version__",
    "NadiBookError",
    "BlockError",
    "ArgumentParseError",
    "TemplateError",
    "TableFormatError",
    "TaskExecutionError",
    "SerializationError",
    "ConfigError",
    "ProtocolError",
    "Event",
    "EventKind",
    "Tag",
    "parse_events",
    "render_events",
    "CLIP_DELIMITER",
    "clip_output",
    "OUTPUT_HANDLERS",
    "output_handler",
    "split_format",
    "TaskContext",
    "TaskEvaluator",
    "NadiCliEvaluator",
    "create_evaluator",
    "get_function_registry",
    "CODE_HANDLERS",
    "CodeArgs",
    "HandlerContext",
    "code_args",
    "NadiBookConfig",
    "load_config",
    "ChapterProcessor",
    "process_chapter",
    "NadiPreprocessor",
]
