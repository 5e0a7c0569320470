"""
Pytest Configuration and Fixtures
"""

import logging
import sys
import tempfile
from pathlib import Path
from typing import Generator, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mdbook_nadi.config import NadiBookConfig
from mdbook_nadi.evaluator import (
    NadiCliEvaluator,
    TaskContext,
    TaskEvaluator,
    reset_function_registries,
)
from mdbook_nadi.exceptions import TaskExecutionError
from mdbook_nadi.logging_utils import LOGGER_NAME


class EchoEvaluator(TaskEvaluator):
    """
    In-process evaluator for tests.

    Runs line by line: `echo TEXT` prints TEXT, `return TEXT` returns it,
    `fail TEXT` raises and anything else is returned as `ran: <line>`.
    Every executed command is recorded in `executed`.
    """

    def __init__(self):
        self.executed: List[str] = []

    def split_commands(self, script: str) -> List[str]:
        return [line for line in script.split("\n") if line.strip()]

    def execute(self, command: str, context: TaskContext) -> Optional[str]:
        self.executed.append(command)
        verb, _, rest = command.partition(" ")
        if verb == "echo":
            print(rest)
            return None
        if verb == "return":
            return rest
        if verb == "fail":
            raise TaskExecutionError(rest or "failed", command)
        return f"ran: {command}"


@pytest.fixture(autouse=True)
def clean_registries():
    """Every test starts with an empty function registry cache."""
    reset_function_registries()
    yield
    reset_function_registries()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handler, level and propagate changes made to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def echo_evaluator() -> EchoEvaluator:
    return EchoEvaluator()


@pytest.fixture
def python_evaluator() -> NadiCliEvaluator:
    """Command line evaluator backed by the running Python interpreter."""
    return NadiCliEvaluator(command=sys.executable, timeout=30)


@pytest.fixture
def config() -> NadiBookConfig:
    return NadiBookConfig()


@pytest.fixture
def sample_book(temp_dir: Path) -> Path:
    """Create a minimal book layout (book root with a src directory)."""
    src = temp_dir / "src"
    src.mkdir()
    (src / "data.txt").write_text("line one\nline two\n")
    (temp_dir / "book.toml").write_text(
        "[book]\ntitle = \"Sample\"\n\n[preprocessor.nadi]\n"
    )
    return temp_dir
