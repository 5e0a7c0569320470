"""
Task Evaluators - Execution backends for task scripts
=====================================================

A task evaluator runs the commands of a gathered script and returns, per
command, an optional textual result or raises `TaskExecutionError`.
Anything an in-process evaluator prints while executing a command is
captured and placed before that command's result.

Evaluators are given their working directory explicitly; nothing here
changes the process working directory.

The function registry of an evaluator is expensive to build (plugin
discovery, executable lookup) and is therefore built once per process and
key, then handed out as a copy to every execution context.
"""

import contextlib
import io
import logging
import os
import shutil
import subprocess
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence

from .clipping import strip_ansi
from .exceptions import TaskExecutionError
from .logging_utils import log_command

logger = logging.getLogger(__name__)


# =============================================================================
# Process-wide function registry cache
# =============================================================================

_registry_lock = threading.Lock()
_registries: Dict[Hashable, Mapping[str, Any]] = {}


def get_function_registry(
    key: Hashable,
    builder: Callable[[], Mapping[str, Any]],
) -> Mapping[str, Any]:
    """
    Get the registry stored under `key`, building it on first access.

    The builder runs at most once per key; the stored registry is read-only.
    """
    with _registry_lock:
        registry = _registries.get(key)
        if registry is None:
            logger.info(f"Building function registry for {key}")
            registry = MappingProxyType(dict(builder()))
            _registries[key] = registry
    return registry


def reset_function_registries() -> None:
    """Drop all cached registries (useful for testing)."""
    with _registry_lock:
        _registries.clear()


@dataclass
class TaskContext:
    """Per-script execution context: working directory and a registry copy."""
    cwd: Path
    functions: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Evaluator interface
# =============================================================================

class TaskEvaluator(ABC):
    """
    Abstract base class for task evaluators.

    Subclasses implement `execute`; `split_commands` decides whether a script
    runs command by command or as a single batch.
    """

    def registry_key(self) -> Hashable:
        return type(self).__qualname__

    def build_registry(self) -> Mapping[str, Any]:
        """Build the function registry (called once per process and key)."""
        return {}

    def new_context(self, cwd: Path) -> TaskContext:
        registry = get_function_registry(self.registry_key(), self.build_registry)
        return TaskContext(cwd=Path(cwd), functions=dict(registry))

    def split_commands(self, script: str) -> List[str]:
        """Split a script into commands; the default runs it as one batch."""
        return [script]

    @abstractmethod
    def execute(self, command: str, context: TaskContext) -> Optional[str]:
        """
        Execute one command.

        Returns:
            The command's textual result, or None

        Raises:
            TaskExecutionError: If the command fails
        """
        pass

    def run_script(self, script: str, cwd: Path) -> str:
        """
        Run every command of a script in order and collect the output.

        For each command, its captured standard output is followed by its
        result (if any), joined by newlines. The first failing command aborts
        the remaining ones.

        Raises:
            TaskExecutionError: From the first failing command
        """
        context = self.new_context(cwd)
        parts: List[str] = []
        for command in self.split_commands(script):
            captured = io.StringIO()
            with contextlib.redirect_stdout(captured):
                result = self.execute(command, context)
            parts.append(captured.getvalue())
            if result is not None:
                parts.append(result)
        return "\n".join(parts)


# =============================================================================
# nadi command line backend
# =============================================================================

class NadiCliEvaluator(TaskEvaluator):
    """
    Runs task scripts through the `nadi` executable.

    The script is written to a private temporary file and passed as the last
    argument; the whole script is one batch so commands share interpreter
    state. Standard output is the result, a non-zero exit status is a failure
    reported with the standard error text.
    """

    def __init__(
        self,
        command: str = "nadi",
        args: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ):
        self.command = command
        self.args = list(args or [])
        self.timeout = timeout

    def registry_key(self) -> Hashable:
        return ("nadi-cli", self.command)

    def build_registry(self) -> Mapping[str, Any]:
        executable = shutil.which(self.command)
        if executable is None:
            logger.warning(f"'{self.command}' not found on PATH")
        return {"executable": executable or self.command}

    def execute(self, command: str, context: TaskContext) -> Optional[str]:
        executable = context.functions.get("executable", self.command)
        fd, script_path = tempfile.mkstemp(prefix="mdbook-nadi-", suffix=".tasks")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(command)
            argv = [executable, *self.args, script_path]
            started = time.monotonic()
            try:
                cp = subprocess.run(
                    argv,
                    cwd=str(context.cwd),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as e:
                raise TaskExecutionError(f"Could not run {self.command} command: {e}", command)
            except subprocess.TimeoutExpired:
                raise TaskExecutionError(f"Timeout after {self.timeout}s", command)
            duration_ms = (time.monotonic() - started) * 1000
            log_command(logger, " ".join(argv), str(context.cwd), cp.returncode, duration_ms)
        finally:
            with contextlib.suppress(OSError):
                os.unlink(script_path)

        if cp.returncode != 0:
            message = strip_ansi(cp.stderr).strip() or strip_ansi(cp.stdout).strip()
            raise TaskExecutionError(message or f"{self.command} exited with status {cp.returncode}", command)
        return strip_ansi(cp.stdout)


def create_evaluator(command: str = "nadi", args: Optional[Sequence[str]] = None,
                     timeout: Optional[float] = None) -> TaskEvaluator:
    """Build the default evaluator from configuration values."""
    return NadiCliEvaluator(command=command, args=args, timeout=timeout)
