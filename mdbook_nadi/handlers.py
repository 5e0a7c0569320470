"""
Code Block Handlers
===================

A fenced code block is special when its info string reads
`<keyword> run <arguments>`:

    task run [format [renderer args]]     run the block as a task script
    table run [format [extra args]]       render the block as a network table
    stp run key=value;key=value           render the block as a string template
    string-template run ...               same as stp

Handlers return the result fragment to splice after the block. Task
failures become an error fragment here; parse errors are raised as
`BlockError` and turned into an error fragment by the chapter processor.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from . import events as ev
from .clipping import clip_output
from .evaluator import TaskEvaluator
from .events import Event
from .exceptions import TaskExecutionError, TemplateError
from .output import output_handler, output_verbose, split_format
from .templates import parse_template, parse_variables, render_template

logger = logging.getLogger(__name__)

SILENT_MARKER = "!"
ERROR_LANGUAGE = "error"

_RUN_SEPARATOR = re.compile(r" run(?: |$)")


@dataclass
class HandlerContext:
    """What a handler needs besides the script and its arguments."""
    cwd: Path
    evaluator: TaskEvaluator
    result_label: str = "Results:"
    error_label: str = "*Error*:"

    def results(self) -> List[Event]:
        return [ev.text(self.result_label)]

    def error_fragment(self, message: str) -> List[Event]:
        return output_verbose([ev.text(self.error_label)], message.strip(), ERROR_LANGUAGE, self.cwd)


CodeHandler = Callable[[str, str, HandlerContext], List[Event]]


def strip_silent_marker(line: str) -> str:
    """Drop a single leading `!` from a script line."""
    return line[1:] if line.startswith(SILENT_MARKER) else line


# =============================================================================
# Handlers
# =============================================================================

def run_task(task: str, args: str, ctx: HandlerContext) -> List[Event]:
    """Run the block through the evaluator and render the clipped output."""
    script = "\n".join(strip_silent_marker(line) for line in task.split("\n"))
    try:
        response = ctx.evaluator.run_script(script, ctx.cwd)
    except TaskExecutionError as e:
        logger.warning(f"Task failed: {e.message}")
        return ctx.error_fragment(e.message)

    fmt, renderer_args = split_format(args, "verbose")
    return output_handler(fmt)(ctx.results(), clip_output(response), renderer_args, ctx.cwd)


def table_script(table: str, args: str) -> Tuple[str, str]:
    """
    Build the script for a table block.

    `!` lines are passed through as commands, every other line becomes part
    of the template given to `network table_to_<format>`.

    Returns:
        (script, format name)
    """
    commands: List[str] = []
    template = ""
    for line in table.split("\n"):
        if line.startswith(SILENT_MARKER):
            commands.append(line[1:])
        else:
            template += line + "\n"

    fmt, extra = split_format(args, "markdown")
    extra = extra.strip()
    targs = "," + extra if extra else ""

    commands.append(f'network table_to_{fmt}(template="{template}"{targs})')
    return "\n".join(commands) + "\n", fmt


def run_table(table: str, args: str, ctx: HandlerContext) -> List[Event]:
    """Render a network table from the block's template lines."""
    script, fmt = table_script(table, args)
    try:
        response = ctx.evaluator.run_script(script, ctx.cwd)
    except TaskExecutionError as e:
        logger.warning(f"Table task failed: {e.message}")
        return ctx.error_fragment(e.message)
    return output_handler(fmt)(ctx.results(), clip_output(response), "", ctx.cwd)


def run_template(templ: str, args: str, ctx: HandlerContext) -> List[Event]:
    """
    Render the block as a string template with `key=value;...` variables.

    Raises:
        TemplateError: If the template does not compile
        ArgumentParseError: If the arguments are not key=value pairs
    """
    template = parse_template(templ)
    variables = parse_variables(args)
    try:
        rendered = render_template(template, variables)
    except TemplateError as e:
        return ctx.error_fragment(str(e))
    label = f"{ctx.result_label.rstrip(':')} (with: {args}):"
    return output_verbose([ev.text(label)], rendered, "", ctx.cwd)


# =============================================================================
# Dispatch
# =============================================================================

CODE_HANDLERS: Dict[str, CodeHandler] = {
    "table": run_table,
    "task": run_task,
    "stp": run_template,
    "string-template": run_template,
}


class CodeArgs(NamedTuple):
    """A recognized block annotation."""
    keyword: str
    handler: CodeHandler
    args: str


def code_args(mark: str) -> Optional[CodeArgs]:
    """
    Match a code block info string against the handler table.

    Returns:
        CodeArgs with the untrimmed argument string, or None when the block
        is not annotated or the keyword is unknown
    """
    match = _RUN_SEPARATOR.search(mark)
    if match is None:
        return None
    keyword = mark[:match.start()].strip()
    handler = CODE_HANDLERS.get(keyword)
    if handler is None:
        return None
    return CodeArgs(keyword, handler, mark[match.end():])
