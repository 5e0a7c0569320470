"""
String templates for `stp run` blocks.

Templates use single braces for variables (`{name}`), with the rest of the
Jinja2 syntax available (`{name | upper}`, `{% if %}` ...). Undefined
variables are render errors.
"""

import logging
from functools import lru_cache
from typing import Dict, Mapping

import jinja2

from .exceptions import ArgumentParseError, TemplateError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.BaseLoader(),
        variable_start_string="{",
        variable_end_string="}",
        undefined=jinja2.StrictUndefined,
        autoescape=False,
    )


def parse_template(source: str) -> jinja2.Template:
    """
    Compile a template.

    Raises:
        TemplateError: On syntax errors
    """
    try:
        return _environment().from_string(source)
    except jinja2.TemplateSyntaxError as e:
        raise TemplateError(f"Invalid template (line {e.lineno}): {e.message}") from e


def render_template(template: jinja2.Template, variables: Mapping[str, str]) -> str:
    """
    Render a compiled template.

    Raises:
        TemplateError: On undefined variables or any exception raised while rendering
    """
    try:
        return template.render(dict(variables))
    except jinja2.TemplateError as e:
        raise TemplateError(str(e)) from e
    except Exception as e:
        # expressions run on string values, e.g. {x + 1}
        raise TemplateError(f"{type(e).__name__}: {e}") from e


def parse_variables(args: str) -> Dict[str, str]:
    """
    Parse `key=value;key=value` arguments.

    Empty entries are skipped; keys and values are trimmed.

    Raises:
        ArgumentParseError: If a non-empty entry has no `=`
    """
    variables: Dict[str, str] = {}
    for entry in args.split(";"):
        if not entry.strip():
            continue
        key, sep, value = entry.partition("=")
        if not sep:
            raise ArgumentParseError(f"variables not in key=value pairs: '{entry.strip()}'")
        variables[key.strip()] = value.strip()
    return variables
