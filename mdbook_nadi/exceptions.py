"""
Error taxonomy for mdbook-nadi.

Everything derived from BlockError is recovered inside the chapter and shown
as an inline error fragment. SerializationError aborts a single chapter.
"""


class NadiBookError(Exception):
    """Base class for mdbook-nadi errors."""
    pass


class BlockError(NadiBookError):
    """A failure local to one annotated code block."""
    pass


class ArgumentParseError(BlockError):
    """Raised when block arguments are not `key=value` pairs."""
    pass


class TemplateError(BlockError):
    """Raised when a string template cannot be parsed or rendered."""
    pass


class TableFormatError(BlockError):
    """Raised when a table payload contains something other than a table."""
    pass


class TaskExecutionError(BlockError):
    """Raised when the task evaluator fails on a command."""

    def __init__(self, message: str, command: str = ""):
        super().__init__(message)
        self.message = message
        self.command = command


class SerializationError(NadiBookError):
    """Raised when an event sequence cannot be turned back into markdown."""
    pass


class ConfigError(NadiBookError):
    """Raised for invalid configuration values."""
    pass


class ProtocolError(NadiBookError):
    """Raised when mdBook's preprocessor input is malformed."""
    pass
