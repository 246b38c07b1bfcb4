"""
Arbor faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every error the package raises.
- CommandException: base type that carries message + options and knows how to render
  itself in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface a fault (raise, or print in shell mode).

Where faults happen
- Declaration/compilation time: a host compiled twice, or extended after compiling.
- Registry shim: an unbound top-level name, or a raw name bound twice.
Dispatch and completion inside a compiled tree never raise; unknown input falls back
to the default handler, the help listing, or a warning line.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - declaration (2110x): ALREADY_COMPILED
    - registry (2120x): UNKNOWN_COMMAND, DUPLICATE_BINDING
    """
    # --- declaration errors (21xxx) ---
    ALREADY_COMPILED  = 21101

    # --- registry errors (21xxx) ---
    UNKNOWN_COMMAND   = 21201
    DUPLICATE_BINDING = 21202

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to override
        numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    code = Unset
    title = "command error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(__import__("__main__"), "__styles__", {}))

        prog = getattr(__import__("__main__"), "__prog__", "arbor")
        header = Text.assemble(
            "[ ",
            (prog, styles["prog-name"]),
            " — ",
            (self.code.normalize() if self.code else "-", styles["code"]),
            " | ",
            (self.title.title(), styles["error-title"]),
            " ]",
        )
        renders = [header, Text(str(self.message or ""), styles["error-message"])]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble((" → ", styles["hint-arrow"]), (hint, styles["hint"])))
        return Group(*renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class AlreadyCompiledError(CommandException):
    code = FaultCode.ALREADY_COMPILED
    title = "already compiled"


class UnknownCommandError(CommandException):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"


class DuplicateBindingError(CommandException):
    code = FaultCode.DUPLICATE_BINDING
    title = "duplicate binding"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via __replace__(**options) before triggering.
    - with shell=True the fault is printed on the stderr console; otherwise it is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "CommandException",
    "AlreadyCompiledError",
    "UnknownCommandError",
    "DuplicateBindingError",
    "FaultCode",
    "trigger",
)
