"""
Helmsman faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every user-facing failure of the
  flag parser and the command resolver.
- CommandException / CommandWarning: base types carrying a message plus
  read-only options, able to render themselves with rich.
- ParseError and its subclasses: the failures of FlagSet.parse(), each with the
  offending token (or position) available as an attribute.
- CommandNotFoundError: the resolver failure, carrying the full input.
- trigger(): surface any fault honoring shell/fancy/colorful options.
- getdoc(): optional description lookup for a code from the host application.

Behavior
- Outside shell mode exceptions are raised and warnings go through
  warnings.warn, so library callers get ordinary Python control flow.
- In shell mode faults are printed to stderr and exceptions end the process
  with exit status 1.

Notes
- The host application may define __styles__, __codes__, __docs__ and
  __prog__ in __main__ to restyle, relabel, document and rename output.
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - routing (1110x): UNKNOWN_COMMAND
    - flags (1111x/1112x): UNKNOWN_FLAG, MISSING_VALUE, INVALID_VALUE
    - positionals (1112x): POSITIONAL_CONVERSION
    - warnings (12xxx): EMPTY_INLINE_VALUE
    """
    # --- routing errors ---
    UNKNOWN_COMMAND             = 11101

    # --- flag errors ---
    UNKNOWN_FLAG                = 11112
    MISSING_VALUE               = 11117
    INVALID_VALUE               = 11124

    # --- positional errors ---
    POSITIONAL_CONVERSION       = 11121

    # --- warnings ---
    EMPTY_INLINE_VALUE          = 12111

    def normalize(self):
        """
        return a host-normalized label for this code.

        __main__.__codes__ may map codes to friendlier labels; otherwise the
        numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, kind):
    # Errors and warnings share one layout: a header line, the message, then the hint.
    main = __import__("__main__")
    options = fault.options
    colorful = options.get("colorful", False)
    fancy = options.get("fancy", False)

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    code = options.get("code")
    header = Text.assemble(
        "[ ",
        text(getattr(main, "__prog__", options.get("prog", "")) or "helmsman", styler("prog-name")),
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else "-", styler("code")),
        " | ",
        text(str(options.get("title", kind)).title(), styler(f"{kind}-title")),
        " ]"
    )
    message = text(fault.message, styler(f"{kind}-message"))
    renders = [message]
    if hint := options.get("hint"):
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

    if fancy:
        return Panel(Group(*renders), title=header, title_align="left")

    return Group(header, *renders)


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from self.__cause__
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        return replaced


class ParseError(CommandException):
    """Base of every failure raised by FlagSet.parse()."""


class UnknownFlagError(ParseError):
    @property
    def token(self):
        return self.options.get("token")


class MissingValueError(ParseError):
    @property
    def token(self):
        return self.options.get("token")


class InvalidValueError(ParseError):
    @property
    def token(self):
        return self.options.get("token")

    @property
    def detail(self):
        return self.options.get("detail")


class PositionalConversionError(ParseError):
    @property
    def index(self):
        return self.options.get("index")

    @property
    def detail(self):
        return self.options.get("detail")


class CommandNotFoundError(CommandException):
    @property
    def tokens(self):
        return tuple(self.options.get("tokens", ()))


class CommandWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class EmptyInlineValueWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods.
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode faults are printed; otherwise exceptions are raised and
      warnings are emitted.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation for a fault code, read from __main__.__docs__.

    returns None when the host does not document the code.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "CommandException",
    "ParseError",
    "UnknownFlagError",
    "MissingValueError",
    "InvalidValueError",
    "PositionalConversionError",
    "CommandNotFoundError",
    "CommandWarning",
    "EmptyInlineValueWarning",
    "trigger",
    "getdoc",
)
