"""
Helmsman commands: the executable units a Dispatcher routes to.

Overview
- Command: abstract capability exposing a FlagSet, a usage line and run().
- FunctionCommand: Command backed by a plain handler(flagset, args).
- command(): build a FunctionCommand directly or as a decorator.

Quick example
    >>> flags = FlagSet("greet")
    >>> loud = flags.boolean("loud", "l")
    >>> @command(flags, usage="say hello")
    ... def greet(flagset, args):
    ...     print(("HELLO" if loud.value else "hello"), *args)
"""
import inspect
from abc import ABC, abstractmethod

from .flagset import FlagSet
from .utils import Unset, mirror, rename


class Command(ABC):
    """
    Something a Dispatcher can execute.

    Implementations provide the FlagSet the dispatcher parses for them, a
    one-line usage text, and run(flagset, args) which receives the parsed
    FlagSet and its literal tokens. Whatever run() returns is handed back to
    the caller of Dispatcher.execute().
    """

    @property
    @abstractmethod
    def flagset(self): ...

    @property
    def usage(self):
        return ""

    @abstractmethod
    def run(self, flagset, args, /): ...


class FunctionCommand(Command):
    def __init__(self, flagset, handler=None, /, usage=""):
        if not isinstance(flagset, FlagSet):
            raise TypeError("FunctionCommand 'flagset' must be a FlagSet")
        if handler is not None and not callable(handler):
            raise TypeError("FunctionCommand 'handler' must be callable")
        if not isinstance(usage, str):
            raise TypeError("FunctionCommand 'usage' must be a string")
        self._flagset = flagset
        self._handler = handler
        self._usage = usage

    flagset = mirror("flagset")
    handler = mirror("handler")
    usage = mirror("usage")

    def run(self, flagset, args, /):
        if self._handler is None:
            return None
        return self._handler(flagset, args)

    def __repr__(self):
        name = getattr(self._handler, "__qualname__", None)
        return f"FunctionCommand({self._flagset!r}, {name or self._handler!r}, usage={self._usage!r})"


def command(flagset, handler=Unset, /, usage=Unset):
    """
    Create a FunctionCommand or return a decorator building one.

    Invocation modes
    - Direct: command(flags, handler, usage="...")
    - Decorator: @command(flags, usage="...") on a handler(flagset, args).

    When usage is omitted, the first line of the handler's docstring is used.
    """
    @rename("command")
    def wrapper(handler, /):
        if not callable(handler):
            raise TypeError("@command() must be applied to a callable")
        text = usage if usage is not Unset else (inspect.getdoc(handler) or "").partition("\n")[0]
        return FunctionCommand(flagset, handler, usage=text)

    return wrapper(handler) if handler is not Unset else wrapper


__all__ = (
    "Command",
    "FunctionCommand",
    "command",
)
