"""
Helmsman schemas: declare options on a dataclass instead of registering them by hand.

Overview
- option(), positional(), rest(), unknown(): dataclass field helpers that
  record how a field maps onto a FlagSet.
- from_dataclass(flagset, instance): register every field of instance, bound
  so that parsing writes straight into the instance.
- parse_dataclass(instance, tokens): one-shot convenience.
- infer(callback): turn callback(config) into a Command whose config type is
  read from the parameter annotation.

Field mapping
- Plain fields (and option()) become flags. The long name defaults to the
  field name lowercased with underscores turned into dashes; the usage text
  defaults to "<field> value".
- Supported types: bool, str, int, list[str], datetime.timedelta. Positional
  fields accept the scalar ones only; rest() and unknown() need list[str].
- A field typed as another dataclass (with an instance as its value) is walked
  recursively, its fields registered as if they were declared inline.
- Fields whose name starts with "_" are private and ignored.

Validation happens while the schema is built: unsupported types, bad names
or a non-dataclass target raise TypeError/ValueError before any parsing.

Quick example
    >>> @dataclasses.dataclass
    ... class Deploy:
    ...     environment: str = positional(0, usage="target environment")
    ...     dry_run: bool = option(short="n", usage="simulate the deployment")
    ...
    >>> config = Deploy()
    >>> parse_dataclass(config, ["-n", "staging"])
    >>> config.environment, config.dry_run
    ('staging', True)
"""
import dataclasses
import datetime
import inspect
import re
import typing
from typing import NamedTuple

from .commands import Command
from .flagset import FlagSet
from .utils import Unset, coalesce, mirror, rename
from .values import *

_KEY = "helmsman"

_SCALARS = {
    bool: BoolValue,
    str: StringValue,
    int: IntValue,
    datetime.timedelta: DurationValue,
}


class Declaration(NamedTuple):
    kind: str
    long: str | None = None
    short: str | None = None
    usage: str | None = None
    position: int | None = None


def _field(declaration, default, default_factory):
    return dataclasses.field(default=default, default_factory=default_factory, metadata={_KEY: declaration})


def option(long=Unset, short=Unset, default=dataclasses.MISSING, default_factory=dataclasses.MISSING, usage=Unset):
    """Declare a flag field."""
    if long is not Unset:
        if not isinstance(long, str):
            raise TypeError("option() 'long' must be a string")
        if not long or long.startswith("-"):
            raise ValueError("option() 'long' must be a non-empty name without leading dashes")
    if short is not Unset:
        if not isinstance(short, str):
            raise TypeError("option() 'short' must be a string")
        if len(short) != 1:
            raise ValueError("option() 'short' must be a single character")
    if usage is not Unset and not isinstance(usage, str):
        raise TypeError("option() 'usage' must be a string")
    return _field(
        Declaration("option", coalesce(long), coalesce(short), coalesce(usage)),
        default,
        default_factory,
    )


def positional(index, /, default=dataclasses.MISSING, default_factory=dataclasses.MISSING, usage=""):
    """Declare a field filled from the literal token at index."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError("positional() 'index' must be an integer")
    if index < 0:
        raise ValueError("positional() 'index' cannot be negative")
    if not isinstance(usage, str):
        raise TypeError("positional() 'usage' must be a string")
    return _field(Declaration("positional", usage=usage, position=index), default, default_factory)


def rest():
    """Declare a list[str] field receiving every literal token."""
    return _field(Declaration("rest"), dataclasses.MISSING, list)


def unknown():
    """Declare a list[str] field receiving unknown flags (enables capture)."""
    return _field(Declaration("unknown"), dataclasses.MISSING, list)


def _is_strings(hint):
    return typing.get_origin(hint) is list and typing.get_args(hint) == (str,)


def _value(hint, instance, name, *, scalar=False):
    bind = (instance, name)
    if hint in _SCALARS:
        return _SCALARS[hint](bind=bind)
    if not scalar and _is_strings(hint):
        return StringListValue(bind=bind)
    raise TypeError(f"field {type(instance).__name__}.{name} has unsupported type {hint!r}")


def from_dataclass(flagset, instance, /):
    """
    Register the fields of a dataclass instance on flagset.

    Every Value is bound to its field, so after flagset.parse() the instance
    holds the parsed results. Returns flagset.
    """
    if not isinstance(flagset, FlagSet):
        raise TypeError("from_dataclass() first argument must be a FlagSet")
    if not dataclasses.is_dataclass(instance) or isinstance(instance, type):
        raise TypeError("from_dataclass() second argument must be a dataclass instance")

    hints = typing.get_type_hints(type(instance))

    for field in dataclasses.fields(instance):
        if field.name.startswith("_"):
            continue

        hint = hints.get(field.name, field.type)
        declaration = field.metadata.get(_KEY, Declaration("option"))

        if declaration.kind == "option" and dataclasses.is_dataclass(hint) and isinstance(hint, type):
            if dataclasses.is_dataclass(nested := getattr(instance, field.name)):
                from_dataclass(flagset, nested)
                continue
            raise TypeError(f"field {type(instance).__name__}.{field.name} must hold a {hint.__name__} instance")

        match declaration:
            case Declaration(kind="positional", position=position, usage=usage):
                flagset.positional(_value(hint, instance, field.name, scalar=True), field.name, position, usage)
            case Declaration(kind="rest"):
                if not _is_strings(hint):
                    raise TypeError(f"rest field {type(instance).__name__}.{field.name} must be a list[str]")
                flagset.rest(StringListValue(bind=(instance, field.name)))
            case Declaration(kind="unknown"):
                if not _is_strings(hint):
                    raise TypeError(f"unknown field {type(instance).__name__}.{field.name} must be a list[str]")
                flagset.unknown(StringListValue(bind=(instance, field.name)))
            case Declaration(kind="option", long=long, short=short, usage=usage):
                flagset.var(
                    _value(hint, instance, field.name),
                    long or re.sub(r"_+", "-", field.name.lower().strip("_")),
                    short or "",
                    usage or f"{field.name} value",
                )

    return flagset


def parse_dataclass(instance, tokens, /):
    """Build a FlagSet from instance, parse tokens into it, and return the FlagSet."""
    flagset = from_dataclass(FlagSet(type(instance).__name__.lower()), instance)
    flagset.parse(tokens)
    return flagset


class InferredCommand(Command):
    """Command calling callback(config) with a dataclass filled by the parse."""

    def __init__(self, callback, config, /, usage=""):
        self._callback = callback
        self._config = config
        self._usage = usage
        self._flagset = from_dataclass(FlagSet(getattr(callback, "__name__", "")), config)

    flagset = mirror("flagset")
    usage = mirror("usage")

    @property
    def config(self):
        return self._config

    def run(self, flagset, args, /):
        return self._callback(self._config)

    def __repr__(self):
        return f"InferredCommand({self._callback.__qualname__}, {self._config!r})"


def infer(callback=Unset, /, usage=Unset):
    """
    Build a Command from a callable taking a single dataclass parameter.

    Invocation modes
    - Direct: infer(deploy, usage="deploy the application")
    - Decorator: @infer(usage="...") or bare @infer

    The parameter annotation names the config dataclass, which must be
    constructible without arguments. When usage is omitted, the first line
    of the callback's docstring is used.
    """
    @rename("infer")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("infer() argument must be callable")

        parameters = list(inspect.signature(callback).parameters.values())
        if len(parameters) != 1:
            raise TypeError(f"infer() callback must take exactly 1 parameter, got {len(parameters)}")
        if parameters[0].kind in (inspect.Parameter.KEYWORD_ONLY, inspect.Parameter.VAR_KEYWORD):
            raise TypeError("infer() callback parameter must be positional")

        hint = typing.get_type_hints(callback).get(parameters[0].name)
        if not (isinstance(hint, type) and dataclasses.is_dataclass(hint)):
            raise TypeError("infer() callback parameter must be annotated with a dataclass type")

        try:
            config = hint()
        except TypeError as error:
            raise TypeError(f"infer() config type {hint.__name__!r} must be constructible without arguments") from error

        text = usage if usage is not Unset else (inspect.getdoc(callback) or "").partition("\n")[0]
        return InferredCommand(callback, config, usage=text)

    return wrapper(callback) if callback is not Unset else wrapper


__all__ = (
    "option",
    "positional",
    "rest",
    "unknown",
    "from_dataclass",
    "parse_dataclass",
    "infer",
    "InferredCommand",
)
