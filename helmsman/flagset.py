"""
Helmsman flag sets: option schema and token parser for a single command.

Scope
- Flag: a long name and/or a short character bound to a Value.
- PositionalField: a named Value filled from the literal token at a fixed index.
- FlagSet: owns flags, positional fields, the optional rest slot and the
  optional unknown-flag capture, and parses token vectors against them.

Parsing rules
- "--" stops scanning; every following token is literal.
- "--name" / "--name=value": long form. Booleans need no value; other kinds
  take the inline value or consume the next token.
- "-abc": short cluster. Booleans are set one by one; the first value-taking
  flag takes the rest of the cluster (or the next token) and ends the cluster.
  Two value-taking flags cannot share a cluster.
- Anything else is literal.
- Unknown flags raise, unless capture is enabled: then the offending token and
  everything after it is captured verbatim.
- After the scan positional fields are converted from the literal tokens, the
  rest slot receives all literal tokens, and the capture list receives the
  captured tokens.

Notes
- Re-parsing resets the literal tokens and the capture list, never the values
  already stored in flags.
- Registering a name or character twice silently replaces the earlier flag.
"""
import difflib
import functools
import operator
import re
from collections.abc import Iterable

from .faults import *
from .utils import *
from .values import *


class SpecType(type):
    """
    Metaclass for schema entries (flags and positional fields).

    - __typename__ is derived from the class name ("PositionalField" becomes
      "positional-field") and used in validation messages.
    - Names listed in __introspectable__ become read-only properties backed
      by "_name" attributes, and feed __repr__/__rich_repr__.
    """
    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Flag(metaclass=SpecType):
    """
    A registered option.

    Properties
    - name: long name without dashes ("" when the flag is short-only).
    - short: single character ("" when the flag is long-only).
    - usage: help text.
    - value: the bound Value.
    - default: str(value) captured at registration time.
    """
    __introspectable__ = (
        "name",
        "short",
        "usage",
        "value",
        "default",
    )

    def __init__(self, value, /, name="", short="", usage=""):
        if not isinstance(value, Value):
            raise TypeError(f"{type(self).__typename__} 'value' must be a Value instance")
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        if name and (name.startswith("-") or "=" in name or any(char.isspace() for char in name)):
            raise ValueError(f"{type(self).__typename__} 'name' must not start with '-' or contain '=' or spaces")
        if not isinstance(short, str):
            raise TypeError(f"{type(self).__typename__} 'short' must be a string")
        if len(short) > 1:
            raise ValueError(f"{type(self).__typename__} 'short' must be a single character")
        if short in ("-", "=") or short.isspace():
            raise ValueError(f"{type(self).__typename__} 'short' cannot be {short!r}")
        if not name and not short:
            raise ValueError(f"{type(self).__typename__} must have a name or a short character")
        if not isinstance(usage, str):
            raise TypeError(f"{type(self).__typename__} 'usage' must be a string")
        self._value = value
        self._name = name
        self._short = short
        self._usage = usage
        self._default = str(value)

    @property
    def nullary(self):
        return self._value.nullary

    @property
    def label(self):
        """The most descriptive spelling: "--name" when available, else "-c"."""
        return f"--{self._name}" if self._name else f"-{self._short}"


class PositionalField(metaclass=SpecType):
    """A Value filled from the literal token at a zero-based index."""

    __introspectable__ = (
        "name",
        "position",
        "usage",
        "value",
    )

    def __init__(self, value, /, name, position, usage=""):
        if not isinstance(value, Value):
            raise TypeError(f"{type(self).__typename__} 'value' must be a Value instance")
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        if not name:
            raise ValueError(f"{type(self).__typename__} 'name' cannot be empty")
        if isinstance(position, bool) or not isinstance(position, int):
            raise TypeError(f"{type(self).__typename__} 'position' must be an integer")
        if position < 0:
            raise ValueError(f"{type(self).__typename__} 'position' cannot be negative")
        if not isinstance(usage, str):
            raise TypeError(f"{type(self).__typename__} 'usage' must be a string")
        self._value = value
        self._name = name
        self._position = position
        self._usage = usage


class FlagSet:
    """
    Option schema of one command plus the state of its last parse.

    Typical use
        >>> flags = FlagSet("build")
        >>> verbose = flags.boolean("verbose", "v", usage="print more")
        >>> output = flags.string("output", "o", "a.out", "output file")
        >>> flags.parse(["-v", "--output=prog", "main.go"])
        >>> verbose.value, output.value, flags.args
        (True, 'prog', ['main.go'])
    """

    def __init__(self, name="", /):
        if not isinstance(name, str):
            raise TypeError("FlagSet 'name' must be a string")
        self._name = name
        self._flags = {}
        self._shorts = {}
        self._positionals = {}
        self._rest = None
        self._unknown = None
        self._capture = False
        self._parsed = False
        self._args = []
        self._unknowns = []

    name = mirror("name")
    args = mirror("args")
    parsed = mirror("parsed")

    @property
    def unknown_flags(self):
        return list(self._unknowns)

    @property
    def allows_unknown(self):
        return self._capture

    @property
    def has_positionals(self):
        return len(self._positionals) > 0

    @property
    def has_rest(self):
        return self._rest is not None

    @property
    def positional_count(self):
        return max(self._positionals, default=-1) + 1

    def var(self, value, /, name="", short="", usage=""):
        """
        Register value under a long name and/or a short character.

        Returns the created Flag. Existing registrations under the same name
        or character are replaced.
        """
        flag = Flag(value, name, short, usage)
        if name:
            self._flags[name] = flag
        if short:
            self._shorts[short] = flag
        return flag

    def boolean(self, name="", short="", default=False, usage=""):
        return self.var(BoolValue(default), name, short, usage).value

    def string(self, name="", short="", default="", usage=""):
        return self.var(StringValue(default), name, short, usage).value

    def integer(self, name="", short="", default=0, usage=""):
        return self.var(IntValue(default), name, short, usage).value

    def duration(self, name="", short="", default=Unset, usage=""):
        return self.var(DurationValue(default), name, short, usage).value

    def strings(self, name="", short="", default=(), usage=""):
        return self.var(StringListValue(default), name, short, usage).value

    def positional(self, value, /, name, position, usage=""):
        """Bind value to the literal token at position (zero-based)."""
        field = PositionalField(value, name, position, usage)
        self._positionals[position] = field
        return field

    def rest(self, value=None, /):
        """
        Bind the rest slot: after parsing it holds every literal token.

        The slot starts out as an empty list. Returns its Value.
        """
        if value is None:
            value = StringListValue()
        if not isinstance(value, StringListValue):
            raise TypeError("FlagSet.rest() argument must be a StringListValue")
        value.value = []
        self._rest = value
        return value

    def unknown(self, value=None, /):
        """
        Bind the unknown-flag capture list and enable capture mode.

        Returns its Value.
        """
        if value is None:
            value = StringListValue()
        if not isinstance(value, StringListValue):
            raise TypeError("FlagSet.unknown() argument must be a StringListValue")
        self._unknown = value
        self._capture = True
        return value

    def allow_unknown(self, allow=True, /):
        """Toggle capture mode without binding a capture list."""
        self._capture = bool(allow)

    def lookup(self, name, /):
        """Return the flag registered under the long name, or None."""
        return self._flags.get(name)

    def lookup_short(self, short, /):
        """Return the flag registered under the short character, or None."""
        return self._shorts.get(short)

    def flags(self):
        """Distinct registered flags sorted by long name."""
        unique = {id(flag): flag for flag in (*self._flags.values(), *self._shorts.values())}
        return sorted(unique.values(), key=lambda x: (x.name, x.short))

    def positionals(self):
        """Positional fields in ascending position order."""
        return [self._positionals[position] for position in sorted(self._positionals)]

    def parse(self, tokens, /):
        """
        Parse tokens, writing into the bound values.

        Raises
        - UnknownFlagError, MissingValueError, InvalidValueError: flag failures.
        - PositionalConversionError: a positional field could not be converted.
        Values set before a failure keep their new state.
        """
        if isinstance(tokens, str) or not isinstance(tokens, Iterable):
            raise TypeError("FlagSet.parse() argument must be an iterable of strings")
        tokens = list(tokens)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("FlagSet.parse() argument must be an iterable of strings")

        self._parsed = True
        self._args = []
        self._unknowns = []

        index = 0
        while index < len(tokens):
            token = tokens[index]

            if token == "--":
                self._args.extend(tokens[index + 1:])
                break

            if token.startswith("--"):
                index = self._parse_long(tokens, index)
                continue

            if token.startswith("-") and len(token) > 1:
                index = self._parse_short(tokens, index)
                continue

            self._args.append(token)
            index += 1

        self._bind()

    def _capture_from(self, tokens, index):
        # Sticky absorption: the offending token and everything after it.
        self._unknowns.extend(tokens[index:])
        return len(tokens)

    def _suggest(self, name):
        if matches := difflib.get_close_matches(name, self._flags, n=1):
            return "did you mean '--%s'?" % matches[0]
        return "run with '--help' to list the available flags"

    def _parse_long(self, tokens, index):
        name, separator, text = tokens[index][2:].partition("=")

        if (flag := self._flags.get(name)) is None:
            if self._capture:
                return self._capture_from(tokens, index)
            raise UnknownFlagError(
                "unknown flag: --%s" % name,
                token="--%s" % name,
                code=FaultCode.UNKNOWN_FLAG,
                title="unknown flag",
                hint=self._suggest(name),
            )

        if separator:
            if not text:
                trigger(EmptyInlineValueWarning(
                    "empty inline value for --%s" % name,
                    token="--%s" % name,
                    code=FaultCode.EMPTY_INLINE_VALUE,
                    title="empty value",
                    hint="the flag is set to an empty value",
                ), shell=False)
        elif flag.nullary:
            text = "true"
        elif index + 1 < len(tokens):
            index += 1
            text = tokens[index]
        else:
            raise MissingValueError(
                "flag needs an argument: --%s" % name,
                token="--%s" % name,
                code=FaultCode.MISSING_VALUE,
                title="missing value",
                hint="pass it as '--%s <%s>' or '--%s=<%s>'" % (name, flag.value.typename, name, flag.value.typename),
            )

        self._apply(flag, text, "--%s" % name)
        return index + 1

    def _parse_short(self, tokens, index):
        cluster = tokens[index][1:]

        for offset, char in enumerate(cluster):
            if (flag := self._shorts.get(char)) is None:
                if self._capture:
                    return self._capture_from(tokens, index)
                raise UnknownFlagError(
                    "unknown flag: -%s" % char,
                    token="-%s" % char,
                    code=FaultCode.UNKNOWN_FLAG,
                    title="unknown flag",
                    hint="in the %s character of %r" % (ordinal(offset + 2), tokens[index]),
                )

            if flag.nullary:
                self._apply(flag, "true", "-%s" % char)
                continue

            if remainder := cluster[offset + 1:]:
                if (follower := self._shorts.get(remainder[0])) is not None and not follower.nullary:
                    raise MissingValueError(
                        "flag needs an argument: -%s" % char,
                        token="-%s" % char,
                        code=FaultCode.MISSING_VALUE,
                        title="missing value",
                        hint="-%s and -%s both take a value, pass them separately" % (char, remainder[0]),
                    )
                text = remainder
            elif index + 1 < len(tokens):
                index += 1
                text = tokens[index]
            else:
                raise MissingValueError(
                    "flag needs an argument: -%s" % char,
                    token="-%s" % char,
                    code=FaultCode.MISSING_VALUE,
                    title="missing value",
                    hint="pass it as '-%s <%s>'" % (char, flag.value.typename),
                )

            self._apply(flag, text, "-%s" % char)
            break

        return index + 1

    def _apply(self, flag, text, token):
        try:
            flag.value.set(text)
        except ValueError as error:
            raise InvalidValueError(
                "invalid flag value: %s: %s" % (token, error),
                token=token,
                detail=str(error),
                code=FaultCode.INVALID_VALUE,
                title="invalid value",
                hint="%s expects a %s" % (token, flag.value.typename),
            ) from error

    def _bind(self):
        for field in self.positionals():
            if field.position >= len(self._args):
                continue
            try:
                field.value.set(self._args[field.position])
            except ValueError as error:
                raise PositionalConversionError(
                    "invalid value for position %d: %s" % (field.position, error),
                    index=field.position,
                    detail=str(error),
                    code=FaultCode.POSITIONAL_CONVERSION,
                    title="invalid argument",
                    hint="the %s argument (%s) expects a %s" % (
                        ordinal(field.position + 1), field.name, field.value.typename
                    ),
                ) from error

        if self._rest is not None:
            self._rest.value = list(self._args)

        if self._unknown is not None:
            self._unknown.value = list(self._unknowns)

    def __repr__(self):
        return f"FlagSet({self._name!r})"


__all__ = (
    "Flag",
    "PositionalField",
    "FlagSet",
)

# Internal metaclass, not part of the public API.
del SpecType
