"""
Helmsman values: the typed slots that flags and positional fields write into.

Scope
- Value: base type knowing how to parse text into a Python object, how to
  render it back, and whether it consumes a following token (nullary).
- BoolValue, StringValue, IntValue, DurationValue, StringListValue: the closed
  set of supported kinds.

Behavior
- A Value stores its own state unless it is bound to (object, attribute); then
  every read and write goes through that attribute. The dataclass schema layer
  uses binding so parsed results land directly on the user's instance.
- set(text) parses and stores; conversion problems raise ValueError with a
  short, lowercase description (the parser wraps it into InvalidValueError).

Notes
- Only BoolValue is nullary.
- Durations accept the familiar "1h30m", "1.5s", "250ms", "10us" grammar and
  render back in the same compact form ("1h30m0s").
"""
import datetime
import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

from .utils import Unset


class Value(ABC):
    """
    A typed, settable slot.

    Parameters
    - default: initial value (Python typed). When omitted, a bound Value keeps
      the attribute's current value and an unbound one starts at zero().
    - bind: optional (object, attribute) pair receiving every write.
    """
    __slots__ = ("_value", "_bind")

    nullary = False
    typename = "value"

    def __init__(self, default=Unset, /, *, bind=Unset):
        if bind is not Unset:
            if not isinstance(bind, tuple) or len(bind) != 2 or not isinstance(bind[1], str):
                raise TypeError(f"{type(self).__name__} 'bind' must be an (object, attribute) pair")
            if bind[0] is None:
                raise ValueError(f"{type(self).__name__} 'bind' target cannot be None")
        self._bind = bind
        self._value = Unset
        if default is not Unset:
            self.value = default
        elif bind is Unset:
            self.value = self.zero()

    @property
    def value(self):
        if self._bind is not Unset:
            object, attribute = self._bind
            return getattr(object, attribute)
        return self._value

    @value.setter
    def value(self, value):
        value = self.check(value)
        if self._bind is not Unset:
            object, attribute = self._bind
            setattr(object, attribute, value)
        else:
            self._value = value

    @property
    def bound(self):
        return self._bind is not Unset

    def set(self, text, /):
        """Parse text and store the result."""
        if not isinstance(text, str):
            raise TypeError(f"{type(self).__name__}.set() argument must be a string")
        self.value = self.parse(text)

    def check(self, value, /):
        return value

    @abstractmethod
    def zero(self): ...

    @abstractmethod
    def parse(self, text, /): ...

    @abstractmethod
    def format(self, value, /): ...

    def __str__(self):
        return self.format(self.value)

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class BoolValue(Value):
    __slots__ = ()

    nullary = True
    typename = "bool"

    _truthy = frozenset(("1", "t", "T", "TRUE", "true", "True"))
    _falsy = frozenset(("0", "f", "F", "FALSE", "false", "False"))

    def zero(self):
        return False

    def check(self, value, /):
        if not isinstance(value, bool):
            raise TypeError(f"{type(self).__name__} value must be a boolean")
        return value

    def parse(self, text, /):
        if text in self._truthy:
            return True
        if text in self._falsy:
            return False
        raise ValueError(f"invalid boolean syntax {text!r}")

    def format(self, value, /):
        return "true" if value else "false"


class StringValue(Value):
    __slots__ = ()

    typename = "string"

    def zero(self):
        return ""

    def check(self, value, /):
        if not isinstance(value, str):
            raise TypeError(f"{type(self).__name__} value must be a string")
        return value

    def parse(self, text, /):
        return text

    def format(self, value, /):
        return value


class IntValue(Value):
    __slots__ = ()

    typename = "int"

    _pattern = re.compile(r"[+-]?[0-9]+")
    _bounds = (-(1 << 63), (1 << 63) - 1)

    def zero(self):
        return 0

    def check(self, value, /):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{type(self).__name__} value must be an integer")
        return value

    def parse(self, text, /):
        if not self._pattern.fullmatch(text):
            raise ValueError(f"invalid integer syntax {text!r}")
        number = int(text)
        lower, upper = self._bounds
        if not lower <= number <= upper:
            raise ValueError(f"integer {text!r} out of range")
        return number

    def format(self, value, /):
        return str(value)


# Microseconds per unit; timedelta cannot hold anything finer than 1us.
_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),  # U+00B5
    "μs": Decimal(1),  # U+03BC
    "ms": Decimal(1000),
    "s": Decimal(1000000),
    "m": Decimal(60000000),
    "h": Decimal(3600000000),
}

_DURATION = re.compile(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text, /):
    """
    Parse a duration string such as "300ms", "-1.5h" or "2h45m".

    A bare "0" is accepted; every other number needs a unit.
    """
    if not isinstance(text, str):
        raise TypeError("parse_duration() argument must be a string")
    source = text
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return datetime.timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {source!r}")

    total = Decimal(0)
    position = 0
    while position < len(text):
        if not (match := _DURATION.match(text, position)):
            raise ValueError(f"invalid duration {source!r}")
        number, unit = match.groups()
        if number in ("", "."):
            raise ValueError(f"invalid duration {source!r}")
        try:
            total += Decimal(number) * _UNITS[unit]
        except InvalidOperation:
            raise ValueError(f"invalid duration {source!r}") from None
        position = match.end()

    try:
        return datetime.timedelta(microseconds=sign * int(total))
    except OverflowError:
        raise ValueError(f"duration {source!r} out of range") from None


def format_duration(value, /):
    """
    Render a timedelta compactly: "1h0m0s", "2m3.5s", "1.5ms", "250µs", "0s".
    """
    if not isinstance(value, datetime.timedelta):
        raise TypeError("format_duration() argument must be a timedelta")
    micros = (value.days * 86400 + value.seconds) * 1000000 + value.microseconds
    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros == 0:
        return "0s"
    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1000000:
        whole, fraction = divmod(micros, 1000)
        return f"{sign}{whole}{f'.{fraction:03d}'.rstrip('0') if fraction else ''}ms"

    seconds, fraction = divmod(micros, 1000000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)

    text = f"{seconds}{f'.{fraction:06d}'.rstrip('0') if fraction else ''}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{text}"
    if minutes:
        return f"{sign}{minutes}m{text}"
    return f"{sign}{text}"


class DurationValue(Value):
    __slots__ = ()

    typename = "duration"

    def zero(self):
        return datetime.timedelta(0)

    def check(self, value, /):
        if not isinstance(value, datetime.timedelta):
            raise TypeError(f"{type(self).__name__} value must be a timedelta")
        return value

    def parse(self, text, /):
        return parse_duration(text)

    def format(self, value, /):
        return format_duration(value)


class StringListValue(Value):
    __slots__ = ()

    typename = "value,..."

    def zero(self):
        return []

    def check(self, value, /):
        if isinstance(value, str):
            raise TypeError(f"{type(self).__name__} value must be an iterable of strings")
        items = list(value)
        if not all(isinstance(item, str) for item in items):
            raise TypeError(f"{type(self).__name__} value must be an iterable of strings")
        return items

    def parse(self, text, /):
        # Each set() replaces the whole list.
        return text.split(",")

    def format(self, value, /):
        return ",".join(value)


__all__ = (
    "Value",
    "BoolValue",
    "StringValue",
    "IntValue",
    "DurationValue",
    "StringListValue",
    "parse_duration",
    "format_duration",
)
