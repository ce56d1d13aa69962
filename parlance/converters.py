"""
Value conversion rules shared by definitions and the binder.

- convert(value, type, culture): text -> typed value (definition side).
- flag_value(value, boolean, culture): text -> flag integer, never raising.
- coerce(value, type, culture): typed value -> target type (binding side).
- bitfield(level): level -> single bit.
- ListConverter: separator-split list converter for composite options.

Culture is opaque to this module; it is accepted everywhere so that host
converters with locale-aware parsing can share the same signature.
"""
import builtins
import re
from enum import Enum, Flag
from types import GenericAlias, UnionType

_SCALARS = (str, bool, int, float, complex)


def parse_boolean(value, /):
    """
    Parse "true"/"false" (any case, surrounding blanks ignored).

    Raises
    - ValueError: for any other text.
    """
    match value.strip().casefold():
        case "true":
            return True
        case "false":
            return False
        case _:
            raise ValueError(f"{value!r} is not a boolean")


def _parse_enum(value, type, /):
    text = value.strip()
    if text in type.__members__:
        return type[text]
    if issubclass(type, Flag) and "," in text:
        result = type(0)
        for name in text.split(","):
            result |= _parse_enum(name, type)
        return result
    try:
        return type(int(text))
    except ValueError:
        raise ValueError(f"{value!r} is not a valid {type.__name__}") from None


def convert(value, type=str, culture=None, /):
    """
    Convert a value string into the requested type.

    Rules
    - str: the value is returned untouched (even when blank).
    - None or blank values: None.
    - bool: "true"/"false", case-insensitive.
    - Enum subclasses: member name, comma-separated names for Flag enums, or
      the integer value.
    - anything else: type(value).
    """
    if type is str:
        return value
    if value is None or not value.strip():
        return None
    if type is bool:
        return parse_boolean(value)
    if isinstance(type, builtins.type) and issubclass(type, Enum):
        return _parse_enum(value, type)
    return type(value)


def flag_value(value, boolean=False, culture=None, /):
    """
    Flag conversion rule: boolean text for boolean flags, otherwise an integer
    parse; text that parses as neither yields 0.
    """
    text = (value or "").strip()
    if boolean:
        try:
            return int(parse_boolean(text))
        except ValueError:
            pass
    try:
        return int(text)
    except ValueError:
        return 0


def bitfield(level, /):
    """
    Turn a level into its bit: 0 -> 0, 1 -> 1, 2 -> 2, 3 -> 4, 4 -> 8.
    """
    if level <= 0:
        return 0
    return 1 << (level - 1)


def coerce(value, type, culture=None, /):
    """
    Bring a matched value to a binding target's type.

    - None, or a value already of the type, is returned as is.
    - Enum types are built from the value (Enum(value), or parsed from text).
    - scalar types (str, bool, int, float, complex) convert scalars; text is
      parsed with convert().
    - anything else passes through unchanged.
    """
    if value is None or not isinstance(type, builtins.type) or isinstance(type, GenericAlias | UnionType):
        return value
    if issubclass(type, Enum):
        if isinstance(value, type):
            return value
        if isinstance(value, str):
            return convert(value, type, culture)
        return type(value)
    if isinstance(value, type):
        return value
    if type in _SCALARS:
        if isinstance(value, str):
            return convert(value, type, culture)
        if isinstance(value, _SCALARS):
            return type(value)
    return value


class ListConverter:
    """
    Split a value on an unescaped separator.

    Parameters
    - separator: str, "," by default; "\\," inside the value is not a split point.
    - strip_empty: drop empty entries (e.g. from repeated separators).
    - item: type each entry is converted to (str by default).

    >>> ListConverter(" ", strip_empty=True)("origin    master  ")
    ['origin', 'master']
    """
    __slots__ = ("_separator", "_strip_empty", "_item", "_pattern")

    def __init__(self, separator=",", /, *, strip_empty=False, item=str):
        if not isinstance(separator, str):
            raise TypeError("list-converter 'separator' must be a string")
        elif not separator:
            raise ValueError("list-converter 'separator' cannot be empty")
        if not callable(item):
            raise TypeError("list-converter 'item' must be callable")
        self._separator = separator
        self._strip_empty = bool(strip_empty)
        self._item = item
        self._pattern = re.compile(r"(?<!\\)" + re.escape(separator), re.DOTALL)

    @property
    def separator(self):
        return self._separator

    def __call__(self, value, culture=None, /):
        if not value:
            return []
        entries = self._pattern.split(value)
        if self._strip_empty:
            entries = [entry for entry in entries if entry]
        return [convert(entry, self._item, culture) for entry in entries]

    def __repr__(self):
        return f"ListConverter({self._separator!r}, strip_empty={self._strip_empty}, item={getattr(self._item, '__name__', self._item)})"


__all__ = (
    "convert",
    "coerce",
    "flag_value",
    "bitfield",
    "parse_boolean",
    "ListConverter",
)
