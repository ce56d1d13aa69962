r"""
Parlance argument definitions.

Overview
- Definitions
  • Argument: a keyed, value-bearing definition (single, composite, or no value).
  • Flag: a keyed definition whose occurrences aggregate into a level.
- Options
  • ValueOptions: arity of a definition (NONE, SINGLE, COMPOSITE).
  • FlagOptions: bitmask steering flag aggregation (bit-fields, implicit/explicit
    aggregation, combination, boolean inversion).

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes the
    fields named in __introspectable__ as read-only properties.

Metadata (sanitized on construction)
- key: Key, required.
- descr: Unset | str | Text, non-empty when provided (becomes None when Unset).
- value_options: ValueOptions.
- type: the value type; str, bool, int, Enum subclasses and any callable.
- converter: Unset | Callable[[str, culture], object], replaces convert(value, type).
- preprocessor: Unset (inherit the parse-wide one) | None (disable) | Callable.
- default: applied by the binder when the definition does not match (None: no default).
- options (Flag only): FlagOptions.

Pairing
- get_pair(parameters, preprocessor, culture, handler) turns every raw occurrence
  of the definition's key into one pair and the list of trailing (unconsumed)
  value parts. Conversion failures go through the handler; an unhandled one
  aborts the definition by raising ValueParsingError.

Quick example:
    >>> from parlance import Argument, Flag, FlagOptions, TokenStyle
    >>> port = Argument(TokenStyle.POSIX.key("port"), type=int)
    >>> verbose = Flag(TokenStyle.POSIX.key("v"), options=FlagOptions.AGGREGATE_IMPLICIT)
"""
import builtins
import functools
import operator
import re
from enum import Enum, IntFlag

from rich.text import Text

from .converters import bitfield, convert, flag_value
from .faults import ValueParsingError, trigger
from .keys import Key
from .pairs import FlagPair, ParameterPair
from .tokens import get_value_parts, preprocess
from .utils import *


class ValueOptions(Enum):
    """
    Arity of a definition.

    - NONE: the definition takes no value; value text following it is trailing.
    - SINGLE: the first value token is taken, the others are trailing.
    - COMPOSITE: the whole value text is taken and converted at once.
    """
    NONE = 0
    SINGLE = 1
    COMPOSITE = 2


class FlagOptions(IntFlag):
    """
    Flag aggregation switches.

    - BIT_FIELD_IMPLICIT / BIT_FIELD_EXPLICIT: turn implicit counts / explicit
      levels into bits (1 -> 1, 2 -> 2, 3 -> 4, ...) before summing.
    - AGGREGATE_IMPLICIT / AGGREGATE_EXPLICIT: sum over every occurrence instead
      of taking the first one.
    - AGGREGATE_COMBINE: add the explicit part to a non-zero implicit part.
    - INVERT_BOOLEAN_IMPLICIT / INVERT_BOOLEAN_EXPLICIT: flip the level of
      value-less / valued occurrences.
    """
    NONE = 0
    BIT_FIELD_IMPLICIT = 1
    BIT_FIELD_EXPLICIT = 2
    BIT_FIELD = BIT_FIELD_IMPLICIT | BIT_FIELD_EXPLICIT
    AGGREGATE_IMPLICIT = 4
    AGGREGATE_EXPLICIT = 8
    AGGREGATE = AGGREGATE_IMPLICIT | AGGREGATE_EXPLICIT
    AGGREGATE_COMBINE = 16
    INVERT_BOOLEAN_IMPLICIT = 32
    INVERT_BOOLEAN_EXPLICIT = 64
    INVERT_BOOLEAN = INVERT_BOOLEAN_IMPLICIT | INVERT_BOOLEAN_EXPLICIT


class ArgumentType(type):
    """
    Metaclass giving definitions read-only fields and stable representations.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in validation messages.
    - every name in __introspectable__ becomes a read-only property over "_<name>".
    - __displayable__ (if set) narrows which fields __rich_repr__ shows.
    """
    __introspectable__ = ()
    __displayable__ = Unset

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
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate and normalize definition metadata in place.

    Raises
    - TypeError: wrong kinds (key not a Key, descr not a string, type or
      converter not callable, ...).
    - ValueError: empty description.
    """
    if not isinstance(metadata["key"], Key):
        raise TypeError(f"{cls.__typename__} 'key' must be a key")

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    if not isinstance(metadata["value_options"], ValueOptions):
        raise TypeError(f"{cls.__typename__} 'value_options' must be a value-options member")

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if not (metadata["converter"] is Unset or callable(metadata["converter"])):
        raise TypeError(f"{cls.__typename__} 'converter' must be callable")
    metadata["converter"] = coalesce(metadata["converter"])

    if not (metadata["preprocessor"] in (Unset, None) or callable(metadata["preprocessor"])):
        raise TypeError(f"{cls.__typename__} 'preprocessor' must be callable or None")


def _attempt(handler, member, function, /, *parameters):
    """
    Internal: run a parsing step of member, letting the handler recover from its
    failure (the step then yields None).
    """
    try:
        return function(*parameters)
    except ValueParsingError as error:
        if error.member is None:
            error.member = member
        if trigger(error, handler) is not None:
            raise
        return None


class Argument(metaclass=ArgumentType):
    """
    Keyed, value-bearing definition.

    An Argument only describes what to match; it holds no parsing state and can
    be shared across parses and threads.
    """

    __introspectable__ = (
        "key",
        "descr",
        "value_options",
        "type",
        "converter",
        "preprocessor",
        "default",
    )
    __displayable__ = (
        "key",
        "value_options",
        "type",
        "default",
    )

    def __init__(
            self,
            key,
            /,
            descr=Unset,
            value_options=ValueOptions.SINGLE,
            type=str,
            converter=Unset,
            preprocessor=Unset,
            default=None
    ):
        """
        Construct a definition with the provided metadata.

        Parameters
        - key: Key
          Prefix and tag the definition is written with.
        - descr: Unset | str
          Short description; None when Unset.
        - value_options: ValueOptions
          Arity; SINGLE by default.
        - type: Callable
          Value type used by the default conversion and by the binder.
        - converter: Unset | Callable[[str, Any], Any]
          Custom conversion from the value text.
        - preprocessor: Unset | None | Callable[[str, Any], str]
          Overrides the parse-wide preprocessor; None disables preprocessing.
        - default: Any
          Value bound when the definition is not matched (None: nothing bound).
        """
        metadata = {
            "key": key,
            "descr": descr,
            "value_options": value_options,
            "type": type,
            "converter": converter,
            "preprocessor": preprocessor,
            "default": default,
        }
        metadata |= self._metadata()
        _sanitize_metadata(builtins.type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def _metadata(self):
        return {}

    def resolve_preprocessor(self, preprocessor=None, /):
        """
        The preprocessor this definition applies, given the parse-wide one.
        """
        return coalesce(self._preprocessor, preprocessor)

    def convert(self, value, culture=None, /):
        """
        Convert a (preprocessed) value string with the converter or the type.
        """
        if self._converter is not None:
            return self._converter(value, culture)
        return convert(value, self._type, culture)

    def parse(self, value, preprocessor=None, culture=None, /):
        """
        Preprocess and convert a value string.

        Raises
        - ValueParsingError: on a preprocessor or converter failure.
        """
        value = preprocess(value, preprocessor, culture)
        try:
            return self.convert(value, culture)
        except Exception as error:
            raise ValueParsingError(f"could not convert {value!r} for {self.key}: {error}") from error

    def _parts(self, parameter, preprocessor, culture, handler, /):
        # Coupled occurrences never take a value.
        if parameter.value is None or parameter.coupled:
            return []
        parts = (_attempt(handler, self, preprocess, part, preprocessor, culture) for part in get_value_parts(parameter.value))
        return [part for part in parts if part is not None]

    def get_pair(self, parameters, /, preprocessor=None, culture=None, handler=None):
        """
        Build the pair of this definition from its raw occurrences.

        Parameters
        - parameters: Iterable[RawParameter]
          Every occurrence written with this definition's key, in input order.
        - preprocessor: parse-wide preprocessor (the definition's own wins).
        - culture: forwarded to preprocessors and converters.
        - handler: exception handler deciding whether a failure is recovered.

        Returns
        - (ParameterPair, list[str]): the pair and the trailing value parts.

        Raises
        - ValueParsingError: on a failure the handler did not recover.
        """
        preprocessor = self.resolve_preprocessor(preprocessor)
        values = []
        trailing = []
        for parameter in parameters:
            match self._value_options:
                case ValueOptions.COMPOSITE:
                    if parameter.value is None or parameter.coupled:
                        values.append(None)
                    else:
                        values.append(_attempt(handler, self, self.parse, parameter.value, preprocessor, culture))
                case ValueOptions.NONE:
                    trailing.extend(self._parts(parameter, preprocessor, culture, handler))
                case ValueOptions.SINGLE:
                    parts = self._parts(parameter, preprocessor, culture, handler)
                    values.append(_attempt(handler, self, self.parse, parts[0], None, culture) if parts else None)
                    trailing.extend(parts[1:])
        return ParameterPair(self, values), trailing


class Flag(Argument):
    """
    Keyed definition aggregated into a level.

    Every occurrence yields a level of 0 or 1: value-less (implicit) and coupled
    occurrences count as 1, valued (explicit) ones as their boolean/integer
    reading (0 stays 0, anything else is 1). The INVERT_* options flip either
    side. How levels and counts add up into FlagPair.count:

    - boolean flags (type is bool): the level of the last occurrence.
    - AGGREGATE_IMPLICIT alone: sum of every occurrence's tag count.
    - AGGREGATE_EXPLICIT alone: sum of the levels.
    - both: sum of the counts of value-less occurrences, plus (with
      AGGREGATE_COMBINE, or when that sum is 0) the levels of valued ones.
    - neither: the count of the first value-less occurrence, plus (with
      AGGREGATE_COMBINE) the count of the first valued one.

    Coupled occurrences count as value-less.

    BIT_FIELD_IMPLICIT / BIT_FIELD_EXPLICIT turn each term into its bit first,
    so "-hhh -hh -h" reads 4 + 2 + 1 = 7.
    """

    __introspectable__ = Argument.__introspectable__ + ("options",)
    __displayable__ = (
        "key",
        "value_options",
        "type",
        "options",
        "default",
    )

    def __init__(
            self,
            key,
            /,
            descr=Unset,
            value_options=ValueOptions.SINGLE,
            options=FlagOptions.NONE,
            type=int,
            converter=Unset,
            preprocessor=Unset,
            default=None
    ):
        if not isinstance(options, FlagOptions):
            raise TypeError(f"{builtins.type(self).__typename__} 'options' must be a flag-options value")
        self._options = options
        super().__init__(
            key,
            descr=descr,
            value_options=value_options,
            type=type,
            converter=converter,
            preprocessor=preprocessor,
            default=default,
        )

    def _metadata(self):
        return {"options": self._options}

    @property
    def boolean(self):
        return self._type is bool

    def _level(self, text, culture, /):
        explicit = flag_value(text, self.boolean, culture)
        inverted = FlagOptions.INVERT_BOOLEAN_EXPLICIT in self._options
        return 0 if (explicit == 0) != inverted else 1

    def get_pair(self, parameters, /, preprocessor=None, culture=None, handler=None):
        parameters = list(parameters)
        if not parameters:
            return FlagPair(self, (), 0), []

        preprocessor = self.resolve_preprocessor(preprocessor)
        options = self._options
        levels = []
        implicits = []
        explicits = []
        trailing = []
        for parameter in parameters:
            parts = self._parts(parameter, preprocessor, culture, handler)
            if self._value_options is ValueOptions.NONE or parameter.value is None or parameter.coupled:
                level = 0 if FlagOptions.INVERT_BOOLEAN_IMPLICIT in options else 1
                trailing.extend(parts)
            elif self._value_options is ValueOptions.COMPOSITE:
                level = self._level(" ".join(parts), culture)
            else:
                level = self._level(parts[0] if parts else None, culture)
                trailing.extend(parts[1:])
            levels.append(level)
            # aggregation splits on the value alone, whatever the arity
            if parameter.value is None or parameter.coupled:
                implicits.append(parameter)
            else:
                explicits.append((parameter, level))

        if self.boolean:
            return FlagPair(self, levels, levels[-1]), trailing

        def implicit(value):
            return bitfield(value) if FlagOptions.BIT_FIELD_IMPLICIT in options else value

        def explicit(value):
            return bitfield(value) if FlagOptions.BIT_FIELD_EXPLICIT in options else value

        aggregate_implicit = FlagOptions.AGGREGATE_IMPLICIT in options
        aggregate_explicit = FlagOptions.AGGREGATE_EXPLICIT in options
        combine = FlagOptions.AGGREGATE_COMBINE in options

        if aggregate_implicit and not aggregate_explicit:
            count = sum(implicit(parameter.count) for parameter in parameters)
        elif aggregate_explicit and not aggregate_implicit:
            count = sum(explicit(level) for level in levels)
        elif aggregate_implicit:
            count = sum(implicit(parameter.count) for parameter in implicits)
            if combine or count == 0:
                count += sum(explicit(level) for _, level in explicits)
        else:
            count = implicit(implicits[0].count) if implicits else 0
            if combine and explicits:
                count += explicit(explicits[0][0].count)

        return FlagPair(self, levels, count), trailing


__all__ = (
    "ValueOptions",
    "FlagOptions",
    "Argument",
    "Flag",
)
