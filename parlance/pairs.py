"""
Match results and the queries over them.

A parse returns one heterogeneous sequence holding
- ParameterPair / FlagPair: a definition with the values matched for it,
- RawParameter: an occurrence no definition claimed,
- UnboundValue: a value left over once a definition took what its arity allows.

The query helpers filter that sequence by variant and key; they never route
failures through the exception handler. Keys are compared ordinally unless a
comparer is given: pass the ParserOptions of the parse (or its comparer) to
query results matched with ignorecase.
"""
from rich.text import Text

from .faults import AmbiguousMatchError
from .keys import ordinal
from .options import ParserOptions
from .tokens import RawParameter


class ParameterPair:
    """
    A definition together with the values matched for it.

    A pair is matched when it holds at least one value, None included: an
    occurrence given without a value still counts as a match.
    """
    __slots__ = ("_argument", "_values")

    def __init__(self, argument, values=(), /):
        self._argument = argument
        self._values = tuple(values)

    @property
    def argument(self):
        return self._argument

    @property
    def values(self):
        return self._values

    @property
    def key(self):
        return self._argument.key

    @property
    def matched(self):
        return len(self._values) > 0

    def __repr__(self):
        return f"{type(self).__name__}({self.key!r}, values={self._values!r})"

    def __rich_repr__(self):
        yield self.key
        yield "values", self._values


class FlagPair(ParameterPair):
    """
    A flag together with its per-occurrence levels and its aggregated count.
    """
    __slots__ = ("_count",)

    def __init__(self, argument, values=(), count=0, /):
        if not isinstance(count, int):
            raise TypeError("flag-pair 'count' must be an integer")
        if count < 0:
            raise ValueError("flag-pair 'count' cannot be negative")
        super().__init__(argument, values)
        self._count = count

    @property
    def count(self):
        return self._count

    def __repr__(self):
        return f"FlagPair({self.key!r}, values={self._values!r}, count={self._count})"

    def __rich_repr__(self):
        yield from super().__rich_repr__()
        yield "count", self._count


class UnboundValue:
    """
    A value no definition consumed, attached to the pair it followed (if any).
    """
    __slots__ = ("_value", "_parent")

    def __init__(self, value, /, parent=None):
        if not isinstance(value, str):
            raise TypeError("unbound-value 'value' must be a string")
        self._value = value
        self._parent = parent

    @property
    def value(self):
        return self._value

    @property
    def parent(self):
        return self._parent

    @property
    def key(self):
        return None if self._parent is None else self._parent.key

    def __eq__(self, other, /):
        if not isinstance(other, UnboundValue):
            return NotImplemented
        return self._value == other._value and self._parent is other._parent

    def __hash__(self):
        return hash((self._value, id(self._parent)))

    def __repr__(self):
        return f"UnboundValue({self._value!r}, key={self.key!r})"

    def __rich__(self):
        return Text.assemble((repr(self._value), "green"), (f" ({self.key})" if self._parent else "", "dim"))


def _projection(comparer, /):
    if isinstance(comparer, ParserOptions):
        return comparer.comparer
    return comparer


def get_values(results, /, *arguments, comparer=ordinal):
    """
    Values of every pair whose key matches one of the arguments, in argument order.

    comparer is a key comparer or the ParserOptions the results were matched with.
    """
    comparer = _projection(comparer)
    pairs = [pair for pair in results if isinstance(pair, ParameterPair)]
    values = []
    for argument in arguments:
        target = comparer(argument.key)
        for pair in pairs:
            if comparer(pair.key) == target:
                values.extend(pair.values)
    return values


def get_value(results, /, *arguments, default=None, comparer=ordinal):
    """
    The single value matched for the given arguments.

    Several arguments can be given to treat aliases (e.g. -p and --port) as one
    option. Returns default when nothing matched.

    Raises
    - AmbiguousMatchError: when more than one value was matched.
    """
    match values := get_values(results, *arguments, comparer=comparer):
        case []:
            return default
        case [value]:
            return value
        case _:
            raise AmbiguousMatchError(
                "could not disambiguate the match results; "
                f"{len(values)} values were found for {', '.join(str(argument.key) for argument in arguments)}"
            )


def get_flag_level(results, flag, /, comparer=ordinal):
    """
    Aggregated level of a flag (0 when it did not match).

    Raises
    - AmbiguousMatchError: when the flag was matched by several pairs.
    """
    comparer = _projection(comparer)
    target = comparer(flag.key)
    match pairs := [pair for pair in results if isinstance(pair, FlagPair) and comparer(pair.key) == target]:
        case []:
            return 0
        case [pair]:
            return pair.count
        case _:
            raise AmbiguousMatchError(f"could not disambiguate the match results; {flag.key} was matched {len(pairs)} times")


def has_flag(results, flag, /, comparer=ordinal):
    return get_flag_level(results, flag, comparer) > 0


def get_unbound_parameters(results, key, /, comparer=ordinal):
    """
    Unmatched raw parameters written with the given key.
    """
    comparer = _projection(comparer)
    target = comparer(key)
    return [parameter for parameter in results if isinstance(parameter, RawParameter) and comparer(parameter.key) == target]


def get_unbound_parameter(results, key, /, comparer=ordinal):
    """
    The single unmatched raw parameter written with the given key, or None.

    Raises
    - AmbiguousMatchError: when the key occurs several times.
    """
    match parameters := get_unbound_parameters(results, key, comparer):
        case []:
            return None
        case [parameter]:
            return parameter
        case _:
            raise AmbiguousMatchError(f"could not disambiguate the match results; {key} occurs {len(parameters)} times")


def get_unbound_values(results, key=None, /, comparer=ordinal):
    """
    Left-over values, optionally only those following the given key.
    """
    values = [value for value in results if isinstance(value, UnboundValue)]
    if key is None:
        return values
    comparer = _projection(comparer)
    target = comparer(key)
    return [value for value in values if value.key is not None and comparer(value.key) == target]


__all__ = (
    "ParameterPair",
    "FlagPair",
    "UnboundValue",
    "get_values",
    "get_value",
    "get_flag_level",
    "has_flag",
    "get_unbound_parameters",
    "get_unbound_parameter",
    "get_unbound_values",
)
