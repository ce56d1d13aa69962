"""
Parameter keys: the (prefix, tag) identity shared by definitions and tokens.

A Key is the only join predicate between what the user typed and what the
program declared. Keys compare ordinally on their full value (prefix + tag);
alternative comparisons are expressed as comparers, projections from a key to a
hashable value (see ordinal and ignorecase).
"""
import functools

from rich.text import Text


@functools.total_ordering
class Key:
    """
    Immutable (prefix, tag) pair, e.g. Key("--", "verbose").

    Equality, hashing and ordering use value (prefix + tag) with ordinal
    (code-point) comparison.
    """
    __slots__ = ("_prefix", "_tag")

    def __init__(self, prefix, tag, /):
        if not isinstance(prefix, str):
            raise TypeError("key 'prefix' must be a string")
        if not isinstance(tag, str):
            raise TypeError("key 'tag' must be a string")
        elif not tag:
            raise ValueError("key 'tag' cannot be empty")
        object.__setattr__(self, "_prefix", prefix)
        object.__setattr__(self, "_tag", tag)

    @property
    def prefix(self):
        return self._prefix

    @property
    def tag(self):
        return self._tag

    @property
    def value(self):
        return self._prefix + self._tag

    def compare(self, other, /):
        """
        Three-way ordinal comparison: -1, 0 or 1.
        """
        if not isinstance(other, Key):
            raise TypeError(f"cannot compare key with {type(other).__name__!r}")
        return (self.value > other.value) - (self.value < other.value)

    def __setattr__(self, name, value, /):
        raise AttributeError("key is immutable")

    def __delattr__(self, name, /):
        raise AttributeError("key is immutable")

    def __eq__(self, other, /):
        if not isinstance(other, Key):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other, /):
        if not isinstance(other, Key):
            return NotImplemented
        return self.value < other.value

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return self.value

    def __repr__(self):
        return f"Key({self._prefix!r}, {self._tag!r})"

    def __rich__(self):
        return Text.assemble((self._prefix, "dim"), (self._tag, "bold"))

    def __reduce__(self):
        return type(self), (self._prefix, self._tag)


def ordinal(key, /):
    """Default comparer: exact, case-sensitive key value."""
    return key.value


def ignorecase(key, /):
    """Case-insensitive comparer."""
    return key.value.casefold()


__all__ = (
    "Key",
    "ordinal",
    "ignorecase",
)
