r"""
Parlance tokenizer: token styles, grammars and raw parameters.

Overview
- TokenStyle: the built-in dialects.
  • POSIX          -x, --name, -abc (couples), values spaced or "=" attached
  • WINDOWS        /name value
  • WINDOWS_COLON  /name:value
  • WINDOWS_EQUAL  /name=value
  • POWERSHELL     -Name, -Name value, -Name:value
  • SIMPLE         -name, -name value
- Grammar: a compiled pattern plus the prefixes of a dialect. Custom grammars can
  be handed anywhere a TokenStyle is accepted.
- RawParameter: one tokenized occurrence (key, raw value, count, couple count).

Grammar conventions
- Patterns are verbose regular expressions whose named groups are read by stem:
  any group named "prefix" or "prefix_<suffix>" yields the prefix, and likewise
  for "tag", "couple" and "value". The first participating group of a stem wins,
  so alternatives of one pattern may each carry their own groups.
- A "couple" capture holds several one-character tags sharing a single prefix.

Functions
- get_raw_parameters(input, style, preprocessor=Unset, culture=None)
- get_value_parts(value, preprocessor=None, culture=None)
- get_parts(input, preprocessor=None, culture=None)
- unescape(value, culture=None): the default preprocessor.

Tokenization never raises on malformed input: fragments that match no
alternative (unbalanced quotes, bare words) are left out of the result.

Quick example
    >>> [str(p.key) for p in get_raw_parameters("-vvh --port 80", TokenStyle.POSIX)]
    ['-v', '-h', '--port']
"""
import logging
import re
from collections import Counter
from collections.abc import Iterable
from enum import Enum

from .faults import InvalidTokenStyleError, ValueParsingError
from .keys import Key
from .utils import Unset, coalesce

log = logging.getLogger(__name__)

# Quoted runs: backslash escapes are consumed atomically so \" never closes a quote.
_DQ = r'"(?>\\.|[^"])*"'
_SQ = r"'(?>\\.|[^'])*'"

# One value token: quoted, or a bare run that may contain escaped whitespace.
_TOKEN = r"""(?:""" + _DQ + r"""|""" + _SQ + r"""|(?>\\.|[^\s"'])+)"""

# One character of a POSIX bare value: dashes are only allowed inside words, as
# runs of three or more, or in front of digits/punctuation (negative numbers).
_POSIX_CHAR = r"""(?:\\.-?|[^\-]|(?<!\s)-|-{3,}|-{1,2}(?=\d|[^\-\w]|$))"""

POSIX_PATTERN = r"""
    (?<!\S)
    (?:
        (?P<prefix_couple>-)(?P<couple>[^\W\d]{2,})
        (?:\s+(?P<value_couple>(?:""" + _DQ + r"""|""" + _SQ + r"""|""" + _POSIX_CHAR + r""")+))?
      |
        (?:
            (?P<prefix_long>--)(?P<tag_long>(?!-)[\w\-]+(?<!-))
          | (?P<prefix_short>-)(?P<tag_short>[^\W\d])
        )
        (?:
            (?:\s*|=)(?P<value_quoted>(?:""" + _DQ + r"""|""" + _SQ + r""")+)
          | (?:\s+|=)(?P<value_bare>""" + _POSIX_CHAR + r"""*)
        )?
    )
    (?=\s|$)
"""

WINDOWS_PATTERN = r"""
    (?<!\S)
    (?P<prefix>/)
    (?:
        (?P<tag_valued>[\w\-]+)\s+(?=[^/])(?P<value>""" + _TOKEN + r""")
      | (?P<tag>[\w\-]+)
    )
    (?=\s|$)
"""

WINDOWS_COLON_PATTERN = r"""
    (?<!\S)
    (?P<prefix>/)(?P<tag>[\w\-=]+)
    (?::(?P<value>""" + _TOKEN + r"""))?
    (?=\s|$)
"""

WINDOWS_EQUAL_PATTERN = r"""
    (?<!\S)
    (?P<prefix>/)(?P<tag>[\w\-:]+)
    (?:=(?P<value>""" + _TOKEN + r"""))?
    (?=\s|$)
"""

POWERSHELL_PATTERN = r"""
    (?<!\S)
    (?P<prefix>-)(?P<tag>[^\W\d]\w*)
    (?:
        :(?P<value_attached>""" + _TOKEN + r""")
      | \s+(?!-[^\W\d])(?P<value_spaced>""" + _TOKEN + r""")
    )?
    (?=\s|$)
"""

SIMPLE_PATTERN = r"""
    (?<!\S)
    (?P<prefix>-)(?P<tag>[^\W\d]\w*)
    (?:\s+(?!-[^\W\d])(?P<value>""" + _TOKEN + r"""))?
    (?=\s|$)
"""

VALUE_PATTERN = re.compile(r"""
    (?<!\S)(?<!\\\s)
    (?:
        "(?P<value_double>(?>\\.|[^"])*)"
      | '(?P<value_single>(?>\\.|[^'])*)'
      | (?P<value>(?>\\.|[^\s"'])+)
    )
    (?=\s|$)
""", re.VERBOSE)

VERB_PATTERN = re.compile(r"""
    (?<!\S)
    (?:
        (?P<args>[\-/]+\b.*)
      | (?<!\\\s)
        (?:
            "(?P<verb_double>(?>\\.|[^"])*)"
          | '(?P<verb_single>(?>\\.|[^'])*)'
          | (?P<verb>(?>\\.|[^\s"'])+)
        )
        (?=\s|$)
    )
""", re.VERBOSE | re.DOTALL)

_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "0": "\0",
}

_ESCAPE = re.compile(r"\\(?:x(?P<byte>[0-9A-Fa-f]{2})|u(?P<unit>[0-9A-Fa-f]{4})|(?P<char>.)|\Z)", re.DOTALL)

_QUOTABLE = re.compile(r"""[\s"']""")


def unescape(value, culture=None, /):
    r"""
    Default preprocessor: resolve backslash escapes.

    Supported
    - \a \b \e \f \n \r \t \v \0 control characters
    - \xHH and \uHHHH code points
    - any other escaped character stands for itself (\" -> ", "\ " -> " ")

    Raises
    - ValueError on a trailing lone backslash.
    """
    def substitute(match):
        if match["byte"] is not None:
            return chr(int(match["byte"], 16))
        if match["unit"] is not None:
            return chr(int(match["unit"], 16))
        if match["char"] is not None:
            return _ESCAPES.get(match["char"], match["char"])
        raise ValueError(f"illegal trailing backslash in {value!r}")

    return _ESCAPE.sub(substitute, value)


class Grammar:
    """
    A token dialect: compiled pattern plus prefixes.

    Parameters
    - pattern: str | re.Pattern
      Verbose regular expression following the group conventions of this module.
      It must define at least one "prefix" group and one "tag" or "couple" group.
    - short: str
      Prefix given to keys of one-character tags.
    - long: str
      Prefix given to keys of longer tags (defaults to short).
    """
    __slots__ = ("_pattern", "_short", "_long")

    def __init__(self, pattern, /, short, long=Unset):
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.VERBOSE)
        elif not isinstance(pattern, re.Pattern):
            raise TypeError("grammar 'pattern' must be a string or a compiled pattern")
        stems = {name.partition("_")[0] for name in pattern.groupindex}
        if "prefix" not in stems or not stems & {"tag", "couple"}:
            raise ValueError("grammar 'pattern' must define 'prefix' and 'tag' (or 'couple') groups")
        for name, prefix in (("short", short), ("long", coalesce(long, short))):
            if not isinstance(prefix, str):
                raise TypeError(f"grammar {name!r} must be a string")
            elif not prefix:
                raise ValueError(f"grammar {name!r} cannot be empty")
        self._pattern = pattern
        self._short = short
        self._long = coalesce(long, short)

    @property
    def pattern(self):
        return self._pattern

    @property
    def prefixes(self):
        return frozenset((self._short, self._long))

    def key(self, tag, /):
        """
        Build the key a tag is written with in this dialect.
        """
        return Key(self._short if len(tag) == 1 else self._long, tag)

    def __repr__(self):
        return f"Grammar(short={self._short!r}, long={self._long!r})"


class TokenStyle(Enum):
    """
    Built-in token dialects.
    """
    POSIX = "posix"
    WINDOWS = "windows"
    WINDOWS_COLON = "windows-colon"
    WINDOWS_EQUAL = "windows-equal"
    POWERSHELL = "powershell"
    SIMPLE = "simple"

    @property
    def grammar(self):
        return _GRAMMARS[self]

    @property
    def prefixes(self):
        return self.grammar.prefixes

    def key(self, tag, /):
        """
        Build the key a tag is written with in this dialect.

        >>> TokenStyle.POSIX.key("v"), TokenStyle.POSIX.key("verbose")
        (Key('-', 'v'), Key('--', 'verbose'))
        """
        return self.grammar.key(tag)


_GRAMMARS = {
    TokenStyle.POSIX: Grammar(POSIX_PATTERN, "-", "--"),
    TokenStyle.WINDOWS: Grammar(WINDOWS_PATTERN, "/"),
    TokenStyle.WINDOWS_COLON: Grammar(WINDOWS_COLON_PATTERN, "/"),
    TokenStyle.WINDOWS_EQUAL: Grammar(WINDOWS_EQUAL_PATTERN, "/"),
    TokenStyle.POWERSHELL: Grammar(POWERSHELL_PATTERN, "-"),
    TokenStyle.SIMPLE: Grammar(SIMPLE_PATTERN, "-"),
}


def grammar(style, /):
    """
    Resolve a TokenStyle or a Grammar into a Grammar.

    Raises
    - InvalidTokenStyleError: for anything else.
    """
    match style:
        case Grammar():
            return style
        case TokenStyle():
            return style.grammar
        case _:
            raise InvalidTokenStyleError(f"token style {style!r} is not recognized")


class RawParameter:
    """
    One tokenized occurrence of a key.

    Attributes
    - key: the Key as written.
    - value: the raw value text, or None for an implicit occurrence.
    - count: how many times the tag appears in its couple (1 when uncoupled).
    - couple_count: how many tags the couple holds (1 when uncoupled).
    """
    __slots__ = ("_key", "_value", "_count", "_couple_count")

    def __init__(self, key, /, value=None, count=1, couple_count=Unset):
        couple_count = coalesce(couple_count, count)
        if not isinstance(key, Key):
            raise TypeError("raw-parameter 'key' must be a key")
        if not isinstance(value, str | None):
            raise TypeError("raw-parameter 'value' must be a string")
        if not isinstance(count, int) or not isinstance(couple_count, int):
            raise TypeError("raw-parameter counts must be integers")
        if count < 1:
            raise ValueError("raw-parameter 'count' must be a positive integer")
        if couple_count < count:
            raise ValueError("raw-parameter 'couple_count' cannot be lower than 'count'")
        self._key = key
        self._value = value
        self._count = count
        self._couple_count = couple_count

    @property
    def key(self):
        return self._key

    @property
    def value(self):
        return self._value

    @property
    def count(self):
        return self._count

    @property
    def couple_count(self):
        return self._couple_count

    @property
    def coupled(self):
        return self._couple_count > 1

    def _astuple(self):
        return self._key, self._value, self._count, self._couple_count

    def __eq__(self, other, /):
        if not isinstance(other, RawParameter):
            return NotImplemented
        return self._astuple() == other._astuple()

    def __hash__(self):
        return hash(self._astuple())

    def __repr__(self):
        return f"RawParameter({self._key!r}, value={self._value!r}, count={self._count}, couple_count={self._couple_count})"

    def __rich_repr__(self):
        yield self._key
        yield "value", self._value, None
        yield "count", self._count, 1
        yield "couple_count", self._couple_count, 1


def _capture(match, stem, /):
    for name, value in match.groupdict().items():
        if value is not None and (name == stem or name.startswith(stem + "_")):
            return value
    return None


def _join(input, /):
    """
    Flatten a token array into one input string, quoting tokens that hold
    whitespace or quotes so they survive value splitting.
    """
    if isinstance(input, str):
        return input
    if not isinstance(input, Iterable):
        raise TypeError("input must be a string or an iterable of strings")
    tokens = []
    for token in input:
        if not isinstance(token, str):
            raise TypeError("input tokens must be strings")
        if _QUOTABLE.search(token):
            token = '"' + token.replace("\\", "\\\\").replace('"', '\\"') + '"'
        tokens.append(token)
    return " ".join(tokens)


def preprocess(value, preprocessor, culture=None, /):
    """
    Apply a preprocessor to a value, wrapping failures into ValueParsingError.

    None values and a None preprocessor leave the value untouched.
    """
    if value is None or preprocessor is None:
        return value
    try:
        return preprocessor(value, culture)
    except Exception as error:
        raise ValueParsingError(f"could not preprocess {value!r}: {error}") from error


def get_raw_parameters(input, style, preprocessor=Unset, culture=None):
    """
    Tokenize input into raw parameter occurrences.

    Parameters
    - input: str | Iterable[str]
      Command line, or token array joined with single spaces.
    - style: TokenStyle | Grammar
    - preprocessor: Callable[[str, Any], str] | None
      Applied to every value; Unset selects unescape, None disables it.
    - culture: forwarded to the preprocessor.

    Returns
    - list[RawParameter] in input order; couples are decomposed into one entry
      per distinct tag in first-appearance order.

    Raises
    - InvalidTokenStyleError: when style is neither a TokenStyle nor a Grammar.
    - ValueParsingError: when the preprocessor fails on a value.
    """
    pattern = grammar(style).pattern
    preprocessor = coalesce(preprocessor, unescape)
    parameters = []
    for match in pattern.finditer(input := _join(input)):
        prefix = _capture(match, "prefix")
        # An empty bare value ("-x " at the end of input) is no value at all.
        value = preprocess(_capture(match, "value") or None, preprocessor, culture)
        if (couple := _capture(match, "couple")) is not None:
            tags = list(couple)
        else:
            tags = [_capture(match, "tag")]
        for tag, count in Counter(tags).items():
            parameters.append(RawParameter(Key(prefix, tag), value, count, len(tags)))
    log.debug("tokenized %d raw parameter(s) from %r", len(parameters), input)
    return parameters


def get_value_parts(value, preprocessor=None, culture=None):
    """
    Split a raw value into its tokens.

    Quoted tokens ("..." or '...') are unwrapped; bare tokens may contain
    escaped whitespace. Every part goes through the preprocessor.

    >>> get_value_parts('origin "the master" x\\ y', unescape)
    ['origin', 'the master', 'x y']
    """
    if value is None:
        return []
    return [
        preprocess(_capture(match, "value"), preprocessor, culture)
        for match in VALUE_PATTERN.finditer(value)
    ]


def get_parts(input, preprocessor=None, culture=None):
    """
    Split input into leading verb tags and the parameter section.

    Verbs are the bare (optionally quoted) tokens before the first token that
    starts with "-" or "/" followed by a word character. The parameter section
    runs from that token to the end of the input ("" when there is none).

    >>> get_parts("remote add -f origin")
    (['remote', 'add'], '-f origin')
    """
    verbs = []
    remainder = ""
    for match in VERB_PATTERN.finditer(_join(input)):
        if (args := match["args"]) is not None:
            remainder = args
            break
        verbs.append(preprocess(_capture(match, "verb"), preprocessor, culture))
    return verbs, remainder


__all__ = (
    "TokenStyle",
    "Grammar",
    "RawParameter",
    "grammar",
    "unescape",
    "preprocess",
    "get_raw_parameters",
    "get_value_parts",
    "get_parts",
)
