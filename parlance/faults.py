"""
Parlance faults (parsing errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every failure the library reports,
  grouped by domain (configuration, matching, binding).
- ParsingError and subclasses: carry a message plus the member, context and pair
  involved, and know how to render themselves through rich.
- ParseExit: groups the unhandled failures of one parsing pass.
- trigger(): hands a fault to the host's exception handler.
- surface(): raises what is left after a pass (nothing, one fault, or a group).

Recovery model
- Tokenization never fails; malformed fragments are simply not matched.
- Value parsing and binding failures go through trigger(): a handler returning a
  truthy value swallows them (the value is left as None / the next pair is tried).
- Configuration errors and ambiguous queries are raised immediately.

Integration
- The library never prints; hosts render faults with rich (console.print(fault)).
- Styles and code labels honour __styles__ / __codes__ mappings in __main__.
"""
import copy
import logging
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

log = logging.getLogger(__name__)

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - configuration (2110x)
      • INVALID_TOKEN_STYLE, MISSING_OPTIONS
    - matching (2111x)
      • VALUE_PARSING, AMBIGUOUS_MATCH
    - binding (2112x)
      • BINDING_FAILURE
    - grouped (2119x)
      • PARSE_EXIT
    """
    # --- configuration errors (2110x) ---
    INVALID_TOKEN_STYLE = 21101
    MISSING_OPTIONS     = 21102

    # --- matching errors (2111x) ---
    VALUE_PARSING       = 21111
    AMBIGUOUS_MATCH     = 21112

    # --- binding errors (2112x) ---
    BINDING_FAILURE     = 21121

    # --- grouped errors (2119x) ---
    PARSE_EXIT          = 21191

    def normalize(self):
        """
        return a host-normalized label for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids; otherwise the numeric value is used.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _styles(defaults, /):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _texter(colorful, /):
    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)
    return text


class ParsingError(Exception):
    """
    Base class of every failure raised by the matching engine and the binder.

    Attributes
    - message: one-sentence description (defaults to the class' __message__).
    - member: the binding target involved, if any.
    - context: the object being bound, if any.
    - pair: the parameter pair being matched or bound, if any.
    - options: rendering overrides (code, title, hint, colorful, fancy, ratio).
    """
    __code__ = FaultCode.VALUE_PARSING
    __title__ = "parsing error"
    __message__ = "could not parse the command line"
    __hint__ = ""

    def __init__(self, message=Unset, /, *, member=None, context=None, pair=None, **options):
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__name__} message must be a string")
        self.message = coalesce(message, type(self).__message__)
        self.member = member
        self.context = context
        self.pair = pair
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint", type(self).__hint__)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = _styles({
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

        def styler(style):
            return styles[style] if colorful else ""

        text = _texter(colorful)

        header = Text.assemble(
            "[ ",
            text(getattr(main, "__prog__", __package__), styler("prog-name")),
            " — ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        parts = [message]
        if self.hint:
            parts.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if fancy:
            width = console.width - 4
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*parts), title=header, title_align="left", width=width)

        return Group(header, *parts)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        fields = {"member": self.member, "context": self.context, "pair": self.pair}
        for name in fields.keys() & overrides.keys():
            fields[name] = overrides.pop(name)
        replica = type(self)(self.message, **fields, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class ValueParsingError(ParsingError):
    __code__ = FaultCode.VALUE_PARSING
    __title__ = "invalid value"
    __message__ = "a value could not be preprocessed or converted"
    __hint__ = "check the value given to the option"


class AmbiguousMatchError(ParsingError):
    __code__ = FaultCode.AMBIGUOUS_MATCH
    __title__ = "ambiguous match"
    __message__ = "could not disambiguate between several values"
    __hint__ = "give the option only once"


class BindingError(ParsingError):
    __code__ = FaultCode.BINDING_FAILURE
    __title__ = "binding failure"
    __message__ = "a value could not be bound to its target"


class InvalidTokenStyleError(ParsingError, ValueError):
    __code__ = FaultCode.INVALID_TOKEN_STYLE
    __title__ = "invalid token style"
    __message__ = "the token style is not recognized"
    __hint__ = "use a TokenStyle member or a Grammar"


class MissingOptionsError(ParsingError, TypeError):
    __code__ = FaultCode.MISSING_OPTIONS
    __title__ = "missing options"
    __message__ = "no parser options were given and the context holds none"
    __hint__ = "pass options or declare __options__ on the context"


class ParseExit(ExceptionGroup[ParsingError]):
    """
    Several unhandled failures raised together at the end of one pass.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "parse failed", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("parse failed", tuple(exceptions))
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return FaultCode.PARSE_EXIT

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)

        styles = _styles({
            "prog-name": "bold #E6E6F0",
            "title": "bold #FF4DA6",
        })

        def styler(style):
            return styles[style] if colorful else ""

        text = _texter(colorful)

        header = Text.assemble(
            "[ ",
            text(getattr(main, "__prog__", __package__), styler("prog-name")),
            " — ",
            text(self.message.title(), styler("title")),
            " ]"
        )
        renders = [copy.replace(exception, colorful=colorful, ratio=2/3) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, handler=None):
    """
    hand a fault to the host's exception handler.

    contract
    - handler is a callable taking the fault; a truthy result means the fault is
      recovered and parsing continues.
    - returns None when the fault was swallowed, the fault itself otherwise (the
      caller decides when to raise it, see surface()).
    """
    if not isinstance(fault, ParsingError):
        raise TypeError("trigger() argument must be a parsing-error")
    if handler is not None and handler(fault):
        log.debug("%s swallowed by the exception handler: %s", type(fault).__name__, fault.message)
        return None
    return fault


def surface(faults, /):
    """
    raise the unhandled faults of a pass.

    - no faults: returns quietly.
    - one fault: raised as is.
    - several faults: raised together as a ParseExit.
    """
    match faults := tuple(faults):
        case ():
            return
        case (fault,):
            raise fault
        case _:
            raise ParseExit(faults)


__all__ = (
    "FaultCode",
    "ParsingError",
    "ValueParsingError",
    "AmbiguousMatchError",
    "BindingError",
    "InvalidTokenStyleError",
    "MissingOptionsError",
    "ParseExit",
    "trigger",
    "surface",
)
