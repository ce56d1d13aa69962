"""
Parser configuration.

ParserOptions is immutable: derive variants with copy.replace(options, **changes).
"""
import copy

from .faults import InvalidTokenStyleError
from .keys import ordinal
from .tokens import TokenStyle, grammar, unescape
from .utils import *


class ParserOptions:
    """
    Configuration shared by the matching engine and the binder.

    Fields
    - token_style: TokenStyle | Grammar (POSIX by default).
    - culture: opaque value forwarded to preprocessors and converters.
    - comparer: key projection used to join occurrences with definitions
      (ordinal by default, see parlance.keys.ignorecase).
    - preprocessor: applied to values before conversion (unescape by default,
      None disables preprocessing).
    - binding_filter: Callable[[Binding, Argument], bool] deciding which declared
      arguments take part; by default those written with one of the token
      style's prefixes.
    - exception_handler: Callable[[ParsingError], bool]; a truthy result
      recovers the failure.
    """
    __slots__ = (
        "_token_style",
        "_culture",
        "_comparer",
        "_preprocessor",
        "_binding_filter",
        "_exception_handler",
    )

    token_style = mirror("token_style")
    culture = mirror("culture")
    comparer = mirror("comparer")
    preprocessor = mirror("preprocessor")
    exception_handler = mirror("exception_handler")

    def __init__(
            self,
            token_style=TokenStyle.POSIX,
            /,
            *,
            culture=None,
            comparer=ordinal,
            preprocessor=unescape,
            binding_filter=Unset,
            exception_handler=None
    ):
        try:
            grammar(token_style)
        except InvalidTokenStyleError:
            raise InvalidTokenStyleError(
                f"parser-options 'token_style' must be a token style or a grammar, not {token_style!r}"
            ) from None
        if not callable(comparer):
            raise TypeError("parser-options 'comparer' must be callable")
        if not (preprocessor is None or callable(preprocessor)):
            raise TypeError("parser-options 'preprocessor' must be callable or None")
        if not (binding_filter is Unset or callable(binding_filter)):
            raise TypeError("parser-options 'binding_filter' must be callable")
        if not (exception_handler is None or callable(exception_handler)):
            raise TypeError("parser-options 'exception_handler' must be callable or None")

        self._token_style = token_style
        self._culture = culture
        self._comparer = comparer
        self._preprocessor = preprocessor
        self._binding_filter = binding_filter
        self._exception_handler = exception_handler

    @property
    def grammar(self):
        return grammar(self._token_style)

    @property
    def binding_filter(self):
        if self._binding_filter is not Unset:
            return self._binding_filter
        prefixes = self.grammar.prefixes

        def binding_filter(binding, argument, /):
            return argument.key.prefix in prefixes

        return binding_filter

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        fields = {name.removeprefix("_"): getattr(self, name) for name in self.__slots__}
        token_style = overrides.pop("token_style", fields.pop("token_style"))
        return type(self)(token_style, **{**fields, **overrides})

    def __copy__(self):
        return copy.replace(self)

    def __repr__(self):
        return f"ParserOptions({self._token_style!r}, culture={self._culture!r})"


__all__ = (
    "ParserOptions",
)
