"""
Parlance matching engine and verb router.

Pipeline
1. get_parts(): leading verb tags / parameter section.
2. route(): walk the verb tree from the root context, creating children lazily.
3. leaf.init(unmatched verbs).
4. match(): tokenize the parameter section and pair every definition with its
   occurrences (left outer join on the comparer's projection of the keys).
5. leaf.handle_parameter() / leaf.handle_value() for what nothing claimed.
6. bind_values(): apply the pairs onto the leaf's binding targets, skipping
   the definitions whose value failed to parse.

Each call owns its occurrences and pairs; definitions, options and binding
tables are read-only, so parses onto distinct contexts may run concurrently.
"""
import logging
from collections import defaultdict, deque

from .binding import _bind_values
from .faults import MissingOptionsError, ValueParsingError, surface
from .pairs import UnboundValue
from .tokens import get_parts, get_raw_parameters
from .utils import *

log = logging.getLogger(__name__)


def match(input, options, arguments, /):
    """
    Match input against definitions.

    Parameters
    - input: str | Iterable[str]
    - options: ParserOptions
    - arguments: Iterable[Argument], in the order pairs are reported.

    Returns
    - (pairs, unmatched, unbound):
      • pairs: one ParameterPair/FlagPair per definition, in definition order
        (unmatched definitions get an empty pair);
      • unmatched: every raw occurrence whose key no definition claimed;
      • unbound: the trailing values of the pairs, as UnboundValue.

    Raises
    - InvalidTokenStyleError: on an unusable token style.
    - ValueParsingError / ParseExit: unrecovered value failures, raised once
      every definition was matched.
    """
    pairs, unmatched, unbound, failed = _match(input, options, arguments)
    surface(failed.values())
    return pairs, unmatched, unbound


def _match(input, options, arguments, /):
    """
    Internal: match() keeping the unrecovered value failures, by index of the
    definition that raised them, instead of raising them.
    """
    comparer = options.comparer
    occurrences = defaultdict(list)
    for parameter in get_raw_parameters(input, options.token_style, None, options.culture):
        occurrences[comparer(parameter.key)].append(parameter)

    claimed = set()
    pairs = []
    unbound = []
    failed = {}
    for index, argument in enumerate(arguments):
        claimed.add(target := comparer(argument.key))
        try:
            pair, trailing = argument.get_pair(
                occurrences.get(target, ()),
                options.preprocessor,
                options.culture,
                options.exception_handler,
            )
        except ValueParsingError as fault:
            failed[index] = fault
            pair, trailing = argument.get_pair(())
        pairs.append(pair)
        unbound.extend(UnboundValue(value, pair) for value in trailing)

    unmatched = [
        parameter
        for target, parameters in occurrences.items() if target not in claimed
        for parameter in parameters
    ]
    log.debug(
        "matched %d of %d definition(s), %d unmatched parameter(s), %d unbound value(s)",
        sum(pair.matched for pair in pairs), len(pairs), len(unmatched), len(unbound),
    )
    return pairs, unmatched, unbound, failed


def get_parameters(input, options, /, *arguments):
    """
    Match input against definitions and return every result in one sequence:
    the pairs (definition order), then unmatched raw parameters, then unbound
    values.
    """
    pairs, unmatched, unbound = match(input, options, arguments)
    return [*pairs, *unmatched, *unbound]


def _resolve_options(context, options, /):
    if (options := coalesce(options, getattr(context, "__options__", Unset))) in (Unset, None):
        raise MissingOptionsError(context=context)
    return options


def route(context, verbs, /):
    """
    Descend the verb tree following the leading verb tags.

    Returns
    - (leaf, unmatched): the deepest context reached and the tags left over
      from the first one that matched no verb.
    """
    pending = deque(verbs)
    while pending:
        tag = pending[0]
        for verb in getattr(type(context), "__verbs__", ()):
            if tag in verb.tags:
                break
        else:
            break
        context = verb.resolve(context)
        pending.popleft()
        log.debug("routed verb %r to %s", tag, type(context).__name__)
    return context, list(pending)


def parse_arguments(context, input, /, options=Unset, bindings=Unset):
    """
    Match input against the binding table of context and bind the results.

    Parameters
    - context: the object receiving values (usually a Context).
    - input: str | Iterable[str], the parameter section.
    - options: ParserOptions; context.__options__ when Unset.
    - bindings: Iterable[Binding]; type(context).__bindings__ when Unset.

    Returns
    - list: the results, as get_parameters() reports them.

    Raises
    - ValueParsingError / BindingError / ParseExit: unrecovered failures,
      raised together once every target was bound. A definition whose value
      failed to parse is not bound at all, the other ones still are.
    """
    options = _resolve_options(context, options)
    bindings = coalesce(bindings, getattr(type(context), "__bindings__", ()))

    accepts = options.binding_filter
    entries = [
        (binding, argument)
        for binding in bindings
        for argument in binding.arguments if accepts(binding, argument)
    ]
    pairs, unmatched, unbound, failed = _match(input, options, [argument for _, argument in entries])

    if callable(handle := getattr(context, "handle_parameter", None)):
        for parameter in unmatched:
            handle(parameter)
    if callable(handle := getattr(context, "handle_value", None)):
        for value in unbound:
            handle(value)

    matches = {}
    for index, ((binding, _), pair) in enumerate(zip(entries, pairs)):
        if index in failed:
            log.debug("not binding %s to %r, its value could not be parsed", pair.key, binding)
            continue
        matches.setdefault(binding, []).append(pair)
    surface([*failed.values(), *_bind_values(options, context, matches)])

    return [*pairs, *unmatched, *unbound]


def parse(context, input, /, options=Unset):
    """
    Route input through the verbs of context and bind its parameters.

    Parameters
    - context: root context.
    - input: str | Iterable[str], the whole command line (without program name).
    - options: ParserOptions; context.__options__ when Unset.

    Returns
    - the routed (leaf) context, after its init() hook ran and its values were bound.

    Raises
    - MissingOptionsError: when no options are available.
    - ValueParsingError / BindingError / ParseExit: unrecovered failures.
    - whatever init() raises (e.g. a leaf requiring further verbs).
    """
    options = _resolve_options(context, options)
    verbs, remainder = get_parts(input, options.preprocessor, options.culture)
    leaf, unmatched = route(context, verbs)
    leaf.init(unmatched)
    parse_arguments(leaf, remainder, options)
    return leaf


__all__ = (
    "match",
    "get_parameters",
    "route",
    "parse_arguments",
    "parse",
)
