"""
Parlance binder: statically declared binding tables and value application.

Overview
- Targets
  • Field: a data descriptor receiving values (field(...)).
  • Method: a method invoked with each value (@bind(...)), optionally in manual
    mode where it receives a BindingEvent and reads the pair itself.
  • Verb: a child context created on demand when its tag leads the input (verb(...)).
- Context: base class collecting the targets declared on a class (and its bases)
  into __bindings__ / __verbs__ when the class is defined.
- bind_values(options, instance, matches): applies matched pairs to targets.

Binding order and policies
- Targets with at least one matched pair are bound first.
- BindingPolicy.ONCE locks a target after its first matched pair; NONE applies
  every pair; DEFAULT resolves to ONCE for fields and NONE for methods.
- Unmatched pairs apply their definition's default (when it is not None).

Failures
- Any failure while writing or invoking is wrapped into BindingError and given to
  the exception handler. A recovered failure moves on to the next pair; an
  unrecovered one stops that target, the others are still bound, and the
  failures are raised once every target was visited.

Quick example:
    >>> class Main(Context):
    ...     __options__ = ParserOptions(TokenStyle.POSIX)
    ...     verbose = field(Flag(TokenStyle.POSIX.key("v"), options=FlagOptions.AGGREGATE_IMPLICIT))
    ...     @bind(Argument(TokenStyle.POSIX.key("include")))
    ...     def include(self, path): ...
"""
import logging
import types
from collections.abc import Mapping
from enum import Enum

from .arguments import Argument
from .converters import coerce
from .faults import BindingError, surface, trigger
from .pairs import FlagPair
from .utils import *

log = logging.getLogger(__name__)


class BindingPolicy(Enum):
    DEFAULT = 0
    NONE = 1
    ONCE = 2


class BindingEvent:
    """
    Handed to manual methods: the pair being bound and the target binding it.
    """
    __slots__ = ("_pair", "_binding")

    def __init__(self, pair, binding, /):
        self._pair = pair
        self._binding = binding

    @property
    def pair(self):
        return self._pair

    @property
    def binding(self):
        return self._binding

    def __repr__(self):
        return f"BindingEvent({self._pair!r}, {self._binding!r})"


class Binding:
    """
    Base of binding targets: one or more argument definitions feeding a member.
    """
    __default_policy__ = BindingPolicy.ONCE

    def __init__(self, *arguments, policy=BindingPolicy.DEFAULT):
        if not arguments:
            raise TypeError(f"{type(self).__name__.lower()} must bind at least one argument")
        for argument in arguments:
            if not isinstance(argument, Argument):
                raise TypeError(f"{type(self).__name__.lower()} arguments must be argument definitions")
        if not isinstance(policy, BindingPolicy):
            raise TypeError(f"{type(self).__name__.lower()} 'policy' must be a binding-policy member")
        self._arguments = arguments
        self._policy = policy
        self._name = Unset
        self._owner = Unset

    def __set_name__(self, owner, name):
        self._owner = owner
        self._name = name

    arguments = mirror("arguments")
    name = mirror("name")
    owner = mirror("owner")

    @property
    def policy(self):
        if self._policy is BindingPolicy.DEFAULT:
            return type(self).__default_policy__
        return self._policy

    def bind(self, instance, pair, options, /):
        raise NotImplementedError

    def bind_default(self, instance, pair, options, /):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self._name!r}, {', '.join(str(argument.key) for argument in self._arguments)})"


class Field(Binding):
    """
    Attribute target. Reads return the bound value, or initial until one is bound.
    """
    __default_policy__ = BindingPolicy.ONCE

    def __init__(self, *arguments, type=Unset, policy=BindingPolicy.DEFAULT, initial=None):
        super().__init__(*arguments, policy=policy)
        self._type = coalesce(type, arguments[0].type)
        self._initial = initial

    type = mirror("type")
    initial = mirror("initial")

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.__dict__.get(self._name, self._initial)

    def __set__(self, instance, value):
        instance.__dict__[self._name] = value

    def _write(self, instance, value, options, /):
        setattr(instance, self._name, coerce(value, self._type, options.culture))

    def bind(self, instance, pair, options, /):
        if isinstance(pair, FlagPair):
            if self._type is bool:
                self._write(instance, pair.count > 0, options)
            elif pair.count > 0:
                self._write(instance, pair.count, options)
            else:
                for value in pair.values:
                    self._write(instance, value, options)
        else:
            for value in pair.values:
                self._write(instance, value, options)

    def bind_default(self, instance, pair, options, /):
        self._write(instance, pair.argument.default, options)


class Method(Binding):
    """
    Method target, invoked once per value.

    In manual mode the method also receives a BindingEvent; for flags it always
    receives the aggregated count, for other arguments it receives None and reads
    event.pair.values itself.
    """
    __default_policy__ = BindingPolicy.NONE

    def __init__(self, function, /, *arguments, manual=False, policy=BindingPolicy.DEFAULT):
        if not callable(function):
            raise TypeError("method binding target must be callable")
        super().__init__(*arguments, policy=policy)
        self._function = function
        self._manual = bool(manual)
        self._name = function.__name__

    function = mirror("function")
    manual = mirror("manual")

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return types.MethodType(self._function, instance)

    def _invoke(self, instance, pair, value, options, /):
        value = coerce(value, pair.argument.type, options.culture)
        if self._manual:
            return self._function(instance, value, BindingEvent(pair, self))
        return self._function(instance, value)

    def bind(self, instance, pair, options, /):
        if isinstance(pair, FlagPair):
            if pair.argument.type is bool:
                self._invoke(instance, pair, pair.count > 0, options)
            elif self._manual or pair.count > 0:
                self._invoke(instance, pair, pair.count, options)
            else:
                for value in pair.values:
                    self._invoke(instance, pair, value, options)
        elif self._manual:
            self._invoke(instance, pair, None, options)
        else:
            for value in pair.values:
                self._invoke(instance, pair, value, options)

    def bind_default(self, instance, pair, options, /):
        self._invoke(instance, pair, pair.argument.default, options)


class Verb:
    """
    Child context reached through one or more verb tags.

    The child is created with factory() the first time routing goes through it,
    unless the parent already holds one.
    """

    def __init__(self, *tags, factory, descr=Unset):
        if not tags:
            raise TypeError("verb must specify at least one tag")
        for tag in tags:
            if not isinstance(tag, str):
                raise TypeError("verb tags must be strings")
            elif not tag.strip():
                raise ValueError("verb tags cannot be empty-strings")
        if not callable(factory):
            raise TypeError("verb 'factory' must be callable")
        self._tags = tags
        self._factory = factory
        self._descr = coalesce(descr)
        self._name = Unset

    def __set_name__(self, owner, name):
        self._name = name

    tags = mirror("tags")
    factory = mirror("factory")
    descr = mirror("descr")
    name = mirror("name")

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.__dict__.get(self._name)

    def __set__(self, instance, value):
        instance.__dict__[self._name] = value

    def resolve(self, instance, /):
        """
        The child context of instance, created on first use.
        """
        if (child := getattr(instance, self._name)) is None:
            setattr(instance, self._name, child := self._factory())
        return child

    def __repr__(self):
        return f"Verb({', '.join(map(repr, self._tags))}, factory={self._factory!r})"


class Context:
    """
    Base class of objects parse() binds onto.

    Class attributes
    - __options__: ParserOptions used when parse() receives none.
    - __bindings__ / __verbs__: collected at class definition time from the
      Field/Method/Verb members of the class and its bases (subclass members
      override same-named ones).

    Hooks (no-ops by default)
    - init(verbs): called on the routed context with the verb tags left unmatched.
    - handle_parameter(parameter): called for every unmatched raw parameter.
    - handle_value(value): called for every unbound value.
    """
    __options__ = Unset
    __bindings__ = ()
    __verbs__ = ()

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        members = {}
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                if isinstance(member, Binding | Verb):
                    members[name] = member
                elif name in members:
                    del members[name]
        cls.__bindings__ = tuple(member for member in members.values() if isinstance(member, Binding))
        cls.__verbs__ = tuple(member for member in members.values() if isinstance(member, Verb))

    def init(self, verbs, /):
        pass

    def handle_parameter(self, parameter, /):
        pass

    def handle_value(self, value, /):
        pass


def field(*arguments, type=Unset, policy=BindingPolicy.DEFAULT, initial=None):
    """
    Declare an attribute bound from one or more argument definitions.

    Parameters
    - arguments: the definitions feeding the attribute (aliases share it).
    - type: coercion target; the first definition's type when Unset.
    - policy: BindingPolicy (ONCE when DEFAULT).
    - initial: value read before anything was bound.
    """
    return Field(*arguments, type=type, policy=policy, initial=initial)


def bind(*arguments, manual=False, policy=BindingPolicy.DEFAULT):
    """
    Decorate a method to be invoked with the values of the given definitions.
    """
    def decorator(function):
        if not callable(function):
            raise TypeError("@bind() must be applied to a callable")
        return Method(function, *arguments, manual=manual, policy=policy)

    return rename(decorator, "bind")


def verb(*tags, factory, descr=Unset):
    """
    Declare a child context reached through the given verb tags.
    """
    return Verb(*tags, factory=factory, descr=descr)


def bind_values(options, instance, matches, /):
    """
    Apply matched pairs to their binding targets.

    Parameters
    - options: ParserOptions (culture and exception handler are used).
    - instance: object owning the targets.
    - matches: Mapping[Binding, Sequence[ParameterPair]] or an iterable of
      (binding, pairs) items; pairs keep their declaration order.

    Raises
    - BindingError / ParseExit: failures the handler did not recover.
    """
    surface(_bind_values(options, instance, matches))


def _bind_values(options, instance, matches, /):
    """
    Internal: bind_values() returning the unrecovered failures instead of
    raising them.
    """
    items = list(matches.items() if isinstance(matches, Mapping) else matches)
    items.sort(key=lambda item: not any(pair.matched for pair in item[1]))

    faults = []
    for binding, pairs in items:
        once = binding.policy is BindingPolicy.ONCE
        bound = False
        for pair in pairs:
            if bound and once:
                log.debug("%r is locked, skipping %s", binding, pair.key)
                break
            try:
                if pair.matched:
                    binding.bind(instance, pair, options)
                    bound = True
                    log.debug("bound %s to %r", pair.key, binding)
                elif pair.argument.default is not None:
                    binding.bind_default(instance, pair, options)
                    log.debug("bound the default of %s to %r", pair.key, binding)
            except Exception as error:
                fault = BindingError(
                    f"could not bind {pair.key} to {binding.name!r}: {error}",
                    member=binding,
                    context=instance,
                    pair=pair,
                )
                fault.__cause__ = error
                if (fault := trigger(fault, options.exception_handler)) is not None:
                    faults.append(fault)
                    break
    return faults


__all__ = (
    "BindingPolicy",
    "BindingEvent",
    "Binding",
    "Field",
    "Method",
    "Verb",
    "Context",
    "field",
    "bind",
    "verb",
    "bind_values",
)
