# python
r"""
Matching engine and verb router behavioral tests.

Scope
- Validate matching of definitions against POSIX and Windows command lines:
  pairs in definition order, unmatched raw parameters, unbound values.
- Validate the queries (get_value, get_values, get_flag_level, has_flag,
  get_unbound_parameter(s), get_unbound_values), ambiguity included.
- Validate comparers, deferred value failures and handler recovery.
- Validate verb routing (lazy children, aliases, unmatched verbs, init hooks)
  and the parse_arguments/parse entry points.

Conventions
- Test method names follow CamelCase per project convention.
- Definitions are module-level constants shared by every test, as hosts do.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from parlance import (
    Argument,
    Context,
    Flag,
    FlagOptions,
    FlagPair,
    Key,
    ListConverter,
    ParameterPair,
    ParserOptions,
    RawParameter,
    TokenStyle,
    UnboundValue,
    bind,
    field,
    get_flag_level,
    get_parameters,
    get_unbound_parameter,
    get_unbound_parameters,
    get_unbound_values,
    get_value,
    get_values,
    has_flag,
    ignorecase,
    match,
    parse,
    parse_arguments,
    route,
    verb,
)
from parlance.faults import AmbiguousMatchError, BindingError, MissingOptionsError, ParseExit, ValueParsingError


def key(tag):
    return TokenStyle.POSIX.key(tag)


interface_long = Argument(key("interface"), "The network interface(s) to use.")
interface_short = Argument(key("i"), "The network interface(s) to use.", converter=ListConverter())
posix_port_short = Argument(key("p"), "The port to listen to.", type=int)
posix_port_long = Argument(key("port"), "The port to listen to.", type=int)
posix_ca_dir = Argument(key("CAdir"), "The directory to retrieve the certificates authorities from.")
posix_verbose_short = Flag(key("v"), "The verbosity level.")
posix_verbose_long = Argument(key("verbose"), "The verbosity level.", type=int)
windows_port_long = Argument(TokenStyle.WINDOWS.key("port"), type=int)
windows_port_short = Argument(TokenStyle.WINDOWS.key("p"), type=int)

arguments = (
    interface_short,
    interface_long,
    posix_port_short,
    posix_port_long,
    posix_ca_dir,
    posix_verbose_short,
    posix_verbose_long,
    windows_port_long,
    windows_port_short,
)

posix_options = ParserOptions(TokenStyle.POSIX, culture="sv-SE")
windows_options = ParserOptions(TokenStyle.WINDOWS, culture="sv-SE")

posix_line = "--CAdir ..\\ca -i eth0,lo -h 127.0.0.1 -p 20327 -p 15 --port 3030 -1111 -vvv 5342642 -vvvvvv 5"
windows_line = r'/test /h /q /foo bar\ baz\ blah /t "e\"s\"t\" /1 234 /p 5 /port 32'


class TestPosixMatching(TestCase):
    """Behavioral tests for matching a POSIX command line."""

    def setUp(self):
        self.results = get_parameters(posix_line, posix_options, *arguments)

    def testPairsComeFirstInDefinitionOrder(self):
        pairs = self.results[:len(arguments)]
        self.assertTrue(all(isinstance(pair, ParameterPair) for pair in pairs))
        self.assertEqual([pair.argument for pair in pairs], list(arguments))

    def testCollisionDetection(self):
        with self.assertRaises(AmbiguousMatchError):
            get_value(self.results, posix_port_short, posix_port_long)

    def testValuesInArgumentOrder(self):
        self.assertEqual(get_values(self.results, posix_port_short, posix_port_long), [20327, 15, 3030])
        self.assertEqual(get_values(self.results, posix_port_long, posix_port_short), [3030, 20327, 15])

    def testConvertedValue(self):
        self.assertEqual(get_value(self.results, interface_short), ["eth0", "lo"])

    def testUnmatchedDefinitionYieldsDefault(self):
        self.assertIsNone(get_value(self.results, interface_long))
        self.assertEqual(get_value(self.results, windows_port_short, default=80), 80)

    def testCoupledFlag(self):
        self.assertEqual(get_flag_level(self.results, posix_verbose_short), 3)
        self.assertTrue(has_flag(self.results, posix_verbose_short))

    def testUnmatchedParameter(self):
        parameter = get_unbound_parameter(self.results, Key("-", "h"))
        self.assertIsInstance(parameter, RawParameter)
        self.assertEqual(parameter.value, "127.0.0.1")
        self.assertIsNone(get_unbound_parameter(self.results, Key("-", "z")))

    def testTrailingValuesAreUnbound(self):
        values = get_unbound_values(self.results, Key("--", "port"))
        self.assertEqual([value.value for value in values], ["-1111"])
        self.assertIs(values[0].parent.argument, posix_port_long)
        self.assertEqual(get_unbound_values(self.results), values)

    def testMatchingIsRepeatable(self):
        again = get_parameters(posix_line, posix_options, *arguments)
        self.assertEqual(get_values(again, posix_port_short), get_values(self.results, posix_port_short))
        self.assertEqual(
            [parameter for parameter in again if isinstance(parameter, RawParameter)],
            [parameter for parameter in self.results if isinstance(parameter, RawParameter)],
        )


class TestWindowsMatching(TestCase):
    """Behavioral tests for matching a Windows command line."""

    def setUp(self):
        self.results = get_parameters(windows_line, windows_options, *arguments)

    def testCollisionDetection(self):
        with self.assertRaises(AmbiguousMatchError):
            get_value(self.results, windows_port_short, windows_port_long)

    def testSeparateValues(self):
        self.assertEqual(get_value(self.results, windows_port_short), 5)
        self.assertEqual(get_value(self.results, windows_port_long), 32)

    def testUnmatchedParametersKeepInputOrder(self):
        keys = [parameter.key for parameter in self.results if isinstance(parameter, RawParameter)]
        self.assertEqual(keys, [Key("/", tag) for tag in ("test", "h", "q", "foo", "t", "1")])

    def testUnmatchedValuesAreRaw(self):
        self.assertEqual(get_unbound_parameter(self.results, Key("/", "foo")).value, r"bar\ baz\ blah")
        self.assertIsNone(get_unbound_parameter(self.results, Key("/", "t")).value)
        self.assertEqual(get_unbound_parameter(self.results, Key("/", "1")).value, "234")


class TestMatch(TestCase):
    """Behavioral tests for match() and the queries."""

    def testResultShape(self):
        flag = Flag(key("x"))
        name = Argument(key("name"))
        pairs, unmatched, unbound = match("--name a b -x --other", posix_options, [flag, name])
        self.assertIsInstance(pairs[0], FlagPair)
        self.assertEqual(pairs[1].values, ("a",))
        self.assertEqual(unmatched, [RawParameter(Key("--", "other"))])
        self.assertEqual(unbound, [UnboundValue("b", pairs[1])])

    def testRepeatedUnmatchedKeys(self):
        results = get_parameters("-z 1 -z 2", posix_options)
        self.assertEqual(len(get_unbound_parameters(results, Key("-", "z"))), 2)
        with self.assertRaises(AmbiguousMatchError):
            get_unbound_parameter(results, Key("-", "z"))

    def testIgnoreCaseComparer(self):
        port = Argument(key("port"), type=int)
        options = ParserOptions(TokenStyle.POSIX, comparer=ignorecase)
        results = get_parameters("--PORT 8", options, port)
        self.assertEqual(get_value(results, port), 8)
        self.assertEqual(get_values(get_parameters("--PORT 8", posix_options, port), port), [])

    def testQueriesFollowTheParseOptions(self):
        flag = Flag(key("t"))
        options = ParserOptions(TokenStyle.POSIX, comparer=ignorecase)
        results = get_parameters("-T --Other x", options, flag)
        self.assertEqual(get_flag_level(results, Flag(key("T"))), 0)
        self.assertEqual(get_flag_level(results, Flag(key("T")), options), 1)
        self.assertIsNone(get_unbound_parameter(results, Key("--", "other")))
        self.assertEqual(get_unbound_parameter(results, Key("--", "other"), options).key, Key("--", "Other"))
        self.assertEqual(get_unbound_parameters(results, Key("--", "OTHER"), ignorecase), [results[1]])

    def testFlagQueries(self):
        flag = Flag(key("t"), options=FlagOptions.AGGREGATE_IMPLICIT)
        results = get_parameters("-t -t -t", posix_options, flag)
        self.assertEqual(get_flag_level(results, flag), 3)
        self.assertFalse(has_flag(get_parameters("", posix_options, flag), flag))

    def testDuplicateFlagDefinitionsAreAmbiguous(self):
        flag = Flag(key("t"))
        results = get_parameters("-t", posix_options, flag, flag)
        with self.assertRaises(AmbiguousMatchError):
            get_flag_level(results, flag)

    def testValueFailureIsDeferred(self):
        port = Argument(key("port"), type=int)
        name = Argument(key("name"))
        with self.assertRaises(ValueParsingError) as context:
            match("--port abc --name x", posix_options, [port, name])
        self.assertIs(context.exception.member, port)

    def testSeveralValueFailuresAreGrouped(self):
        port = Argument(key("port"), type=int)
        count = Argument(key("count"), type=int)
        with self.assertRaises(ParseExit) as context:
            match("--port abc --count xyz", posix_options, [port, count])
        self.assertEqual(len(context.exception.exceptions), 2)

    def testHandlerRecoversValueFailure(self):
        port = Argument(key("port"), type=int)
        options = ParserOptions(TokenStyle.POSIX, exception_handler=lambda fault: True)
        results = get_parameters("--port abc", options, port)
        self.assertIsNone(get_value(results, port))


class Local(Context):
    force = field(Flag(key("f"), type=bool))

    def init(self, verbs, /):
        if not verbs:
            raise ValueError("at least one package name is required")
        self.names = verbs


class Global(Local):
    pass


class Install(Context):
    local = verb("local", factory=Local)
    everywhere = verb("global", "g", factory=Global)

    def init(self, verbs, /):
        if not verbs:
            raise ValueError("install requires a target")


class Main(Context):
    __options__ = ParserOptions(TokenStyle.POSIX)

    install = verb("install", factory=Install)
    verbose = field(Flag(key("v"), options=FlagOptions.AGGREGATE_IMPLICIT), initial=0)

    def init(self, verbs, /):
        self.verbs = verbs


class Recorder(Context):
    __options__ = ParserOptions(TokenStyle.POSIX, binding_filter=lambda binding, argument: argument.key.tag != "secret")

    name = field(Argument(key("name")))
    secret = field(Argument(key("secret")))

    def __init__(self):
        self.parameters = []
        self.values = []

    def handle_parameter(self, parameter, /):
        self.parameters.append(parameter)

    def handle_value(self, value, /):
        self.values.append(value)


class Server(Context):
    __options__ = ParserOptions(TokenStyle.POSIX)

    port = field(Argument(key("port"), type=int, default=80))
    name = field(Argument(key("name")))

    def __init__(self):
        self.values = []
        self.modes = []

    @bind(Argument(key("mode")))
    def mode(self, value):
        if value == "bad":
            raise RuntimeError("unknown mode")
        self.modes.append(value)

    def handle_value(self, value, /):
        self.values.append(value.value)


class TestRouting(TestCase):
    """Behavioral tests for verb routing and the parse entry points."""

    def testVerbsAreCollected(self):
        self.assertEqual([verb.tags for verb in Install.__verbs__], [("local",), ("global", "g")])
        self.assertEqual(len(Global.__bindings__), 1)

    def testNestedRouting(self):
        main = Main()
        self.assertIsNone(main.install)
        leaf = parse(main, "install global test-app atom -f")
        self.assertIsInstance(leaf, Global)
        self.assertIs(main.install.everywhere, leaf)
        self.assertIsNone(main.install.local)
        self.assertEqual(leaf.names, ["test-app", "atom"])
        self.assertTrue(leaf.force)

    def testVerbAlias(self):
        leaf = parse(Main(), "install g pkg")
        self.assertIsInstance(leaf, Global)
        self.assertFalse(leaf.force)

    def testExistingChildIsReused(self):
        main = Main()
        main.install = child = Install()
        parse(main, "install local pkg")
        self.assertIs(main.install, child)
        self.assertIsInstance(child.local, Local)

    def testRouteStopsAtUnknownVerb(self):
        leaf, unmatched = route(Main(), ["install", "local", "x", "install"])
        self.assertIsInstance(leaf, Local)
        self.assertEqual(unmatched, ["x", "install"])

    def testRootReceivesUnmatchedVerbs(self):
        main = parse(Main(), "frobnicate -vv")
        self.assertEqual(main.verbs, ["frobnicate"])
        self.assertEqual(main.verbose, 2)

    def testInitFailurePropagates(self):
        with self.assertRaises(ValueError):
            parse(Main(), "install -v")
        with self.assertRaises(ValueError):
            parse(Main(), "install local")

    def testInitialValue(self):
        self.assertEqual(Main().verbose, 0)

    def testMissingOptions(self):
        with self.assertRaises(MissingOptionsError):
            parse(Install(), "local pkg")
        with self.assertRaises(TypeError):
            parse_arguments(Local(), "-f")

    def testHooksAndBindingFilter(self):
        recorder = Recorder()
        results = parse_arguments(recorder, "--name alpha beta --other 1 --secret x")
        self.assertEqual(recorder.name, "alpha")
        self.assertIsNone(recorder.secret)
        self.assertEqual([parameter.key for parameter in recorder.parameters], [Key("--", "other"), Key("--", "secret")])
        self.assertEqual([value.value for value in recorder.values], ["beta"])
        self.assertEqual(recorder.values[0].key, Key("--", "name"))
        self.assertEqual(get_value(results, Recorder.name.arguments[0]), "alpha")

    def testExplicitOptionsAndBindings(self):
        local = Local()
        parse_arguments(local, "-f", Main.__options__, Local.__bindings__)
        self.assertTrue(local.force)


class TestValueFailures(TestCase):
    """Behavioral tests for value failures during parse()."""

    def testOtherTargetsAreStillBound(self):
        server = Server()
        with self.assertRaises(ValueParsingError) as context:
            parse(server, "--port abc --name bob extra")
        self.assertIs(context.exception.member, Server.port.arguments[0])
        self.assertEqual(server.name, "bob")
        self.assertEqual(server.values, ["extra"])

    def testFailedTargetGetsNoDefault(self):
        server = Server()
        with self.assertRaises(ValueParsingError):
            parse(server, "--port abc")
        self.assertIsNone(server.port)
        self.assertEqual(parse(Server(), "--name bob").port, 80)

    def testMethodsAreStillInvoked(self):
        server = Server()
        with self.assertRaises(ValueParsingError):
            parse(server, "--mode fast --port abc")
        self.assertEqual(server.modes, ["fast"])

    def testValueAndBindingFailuresAreGrouped(self):
        with self.assertRaises(ParseExit) as context:
            parse(Server(), "--port abc --mode bad")
        faults = context.exception.exceptions
        self.assertEqual(len(faults), 2)
        self.assertIsInstance(faults[0], ValueParsingError)
        self.assertIsInstance(faults[1], BindingError)

    def testHandlerRecoversValueFailure(self):
        options = ParserOptions(TokenStyle.POSIX, exception_handler=lambda fault: True)
        server = Server()
        parse(server, "--port abc --name bob", options)
        self.assertIsNone(server.port)
        self.assertEqual(server.name, "bob")


if __name__ == "__main__":
    unittest.main()
