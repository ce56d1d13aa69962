# python
"""
Parser options behavioral tests.

Scope
- Validate defaults and field validation.
- Validate the default binding filter (prefixes of the token style).
- Validate derivation through copy.replace/copy.copy and immutability.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import unittest
from unittest import TestCase

from parlance import Argument, Key, ParserOptions, TokenStyle, ignorecase, ordinal, unescape
from parlance.faults import InvalidTokenStyleError


class TestParserOptions(TestCase):
    """Behavioral tests for ParserOptions."""

    def testDefaults(self):
        options = ParserOptions()
        self.assertIs(options.token_style, TokenStyle.POSIX)
        self.assertIsNone(options.culture)
        self.assertIs(options.comparer, ordinal)
        self.assertIs(options.preprocessor, unescape)
        self.assertIsNone(options.exception_handler)
        self.assertIs(options.grammar, TokenStyle.POSIX.grammar)

    def testDefaultBindingFilter(self):
        accepts = ParserOptions(TokenStyle.POSIX).binding_filter
        self.assertTrue(accepts(None, Argument(Key("-", "v"))))
        self.assertTrue(accepts(None, Argument(Key("--", "verbose"))))
        self.assertFalse(accepts(None, Argument(Key("/", "v"))))
        self.assertTrue(ParserOptions(TokenStyle.WINDOWS).binding_filter(None, Argument(Key("/", "v"))))

    def testCustomBindingFilter(self):
        def accepts(binding, argument, /):
            return True

        self.assertIs(ParserOptions(binding_filter=accepts).binding_filter, accepts)

    def testInvalidTokenStyle(self):
        with self.assertRaises(InvalidTokenStyleError):
            ParserOptions("posix")
        with self.assertRaises(ValueError):
            ParserOptions(42)

    def testFieldValidation(self):
        with self.assertRaises(TypeError):
            ParserOptions(comparer="ordinal")
        with self.assertRaises(TypeError):
            ParserOptions(preprocessor="unescape")
        with self.assertRaises(TypeError):
            ParserOptions(binding_filter=5)
        with self.assertRaises(TypeError):
            ParserOptions(exception_handler=5)

    def testPreprocessingCanBeDisabled(self):
        self.assertIsNone(ParserOptions(preprocessor=None).preprocessor)

    def testReplace(self):
        options = ParserOptions(TokenStyle.POSIX, comparer=ignorecase)
        derived = copy.replace(options, culture="sv-SE")
        self.assertEqual(derived.culture, "sv-SE")
        self.assertIs(derived.token_style, TokenStyle.POSIX)
        self.assertIs(derived.comparer, ignorecase)
        self.assertIsNone(options.culture)
        self.assertIs(copy.replace(options, token_style=TokenStyle.WINDOWS).token_style, TokenStyle.WINDOWS)

    def testReplaceValidates(self):
        with self.assertRaises(TypeError):
            copy.replace(ParserOptions(), comparer=5)

    def testCopy(self):
        options = ParserOptions(TokenStyle.WINDOWS_COLON, culture="fr-FR")
        replica = copy.copy(options)
        self.assertIsNot(replica, options)
        self.assertIs(replica.token_style, TokenStyle.WINDOWS_COLON)
        self.assertEqual(replica.culture, "fr-FR")

    def testImmutable(self):
        options = ParserOptions()
        with self.assertRaises(AttributeError):
            options.culture = "sv-SE"


if __name__ == "__main__":
    unittest.main()
