"""
Faults module behavioral tests (codes, options, triggering, rendering).

Scope
- Validate fault options (code, title, identity) and copy.replace() merging.
- Validate trigger(): raise in non-shell mode, print and exit in shell mode,
  warnings through the warnings module.
- Validate CommandExit grouping and rich rendering.

Conventions
- Test method names follow CamelCase per project convention.
- Shell output is captured by redirecting stderr.
"""

import contextlib
import copy
import io
import unittest
from unittest import TestCase

from rich.console import Console

from tusks.faults import (
    CommandException,
    CommandExit,
    FaultCode,
    MissingArgumentError,
    MultiplicityError,
    NothingToDoWarning,
    ParseError,
    ResolutionError,
    SchemaError,
    UnknownCommandError,
    getdoc,
    trigger,
)


class TestFaultOptions(TestCase):
    """Fault construction and options."""

    def testCodeAndTitleFromClass(self):
        fault = UnknownCommandError("unknown command 'x'", input="x")
        self.assertIs(fault.options["code"], FaultCode.UNKNOWN_COMMAND)
        self.assertEqual(fault.options["title"], "unknown command")
        self.assertEqual(fault.options["input"], "x")
        self.assertEqual(str(fault), "unknown command 'x'")

    def testFamilies(self):
        self.assertTrue(issubclass(UnknownCommandError, ParseError))
        self.assertTrue(issubclass(SchemaError, CommandException))
        self.assertTrue(issubclass(MultiplicityError, ResolutionError))
        self.assertFalse(issubclass(MultiplicityError, ParseError))

    def testOptionsAreReadOnly(self):
        fault = UnknownCommandError("x")
        with self.assertRaises(TypeError):
            fault.options["input"] = "y"

    def testReplaceMergesOptions(self):
        fault = UnknownCommandError("x", input="x")
        replaced = copy.replace(fault, shell=True)
        self.assertIsInstance(replaced, UnknownCommandError)
        self.assertEqual(replaced.message, "x")
        self.assertEqual(replaced.options["input"], "x")
        self.assertIs(replaced.options["shell"], True)

    def testNormalizeDefaultsToValue(self):
        self.assertEqual(FaultCode.MISSING_ARGUMENT.normalize(), "11301")

    def testGetdocRequiresFaultCode(self):
        with self.assertRaises(TypeError):
            getdoc(11301)
        self.assertIsNone(getdoc(FaultCode.MISSING_ARGUMENT))


class TestTrigger(TestCase):
    """Surfacing faults."""

    def testRaisesOutsideShell(self):
        with self.assertRaises(UnknownCommandError) as context:
            trigger(UnknownCommandError("x"), shell=False)
        self.assertIs(context.exception.options["shell"], False)

    def testShellPrintsAndExits(self):
        output = io.StringIO()
        with contextlib.redirect_stderr(output), self.assertRaises(SystemExit) as context:
            trigger(UnknownCommandError("unknown command 'x'", hint="try 'build'"), shell=True, colorful=False)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("unknown command 'x'", output.getvalue())
        self.assertIn("try 'build'", output.getvalue())

    def testDeferredShellDoesNotExit(self):
        output = io.StringIO()
        with contextlib.redirect_stderr(output):
            trigger(UnknownCommandError("x"), shell=True, deferred=True)
        self.assertIn("Unknown Command", output.getvalue())

    def testWarningOutsideShell(self):
        with self.assertWarns(NothingToDoWarning):
            trigger(NothingToDoWarning("nothing to do"), shell=False)

    def testWarningInShellIsPrinted(self):
        output = io.StringIO()
        with contextlib.redirect_stderr(output):
            trigger(NothingToDoWarning("nothing to do"), shell=True)
        self.assertIn("nothing to do", output.getvalue())

    def testTriggerRequiresProtocol(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("x"))


class TestCommandExit(TestCase):
    """Grouped faults."""

    def testGroupKeepsFaults(self):
        faults = [MissingArgumentError("a"), MissingArgumentError("b")]
        group = CommandExit(faults)
        self.assertEqual(list(group.exceptions), faults)

    def testReplaceKeepsFaults(self):
        group = copy.replace(CommandExit([MissingArgumentError("a")]), fancy=True)
        self.assertEqual(len(group.exceptions), 1)
        self.assertIs(group.options["fancy"], True)

    def testRendersEveryFault(self):
        group = CommandExit([MissingArgumentError("first missing"), MissingArgumentError("second missing")], fancy=True)
        console = Console(file=io.StringIO(), width=100)
        console.print(group)
        self.assertIn("first missing", console.file.getvalue())
        self.assertIn("second missing", console.file.getvalue())


if __name__ == "__main__":
    unittest.main()
