"""
Task mode behavioral tests (dotted task names on a root scope).

Scope
- Validate expand() and listing().
- Validate that dotted names run the nested tusk with the root value.
- Validate the task listing and the `h` task help rendered with rich.

Conventions
- Test method names follow CamelCase per project convention.
- Rendered output is captured by redirecting stdout.
"""

import contextlib
import io
import unittest
from unittest import TestCase

from tusks import Argument, Parameters, Scope, Success, Tasks, compile, expand, listing
from tusks.faults import UnknownCommandError


class Root(Parameters):
    dry_run: bool = Argument(short="n")


class TestHelpers(TestCase):
    """Dotted names and listings."""

    def testExpand(self):
        self.assertEqual(expand("remote.add"), ["remote", "add"])
        self.assertEqual(expand("remote:add", ":"), ["remote", "add"])
        self.assertEqual(expand("build"), ["build"])

    def testExpandRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            expand(3)

    def testTasksValidation(self):
        with self.assertRaises(ValueError):
            Tasks("")
        with self.assertRaises(ValueError):
            Tasks(max_depth=0)
        with self.assertRaises(TypeError):
            Tasks(max_depth=True)

    def testOnlyRootsEnableTaskMode(self):
        with self.assertRaises(ValueError):
            Scope("tool").scope("nested", tasks=Tasks())


class TestTaskMode(TestCase):
    """Dispatch through dotted task names."""

    def setUp(self):
        self.calls = calls = []
        self.tool = tool = Scope("tool", Root, tasks=Tasks())

        @tool.tusk
        def build(context: Root):
            """Build the project."""
            calls.append(("build", context.dry_run))

        remote = tool.scope("remote")

        @remote.tusk
        def add(name, /, *, fetch: bool = False):
            """Add a remote."""
            calls.append(("add", name, fetch))

        @remote.tusk(hidden=True)
        def debug():
            pass

        self.unit = compile(tool)

    def testListing(self):
        self.assertEqual(
            listing(self.unit.schema),
            [("build", "Build the project."), ("remote.add", "Add a remote.")],
        )
        self.assertEqual(listing(self.unit.schema, ".", 1), [("build", "Build the project.")])

    def testDottedTask(self):
        result = self.unit("remote.add origin --fetch")
        self.assertEqual(result, Success())
        self.assertEqual(self.calls, [("add", "origin", True)])

    def testNestedSpellingStillWorks(self):
        self.unit("remote add origin")
        self.assertEqual(self.calls, [("add", "origin", False)])

    def testRootSwitchesReachTheTask(self):
        self.unit("-n build")
        self.unit("-n remote.add origin")
        self.assertEqual(self.calls[0], ("build", True))

    def testUnknownTask(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.unit("remote.ad origin")
        self.assertIn("add", context.exception.options["suggestions"])
        with self.assertRaises(UnknownCommandError):
            self.unit("missing")

    def testListingIsRendered(self):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            result = self.unit([])
        self.assertEqual(result, Success(0))
        self.assertIn("remote.add", output.getvalue())
        self.assertIn("Add a remote.", output.getvalue())
        self.assertNotIn("debug", output.getvalue())

    def testTaskHelp(self):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            result = self.unit("h remote.add")
        self.assertEqual(result, Success(0))
        self.assertIn("<name>", output.getvalue())
        self.assertIn("--fetch", output.getvalue())

    def testTaskHelpForScope(self):
        with self.assertRaises(UnknownCommandError):
            self.unit("h remote")

    def testTaskTusksAreHidden(self):
        operations = self.unit.schema.operations
        self.assertTrue(operations["execute-task"].hidden)
        self.assertTrue(operations["h"].hidden)
        self.assertEqual(self.unit.schema.default, "execute-task")


if __name__ == "__main__":
    unittest.main()
