"""
Links module behavioral tests (external trees mounted under an alias).

Scope
- Validate forwarding: the linked tree parses its own tokens and its root
  value holds the host scope value as ancestor, at any nesting depth.
- Validate link rules: cycles, non-linkable or nested targets, unresolvable
  references, ancestor type mismatches.
- Validate unit reuse across hosts.

Conventions
- Test method names follow CamelCase per project convention.
- Module-level trees exist so string references can import them.
"""

import unittest
from unittest import TestCase

from tusks import Ancestor, Argument, Parameters, Scope, compile, resolve, unit_of
from tusks.faults import ContextMismatchError, LinkCycleError, LinkTargetError, UnknownSwitchError


class Host(Parameters):
    region = Argument(default="eu")


class Plugin(Parameters):
    super_ = Ancestor()
    level: int = 1


received = {}

plugin = Scope("plugin", Plugin, linkable=True, help="plugin commands")


@plugin.tusk
def hello(context: Plugin, *, name="world"):
    received.update(context=context, name=name)


class TestForwarding(TestCase):
    """Dispatch through links."""

    def setUp(self):
        received.clear()

    def testForwardsTokensAndAncestor(self):
        host = Scope("host", Host)
        host.link("ext", plugin)

        unit = compile(host)
        unit("--region us ext --level 3 hello --name tusks")

        context = received["context"]
        self.assertIsInstance(context, Plugin)
        self.assertEqual(context.level, 3)
        self.assertEqual(received["name"], "tusks")
        self.assertIsInstance(context.super_, Host)
        self.assertEqual(context.super_.region, "us")

    def testAncestorIsTheHostValue(self):
        host = Scope("host", Host)
        host.link("ext", plugin)

        unit = compile(host)
        value = Host(region="ap")
        unit.dispatch(unit.parse(["ext", "hello"]), context=value)
        self.assertIs(received["context"].super_, value)

    def testLinkInsideNestedScope(self):
        class Tools(Parameters):
            super_ = Ancestor(Host)

        host = Scope("host", Host)
        tools = host.scope("tools", Tools)
        tools.link("ext", plugin)

        compile(host)(["tools", "ext", "hello"])
        context = received["context"]
        self.assertIsInstance(context.super_, Tools)
        self.assertIsInstance(context.super_.super_, Host)

    def testStringReference(self):
        host = Scope("host", Host)
        host.link("ext", f"{__name__}:plugin")

        compile(host)(["ext", "hello"])
        self.assertEqual(received["name"], "world")

    def testLinkedSchemaIsReferenced(self):
        host = Scope("host", Host)
        host.link("ext", plugin)

        grammar = compile(host).schema.links["ext"]
        self.assertIs(grammar.grammar, unit_of(plugin).schema)
        self.assertEqual(grammar.help, "plugin commands")

    def testUnitsAreShared(self):
        first, second = Scope("first", Host), Scope("second", Host)
        link = first.link("ext", plugin)
        second.link("ext", plugin)
        compile(first)
        compile(second)
        self.assertIs(resolve(link, first), unit_of(plugin))

    def testLinkedTreeParsesItsOwnSwitches(self):
        host = Scope("host", Host)
        host.link("ext", plugin)

        with self.assertRaises(UnknownSwitchError):
            compile(host)(["ext", "--region", "us", "hello"])

    def testLinkedUnitDirectly(self):
        compile(plugin)(["hello"])
        self.assertIsNone(received["context"].super_)


class TestLinkRules(TestCase):
    """Compile-time link checks."""

    def testCycle(self):
        first = Scope("first", linkable=True)
        second = Scope("second", linkable=True)
        first.link("second", second)
        second.link("first", first)

        with self.assertRaises(LinkCycleError) as context:
            compile(first)
        self.assertIn("first -> second -> first", str(context.exception))

    def testSelfLink(self):
        tree = Scope("tree", linkable=True)
        tree.link("again", tree)

        with self.assertRaises(LinkCycleError):
            compile(tree)

    def testNonLinkableTarget(self):
        target = Scope("target")
        host = Scope("host")
        host.link("ext", target)

        with self.assertRaises(LinkTargetError):
            compile(host)

    def testNestedTarget(self):
        other = Scope("other")
        nested = other.scope("nested")
        host = Scope("host")
        host.link("ext", nested)

        with self.assertRaises(LinkTargetError):
            compile(host)

    def testUnresolvableReference(self):
        host = Scope("host")
        host.link("ext", "tusks_missing_package_for_tests:tree")

        with self.assertRaises(LinkTargetError):
            compile(host)

    def testReferenceToSomethingElse(self):
        host = Scope("host")
        host.link("ext", f"{__name__}:received")

        with self.assertRaises(LinkTargetError):
            compile(host)

    def testAncestorTypeMismatch(self):
        class Typed(Parameters):
            super_ = Ancestor(Host)

        class Other(Parameters):
            pass

        target = Scope("typed", Typed, linkable=True)
        host = Scope("host", Other)
        host.link("ext", target)

        with self.assertRaises(ContextMismatchError):
            compile(host)

    def testFailedCompilationLeavesTreeOpen(self):
        target = Scope("target")
        host = Scope("host")
        host.link("ext", target)

        with self.assertRaises(LinkTargetError):
            compile(host)
        host.scope("late")


if __name__ == "__main__":
    unittest.main()
