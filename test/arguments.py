"""
Arguments module behavioral tests (construction, kinds, shape verification).

Scope
- Validate Argument construction: type-level checks raise TypeError/ValueError.
- Validate derived properties (kind, switches, multiple, typename).
- Validate Argument.verify(): impossible metadata combinations raise
  ArgumentShapeError, unknown names raise UnknownNameError.
- Validate Multiplicity normalization and the converter registry.

Conventions
- Test method names follow CamelCase per project convention.
- Arguments are built directly; compilation is covered by the schema tests.
"""

import pathlib
import unittest
from unittest import TestCase

from tusks import Argument, Multiplicity, ValueHint, register_converter, lookup_converter
from tusks.faults import ArgumentShapeError, UnknownNameError


def positive(value):
    return value > 0


class TestArgumentConstruction(TestCase):
    """Type-level validation performed by the constructor."""

    def testDefaultsDescribeARequiredOption(self):
        argument = Argument(name="target")
        self.assertEqual(argument.type, "str")
        self.assertEqual(argument.kind, "option")
        self.assertFalse(argument.optional)
        self.assertFalse(argument.multiple)

    def testNameMustBeAnIdentifier(self):
        with self.assertRaises(ValueError):
            Argument(name="1st")

    def testNameMustBeAString(self):
        with self.assertRaises(TypeError):
            Argument(name=3)

    def testShortMustBeOneCharacter(self):
        with self.assertRaises(ValueError):
            Argument(name="verbose", short="vv")

    def testHelpCannotBeBlank(self):
        with self.assertRaises(ValueError):
            Argument(help="   ")

    def testTypeMustBeTagOrCallable(self):
        with self.assertRaises(TypeError):
            Argument(42)

    def testChoicesRejectDuplicates(self):
        with self.assertRaises(ValueError):
            Argument(choices=["a", "a"])

    def testChoicesRejectPlainString(self):
        with self.assertRaises(TypeError):
            Argument(choices="abc")

    def testHintAcceptsItsStringValue(self):
        self.assertIs(Argument(hint="file-path").hint, ValueHint.FILE_PATH)

    def testHintRejectsUnknownValue(self):
        with self.assertRaises(ValueError):
            Argument(hint="nowhere")

    def testCountIsNormalized(self):
        self.assertEqual(Argument(count=2).count, Multiplicity(2, 2))
        self.assertEqual(Argument(count=(1, None)).count, Multiplicity(1, None))

    def testCountRejectsNegativeBounds(self):
        with self.assertRaises(ValueError):
            Argument(count=(-1, 2))


class TestArgumentProperties(TestCase):
    """Derived properties of an argument."""

    def testKinds(self):
        self.assertEqual(Argument(flag=True).kind, "flag")
        self.assertEqual(Argument(positional=True).kind, "positional")
        self.assertEqual(Argument(remainder=True).kind, "remainder")
        self.assertEqual(Argument().kind, "option")

    def testSwitchesUseHyphenatedLongName(self):
        argument = Argument(name="dry_run", short="n")
        self.assertEqual(argument.switches, ("--dry-run", "-n"))

    def testPositionalHasNoSwitches(self):
        self.assertEqual(Argument(name="path", positional=True).switches, ())

    def testRemainderIsMultiple(self):
        self.assertTrue(Argument(remainder=True).multiple)

    def testTypenameOfCallable(self):
        self.assertEqual(Argument(pathlib.Path).typename, "Path")

    def testReplaceKeepsOtherFields(self):
        argument = Argument("int", name="count", short="c", help="how many")
        replaced = argument.__replace__(default="3")
        self.assertEqual(replaced.default, "3")
        self.assertEqual(replaced.short, "c")
        self.assertEqual(replaced.help, "how many")
        self.assertEqual(replaced.type, "int")

    def testReplaceOverridesType(self):
        argument = Argument(name="count", default="3")
        replaced = argument.__replace__(type="int", short="c")
        self.assertEqual(replaced.type, "int")
        self.assertEqual(replaced.default, "3")
        self.assertTrue(replaced.typed)

    def testTypedTracksExplicitType(self):
        self.assertFalse(Argument().typed)
        self.assertTrue(Argument("str").typed)
        self.assertFalse(Argument().__replace__(help="untyped").typed)
        self.assertTrue(Argument("int").__replace__(help="typed").typed)


class TestArgumentVerify(TestCase):
    """Shape verification run at compile time."""

    def testFlagCannotHaveDefault(self):
        with self.assertRaises(ArgumentShapeError):
            Argument(name="force", flag=True, default="yes").verify()

    def testFlagFalseDefaultIsAccepted(self):
        argument = Argument(name="force", flag=True, default=False)
        self.assertIs(argument.verify(), argument)

    def testFlagCannotBePositional(self):
        with self.assertRaises(ArgumentShapeError):
            Argument(name="force", flag=True, positional=True).verify()

    def testOptionalCannotHaveDefault(self):
        with self.assertRaises(ArgumentShapeError) as context:
            Argument(name="level", optional=True, default="1").verify()
        self.assertIn("implicit default", context.exception.options["hint"])

    def testRemainderCannotHaveCount(self):
        with self.assertRaises(ArgumentShapeError):
            Argument(name="rest", remainder=True, count=2).verify()

    def testPositionalCannotHaveShort(self):
        with self.assertRaises(ArgumentShapeError):
            Argument(name="path", positional=True, short="p").verify()

    def testEmptyMultiplicity(self):
        with self.assertRaises(ArgumentShapeError):
            Argument(name="items", count=(3, 1)).verify()

    def testDefaultMustBeAChoice(self):
        with self.assertRaises(ArgumentShapeError):
            Argument(name="mode", choices=["fast", "slow"], default="medium").verify()

    def testUnknownTypeTag(self):
        with self.assertRaises(UnknownNameError):
            Argument("nope", name="value").verify()

    def testUnknownValidatorReference(self):
        with self.assertRaises(UnknownNameError):
            Argument(name="value", validator="tusks.nowhere:nothing").verify()

    def testValidatorReferenceIsResolved(self):
        argument = Argument("int", name="value", validator=f"{__name__}:positive").verify()
        self.assertIs(argument.validator, positive)

    def testIdentityIsAttached(self):
        with self.assertRaises(ArgumentShapeError) as context:
            Argument(name="force", flag=True, count=1).verify(path="tool", tusk="run")
        self.assertEqual(context.exception.options["path"], "tool")
        self.assertEqual(context.exception.options["tusk"], "run")
        self.assertEqual(context.exception.options["argument"], "force")


class TestMultiplicity(TestCase):
    """Multiplicity bounds."""

    def testExactCount(self):
        self.assertEqual(Multiplicity.of(2), Multiplicity(2, 2))

    def testBooleanRejected(self):
        with self.assertRaises(TypeError):
            Multiplicity.of(True)

    def testUnboundedAdmitsAnything(self):
        bounds = Multiplicity.of((1, None))
        self.assertFalse(bounds.admits(0))
        self.assertTrue(bounds.admits(100))

    def testStr(self):
        self.assertEqual(str(Multiplicity(2, 2)), "2")
        self.assertEqual(str(Multiplicity(1, None)), "1..")
        self.assertEqual(str(Multiplicity(None, 3)), "0..3")


class TestConverters(TestCase):
    """Converter registry."""

    def testBuiltinTags(self):
        self.assertIs(lookup_converter("int"), int)
        self.assertEqual(lookup_converter("bool")("yes"), True)
        self.assertEqual(lookup_converter("path")("a/b"), pathlib.Path("a/b"))

    def testBooleanRejectsGarbage(self):
        with self.assertRaises(ValueError):
            lookup_converter("bool")("maybe")

    def testRegisteredTagIsVerified(self):
        register_converter("upper", str.upper)
        self.assertEqual(lookup_converter("upper")("abc"), "ABC")
        argument = Argument("upper", name="word")
        self.assertIs(argument.verify(), argument)

    def testUnknownTag(self):
        with self.assertRaises(LookupError):
            lookup_converter("unregistered")


if __name__ == "__main__":
    unittest.main()
