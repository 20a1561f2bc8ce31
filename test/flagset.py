"""
FlagSet behavioral tests (registration, parsing, positional binding, capture).

Scope
- Validate long/short/cluster forms, inline values and the "--" terminator.
- Validate the three flag failures and the positional conversion failure,
  including the token or position each one carries.
- Validate positional fields, the rest slot and sticky unknown-flag capture.
- Validate re-parse behavior and registration edge cases.

Conventions
- Test method names follow CamelCase per project convention.
- Flags are registered through the public FlagSet API.
"""

from __future__ import annotations

import datetime
import unittest
import warnings
from unittest import TestCase

from helmsman import (
    FlagSet,
    BoolValue,
    StringValue,
    IntValue,
    StringListValue,
    UnknownFlagError,
    MissingValueError,
    InvalidValueError,
    PositionalConversionError,
    ParseError,
    EmptyInlineValueWarning,
)


class TestLongFlags(TestCase):
    def testInlineValuesRoundTrip(self):
        flags = FlagSet("tool")
        name = flags.string("name", "", "", "name")
        count = flags.integer("count", "", 0, "count")
        verbose = flags.boolean("verbose", "", False, "verbose")
        timeout = flags.duration("timeout", "", usage="timeout")

        flags.parse(["--name=alpha", "--count=12", "--verbose=true", "--timeout=1m30s"])

        self.assertEqual(name.value, "alpha")
        self.assertEqual(count.value, 12)
        self.assertIs(verbose.value, True)
        self.assertEqual(timeout.value, datetime.timedelta(seconds=90))
        self.assertEqual(flags.args, [])

    def testBooleanWithoutValueBecomesTrue(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose")
        flags.parse(["--verbose", "file"])
        self.assertIs(verbose.value, True)
        self.assertEqual(flags.args, ["file"])

    def testBooleanCanBeForcedOff(self):
        flags = FlagSet()
        color = flags.boolean("color", default=True)
        flags.parse(["--color=false"])
        self.assertIs(color.value, False)

    def testValueFlagConsumesFollowingToken(self):
        flags = FlagSet()
        output = flags.string("output", "o")
        flags.parse(["--output", "-weird-name", "rest"])
        self.assertEqual(output.value, "-weird-name")
        self.assertEqual(flags.args, ["rest"])

    def testStringListReplacedOnEachSet(self):
        flags = FlagSet()
        tags = flags.strings("tags", "t", ["default"])
        flags.parse(["--tags", "a,b", "--tags=c"])
        self.assertEqual(tags.value, ["c"])

    def testUnknownLongFlagRaises(self):
        flags = FlagSet()
        flags.boolean("verbose")
        with self.assertRaises(UnknownFlagError) as context:
            flags.parse(["--verbsoe"])
        self.assertEqual(context.exception.token, "--verbsoe")
        self.assertEqual(str(context.exception), "unknown flag: --verbsoe")
        self.assertIn("--verbose", context.exception.options["hint"])

    def testUnknownFlagReportsNameWithoutInlineValue(self):
        flags = FlagSet()
        with self.assertRaises(UnknownFlagError) as context:
            flags.parse(["--level=3"])
        self.assertEqual(context.exception.token, "--level")

    def testMissingValueRaises(self):
        flags = FlagSet()
        flags.string("output")
        with self.assertRaises(MissingValueError) as context:
            flags.parse(["--output"])
        self.assertEqual(context.exception.token, "--output")

    def testInvalidValueRaisesWithDetail(self):
        flags = FlagSet()
        flags.integer("count")
        with self.assertRaises(InvalidValueError) as context:
            flags.parse(["--count", "many"])
        self.assertEqual(context.exception.token, "--count")
        self.assertIn("many", context.exception.detail)
        self.assertIsInstance(context.exception.__cause__, ValueError)
        self.assertTrue(str(context.exception).startswith("invalid flag value: --count: "))

    def testEmptyInlineValueWarns(self):
        flags = FlagSet()
        label = flags.string("label", default="x")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            flags.parse(["--label="])
        self.assertEqual(label.value, "")
        self.assertTrue(any(issubclass(record.category, EmptyInlineValueWarning) for record in caught))

    def testFailuresShareParseErrorBase(self):
        for kind in (UnknownFlagError, MissingValueError, InvalidValueError, PositionalConversionError):
            self.assertTrue(issubclass(kind, ParseError))


class TestShortClusters(TestCase):
    def testBooleanCluster(self):
        flags = FlagSet()
        v = flags.boolean("verbose", "v")
        l = flags.boolean("long", "l")
        a = flags.boolean("all", "a")
        flags.parse(["-vla"])
        self.assertTrue(v.value and l.value and a.value)
        self.assertEqual(flags.args, [])

    def testValueTakesRestOfCluster(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose", "v")
        jobs = flags.integer("jobs", "j")
        flags.parse(["-vj4", "main.go"])
        self.assertIs(verbose.value, True)
        self.assertEqual(jobs.value, 4)
        self.assertEqual(flags.args, ["main.go"])

    def testValueTakesNextTokenUnconditionally(self):
        flags = FlagSet()
        config = flags.string("config", "C")
        flags.parse(["-C", "--not-a-flag"])
        self.assertEqual(config.value, "--not-a-flag")

    def testRestOfClusterIsValueEvenIfItLooksLikeBooleans(self):
        flags = FlagSet()
        output = flags.string("output", "o")
        verbose = flags.boolean("verbose", "v")
        flags.parse(["-ov"])
        self.assertEqual(output.value, "v")
        self.assertIs(verbose.value, False)

    def testTwoValueFlagsCannotShareCluster(self):
        flags = FlagSet()
        flags.string("alpha", "a")
        flags.string("beta", "b")
        with self.assertRaises(MissingValueError) as context:
            flags.parse(["-ab", "value"])
        self.assertEqual(context.exception.token, "-a")

    def testMissingValueAtEnd(self):
        flags = FlagSet()
        flags.string("output", "o")
        with self.assertRaises(MissingValueError) as context:
            flags.parse(["-o"])
        self.assertEqual(context.exception.token, "-o")

    def testUnknownShortRaises(self):
        flags = FlagSet()
        flags.boolean("verbose", "v")
        with self.assertRaises(UnknownFlagError) as context:
            flags.parse(["-vx"])
        self.assertEqual(context.exception.token, "-x")

    def testInvalidShortValue(self):
        flags = FlagSet()
        flags.integer("jobs", "j")
        with self.assertRaises(InvalidValueError) as context:
            flags.parse(["-jfour"])
        self.assertEqual(context.exception.token, "-j")

    def testSingleDashIsLiteral(self):
        flags = FlagSet()
        flags.parse(["-"])
        self.assertEqual(flags.args, ["-"])


class TestTerminator(TestCase):
    def testEverythingAfterDoubleDashIsLiteral(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose", "v")
        flags.parse(["-v", "--", "-v", "--verbose"])
        self.assertIs(verbose.value, True)
        self.assertEqual(flags.args, ["-v", "--verbose"])

    def testFlagsAfterLiteralsStillParse(self):
        flags = FlagSet()
        output = flags.string("output")
        verbose = flags.boolean("verbose", "v")
        flags.parse(["file1", "-v", "file2", "--output", "out.txt", "file3"])
        self.assertIs(verbose.value, True)
        self.assertEqual(output.value, "out.txt")
        self.assertEqual(flags.args, ["file1", "file2", "file3"])


class TestPositionals(TestCase):
    def testPositionalsFilledByIndex(self):
        flags = FlagSet()
        command = flags.positional(StringValue(), "command", 0).value
        target = flags.positional(StringValue(), "target", 1).value
        count = flags.positional(IntValue(), "count", 2).value
        flags.parse(["build", "main.go", "3"])
        self.assertEqual((command.value, target.value, count.value), ("build", "main.go", 3))

    def testConversionFailureReportsPosition(self):
        flags = FlagSet()
        flags.positional(StringValue(), "command", 0)
        flags.positional(StringValue(), "target", 1)
        flags.positional(IntValue(), "count", 2)
        with self.assertRaises(PositionalConversionError) as context:
            flags.parse(["build", "main.go", "notanumber"])
        self.assertEqual(context.exception.index, 2)
        self.assertTrue(str(context.exception).startswith("invalid value for position 2: "))

    def testMissingPositionalKeepsPriorValue(self):
        flags = FlagSet()
        first = flags.positional(StringValue("keep"), "first", 0).value
        sparse = flags.positional(IntValue(7), "sparse", 5).value
        flags.parse([])
        self.assertEqual(first.value, "keep")
        self.assertEqual(sparse.value, 7)

    def testPositionalIntrospection(self):
        flags = FlagSet()
        self.assertFalse(flags.has_positionals)
        self.assertEqual(flags.positional_count, 0)
        flags.positional(StringValue(), "late", 3)
        flags.positional(StringValue(), "early", 0)
        self.assertTrue(flags.has_positionals)
        self.assertEqual(flags.positional_count, 4)
        self.assertEqual([field.name for field in flags.positionals()], ["early", "late"])

    def testRestReceivesAllLiterals(self):
        flags = FlagSet()
        flags.positional(StringValue(), "first", 0)
        rest = flags.rest()
        self.assertTrue(flags.has_rest)
        self.assertEqual(rest.value, [])
        flags.parse(["a", "--", "b", "c"])
        self.assertEqual(rest.value, ["a", "b", "c"])

    def testNegativePositionRejected(self):
        with self.assertRaises(ValueError):
            FlagSet().positional(StringValue(), "bad", -1)


class TestUnknownCapture(TestCase):
    def testStickyAbsorption(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose", "v")
        captured = flags.unknown()
        flags.parse(["--verbose", "--unknown", "arg1", "arg2"])
        self.assertIs(verbose.value, True)
        self.assertEqual(captured.value, ["--unknown", "arg1", "arg2"])
        self.assertEqual(flags.unknown_flags, ["--unknown", "arg1", "arg2"])
        self.assertEqual(flags.args, [])

    def testKnownFlagsAfterUnknownAreCapturedToo(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose", "v")
        flags.allow_unknown()
        flags.parse(["file", "-x", "-v"])
        self.assertIs(verbose.value, False)
        self.assertEqual(flags.unknown_flags, ["-x", "-v"])
        self.assertEqual(flags.args, ["file"])

    def testClusterCapturedWhole(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose", "v")
        flags.allow_unknown(True)
        flags.parse(["-vz", "tail"])
        self.assertIs(verbose.value, True)
        self.assertEqual(flags.unknown_flags, ["-vz", "tail"])

    def testCaptureCanBeDisabled(self):
        flags = FlagSet()
        flags.unknown()
        flags.allow_unknown(False)
        self.assertFalse(flags.allows_unknown)
        with self.assertRaises(UnknownFlagError):
            flags.parse(["--nope"])


class TestReparse(TestCase):
    def testReparseKeepsValuesButResetsArgs(self):
        flags = FlagSet()
        verbose = flags.boolean("verbose", "v")
        flags.allow_unknown()
        flags.parse(["-v", "one", "--zzz"])
        self.assertTrue(flags.parsed)
        flags.parse(["two"])
        self.assertIs(verbose.value, True)
        self.assertEqual(flags.args, ["two"])
        self.assertEqual(flags.unknown_flags, [])

    def testNotParsedBeforeFirstParse(self):
        self.assertFalse(FlagSet().parsed)


class TestRegistration(TestCase):
    def testDefaultTextCapturedAtRegistration(self):
        flags = FlagSet()
        flag = flags.var(IntValue(8), "jobs", "j", "parallel jobs")
        self.assertEqual(flag.default, "8")
        flags.parse(["-j", "2"])
        self.assertEqual(flags.lookup("jobs").default, "8")

    def testDuplicateRegistrationOverwrites(self):
        flags = FlagSet()
        first = flags.var(BoolValue(), "force", "f")
        second = flags.var(StringValue(), "force", "F")
        self.assertIs(flags.lookup("force"), second)
        self.assertIs(flags.lookup_short("f"), first)
        flags.parse(["--force", "yes"])
        self.assertEqual(second.value.value, "yes")

    def testShortOnlyAndLongOnly(self):
        flags = FlagSet()
        flags.boolean("", "q")
        flags.boolean("dry-run")
        self.assertIsNone(flags.lookup(""))
        self.assertEqual(flags.lookup_short("q").label, "-q")
        self.assertEqual(flags.lookup("dry-run").label, "--dry-run")

    def testFlagsSortedByName(self):
        flags = FlagSet()
        flags.boolean("zeta")
        flags.boolean("alpha", "a")
        flags.string("mid", "m")
        self.assertEqual([flag.name for flag in flags.flags()], ["alpha", "mid", "zeta"])

    def testInvalidRegistrations(self):
        flags = FlagSet()
        with self.assertRaises(ValueError):
            flags.var(BoolValue(), "", "")
        with self.assertRaises(ValueError):
            flags.var(BoolValue(), "x", "xy")
        with self.assertRaises(ValueError):
            flags.var(BoolValue(), "--x")
        with self.assertRaises(TypeError):
            flags.var(True, "x")
        with self.assertRaises(TypeError):
            flags.rest(BoolValue())

    def testParseRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            FlagSet().parse("-v")
        with self.assertRaises(TypeError):
            FlagSet().parse(["-v", 1])

    def testReprShowsIntrospectableFields(self):
        flag = FlagSet().var(StringListValue(["a"]), "tags", "t")
        self.assertTrue(repr(flag).startswith("flag(name='tags', short='t'"))


if __name__ == "__main__":
    unittest.main()
