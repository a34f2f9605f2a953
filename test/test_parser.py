"""
Parser/matcher behavioral tests (matching, accumulation, faults, reporting).

Scope
- Validate option/argument/command matching and value resolution.
- Validate error accumulation (every fault of a run is reported).
- Validate fold and effect modes, config checks and terminators.
- Validate terminal reporting of parse() and Outcome.unwrap().

Conventions
- Test method names follow CamelCase per project convention.
- Parsers are built with exit=False so help/version never leave the process.
"""

from __future__ import annotations

import contextlib
import io
import unittest
from unittest import TestCase

from argfold import (
    Parser,
    Option,
    Argument,
    Command,
    DeclarationError,
    FaultCode,
    ParseExit,
    UnknownOptionError,
    UnknownArgumentError,
    MissingValueError,
    CoercionError,
    ValidationError,
    OccurrenceError,
    FlagAssignmentError,
    DelegatedError,
    ConfigError,
    UnknownOptionWarning,
    UnknownArgumentWarning,
    pair,
    success,
    failure,
)


def assign(key):
    return lambda value, config: config | {key: value}


def scopt():
    parser = Parser("scopt", exit=False)
    parser.head("scopt", "3.x")
    parser.help("help")
    parser.option("foo", "f", type=int, action=assign("foo"))
    parser.add(
        Option("max", type=pair(str, int))
        .key_value_names("lib", "count")
        .validate(lambda kv: success if kv[1] > 0 else failure("Value <max> must be >0"))
        .action(lambda kv, config: config | {"libName": kv[0], "maxCount": kv[1]})
    )
    parser.option("verbose", "v", action=lambda _, config: config | {"verbose": True})
    parser.command(
        "update",
        Option("xyz", type=bool).action(assign("xyz")),
        action=lambda _, config: config | {"mode": "update"},
    )
    return parser


class TestOptions(TestCase):
    """Behavioral tests for option matching and value resolution."""

    def testSpacedValue(self):
        outcome = scopt().run(["--foo", "3"], {})
        self.assertEqual(outcome.errors, ())
        self.assertEqual(outcome.value, {"foo": 3})

    def testInlineValueForms(self):
        parser = scopt()
        for tokens in (["--foo=3"], ["--foo:3"], ["-f", "3"], ["-f=3"], ["-f:3"], ["-f3"]):
            with self.subTest(tokens=tokens):
                self.assertEqual(parser.run(tokens, {}).value, {"foo": 3})

    def testKeyValueOption(self):
        outcome = scopt().run(["--max:libA=5"], {})
        self.assertEqual(outcome.value, {"libName": "libA", "maxCount": 5})

    def testKeyValueOptionValidatorFailure(self):
        outcome = scopt().run(["--max:libA=-1"], {})
        self.assertFalse(outcome.success)
        self.assertIsNone(outcome.value)
        error, = outcome.errors
        self.assertIsInstance(error, ValidationError)
        self.assertEqual(error.message, "Value <max> must be >0")
        self.assertEqual(error.code, FaultCode.VALIDATION_FAILED)

    def testNegativeNumberTakenAsValue(self):
        self.assertEqual(scopt().run(["--foo", "-1"], {}).value, {"foo": -1})
        self.assertEqual(scopt().run(["--foo", "-12"], {}).value, {"foo": -12})

    def testShortOptionIsNotTakenAsValue(self):
        outcome = scopt().run(["--foo", "-v"], {})
        self.assertIsInstance(outcome.errors[0], MissingValueError)

    def testLongOptionIsNotTakenAsValue(self):
        outcome = scopt().run(["--foo", "--verbose"], {})
        error, = outcome.errors
        self.assertIsInstance(error, MissingValueError)

    def testMissingValueAtEnd(self):
        error, = scopt().run(["--foo"], {}).errors
        self.assertIsInstance(error, MissingValueError)
        self.assertEqual(error.message, "option '--foo' at first position expects a value")

    def testFlagAssignmentRejected(self):
        error, = scopt().run(["--verbose=yes"], {}).errors
        self.assertIsInstance(error, FlagAssignmentError)

    def testCoercionError(self):
        error, = scopt().run(["--foo", "abc"], {}).errors
        self.assertIsInstance(error, CoercionError)
        self.assertEqual(error.message, "'abc' is not a valid int")

    def testRaisingConverterBecomesCoercionError(self):
        def level(raw):
            return {"low": 1, "high": 2}[raw]

        parser = Parser("p")
        parser.option("level", type=level, action=assign("level"))
        self.assertEqual(parser.run(["--level", "high"], {}).value, {"level": 2})
        error, = parser.run(["--level", "medium"], {}).errors
        self.assertIsInstance(error, CoercionError)
        self.assertEqual(error.message, "'medium' is not a valid level")

    def testCoercionErrorPointsAtPairPart(self):
        error, = scopt().run(["--max:libA=x"], {}).errors
        self.assertEqual(error.message, "'x' is not a valid int")

    def testUnknownOptionWithSuggestion(self):
        error, = scopt().run(["--fo", "3"], {}).errors[:1]
        self.assertIsInstance(error, UnknownOptionError)
        self.assertEqual(error.message, "unknown option '--fo' at first position")
        self.assertEqual(error.options["suggestions"][0], "--foo")
        self.assertIn("--foo", error.hint)
        self.assertIn("scopt --help", error.hint)

    def testUnknownOptionPosition(self):
        error, = scopt().run(["--verbose", "--bogus"], {}).errors
        self.assertEqual(error.message, "unknown option '--bogus' at second position")
        self.assertEqual(error.position, 2)

    def testDoubleDashEndsOptions(self):
        parser = Parser("p")
        parser.argument("file", action=assign("file"))
        self.assertEqual(parser.run(["--", "--foo"], {}).value, {"file": "--foo"})


class TestClusters(TestCase):
    """Behavioral tests for short option clusters."""

    def build(self):
        parser = Parser("p")
        parser.option(short="a", action=lambda _, config: config + ["a"])
        parser.option(short="b", action=lambda _, config: config + ["b"])
        parser.option(short="c", type=int, action=lambda value, config: config + [value])
        return parser

    def testFlagsExpand(self):
        self.assertEqual(self.build().run(["-ab"], []).value, ["a", "b"])

    def testValuedMemberTakesRest(self):
        self.assertEqual(self.build().run(["-ac5"], []).value, ["a", 5])

    def testValuedMemberTakesNextToken(self):
        self.assertEqual(self.build().run(["-bc", "7"], []).value, ["b", 7])

    def testUnknownMemberDropsRest(self):
        outcome = self.build().run(["-axb"], [])
        error, = outcome.errors
        self.assertIsInstance(error, UnknownOptionError)
        self.assertEqual(error.options["input"], "-x")


class TestArguments(TestCase):
    """Behavioral tests for positional binding."""

    def testDeclarationOrder(self):
        parser = Parser("p")
        parser.argument("source", action=assign("source"))
        parser.argument("target", action=assign("target"))
        self.assertEqual(parser.run(["a", "b"], {}).value, {"source": "a", "target": "b"})

    def testUnboundedAbsorbsRest(self):
        parser = Parser("p")
        parser.add(Argument("file").unbounded().action(lambda value, files: files + [value]))
        self.assertEqual(parser.run(["a", "b", "c"], []).value, ["a", "b", "c"])

    def testOptionsInterleaveWithArguments(self):
        parser = Parser("p")
        parser.option("foo", type=int, action=assign("foo"))
        parser.argument("file", action=assign("file"))
        self.assertEqual(parser.run(["x", "--foo", "1"], {}).value, {"file": "x", "foo": 1})

    def testExtraArgumentReportedAndParsingContinues(self):
        parser = Parser("p")
        parser.argument("file")
        parser.option("foo", type=int)
        outcome = parser.run(["a", "b", "--foo", "x"], None)
        self.assertEqual([type(error) for error in outcome.errors], [UnknownArgumentError, CoercionError])
        self.assertEqual(outcome.errors[0].message, "unknown argument 'b' at second position")

    def testMissingRequiredArgument(self):
        parser = Parser("p")
        parser.argument("file")
        error, = parser.run([], None).errors
        self.assertIsInstance(error, OccurrenceError)
        self.assertEqual(error.message, "missing required argument '<file>'")

    def testTypedArgument(self):
        parser = Parser("p")
        parser.argument("count", type=int, action=assign("count"))
        self.assertEqual(parser.run(["4"], {}).value, {"count": 4})


class TestCommands(TestCase):
    """Behavioral tests for command scoping."""

    def testCommandInFirstPosition(self):
        outcome = scopt().run(["update", "--xyz", "true"], {})
        self.assertEqual(outcome.errors, ())
        self.assertEqual(outcome.value, {"mode": "update", "xyz": True})
        self.assertEqual([command.name for command in outcome.path], ["update"])

    def testCommandNotInFirstPosition(self):
        outcome = scopt().run(["--xyz", "true", "update"], {})
        self.assertFalse(outcome.success)
        self.assertIsInstance(outcome.errors[0], UnknownOptionError)
        self.assertIn("update", [error.options.get("input") for error in outcome.errors])
        self.assertEqual(outcome.path, ())

    def testParentOptionsAreNotVisibleInCommandScope(self):
        error, = scopt().run(["update", "--foo", "1"], {}).errors[:1]
        self.assertIsInstance(error, UnknownOptionError)

    def testCommandChildrenOnlyCheckedWhenReached(self):
        parser = Parser("p")
        parser.command("update", Argument("target"))
        self.assertTrue(parser.run([], None).success)
        error, = parser.run(["update"], None).errors
        self.assertEqual(error.message, "missing required argument '<target>'")

    def testRequiredCommand(self):
        parser = Parser("p")
        parser.command("update", arity=(1, 1))
        error, = parser.run([], None).errors
        self.assertEqual(error.message, "missing required command 'update'")

    def testNestedCommands(self):
        parser = Parser("p")
        parser.command(
            "remote",
            Command("add").children(Argument("url").action(assign("url"))).action(assign("add")),
            action=assign("remote"),
        )
        outcome = parser.run(["remote", "add", "https://example.org"], {})
        self.assertEqual(outcome.value, {"remote": None, "add": None, "url": "https://example.org"})
        self.assertEqual([command.name for command in outcome.path], ["remote", "add"])

    def testCommandWordAfterDoubleDashIsAnArgument(self):
        parser = Parser("p")
        parser.argument("target", action=assign("target"))
        parser.command("update", action=assign("update"))
        outcome = parser.run(["--", "update"], {})
        self.assertEqual(outcome.value, {"target": "update"})
        self.assertEqual(outcome.path, ())

    def testSameCommandWordTwiceIsAnArgument(self):
        outcome = scopt().run(["update", "update"], {})
        error, = outcome.errors
        self.assertIsInstance(error, UnknownArgumentError)


class TestOccurrences(TestCase):
    """Behavioral tests for occurrence bounds."""

    def testRequiredOptionMissingYieldsExactlyOneError(self):
        parser = Parser("p")
        parser.add(Option("foo", type=int).required())
        outcome = parser.run([], {})
        error, = outcome.errors
        self.assertIsInstance(error, OccurrenceError)
        self.assertEqual(error.code, FaultCode.MISSING_OCCURRENCE)
        self.assertEqual(error.message, "missing required option '--foo'")
        self.assertIsNone(outcome.value)

    def testTooManyOccurrences(self):
        outcome = scopt().run(["--foo", "1", "--foo", "2"], {})
        error, = outcome.errors
        self.assertIsInstance(error, OccurrenceError)
        self.assertEqual(error.code, FaultCode.TOO_MANY_OCCURRENCES)

    def testRepeatableOption(self):
        parser = Parser("p")
        parser.add(Option("lib", type=str).unbounded().action(lambda value, libs: libs + [value]))
        self.assertEqual(parser.run(["--lib", "a", "--lib", "b"], []).value, ["a", "b"])

    def testTooFewOccurrences(self):
        parser = Parser("p")
        parser.add(Option("lib", type=str).occurs(2, 3))
        error, = parser.run(["--lib", "a"], None).errors
        self.assertEqual(error.options["count"], 1)
        self.assertEqual(error.title, "too few occurrences")


class TestValidation(TestCase):
    """Behavioral tests for validators and delegated errors."""

    def testValidatorsAreExhaustive(self):
        parser = Parser("p")
        parser.add(
            Option("foo", type=int)
            .validate(lambda value: success if value > 0 else failure("foo must be positive"))
            .validate(lambda value: success if value % 2 == 0 else failure("foo must be even"))
        )
        outcome = parser.run(["--foo", "-3"], None)
        self.assertEqual([error.message for error in outcome.errors], ["foo must be positive", "foo must be even"])

    def testActionSkippedOnValidationFailure(self):
        seen = []
        parser = Parser("p", mutable=True)
        parser.add(Option("foo", type=int).validate(lambda value: failure("no")).foreach(seen.append))
        parser.run(["--foo", "1"])
        self.assertEqual(seen, [])

    def testRaisingValidatorIsDelegated(self):
        parser = Parser("p")
        parser.add(Option("foo", type=int).validate(lambda value: 1 / 0))
        error, = parser.run(["--foo", "1"], None).errors
        self.assertIsInstance(error, DelegatedError)
        self.assertIsInstance(error.options["exception"], ZeroDivisionError)

    def testValidatorMustReturnResult(self):
        parser = Parser("p")
        parser.add(Option("foo", type=int).validate(lambda value: True))
        error, = parser.run(["--foo", "1"], None).errors
        self.assertIsInstance(error, DelegatedError)

    def testRaisingActionIsDelegatedAndParsingContinues(self):
        parser = Parser("p")
        parser.option("foo", type=int, action=lambda value, config: config["missing"])
        parser.option("bar", type=int)
        outcome = parser.run(["--foo", "1", "--bar", "x"], {})
        self.assertEqual([type(error) for error in outcome.errors], [DelegatedError, CoercionError])


class TestConfigChecks(TestCase):
    """Behavioral tests for parser-level checks."""

    def build(self):
        parser = Parser("p")
        parser.option("foo", type=int, action=assign("foo"))
        parser.option("bar", type=int, action=assign("bar"))
        parser.check(lambda config: failure("foo and bar are exclusive") if len(config) > 1 else success)
        return parser

    def testPassingCheck(self):
        self.assertEqual(self.build().run(["--foo", "1"], {}).value, {"foo": 1})

    def testFailingCheck(self):
        error, = self.build().run(["--foo", "1", "--bar", "2"], {}).errors
        self.assertIsInstance(error, ConfigError)
        self.assertEqual(error.message, "foo and bar are exclusive")

    def testChecksSkippedAfterOtherFaults(self):
        error, = self.build().run(["--foo", "1", "--bar", "x"], {}).errors
        self.assertIsInstance(error, CoercionError)


class TestModes(TestCase):
    """Behavioral tests for fold and effect modes."""

    def testFoldAppliesActionsInConsumptionOrder(self):
        parser = Parser("p")
        parser.option("a", action=lambda _, trail: trail + ["a"])
        parser.option("b", action=lambda _, trail: trail + ["b"])
        self.assertEqual(parser.run(["--b", "--a"], []).value, ["b", "a"])

    def testFoldDoesNotMutateInitial(self):
        initial = {}
        scopt().run(["--foo", "3"], initial)
        self.assertEqual(initial, {})

    def testReparsingIsIdempotent(self):
        parser = scopt()
        tokens = ["--foo", "3", "--max:libA=5", "update", "--xyz", "no"]
        self.assertEqual(parser.run(tokens, {}).value, parser.run(tokens, {}).value)

    def testEffectMode(self):
        seen = []
        parser = Parser("p", mutable=True)
        parser.option("foo", type=int, foreach=seen.append)
        outcome = parser.run(["--foo", "3"])
        self.assertTrue(outcome.success)
        self.assertIsNone(outcome.value)
        self.assertEqual(seen, [3])

    def testEffectModeRejectsFoldAction(self):
        parser = Parser("p", mutable=True)
        with self.assertRaises(DeclarationError):
            parser.option("foo", type=int, action=assign("foo"))

    def testFoldModeRejectsEffectInNestedScope(self):
        parser = Parser("p")
        with self.assertRaises(DeclarationError):
            parser.command("update", Option("xyz").foreach(print))

    def testActionAndForeachTogetherRejected(self):
        with self.assertRaises(TypeError):
            Parser("p").option("foo", action=assign("foo"), foreach=print)


class TestStrictness(TestCase):
    """Behavioral tests for non-strict parsers."""

    def testUnknownsBecomeWarnings(self):
        parser = Parser("p", strict=False)
        parser.option("foo", type=int, action=assign("foo"))
        outcome = parser.run(["--bogus", "extra", "--foo", "1"], {})
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.value, {"foo": 1})
        self.assertEqual(
            [type(warning) for warning in outcome.warnings],
            [UnknownOptionWarning, UnknownArgumentWarning],
        )


class TestTerminators(TestCase):
    """Behavioral tests for help and version options."""

    def testHelpStopsMatching(self):
        outcome = scopt().run(["--help", "--bogus"], {})
        self.assertEqual(outcome.errors, ())
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.terminator.long, "help")

    def testParseHelpPrintsUsage(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            self.assertIsNone(scopt().parse(["--help"], {}))
        self.assertIn("Usage: scopt", stdout.getvalue())

    def testHelpAnswersInsideCommand(self):
        outcome = scopt().run(["update", "--help"], {})
        self.assertEqual(outcome.errors, ())
        self.assertEqual(outcome.terminator.long, "help")
        self.assertEqual([command.name for command in outcome.path], ["update"])

    def testParseHelpInsideCommandPrintsCommandUsage(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            self.assertIsNone(scopt().parse(["update", "--help"], {}))
        self.assertIn("Usage: scopt update [options]", stdout.getvalue())
        self.assertNotIn("--foo", stdout.getvalue())

    def testVersionAnswersInsideCommand(self):
        parser = scopt()
        parser.version("version")
        outcome = parser.run(["update", "--version"], {})
        self.assertEqual(outcome.errors, ())
        self.assertIs(outcome.terminator, parser.versioner)

    def testParseVersionPrintsHead(self):
        parser = scopt()
        parser.version("version")
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            parser.parse(["--version"], {})
        self.assertEqual(stdout.getvalue().strip(), "scopt 3.x")

    def testHelpExitsByDefault(self):
        parser = Parser("p")
        parser.help()
        with contextlib.redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as context:
                parser.parse(["--help"])
        self.assertEqual(context.exception.code, 0)


class TestReporting(TestCase):
    """Behavioral tests for parse() reporting and Outcome.unwrap()."""

    def testParseReportsFaultsAndUsage(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            self.assertIsNone(scopt().parse(["--foo", "abc"], {}))
        output = stderr.getvalue()
        self.assertIn("'abc' is not a valid int", output)
        self.assertIn("Usage: scopt", output)

    def testParseWithoutUsage(self):
        parser = Parser("p", show_usage_on_error=False)
        parser.argument("file")
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            parser.parse([])
        self.assertNotIn("Usage:", stderr.getvalue())

    def testParseSuccessReturnsValue(self):
        self.assertEqual(scopt().parse(["--foo", "2"], {}), {"foo": 2})

    def testEffectParseReturnsBoolean(self):
        parser = Parser("p", mutable=True)
        parser.option("foo", type=int)
        self.assertIs(parser.parse(["--foo", "2"]), True)
        with contextlib.redirect_stderr(io.StringIO()):
            self.assertIs(parser.parse(["--foo", "x"]), False)

    def testUnwrapRaisesGroupedFaults(self):
        outcome = scopt().run(["--foo", "x", "--bogus"], {})
        with self.assertRaises(ParseExit) as context:
            outcome.unwrap()
        self.assertEqual(len(context.exception.exceptions), 2)

    def testUnwrapReturnsValue(self):
        self.assertEqual(scopt().run(["--foo", "2"], {}).unwrap(), {"foo": 2})

    def testTokensMustNotBeAString(self):
        with self.assertRaises(TypeError):
            scopt().run("--foo 2", {})


if __name__ == "__main__":
    unittest.main()
