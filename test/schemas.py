"""
Dataclass schema behavioral tests (field mapping, binding, inference).

Scope
- Validate how plain fields, option(), positional(), rest() and unknown()
  map onto a FlagSet, including derived names and usage texts.
- Validate that parsing writes straight into the dataclass instance.
- Validate nested dataclasses and private fields.
- Validate infer() in direct and decorator form, and its argument checks.

Conventions
- Test method names follow CamelCase per project convention.
- Schemas are declared at module level so their annotations resolve.
"""

from __future__ import annotations

import dataclasses
import datetime
import unittest
from unittest import TestCase

from helmsman import (
    Dispatcher,
    FlagSet,
    InferredCommand,
    PositionalConversionError,
    from_dataclass,
    parse_dataclass,
    infer,
    option,
    positional,
    rest,
    unknown,
)


@dataclasses.dataclass
class Build:
    target: str = positional(0, default="", usage="what to build")
    output: str = option(short="o", default="a.out", usage="output file")
    dry_run: bool = option(short="n", default=False)
    jobs: int = 1
    timeout: datetime.timedelta = datetime.timedelta(seconds=30)
    tags: list[str] = dataclasses.field(default_factory=list)
    files: list[str] = rest()
    _cache: dict = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class Passthrough:
    verbose: bool = option(long="loud", short="v", default=False)
    extra: list[str] = unknown()


@dataclasses.dataclass
class Network:
    host: str = option(default="localhost", usage="bind address")
    port: int = option(short="p", default=8080)


@dataclasses.dataclass
class Serve:
    network: Network = dataclasses.field(default_factory=Network)
    verbose: bool = option(short="v", default=False)


@dataclasses.dataclass
class Counted:
    count: int = positional(0, default=0)


@dataclasses.dataclass
class Floating:
    ratio: float = 0.5


@dataclasses.dataclass
class ListPositional:
    items: list[str] = positional(0, default_factory=list)


@dataclasses.dataclass
class StringRest:
    tail: str = rest()


@dataclasses.dataclass
class Deploy:
    environment: str = positional(0, default="dev", usage="target environment")
    dry_run: bool = option(short="n", default=False, usage="simulate the deployment")


@dataclasses.dataclass
class Required:
    name: str


def deploy(config: Deploy):
    """Deploy the application.

    Everything after the first line is ignored for the usage text.
    """
    return config.environment, config.dry_run


class TestFromDataclass(TestCase):
    def testFieldsBecomeFlags(self):
        flagset = from_dataclass(FlagSet(), Build())
        self.assertEqual(
            [flag.name for flag in flagset.flags()],
            ["dry-run", "jobs", "output", "tags", "timeout"],
        )
        self.assertEqual(flagset.lookup("dry-run").short, "n")
        self.assertEqual(flagset.lookup("dry-run").usage, "dry_run value")
        self.assertEqual(flagset.lookup("output").usage, "output file")
        self.assertEqual(flagset.lookup("jobs").default, "1")
        self.assertEqual(flagset.lookup("timeout").default, "30s")
        self.assertEqual([field.name for field in flagset.positionals()], ["target"])
        self.assertTrue(flagset.has_rest)
        self.assertIsNone(flagset.lookup("cache"))

    def testParsingWritesIntoInstance(self):
        config = Build()
        flagset = parse_dataclass(config, ["-n", "--jobs", "4", "main", "--tags=a,b", "-o", "prog", "extra1"])
        self.assertEqual(flagset.name, "build")
        self.assertIs(config.dry_run, True)
        self.assertEqual(config.jobs, 4)
        self.assertEqual(config.tags, ["a", "b"])
        self.assertEqual(config.output, "prog")
        self.assertEqual(config.target, "main")
        self.assertEqual(config.files, ["main", "extra1"])
        self.assertEqual(config.timeout, datetime.timedelta(seconds=30))

    def testUnknownFieldEnablesCapture(self):
        config = Passthrough()
        flagset = parse_dataclass(config, ["--loud", "--zzz", "q"])
        self.assertTrue(flagset.allows_unknown)
        self.assertIs(config.verbose, True)
        self.assertEqual(config.extra, ["--zzz", "q"])

    def testNestedDataclassIsFlattened(self):
        config = Serve()
        parse_dataclass(config, ["--host", "0.0.0.0", "-p", "9000", "-v"])
        self.assertEqual(config.network.host, "0.0.0.0")
        self.assertEqual(config.network.port, 9000)
        self.assertIs(config.verbose, True)

    def testPositionalConversionFailure(self):
        with self.assertRaises(PositionalConversionError) as context:
            parse_dataclass(Counted(), ["many"])
        self.assertEqual(context.exception.index, 0)

    def testRejectsUnsupportedSchemas(self):
        with self.assertRaises(TypeError):
            from_dataclass(FlagSet(), Floating())
        with self.assertRaises(TypeError):
            from_dataclass(FlagSet(), ListPositional())
        with self.assertRaises(TypeError):
            from_dataclass(FlagSet(), StringRest())
        with self.assertRaises(TypeError):
            from_dataclass(FlagSet(), Build)
        with self.assertRaises(TypeError):
            from_dataclass(FlagSet(), object())
        with self.assertRaises(TypeError):
            from_dataclass(Build(), Build())

    def testRejectsBadDeclarations(self):
        with self.assertRaises(ValueError):
            option(long="--output")
        with self.assertRaises(ValueError):
            option(short="ab")
        with self.assertRaises(TypeError):
            option(usage=1)
        with self.assertRaises(ValueError):
            positional(-1)
        with self.assertRaises(TypeError):
            positional("0")


class TestInfer(TestCase):
    def testDirectForm(self):
        cmd = infer(deploy)
        self.assertIsInstance(cmd, InferredCommand)
        self.assertEqual(cmd.usage, "Deploy the application.")
        self.assertIsInstance(cmd.config, Deploy)
        self.assertEqual(cmd.flagset.name, "deploy")
        self.assertIsNotNone(cmd.flagset.lookup_short("n"))

    def testDecoratorFormWithUsage(self):
        @infer(usage="ship it")
        def ship(config: Deploy):
            return config.environment

        self.assertEqual(ship.usage, "ship it")

    def testRunsThroughDispatcher(self):
        app = Dispatcher("app")
        app.dispatch("deploy", infer(deploy))
        self.assertEqual(app.execute(["deploy", "-n", "prod"]), ("prod", True))

    def testRejectsBadCallbacks(self):
        with self.assertRaises(TypeError):
            infer(42)
        with self.assertRaises(TypeError):
            infer(lambda first, second: None)
        with self.assertRaises(TypeError):
            infer(lambda config: None)
        with self.assertRaises(TypeError):
            infer(lambda *, config: None)

        def needs(config: Required):
            pass

        with self.assertRaises(TypeError):
            infer(needs)

        def scalar(config: int):
            pass

        with self.assertRaises(TypeError):
            infer(scalar)


if __name__ == "__main__":
    unittest.main()
