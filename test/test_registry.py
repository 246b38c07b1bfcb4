"""
Registry module behavioral tests (registration adapter, prompt execution, line completion).

Scope
- Validate register(): one independent binding per name/alias, completion providers only
  for commands with a completer, fresh context per call.
- Validate Registry: prompt tokenization, unknown/duplicate names, shell mode.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase, mock

from rich.console import Console

from arbor import (
    Command,
    CommandHost,
    DuplicateBindingError,
    Registry,
    UnknownCommandError,
    build,
    register,
)
from arbor import faults


class RecordingRuntime:
    def __init__(self):
        self.bound = {}
        self.suggested = {}

    def bind(self, name, handler, /):
        self.bound[name] = handler

    def suggest(self, name, provider, /):
        self.suggested[name] = provider


class TestRegister(TestCase):
    """register(command, runtime) against a recording runtime."""

    def setUp(self):
        self.contexts = []
        self.lines = []
        root = CommandHost("root", aliases=("r",))

        @root.command(aliases=("p",))
        def ping(args, context):
            self.contexts.append(context)

        self.root = build(root, {"output": self.lines.append})
        self.runtime = RecordingRuntime()

    def testBindsNameAndAliases(self):
        self.assertIs(register(self.root, self.runtime), self.root)
        self.assertEqual(list(self.runtime.bound), ["root", "r"])
        self.assertEqual(list(self.runtime.suggested), ["root", "r"])

    def testEveryBindingBuildsFreshContext(self):
        register(self.root, self.runtime)
        self.runtime.bound["root"](["ping"])
        self.runtime.bound["r"](["p"])
        self.assertEqual(len(self.contexts), 2)
        self.assertEqual(self.contexts[0].original_args, ("ping",))
        self.assertEqual(self.contexts[1].original_args, ("p",))
        for context in self.contexts:
            self.assertEqual([step.name for step in context.prev_commands], ["root"])

    def testProvidersComplete(self):
        register(self.root, self.runtime)
        self.assertEqual(self.runtime.suggested["r"](["pi"]), ["ping"])
        self.assertEqual(self.runtime.suggested["root"]([]), ["ping", "p", "help"])

    def testLeafWithoutCompleterGetsNoProvider(self):
        register(Command(lambda args, context: None, name="leaf", aliases=("l",)), self.runtime)
        self.assertEqual(list(self.runtime.bound), ["leaf", "l"])
        self.assertEqual(self.runtime.suggested, {})


class TestRegistry(TestCase):
    """The in-process runtime."""

    def setUp(self):
        self.pongs = []
        self.lines = []
        root = CommandHost("root", aliases=("r",))

        @root.command(aliases=("p",))
        def ping(args, context):
            self.pongs.append(args)

        self.registry = Registry()
        self.registry.register(build(root, {"output": self.lines.append}))

    def testNames(self):
        self.assertEqual(self.registry.names, ("root", "r"))

    def testInvokeString(self):
        self.assertTrue(self.registry.invoke("root ping 'a b'"))
        self.assertEqual(self.pongs, [["a b"]])

    def testInvokeAlias(self):
        self.assertTrue(self.registry.invoke("r p"))
        self.assertEqual(self.pongs, [[]])

    def testInvokeIterable(self):
        self.assertTrue(self.registry.invoke(["root", "ping", "x"]))
        self.assertEqual(self.pongs, [["x"]])

    def testInvokeRawNameIgnoresCase(self):
        self.assertTrue(self.registry.invoke("ROOT ping"))
        self.assertEqual(self.pongs, [[]])

    def testInvokeEmptyPrompt(self):
        self.assertFalse(self.registry.invoke(""))

    def testInvokeRejectsNonStringItems(self):
        with self.assertRaises(TypeError):
            self.registry.invoke(["root", 1])

    def testInvokeRejectsInvalidPrompt(self):
        with self.assertRaises(TypeError):
            self.registry.invoke(42)

    def testInvokeFallsBackToHelp(self):
        self.registry.invoke("root nope")
        self.assertEqual(self.lines[0], "&a--- &b/root commands &a---")

    def testUnknownCommandRaises(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.registry.invoke("rot ping")
        self.assertEqual(context.exception.options["hint"], "did you mean 'root'?")
        self.assertEqual(context.exception.options["suggestions"], ["root"])

    def testUnknownCommandWithoutSuggestion(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.registry.invoke("zzzzzz")
        self.assertEqual(context.exception.options["hint"], "available commands: root, r")

    def testUnknownCommandInShellMode(self):
        stream = io.StringIO()
        registry = Registry(shell=True)
        with mock.patch.object(faults, "console", Console(file=stream, width=120)):
            self.assertFalse(registry.invoke("zzz"))
        self.assertIn("unknown command 'zzz'", stream.getvalue())
        self.assertIn("Unknown Command", stream.getvalue())

    def testDuplicateBindingRaises(self):
        with self.assertRaises(DuplicateBindingError):
            self.registry.register(Command(lambda args, context: None, name="r"))

    def testDuplicateBindingInShellModeKeepsFirst(self):
        registry = Registry(shell=True)
        first = Command(lambda args, context: self.pongs.append("first"), name="x")
        second = Command(lambda args, context: self.pongs.append("second"), name="x")
        registry.register(first)
        with mock.patch.object(faults, "console", Console(file=io.StringIO())):
            registry.register(second)
        registry.invoke("x")
        self.assertEqual(self.pongs, ["first"])

    def testDuplicateBindingInShellModeKeepsFirstCompletion(self):
        registry = Registry(shell=True)
        first = CommandHost("x")
        first.add(Command(lambda args, context: None, name="alpha"))
        second = CommandHost("x")
        second.add(Command(lambda args, context: None, name="beta"))
        registry.register(build(first))
        with mock.patch.object(faults, "console", Console(file=io.StringIO())):
            registry.register(build(second))
        self.assertEqual(registry.complete("x "), ["alpha", "help"])

    def testRefusedBindingGetsNoProvider(self):
        class RefusingRuntime(RecordingRuntime):
            def bind(self, name, handler, /):
                if name == "r":
                    return False
                super().bind(name, handler)

        runtime = RefusingRuntime()
        register(build(CommandHost("root", aliases=("r",))), runtime)
        self.assertEqual(list(runtime.bound), ["root"])
        self.assertEqual(list(runtime.suggested), ["root"])

    def testBindRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            self.registry.bind("other", "handler")

    def testCompleteTopLevelNames(self):
        self.assertEqual(self.registry.complete(""), ["root", "r"])
        self.assertEqual(self.registry.complete("ro"), ["root"])

    def testCompleteAfterSpaceStartsNewToken(self):
        self.assertEqual(self.registry.complete("root "), ["ping", "p", "help"])

    def testCompletePartialSubcommand(self):
        self.assertEqual(self.registry.complete("root pi"), ["ping"])
        self.assertEqual(self.registry.complete("r help p"), ["ping", "p"])

    def testCompleteRawNameIgnoresCase(self):
        self.assertEqual(self.registry.complete("ROOT pi"), ["ping"])
        self.assertEqual(self.registry.complete("R "), ["ping", "p", "help"])

    def testCompleteUnknownName(self):
        self.assertEqual(self.registry.complete("zzz x"), [])

    def testCompleteDoesNotDispatch(self):
        self.registry.complete("root ping ")
        self.assertEqual(self.pongs, [])
        self.assertEqual(self.lines, [])

    def testCompleteUnbalancedQuote(self):
        self.assertEqual(self.registry.complete("root 'pi"), [])
        self.assertEqual(self.registry.complete("root pi"), ["ping"])


if __name__ == "__main__":
    unittest.main()
