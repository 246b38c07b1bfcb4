"""
Faults module tests (codes, options, trigger behavior and rendering).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import io
import sys
import unittest
from unittest import TestCase, mock

from rich.console import Console

from arbor import faults
from arbor.faults import (
    AlreadyCompiledError,
    CommandException,
    DuplicateBindingError,
    FaultCode,
    UnknownCommandError,
    trigger,
)


class TestFaultCode(TestCase):

    def testCodesAreStable(self):
        self.assertEqual(AlreadyCompiledError.code, FaultCode.ALREADY_COMPILED)
        self.assertEqual(UnknownCommandError.code, FaultCode.UNKNOWN_COMMAND)
        self.assertEqual(DuplicateBindingError.code, FaultCode.DUPLICATE_BINDING)

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_COMMAND.normalize(), "21201")

    def testNormalizeUsesHostMapping(self):
        codes = {FaultCode.UNKNOWN_COMMAND: "E-UNKNOWN"}
        with mock.patch.object(sys.modules["__main__"], "__codes__", codes, create=True):
            self.assertEqual(FaultCode.UNKNOWN_COMMAND.normalize(), "E-UNKNOWN")


class TestCommandException(TestCase):

    def testMessageAndOptions(self):
        fault = UnknownCommandError("unknown command 'x'", hint="try again")
        self.assertEqual(str(fault), "unknown command 'x'")
        self.assertEqual(fault.options["hint"], "try again")
        with self.assertRaises(TypeError):
            fault.options["hint"] = "other"

    def testReplaceMergesOptions(self):
        fault = AlreadyCompiledError("command host 'root' already compiled", hint="once")
        replaced = fault.__replace__(shell=True)
        self.assertIsInstance(replaced, AlreadyCompiledError)
        self.assertEqual(dict(replaced.options), {"hint": "once", "shell": True})
        self.assertEqual(replaced.message, fault.message)

    def testIsException(self):
        self.assertTrue(issubclass(AlreadyCompiledError, CommandException))
        self.assertTrue(issubclass(CommandException, Exception))


class TestTrigger(TestCase):

    def testRaisesOutsideShell(self):
        with self.assertRaises(UnknownCommandError):
            trigger(UnknownCommandError("unknown command 'x'"))

    def testPrintsInShell(self):
        stream = io.StringIO()
        with mock.patch.object(faults, "console", Console(file=stream, width=120)):
            trigger(UnknownCommandError("unknown command 'x'", hint="did you mean 'y'?"), shell=True)
        output = stream.getvalue()
        self.assertIn("21201", output)
        self.assertIn("Unknown Command", output)
        self.assertIn("unknown command 'x'", output)
        self.assertIn("did you mean 'y'?", output)

    def testRejectsNonTriggerable(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


if __name__ == "__main__":
    unittest.main()
