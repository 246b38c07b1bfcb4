"""
Binding compiled commands to a runtime.

A runtime is anything exposing the two registration capabilities a host application
offers for top-level commands:

- bind(name, handler): handler(args) runs when the raw command ``name`` fires.
- suggest(name, provider): provider(args) returns tab-completion candidates for ``name``.

register(command, runtime) binds a compiled Command under its name and every alias.
Every binding is independent and builds a fresh Context per call, so all entry points
behave identically.

Registry is the in-process runtime shipped with the package: it keeps the bindings in
registration order and can execute prompts and complete typed lines.
"""
import difflib
import logging
import shlex
from collections.abc import Iterable

from .context import Context
from .faults import DuplicateBindingError, UnknownCommandError, trigger
from .utils import identifier, rename

logger = logging.getLogger(__name__)


def register(command, runtime, /):
    """
    Bind ``command`` under (name, *aliases) on ``runtime`` and return the command.

    - one runtime.bind(...) per name, each calling command(args, Context.fresh(args));
    - one runtime.suggest(...) per name when the command has a completer, each returning
      command.complete(args, Context.fresh(args)).

    A runtime whose bind() returns False refused the name; no provider is suggested
    for it, so completion keeps following the command that owns the binding.
    """
    for name in command.names:
        @rename("handler")
        def handler(args, /):
            args = list(args)
            return command(args, Context.fresh(args))

        if runtime.bind(name, handler) is False:
            logger.debug("runtime refused %r for command %r", name, command.name)
            continue

        if command.completer is not None:
            @rename("provider")
            def provider(args, /):
                args = list(args)
                return command.complete(args, Context.fresh(args))

            runtime.suggest(name, provider)
        logger.debug("bound %r to command %r", name, command.name)
    return command


def _tokenize(prompt):
    """
    Normalize a prompt (str or iterable of str) into a list of tokens.
    """
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = []
        for item in prompt:
            if not isinstance(item, str):
                raise TypeError("prompt must be a string or an iterable of strings")
            tokens.append(item)
        return tokens
    raise TypeError("prompt must be a string or an iterable of strings")


class Registry:
    """
    In-process runtime for top-level commands.

    Parameters
    - shell: bool
      When True, faults (unknown command, duplicate binding) are printed on the stderr
      console instead of raised.
    """

    def __init__(self, *, shell=False):
        self._handlers = {}
        self._providers = {}
        self.shell = bool(shell)

    @property
    def names(self):
        """Bound raw names, in registration order."""
        return tuple(self._handlers)

    def bind(self, name, handler, /):
        """
        Bind ``handler`` under the raw ``name``; returns False when the name was taken
        (only reachable in shell mode, where the fault is printed instead of raised).
        """
        name = identifier(name, "registry name")
        if not callable(handler):
            raise TypeError("registry handler must be callable")
        if name in self._handlers:
            trigger(DuplicateBindingError(
                f"command {name!r} is already bound",
                hint="give the command a distinct name or alias",
            ), shell=self.shell)
            return False
        self._handlers[name] = handler
        return True

    def suggest(self, name, provider, /):
        name = identifier(name, "registry name")
        if not callable(provider):
            raise TypeError("registry provider must be callable")
        self._providers[name] = provider

    def register(self, command, /):
        return register(command, self)

    @staticmethod
    def _match(bindings, name):
        try:
            return bindings[name]
        except KeyError:
            pass
        # Raw names are exact; fall back to a case-insensitive match.
        for bound, value in bindings.items():
            if bound.lower() == name.lower():
                return value
        return None

    def _lookup(self, name):
        if (handler := self._match(self._handlers, name)) is not None:
            return handler
        suggestions = difflib.get_close_matches(name, self._handlers.keys(), 5)
        try:
            hint = "did you mean %r?" % suggestions[0]
        except IndexError:
            hint = "available commands: %s" % (", ".join(self._handlers) or "none")
        trigger(UnknownCommandError(
            f"unknown command {name!r}",
            input=name,
            suggestions=suggestions,
            hint=hint,
        ), shell=self.shell)
        return None

    def invoke(self, prompt, /):
        """
        Execute a prompt: the first token selects the raw command, the rest are its args.

        Returns True when a handler ran.
        """
        tokens = _tokenize(prompt)
        if not tokens:
            return False
        if (handler := self._lookup(tokens[0])) is None:
            return False
        handler(tokens[1:])
        return True

    def complete(self, line, /):
        """
        Completion candidates for the token being typed at the end of ``line``.

        - while the first token is being typed: bound names starting with it;
        - afterwards: the provider bound to that name (same lookup rule as invoke())
          receives the remaining tokens, with "" as the last one when the line ends in
          whitespace.
        """
        if not isinstance(line, str):
            raise TypeError("complete() argument must be a string")
        try:
            tokens = shlex.split(line)
        except ValueError:
            # Unbalanced quote while typing; fall back to whitespace splitting.
            tokens = line.split()
        if not line or line[-1].isspace():
            tokens.append("")

        if len(tokens) < 2:
            return [name for name in self._handlers if name.startswith(tokens[0])]
        if (provider := self._match(self._providers, tokens[0])) is None:
            return []
        return list(provider(tokens[1:]))


__all__ = (
    "register",
    "Registry",
)
