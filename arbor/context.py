"""
Per-invocation dispatch state.

A Context travels alongside the argument vector while a command tree resolves it:

- original_args: the full argument vector received by the top-level command.
- prev_commands: the path of commands traversed so far, root first, up to (but not
  including) the command currently resolving.

Contexts are values. descend() returns a new Context with one more command on the
path, so sibling branches (or a completion query running next to a dispatch) never
observe each other's path.
"""
from collections import namedtuple


class Context(namedtuple("Context", ("original_args", "prev_commands"))):
    __slots__ = ()

    def __new__(cls, original_args=(), prev_commands=()):
        return super().__new__(cls, tuple(original_args), tuple(prev_commands))

    @classmethod
    def fresh(cls, args, /):
        """Return the top-level context for one raw invocation of ``args``."""
        return cls(args, ())

    def descend(self, command, /):
        """Return a copy of this context with ``command`` appended to the path."""
        return type(self)(self.original_args, (*self.prev_commands, command))

    @property
    def route(self):
        """
        Slash-prefixed, space-joined names of the traversed commands (e.g. "/root sub").
        """
        return "/" + " ".join(command.name for command in self.prev_commands)


__all__ = (
    "Context",
)
