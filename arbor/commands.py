"""
Arbor command layer: declare, compile, dispatch and complete command trees.

What this module provides
- Command: an immutable, dispatchable node. Calling it routes an argument vector;
  complete() turns a partial argument vector into next-token suggestions.
  • Leaf commands wrap a plain callable (the handler) and an optional completer.
  • Compiled hosts own an ordered tuple of children and an optional default handler.
- CommandHost: the author-facing declaration of a node with subcommands.
- build(host, config): compile a CommandHost (recursively) into one Command.
- HelpConfig / configure(): presentation settings for the generated help and warnings.
- resolve(), names(), filter_matching_start(), options(): lookup and completion helpers.

Core ideas
- Names and aliases match case-insensitively; candidate filtering is a plain,
  case-sensitive prefix match on what the user typed.
- Each level of a compiled tree consumes exactly one token on a match and hands the
  rest to the matched child, with the context extended by the current node.
- Nothing on the dispatch path raises for bad input: an unknown first token falls back
  to the default handler, then to the generated help listing, then to a warning line.

Quick start
    from arbor import CommandHost, command, build, register, Registry

    root = CommandHost("root")

    @root.command(aliases=("p",))
    def ping(args, context):
        \"\"\"Answer with pong.\"\"\"
        print("pong")

    registry = Registry()
    registry.register(build(root))
    registry.invoke("root p")          # pong
    registry.complete("root pi")       # ["ping"]

Design notes
- A CommandHost compiles once. The generated help command is added to the compiled
  children, never to the declaration itself.
- Colour tags (&a, &b, &c, ...) inside emitted lines are opaque here; see arbor.console.
"""
import functools
import inspect
import logging
import operator
import re
from collections import namedtuple
from collections.abc import Iterable, Mapping

from .console import echo
from .context import Context
from .faults import AlreadyCompiledError
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass for the declaration and command types.

    Responsibilities
    - Expose every field listed in __introspectable__ as a read-only property backed by
      "_{name}" (see mirror()).
    - Provide stable, readable __repr__/__rich_repr__ for diagnostics and rich.pretty.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens),
      e.g. CommandHost -> "command-host", and prefixes validation messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return "{}({})".format(
                type(self).__typename__,
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__())),
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


Description = namedtuple("Description", ("short", "full"), defaults=(None, None))
Description.__doc__ = """
Short and full description of a command; either part may be None.

The short form is shown in listings, the full form by "help <command>" (falling back
to the short form).
"""


def _describe(cls, source, short, full):
    """
    Resolve the description pair from explicit values or the handler's docstring.

    - full defaults to inspect.getdoc(source); short defaults to its first line.
    - explicit values must be non-empty strings (trimmed).
    """
    doc = inspect.getdoc(source) if source is not Unset else None
    resolved = []
    for name, object, fallback in (
            ("short", short, doc.splitlines()[0] if doc else None),
            ("full", full, doc),
    ):
        if object is Unset:
            resolved.append(fallback)
            continue
        if not isinstance(object, str):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        if not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        resolved.append(object)
    return Description(*resolved)


def _aliases(cls, aliases):
    """
    Validate aliases into a tuple of identifiers, order preserved.
    """
    if isinstance(aliases, str) or not isinstance(aliases, Iterable):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
    return tuple(identifier(alias, f"{cls.__typename__} alias") for alias in aliases)


class Command(metaclass=CommandType):
    """
    Immutable node of a command tree.

    Interface
    - command(args, context=Unset): dispatch; context defaults to Context.fresh(args).
    - command.complete(args, context=Unset): completion candidates for the next token
      ([] when the command has no completer).
    - name, aliases, description, callback, completer: read-only metadata.
    - children, default: the subtree owned by a compiled host (empty/None for leaves).

    Constructors
    - Command(callback, completer, name, aliases, short, full): a leaf.
    - build(host, config): a compiled host (same interface, routing callbacks).
    """
    __introspectable__ = (
        "name",
        "aliases",
        "description",
        "callback",
        "completer",
        "children",
        "default",
    )

    __displayable__ = (
        "name",
        "aliases",
        "description",
        "children",
    )

    def __new__(
            cls,
            callback,
            /,
            completer=Unset,
            name=Unset,
            aliases=(),
            short=Unset,
            full=Unset,
    ):
        """
        Construct a leaf command.

        Parameters
        - callback: Callable[[list[str], Context], Any]
          Handler invoked with the remaining arguments and the current context.
        - completer: Callable[[list[str], Context], Iterable[str]] | None | Unset
          Produces candidates for the token being typed; omitted means no completion.
        - name: str | Unset
          Defaults to callback.__name__.
        - aliases: Iterable[str]
          Additional case-insensitive names.
        - short, full: str | Unset
          Description; defaults come from the callback's docstring.

        Raises
        - TypeError/ValueError on non-callable callback/completer or invalid names.
        """
        if not callable(callback):
            raise TypeError(f"{cls.__typename__} 'callback' must be callable")
        if (completer := coalesce(completer)) is not None and not callable(completer):
            raise TypeError(f"{cls.__typename__} 'completer' must be callable")

        self = super().__new__(cls)
        self._callback = callback
        self._completer = completer
        self._name = identifier(
            coalesce(name, getattr(callback, "__name__", Unset)), f"{cls.__typename__} 'name'"
        )
        self._aliases = _aliases(cls, aliases)
        self._description = _describe(cls, callback, short, full)
        self._children = ()
        self._default = None
        return self

    @property
    def names(self):
        """Every invocable token for this command: name first, then aliases."""
        return (self.name, *self.aliases)

    def matches(self, token, /):
        """Return True when ``token`` equals the name or an alias, ignoring case."""
        token = token.lower()
        return any(token == name.lower() for name in self.names)

    def __call__(self, args, context=Unset, /):
        args = list(args)
        return self._callback(args, coalesce(context, Context.fresh(args)))

    def complete(self, args, context=Unset, /):
        if self._completer is None:
            return []
        args = list(args)
        return list(self._completer(args, coalesce(context, Context.fresh(args))))


def command(source=Unset, /, *args, **kwargs):
    """
    Create a leaf Command or return a decorator to build it later.

    Invocation modes
    - Direct: cmd = command(func, completer, name="x", aliases=("y",))
    - Decorator:
        @command(aliases=("p",))
        def ping(args, context): ...

    Parameters
    - source: Unset | Callable
      When Unset, a decorator is returned. Otherwise a Command is created.
    - *args, **kwargs: forwarded to Command.__new__.
    """
    @rename("command")
    def wrapper(source, /):
        if isinstance(source, Command):
            raise TypeError("@command() cannot wrap an existing command")
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


def resolve(token, commands, /):
    """
    Return the first command whose name or alias equals ``token`` (case-insensitive).

    List order wins when several commands could match; None when nothing does.
    """
    for command in commands:
        if command.matches(token):
            return command
    return None


def names(commands, /):
    """
    Flatten commands into every invocable token: each name followed by its aliases.

    Order and duplicates are preserved.
    """
    return [name for command in commands for name in command.names]


def filter_matching_start(match, samples, /):
    """
    Keep the samples that start with ``match`` (case-sensitive); None matches everything.
    """
    match = match or ""
    return [sample for sample in samples if sample.startswith(match)]


def options(*choices):
    """
    Build a completer offering a fixed list of choices for the first argument.

    Example
    - command(set_mode, options("fast", "safe"))
    """
    choices = tuple(choices)
    if not all(isinstance(choice, str) for choice in choices):
        raise TypeError("options() arguments must be strings")

    @rename("options")
    def completer(args, context, /):
        return filter_matching_start(args[0] if args else "", choices)

    return completer


HelpConfig = namedtuple("HelpConfig", (
    "inject_help",
    "color_main",
    "color_accent",
    "color_warn",
    "output",
), defaults=(
    True,
    "&a",
    "&b",
    "&c",
    echo,
))
HelpConfig.__doc__ = """
Presentation settings for compiled command trees.

Fields
- inject_help: add a generated "help" subcommand to every compiled host.
- color_main, color_accent, color_warn: colour tags prefixed to emitted text.
- output: line-output capability, called once per emitted line.
"""


def configure(config=Unset, /, **overrides):
    """
    Merge user configuration over the defaults and return the effective HelpConfig.

    Accepts Unset, a HelpConfig, or a mapping of field names; keyword overrides win
    over both. Unknown keys raise TypeError.
    """
    if config is Unset:
        config = {}
    elif isinstance(config, HelpConfig):
        config = config._asdict()
    elif isinstance(config, Mapping):
        config = dict(config)
    else:
        raise TypeError("configure() argument must be a help config or a mapping")

    config |= overrides
    if unknown := sorted(config.keys() - set(HelpConfig._fields)):
        raise TypeError(f"configure() got unexpected option(s) {', '.join(map(repr, unknown))}")

    effective = HelpConfig()._replace(**config)
    if not callable(effective.output):
        raise TypeError("configure() 'output' must be callable")
    for name in ("color_main", "color_accent", "color_warn"):
        if not isinstance(getattr(effective, name), str):
            raise TypeError(f"configure() {name!r} must be a string")
    return effective


class CommandHost(metaclass=CommandType):
    """
    Declaration of a command with subcommands, compiled once by build().

    Parameters
    - name: str
    - subcommands: Iterable[Command | CommandHost]
      Ordered; the order is the display order in help and the completion order.
    - default: Command | Callable | Unset
      Handler for input whose first token names no subcommand. It receives the
      unshifted arguments. A plain callable is wrapped into a leaf Command.
    - aliases: Iterable[str]
    - short, full: str | Unset

    Declaring
    - host.add(child) appends a Command or a nested CommandHost.
    - @host.command(...) declares a leaf subcommand from a function.
    - host.host(name, ...) declares and returns a nested CommandHost.

    Once compiled, the declaration is sealed: compiling it again or adding to it raises
    AlreadyCompiledError.
    """
    __introspectable__ = (
        "name",
        "aliases",
        "description",
        "default",
        "compiled",
    )

    __displayable__ = (
        "name",
        "aliases",
        "description",
        "default",
        "subcommands",
        "compiled",
    )

    def __new__(
            cls,
            name,
            /,
            subcommands=(),
            default=Unset,
            aliases=(),
            short=Unset,
            full=Unset,
    ):
        if isinstance(subcommands, str) or not isinstance(subcommands, Iterable):
            raise TypeError(f"{cls.__typename__} 'subcommands' must be an iterable of commands")

        self = super().__new__(cls)
        self._name = identifier(name, f"{cls.__typename__} 'name'")
        self._aliases = _aliases(cls, aliases)
        self._description = _describe(cls, Unset, short, full)
        self._default = None
        self._subcommands = []
        self._compiled = False

        if (default := coalesce(default)) is not None:
            if isinstance(default, CommandHost):
                raise TypeError(f"{cls.__typename__} 'default' must be a command or a callable")
            if not isinstance(default, Command):
                if not callable(default):
                    raise TypeError(f"{cls.__typename__} 'default' must be a command or a callable")
                default = Command(default, name=coalesce(getattr(default, "__name__", Unset), "default"))
            self._default = default

        for subcommand in subcommands:
            self.add(subcommand)
        return self

    @property
    def subcommands(self):
        return tuple(self._subcommands)

    def add(self, subcommand, /):
        """
        Append a subcommand (Command or CommandHost) and return it.
        """
        if self._compiled:
            raise AlreadyCompiledError(
                f"command host {self.name!r} already compiled",
                hint="declare every subcommand before calling build()",
            )
        if not isinstance(subcommand, Command | CommandHost):
            raise TypeError(f"{type(self).__typename__} subcommand must be a command or a command host")
        if subcommand is self:
            raise ValueError(f"{type(self).__typename__} cannot contain itself")
        self._subcommands.append(subcommand)
        return subcommand

    def command(self, source=Unset, /, *args, **kwargs):
        """
        Declare a leaf subcommand; same modes as the module-level command().
        """
        @rename("command")
        def wrapper(source, /):
            return self.add(command(source, *args, **kwargs))

        return wrapper(source) if source is not Unset else wrapper

    def host(self, name, /, *args, **kwargs):
        """
        Declare a nested CommandHost under this one and return it.
        """
        return self.add(CommandHost(name, *args, **kwargs))

    def build(self, config=Unset, /, **overrides):
        return build(self, configure(config, **overrides))

    def _seal(self):
        if self._compiled:
            raise AlreadyCompiledError(
                f"command host {self.name!r} already compiled",
                hint="compile each command host once and reuse the resulting command",
            )
        self._compiled = True

    def _unseal(self):
        self._compiled = False
        for subcommand in self._subcommands:
            if isinstance(subcommand, CommandHost):
                subcommand._unseal()


def _helper(children, config):
    """
    Build the generated "help" subcommand over the (final) children list.
    """
    main, accent, output = config.color_main, config.color_accent, config.output

    @rename("help")
    def callback(args, context, /):
        route = context.route
        if args and args[0]:
            if (target := resolve(args[0], children)) is None:
                output(f"{main}I can't help you with a command I don't recognize!")
            else:
                output(f"{accent}{route} {target.name} {main}- "
                       f"{target.description.full or target.description.short or 'No info'}")
            return
        output(f"{main}--- {accent}{route} commands {main}---")
        for child in children:
            output(f"{accent}{route} {child.name} {main}- {child.description.short or 'No info'}")

    @rename("complete")
    def completer(args, context, /):
        return filter_matching_start(args[0] if args else "", names(children))

    return Command(
        callback,
        completer,
        name="help",
        short="this",
        full="Get information about a command or a general list of commands.",
    )


def build(host, config=Unset, /):
    """
    Compile a CommandHost (and every nested host) into one Command.

    Dispatch of the compiled command, for args and an incoming context:
    1. extend the context with the compiled command;
    2. resolve the lower-cased first token (or "") against the children;
    3. matched: call the child with the remaining args;
    4. otherwise, a default handler receives the unshifted args;
    5. otherwise, the "help" child lists the commands; without one, a warning line
       names every child.

    Completion of the compiled command:
    - fewer than two args: the default handler's candidates followed by every child
      name and alias, filtered by the partial first token;
    - otherwise: delegate to the child named by the first token ([] when unknown).

    Raises
    - TypeError when host is not a CommandHost.
    - AlreadyCompiledError when host (or a nested host) was compiled before. A failed
      build leaves host and the nested hosts it had compiled unsealed.
    """
    if not isinstance(host, CommandHost):
        raise TypeError("build() argument must be a command host")
    config = configure(config)
    host._seal()

    children = []
    try:
        for child in host.subcommands:
            children.append(child if isinstance(child, Command) else build(child, config))
    except Exception:
        # Nested hosts compiled before the failure are released along with this one.
        for child in host.subcommands[:len(children)]:
            if isinstance(child, CommandHost):
                child._unseal()
        host._compiled = False
        logger.debug("compiling %r failed; declaration released", host.name)
        raise
    if config.inject_help:
        if resolve("help", children) is None:
            children.append(_helper(children, config))
        else:
            logger.debug("host %r declares its own help; skipping injection", host.name)
    default = host.default
    main, accent, warn, output = config.color_main, config.color_accent, config.color_warn, config.output

    @rename("dispatch")
    def dispatch(args, context, /):
        context = context.descend(compiled)
        first = args[0].lower() if args else ""
        if (target := resolve(first, children)) is not None:
            logger.debug("%s: %r routed to %r", context.route, first, target.name)
            return target(args[1:], context)
        if default is not None:
            logger.debug("%s: %r handled by default %r", context.route, first, default.name)
            return default(args, context)
        if (helper := resolve("help", children)) is not None:
            logger.debug("%s: %r falls back to help", context.route, first)
            return helper([], context)
        logger.debug("%s: %r matches nothing", context.route, first)
        output(f"{warn}Invalid subcommand, {main}commands are: {accent}"
               + f"{main}, {accent}".join(child.name for child in children))

    @rename("complete")
    def complete(args, context, /):
        context = context.descend(compiled)
        if len(args) < 2:
            pool = default.complete(args, context) if default is not None else []
            return filter_matching_start(args[0] if args else "", [*pool, *names(children)])
        if (target := resolve(args[0], children)) is None:
            return []
        return target.complete(args[1:], context)

    compiled = Command(dispatch, complete, name=host.name, aliases=host.aliases)
    compiled._description = host.description
    compiled._children = tuple(children)
    compiled._default = default
    return compiled


def builder(config=Unset, /, **overrides):
    """
    Return a build() bound to one effective configuration.

    Example
    - quiet = builder(inject_help=False); cmd = quiet(host)
    """
    config = configure(config, **overrides)

    @rename("build")
    def wrapper(host, /):
        return build(host, config)

    return wrapper


__all__ = (
    # Public API surface for consumers of arbor.commands.
    "Command",
    "CommandHost",
    "Description",
    "HelpConfig",
    "command",
    "build",
    "builder",
    "configure",
    "resolve",
    "names",
    "filter_matching_start",
    "options",
)

# Remove the internal metaclass from the module namespace; it is not part of the API.
del CommandType
