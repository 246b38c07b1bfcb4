import sys

from rich.pretty import pprint

from arbor import *

tool = CommandHost("tool", aliases=("t",), short="demo command tree")


@tool.command(aliases=("p",))
def ping(args, context):
    """Answer with pong."""
    print("pong", *args)


mode = tool.host("mode", short="inspect or change the mode")


@mode.command(completer=options("fast", "safe"), name="set")
def change(args, context):
    """Change the mode.

    Accepts one of: fast, safe.
    """
    print("mode set to", args[0] if args else "nothing")


registry = Registry(shell=True)
registry.register(tool.build())


if __name__ == '__main__':
    pprint(registry.names)
    if len(sys.argv) > 1 and sys.argv[1] == "--complete":
        pprint(registry.complete(" ".join(sys.argv[2:])))
    else:
        registry.invoke(sys.argv[1:] or ["tool"])
