"""
Default line-output capability.

Lines emitted by compiled command trees may embed two-character colour tags: an
ampersand followed by one code character (``&a`` green, ``&b`` aqua, ``&c`` red, ...).
The command layer treats them as opaque text; this module is the renderer that turns
them into Rich styles.

Palette
- Codes 0-9 and a-f select one of the sixteen classic colours and clear formatting.
- ``&l`` bold, ``&m`` strike, ``&n`` underline, ``&o`` italic stack on the current colour.
- ``&r`` resets everything.
- Unknown codes are kept verbatim.

Customization
- Define a mapping named __palette__ in __main__ to override colour entries, e.g.
  ``__palette__ = {"a": "bold #22C55E"}``.
"""
import re

from rich.console import Console
from rich.text import Text

console = Console(highlight=False)

_PALETTE = {
    "0": "#000000",
    "1": "#0000AA",
    "2": "#00AA00",
    "3": "#00AAAA",
    "4": "#AA0000",
    "5": "#AA00AA",
    "6": "#FFAA00",
    "7": "#AAAAAA",
    "8": "#555555",
    "9": "#5555FF",
    "a": "#55FF55",
    "b": "#55FFFF",
    "c": "#FF5555",
    "d": "#FF55FF",
    "e": "#FFFF55",
    "f": "#FFFFFF",
}

# Formatting codes stack on the active colour instead of replacing it.
_FORMATS = {
    "l": "bold",
    "m": "strike",
    "n": "underline",
    "o": "italic",
}

_TAG = re.compile(r"&([0-9a-fk-or])", re.IGNORECASE)


def palette():
    """Return the effective colour palette (defaults merged with __main__.__palette__)."""
    return _PALETTE | getattr(__import__("__main__"), "__palette__", {})


def render(line, /):
    """
    Translate a tagged line into a Rich Text.

    Example
    - render("&aok &lnow") -> Text("ok now") with "ok " green and "now" bold green.
    """
    if not isinstance(line, str):
        raise TypeError("render() argument must be a string")

    colours = palette()
    text = Text()
    colour = ""
    formats = []
    index = 0
    for match in _TAG.finditer(line):
        text.append(line[index:match.start()], " ".join(filter(None, (colour, *formats))))
        index = match.end()
        code = match.group(1).lower()
        if code == "r":
            colour, formats = "", []
        elif code in _FORMATS:
            formats.append(_FORMATS[code])
        elif code in colours:
            colour, formats = colours[code], []
        # &k (obfuscated) has no terminal equivalent; it is dropped.
    text.append(line[index:], " ".join(filter(None, (colour, *formats))))
    return text


def strip(line, /):
    """Return the line with every colour/format tag removed."""
    return render(line).plain


def echo(line, /):
    """Print one tagged line on the module console."""
    console.print(render(line))


__all__ = (
    "console",
    "palette",
    "render",
    "strip",
    "echo",
)
