from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class Color(Enum):
    """
    An enumeration of the supported foreground colors.  Each color's value
    equals its xterm number.
    """

    RED = 1
    GREEN = 2
    YELLOW = 3
    WHITE = 7
    LIGHT_YELLOW = 11

    def asfg(self) -> int:
        """
        Return the ANSI SGR parameter for setting the color as the foreground
        color
        """
        c = self.value
        return c + 30 if c < 8 else c + 82


@dataclass(frozen=True)
class Style:
    color: Color | None = None
    bold: bool = False

    def as_params(self) -> list[str]:
        params = []
        if self.color is not None:
            params.append(str(self.color.asfg()))
        if self.bold:
            params.append("1")
        return params


class Styler(Protocol):
    def __call__(self, s: str, style: Style) -> str: ...

    def escape(self, s: str) -> str: ...


class BashStyler:
    """Class for escaping & styling strings for use in Bash's PS1 variable"""

    def __call__(self, s: str, style: Style) -> str:
        r"""
        Return the string ``s`` escaped for use in a PS1 variable.  If
        ``style.color`` is non-`None`, the string will be wrapped in the proper
        escape sequences to display it as the given foreground color.  If
        ``style.bold`` is true, the string will be wrapped in the proper escape
        sequences to display it bold.  All escape sequences are wrapped in ``\[
        ... \]`` so that they may be used in a PS1 variable.

        :param str s: the string to stylize
        :param Style style: the color & weight to stylize the string with
        """
        s = self.escape(s)
        if params := style.as_params():
            s = rf"\[\e[{';'.join(params)}m\]{s}\[\e[m\]"
        return s

    def escape(self, s: str) -> str:
        """
        Escape characters in the string ``s`` that have special meaning in a
        PS1 variable
        """
        return s.replace("\\", r"\\")


class ANSIStyler:
    """Class for styling strings for display immediately in the terminal"""

    def __call__(self, s: str, style: Style) -> str:
        r"""
        Stylize the string ``s`` with ANSI escape sequences.  If
        ``style.color`` is non-`None`, the string will be stylized with the
        given foreground color.  If ``style.bold`` is true, the string will be
        stylized bold.

        :param str s: the string to stylize
        :param Style style: the color & weight to stylize the string with
        """
        if params := style.as_params():
            s = f"\x1B[{';'.join(params)}m{s}\x1B[m"
        return s

    def escape(self, s: str) -> str:
        return s


class ZshStyler:
    """Class for escaping & styling strings for use in zsh's PS1 variable"""

    def __call__(self, s: str, style: Style) -> str:
        """
        Return the string ``s`` escaped for use in a zsh PS1 variable.  If
        ``style.color`` is non-`None`, the string will be wrapped in the proper
        escape sequences to display it as the given foreground color.  If
        ``style.bold`` is true, the string will be wrapped in the proper escape
        sequences to display it bold.
        """
        s = self.escape(s)
        if style.bold:
            s = f"%B{s}%b"
        if style.color is not None:
            s = f"%F{{{style.color.value}}}{s}%f"
        return s

    def escape(self, s: str) -> str:
        return s.replace("%", "%%")


StyleClass = Enum(
    "StyleClass",
    [
        "CWD",
        "VCS_UNKNOWN",
        "VCS_CLEAN",
        "VCS_DIRTY",
        "VCS_CONFLICT",
    ],
)

Theme = dict[StyleClass, Style]

DARK_THEME = {
    StyleClass.CWD: Style(Color.LIGHT_YELLOW),
    StyleClass.VCS_UNKNOWN: Style(Color.WHITE, bold=True),
    StyleClass.VCS_CLEAN: Style(Color.GREEN, bold=True),
    StyleClass.VCS_DIRTY: Style(Color.YELLOW, bold=True),
    StyleClass.VCS_CONFLICT: Style(Color.RED, bold=True),
}

LIGHT_THEME = DARK_THEME | {
    StyleClass.CWD: Style(Color.YELLOW),
}

THEMES = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


@dataclass
class Painter:
    styler: Styler
    theme: Theme

    def __call__(self, s: str, klass: StyleClass) -> str:
        return self.styler(s, self.theme[klass])

    def plain(self, s: str) -> str:
        """Escape ``s`` for the output dialect without styling it"""
        return self.styler.escape(s)
