"""Leveled console logger and helper output functions."""

from __future__ import annotations

import os
import sys
import unicodedata
from typing import Any, TextIO

from aurhelper.text.color import BOLD_CODE, RESET_CODE, bold, cyan, green, red, yellow

ARROW = "==>"
SMALL_ARROW = " ->"
OP_SYMBOL = "::"

_MAX_LINE = 4096
_KEY_LENGTH = 32
_DELIM_COUNT = 2
_CJK_PREFIXES = (
    "CJK UNIFIED",
    "CJK COMPATIBILITY IDEOGRAPH",
    "CJK RADICAL",
    "KANGXI RADICAL",
    "IDEOGRAPHIC",
    "HIRAGANA",
    "KATAKANA",
    "HALFWIDTH KATAKANA",
    "HANGUL",
    "HALFWIDTH HANGUL",
)


class InputOverflowError(Exception):
    """Raised when a line of user input is too long."""

    def __init__(self) -> None:
        super().__init__("input too long")


def _go_str(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_go_str(item) for item in value) + "]"
    return str(value)


def _sprint(*args: Any) -> str:
    """Concatenate operands, spacing only between two non-string operands."""
    parts: list[str] = []
    previous: Any = None
    for position, arg in enumerate(args):
        if position and not isinstance(previous, str) and not isinstance(arg, str):
            parts.append(" ")
        parts.append(_go_str(arg))
        previous = arg
    return "".join(parts)


def _sprintln(*args: Any) -> str:
    return " ".join(_go_str(arg) for arg in args) + "\n"


class Logger:
    """Writes informational, warning, error and debug messages to streams."""

    def __init__(
        self,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        stdin: TextIO | None = None,
        debug: bool = False,
        name: str = "global",
    ) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.stdin = stdin
        self.debug = debug
        self.name = name

    @property
    def _out(self) -> TextIO:
        return self.stdout if self.stdout is not None else sys.stdout

    @property
    def _err(self) -> TextIO:
        return self.stderr if self.stderr is not None else sys.stderr

    @property
    def _in(self) -> TextIO:
        return self.stdin if self.stdin is not None else sys.stdin

    def child(self, name: str) -> "Logger":
        """Return a logger sharing this one's streams and debug flag."""
        return Logger(self.stdout, self.stderr, self.stdin, self.debug, name)

    def debugln(self, *args: Any) -> None:
        if not self.debug:
            return
        self.println(bold(yellow(f"[DEBUG:{self.name}]")), *args)

    def operation_infoln(self, *args: Any) -> None:
        self.println(self.sprint_operation_info(*args))

    def operation_info(self, *args: Any) -> None:
        self.print(self.sprint_operation_info(*args))

    def sprint_operation_info(self, *args: Any) -> str:
        return _sprint(bold(cyan(OP_SYMBOL + " ")), BOLD_CODE, *args) + RESET_CODE

    def info(self, *args: Any) -> None:
        self.print(bold(green(ARROW + " ")), *args)

    def infoln(self, *args: Any) -> None:
        self.println(bold(green(ARROW)), *args)

    def warn(self, *args: Any) -> None:
        self.print(self.sprint_warn(*args))

    def warnln(self, *args: Any) -> None:
        self.println(self.sprint_warn(*args))

    def sprint_warn(self, *args: Any) -> str:
        return _sprint(bold(yellow(SMALL_ARROW + " ")), *args)

    def error(self, *args: Any) -> None:
        self._err.write(self.sprint_error(*args))

    def errorln(self, *args: Any) -> None:
        self._err.write(_sprintln(self.sprint_error(*args)))

    def sprint_error(self, *args: Any) -> str:
        return _sprint(bold(red(SMALL_ARROW + " ")), *args)

    def printf(self, fmt: str, *args: Any) -> None:
        """Write a printf-style formatted string to standard output."""
        self._out.write(fmt % args if args else fmt)

    def println(self, *args: Any) -> None:
        self._out.write(_sprintln(*args))

    def print(self, *args: Any) -> None:
        self._out.write(_sprint(*args))

    def get_input(self, default_value: str, no_confirm: bool) -> str:
        """Prompt for one line of input, or return the default without asking.

        Raises EOFError when no input is available and InputOverflowError
        when the line is too long.
        """
        self.info()

        if default_value or no_confirm:
            self.println(default_value)
            return default_value

        line = self._in.readline()
        if line == "":
            raise EOFError("no input available")

        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]

        if len(line.encode("utf-8")) >= _MAX_LINE:
            raise InputOverflowError()

        return line


GLOBAL_LOGGER = Logger(name="global")


def debugln(*args: Any) -> None:
    GLOBAL_LOGGER.debugln(*args)


def operation_infoln(*args: Any) -> None:
    GLOBAL_LOGGER.operation_infoln(*args)


def operation_info(*args: Any) -> None:
    GLOBAL_LOGGER.operation_info(*args)


def info(*args: Any) -> None:
    GLOBAL_LOGGER.info(*args)


def infoln(*args: Any) -> None:
    GLOBAL_LOGGER.infoln(*args)


def warn(*args: Any) -> None:
    GLOBAL_LOGGER.warn(*args)


def warnln(*args: Any) -> None:
    GLOBAL_LOGGER.warnln(*args)


def error(*args: Any) -> None:
    GLOBAL_LOGGER.error(*args)


def errorln(*args: Any) -> None:
    GLOBAL_LOGGER.errorln(*args)


_column_cache = {"count": -1}


def _column_count() -> int:
    cached = _column_cache["count"]
    if cached > 0:
        return cached

    try:
        count = int(os.environ.get("COLUMNS", ""))
    except ValueError:
        pass
    else:
        _column_cache["count"] = count
        return count

    try:
        count = os.get_terminal_size(sys.stdout.fileno()).columns
    except (OSError, ValueError, AttributeError):
        return 80

    _column_cache["count"] = count
    return count


def _is_cjk(char: str) -> bool:
    if char == "ー":
        return True
    return unicodedata.name(char, "").startswith(_CJK_PREFIXES)


def print_info_value(key: str, *values: str) -> None:
    """Print ``key: values`` with the key padded and values wrapped to the terminal."""
    special_words = sum(1 for char in key if _is_cjk(char))
    width = abs(special_words - _KEY_LENGTH + _DELIM_COUNT)
    line = bold(f"{key:<{width}}: ")

    if not values or (len(values) == 1 and values[0] == ""):
        sys.stdout.write(f"{line}None\n")
        return

    max_cols = _column_count()
    cols = _KEY_LENGTH + len(values[0])
    line += values[0]

    for value in values[1:]:
        if max_cols > _KEY_LENGTH and cols + len(value) + _DELIM_COUNT >= max_cols:
            cols = _KEY_LENGTH
            line += "\n" + " " * _KEY_LENGTH
        elif cols != _KEY_LENGTH:
            line += " " * _DELIM_COUNT
            cols += _DELIM_COUNT

        line += value
        cols += len(value)

    sys.stdout.write(line + "\n")