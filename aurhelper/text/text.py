"""Package name splitting, rune ordering and yes/no prompting."""

from __future__ import annotations

import gettext
import unicodedata
from typing import Iterable, TextIO

from aurhelper.text.color import bold
from aurhelper.text.logger import operation_info

_DOMAIN = "aurhelper"
_Y_DEFAULT = "y"
_N_DEFAULT = "n"


def _tr(message: str) -> str:
    return gettext.dgettext(_DOMAIN, message)


def split_db_from_name(pkg: str) -> tuple[str, str]:
    """Split ``db/package`` into ``(db, package)``; db is empty when absent."""
    db, sep, name = pkg.partition("/")
    if sep:
        return db, name
    return "", pkg


def _lower(char: str) -> str:
    lowered = char.lower()
    return lowered if len(lowered) == 1 else char


def less_runes(i_runes: Iterable[str] | None, j_runes: Iterable[str] | None) -> bool:
    """Return True if the first sequence sorts before the second, case-insensitively first."""
    left = list(i_runes or ())
    right = list(j_runes or ())

    for a, b in zip(left, right):
        lower_a, lower_b = _lower(a), _lower(b)
        if lower_a != lower_b:
            return lower_a < lower_b
        if a != b:
            return a < b

    return len(left) < len(right)


def _initial_if_latin(word: str, fallback: str) -> str:
    if word and unicodedata.name(word[0], "").startswith("LATIN"):
        return word[0]
    return fallback


def continue_task(stream: TextIO, message: str, preset: bool, no_confirm: bool) -> bool:
    """Ask a yes/no question on ``stream``; without a usable answer return ``preset``."""
    if no_confirm:
        return preset

    yes = _tr("yes")
    no = _tr("no")
    n = _initial_if_latin(no, _N_DEFAULT)
    y = _initial_if_latin(yes, _Y_DEFAULT)

    if preset:
        postfix = f" [{y.upper()}/{n}] "
    else:
        postfix = f" [{y}/{n.upper()}] "

    operation_info(bold(message), bold(postfix))

    tokens = stream.readline().split()
    if len(tokens) != 1:
        return preset

    response = tokens[0].casefold()
    return (
        response == yes.casefold()
        or response == y.casefold()
        or (_Y_DEFAULT.casefold() != n.casefold() and response == _Y_DEFAULT)
    )