"""Target filtering by source mode and query errors."""

from __future__ import annotations

from typing import Iterable, List

from aurhelper.settings.parser import TargetMode
from aurhelper.text.color import cyan
from aurhelper.text.logger import warnln
from aurhelper.text.text import split_db_from_name


class AURSearchError(Exception):
    """Raised when the AUR could not be searched."""

    def __init__(self, inner: BaseException) -> None:
        self.inner = inner
        super().__init__(f"Error during AUR search: {inner}\n")


class NoQueryError(Exception):
    """Raised when results are requested before a query ran."""

    def __init__(self) -> None:
        super().__init__("no query was executed")


def remove_invalid_targets(targets: Iterable[str], mode: TargetMode) -> List[str]:
    """Drop targets whose database prefix the target mode excludes, warning for each."""
    kept: List[str] = []
    for target in targets:
        db_name, _ = split_db_from_name(target)

        if db_name == "aur" and not mode.at_least_aur():
            warnln(f"{cyan(target)}: can't use target with option --repo -- skipping")
            continue

        if db_name not in ("aur", "") and not mode.at_least_repo():
            warnln(f"{cyan(target)}: can't use target with option --aur -- skipping")
            continue

        kept.append(target)
    return kept