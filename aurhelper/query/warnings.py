"""Collection and reporting of AUR package warnings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Protocol, Sequence, Set, Tuple

from aurhelper.query.builder import AURPackage
from aurhelper.query.version_diff import get_version_diff, is_devel_package, vercmp
from aurhelper.text.color import cyan
from aurhelper.text.logger import GLOBAL_LOGGER, Logger


class _InstalledPackage(Protocol):
    name: str
    base: str
    version: str

    def should_ignore(self) -> bool: ...


def _split_debug(names: Sequence[str]) -> Tuple[List[str], List[str]]:
    normal: List[str] = []
    debug: List[str] = []
    for name in names:
        (debug if name.endswith("-debug") else normal).append(name)
    return normal, debug


def _format_names(names: Sequence[str]) -> str:
    return " " + cyan("  ".join(names))


@dataclass
class AURWarnings:
    """Orphaned, out-of-date, missing and locally newer AUR packages."""

    orphans: List[str] = field(default_factory=list)
    out_of_date: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    local_newer: List[str] = field(default_factory=list)
    ignore: Set[str] = field(default_factory=set)
    log: Logger = field(default_factory=lambda: GLOBAL_LOGGER, repr=False)

    def add_to_warnings(
        self, remote: Mapping[str, _InstalledPackage], aur_pkg: AURPackage
    ) -> None:
        """Record the warnings that ``aur_pkg`` raises for its installed counterpart."""
        name = aur_pkg.name
        pkg = remote.get(name)
        if pkg is None:
            return

        ignored = pkg.should_ignore()

        if not aur_pkg.maintainer and not ignored:
            self.orphans.append(name)

        if aur_pkg.out_of_date != 0 and not ignored:
            self.out_of_date.append(name)

        if not ignored and not is_devel_package(pkg) and vercmp(pkg.version, aur_pkg.version) > 0:
            left, right = get_version_diff(pkg.version, aur_pkg.version)
            self.local_newer.append(f"{cyan(name)}: local ({left}) is newer than AUR ({right})")

    def calculate_missing(
        self,
        remote_names: Sequence[str],
        remote: Mapping[str, _InstalledPackage],
        aur_data: Mapping[str, AURPackage],
    ) -> None:
        """Record installed foreign packages the AUR does not know about."""
        for name in remote_names:
            if name not in aur_data and not remote[name].should_ignore():
                self.missing.append(name)

    def print(self) -> None:
        """Write every collected warning through the logger."""
        normal, debug = _split_debug(self.missing)

        if normal:
            self.log.warnln("Packages not in AUR:", _format_names(normal))
        if debug:
            self.log.warnln("Missing AUR Debug Packages:", _format_names(debug))
        if self.orphans:
            self.log.warnln("Orphan (unmaintained) AUR Packages:", _format_names(self.orphans))
        if self.out_of_date:
            self.log.warnln("Flagged Out Of Date AUR Packages:", _format_names(self.out_of_date))
        for message in self.local_newer:
            self.log.warnln(message)