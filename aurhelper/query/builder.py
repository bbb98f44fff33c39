"""Searching the AUR and the sync databases and presenting ranked results."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Collection, Dict, Iterable, List, Optional, Protocol, Sequence

from aurhelper.query.filter import AURSearchError, remove_invalid_targets
from aurhelper.settings.parser import TargetMode
from aurhelper.text.color import (
    bold,
    color_hash,
    cyan,
    format_time,
    green,
    human,
    magenta,
    red,
)
from aurhelper.text.logger import GLOBAL_LOGGER, Logger
from aurhelper.text.text import less_runes

SOURCE_AUR = "aur"
MIN_VOTES = 30

BY_NAME = "name"
BY_NAME_DESC = "name-desc"
BY_NONE = ""

_SEARCH_FIELDS = frozenset(
    {
        "name",
        "maintainer",
        "submitter",
        "depends",
        "makedepends",
        "optdepends",
        "checkdepends",
        "provides",
        "conflicts",
        "replaces",
        "groups",
        "keywords",
        "comaintainers",
    }
)

_SOURCE_WEIGHTS = {
    SOURCE_AUR: 0.0,
    "core": 40.0,
    "extra": 30.0,
    "community": 20.0,
    "multilib": 10.0,
}


class SearchVerbosity(IntEnum):
    """How search results are printed."""

    NUMBER_MENU = 0
    DETAILED = 1
    MINIMAL = 2


@dataclass
class AURPackage:
    """A package as reported by the AUR."""

    name: str
    version: str = ""
    description: str = ""
    maintainer: str = ""
    num_votes: int = 0
    popularity: float = 0.0
    out_of_date: int = 0
    package_base: str = ""
    package_base_id: int = 0
    id: int = 0
    first_submitted: int = 0
    last_modified: int = 0
    url: str = ""
    url_path: str = ""
    provides: list[str] = field(default_factory=list)


class _AURClient(Protocol):
    def get(self, needles: List[str], by: str, contains: bool) -> Iterable[AURPackage]: ...


class _DBExecutor(Protocol):
    def sync_packages(self, *names: str) -> Iterable[Any]: ...

    def local_package(self, name: str) -> Any: ...

    def package_groups(self, pkg: Any) -> Sequence[str]: ...


class _AURQueryError(Exception):
    """Every search word failed against the AUR."""

    def __init__(self, errors: List[BaseException]) -> None:
        self.errors = errors
        count = len(errors)
        noun = "error" if count == 1 else "errors"
        points = "\n\t".join(f"* {error}" for error in errors)
        super().__init__(f"{count} {noun} occurred:\n\t{points}\n\n")


@dataclass
class _Result:
    source: str
    name: str
    description: str
    votes: int
    provides: List[str]


def _lower(text: str) -> str:
    out = []
    for char in text:
        low = char.lower()
        out.append(low if len(low) == 1 else char)
    return "".join(out)


def hamming_similarity(a: str, b: str) -> float:
    """Case-insensitive Hamming similarity in [0, 1]; unequal lengths count as mismatches."""
    left, right = _lower(a), _lower(b)
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    distance = abs(len(left) - len(right))
    distance += sum(1 for x, y in zip(left, right) if x != y)
    return 1 - distance / longest


def _fnv32a(data: bytes) -> int:
    value = 0x811C9DC5
    for byte in data:
        value ^= byte
        value = (value * 0x01000193) & 0xFFFFFFFF
    return value


class _Ranker:
    """Orders results by name or by a similarity/popularity metric."""

    def __init__(self, search: str, bottom_up: bool, separate_sources: bool, sort_by: str) -> None:
        self.search = search
        self.bottom_up = bottom_up
        self.separate_sources = separate_sources
        self.sort_by = sort_by
        self._distance_cache: Dict[str, float] = {}
        self._source_cache: Dict[str, float] = {}

    def metric(self, item: _Result) -> float:
        cached = self._distance_cache.get(item.name)
        if cached is not None:
            return cached

        if item.name.casefold() == self.search.casefold():
            return 1.0

        sim = hamming_similarity(item.name, self.search)
        for provided in item.provides:
            sim = max(sim, hamming_similarity(provided, self.search) * 0.80)

        sim_desc = hamming_similarity(item.description, self.search)

        # sync sources are slightly overweighted by always having full popularity
        popularity = 1.0
        if item.source == SOURCE_AUR:
            popularity = 1 - (MIN_VOTES / (MIN_VOTES + float(item.votes)))

        sim = sim * 0.5 + sim_desc * 0.2 + popularity * 0.3
        self._distance_cache[item.name] = sim
        return sim

    def _source_score(self, source: str, score: float) -> float:
        if not self.separate_sources:
            return 0.0
        if score == 1.0:
            return 50.0
        if source in _SOURCE_WEIGHTS:
            return _SOURCE_WEIGHTS[source]
        cached = self._source_cache.get(source)
        if cached is not None:
            return cached
        value = float(_fnv32a(source.encode("utf-8")) % 9 + 2)
        self._source_cache[source] = value
        return value

    def score(self, item: _Result) -> float:
        value = self.metric(item)
        return self._source_score(item.source, value) + value

    def less(self, a: _Result, b: _Result) -> bool:
        if self.sort_by == "name":
            result = not less_runes(a.name, b.name)
            if self.separate_sources and a.source != b.source:
                result = a.source > b.source
        else:
            result = self.score(a) > self.score(b)
        return not result if self.bottom_up else result

    def sort(self, items: List[_Result]) -> List[_Result]:
        ranker = self

        class _Key:
            __slots__ = ("item",)

            def __init__(self, item: _Result) -> None:
                self.item = item

            def __lt__(self, other: "_Key") -> bool:
                return ranker.less(self.item, other.item)

        return sorted(items, key=_Key)


def get_search_by(value: str) -> str:
    """Map a ``--searchby`` value to an AUR search field, defaulting to name-desc."""
    return value if value in _SEARCH_FIELDS else BY_NAME_DESC


def query_aur(client: _AURClient, pkgs: Sequence[str], search_by: str) -> List[AURPackage]:
    """Search the AUR word by word and return the results of the first word that succeeds.

    Raises an exception listing every failure when all words fail.
    """
    by = get_search_by(search_by)
    errors: List[BaseException] = []
    for word in pkgs:
        try:
            return list(client.get(needles=[word], by=by, contains=True))
        except Exception as exc:
            errors.append(exc)
    if errors:
        raise _AURQueryError(errors)
    return []


def _has_symbol(text: str) -> bool:
    return any(unicodedata.category(char).startswith("S") for char in text)


def matches_search(pkg: AURPackage, terms: Sequence[str]) -> bool:
    """Return whether every term occurs in the package's name or description."""
    if len(terms) <= 1:
        return True

    name = pkg.name.lower()
    desc = pkg.description.lower()
    for term in terms:
        if _has_symbol(term):
            return True
        target = term.lower()
        if target not in name and target not in desc:
            return False
    return True


def _installed_marker(db_executor: _DBExecutor, name: str, version: str) -> str:
    local = db_executor.local_package(name)
    if local is None:
        return ""
    if local.version != version:
        return bold(green(f"(Installed: {local.version})"))
    return bold(green("(Installed)"))


def aur_pkg_search_string(pkg: AURPackage, db_executor: _DBExecutor, single_line: bool) -> str:
    """Format one AUR package as a search result line."""
    line = (
        bold(color_hash(SOURCE_AUR))
        + "/"
        + bold(pkg.name)
        + " "
        + cyan(pkg.version)
        + bold(f" (+{pkg.num_votes}")
        + " "
        + bold(f"{pkg.popularity:.2f}) ")
    )

    if not pkg.maintainer:
        line += bold(red("(Orphaned)")) + " "

    if pkg.out_of_date != 0:
        line += bold(red(f"(Out-of-date: {format_time(pkg.out_of_date)})")) + " "

    line += _installed_marker(db_executor, pkg.name, pkg.version)
    line += "\t" if single_line else "\n    "
    return line + pkg.description


def sync_pkg_search_string(pkg: Any, db_executor: _DBExecutor, single_line: bool) -> str:
    """Format one sync database package as a search result line."""
    line = (
        bold(color_hash(pkg.db.name))
        + "/"
        + bold(pkg.name)
        + " "
        + cyan(pkg.version)
        + bold(f" ({human(pkg.size)} {human(pkg.isize)}) ")
    )

    groups = list(db_executor.package_groups(pkg))
    if groups:
        line += "[" + " ".join(groups) + "] "

    line += _installed_marker(db_executor, pkg.name, pkg.version)
    line += "\t" if single_line else "\n    "
    return line + pkg.description


class SourceQueryBuilder:
    """Runs a search over the AUR and sync databases and keeps the sorted results."""

    def __init__(
        self,
        aur_client: _AURClient,
        logger: Optional[Logger] = None,
        sort_by: str = "votes",
        target_mode: TargetMode = TargetMode.ANY,
        search_by: str = "",
        bottom_up: bool = False,
        single_line_results: bool = False,
        separate_sources: bool = False,
    ) -> None:
        self.aur_client = aur_client
        self.logger = logger if logger is not None else GLOBAL_LOGGER
        self.sort_by = sort_by
        self.target_mode = target_mode
        self.search_by = search_by
        self.bottom_up = bottom_up
        self.single_line_results = single_line_results
        self.separate_sources = separate_sources
        self.results: List[_Result] = []
        self.query_map: Dict[str, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self.results)

    def execute(self, db_executor: _DBExecutor, pkgs: Sequence[str]) -> None:
        """Search for ``pkgs`` and store the ranked results; AUR failures are logged."""
        pkgs = remove_invalid_targets(pkgs, self.target_mode)
        ranker = _Ranker("".join(pkgs), self.bottom_up, self.separate_sources, self.sort_by)
        collected: List[_Result] = []
        aur_error: Optional[BaseException] = None

        if self.target_mode.at_least_aur():
            try:
                aur_results = query_aur(self.aur_client, pkgs, self.search_by)
            except Exception as exc:
                aur_error = exc
                aur_results = []

            by = get_search_by(self.search_by)
            for pkg in aur_results:
                bucket = self.query_map.setdefault(SOURCE_AUR, {})
                if by in (BY_NAME_DESC, BY_NONE, BY_NAME) and not matches_search(pkg, pkgs):
                    continue
                bucket[pkg.name] = pkg
                collected.append(
                    _Result(SOURCE_AUR, pkg.name, pkg.description, pkg.num_votes, list(pkg.provides))
                )

        repo_results: List[Any] = []
        if self.target_mode.at_least_repo():
            repo_results = list(db_executor.sync_packages(*pkgs))
            for pkg in repo_results:
                db_name = pkg.db.name
                self.query_map.setdefault(db_name, {})[pkg.name] = pkg
                provides = [getattr(item, "name", item) for item in pkg.provides]
                collected.append(_Result(db_name, pkg.name, pkg.description, -1, provides))

        self.results = ranker.sort(collected)

        if aur_error is not None:
            self.logger.errorln(AURSearchError(aur_error))
            if repo_results:
                self.logger.warnln("Showing repo packages only")

    def print_results(
        self, db_executor: _DBExecutor, verbosity: SearchVerbosity = SearchVerbosity.DETAILED
    ) -> None:
        """Print the stored results in the requested form."""
        total = len(self.results)
        for position, result in enumerate(self.results):
            if verbosity == SearchVerbosity.MINIMAL:
                self.logger.println(result.name)
                continue

            line = ""
            if verbosity == SearchVerbosity.NUMBER_MENU:
                number = total - position if self.bottom_up else position + 1
                line += magenta(str(number)) + " "

            pkg = self.query_map[result.source][result.name]
            if isinstance(pkg, AURPackage):
                line += aur_pkg_search_string(pkg, db_executor, self.single_line_results)
            else:
                line += sync_pkg_search_string(pkg, db_executor, self.single_line_results)

            self.logger.println(line)

    def get_targets(
        self, include: Collection[int], exclude: Collection[int], other_exclude: Collection[str]
    ) -> List[str]:
        """Return ``source/name`` for the results chosen by menu number (1-based, as printed)."""
        is_include = len(exclude) == 0 and len(other_exclude) == 0
        total = len(self.results)
        targets: List[str] = []
        for number in range(1, total + 1):
            index = total - number if self.bottom_up else number - 1
            if (is_include and number in include) or (not is_include and number not in exclude):
                result = self.results[index]
                targets.append(f"{result.source}/{result.name}")
        return targets