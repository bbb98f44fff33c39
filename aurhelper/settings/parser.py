"""Command line argument model compatible with pacman's option syntax."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TextIO


class ArgumentError(ValueError):
    """Raised when the command line cannot be parsed."""


class TargetMode(IntEnum):
    """Which package sources targets may come from."""

    ANY = 0
    AUR = 1
    REPO = 2

    def at_least_aur(self) -> bool:
        return self in (TargetMode.ANY, TargetMode.AUR)

    def at_least_repo(self) -> bool:
        return self in (TargetMode.ANY, TargetMode.REPO)


class RebuildMode(str, Enum):
    """How aggressively packages are rebuilt."""

    NO = "no"
    YES = "yes"
    TREE = "tree"
    ALL = "all"


_OPS = frozenset(
    {
        "V", "version", "D", "database", "F", "files", "Q", "query",
        "R", "remove", "S", "sync", "T", "deptest", "U", "upgrade",
        "Y", "yay", "W", "web", "B", "build", "P", "show",
        "G", "getpkgbuild",
    }
)

_GLOBALS = frozenset(
    {
        "b", "dbpath", "r", "root", "v", "verbose", "arch", "cachedir",
        "color", "config", "debug", "gpgdir", "hookdir", "logfile",
        "noconfirm", "confirm",
    }
)

_PARAMS = frozenset(
    {
        "dbpath", "b", "root", "r", "sysroot", "config", "ignore",
        "assume-installed", "overwrite", "ask", "cachedir", "hookdir",
        "logfile", "ignoregroup", "arch", "print-format", "gpgdir", "color",
        "aururl", "aurrpcurl", "mflags", "gpgflags", "gitflags", "builddir",
        "editor", "editorflags", "makepkg", "makepkgconf", "pacman", "git",
        "gpg", "sudo", "sudoflags", "requestsplitn", "answerclean",
        "answerdiff", "answeredit", "answerupgrade", "completioninterval",
        "sortby", "searchby",
    }
)

_ARGS = frozenset(
    {
        "-", "--", "ask",
        "D", "database", "Q", "query", "R", "remove", "S", "sync",
        "T", "deptest", "U", "upgrade", "F", "files", "V", "version",
        "h", "help", "Y", "yay", "W", "web", "P", "show", "B", "build",
        "G", "getpkgbuild", "b", "dbpath", "r", "root", "v", "verbose",
        "arch", "cachedir", "color", "config", "debug", "gpgdir", "hookdir",
        "logfile", "noconfirm", "confirm", "disable-download-timeout",
        "sysroot", "d", "nodeps", "assume-installed", "dbonly",
        "noprogressbar", "numberupgrades", "noscriptlet", "p", "print",
        "print-format", "asdeps", "asexplicit", "ignore", "ignoregroup",
        "needed", "overwrite", "f", "force", "c", "changelog", "deps",
        "e", "explicit", "g", "groups", "i", "info", "k", "check",
        "l", "list", "m", "foreign", "n", "native", "o", "owns", "file",
        "q", "quiet", "s", "search", "t", "unrequired", "u", "upgrades",
        "cascade", "nosave", "recursive", "unneeded", "clean", "sysupgrade",
        "w", "downloadonly", "y", "refresh", "x", "regex", "machinereadable",
        "aururl", "aurrpcurl", "save", "afterclean", "cleanafter",
        "noafterclean", "nocleanafter", "devel", "nodevel", "timeupdate",
        "notimeupdate", "topdown", "bottomup", "completioninterval", "sortby",
        "searchby", "redownload", "redownloadall", "noredownload", "rebuild",
        "rebuildall", "rebuildtree", "norebuild", "batchinstall",
        "nobatchinstall", "answerclean", "noanswerclean", "answerdiff",
        "noanswerdiff", "answeredit", "noansweredit", "answerupgrade",
        "noanswerupgrade", "gpgflags", "mflags", "gitflags", "builddir",
        "editor", "editorflags", "makepkg", "makepkgconf", "nomakepkgconf",
        "pacman", "git", "gpg", "sudo", "sudoflags", "requestsplitn",
        "sudoloop", "nosudoloop", "provides", "noprovides", "pgpfetch",
        "nopgpfetch", "cleanmenu", "nocleanmenu", "diffmenu", "nodiffmenu",
        "editmenu", "noeditmenu", "useask", "nouseask", "combinedupgrade",
        "nocombinedupgrade", "a", "aur", "repo", "removemake",
        "noremovemake", "askremovemake", "complete", "stats", "news",
        "gendb", "currentconfig", "defaultconfig", "singlelineresults",
        "doublelineresults", "separatesources", "noseparatesources",
    }
)


def is_arg(arg: str) -> bool:
    """Return whether ``arg`` is a known option name."""
    return arg in _ARGS


def is_op(op: str) -> bool:
    """Return whether ``op`` names an operation such as ``S`` or ``query``."""
    return op in _OPS


def is_global(op: str) -> bool:
    """Return whether ``op`` is an option that applies to every operation."""
    return op in _GLOBALS


def has_param(arg: str) -> bool:
    """Return whether option ``arg`` takes a value."""
    return arg in _PARAMS


def _format_arg(arg: str) -> str:
    return "--" + arg if len(arg) > 1 else "-" + arg


@dataclass
class Option:
    """One command line option and the values it was given."""

    global_: bool = False
    args: list[str] = field(default_factory=list)

    def add(self, *args: str) -> None:
        self.args.extend(args)

    def first(self) -> str:
        return self.args[0] if self.args else ""

    def set(self, arg: str) -> None:
        self.args = [arg]


@dataclass
class Arguments:
    """A parsed command line: one operation, its options and its targets."""

    op: str = ""
    options: dict[str, Option] = field(default_factory=dict)
    targets: list[str] = field(default_factory=list)

    def create_or_append_option(self, option: str, *args: str) -> None:
        existing = self.options.get(option)
        if existing is None:
            self.options[option] = Option(args=list(args))
        else:
            existing.add(*args)

    def copy_global(self) -> "Arguments":
        """Return new arguments holding only the global options."""
        return Arguments(
            options={key: value for key, value in self.options.items() if value.global_}
        )

    def copy(self) -> "Arguments":
        return Arguments(op=self.op, options=dict(self.options), targets=list(self.targets))

    def del_arg(self, *args: str) -> None:
        for option in args:
            self.options.pop(option, None)

    def need_root(self, mode: TargetMode) -> bool:
        """Return whether running this command requires root privileges."""
        if self.exists_arg("h", "help"):
            return False

        op = self.op
        if op in ("D", "database"):
            return not self.exists_arg("k", "check")
        if op in ("F", "files"):
            return self.exists_arg("y", "refresh")
        if op in ("Q", "query"):
            return self.exists_arg("k", "check")
        if op in ("R", "remove"):
            return not self.exists_arg("p", "print", "print-format")
        if op in ("S", "sync"):
            if self.exists_arg("y", "refresh"):
                return True
            for names in (
                ("p", "print", "print-format"),
                ("s", "search"),
                ("l", "list"),
                ("g", "groups"),
                ("i", "info"),
            ):
                if self.exists_arg(*names):
                    return False
            if self.exists_arg("c", "clean") and mode == TargetMode.AUR:
                return False
            return True
        return op in ("U", "upgrade")

    def _add_op(self, op: str) -> None:
        if self.op:
            raise ArgumentError("only one operation may be used at a time")
        self.op = op

    def add_param(self, option: str, arg: str) -> None:
        """Record ``option`` with comma separated values from ``arg``."""
        if not is_arg(option):
            raise ArgumentError(f"invalid option '{option}'")

        if is_op(option):
            self._add_op(option)
            return

        self.create_or_append_option(option, *arg.split(","))
        if is_global(option):
            self.options[option].global_ = True

    def add_arg(self, *args: str) -> None:
        for option in args:
            self.add_param(option, "")

    def exists_arg(self, *args: str) -> bool:
        """Return whether any of the given options is present."""
        return any(option in self.options for option in args)

    def get_arg(self, *args: str) -> tuple[str, bool, bool]:
        """Return ``(first value, given twice, given)`` for the first present option."""
        for option in args:
            value = self.options.get(option)
            if value is not None:
                return value.first(), len(value.args) >= 2, len(value.args) >= 1
        return "", False, False

    def get_args(self, option: str) -> list[str] | None:
        value = self.options.get(option)
        return value.args if value is not None else None

    def add_target(self, *args: str) -> None:
        self.targets.extend(args)

    def clear_targets(self) -> None:
        self.targets = []

    def exists_double(self, *args: str) -> bool:
        """Return whether the first present option was given at least twice."""
        for option in args:
            value = self.options.get(option)
            if value is not None:
                return len(value.args) >= 2
        return False

    @staticmethod
    def _format_option(option: str, value: Option) -> list[str]:
        formatted = _format_arg(option)
        result: list[str] = []
        for arg in value.args:
            result.append(formatted)
            if has_param(option):
                result.append(arg)
        return result

    def format_args(self) -> list[str]:
        """Format the operation and non-global options for pacman."""
        result: list[str] = []
        if self.op:
            result.append(_format_arg(self.op))
        for option, value in self.options.items():
            if value.global_ or option == "--":
                continue
            result.extend(self._format_option(option, value))
        return result

    def format_globals(self) -> list[str]:
        """Format the global options for pacman."""
        result: list[str] = []
        for option, value in self.options.items():
            if value.global_:
                result.extend(self._format_option(option, value))
        return result

    def _parse_short_option(self, arg: str, param: str) -> bool:
        if arg == "-":
            self.add_arg("-")
            return False

        letters = arg[1:]
        for position, char in enumerate(letters):
            if has_param(char):
                if position < len(letters) - 1:
                    self.add_param(char, letters[position + 1:])
                    return False
                self.add_param(char, param)
                return True
            self.add_arg(char)
        return False

    def _parse_long_option(self, arg: str, param: str) -> bool:
        if arg == "--":
            self.add_arg(arg)
            return False

        name = arg[2:]
        key, sep, value = name.partition("=")
        if sep:
            self.add_param(key, value)
            return False
        if has_param(name):
            self.add_param(name, param)
            return True
        self.add_arg(name)
        return False

    def parse_stdin(self, stream: TextIO) -> None:
        """Read targets, one per line, from piped ``stream`` and close it."""
        try:
            interactive = stream.isatty()
        except (ValueError, OSError) as exc:
            raise ArgumentError(f"cannot read from stdin: {exc}") from exc

        if interactive:
            raise ArgumentError("argument '-' specified without input on stdin")

        for line in stream:
            line = line[:-1] if line.endswith("\n") else line
            line = line[:-1] if line.endswith("\r") else line
            self.add_target(line)

        stream.close()

    def parse(self, argv: list[str] | None = None, stdin: TextIO | None = None) -> None:
        """Parse ``argv`` (default: the process arguments) into this object."""
        args = list(sys.argv[1:] if argv is None else argv)
        used_next = False

        for position, arg in enumerate(args):
            if used_next:
                used_next = False
                continue

            next_arg = args[position + 1] if position + 1 < len(args) else ""

            if self.exists_arg("--"):
                self.add_target(arg)
            elif arg.startswith("--"):
                used_next = self._parse_long_option(arg, next_arg)
            elif arg.startswith("-"):
                used_next = self._parse_short_option(arg, next_arg)
            else:
                self.add_target(arg)

        if not self.op:
            if self.targets:
                self.op = "Y"
            else:
                self._parse_short_option("-Syu", "")

        if self.exists_arg("-"):
            self.parse_stdin(sys.stdin if stdin is None else stdin)
            self.del_arg("-")
            if stdin is None:
                sys.stdin = open("/dev/tty", encoding="utf-8")