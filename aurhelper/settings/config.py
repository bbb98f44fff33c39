"""The helper's persistent configuration and command line option handling."""

from __future__ import annotations

import json
import os
import re
import shutil
import sys
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from aurhelper.settings.dirs import (
    COMPLETION_FILE_NAME,
    SYSTEMD_CACHE,
    VCS_FILE_NAME,
    PrivilegeElevatorNotFoundError,
    RuntimeDirError,
    get_cache_home,
    init_dir,
)
from aurhelper.settings.exe import CmdBuilder, OSRunner
from aurhelper.settings.parser import Arguments, RebuildMode, TargetMode
from aurhelper.text.logger import GLOBAL_LOGGER, Logger, errorln

# Whether pacman's provider menus are hidden.
HIDE_MENUS = False
# Whether user input is skipped.
NO_CONFIRM = False

_SPECIAL_VARS = frozenset("*#$@!?-0123456789")
_ATOI = re.compile(r"[+-]?[0-9]+")
_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _is_name_char(char: str) -> bool:
    return char == "_" or ("0" <= char <= "9") or ("a" <= char <= "z") or ("A" <= char <= "Z")


def _shell_name(text: str) -> tuple[str, int]:
    """Return the variable name at the start of ``text`` and how many chars it spans."""
    if text[0] == "{":
        if len(text) > 2 and text[1] in _SPECIAL_VARS and text[2] == "}":
            return text[1], 3
        closing = text.find("}", 1)
        if closing == -1:
            return "", 1
        if closing == 1:
            return "", 2
        return text[1:closing], closing + 1
    if text[0] in _SPECIAL_VARS:
        return text[0], 1
    width = 0
    while width < len(text) and _is_name_char(text[width]):
        width += 1
    return text[:width], width


def _expand_vars(text: str) -> str:
    """Replace ``$VAR`` and ``${VAR}`` with environment values; unset ones become empty."""
    out: list[str] = []
    start = 0
    position = 0
    while position < len(text):
        if text[position] == "$" and position + 1 < len(text):
            out.append(text[start:position])
            name, width = _shell_name(text[position + 1:])
            if name:
                out.append(os.environ.get(name, ""))
            elif width == 0:
                out.append("$")
            position += width
            start = position + 1
        position += 1
    if not out:
        return text
    return "".join(out) + text[start:]


def expand_env_or_home(path: str) -> str:
    """Expand environment variables in ``path`` and a leading ``~/``."""
    path = _expand_vars(path)
    if path.startswith("~/"):
        joined = os.path.join(os.environ.get("HOME", ""), path[2:])
        path = os.path.normpath(joined) if joined else ""
    return path


def _atoi(value: str) -> Optional[int]:
    if _ATOI.fullmatch(value) is None:
        return None
    return int(value)


def _j(key: str, default: Any) -> Any:
    return field(default=default, metadata={"json": key})


_VALUE_OPTIONS = {
    "aururl": "aur_url",
    "aurrpcurl": "aur_rpc_url",
    "sortby": "sort_by",
    "searchby": "search_by",
    "config": "pacman_conf",
    "answerclean": "answer_clean",
    "answerdiff": "answer_diff",
    "answeredit": "answer_edit",
    "answerupgrade": "answer_upgrade",
    "gpgflags": "gpg_flags",
    "mflags": "mflags",
    "gitflags": "git_flags",
    "builddir": "build_dir",
    "editor": "editor",
    "editorflags": "editor_flags",
    "makepkg": "makepkg_bin",
    "makepkgconf": "makepkg_conf",
    "pacman": "pacman_bin",
    "git": "git_bin",
    "gpg": "gpg_bin",
    "sudo": "sudo_bin",
    "sudoflags": "sudo_flags",
}

_FIXED_OPTIONS: dict[str, tuple[str, Any]] = {
    "save": ("save_config", True),
    "afterclean": ("clean_after", True),
    "cleanafter": ("clean_after", True),
    "noafterclean": ("clean_after", False),
    "nocleanafter": ("clean_after", False),
    "devel": ("devel", True),
    "nodevel": ("devel", False),
    "timeupdate": ("time_update", True),
    "notimeupdate": ("time_update", False),
    "topdown": ("bottom_up", False),
    "bottomup": ("bottom_up", True),
    "singlelineresults": ("single_line_results", True),
    "doublelineresults": ("single_line_results", False),
    "redownload": ("redownload", "yes"),
    "redownloadall": ("redownload", "all"),
    "noredownload": ("redownload", "no"),
    "rebuild": ("rebuild", RebuildMode.YES),
    "rebuildall": ("rebuild", RebuildMode.ALL),
    "rebuildtree": ("rebuild", RebuildMode.TREE),
    "norebuild": ("rebuild", RebuildMode.NO),
    "batchinstall": ("batch_install", True),
    "nobatchinstall": ("batch_install", False),
    "noanswerclean": ("answer_clean", ""),
    "noanswerdiff": ("answer_diff", ""),
    "noansweredit": ("answer_edit", ""),
    "noanswerupgrade": ("answer_upgrade", ""),
    "nomakepkgconf": ("makepkg_conf", ""),
    "sudoloop": ("sudo_loop", True),
    "nosudoloop": ("sudo_loop", False),
    "provides": ("provides", True),
    "noprovides": ("provides", False),
    "pgpfetch": ("pgp_fetch", True),
    "nopgpfetch": ("pgp_fetch", False),
    "cleanmenu": ("clean_menu", True),
    "nocleanmenu": ("clean_menu", False),
    "diffmenu": ("diff_menu", True),
    "nodiffmenu": ("diff_menu", False),
    "editmenu": ("edit_menu", True),
    "noeditmenu": ("edit_menu", False),
    "useask": ("use_ask", True),
    "nouseask": ("use_ask", False),
    "combinedupgrade": ("combined_upgrade", True),
    "nocombinedupgrade": ("combined_upgrade", False),
    "a": ("mode", TargetMode.AUR),
    "aur": ("mode", TargetMode.AUR),
    "repo": ("mode", TargetMode.REPO),
    "removemake": ("remove_make", "yes"),
    "noremovemake": ("remove_make", "no"),
    "askremovemake": ("remove_make", "ask"),
    "separatesources": ("separate_sources", True),
    "noseparatesources": ("separate_sources", False),
}


@dataclass
class Configuration:
    """All user settings, stored as JSON in the config file."""

    aur_url: str = _j("aururl", "")
    aur_rpc_url: str = _j("aurrpcurl", "")
    build_dir: str = _j("buildDir", "")
    editor: str = _j("editor", "")
    editor_flags: str = _j("editorflags", "")
    makepkg_bin: str = _j("makepkgbin", "")
    makepkg_conf: str = _j("makepkgconf", "")
    pacman_bin: str = _j("pacmanbin", "")
    pacman_conf: str = _j("pacmanconf", "")
    redownload: str = _j("redownload", "")
    answer_clean: str = _j("answerclean", "")
    answer_diff: str = _j("answerdiff", "")
    answer_edit: str = _j("answeredit", "")
    answer_upgrade: str = _j("answerupgrade", "")
    git_bin: str = _j("gitbin", "")
    gpg_bin: str = _j("gpgbin", "")
    gpg_flags: str = _j("gpgflags", "")
    mflags: str = _j("mflags", "")
    sort_by: str = _j("sortby", "")
    search_by: str = _j("searchby", "")
    git_flags: str = _j("gitflags", "")
    remove_make: str = _j("removemake", "")
    sudo_bin: str = _j("sudobin", "")
    sudo_flags: str = _j("sudoflags", "")
    version: str = _j("version", "")
    request_split_n: int = _j("requestsplitn", 0)
    completion_interval: int = _j("completionrefreshtime", 0)
    max_concurrent_downloads: int = _j("maxconcurrentdownloads", 0)
    bottom_up: bool = _j("bottomup", False)
    sudo_loop: bool = _j("sudoloop", False)
    time_update: bool = _j("timeupdate", False)
    devel: bool = _j("devel", False)
    clean_after: bool = _j("cleanAfter", False)
    provides: bool = _j("provides", False)
    pgp_fetch: bool = _j("pgpfetch", False)
    clean_menu: bool = _j("cleanmenu", False)
    diff_menu: bool = _j("diffmenu", False)
    edit_menu: bool = _j("editmenu", False)
    combined_upgrade: bool = _j("combinedupgrade", False)
    use_ask: bool = _j("useask", False)
    batch_install: bool = _j("batchinstall", False)
    single_line_results: bool = _j("singlelineresults", False)
    separate_sources: bool = _j("separatesources", False)
    debug: bool = _j("debug", False)
    use_rpc: bool = _j("rpc", False)
    double_confirm: bool = _j("doubleconfirm", False)  # confirm install before and after build

    completion_path: str = ""
    vcs_file_path: str = ""
    save_config: bool = False
    mode: TargetMode = TargetMode.ANY
    rebuild: str = _j("rebuild", "")

    logger: Logger = field(default_factory=lambda: GLOBAL_LOGGER, repr=False, compare=False)
    command_builder: Optional[CmdBuilder] = field(default=None, repr=False, compare=False)

    # --- serialisation -------------------------------------------------

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for item in fields(self):
            key = item.metadata.get("json")
            if key is None:
                continue
            value = getattr(self, item.name)
            if isinstance(value, RebuildMode):
                value = value.value
            data[key] = value
        return data

    def _to_json(self) -> str:
        text = json.dumps(self._to_dict(), indent="\t", ensure_ascii=False)
        for char, escaped in _JSON_ESCAPES:
            text = text.replace(char, escaped)
        return text + "\n"

    def __str__(self) -> str:
        return self._to_json()

    def save(self, config_path: str, version: str) -> None:
        """Write the configuration, stamped with ``version``, to ``config_path``."""
        self.version = version
        content = self._to_json().encode("utf-8")

        directory = os.path.dirname(config_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, mode=0o755, exist_ok=True)

        descriptor = os.open(config_path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o644)
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())

    @staticmethod
    def _field_for_key(key: str):
        exact = None
        folded = None
        for item in fields(Configuration):
            name = item.metadata.get("json")
            if name is None:
                continue
            if name == key:
                exact = item
                break
            if folded is None and name.casefold() == key.casefold():
                folded = item
        return exact or folded

    @staticmethod
    def _convert(item, key: str, value: Any) -> Any:
        if item.name == "rebuild":
            if not isinstance(value, str):
                raise TypeError(f"cannot unmarshal {type(value).__name__} into field {key} of type string")
            try:
                return RebuildMode(value)
            except ValueError:
                return value
        default = item.default
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise TypeError(f"cannot unmarshal {type(value).__name__} into field {key} of type bool")
            return value
        if isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"cannot unmarshal {type(value).__name__} into field {key} of type int")
            return value
        if not isinstance(value, str):
            raise TypeError(f"cannot unmarshal {type(value).__name__} into field {key} of type string")
        return value

    def _decode_into(self, text: str) -> None:
        stripped = text.lstrip(" \t\r\n")
        if not stripped:
            raise ValueError("EOF")
        data, _ = json.JSONDecoder().raw_decode(stripped)
        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError(f"cannot unmarshal {type(data).__name__} into Configuration")

        problems: list[str] = []
        for key, value in data.items():
            item = self._field_for_key(key)
            if item is None or value is None:
                continue
            try:
                setattr(self, item.name, self._convert(item, key, value))
            except TypeError as exc:
                problems.append(str(exc))
        if problems:
            raise ValueError(problems[0])

    def load(self, config_path: str) -> None:
        """Merge settings from the JSON file at ``config_path``, reporting problems on stderr."""
        try:
            with open(config_path, "rb") as handle:
                raw = handle.read()
        except FileNotFoundError:
            return
        except OSError as exc:
            print(f"failed to open config file '{config_path}': {exc}", file=sys.stderr)
            return

        try:
            self._decode_into(raw.decode("utf-8", errors="replace"))
        except ValueError as exc:
            print(f"failed to read config file '{config_path}': {exc}", file=sys.stderr)

    # --- environment ---------------------------------------------------

    def expand_env(self) -> None:
        """Expand environment variables (and ``~/`` for paths) in the string settings."""
        self.aur_url = _expand_vars(self.aur_url)
        self.aur_rpc_url = _expand_vars(self.aur_rpc_url)
        self.build_dir = expand_env_or_home(self.build_dir)
        self.editor = expand_env_or_home(self.editor)
        self.editor_flags = _expand_vars(self.editor_flags)
        self.makepkg_bin = expand_env_or_home(self.makepkg_bin)
        self.makepkg_conf = expand_env_or_home(self.makepkg_conf)
        self.pacman_bin = expand_env_or_home(self.pacman_bin)
        self.pacman_conf = expand_env_or_home(self.pacman_conf)
        self.gpg_flags = _expand_vars(self.gpg_flags)
        self.mflags = _expand_vars(self.mflags)
        self.git_flags = _expand_vars(self.git_flags)
        self.sort_by = _expand_vars(self.sort_by)
        self.search_by = _expand_vars(self.search_by)
        self.git_bin = expand_env_or_home(self.git_bin)
        self.gpg_bin = expand_env_or_home(self.gpg_bin)
        self.sudo_bin = expand_env_or_home(self.sudo_bin)
        self.sudo_flags = _expand_vars(self.sudo_flags)
        self.redownload = _expand_vars(self.redownload)
        rebuild = _expand_vars(str(getattr(self.rebuild, "value", self.rebuild)))
        try:
            self.rebuild = RebuildMode(rebuild)
        except ValueError:
            self.rebuild = rebuild
        self.answer_clean = _expand_vars(self.answer_clean)
        self.answer_diff = _expand_vars(self.answer_diff)
        self.answer_edit = _expand_vars(self.answer_edit)
        self.answer_upgrade = _expand_vars(self.answer_upgrade)
        self.remove_make = _expand_vars(self.remove_make)

    def set_privilege_elevator(self) -> None:
        """Pick an available privilege elevator, preferring the configured one and sudo.

        Raises PrivilegeElevatorNotFoundError when none is on the PATH.
        """
        auth = os.environ.get("PACMAN_AUTH", "")
        if auth:
            self.sudo_bin = auth
            if auth != "sudo":
                self.sudo_flags = ""
                self.sudo_loop = False

        for candidate in (self.sudo_bin, "sudo"):
            if candidate and shutil.which(candidate):
                self.sudo_bin = candidate
                return

        self.sudo_flags = ""
        self.sudo_loop = False

        for candidate in ("doas", "pkexec", "su"):
            if shutil.which(candidate):
                self.sudo_bin = candidate
                return

        raise PrivilegeElevatorNotFoundError(self.sudo_bin)

    def cmd_builder(self, runner: Any = None) -> CmdBuilder:
        """Return a command builder configured from these settings."""
        if runner is None:
            runner = OSRunner(log=self.logger.child("runner"))

        return CmdBuilder(
            git_bin=self.git_bin,
            git_flags=self.git_flags.split(),
            gpg_bin=self.gpg_bin,
            gpg_flags=self.gpg_flags.split(),
            makepkg_flags=self.mflags.split(),
            makepkg_conf_path=self.makepkg_conf,
            makepkg_bin=self.makepkg_bin,
            sudo_bin=self.sudo_bin,
            sudo_flags=self.sudo_flags.split(),
            sudo_loop_enabled=self.sudo_loop,
            pacman_bin=self.pacman_bin,
            pacman_config_path=self.pacman_conf,
            pacman_db_path="",
            runner=runner,
            log=self.logger.child("cmd_builder"),
        )

    # --- command line --------------------------------------------------

    def parse_command_line(self, args: Arguments, argv: Optional[list[str]] = None) -> None:
        """Parse ``argv`` into ``args`` and apply (and remove) the helper's own options."""
        args.parse(argv)
        self._extract_options(args)
        self.command_builder = self.cmd_builder(None)

    def _extract_options(self, args: Arguments) -> None:
        for option, value in list(args.options.items()):
            if self.handle_option(option, value.first()):
                args.del_arg(option)

        self.aur_url = self.aur_url.rstrip("/")

        if not self.aur_rpc_url:
            self.aur_rpc_url = self.aur_url + "/rpc?"
            return

        if not self.aur_rpc_url.endswith("?"):
            if self.aur_rpc_url.endswith("/rpc"):
                self.aur_rpc_url += "?"
            else:
                self.aur_rpc_url = self.aur_rpc_url.rstrip("/") + "/rpc?"

    def handle_option(self, option: str, value: str) -> bool:
        """Apply one option; return True if it belongs to the helper rather than pacman."""
        global NO_CONFIRM

        if option in _VALUE_OPTIONS:
            setattr(self, _VALUE_OPTIONS[option], value)
            return True
        if option in _FIXED_OPTIONS:
            name, setting = _FIXED_OPTIONS[option]
            setattr(self, name, setting)
            return True
        if option == "debug":
            self.debug = True
            GLOBAL_LOGGER.debug = True
            return False
        if option == "completioninterval":
            number = _atoi(value)
            if number is not None:
                self.completion_interval = number
            return True
        if option == "requestsplitn":
            number = _atoi(value)
            if number is not None and number > 0:
                self.request_split_n = number
            return True
        if option == "noconfirm":
            NO_CONFIRM = True
            return True
        return False


def default_config(version: str) -> Configuration:
    """Return the built-in default settings."""
    return Configuration(
        aur_url="https://aur.archlinux.org",
        build_dir=_expand_vars("$HOME/.cache/yay"),
        clean_after=False,
        editor="",
        editor_flags="",
        devel=False,
        makepkg_bin="makepkg",
        makepkg_conf="",
        pacman_bin="pacman",
        pgp_fetch=True,
        pacman_conf="/etc/pacman.conf",
        gpg_flags="",
        mflags="",
        git_flags="",
        bottom_up=True,
        completion_interval=7,
        max_concurrent_downloads=0,
        sort_by="votes",
        search_by="name-desc",
        sudo_loop=False,
        git_bin="git",
        gpg_bin="gpg",
        sudo_bin="sudo",
        sudo_flags="",
        time_update=False,
        request_split_n=150,
        redownload="no",
        rebuild=RebuildMode.NO,
        batch_install=False,
        answer_clean="",
        answer_diff="",
        answer_edit="",
        answer_upgrade="",
        remove_make="ask",
        provides=True,
        clean_menu=True,
        diff_menu=True,
        edit_menu=False,
        use_ask=False,
        combined_upgrade=True,
        separate_sources=True,
        version=version,
        debug=False,
        use_rpc=True,
        double_confirm=True,
        logger=GLOBAL_LOGGER,
        mode=TargetMode.ANY,
    )


def new_config(config_path: str, version: str) -> Configuration:
    """Build the effective configuration from defaults, the config file and the environment.

    Raises RuntimeDirError when the build directory cannot be created and
    PrivilegeElevatorNotFoundError when no elevator is available.
    """
    config = default_config(version)

    try:
        cache_home = get_cache_home()
    except RuntimeDirError as exc:
        errorln(exc)
        cache_home = exc.dir

    config.build_dir = cache_home
    config.completion_path = os.path.join(cache_home, COMPLETION_FILE_NAME)
    config.vcs_file_path = os.path.join(cache_home, VCS_FILE_NAME)
    config.load(config_path)

    aurdest = os.environ.get("AURDEST", "")
    if aurdest:
        config.build_dir = aurdest

    config.expand_env()

    if config.build_dir != SYSTEMD_CACHE:
        init_dir(config.build_dir)

    config.set_privilege_elevator()
    return config