"""Building and running the external commands the helper drives."""

from __future__ import annotations

import os
import pwd
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from aurhelper.settings.parser import Arguments, TargetMode
from aurhelper.text.logger import GLOBAL_LOGGER, Logger

SUDO_LOOP_DURATION = 241
GIT_DENY_LIST = frozenset({"GIT_WORK_TREE", "GIT_DIR"})

_PROXY_VARS = ("http_proxy", "https_proxy", "ftp_proxy")
_SYSTEMD_RUN_ARGS = (
    "--service-type=oneshot",
    "--pipe",
    "--wait",
    "--pty",
    "--quiet",
    "-p",
    "DynamicUser=yes",
    "-p",
    "CacheDirectory=yay",
    "-E",
    "HOME=/tmp",
)


@dataclass
class Command:
    """A program invocation: argument vector, working directory, environment and user."""

    args: list[str]
    cwd: str = ""
    env: Optional[dict[str, str]] = None
    uid: Optional[int] = None
    gid: Optional[int] = None

    def __str__(self) -> str:
        return " ".join(self.args)

    def _run_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.cwd:
            kwargs["cwd"] = self.cwd
        if self.env is not None:
            kwargs["env"] = self.env
        if self.uid is not None:
            kwargs["user"] = self.uid
        if self.gid is not None:
            kwargs["group"] = self.gid
        return kwargs


class _Runner(Protocol):
    def show(self, cmd: Command) -> None: ...

    def capture(self, cmd: Command) -> tuple[str, str]: ...


@dataclass
class OSRunner:
    """Runs commands as real processes."""

    log: Logger = field(default_factory=lambda: GLOBAL_LOGGER)

    def show(self, cmd: Command) -> None:
        """Run ``cmd`` attached to the terminal; raise CalledProcessError on failure."""
        self.log.debugln("running", str(cmd))
        subprocess.run(cmd.args, check=True, **cmd._run_kwargs())

    def capture(self, cmd: Command) -> tuple[str, str]:
        """Run ``cmd`` and return its trimmed standard output and an empty stderr.

        On a non-zero exit, CalledProcessError is raised carrying the trimmed
        output and standard error.
        """
        self.log.debugln("capturing", str(cmd))
        proc = subprocess.run(
            cmd.args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            **cmd._run_kwargs(),
        )
        stdout = proc.stdout.strip()
        if proc.returncode != 0:
            raise subprocess.CalledProcessError(
                proc.returncode, cmd.args, output=stdout, stderr=proc.stderr.strip()
            )
        return stdout, ""


@dataclass
class Call:
    """One recorded call to a mock runner."""

    res: list[Any] = field(default_factory=list)
    args: list[Any] = field(default_factory=list)
    dir: str = ""

    def __str__(self) -> str:
        return repr(self.args)


@dataclass
class MockRunner:
    """A runner that records commands instead of running them."""

    show_fn: Optional[Callable[[Command], None]] = None
    capture_fn: Optional[Callable[[Command], tuple[str, str]]] = None
    show_calls: list[Call] = field(default_factory=list)
    capture_calls: list[Call] = field(default_factory=list)
    _show_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _capture_lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def show(self, cmd: Command) -> None:
        try:
            if self.show_fn is not None:
                self.show_fn(cmd)
        finally:
            with self._show_lock:
                self.show_calls.append(Call(args=[cmd], dir=cmd.cwd))

    def capture(self, cmd: Command) -> tuple[str, str]:
        with self._capture_lock:
            self.capture_calls.append(Call(args=[cmd], dir=cmd.cwd))
        if self.capture_fn is not None:
            return self.capture_fn(cmd)
        return "", ""


def git_filtered_env() -> dict[str, str]:
    """Return the process environment without git location overrides, prompts disabled."""
    env = {key: value for key, value in os.environ.items() if key not in GIT_DENY_LIST}
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


@dataclass
class CmdBuilder:
    """Builds git, gpg, makepkg and pacman commands from configuration."""

    git_bin: str = "git"
    git_flags: list[str] = field(default_factory=list)
    gpg_bin: str = "gpg"
    gpg_flags: list[str] = field(default_factory=list)
    makepkg_flags: list[str] = field(default_factory=list)
    makepkg_conf_path: str = ""
    makepkg_bin: str = "makepkg"
    sudo_bin: str = "sudo"
    sudo_flags: list[str] = field(default_factory=list)
    sudo_loop_enabled: bool = False
    pacman_bin: str = "pacman"
    pacman_config_path: str = ""
    pacman_db_path: str = ""
    runner: Optional[_Runner] = None
    log: Logger = field(default_factory=lambda: GLOBAL_LOGGER)
    lock_poll_interval: float = 3.0

    def __post_init__(self) -> None:
        if self.runner is None:
            self.runner = OSRunner(log=self.log.child("runner"))

    def build_gpg_cmd(self, *args: str) -> Command:
        return self._de_elevate(Command([self.gpg_bin, *self.gpg_flags, *args]))

    def build_git_cmd(self, directory: str, *args: str) -> Command:
        argv = [self.git_bin, *self.git_flags]
        if directory:
            argv += ["-C", directory]
        argv += args
        return self._de_elevate(Command(argv, env=git_filtered_env()))

    def add_makepkg_flag(self, flag: str) -> None:
        self.makepkg_flags.append(flag)

    def build_makepkg_cmd(self, directory: str, *args: str) -> Command:
        argv = [self.makepkg_bin, *self.makepkg_flags]
        if self.makepkg_conf_path:
            argv += ["--config", self.makepkg_conf_path]
        argv += args
        return self._de_elevate(Command(argv, cwd=directory))

    def set_pacman_db_path(self, db_path: str) -> None:
        self.pacman_db_path = db_path

    def _de_elevate(self, cmd: Command) -> Command:
        """When running as root, drop to the invoking user or wrap in systemd-run."""
        if os.geteuid() != 0:
            return cmd

        caller = os.environ.get("SUDO_USER") or os.environ.get("DOAS_USER") or ""
        if caller:
            try:
                entry = pwd.getpwnam(caller)
            except KeyError:
                entry = None
            if entry is not None:
                cmd.uid = entry.pw_uid
                cmd.gid = entry.pw_gid
                return cmd

        argv = ["systemd-run", *_SYSTEMD_RUN_ARGS]
        if cmd.cwd:
            argv += ["-p", f"WorkingDirectory={cmd.cwd}"]
        for name in _PROXY_VARS:
            value = os.environ.get(name, "")
            if value:
                argv += ["-E", f"{name}={value}"]

        argv.append(shutil.which(cmd.args[0]) or "")
        argv += cmd.args[1:]
        return Command(argv, cwd=cmd.cwd)

    def _privilege_elevator_command(self, argv: list[str]) -> Command:
        if self.sudo_bin == "su":
            return Command([self.sudo_bin, "-c", " ".join(argv)])
        return Command([self.sudo_bin, *self.sudo_flags, *argv])

    def build_pacman_cmd(self, args: Arguments, mode: TargetMode, no_confirm: bool) -> Command:
        """Build a pacman command, elevated through the configured tool when root is needed."""
        needs_root = args.need_root(mode)

        argv = [self.pacman_bin, *args.format_globals(), *args.format_args()]
        if no_confirm:
            argv.append("--noconfirm")
        argv += ["--config", self.pacman_config_path, "--", *args.targets]

        if needs_root:
            self._wait_lock(self.pacman_db_path)
            if os.geteuid() != 0:
                return self._privilege_elevator_command(argv)

        return Command(argv)

    def _wait_lock(self, db_path: str) -> None:
        """Block while pacman's database lock file exists."""
        lock_path = os.path.join(db_path, "db.lck")
        if not os.path.exists(lock_path):
            return

        self.log.warnln(f"{lock_path} is present.")
        self.log.warn("There may be another Pacman instance running. Waiting...")

        while True:
            time.sleep(self.lock_poll_interval)
            if not os.path.exists(lock_path):
                self.log.println()
                return

    def sudo_loop(self) -> None:
        """Refresh sudo credentials now and keep them fresh in the background."""
        self._update_sudo()
        threading.Thread(target=self._sudo_loop_background, daemon=True).start()

    def _sudo_loop_background(self) -> None:
        while True:
            self._update_sudo()
            time.sleep(SUDO_LOOP_DURATION)

    def _update_sudo(self) -> None:
        while True:
            try:
                self.show(Command([self.sudo_bin, "-v"]))
            except Exception as exc:  # keep asking until credentials are accepted
                self.log.errorln(exc)
            else:
                return

    def show(self, cmd: Command) -> None:
        self.runner.show(cmd)

    def capture(self, cmd: Command) -> tuple[str, str]:
        return self.runner.capture(cmd)