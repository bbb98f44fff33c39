"""Configuration and cache directory discovery, and settings errors."""

from __future__ import annotations

import os

CONFIG_FILE_NAME = "config.json"
VCS_FILE_NAME = "vcs.json"
COMPLETION_FILE_NAME = "completion.cache"
SYSTEMD_CACHE = "/var/cache/yay"  # created by systemd-run when running as root


class PrivilegeElevatorNotFoundError(Exception):
    """Raised when no sudo-like tool can be found."""

    def __init__(self, conf_value: str) -> None:
        self.conf_value = conf_value
        super().__init__(f"unable to find a privilege elevator, config value: {conf_value}")


class RuntimeDirError(OSError):
    """Raised when a runtime directory cannot be created."""

    def __init__(self, inner: BaseException, directory: str) -> None:
        self.inner = inner
        self.dir = directory
        super().__init__(f"failed to create directory '{directory}': {inner}")

    def __str__(self) -> str:
        return f"failed to create directory '{self.dir}': {self.inner}"


class UserAbortError(Exception):
    """Raised when the user aborts an operation."""

    def __init__(self) -> None:
        super().__init__("aborting due to user")


def init_dir(directory: str) -> None:
    """Create ``directory`` (and parents) if it does not exist.

    Raises RuntimeDirError when creation fails; other stat errors propagate.
    """
    try:
        os.stat(directory)
    except FileNotFoundError:
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise RuntimeDirError(exc, directory) from exc


def _try_dir(directory: str) -> bool:
    try:
        init_dir(directory)
    except OSError:
        return False
    return True


def get_config_path() -> str:
    """Return the config file path, creating its directory; empty if none is usable."""
    config_home = os.environ.get("XDG_CONFIG_HOME", "")
    if config_home:
        config_dir = os.path.join(config_home, "yay")
        if _try_dir(config_dir):
            return os.path.join(config_dir, CONFIG_FILE_NAME)

    home = os.environ.get("HOME", "")
    if home:
        config_dir = os.path.join(home, ".config", "yay")
        if _try_dir(config_dir):
            return os.path.join(config_dir, CONFIG_FILE_NAME)

    return ""


def _temp_dir() -> str:
    return os.environ.get("TMPDIR") or "/tmp"


def get_cache_home() -> str:
    """Return the cache directory, creating it when needed.

    Raises RuntimeDirError, whose ``dir`` names the chosen directory, when
    the temporary fallback cannot be created.
    """
    uid = os.geteuid()

    cache_home = os.environ.get("XDG_CACHE_HOME", "")
    if cache_home and uid != 0:
        cache_dir = os.path.join(cache_home, "yay")
        if _try_dir(cache_dir):
            return cache_dir

    home = os.environ.get("HOME", "")
    if home and uid != 0:
        cache_dir = os.path.join(home, ".cache", "yay")
        if _try_dir(cache_dir):
            return cache_dir

    if uid == 0 and not os.environ.get("SUDO_USER") and not os.environ.get("DOAS_USER"):
        return SYSTEMD_CACHE

    tmp_dir = os.path.join(_temp_dir(), "yay")
    try:
        init_dir(tmp_dir)
    except RuntimeDirError:
        raise
    except OSError as exc:
        raise RuntimeDirError(exc, tmp_dir) from exc
    return tmp_dir