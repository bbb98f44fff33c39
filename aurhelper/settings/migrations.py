"""One-off upgrades applied to older configuration files."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from aurhelper.query.version_diff import vercmp
from aurhelper.settings.config import Configuration
from aurhelper.text.logger import infoln


class ConfigMigration(ABC):
    """A change applied to configurations older than its target version."""

    @abstractmethod
    def do(self, config: Configuration) -> bool:
        """Apply the migration; return True if the configuration changed."""

    @abstractmethod
    def target_version(self) -> str:
        """The release that introduced this migration, e.g. ``11.2.1``."""

    @abstractmethod
    def __str__(self) -> str:
        """Describe what the migration does."""


class ProviderMigration(ConfigMigration):
    """Turn the 'provides' setting off."""

    def do(self, config: Configuration) -> bool:
        if config.provides:
            config.provides = False
            return True
        return False

    def target_version(self) -> str:
        return "11.2.1"

    def __str__(self) -> str:
        return "Disable 'provides' setting by default"


def default_migrations() -> list[ConfigMigration]:
    return [ProviderMigration()]


def run_migrations(
    config: Configuration,
    migrations: Iterable[ConfigMigration],
    config_path: str,
    new_version: str,
) -> None:
    """Apply pending migrations and save the configuration if any changed it."""
    changed = False

    for migration in migrations:
        if vercmp(migration.target_version(), config.version) > 0 and migration.do(config):
            infoln("Config migration executed (", migration.target_version(), "):", migration)
            changed = True

    if changed:
        config.save(config_path, new_version)