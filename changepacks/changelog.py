"""The .changepacks directory: configuration and changepack log entries.

Entries are JSON files named ``changepack_log_<id>.json``. They accumulate
until an update is applied, after which everything except config.json is
removed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path

from pydantic import ValidationError

from .errors import (
    AlreadyInitializedError,
    ChangelogParseError,
    ChangelogWriteError,
    ConfigParseError,
)
from .models import ChangeLogEntry, Config
from .project import CHANGEPACKS_DIR

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
LOG_PREFIX = "changepack_log_"


def changepacks_dir(root: Path) -> Path:
    return root / CHANGEPACKS_DIR


def load_config(root: Path) -> Config:
    """Load .changepacks/config.json, falling back to defaults when absent.

    Raises:
        ConfigParseError: If the file is not valid JSON or has bad fields.
    """
    path = changepacks_dir(root) / CONFIG_FILE
    if not path.is_file():
        logger.debug("no config at %s, using defaults", path)
        return Config()
    try:
        return Config.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        raise ConfigParseError(f"Invalid {CHANGEPACKS_DIR}/{CONFIG_FILE}: {exc}") from exc


def init_changepacks(root: Path, dry_run: bool = False) -> Path:
    """Create .changepacks/ with an empty config.json.

    Raises:
        AlreadyInitializedError: If config.json already exists.
    """
    directory = changepacks_dir(root)
    config_path = directory / CONFIG_FILE
    if config_path.exists():
        raise AlreadyInitializedError(
            f"Changepacks is already initialized ({CHANGEPACKS_DIR}/{CONFIG_FILE} exists)"
        )
    if not dry_run:
        directory.mkdir(parents=True, exist_ok=True)
        config_path.write_text("{}\n", encoding="utf-8")
    return config_path


class ChangelogStore:
    """Reads, writes and clears changepack log entries for one repository."""

    def __init__(self, root: Path) -> None:
        self.directory = changepacks_dir(root)

    def write(self, entry: ChangeLogEntry) -> str:
        """Serialize an entry to a new file and return its identifier."""
        entry_id = uuid.uuid4().hex
        path = self.directory / f"{LOG_PREFIX}{entry_id}.json"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise ChangelogWriteError(f"Failed to write {path.name}: {exc}") from exc
        logger.debug("wrote %s", path)
        return entry_id

    def read_all(self) -> list[ChangeLogEntry]:
        """Parse every entry in directory order.

        config.json and non-JSON files are skipped. A missing directory
        yields no entries.

        Raises:
            ChangelogParseError: If any entry cannot be parsed.
        """
        if not self.directory.is_dir():
            return []
        entries = []
        for path in sorted(self.directory.iterdir()):
            if path.name == CONFIG_FILE or path.suffix != ".json" or not path.is_file():
                continue
            try:
                entries.append(ChangeLogEntry.model_validate_json(path.read_bytes()))
            except (OSError, ValidationError) as exc:
                raise ChangelogParseError(f"Invalid changepack log {path.name}: {exc}") from exc
        return entries

    async def clear(self) -> None:
        """Remove everything in the directory except config.json.

        Removals run concurrently; files already removed stay removed if
        another removal fails.

        Raises:
            ChangelogWriteError: If any removal fails.
        """
        if not self.directory.is_dir():
            return
        targets = [
            path
            for path in self.directory.iterdir()
            if path.name != CONFIG_FILE and not path.is_dir()
        ]
        results = await asyncio.gather(
            *(asyncio.to_thread(path.unlink) for path in targets),
            return_exceptions=True,
        )
        failures = [
            f"{path.name}: {result}"
            for path, result in zip(targets, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            raise ChangelogWriteError(
                "Failed to remove changepack logs: " + "; ".join(failures)
            )
        logger.debug("removed %d changepack log(s)", len(targets))


def dump_config(config: Config) -> str:
    return json.dumps(config.model_dump(by_alias=True), indent=2)
