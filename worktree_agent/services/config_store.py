"""Configuration store: loads and atomically saves the per-repository config file."""
import json
import os
from pathlib import Path
from typing import List, Optional, Union

from worktree_agent.config import Config, compile_pattern
from worktree_agent.constants import CONFIG_FILE_NAME, CONFIG_VERSION, DEFAULT_POLL_INTERVAL_SECONDS
from worktree_agent.exceptions import ConfigError, ConfigIOError
from worktree_agent.logging_config import get_logger

logger = get_logger(__name__)


class ConfigStore:
    """Reads and writes `Config` as JSON in the repository root."""

    def __init__(self, repo_root: Union[str, Path], exclude_file: Optional[Path] = None):
        """Initialize the store for a repository.

        Args:
            repo_root: Root of the main working tree
            exclude_file: The repository's info/exclude file; the config file
                name is appended to it on first save so it stays per-user
        """
        self.repo_root = Path(repo_root)
        self.config_file = self.repo_root / CONFIG_FILE_NAME
        self.exclude_file = exclude_file
        self.warnings: List[str] = []
        # Set when the file exists but could not be read; saving would clobber it
        self._unreadable = False

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def exists(self) -> bool:
        return self.config_file.exists()

    def load(self) -> Config:
        """Load the config, falling back to defaults when the file is missing or corrupt.

        Returns:
            The loaded (and possibly migrated or repaired) Config

        A file that exists but cannot be read also yields defaults, and `save`
        refuses to overwrite it until a later `load` succeeds.
        """
        self.warnings = []
        self._unreadable = False
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}, using defaults")
            return Config()

        try:
            raw = self.config_file.read_text(encoding="utf-8")
        except OSError as e:
            self._unreadable = True
            self._warn(f"Cannot read {self.config_file} ({e}); using defaults and leaving the file untouched")
            return Config()

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
        except ValueError as e:
            backup = self._backup_corrupt_file()
            self._warn(f"Config file is not valid JSON ({e}); using defaults. Old file kept at {backup}")
            return Config()

        try:
            data = self._repair(self._migrate(data))
            config = Config.from_dict(data)
        except (ConfigError, ValueError, TypeError, KeyError) as e:
            backup = self._backup_corrupt_file()
            self._warn(f"Config file has invalid values ({e}); using defaults. Old file kept at {backup}")
            return Config()

        logger.debug(
            f"Loaded config v{config.version}: {len(config.tracked_branches)} tracked, "
            f"{len(config.untracked_branches)} untracked, {len(config.worktrees)} worktrees"
        )
        return config

    def save(self, config: Config) -> None:
        """Write the config using write-temp-then-rename.

        Raises:
            ConfigIOError: The file could not be written; the old file is untouched
        """
        if self._unreadable:
            raise ConfigIOError(self.config_file, "not overwriting a file that could not be read")
        temp_file = self.config_file.with_name(self.config_file.name + ".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())

            # Atomic rename (POSIX systems guarantee atomicity)
            temp_file.replace(self.config_file)
            logger.debug(f"Saved config to {self.config_file}")
        except OSError as e:
            raise ConfigIOError(self.config_file, f"cannot write: {e}") from e
        finally:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    pass

        self._ensure_excluded()

    def _backup_corrupt_file(self) -> Path:
        backup = self.config_file.with_name(self.config_file.name + ".bak")
        try:
            self.config_file.replace(backup)
        except OSError as e:
            logger.debug(f"Could not back up corrupt config: {e}")
        return backup

    def _ensure_excluded(self) -> None:
        """Append the config file name to info/exclude once."""
        if self.exclude_file is None:
            return
        try:
            existing = self.exclude_file.read_text(encoding="utf-8") if self.exclude_file.exists() else ""
            if CONFIG_FILE_NAME in existing.splitlines():
                return
            self.exclude_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.exclude_file, "a", encoding="utf-8") as f:
                if existing and not existing.endswith("\n"):
                    f.write("\n")
                f.write(f"{CONFIG_FILE_NAME}\n")
            logger.debug(f"Added {CONFIG_FILE_NAME} to {self.exclude_file}")
        except OSError as e:
            logger.debug(f"Could not update {self.exclude_file}: {e}")

    def _migrate(self, data: dict) -> dict:
        """Bring older file layouts up to the current schema version."""
        version = data.get("version")
        if version == CONFIG_VERSION:
            return data
        if version is None:
            logger.info("Config file has no version, filling in defaults for missing fields")
        elif isinstance(version, int) and version > CONFIG_VERSION:
            self._warn(f"Config file version {version} is newer than supported ({CONFIG_VERSION}); unknown fields ignored")
            return {**data, "version": CONFIG_VERSION}
        else:
            logger.info(f"Migrating config from version {version} to {CONFIG_VERSION}")

        migrated = dict(data)
        if "poll_interval_secs" in migrated and "poll_interval_seconds" not in migrated:
            migrated["poll_interval_seconds"] = migrated.pop("poll_interval_secs")
        if "worktrees" in migrated and isinstance(migrated["worktrees"], list):
            migrated["worktrees"] = [self._migrate_worktree(w) for w in migrated["worktrees"] if isinstance(w, dict)]
        migrated["version"] = CONFIG_VERSION
        return migrated

    @staticmethod
    def _migrate_worktree(entry: dict) -> dict:
        """Convert a version 1 worktree record."""
        if "branch_name" in entry:
            return entry
        hook_status = entry.get("hook_status")
        if hook_status == "Running":
            status = {"state": "interrupted", "reason": "agent exited while the hook was running"}
        elif isinstance(hook_status, dict) and "Failed" in hook_status:
            status = {"state": "failed", "reason": str(hook_status["Failed"])}
        else:
            # "None", "Success" and "Skipped" all mean nothing is left to do
            status = {"state": "succeeded", "exit_code": 0}
        return {
            "branch_name": entry.get("branch", ""),
            "path": entry.get("path", ""),
            "created_at": entry.get("created_at"),
            "hook_status": status,
        }

    def _repair(self, data: dict) -> dict:
        """Drop individual bad values so one typo does not discard the whole file."""
        repaired = dict(data)

        interval = repaired.get("poll_interval_seconds")
        if interval is not None and (isinstance(interval, bool) or not isinstance(interval, int) or interval < 0):
            self._warn(f"Invalid poll_interval_seconds {interval!r}; using {DEFAULT_POLL_INTERVAL_SECONDS}")
            repaired["poll_interval_seconds"] = DEFAULT_POLL_INTERVAL_SECONDS

        patterns = repaired.get("ignore_patterns")
        if patterns is not None:
            if not isinstance(patterns, list):
                self._warn("ignore_patterns is not a list; using defaults")
                repaired.pop("ignore_patterns")
            else:
                valid = []
                for pattern in patterns:
                    try:
                        compile_pattern(pattern)
                        valid.append(pattern)
                    except ConfigError as e:
                        self._warn(f"Dropping {e}")
                repaired["ignore_patterns"] = valid

        tracked = self._repair_branch_list(repaired, "tracked_branches")
        untracked = self._repair_branch_list(repaired, "untracked_branches")
        overlap = tracked & untracked
        if overlap:
            self._warn(f"Branches both tracked and untracked, keeping them tracked: {', '.join(sorted(overlap))}")
            repaired["untracked_branches"] = sorted(untracked - overlap)

        worktrees = repaired.get("worktrees")
        if isinstance(worktrees, list):
            repaired["worktrees"] = [
                w for w in worktrees
                if isinstance(w, dict) and w.get("branch_name") and w.get("path")
            ]

        return repaired

    def _repair_branch_list(self, data: dict, key: str) -> set:
        """Keep only the branch names that are non-empty strings."""
        names = data.get(key)
        if names is None:
            return set()
        if not isinstance(names, list):
            self._warn(f"{key} is not a list; ignoring it")
            data.pop(key)
            return set()
        valid = [name for name in names if isinstance(name, str) and name]
        if len(valid) != len(names):
            dropped = [name for name in names if not (isinstance(name, str) and name)]
            self._warn(f"Dropping invalid entries from {key}: {dropped!r}")
            data[key] = valid
        return set(valid)
