"""
Configuration Sources
=====================

Holders for immutable rule snapshots.

``StaticConfigSource`` wraps a snapshot loaded once at startup.
``WatchedConfigSource`` loads a YAML file and, when watching is enabled,
swaps in a freshly parsed snapshot whenever the file changes. A snapshot is
never mutated; readers always see either the old or the new one.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Generic, Optional, TypeVar

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk_triage.core import ConfigurationException
from helpdesk_triage.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def read_yaml(path: Path) -> dict[str, Any]:
    """
    Read a YAML mapping from disk.

    Raises:
        ConfigurationException: If the file is missing, empty or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationException(
            f"Configuration file not found: {path}",
            {"path": str(path)}
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationException(
            f"Invalid YAML in {path}: {e}",
            {"path": str(path)}
        ) from e

    if not data:
        raise ConfigurationException(
            f"Configuration file is empty: {path}",
            {"path": str(path)}
        )
    if not isinstance(data, dict):
        raise ConfigurationException(
            f"Configuration file must contain a mapping: {path}",
            {"path": str(path)}
        )
    return data


class ConfigSource(ABC, Generic[T]):
    """Interface for access to the current configuration snapshot."""

    @abstractmethod
    def get(self) -> T:
        """Get the current snapshot."""


class StaticConfigSource(ConfigSource[T]):
    """A snapshot that never changes."""

    def __init__(self, value: T):
        self._value = value

    def get(self) -> T:
        return self._value


class ConfigFileHandler(FileSystemEventHandler):
    """
    Watchdog event handler for rule file changes.

    Editors that save through a temporary file and a rename produce a
    created or moved event for the rule file instead of a modification.
    """

    def __init__(self, source: "WatchedConfigSource", config_path: Path):
        self.source = source
        self.config_path = config_path.resolve()
        super().__init__()

    def _reload_if_config(self, path: str) -> None:
        if Path(path).resolve() == self.config_path:
            logger.info("Config file changed", extra={"path": str(path)})
            self.source.reload()

    def on_modified(self, event):
        """Handle file modification event."""
        if not event.is_directory:
            self._reload_if_config(event.src_path)

    def on_created(self, event):
        if not event.is_directory:
            self._reload_if_config(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._reload_if_config(event.dest_path)


class WatchedConfigSource(ConfigSource[T]):
    """
    Thread-safe configuration holder with hot-reload support.

    The initial load is strict: a missing or invalid file raises
    ConfigurationException. Later reloads keep the previous snapshot when
    the new file cannot be parsed.
    """

    def __init__(self, path: Path, loader: Callable[[dict[str, Any]], T]):
        self._path = Path(path)
        self._loader = loader
        self._lock = threading.Lock()
        self._observer: Optional[Observer] = None
        self._value: T = self._load()

    def _load(self) -> T:
        data = read_yaml(self._path)
        try:
            return self._loader(data)
        except ConfigurationException:
            raise
        except ValueError as e:
            # pydantic.ValidationError is a ValueError
            raise ConfigurationException(
                f"Invalid configuration in {self._path}: {e}",
                {"path": str(self._path)}
            ) from e

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> T:
        with self._lock:
            return self._value

    def reload(self) -> bool:
        """Reload configuration from file."""
        try:
            new_value = self._load()
        except ConfigurationException as e:
            logger.error(
                "Failed to reload configuration, keeping previous rules",
                extra={"path": str(self._path), "error": e.message}
            )
            return False

        with self._lock:
            self._value = new_value
        logger.info("Configuration reloaded", extra={"path": str(self._path)})
        return True

    def start_watching(self) -> None:
        """Start watching the file for changes."""
        if self._observer is not None:
            return

        try:
            observer = Observer()
            observer.schedule(
                ConfigFileHandler(self, self._path),
                str(self._path.parent),
                recursive=False
            )
            observer.start()
        except OSError as e:
            # inotify is unavailable in some containers
            logger.warning(
                "File watching not available, using static config",
                extra={"path": str(self._path), "error": str(e)}
            )
            return

        self._observer = observer
        logger.info("Started watching config file", extra={"path": str(self._path)})

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
