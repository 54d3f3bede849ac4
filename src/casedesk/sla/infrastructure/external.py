"""
SLA External Integrations
==========================

YAML config file loading with watchdog hot-reload.
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from casedesk.config import Settings
from casedesk.core import ConfigurationException
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.sla.application.services import ITriageConfigProvider
from casedesk.sla.domain.value_objects import TriageConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for triage config file changes."""

    def __init__(self, config_manager: "TriageConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info(f"Config file changed: {event.src_path}")
            self.config_manager.reload()

    on_created = on_modified


class TriageConfigManager(ITriageConfigProvider):
    """
    Thread-safe triage configuration manager with hot-reload support.

    The YAML file overlays the defaults taken from Settings. Uses watchdog
    to monitor file changes and reload configuration without restarting
    the service. A manager built with `initial` is ready without a load()
    call.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        initial: Optional[TriageConfig] = None
    ):
        self._settings = settings
        self._config: Optional[TriageConfig] = initial
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def _defaults(self, **overrides) -> TriageConfig:
        if self._settings is None:
            return TriageConfig(**overrides)
        return TriageConfig.from_settings(self._settings, **overrides)

    def load(self, path: Path) -> TriageConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: If the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(f"Invalid triage config {self._path}: {e}")
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> TriageConfig:
        """Load and parse YAML config file."""
        if not path.exists():
            logger.warning(f"Triage config file not found: {path}, using defaults")
            return self._defaults()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise TypeError("top-level YAML value must be a mapping")

        return self._defaults(**data)

    def reload(self) -> bool:
        """Reload configuration from file, keeping the old config on error."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            logger.error(f"Failed to reload triage config: {e}")
            return False

        with self._lock:
            self._config = new_config
        logger.info("Triage configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or inotify is unavailable
        (e.g. some containers).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                f"Config file doesn't exist, skipping file watch: {self._path}. "
                "Using default triage configuration."
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching config file: {self._path}")
        except OSError as e:
            logger.warning(
                f"File watching not available, using static config: {e}"
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_config(self) -> TriageConfig:
        return self.config

    @property
    def config(self) -> TriageConfig:
        """Get current configuration."""
        with self._lock:
            config = self._config
        if config is None:
            raise RuntimeError("Triage configuration not loaded")
        return config
