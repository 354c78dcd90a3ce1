"""
Preferences Service - persistence for application configuration
Stores build tool settings, the board catalog location and recent projects
"""

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class PreferencesService:
    """
    Application preferences, persisted as JSON.
    Single source of truth for host configuration (never project state).
    """

    PREFERENCES_FILE = "preferences.json"
    PREFERENCES_ENV = "BOARDFORGE_PREFERENCES"

    MAX_RECENT_PROJECTS = 10

    def __init__(self, config_path: str = None):
        self._lock = threading.RLock()  # RLock allows re-entrant locking from same thread
        self._preferences: Dict[str, Any] = self._default_preferences()
        self._config_path = config_path if config_path else self._get_config_path()
        self._load()

    def _get_config_path(self) -> str:
        """Get path to preferences file."""
        override = os.environ.get(self.PREFERENCES_ENV)
        if override:
            return override
        config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
        return os.path.join(config_home, "boardforge", self.PREFERENCES_FILE)

    @property
    def config_path(self) -> str:
        return self._config_path

    def _default_preferences(self) -> Dict[str, Any]:
        """Return default preferences structure."""
        return {
            "build": {
                "tool": "cargo",
                "stop_on_failure": False,  # keep running queued commands after a failure
            },
            "boards": {"directory": ""},  # empty = bundled board resources
            "logging": {"level": "INFO"},
            "projects": {"recent": []},
        }

    def _load(self):
        """Load preferences from file."""
        try:
            if os.path.exists(self._config_path):
                with open(self._config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)

                # Merge with defaults (to add any new fields)
                defaults = self._default_preferences()
                if isinstance(loaded, dict):
                    self._deep_merge(defaults, loaded)
                else:
                    logger.warning(f"Ignoring malformed preferences in {self._config_path}")
                self._preferences = defaults

                logger.info(f"Loaded preferences from {self._config_path}")
            else:
                # First run - create preferences file with defaults
                logger.info("First run detected - creating preferences file")
                self._preferences = self._default_preferences()
                self._save()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load preferences: {e}")
            self._preferences = self._default_preferences()

    def _deep_merge(self, base: dict, override: dict):
        """Deep merge override into base (modifies base in place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save(self) -> bool:
        """Save preferences to file with synchronization."""
        try:
            with self._lock:
                directory = os.path.dirname(self._config_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(self._config_path, "w", encoding="utf-8") as f:
                    json.dump(self._preferences, f, indent=2)
                    # Force OS to write to disk while file is still open
                    f.flush()
                    os.fsync(f.fileno())
            return True
        except OSError as e:
            logger.warning(f"Failed to save preferences: {e}")
            return False

    # ==================== Build Configuration ====================

    def get_build_config(self) -> Dict[str, Any]:
        """Get build tool configuration."""
        with self._lock:
            cfg = self._preferences.get("build", {})
            return {
                "tool": cfg.get("tool") or "cargo",
                "stop_on_failure": bool(cfg.get("stop_on_failure", False)),
            }

    def set_build_config(self, tool: Optional[str] = None, stop_on_failure: Optional[bool] = None) -> bool:
        """Update build configuration; None leaves a value unchanged."""
        with self._lock:
            build = self._preferences.setdefault("build", {})
            if tool is not None:
                build["tool"] = tool
            if stop_on_failure is not None:
                build["stop_on_failure"] = stop_on_failure
            return self._save()

    # ==================== Boards ====================

    def get_boards_directory(self) -> str:
        """Board catalog directory, empty string for the bundled catalog."""
        with self._lock:
            return self._preferences.get("boards", {}).get("directory", "") or ""

    def set_boards_directory(self, directory: str) -> bool:
        with self._lock:
            self._preferences.setdefault("boards", {})["directory"] = directory
            return self._save()

    # ==================== Logging ====================

    def get_log_level(self) -> str:
        with self._lock:
            return str(self._preferences.get("logging", {}).get("level", "INFO")).upper()

    def set_log_level(self, level: str) -> bool:
        with self._lock:
            self._preferences.setdefault("logging", {})["level"] = level.upper()
            return self._save()

    # ==================== Recent Projects ====================

    def get_recent_projects(self) -> List[str]:
        with self._lock:
            return list(self._preferences.get("projects", {}).get("recent", []))

    def add_recent_project(self, location: str) -> bool:
        """Move ``location`` to the front of the recent projects list."""
        with self._lock:
            projects = self._preferences.setdefault("projects", {})
            recent = [p for p in projects.get("recent", []) if p != location]
            recent.insert(0, location)
            projects["recent"] = recent[: self.MAX_RECENT_PROJECTS]
            return self._save()

    def clear_recent_projects(self) -> bool:
        with self._lock:
            self._preferences.setdefault("projects", {})["recent"] = []
            return self._save()

    # ==================== General ====================

    def get_all_preferences(self) -> Dict[str, Any]:
        """Get a copy of all preferences."""
        with self._lock:
            return json.loads(json.dumps(self._preferences))

    def reset_to_defaults(self) -> bool:
        """Reset all preferences to defaults."""
        with self._lock:
            self._preferences = self._default_preferences()
            return self._save()


# Singleton instance
_preferences_service: Optional[PreferencesService] = None


def get_preferences() -> PreferencesService:
    """Get the singleton preferences service instance."""
    global _preferences_service
    if _preferences_service is None:
        _preferences_service = PreferencesService()
    return _preferences_service
