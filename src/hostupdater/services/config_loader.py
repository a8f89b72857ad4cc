"""Configuration loader for hostupdater."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from hostupdater.errors import UpdaterError


class ConfigLoader:
    """Loads and type-checks the YAML file that supplies CLI defaults.

    Values are validated per key, so a quoted ``dry_run: "false"`` is
    rejected instead of being read as a truthy string.
    """

    BOOLEAN_KEYS = frozenset({"skip_flatpak", "security_only", "dry_run", "backup_etc", "verbose"})
    INTEGER_KEYS = frozenset({"min_free_mb", "timeout", "journal_days", "apt_lock_timeout"})
    PATH_KEYS = frozenset({"logfile", "backup_dir", "config_dir"})
    SUPPORTED_KEYS = BOOLEAN_KEYS | INTEGER_KEYS | PATH_KEYS

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise UpdaterError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise UpdaterError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise UpdaterError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(map(str, parsed.keys())) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise UpdaterError(f"Unknown configuration keys: {unknown_list}")

        for key, value in parsed.items():
            self._validate(key, value)

        return parsed

    def _validate(self, key: str, value: Any):
        if key in self.BOOLEAN_KEYS:
            if not isinstance(value, bool):
                raise UpdaterError(
                    f"Configuration key '{key}' must be true or false, got {value!r}."
                )
        elif key in self.INTEGER_KEYS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise UpdaterError(
                    f"Configuration key '{key}' must be a non-negative integer, got {value!r}."
                )
        elif key in self.PATH_KEYS:
            if not isinstance(value, str) or not value.strip():
                raise UpdaterError(
                    f"Configuration key '{key}' must be a non-empty path, got {value!r}."
                )
