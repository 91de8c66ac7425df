"""Configuration loader for postgres-backuper."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pgbackuper.errors import BackuperError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults.

    Timing keys are coerced to positive floats and flag keys to booleans, so a
    quoted `"false"` in the file behaves like the YAML literal.
    """

    STRING_KEYS = {"schedule", "endpoint", "access_key", "secret_key", "bucket", "log_file"}
    BOOL_KEYS = {"use_ssl", "do", "verbose"}
    SECONDS_KEYS = {"exec_timeout", "poll_interval"}
    SUPPORTED_KEYS = STRING_KEYS | BOOL_KEYS | SECONDS_KEYS

    TRUE_STRINGS = {"1", "true", "yes", "on"}
    FALSE_STRINGS = {"0", "false", "no", "off"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise BackuperError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise BackuperError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise BackuperError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise BackuperError(f"Unknown configuration keys: {unknown_list}")

        return {
            key: self._coerce(key, value) for key, value in parsed.items() if value is not None
        }

    def _coerce(self, key: str, value: Any) -> Any:
        if key in self.BOOL_KEYS:
            return self._to_bool(key, value)
        if key in self.SECONDS_KEYS:
            return self._to_seconds(key, value)
        return str(value)

    def _to_bool(self, key: str, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        normalized = str(value).strip().lower()
        if normalized in self.TRUE_STRINGS:
            return True
        if normalized in self.FALSE_STRINGS:
            return False
        raise BackuperError(f"Config key '{key}' must be a boolean, got {value!r}.")

    def _to_seconds(self, key: str, value: Any) -> float:
        if isinstance(value, bool):
            raise BackuperError(f"Config key '{key}' must be a number of seconds, got {value!r}.")
        try:
            seconds = float(value)
        except (TypeError, ValueError) as exc:
            raise BackuperError(
                f"Config key '{key}' must be a number of seconds, got {value!r}."
            ) from exc
        if seconds <= 0:
            raise BackuperError(f"Config key '{key}' must be greater than zero, got {value!r}.")
        return seconds
