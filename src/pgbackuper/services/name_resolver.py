"""Backup target resolution from container labels and environment."""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pgbackuper.constants import (
    APP_NAME_LABEL,
    DB_NAME_ENV,
    DB_NAME_LABEL,
    DB_USER_ENV,
    DB_USER_LABEL,
    DEFAULT_DB_NAME,
    DEFAULT_DB_USER,
)
from pgbackuper.models import BackupTarget, ContainerDescriptor


@dataclass(frozen=True)
class ResolutionRule:
    """Label override, then container env var, then a fixed default."""

    label: str
    env_key: Optional[str] = None
    default: Optional[str] = None


class NameResolver:
    """Derives app name and database credentials for a discovered container.

    Resolution never fails: inspection errors and malformed environment
    entries fall back to the rule's default. A rule without a default
    falls back to the container's first name, then its short id.
    """

    RULES: Dict[str, ResolutionRule] = {
        "app_name": ResolutionRule(label=APP_NAME_LABEL),
        "db_name": ResolutionRule(label=DB_NAME_LABEL, env_key=DB_NAME_ENV, default=DEFAULT_DB_NAME),
        "db_user": ResolutionRule(label=DB_USER_LABEL, env_key=DB_USER_ENV, default=DEFAULT_DB_USER),
    }

    def __init__(self, logger, inspect_env: Callable[[str], List[str]]):
        self.logger = logger
        self.inspect_env = inspect_env

    def resolve(self, container: ContainerDescriptor) -> BackupTarget:
        env: Optional[Dict[str, str]] = None
        values: Dict[str, str] = {}

        for field_name, rule in self.RULES.items():
            if rule.label in container.labels:
                values[field_name] = container.labels[rule.label]
                continue

            if rule.env_key is not None:
                if env is None:
                    env = self._load_env(container)
                if rule.env_key in env:
                    values[field_name] = env[rule.env_key]
                    continue

            values[field_name] = self._fallback(rule, container)

        return BackupTarget(**values)

    @staticmethod
    def _fallback(rule: ResolutionRule, container: ContainerDescriptor) -> str:
        if rule.default is not None:
            return rule.default
        if container.names:
            return container.names[0]
        return container.short_id

    def _load_env(self, container: ContainerDescriptor) -> Dict[str, str]:
        try:
            entries = self.inspect_env(container.id) or []
        except Exception as exc:
            self.logger.debug(
                "Could not inspect environment of %s, using defaults: %s",
                container.short_id,
                exc,
            )
            return {}

        return self.parse_env(entries)

    @staticmethod
    def parse_env(entries: List[str]) -> Dict[str, str]:
        parsed: Dict[str, str] = {}
        for entry in entries:
            if not isinstance(entry, str) or "=" not in entry:
                continue
            key, value = entry.split("=", 1)
            parsed.setdefault(key, value)
        return parsed
