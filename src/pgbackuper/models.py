"""Shared domain models for postgres-backuper."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

from .constants import (
    DEFAULT_EXEC_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SCHEDULE,
    SHORT_ID_LENGTH,
)


@dataclass(frozen=True)
class ContainerDescriptor:
    """Snapshot of a discovered container, taken once per scan."""

    id: str
    labels: Dict[str, str] = field(default_factory=dict)
    names: Tuple[str, ...] = ()

    @property
    def short_id(self) -> str:
        return self.id[:SHORT_ID_LENGTH]

    @classmethod
    def from_api(cls, record: Dict) -> "ContainerDescriptor":
        """Builds a descriptor from a Docker `/containers/json` entry."""
        names = tuple(name.lstrip("/") for name in (record.get("Names") or []) if name)
        return cls(
            id=record["Id"],
            labels=dict(record.get("Labels") or {}),
            names=names,
        )


@dataclass(frozen=True)
class BackupTarget:
    app_name: str
    db_name: str
    db_user: str


@dataclass(frozen=True)
class BackupArtifact:
    key: str
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class StorageOptions:
    """Connection settings for the S3-compatible object store."""

    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    secure: bool = True

    def __repr__(self) -> str:
        return (
            f"StorageOptions(endpoint={self.endpoint!r}, access_key={self.access_key!r}, "
            f"secret_key='***', bucket={self.bucket!r}, secure={self.secure!r})"
        )


@dataclass(frozen=True)
class BackuperOptions:
    storage: StorageOptions
    schedule: str = DEFAULT_SCHEDULE
    exec_timeout: float = DEFAULT_EXEC_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    one_shot: bool = False


@dataclass(frozen=True)
class ContainerBackupResult:
    container_id: str
    app_name: Optional[str]
    status: str
    key: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class ScanReport:
    """Outcome of one scan cycle."""

    started_at: datetime
    finished_at: datetime
    results: Tuple[ContainerBackupResult, ...] = ()
    discovery_error: Optional[str] = None

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded
