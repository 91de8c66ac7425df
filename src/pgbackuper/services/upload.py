"""Object storage upload service for postgres-backuper."""

import io
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from minio import Minio

from pgbackuper.constants import DUMP_CONTENT_TYPE, DUMP_FILE_NAME
from pgbackuper.errors import ArchiveError, UploadError
from pgbackuper.errors_catalog import actionable_error
from pgbackuper.models import BackupArtifact, StorageOptions


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_object_key(app_name: str, moment: datetime) -> str:
    return f"{app_name}/{format_rfc3339(moment)}.sql"


def create_minio_client(options: StorageOptions, minio_cls=Minio):
    try:
        return minio_cls(
            endpoint=options.endpoint,
            access_key=options.access_key,
            secret_key=options.secret_key,
            secure=options.secure,
        )
    except (ValueError, TypeError) as exc:
        raise UploadError(
            actionable_error("storage_client_failed", endpoint=options.endpoint, error=str(exc))
        ) from exc


class UploadService:
    """Writes decoded dumps to the configured bucket."""

    def __init__(
        self,
        logger,
        client,
        bucket: str,
        clock: Callable[[], datetime] = utc_now,
        file_name: str = DUMP_FILE_NAME,
    ):
        self.logger = logger
        self.client = client
        self.bucket = bucket
        self.clock = clock
        self.file_name = file_name

    def check_bucket(self, endpoint: str = ""):
        try:
            exists = self.client.bucket_exists(bucket_name=self.bucket)
        except Exception as exc:
            raise UploadError(
                actionable_error("storage_client_failed", endpoint=endpoint, error=str(exc))
            ) from exc
        if not exists:
            raise UploadError(actionable_error("bucket_not_found", bucket=self.bucket, endpoint=endpoint))

    def build_artifact(self, app_name: str, file_map: Dict[str, bytes]) -> BackupArtifact:
        if self.file_name not in file_map:
            found = ", ".join(sorted(file_map)) or "<empty>"
            raise ArchiveError(f"Archive does not contain {self.file_name} (found: {found})")

        return BackupArtifact(
            key=build_object_key(app_name, self.clock()),
            payload=file_map[self.file_name],
        )

    def upload(self, app_name: str, file_map: Dict[str, bytes]) -> Optional[BackupArtifact]:
        artifact = self.build_artifact(app_name, file_map)

        try:
            result = self.client.put_object(
                bucket_name=self.bucket,
                object_name=artifact.key,
                data=io.BytesIO(artifact.payload),
                length=artifact.size,
                content_type=DUMP_CONTENT_TYPE,
            )
        except Exception as exc:
            self.logger.error("Failed to upload backup file for %s: %s", app_name, exc)
            return None

        location = getattr(result, "location", None) or f"{self.bucket}/{artifact.key}"
        self.logger.info("Uploaded backup file %s (%s bytes)", location, artifact.size)
        return artifact
