from datetime import datetime, timedelta, timezone

import pytest

from pgbackuper.errors import ArchiveError, UploadError
from pgbackuper.models import StorageOptions
from pgbackuper.services.upload import (
    UploadService,
    build_object_key,
    create_minio_client,
    format_rfc3339,
)

FIXED_NOW = datetime(2023, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class RecordingLogger:
    def __init__(self):
        self.errors = []
        self.infos = []

    def info(self, message, *args, **_kwargs):
        self.infos.append(message % args)

    def error(self, message, *args, **_kwargs):
        self.errors.append(message % args)


class FakePutResult:
    location = None


class FakeMinio:
    def __init__(self, error=None, bucket_exists=True):
        self.error = error
        self.exists = bucket_exists
        self.puts = []

    def put_object(self, bucket_name, object_name, data, length, content_type=None):
        if self.error is not None:
            raise self.error
        self.puts.append(
            {
                "bucket": bucket_name,
                "key": object_name,
                "payload": data.read(),
                "length": length,
                "content_type": content_type,
            }
        )
        return FakePutResult()

    def bucket_exists(self, bucket_name):
        return self.exists


def _service(client, logger=None):
    return UploadService(
        logger=logger or RecordingLogger(),
        client=client,
        bucket="backups",
        clock=lambda: FIXED_NOW,
    )


def test_build_object_key_uses_rfc3339_utc():
    assert build_object_key("shop", FIXED_NOW) == "shop/2023-01-01T00:00:00Z.sql"


def test_format_rfc3339_normalizes_offsets_to_utc():
    moment = datetime(2023, 1, 1, 2, 30, 15, 999, tzinfo=timezone(timedelta(hours=2)))

    assert format_rfc3339(moment) == "2023-01-01T00:30:15Z"


def test_upload_puts_dump_under_app_key():
    client = FakeMinio()
    logger = RecordingLogger()

    artifact = _service(client, logger).upload("shop", {"dump.sql": b"SELECT 1;"})

    assert artifact.key == "shop/2023-01-01T00:00:00Z.sql"
    assert artifact.size == 9
    assert client.puts == [
        {
            "bucket": "backups",
            "key": "shop/2023-01-01T00:00:00Z.sql",
            "payload": b"SELECT 1;",
            "length": 9,
            "content_type": "application/sql",
        }
    ]
    assert any("backups/shop/2023-01-01T00:00:00Z.sql" in line for line in logger.infos)


def test_upload_failure_is_logged_and_not_raised():
    logger = RecordingLogger()
    client = FakeMinio(error=ConnectionError("connection refused"))

    artifact = _service(client, logger).upload("shop", {"dump.sql": b"x"})

    assert artifact is None
    assert logger.errors == ["Failed to upload backup file for shop: connection refused"]


def test_upload_requires_dump_file_in_archive():
    with pytest.raises(ArchiveError, match="does not contain dump.sql"):
        _service(FakeMinio()).upload("shop", {"other.txt": b"x"})


def test_check_bucket_raises_when_missing():
    with pytest.raises(UploadError, match="Bucket `backups` does not exist"):
        _service(FakeMinio(bucket_exists=False)).check_bucket(endpoint="minio:9000")


def test_create_minio_client_wraps_invalid_endpoint():
    def failing_minio(**_kwargs):
        raise ValueError("path in endpoint is not allowed")

    options = StorageOptions(
        endpoint="http://minio:9000/path",
        access_key="key",
        secret_key="secret",
        bucket="backups",
    )

    with pytest.raises(UploadError, match="Suggested action"):
        create_minio_client(options, minio_cls=failing_minio)


def test_create_minio_client_passes_credentials():
    captured = {}

    def fake_minio(**kwargs):
        captured.update(kwargs)
        return "client"

    options = StorageOptions("minio:9000", "key", "secret", "backups", secure=False)

    assert create_minio_client(options, minio_cls=fake_minio) == "client"
    assert captured == {
        "endpoint": "minio:9000",
        "access_key": "key",
        "secret_key": "secret",
        "secure": False,
    }
