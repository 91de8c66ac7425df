import logging
from datetime import datetime
from typing import Callable, List, Optional

from rich.console import Console

from .errors import BackuperError, DiscoveryError
from .models import (
    BackuperOptions,
    BackupTarget,
    ContainerBackupResult,
    ContainerDescriptor,
    ScanReport,
)
from .services.archive import ArchiveService
from .services.docker_runtime import DockerRuntimeService
from .services.dump import DumpService
from .services.name_resolver import NameResolver
from .services.scheduler import ScheduleService
from .services.upload import UploadService, create_minio_client, utc_now

console = Console()
logger = logging.getLogger("pgbackuper")


class Backuper:
    """Discovers labelled postgres containers and ships their dumps to object storage."""

    SHUTDOWN_POLL_SECONDS = 1.0

    def __init__(
        self,
        options: BackuperOptions,
        runtime=None,
        storage_client=None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.options = options
        self.clock = clock

        # validate storage and schedule before opening a docker client
        if storage_client is None:
            storage_client = create_minio_client(options.storage)
        self.schedule_service: Optional[ScheduleService] = None
        if not options.one_shot:
            self.schedule_service = ScheduleService(
                logger=logger,
                schedule=options.schedule,
                job=self.scan,
            )

        self.runtime = runtime if runtime is not None else DockerRuntimeService(logger=logger)

        self.name_resolver = NameResolver(logger=logger, inspect_env=self.runtime.inspect_env)
        self.dump_service = DumpService(
            logger=logger,
            runtime=self.runtime,
            exec_timeout=options.exec_timeout,
            poll_interval=options.poll_interval,
        )
        self.archive_service = ArchiveService()
        self.upload_service = UploadService(
            logger=logger,
            client=storage_client,
            bucket=options.storage.bucket,
            clock=clock,
        )

    def verify_storage(self):
        self.upload_service.check_bucket(endpoint=self.options.storage.endpoint)

    def scan(self) -> ScanReport:
        started_at = self.clock()
        logger.info("Start containers scan")

        try:
            containers = self.runtime.list_backup_containers()
        except DiscoveryError as exc:
            logger.error("%s", exc)
            return ScanReport(
                started_at=started_at,
                finished_at=self.clock(),
                discovery_error=str(exc),
            )

        results: List[ContainerBackupResult] = []
        for container in containers:
            try:
                results.append(self.backup_container(container))
            except Exception as exc:
                logger.exception("Unexpected error while backing up %s", container.short_id)
                results.append(
                    ContainerBackupResult(
                        container_id=container.id,
                        app_name=None,
                        status="failed",
                        error=str(exc),
                    )
                )

        report = ScanReport(started_at=started_at, finished_at=self.clock(), results=tuple(results))
        logger.info(
            "End containers scan: %s succeeded, %s failed",
            report.succeeded,
            report.failed,
        )
        return report

    def resolve_target(self, container: ContainerDescriptor) -> BackupTarget:
        return self.name_resolver.resolve(container)

    def backup_container(self, container: ContainerDescriptor) -> ContainerBackupResult:
        short_id = container.short_id
        logger.info("Starting backup for container %s", short_id)

        target = self.resolve_target(container)
        logger.debug(
            "Resolved %s: app=%s database=%s user=%s",
            short_id,
            target.app_name,
            target.db_name,
            target.db_user,
        )

        try:
            stream = self.dump_service.dump(container, target)
            file_map = self.archive_service.decode_tar(stream)
            artifact = self.upload_service.upload(target.app_name, file_map)
        except BackuperError as exc:
            logger.error("Failed to back up %s: %s", short_id, exc)
            return ContainerBackupResult(
                container_id=container.id,
                app_name=target.app_name,
                status="failed",
                error=str(exc),
            )

        if artifact is None:
            return ContainerBackupResult(
                container_id=container.id,
                app_name=target.app_name,
                status="upload_failed",
                error="upload failed",
            )

        logger.info("Finished backup for container %s", short_id)
        return ContainerBackupResult(
            container_id=container.id,
            app_name=target.app_name,
            status="success",
            key=artifact.key,
        )

    def run_once(self) -> int:
        try:
            report = self.scan()
        finally:
            self.close()

        if report.discovery_error or report.failed:
            return 1
        return 0

    def run(self, shutdown) -> int:
        if self.schedule_service is None:
            return self.run_once()

        try:
            self.schedule_service.start()
            console.print(
                f"[green]Started postgres backuper[/green] [dim](schedule: {self.options.schedule})[/dim]"
            )
            logger.info("Started postgres backuper")

            while not shutdown.wait(self.SHUTDOWN_POLL_SECONDS):
                pass

            self.schedule_service.stop(wait=True)
            console.print("[green]Stopped gracefully.[/green]")
            logger.info("Stopped gracefully")
            return 0
        finally:
            self.close()

    def close(self):
        self.runtime.close()
