"""Docker runtime adapter for postgres-backuper."""

from typing import Dict, Iterator, List

import docker
import requests
from docker.errors import DockerException

from pgbackuper.constants import BACKUP_LABEL_SELECTOR
from pgbackuper.errors import BackuperError, DiscoveryError
from pgbackuper.errors_catalog import actionable_error
from pgbackuper.models import ContainerDescriptor


class DockerRuntimeService:
    """Thin wrapper over the low-level docker API used by the backup pipeline."""

    def __init__(self, logger, client=None, docker_module=docker):
        self.logger = logger
        if client is None:
            try:
                client = docker_module.from_env()
            except DockerException as exc:
                raise BackuperError(actionable_error("docker_unavailable", error=str(exc))) from exc
        self.client = client

    @property
    def api(self):
        return self.client.api

    def list_backup_containers(self, selector: str = BACKUP_LABEL_SELECTOR) -> List[ContainerDescriptor]:
        try:
            records = self.api.containers(filters={"label": selector})
        except (DockerException, requests.exceptions.RequestException) as exc:
            raise DiscoveryError(f"Failed to list containers: {exc}") from exc

        containers = [ContainerDescriptor.from_api(record) for record in records]
        self.logger.debug("Found %s container(s) matching %s", len(containers), selector)
        return containers

    def inspect_env(self, container_id: str) -> List[str]:
        details = self.api.inspect_container(container_id)
        config = details.get("Config") or {}
        return list(config.get("Env") or [])

    def create_exec(self, container_id: str, cmd: List[str]) -> str:
        response = self.api.exec_create(container_id, cmd, stdout=True, stderr=True, tty=False)
        return response["Id"]

    def start_exec(self, exec_id: str):
        self.api.exec_start(exec_id, detach=True, tty=False)

    def inspect_exec(self, exec_id: str) -> Dict:
        return self.api.exec_inspect(exec_id)

    def copy_from_container(self, container_id: str, path: str) -> Iterator[bytes]:
        stream, stat = self.api.get_archive(container_id, path)
        self.logger.debug("Copying %s from %s (%s bytes)", path, container_id[:12], stat.get("size"))
        return stream

    def close(self):
        try:
            self.client.close()
        except Exception as exc:
            self.logger.warning("Failed to close Docker client: %s", exc)
