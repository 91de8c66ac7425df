"""In-container pg_dump execution for postgres-backuper."""

import shlex
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Iterator, List, Optional

from pgbackuper.constants import DEFAULT_EXEC_TIMEOUT, DEFAULT_POLL_INTERVAL, DUMP_PATH
from pgbackuper.errors import DumpError
from pgbackuper.models import BackupTarget, ContainerDescriptor

FINISHED = "finished"
TIMED_OUT = "timed_out"
INSPECT_FAILED = "inspect_failed"


@dataclass(frozen=True)
class ExecWaitResult:
    """Outcome of waiting on an exec invocation."""

    outcome: str
    exit_code: Optional[int] = None
    error: Optional[Exception] = None


class DumpService:
    """Runs pg_dump inside a container and copies the dump file back out."""

    def __init__(
        self,
        logger,
        runtime,
        exec_timeout: float = DEFAULT_EXEC_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        dump_path: str = DUMP_PATH,
    ):
        self.logger = logger
        self.runtime = runtime
        self.exec_timeout = exec_timeout
        self.poll_interval = poll_interval
        self.dump_path = dump_path

    def build_dump_command(self, db_name: str, db_user: str) -> List[str]:
        script = (
            f"pg_dump -U {shlex.quote(db_user)} {shlex.quote(db_name)} "
            f"> {shlex.quote(self.dump_path)}"
        )
        return ["bash", "-c", script]

    def dump(self, container: ContainerDescriptor, target: BackupTarget) -> Iterator[bytes]:
        short_id = container.short_id
        cmd = self.build_dump_command(target.db_name, target.db_user)
        self.logger.debug("Executing in %s: %s", short_id, " ".join(cmd))

        try:
            exec_id = self.runtime.create_exec(container.id, cmd)
        except Exception as exc:
            raise DumpError(f"Failed to create dump exec in {short_id}: {exc}") from exc

        try:
            self.runtime.start_exec(exec_id)
        except Exception as exc:
            raise DumpError(f"Failed to start dump exec in {short_id}: {exc}") from exc

        result = self.wait_for_exec(exec_id)
        if result.outcome == INSPECT_FAILED:
            raise DumpError(
                f"Could not observe dump exec {exec_id} in {short_id}: {result.error}"
            ) from result.error
        if result.outcome == TIMED_OUT:
            self.logger.warning(
                "Timed out after %.1fs waiting for exec %s in %s; copying dump as-is",
                self.exec_timeout,
                exec_id,
                short_id,
            )
        elif result.exit_code:
            self.logger.warning(
                "pg_dump in %s exited with code %s; the uploaded dump may be incomplete",
                short_id,
                result.exit_code,
            )

        try:
            return self.runtime.copy_from_container(container.id, self.dump_path)
        except Exception as exc:
            raise DumpError(f"Failed to copy {self.dump_path} from {short_id}: {exc}") from exc

    def wait_for_exec(self, exec_id: str) -> ExecWaitResult:
        """Polls the exec until it stops running, bounded by ``exec_timeout``."""
        cancelled = threading.Event()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="exec-wait")
        future = executor.submit(self._poll_exec, exec_id, cancelled)

        try:
            return future.result(timeout=self.exec_timeout)
        except FutureTimeoutError:
            # a poller stuck in inspect_exec exits on its own once the call returns
            cancelled.set()
            return ExecWaitResult(TIMED_OUT)
        finally:
            executor.shutdown(wait=False)

    def _poll_exec(self, exec_id: str, cancelled: threading.Event) -> ExecWaitResult:
        while not cancelled.is_set():
            try:
                state = self.runtime.inspect_exec(exec_id)
            except Exception as exc:
                return ExecWaitResult(INSPECT_FAILED, error=exc)

            if not state.get("Running"):
                return ExecWaitResult(FINISHED, exit_code=state.get("ExitCode"))

            cancelled.wait(self.poll_interval)

        return ExecWaitResult(TIMED_OUT)
