import logging
import os

import click
from rich.logging import RichHandler

from .core import Backuper
from .errors import BackuperError
from .errors_catalog import actionable_error
from .models import BackuperOptions, StorageOptions
from .services.config_loader import ConfigLoader
from .services.lifecycle import ShutdownSignal

DEFAULT_CONFIG_FILE = ".postgres-backuper.yml"

REQUIRED_OPTIONS = (
    ("endpoint", "PB_ENDPOINT"),
    ("access_key", "PB_ACCESS_KEY"),
    ("secret_key", "PB_SECRET_KEY"),
    ("bucket", "PB_BUCKET"),
)


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=True, show_path=False)],
)


@click.command()
@click.option("--schedule", envvar="PB_SCHEDULE", help="Cron schedule for backups (default: @daily).")
@click.option("--endpoint", envvar="PB_ENDPOINT", help="MinIO/S3 endpoint as host[:port].")
@click.option("--access-key", envvar="PB_ACCESS_KEY", help="Object storage access key.")
@click.option("--secret-key", envvar="PB_SECRET_KEY", help="Object storage secret key.")
@click.option("--bucket", envvar="PB_BUCKET", help="Bucket that receives the dumps.")
@click.option(
    "--use-ssl/--no-use-ssl",
    envvar="PB_USE_SSL",
    default=None,
    help="Use TLS for the object storage endpoint (default: enabled).",
)
@click.option("--do", "do_now", is_flag=True, default=None, help="Run one backup scan now and exit.")
@click.option(
    "--exec-timeout",
    envvar="PB_EXEC_TIMEOUT",
    type=float,
    default=None,
    help="Seconds to wait for pg_dump to finish before copying the dump (default: 30).",
)
@click.option(
    "--poll-interval",
    envvar="PB_POLL_INTERVAL",
    type=float,
    default=None,
    help="Seconds between pg_dump status checks (default: 0.25).",
)
@click.option(
    "--config",
    envvar="PB_CONFIG",
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", envvar="PB_VERBOSE", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", envvar="PB_LOG_FILE", type=click.Path(), help="Path to log file")
def main(
    schedule,
    endpoint,
    access_key,
    secret_key,
    bucket,
    use_ssl,
    do_now,
    exec_timeout,
    poll_interval,
    config,
    verbose,
    log_file,
):
    """Back up labelled postgres containers to MinIO."""
    logger = logging.getLogger("pgbackuper")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except BackuperError as exc:
        raise click.ClickException(str(exc)) from exc

    values = {
        "endpoint": _resolve_option(endpoint, config_values, "endpoint"),
        "access_key": _resolve_option(access_key, config_values, "access_key"),
        "secret_key": _resolve_option(secret_key, config_values, "secret_key"),
        "bucket": _resolve_option(bucket, config_values, "bucket"),
    }
    for key, envvar in REQUIRED_OPTIONS:
        if not values[key]:
            raise click.ClickException(
                actionable_error(
                    "missing_option",
                    option=key.replace("_", "-"),
                    envvar=envvar,
                    key=key,
                )
            )

    schedule = str(_resolve_option(schedule, config_values, "schedule", default="@daily"))
    use_ssl = bool(_resolve_option(use_ssl, config_values, "use_ssl", default=True))
    do_now = bool(_resolve_option(do_now, config_values, "do", default=False))
    exec_timeout = float(_resolve_option(exec_timeout, config_values, "exec_timeout", default=30.0))
    poll_interval = float(_resolve_option(poll_interval, config_values, "poll_interval", default=0.25))
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    options = BackuperOptions(
        storage=StorageOptions(
            endpoint=values["endpoint"],
            access_key=values["access_key"],
            secret_key=values["secret_key"],
            bucket=values["bucket"],
            secure=use_ssl,
        ),
        schedule=schedule,
        exec_timeout=exec_timeout,
        poll_interval=poll_interval,
        one_shot=do_now,
    )
    logger.debug("Resolved options: %r", options)

    try:
        backuper = Backuper(options)
        backuper.verify_storage()
    except BackuperError as exc:
        raise click.ClickException(str(exc)) from exc

    if do_now:
        raise SystemExit(backuper.run_once())

    shutdown = ShutdownSignal(logger=logger)
    shutdown.install()
    raise SystemExit(backuper.run(shutdown))


if __name__ == "__main__":
    main()
