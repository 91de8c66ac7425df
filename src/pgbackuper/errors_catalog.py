"""Actionable error catalog for postgres-backuper."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "docker_unavailable": {
        "what": "Could not create Docker client: {error}",
        "next": "Check that the Docker socket is mounted and `DOCKER_HOST` is set correctly.",
    },
    "storage_client_failed": {
        "what": "Could not create object storage client for `{endpoint}`: {error}",
        "next": "Check `--endpoint` (host[:port], no scheme) and the access/secret keys.",
    },
    "bucket_not_found": {
        "what": "Bucket `{bucket}` does not exist on `{endpoint}`.",
        "next": "Create the bucket first or point `--bucket` to an existing one.",
    },
    "invalid_schedule": {
        "what": "Invalid schedule expression: `{schedule}`.",
        "next": "Use a 5-field cron expression such as `0 3 * * *` or an alias like `@daily`.",
    },
    "missing_option": {
        "what": "Missing required option `--{option}`.",
        "next": "Pass it on the command line, set `{envvar}` or add `{key}` to the config file.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
