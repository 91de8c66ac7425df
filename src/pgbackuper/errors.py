"""Domain errors for postgres-backuper."""


class BackuperError(RuntimeError):
    """Raised when a backup step cannot continue."""


class DiscoveryError(BackuperError):
    """Raised when the container runtime cannot list backup candidates."""


class DumpError(BackuperError):
    """Raised when the in-container dump cannot be produced or copied out."""


class ArchiveError(BackuperError):
    """Raised when the copied tar stream cannot be decoded."""


class UploadError(BackuperError):
    """Raised when the object store client cannot be set up."""


class ScheduleError(BackuperError):
    """Raised for an invalid cron schedule expression."""
