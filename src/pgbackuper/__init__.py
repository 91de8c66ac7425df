"""
postgres-backuper - dump labelled PostgreSQL containers to S3-compatible storage
"""

__version__ = "0.1.0"

from .core import Backuper
from .errors import BackuperError

__all__ = ["Backuper", "BackuperError"]
