"""Service layer for postgres-backuper."""
