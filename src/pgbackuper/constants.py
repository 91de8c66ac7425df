"""Labels, paths and defaults shared across postgres-backuper."""

BACKUP_ENABLED_LABEL = "postgres-backup"
BACKUP_LABEL_SELECTOR = f"{BACKUP_ENABLED_LABEL}=true"
APP_NAME_LABEL = "postgres-backup/app-name"
DB_NAME_LABEL = "postgres-backup/db-name"
DB_USER_LABEL = "postgres-backup/db-user"

DB_NAME_ENV = "POSTGRES_DB"
DB_USER_ENV = "POSTGRES_USER"
DEFAULT_DB_NAME = "postgres"
DEFAULT_DB_USER = "postgres"

SHORT_ID_LENGTH = 12

DUMP_PATH = "/tmp/dump.sql"
DUMP_FILE_NAME = "dump.sql"
DUMP_CONTENT_TYPE = "application/sql"

DEFAULT_SCHEDULE = "@daily"
DEFAULT_EXEC_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.25
