"""Fixed limits and markers shared by the export and import paths."""

SCHEMA_VERSION = 1

DIRECT_LIMIT_BYTES = 4 * 1024 * 1024
OSS_IMPORT_LIMIT_BYTES = 64 * 1024 * 1024

# Compared verbatim (after trimming surrounding whitespace); not localized
IMPORT_CONFIRM_TEXT = "CONFIRM RESTORE"

DEFAULT_BATCH_SIZE = 300

DIRECT_UPLOAD_EXPIRES_SECONDS = 10 * 60

FILE_NAME_PREFIX = "scoped"

EXPORT_PATH_TEMPLATE = "temp/backups/{scope}/{{year}}/{{month}}/{{filename}}"
IMPORT_UPLOAD_PATH_TEMPLATE = "temp/backups/import/{year}/{month}/{filename}"

ARCHIVE_CONTENT_TYPE = "application/json; charset=utf-8"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
