"""File manager configuration."""

import os

from dotenv import load_dotenv

from file_manager.exceptions import ConfigurationError
from file_manager.schemas.storage import FileManagerOptions

load_dotenv()

# Storage: "local", "supabase", "s3" or "gcs"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").strip().lower()

# Service defaults
FILE_MANAGER_DEFAULT_PREFIX = os.getenv("FILE_MANAGER_DEFAULT_PREFIX", "uploads")
FILE_MANAGER_PUBLIC_READ = os.getenv("FILE_MANAGER_PUBLIC_READ", "false").lower() in ("true", "1", "yes")
# Unset or empty means unbounded
FILE_MANAGER_MAX_CONCURRENT_OPS = os.getenv("FILE_MANAGER_MAX_CONCURRENT_OPS", "").strip()

# Default lifetime of signed URLs (seconds)
SIGNED_URL_TTL_SECONDS = int(os.getenv("SIGNED_URL_TTL_SECONDS", "900"))

# Local storage (used when STORAGE_BACKEND=local)
LOCAL_STORAGE_PATH = os.getenv("LOCAL_STORAGE_PATH", "uploads")
# Base URL for serving local files (e.g. http://localhost:8000/files)
LOCAL_FILES_BASE_URL = os.getenv("LOCAL_FILES_BASE_URL", "").rstrip("/")

# Supabase (used when STORAGE_BACKEND=supabase)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "uploads")
SUPABASE_BUCKET_PUBLIC = os.getenv("SUPABASE_BUCKET_PUBLIC", "false").lower() in ("true", "1", "yes")

# S3 or S3-compatible, e.g. MinIO (used when STORAGE_BACKEND=s3)
S3_BUCKET = os.getenv("S3_BUCKET", "")
S3_REGION = os.getenv("S3_REGION") or os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or ""
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL", "")
S3_PUBLIC_BASE_URL = os.getenv("S3_PUBLIC_BASE_URL", "").rstrip("/")

# Google Cloud Storage (used when STORAGE_BACKEND=gcs)
GCS_BUCKET = os.getenv("GCS_BUCKET", "")
GCS_PROJECT_ID = os.getenv("GCS_PROJECT_ID", "")
GCS_PUBLIC_BASE_URL = os.getenv("GCS_PUBLIC_BASE_URL", "").rstrip("/")
# Any one of: key file path, key-file JSON (raw or base64), or client email + private key.
# None set means Application Default Credentials.
GCS_KEY_FILENAME = os.getenv("GCS_KEY_FILENAME", "")
GCS_CREDENTIALS_JSON = os.getenv("GCS_CREDENTIALS_JSON", "")
GCS_CLIENT_EMAIL = os.getenv("GCS_CLIENT_EMAIL", "")
GCS_PRIVATE_KEY = os.getenv("GCS_PRIVATE_KEY", "")


def parse_max_concurrent_ops(raw: str) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"FILE_MANAGER_MAX_CONCURRENT_OPS must be an integer, got {raw!r}") from e


def load_file_manager_options() -> FileManagerOptions:
    """Build service defaults from the environment-derived settings above."""
    return FileManagerOptions(
        default_prefix=FILE_MANAGER_DEFAULT_PREFIX,
        public_read_by_default=FILE_MANAGER_PUBLIC_READ,
        max_concurrent_ops=parse_max_concurrent_ops(FILE_MANAGER_MAX_CONCURRENT_OPS),
    )
