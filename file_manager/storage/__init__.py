# Storage engines

from file_manager import config
from file_manager.exceptions import ConfigurationError
from file_manager.storage.base import StorageEngine


def create_storage_engine(backend: str | None = None) -> StorageEngine:
    """
    Build the engine named by backend (or STORAGE_BACKEND).
    SDK modules are imported only for the backend actually selected.
    """
    backend = (backend or config.STORAGE_BACKEND).strip().lower()
    if backend == "supabase":
        from file_manager.storage.supabase_storage import SupabaseStorageEngine

        return SupabaseStorageEngine(
            url=config.SUPABASE_URL,
            service_role_key=config.SUPABASE_SERVICE_ROLE_KEY,
            bucket=config.SUPABASE_BUCKET,
            public=config.SUPABASE_BUCKET_PUBLIC,
            signed_url_ttl=config.SIGNED_URL_TTL_SECONDS,
        )
    if backend == "s3":
        from file_manager.storage.s3_storage import S3StorageEngine

        return S3StorageEngine(
            bucket=config.S3_BUCKET,
            region=config.S3_REGION or None,
            endpoint_url=config.S3_ENDPOINT_URL or None,
            public_base_url=config.S3_PUBLIC_BASE_URL or None,
            signed_url_ttl=config.SIGNED_URL_TTL_SECONDS,
        )
    if backend == "gcs":
        from file_manager.storage.gcs_storage import GcsStorageEngine

        return GcsStorageEngine(
            bucket=config.GCS_BUCKET,
            project=config.GCS_PROJECT_ID or None,
            public_base_url=config.GCS_PUBLIC_BASE_URL or None,
            key_filename=config.GCS_KEY_FILENAME or None,
            key_file_json=config.GCS_CREDENTIALS_JSON or None,
            client_email=config.GCS_CLIENT_EMAIL or None,
            private_key=config.GCS_PRIVATE_KEY or None,
            signed_url_ttl=config.SIGNED_URL_TTL_SECONDS,
        )
    if backend == "local":
        from file_manager.storage.local_storage import LocalStorageEngine

        return LocalStorageEngine(config.LOCAL_STORAGE_PATH, public_base_url=config.LOCAL_FILES_BASE_URL or None)
    raise ConfigurationError(f"Unknown STORAGE_BACKEND: {backend!r}")


__all__ = ["StorageEngine", "create_storage_engine"]
