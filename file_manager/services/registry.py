"""Named FileManagerService instances, for applications that talk to several backends."""

from file_manager.config import load_file_manager_options
from file_manager.exceptions import ConfigurationError
from file_manager.services.file_manager import FileManagerService
from file_manager.storage import create_storage_engine

DEFAULT_NAME = "default"

_instances: dict[str, FileManagerService] = {}


def _resolve_name(name: str | None) -> str:
    if name is None:
        return DEFAULT_NAME
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError("File manager name must be a non-empty string.")
    return name.strip()


def register_file_manager(service: FileManagerService, name: str | None = None) -> FileManagerService:
    _instances[_resolve_name(name)] = service
    return service


def get_file_manager(name: str | None = None) -> FileManagerService:
    resolved = _resolve_name(name)
    try:
        return _instances[resolved]
    except KeyError:
        raise ConfigurationError(f"No file manager registered under {resolved!r}") from None


def unregister_file_manager(name: str | None = None) -> None:
    _instances.pop(_resolve_name(name), None)


def create_file_manager(backend: str | None = None, name: str | None = None) -> FileManagerService:
    """Build a service from environment settings and register it under name."""
    service = FileManagerService(create_storage_engine(backend), load_file_manager_options())
    return register_file_manager(service, name)
