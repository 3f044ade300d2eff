from fieldforge.config import Config, StorageType
from fieldforge.errors import ConfigException

from .base import SchemaStorage
from .file import FileSchemaStorage
from .memory import MemorySchemaStorage


def get_storage(*, config: Config) -> SchemaStorage:
    storage_type = config.storage.type

    if storage_type == StorageType.FILE:
        return FileSchemaStorage(config.storage.directory)

    if storage_type == StorageType.MEMORY:
        return MemorySchemaStorage()

    raise ConfigException(f"Unknown storage type: {storage_type}")


__all__ = ["SchemaStorage", "FileSchemaStorage", "MemorySchemaStorage", "get_storage"]
