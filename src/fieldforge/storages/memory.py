import logging

from fieldforge.errors import StorageException
from fieldforge.models import EndpointTypeSchema

logger = logging.getLogger(__name__)


class MemorySchemaStorage:
    def __init__(self) -> None:
        self._schemas: dict[str, EndpointTypeSchema] = {}

    def load(self, type_code: str) -> EndpointTypeSchema:
        try:
            return self._schemas[type_code].model_copy(deep=True)
        except KeyError:
            raise StorageException(f"Schema not found: {type_code}") from None

    def save(self, schema: EndpointTypeSchema) -> str:
        self._schemas[schema.type_code] = schema.model_copy(deep=True)
        logger.debug(f"Stored schema '{schema.type_code}' in memory")
        return schema.type_code

    def list(self) -> list[str]:
        return sorted(self._schemas)
