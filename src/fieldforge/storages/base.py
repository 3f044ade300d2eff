from typing import Protocol

from fieldforge.models import EndpointTypeSchema


class SchemaStorage(Protocol):
    def load(self, type_code: str) -> EndpointTypeSchema: ...

    def save(self, schema: EndpointTypeSchema) -> str: ...

    def list(self) -> list[str]: ...
