import json
import logging
import shutil
from pathlib import Path

from pydantic import ValidationError

from fieldforge.consts import SCHEMA_FILE_SUFFIX
from fieldforge.errors import StorageException
from fieldforge.models import EndpointTypeSchema
from fieldforge.utils import is_identifier

logger = logging.getLogger(__name__)


class FileSchemaStorage:
    """One JSON document per schema, named after its type code."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, type_code: str) -> Path:
        if not is_identifier(type_code):
            raise StorageException(f"Invalid type code: {type_code!r}")
        return self.directory / f"{type_code}{SCHEMA_FILE_SUFFIX}"

    def load(self, type_code: str) -> EndpointTypeSchema:
        path = self._path(type_code)
        if not path.exists():
            raise StorageException(f"Schema not found: {type_code}")
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
            return EndpointTypeSchema.model_validate(document)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StorageException(f"Failed to load schema from {path}: {e}") from e

    def save(self, schema: EndpointTypeSchema) -> str:
        path = self._path(schema.type_code)
        content = json.dumps(schema.to_document(), indent=2, ensure_ascii=False)
        temp_path = path.with_suffix(".tmp")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(content)
            shutil.move(str(temp_path), str(path))
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageException(f"Failed to write schema to {path}: {e}") from e

        logger.info(f"Saved schema '{schema.type_code}' to {path}")
        return str(path.resolve())

    def list(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob(f"*{SCHEMA_FILE_SUFFIX}"))
