"""Import and export of schema documents as JSON."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from .errors import ImportRejected
from .models import EndpointTypeSchema, FieldDefinition
from .utils import flatten_validation_error
from .validation import validate_fields, validate_schema

logger = logging.getLogger(__name__)


def export_schema(schema: EndpointTypeSchema) -> str:
    return json.dumps(schema.to_document(), indent=2, ensure_ascii=False)


def _load_document(data) -> Any:
    if isinstance(data, (str, bytes, bytearray)):
        try:
            return json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportRejected([f"Document is not valid JSON: {e}"]) from e
    return data


def _normalize_order(fields: list[FieldDefinition]) -> list[FieldDefinition]:
    # Missing sortOrder goes last, ties keep document order
    ordered = sorted(
        enumerate(fields),
        key=lambda pair: (pair[1].sort_order is None, pair[1].sort_order or 0, pair[0]),
    )
    result = []
    for i, (_, f) in enumerate(ordered, start=1):
        f.sort_order = i
        result.append(f)
    return result


def import_schema(data, require_fields: bool = False) -> EndpointTypeSchema:
    """Parse and fully validate a schema document.

    Raises ``ImportRejected`` with every problem found; the caller's state is
    never touched on failure.
    """
    document = _load_document(data)
    if not isinstance(document, dict):
        raise ImportRejected(["Document must be a JSON object"])
    try:
        schema = EndpointTypeSchema.model_validate(document)
    except ValidationError as e:
        raise ImportRejected(flatten_validation_error(e)) from e

    errors = validate_schema(schema, require_fields=require_fields)
    if errors:
        logger.warning(f"Rejected import of '{schema.type_code}': {len(errors)} problem(s)")
        raise ImportRejected(errors)

    schema.fields = _normalize_order(schema.fields)
    logger.info(f"Imported schema '{schema.type_code}' with {len(schema.fields)} field(s)")
    return schema


def import_fields(data) -> list[FieldDefinition]:
    """Import a bare field array, or the ``schemaFields`` of a full document."""
    document = _load_document(data)
    if isinstance(document, dict) and "schemaFields" in document:
        document = document["schemaFields"]
    if not isinstance(document, list):
        raise ImportRejected(["Field import must be a JSON array"])

    fields = []
    errors = []
    for i, item in enumerate(document, start=1):
        try:
            fields.append(FieldDefinition.model_validate(item))
        except ValidationError as e:
            errors.extend(f"Field {i}: {msg}" for msg in flatten_validation_error(e))
    if errors:
        raise ImportRejected(errors)

    errors = validate_fields(fields)
    if errors:
        raise ImportRejected(errors)
    return _normalize_order(fields)
