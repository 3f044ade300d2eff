"""Static validation of a whole schema document."""

import logging

from .enums import ConfigStatus, Mode, WidgetKind
from .errors import AuthoringValidationError
from .models import EndpointTypeSchema, FieldDefinition
from .predicates import check_predicate
from .rules import validate_rules
from .utils import is_identifier
from .widgets import configure

logger = logging.getLogger(__name__)

WIDGET_KINDS = {k.value for k in WidgetKind}
MODES = {m.value for m in Mode}


def _field_label(index: int, f: FieldDefinition) -> str:
    return f"Field {index} ('{f.key}')" if f.key else f"Field {index}"


def validate_field(f: FieldDefinition) -> list[str]:
    """Check one field on its own; uniqueness is checked by ``validate_fields``."""
    errors = []
    if not f.key:
        errors.append("key is required")
    elif not is_identifier(f.key):
        errors.append("key must start with a letter and contain only letters, digits and underscores")
    if not f.label or not f.label.strip():
        errors.append("label is required")

    if f.widget_kind not in WIDGET_KINDS:
        errors.append(f"unknown widget kind '{f.widget_kind}'")
    else:
        result = configure(f.widget_kind, f.properties)
        if result.status == ConfigStatus.INVALID:
            errors.extend(f"properties: {msg}" for msg in result.errors)

    for mode in f.modes:
        if mode not in MODES:
            errors.append(f"unknown mode '{mode}'")

    if f.rules:
        errors.extend(validate_rules(f.rules))
    errors.extend(f"show condition: {msg}" for msg in check_predicate(f.show_condition))
    return errors


def validate_fields(fields: list[FieldDefinition]) -> list[str]:
    errors = []
    seen: dict[str, int] = {}
    for i, f in enumerate(fields, start=1):
        label = _field_label(i, f)
        errors.extend(f"{label}: {msg}" for msg in validate_field(f))
        if f.key:
            if f.key in seen:
                errors.append(f"{label}: duplicate key '{f.key}' (also used by field {seen[f.key]})")
            else:
                seen[f.key] = i
    return errors


def validate_schema(schema: EndpointTypeSchema, require_fields: bool = False) -> list[str]:
    """Return every structural problem in ``schema``; empty means valid."""
    errors = []
    if not schema.type_code:
        errors.append("typeCode is required")
    elif not is_identifier(schema.type_code):
        errors.append("typeCode must start with a letter and contain only letters, digits and underscores")
    if not schema.type_name or not schema.type_name.strip():
        errors.append("typeName is required")
    for mode in schema.supported_modes:
        if mode not in MODES:
            errors.append(f"supportMode: unknown mode '{mode}'")
    if require_fields and not schema.fields:
        errors.append("At least one field is required")
    errors.extend(validate_fields(schema.fields))
    return errors


def ensure_valid(schema: EndpointTypeSchema, require_fields: bool = False) -> EndpointTypeSchema:
    errors = validate_schema(schema, require_fields=require_fields)
    if errors:
        logger.debug(f"Schema '{schema.type_code}' has {len(errors)} problem(s)")
        raise AuthoringValidationError(errors)
    return schema
