"""Authoring session for one endpoint type schema."""

import logging
from typing import Any, Optional

from .config import EditorConfig
from .editor import FieldEditor
from .errors import ConcurrencyViolation
from .models import EndpointTypeSchema, FieldDefinition
from .preview import PreviewHost
from .storages.base import SchemaStorage
from .transfer import export_schema, import_fields, import_schema
from .validation import ensure_valid

logger = logging.getLogger(__name__)

HEADER_ATTRIBUTES = (
    "type_name",
    "endpoint_type",
    "category",
    "icon",
    "description",
    "supported_modes",
    "schema_version",
    "status",
    "supports_retry",
)


class SchemaSession:
    """Holds the working copy of a schema while it is being authored.

    The header lives here; the field list lives in a ``FieldEditor``.
    Nothing reaches storage until ``commit``.
    """

    def __init__(
        self,
        schema: EndpointTypeSchema,
        storage: Optional[SchemaStorage] = None,
        editor_config: Optional[EditorConfig] = None,
    ):
        self.storage = storage
        self.editor_config = editor_config or EditorConfig()
        self._header = schema.model_copy(update={"fields": []}, deep=True)
        self.editor = self._new_editor(schema.fields)
        self._saved = self.current_schema

    @classmethod
    def open(cls, storage: SchemaStorage, type_code: str, editor_config: Optional[EditorConfig] = None):
        return cls(storage.load(type_code), storage=storage, editor_config=editor_config)

    def _new_editor(self, fields) -> FieldEditor:
        return FieldEditor(
            fields,
            default_widget=self.editor_config.default_widget,
            default_modes=self.editor_config.default_modes,
        )

    @property
    def current_schema(self) -> EndpointTypeSchema:
        """Header plus the committed rows of the field list (open edits excluded)."""
        return self._header.with_fields(self.editor.fields)

    @property
    def dirty(self) -> bool:
        return self.editor.is_editing() or self.current_schema != self._saved

    def update_header(self, **changes) -> EndpointTypeSchema:
        unknown = sorted(set(changes) - set(HEADER_ATTRIBUTES))
        if unknown:
            raise AttributeError(f"Cannot change schema attribute(s): {', '.join(unknown)}")
        document = {**self._header.model_dump(), **changes}
        self._header = EndpointTypeSchema.model_validate(document)
        return self.current_schema

    def commit(self) -> EndpointTypeSchema:
        """Flush the open edit, validate and persist the schema."""
        self.editor.flush_pending_edit()
        schema = ensure_valid(self.current_schema, require_fields=True)
        if self.storage is not None:
            self.storage.save(schema)
        self._saved = schema.model_copy(deep=True)
        logger.info(f"Committed schema '{schema.type_code}' with {len(schema.fields)} field(s)")
        return schema

    def discard(self) -> EndpointTypeSchema:
        self.editor.cancel()
        self._header = self._saved.model_copy(update={"fields": []}, deep=True)
        self.editor = self._new_editor(self._saved.fields)
        return self.current_schema

    def _ensure_idle(self):
        if self.editor.is_editing():
            raise ConcurrencyViolation(field_id=self.editor.editing_id)

    def import_document(self, data) -> EndpointTypeSchema:
        """Replace the whole working copy with an imported document.

        ``ImportRejected`` leaves the session exactly as it was.
        """
        self._ensure_idle()
        schema = import_schema(data)
        self._header = schema.model_copy(update={"fields": []}, deep=True)
        self.editor = self._new_editor(schema.fields)
        return self.current_schema

    def import_fields(self, data) -> list[FieldDefinition]:
        self._ensure_idle()
        fields = import_fields(data)
        self.editor.replace_fields(fields)
        return self.editor.fields

    def export_document(self) -> str:
        return export_schema(self.current_schema)

    def preview(self, values: Optional[dict[str, Any]] = None, default_label: str = "default") -> PreviewHost:
        return PreviewHost(self.current_schema, values=values, default_label=default_label)
