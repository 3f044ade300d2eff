"""Field list editing with a single-row edit lock."""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from pydantic import ValidationError

from .enums import ConfigStatus, EditorState, Mode, WidgetKind
from .errors import AuthoringValidationError, ConcurrencyViolation
from .models import FieldDefinition
from .rules import RuleConfigurator
from .utils import flatten_validation_error, is_identifier, is_provisional_id, new_field_id, new_provisional_id
from .widgets import WidgetConfigResult, WidgetPropertyDialog

logger = logging.getLogger(__name__)

EDITABLE_ATTRIBUTES = ("key", "label", "widget_kind", "modes", "description", "properties")
WIDGET_KINDS = {k.value for k in WidgetKind}
MODES = {m.value for m in Mode}


@dataclass(frozen=True)
class EditSession:
    field_id: str
    is_provisional: bool


def _to_field(value) -> FieldDefinition:
    if isinstance(value, FieldDefinition):
        return value.model_copy(deep=True)
    return FieldDefinition.model_validate(value)


class FieldEditor:
    """Ordered field list of one schema, editable one row at a time.

    Every structural change leaves ``sort_order`` dense from 1. While a row is
    open for editing, attempts to open another raise ``ConcurrencyViolation``
    before anything is touched.
    """

    def __init__(
        self,
        fields: Iterable = (),
        default_widget: WidgetKind | str = WidgetKind.INPUT,
        default_modes: Iterable[Mode | str] = (Mode.IN_OUT,),
        id_factory: Callable[[], str] = new_field_id,
        provisional_id_factory: Callable[[], str] = new_provisional_id,
    ):
        self._fields: list[FieldDefinition] = [_to_field(f) for f in fields]
        for f in self._fields:
            if not f.id or is_provisional_id(f.id):
                f.id = id_factory()
        self.default_widget = WidgetKind(default_widget)
        self.default_modes = [Mode(m).value for m in default_modes]
        self._id_factory = id_factory
        self._provisional_id_factory = provisional_id_factory
        self._session: Optional[EditSession] = None
        self._buffer: Optional[FieldDefinition] = None
        self._renormalize()

    # ----- state -----

    @property
    def state(self) -> EditorState:
        return EditorState.EDITING if self._session else EditorState.IDLE

    @property
    def session(self) -> Optional[EditSession]:
        return self._session

    @property
    def editing_id(self) -> Optional[str]:
        return self._session.field_id if self._session else None

    @property
    def buffer(self) -> Optional[FieldDefinition]:
        return self._buffer.model_copy(deep=True) if self._buffer else None

    @property
    def fields(self) -> list[FieldDefinition]:
        return [f.model_copy(deep=True) for f in self._fields]

    def is_editing(self) -> bool:
        return self._session is not None

    def __len__(self):
        return len(self._fields)

    def _index_of(self, field_id: str) -> int:
        for i, f in enumerate(self._fields):
            if f.id == field_id:
                return i
        raise KeyError(field_id)

    def _renormalize(self):
        for i, f in enumerate(self._fields, start=1):
            f.sort_order = i

    def _ensure_idle(self):
        if self._session is not None:
            raise ConcurrencyViolation(field_id=self._session.field_id)

    def _ensure_editing(self, field_id: Optional[str] = None) -> EditSession:
        if self._session is None:
            raise ConcurrencyViolation("No field is being edited")
        if field_id is not None and field_id != self._session.field_id:
            raise ConcurrencyViolation(
                f"Dialog belongs to field {field_id}, but {self._session.field_id} is being edited",
                field_id=field_id,
            )
        return self._session

    # ----- lifecycle -----

    def add(self) -> str:
        self._ensure_idle()
        field_id = self._provisional_id_factory()
        row = FieldDefinition(
            id=field_id,
            widget_kind=self.default_widget.value,
            modes=list(self.default_modes),
        )
        self._fields.append(row)
        self._renormalize()
        self._session = EditSession(field_id=field_id, is_provisional=True)
        self._buffer = row.model_copy(deep=True)
        logger.debug(f"Added provisional field {field_id}")
        return field_id

    def start_edit(self, field_id: str) -> EditSession:
        self._ensure_idle()
        row = self._fields[self._index_of(field_id)]
        self._session = EditSession(field_id=field_id, is_provisional=False)
        self._buffer = row.model_copy(deep=True)
        logger.debug(f"Editing field {field_id}")
        return self._session

    def update(self, **changes) -> FieldDefinition:
        self._ensure_editing()
        unknown = sorted(set(changes) - set(EDITABLE_ATTRIBUTES))
        if unknown:
            raise AuthoringValidationError([f"{name}: cannot be edited here" for name in unknown])
        try:
            self._buffer = FieldDefinition.model_validate({**self._buffer.model_dump(), **changes})
        except ValidationError as e:
            raise AuthoringValidationError(flatten_validation_error(e)) from e
        return self.buffer

    def _validate_buffer(self) -> list[str]:
        row = self._buffer
        errors = []
        if not row.key:
            errors.append("key: Field key is required")
        elif not is_identifier(row.key):
            errors.append(
                "key: Field key must start with a letter and contain only letters, digits and underscores"
            )
        elif any(f.key == row.key and f.id != row.id for f in self._fields):
            errors.append(f"key: Field key '{row.key}' is already used")
        if not row.label or not row.label.strip():
            errors.append("label: Label is required")
        if not row.widget_kind:
            errors.append("widget_kind: Widget kind is required")
        elif row.widget_kind not in WIDGET_KINDS:
            errors.append(f"widget_kind: Unknown widget kind '{row.widget_kind}'")
        for mode in row.modes:
            if mode not in MODES:
                errors.append(f"modes: Unknown mode '{mode}'")
        return errors

    def save(self) -> FieldDefinition:
        session = self._ensure_editing()
        errors = self._validate_buffer()
        if errors:
            raise AuthoringValidationError(errors)

        index = self._index_of(session.field_id)
        row = self._buffer
        if session.is_provisional:
            row.id = self._id_factory()
        self._fields[index] = row
        self._renormalize()
        self._session = None
        self._buffer = None
        logger.debug(f"Saved field '{row.key}' as {row.id}")
        return row.model_copy(deep=True)

    def cancel(self) -> None:
        if self._session is None:
            return
        if self._session.is_provisional:
            del self._fields[self._index_of(self._session.field_id)]
            self._renormalize()
            logger.debug(f"Discarded provisional field {self._session.field_id}")
        self._session = None
        self._buffer = None

    cancel_edit = cancel

    def flush_pending_edit(self) -> list[FieldDefinition]:
        if self._session is not None:
            self.save()
        return self.fields

    # ----- structural changes -----

    def move_up(self, index: int) -> bool:
        if self._session is not None or not 0 < index < len(self._fields):
            return False
        self._fields[index - 1], self._fields[index] = self._fields[index], self._fields[index - 1]
        self._renormalize()
        return True

    def move_down(self, index: int) -> bool:
        if self._session is not None or not 0 <= index < len(self._fields) - 1:
            return False
        self._fields[index], self._fields[index + 1] = self._fields[index + 1], self._fields[index]
        self._renormalize()
        return True

    def delete(self, field_id: str) -> bool:
        if self._session is not None and self._session.field_id == field_id:
            return False
        try:
            index = self._index_of(field_id)
        except KeyError:
            return False
        removed = self._fields.pop(index)
        self._renormalize()
        logger.debug(f"Deleted field '{removed.key}' ({field_id})")
        return True

    def replace_fields(self, fields: Iterable) -> None:
        self._ensure_idle()
        self._fields = [_to_field(f) for f in fields]
        for f in self._fields:
            if not f.id or is_provisional_id(f.id):
                f.id = self._id_factory()
        self._renormalize()

    # ----- dialogs -----

    def open_widget_properties(self) -> WidgetPropertyDialog:
        session = self._ensure_editing()
        return WidgetPropertyDialog(session.field_id, self._buffer.widget_kind, self._buffer.properties)

    def apply_widget_properties(self, dialog: WidgetPropertyDialog) -> WidgetConfigResult:
        self._ensure_editing(dialog.field_id)
        if dialog.kind != self._buffer.widget_kind:
            raise AuthoringValidationError(
                [f"Widget kind changed from '{dialog.kind}' to '{self._buffer.widget_kind}'; reopen the dialog"]
            )
        result = dialog.result()
        if result.status == ConfigStatus.UNSUPPORTED:
            logger.info(f"Widget kind '{dialog.kind}' has no configurable properties")
            return result
        if result.status == ConfigStatus.INVALID:
            raise AuthoringValidationError(result.errors)
        self._buffer.properties = result.properties
        return result

    def open_rules(self) -> RuleConfigurator:
        session = self._ensure_editing()
        return RuleConfigurator(
            session.field_id,
            self._buffer.rules,
            self._buffer.show_condition,
            field_label=self._buffer.label,
        )

    def apply_rules(self, dialog: RuleConfigurator) -> None:
        self._ensure_editing(dialog.field_id)
        result = dialog.accept()
        self._buffer.rules = result.rules
        self._buffer.show_condition = result.show_condition
