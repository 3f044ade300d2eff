"""Turn a schema into a renderable form.

``interpret`` is stateless and tolerant: it accepts a validated
``EndpointTypeSchema`` or whatever mapping came back from storage and never
raises for malformed content. Broken predicates leave a field visible,
broken rule lists leave it without rules, unknown widget kinds become a
disabled placeholder.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

from .consts import (
    FIELDS_SECTION_ID,
    FIELDS_SECTION_TITLE,
    PROPERTY_DEFAULT_VALUE,
    RETRY_BACKOFF_MULTIPLIER,
    RETRY_EXPONENTIAL_BACKOFF,
    RETRY_INITIAL_DELAY,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY,
    RETRY_SECTION_ID,
    RETRY_SECTION_TITLE,
)
from .enums import WidgetKind
from .errors import AuthoringValidationError, FieldforgeException, InterpretationWarning
from .models import EndpointTypeSchema, RuleSpec
from .predicates import evaluate_predicate, truthy
from .rules import check_values, parse_rules
from .widgets import adapt, get_widget_spec, narrow

logger = logging.getLogger(__name__)


class ControlDescriptor(BaseModel):
    key: str
    label: str
    widget_kind: str
    control: str
    properties: dict[str, Any] = Field(default_factory=dict)
    value: Any = None
    rules: list[RuleSpec] = Field(default_factory=list)
    description: Optional[str] = None
    value_prop: str = "value"
    full_width: bool = False
    disabled: bool = False
    supported: bool = True

    @property
    def required(self) -> bool:
        return any(r.required for r in self.rules)


class RenderSection(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    controls: list[ControlDescriptor] = Field(default_factory=list)


class RenderTree(BaseModel):
    mode: Optional[str] = None
    sections: list[RenderSection] = Field(default_factory=list)

    @property
    def controls(self) -> list[ControlDescriptor]:
        return [c for s in self.sections for c in s.controls]

    @property
    def keys(self) -> list[str]:
        return [c.key for c in self.controls]

    def section(self, section_id: str) -> Optional[RenderSection]:
        return next((s for s in self.sections if s.id == section_id), None)

    @property
    def visible_count(self) -> int:
        fields = self.section(FIELDS_SECTION_ID)
        return len(fields.controls) if fields else 0


@dataclass
class InterpretResult:
    tree: RenderTree
    defaults: dict[str, Any] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)


def _document(schema) -> dict[str, Any]:
    if isinstance(schema, EndpointTypeSchema):
        return schema.to_document()
    if isinstance(schema, dict):
        return copy.deepcopy(schema)
    logger.warning(f"Cannot interpret a {type(schema).__name__}, rendering an empty form")
    return {}


def field_modes(raw: dict[str, Any]) -> list[str]:
    modes = raw.get("mode")
    if isinstance(modes, str):
        return [modes] if modes else []
    if isinstance(modes, list):
        return [m for m in modes if isinstance(m, str)]
    return []


def applies_to(raw: dict[str, Any], mode: Optional[str]) -> bool:
    if mode is None:
        return True
    modes = field_modes(raw)
    return not modes or mode in modes


def _sort_key(pair):
    index, raw = pair
    order = raw.get("sortOrder")
    if isinstance(order, bool) or not isinstance(order, (int, float)):
        return (1, 0, index)
    return (0, order, index)


def sorted_fields(document: dict[str, Any]) -> list[dict[str, Any]]:
    raw_fields = document.get("schemaFields")
    if not isinstance(raw_fields, list):
        return []
    kept = []
    for i, raw in enumerate(raw_fields):
        if not isinstance(raw, dict) or not isinstance(raw.get("field"), str) or not raw["field"]:
            logger.warning(f"Skipping malformed field entry at position {i + 1}")
            continue
        kept.append((i, raw))
    return [raw for _, raw in sorted(kept, key=_sort_key)]


def _properties(raw: dict[str, Any]) -> dict[str, Any]:
    props = raw.get("properties")
    return props if isinstance(props, dict) else {}


def _evaluate_condition(raw: dict[str, Any], source: str, values: dict[str, Any]) -> bool:
    try:
        return evaluate_predicate(source, values)
    except FieldforgeException as e:
        raise InterpretationWarning(raw["field"], f"show condition failed: {e}") from e


def is_visible(raw: dict[str, Any], values: dict[str, Any]) -> bool:
    source = raw.get("showCondition")
    if not isinstance(source, str) or not source.strip():
        return True
    try:
        return _evaluate_condition(raw, source, values)
    except InterpretationWarning as w:
        logger.warning(str(w))
        return True


def _parse_field_rules(raw: dict[str, Any]) -> list[RuleSpec]:
    try:
        return parse_rules(raw.get("rules"))
    except AuthoringValidationError as e:
        raise InterpretationWarning(raw["field"], f"rules dropped: {e}") from e


def field_rules(raw: dict[str, Any]) -> list[RuleSpec]:
    try:
        return _parse_field_rules(raw)
    except InterpretationWarning as w:
        logger.warning(str(w))
        return []


def build_control(raw: dict[str, Any], values: dict[str, Any], rules: list[RuleSpec]) -> ControlDescriptor:
    key = raw["field"]
    kind = raw.get("component") or WidgetKind.INPUT.value
    label = raw.get("label") if isinstance(raw.get("label"), str) else key
    description = raw.get("description") if isinstance(raw.get("description"), str) else None

    spec = get_widget_spec(kind) if isinstance(kind, str) else None
    if spec is None:
        logger.warning(f"Field '{key}': unsupported widget kind {kind!r}, rendering a placeholder")
        return ControlDescriptor(
            key=key,
            label=label,
            widget_kind=str(kind),
            control="Input",
            properties={"disabled": True, "placeholder": f"Unsupported widget kind: {kind}"},
            value=values.get(key),
            rules=[],
            description=description,
            disabled=True,
            supported=False,
        )

    props = narrow(kind, _properties(raw))
    control, control_props = adapt(kind, props)
    return ControlDescriptor(
        key=key,
        label=label,
        widget_kind=spec.kind.value,
        control=control,
        properties=control_props,
        value=values.get(key),
        rules=rules,
        description=description,
        value_prop=spec.value_prop,
        full_width=spec.full_width,
        disabled=bool(props.get("disabled", False)),
    )


def _retry_control(key, label, control_props, rules, value, value_prop="value", disabled=False):
    return ControlDescriptor(
        key=key,
        label=label,
        widget_kind=WidgetKind.SWITCH.value if value_prop == "checked" else WidgetKind.INPUT_NUMBER.value,
        control="Switch" if value_prop == "checked" else "InputNumber",
        properties=control_props,
        value=value,
        rules=rules,
        value_prop=value_prop,
        disabled=disabled,
    )


def retry_section(values: dict[str, Any]) -> RenderSection:
    backoff = truthy(values.get(RETRY_EXPONENTIAL_BACKOFF))

    def required(message):
        return [RuleSpec(required=True, message=message)]

    controls = [
        _retry_control(
            RETRY_MAX_ATTEMPTS,
            "Maximum redeliveries",
            {"min": 1, "max": 10, "step": 1, "addonAfter": "times"},
            required("Enter the number of redeliveries"),
            values.get(RETRY_MAX_ATTEMPTS),
        ),
        _retry_control(
            RETRY_INITIAL_DELAY,
            "Initial delay",
            {"min": 50, "max": 10000, "step": 1000, "addonAfter": "ms"},
            required("Enter the initial delay"),
            values.get(RETRY_INITIAL_DELAY),
        ),
        _retry_control(
            RETRY_EXPONENTIAL_BACKOFF,
            "Use exponential backoff",
            {"checkedChildren": "Yes", "unCheckedChildren": "No"},
            [],
            values.get(RETRY_EXPONENTIAL_BACKOFF),
            value_prop="checked",
        ),
        _retry_control(
            RETRY_BACKOFF_MULTIPLIER,
            "Backoff multiplier",
            {"min": 1, "max": 10, "step": 1, "disabled": not backoff},
            required("Enter the backoff multiplier") if backoff else [],
            values.get(RETRY_BACKOFF_MULTIPLIER),
            disabled=not backoff,
        ),
        _retry_control(
            RETRY_MAX_DELAY,
            "Maximum delay",
            {"min": 50, "max": 60000, "step": 1000, "addonAfter": "ms"},
            required("Enter the maximum delay"),
            values.get(RETRY_MAX_DELAY),
        ),
    ]
    return RenderSection(id=RETRY_SECTION_ID, title=RETRY_SECTION_TITLE, controls=controls)


def interpret(schema, mode: Optional[str] = None, values: Optional[dict[str, Any]] = None) -> InterpretResult:
    """Build the render tree of ``schema`` for ``mode`` given current ``values``."""
    document = _document(schema)
    mode = getattr(mode, "value", mode)
    merged = copy.deepcopy(values) if isinstance(values, dict) else {}

    kept = [raw for raw in sorted_fields(document) if applies_to(raw, mode)]

    defaults = {}
    for raw in kept:
        props = _properties(raw)
        if PROPERTY_DEFAULT_VALUE in props and props[PROPERTY_DEFAULT_VALUE] is not None:
            defaults[raw["field"]] = copy.deepcopy(props[PROPERTY_DEFAULT_VALUE])
    for key, value in defaults.items():
        merged.setdefault(key, copy.deepcopy(value))

    controls = []
    for raw in kept:
        if not is_visible(raw, merged):
            continue
        controls.append(build_control(raw, merged, field_rules(raw)))

    sections = [RenderSection(id=FIELDS_SECTION_ID, title=FIELDS_SECTION_TITLE, controls=controls)]
    if document.get("supportRetry") is True:
        sections.append(retry_section(merged))
    return InterpretResult(tree=RenderTree(mode=mode, sections=sections), defaults=defaults, values=merged)


class LiveForm:
    """Host-side form state that re-interprets on every value change."""

    def __init__(self, schema, mode: Optional[str] = None, initial_values: Optional[dict[str, Any]] = None):
        self.schema = schema
        self.mode = getattr(mode, "value", mode)
        self._initial = copy.deepcopy(initial_values or {})
        self.result = interpret(schema, self.mode, self._initial)

    @property
    def tree(self) -> RenderTree:
        return self.result.tree

    @property
    def values(self) -> dict[str, Any]:
        return copy.deepcopy(self.result.values)

    def set_value(self, key: str, value) -> RenderTree:
        return self.set_values({key: value})

    def set_values(self, changes: dict[str, Any]) -> RenderTree:
        values = self.result.values
        values.update(copy.deepcopy(changes))
        self.result = interpret(self.schema, self.mode, values)
        return self.tree

    def reset(self) -> RenderTree:
        self.result = interpret(self.schema, self.mode, self._initial)
        return self.tree

    def validate(self) -> dict[str, list[str]]:
        errors = {}
        for control in self.tree.controls:
            if not control.supported or control.disabled:
                continue
            messages = check_values(control.rules, self.result.values.get(control.key), control.label)
            if messages:
                errors[control.key] = messages
        return errors

    def submit(self) -> tuple[dict[str, Any], dict[str, list[str]]]:
        """Return the values of visible controls and any rule violations."""
        visible = set(self.tree.keys)
        values = {k: copy.deepcopy(v) for k, v in self.result.values.items() if k in visible}
        return values, self.validate()
