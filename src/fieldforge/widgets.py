"""Widget property authoring.

Every widget kind owns a bounded property set described by a pydantic model.
``WIDGET_REGISTRY`` is the single dispatch table from kind to that model and
to the control adapter used when a field is rendered.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .consts import DATE_FORMATS, FULL_WIDTH_WIDGETS, PROPERTY_DEFAULT_VALUE
from .enums import ConfigStatus, WidgetKind
from .errors import AuthoringValidationError
from .utils import flatten_validation_error

logger = logging.getLogger(__name__)

Number = int | float


class WidgetProperties(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    disabled: bool = False

    def to_properties(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class InputProperties(WidgetProperties):
    placeholder: str = ""
    max_length: Optional[int] = Field(default=None, ge=1, le=1000)
    show_count: bool = False
    allow_clear: bool = True
    read_only: bool = False
    default_value: Optional[str] = None


class TextAreaProperties(WidgetProperties):
    placeholder: str = ""
    rows: int = Field(default=4, ge=1, le=20)
    max_length: Optional[int] = Field(default=None, ge=1, le=10000)
    show_count: bool = False
    auto_size: bool = False
    allow_clear: bool = True
    read_only: bool = False
    default_value: Optional[str] = None


class InputNumberProperties(WidgetProperties):
    min: Optional[Number] = None
    max: Optional[Number] = None
    step: Number = Field(default=1, gt=0)
    precision: Optional[int] = Field(default=None, ge=0, le=20)
    default_value: Optional[Number] = None
    placeholder: str = ""
    decimal_separator: str = "."
    size: Literal["large", "middle", "small"] = "middle"
    addon_before: Optional[str] = None
    addon_after: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    variant: Literal["outlined", "filled", "borderless"] = "outlined"
    controls: bool = True
    keyboard: bool = True
    string_mode: bool = False
    allow_clear: bool = True
    read_only: bool = False

    @model_validator(mode="after")
    def validate_bounds(self) -> "InputNumberProperties":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) must not be greater than max ({self.max})")
        if self.default_value is not None:
            if self.min is not None and self.default_value < self.min:
                raise ValueError("defaultValue is below min")
            if self.max is not None and self.default_value > self.max:
                raise ValueError("defaultValue is above max")
        return self


class OptionItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str
    value: str
    disabled: bool = False

    @field_validator("label", "value", mode="before")
    @classmethod
    def validate_not_blank(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()


class ChoiceProperties(WidgetProperties):
    options: list[OptionItem] = Field(default_factory=list)

    @field_validator("options")
    @classmethod
    def validate_unique_options(cls, v: list[OptionItem]) -> list[OptionItem]:
        seen = set()
        for option in v:
            if option.value in seen:
                raise ValueError(f"Duplicate option value: '{option.value}'")
            seen.add(option.value)
        return v

    def option_values(self) -> set[str]:
        return {o.value for o in self.options}

    def _check_choice(self, value) -> None:
        if value is None or not self.options:
            return
        values = value if isinstance(value, list) else [value]
        unknown = [v for v in values if v not in self.option_values()]
        if unknown:
            raise ValueError(f"defaultValue {unknown!r} is not one of the options")


class SelectProperties(ChoiceProperties):
    placeholder: str = ""
    mode: Literal["single", "multiple"] = "single"
    list_height: int = Field(default=256, ge=100, le=1000)
    placement: Literal["bottomLeft", "bottomRight", "topLeft", "topRight"] = "bottomLeft"
    prefix: str = ""
    allow_clear: bool = True
    show_search: bool = False
    default_value: Optional[str | list[str]] = None

    @model_validator(mode="after")
    def validate_default(self) -> "SelectProperties":
        if isinstance(self.default_value, list) and self.mode != "multiple":
            raise ValueError("a list defaultValue requires mode 'multiple'")
        self._check_choice(self.default_value)
        return self


class RadioProperties(ChoiceProperties):
    option_type: Literal["default", "button"] = "default"
    default_value: Optional[str] = None

    @model_validator(mode="after")
    def validate_default(self) -> "RadioProperties":
        self._check_choice(self.default_value)
        return self


class CheckboxProperties(ChoiceProperties):
    default_value: Optional[list[str]] = None

    @model_validator(mode="after")
    def validate_default(self) -> "CheckboxProperties":
        self._check_choice(self.default_value)
        return self


class SwitchProperties(WidgetProperties):
    checked_children: str = "Enabled"
    un_checked_children: str = "Disabled"
    size: Literal["default", "small"] = "default"
    loading: bool = False
    default_value: Optional[bool] = None


class DatePickerProperties(WidgetProperties):
    placeholder: str = "Select a date"
    format: str = DATE_FORMATS[0]
    show_time: bool = False
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    allow_clear: bool = True
    default_value: Optional[str] = None

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in DATE_FORMATS:
            raise ValueError(f"Unsupported date format '{v}'. Supported: {', '.join(DATE_FORMATS)}")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "DatePickerProperties":
        if self.min_date and self.max_date and self.min_date > self.max_date:
            raise ValueError("minDate must not be after maxDate")
        return self


class JSONProperties(WidgetProperties):
    editor_mode: Literal["form", "editor"] = "form"
    show_line_numbers: bool = True
    show_minimap: bool = False
    height: int = Field(default=400, ge=200, le=800)
    theme: Literal["vs", "vs-dark", "hc-black"] = "vs"
    format_on_save: bool = True
    validate_on_change: bool = True
    allow_empty: bool = False
    default_expanded: bool = True
    placeholder: str = ""
    default_value: Optional[dict[str, Any] | list[Any]] = None


ControlAdapter = Callable[[dict[str, Any]], tuple[str, dict[str, Any]]]


def _passthrough(control: str) -> ControlAdapter:
    def adapt(props: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return control, props

    return adapt


def _adapt_select(props: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    return "Select", {**props, "filterOption": "label"}


def _adapt_json(props: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    if props.get("editorMode", "form") == "form":
        return "JSONForm", {
            "disabled": props.get("disabled", False),
            "allowEmpty": props.get("allowEmpty", False),
        }
    return "CodeEditor", {
        "language": "json",
        "height": props.get("height", 400),
        "theme": props.get("theme", "vs"),
        "showLineNumbers": props.get("showLineNumbers", True),
        "showMinimap": props.get("showMinimap", False),
        "readOnly": props.get("disabled", False),
        "formatOnSave": props.get("formatOnSave", True),
        "validateOnChange": props.get("validateOnChange", True),
        "placeholder": props.get("placeholder") or "Enter JSON data",
    }


@dataclass(frozen=True)
class WidgetSpec:
    kind: WidgetKind
    label: str
    properties_model: type[WidgetProperties]
    adapter: ControlAdapter
    value_prop: str = "value"

    @property
    def full_width(self) -> bool:
        return self.kind.value in FULL_WIDTH_WIDGETS


WIDGET_REGISTRY: dict[WidgetKind, WidgetSpec] = {
    WidgetKind.INPUT: WidgetSpec(WidgetKind.INPUT, "Text input", InputProperties, _passthrough("Input")),
    WidgetKind.INPUT_PASSWORD: WidgetSpec(
        WidgetKind.INPUT_PASSWORD, "Password input", InputProperties, _passthrough("Password")
    ),
    WidgetKind.INPUT_NUMBER: WidgetSpec(
        WidgetKind.INPUT_NUMBER, "Number input", InputNumberProperties, _passthrough("InputNumber")
    ),
    WidgetKind.TEXT_AREA: WidgetSpec(
        WidgetKind.TEXT_AREA, "Text area", TextAreaProperties, _passthrough("TextArea")
    ),
    WidgetKind.JSON: WidgetSpec(WidgetKind.JSON, "JSON editor", JSONProperties, _adapt_json),
    WidgetKind.SELECT: WidgetSpec(WidgetKind.SELECT, "Select", SelectProperties, _adapt_select),
    WidgetKind.RADIO: WidgetSpec(WidgetKind.RADIO, "Radio group", RadioProperties, _passthrough("RadioGroup")),
    WidgetKind.CHECKBOX: WidgetSpec(
        WidgetKind.CHECKBOX, "Checkbox group", CheckboxProperties, _passthrough("CheckboxGroup")
    ),
    WidgetKind.SWITCH: WidgetSpec(
        WidgetKind.SWITCH, "Switch", SwitchProperties, _passthrough("Switch"), value_prop="checked"
    ),
    WidgetKind.DATE_PICKER: WidgetSpec(
        WidgetKind.DATE_PICKER, "Date picker", DatePickerProperties, _passthrough("DatePicker")
    ),
}


def get_widget_spec(kind) -> Optional[WidgetSpec]:
    try:
        return WIDGET_REGISTRY.get(WidgetKind(kind))
    except ValueError:
        return None


@dataclass
class WidgetConfigResult:
    status: ConfigStatus
    kind: str
    properties: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ConfigStatus.OK


def default_properties(kind) -> dict[str, Any]:
    spec = get_widget_spec(kind)
    if spec is None:
        return {}
    return spec.properties_model().to_properties()


def configure(kind, properties: dict[str, Any] | None) -> WidgetConfigResult:
    """Validate an authored property map for ``kind``.

    Returns the canonical map (defaults filled in) on success, every problem
    on failure, and an explicit unsupported result for kinds outside the
    registry.
    """
    kind_name = getattr(kind, "value", kind)
    spec = get_widget_spec(kind)
    if spec is None:
        return WidgetConfigResult(
            status=ConfigStatus.UNSUPPORTED,
            kind=str(kind_name),
            properties=dict(properties or {}),
            errors=[f"Widget kind '{kind_name}' does not support property configuration"],
        )

    if properties is not None and not isinstance(properties, dict):
        return WidgetConfigResult(
            status=ConfigStatus.INVALID,
            kind=spec.kind.value,
            errors=["properties must be an object"],
        )

    try:
        model = spec.properties_model.model_validate(properties or {})
    except ValidationError as e:
        return WidgetConfigResult(
            status=ConfigStatus.INVALID,
            kind=spec.kind.value,
            properties=dict(properties or {}),
            errors=flatten_validation_error(e),
        )
    return WidgetConfigResult(status=ConfigStatus.OK, kind=spec.kind.value, properties=model.to_properties())


def narrow(kind, properties) -> dict[str, Any]:
    """Coerce a stored property map into the typed record for ``kind``.

    Entries that do not fit are dropped one by one, so one bad value never
    costs the rest of the map. Unknown kinds yield an empty map.
    """
    spec = get_widget_spec(kind)
    if spec is None or not isinstance(properties, dict):
        return {}

    model_cls = spec.properties_model
    try:
        return model_cls.model_validate(properties).to_properties()
    except ValidationError:
        pass

    accepted: dict[str, Any] = {}
    for name, value in properties.items():
        candidate = {**accepted, name: value}
        try:
            model_cls.model_validate(candidate)
        except ValidationError as e:
            logger.warning(f"Dropping {spec.kind.value} property '{name}': {e.errors()[0]['msg']}")
            continue
        accepted = candidate
    return model_cls.model_validate(accepted).to_properties()


def adapt(kind, properties: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    spec = get_widget_spec(kind)
    if spec is None:
        raise KeyError(kind)
    props = {k: v for k, v in properties.items() if k not in (PROPERTY_DEFAULT_VALUE, "value")}
    return spec.adapter(props)


class WidgetPropertyDialog:
    """Transient property editor for one field.

    The dialog works on its own draft copy; nothing reaches the field until
    the owner applies the result.
    """

    def __init__(self, field_id: str, kind, properties: dict[str, Any] | None = None):
        self.field_id = field_id
        self.kind = getattr(kind, "value", kind)
        self._draft: dict[str, Any] = dict(properties or {})

    @property
    def supported(self) -> bool:
        return get_widget_spec(self.kind) is not None

    @property
    def properties(self) -> dict[str, Any]:
        return dict(self._draft)

    def set(self, name: str, value) -> None:
        if value is None:
            self._draft.pop(name, None)
        else:
            self._draft[name] = value

    def update(self, **changes) -> None:
        for name, value in changes.items():
            self.set(name, value)

    @property
    def options(self) -> list[dict[str, Any]]:
        return [dict(o) for o in self._draft.get("options", [])]

    def add_option(self, label: str = "", value: str = "", disabled: bool = False) -> None:
        options = self.options
        if options:
            last = options[-1]
            missing = [
                name for name in ("label", "value") if not str(last.get(name) or "").strip()
            ]
            if missing:
                raise AuthoringValidationError(
                    [f"Fill in the {' and '.join(missing)} of the previous option first"]
                )
        options.append({"label": label, "value": value, "disabled": disabled})
        self._draft["options"] = options

    def update_option(self, index: int, **changes) -> None:
        options = self.options
        if not 0 <= index < len(options):
            raise IndexError(f"No option at index {index}")
        options[index].update(changes)
        self._draft["options"] = options

    def remove_option(self, index: int) -> None:
        options = self.options
        if not 0 <= index < len(options):
            raise IndexError(f"No option at index {index}")
        del options[index]
        self._draft["options"] = options

    def result(self) -> WidgetConfigResult:
        return configure(self.kind, self._draft)
