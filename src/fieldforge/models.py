"""Schema data model: endpoint types, their fields and validation rules."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .consts import SCHEMA_VERSION_DEFAULT
from .enums import PredicateKind, ValidationKind, WidgetKind


class RuleSpec(BaseModel):
    """One authored validation constraint attached to a field."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    required: Optional[bool] = None
    type: Optional[ValidationKind] = None
    message: Optional[str] = None
    min: Optional[int | float] = None
    max: Optional[int | float] = None
    len: Optional[int] = None
    pattern: Optional[str] = None
    enum: Optional[list[Any]] = None
    whitespace: Optional[bool] = None

    def is_empty(self) -> bool:
        return not (
            self.message
            or self.type
            or self.required
            or self.min is not None
            or self.max is not None
            or self.len is not None
            or self.pattern
            or self.enum
        )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Predicate(BaseModel):
    """A field's visibility condition in restricted textual form."""

    kind: PredicateKind
    source: str

    @classmethod
    def from_source(cls, source: str | None) -> Optional["Predicate"]:
        from .predicates import detect_kind

        if not source or not source.strip():
            return None
        return cls(kind=detect_kind(source), source=source.strip())


class FieldDefinition(BaseModel):
    """One field's full authoring record."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    key: str = Field(default="", alias="field")
    label: str = ""
    widget_kind: str = Field(default=WidgetKind.INPUT.value, alias="component")
    properties: dict[str, Any] = Field(default_factory=dict)
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    modes: list[str] = Field(default_factory=list, alias="mode")
    rules: Optional[list[RuleSpec]] = None
    show_condition: Optional[str] = Field(default=None, alias="showCondition")
    description: Optional[str] = None

    @field_validator("widget_kind", mode="before")
    @classmethod
    def coerce_widget_kind(cls, v):
        if isinstance(v, WidgetKind):
            return v.value
        return v

    @field_validator("modes", mode="before")
    @classmethod
    def coerce_modes(cls, v):
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [v]
        return [m.value if hasattr(m, "value") else m for m in v]

    @field_validator("properties", mode="before")
    @classmethod
    def coerce_properties(cls, v):
        return {} if v is None else v

    @field_validator("rules", mode="before")
    @classmethod
    def coerce_serialized_rules(cls, v):
        # Older documents store the rule list as a JSON string
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"rules is not valid JSON: {e.msg}") from e
        return v

    @property
    def predicate(self) -> Optional[Predicate]:
        return Predicate.from_source(self.show_condition)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class EndpointTypeSchema(BaseModel):
    """The authored, persistable definition of one connector type's form."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    type_code: str = Field(alias="typeCode")
    type_name: str = Field(alias="typeName")
    endpoint_type: Optional[str] = Field(default=None, alias="endpointType")
    category: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    supported_modes: list[str] = Field(default_factory=list, alias="supportMode")
    schema_version: str = Field(default=SCHEMA_VERSION_DEFAULT, alias="schemaVersion")
    status: bool = True
    supports_retry: bool = Field(default=False, alias="supportRetry")
    fields: list[FieldDefinition] = Field(default_factory=list, alias="schemaFields")

    @field_validator("supported_modes", mode="before")
    @classmethod
    def coerce_modes(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [m.strip() for m in v.split(",") if m.strip()]
        return [m.value if hasattr(m, "value") else m for m in v]

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_fields(cls, v):
        return [] if v is None else v

    def with_fields(self, fields: list[FieldDefinition]) -> "EndpointTypeSchema":
        return self.model_copy(
            update={"fields": [f.model_copy(deep=True) for f in fields]}, deep=True
        )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
