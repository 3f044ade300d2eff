"""Validation rule authoring and checking."""

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError

from .enums import RulesMode, ValidationKind
from .errors import AuthoringValidationError
from .models import RuleSpec
from .predicates import check_predicate
from .utils import flatten_validation_error

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_URL_RE = re.compile(r"(https?|ftp)://[^\s/$.?#][^\s]*", re.IGNORECASE)
_HEX_RE = re.compile(r"#?([a-f0-9]{6}|[a-f0-9]{3})", re.IGNORECASE)
_CONSTRAINT_KEYS = ("required", "message", "min", "max", "len", "pattern", "enum", "whitespace")


def _as_document(rule) -> dict[str, Any]:
    if isinstance(rule, RuleSpec):
        return rule.to_document()
    return {k: v for k, v in dict(rule).items() if v is not None}


def serialize_rules(rules) -> str:
    """Serialize rules as an indented JSON array with unset keys omitted."""
    return json.dumps([_as_document(r) for r in rules or []], indent=2, ensure_ascii=False)


def validate_rules(rules: list[RuleSpec]) -> list[str]:
    errors = []
    for i, rule in enumerate(rules, start=1):
        prefix = f"Rule {i}"
        if not rule.message or not rule.message.strip():
            errors.append(f"{prefix}: message is required")
        if rule.min is not None and rule.max is not None and rule.min > rule.max:
            errors.append(f"{prefix}: min ({rule.min}) must not be greater than max ({rule.max})")
        if rule.len is not None and rule.len < 0:
            errors.append(f"{prefix}: len must not be negative")
        if rule.pattern:
            try:
                re.compile(rule.pattern)
            except re.error as e:
                errors.append(f"{prefix}: pattern is not a valid regular expression ({e})")
        if rule.type == ValidationKind.ENUM and not rule.enum:
            errors.append(f"{prefix}: enum rules need a non-empty list of allowed values")
        if rule.type == ValidationKind.PATTERN and not rule.pattern:
            errors.append(f"{prefix}: pattern rules need a pattern")
    return errors


def parse_rules(value) -> list[RuleSpec]:
    """Parse a rule list from its serialized text or from plain objects.

    Raises ``AuthoringValidationError`` listing every problem found.
    """
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise AuthoringValidationError([f"Rules are not valid JSON: {e.msg} (line {e.lineno})"])
    if not isinstance(value, list):
        raise AuthoringValidationError(["Rules must be a JSON array"])

    errors = []
    rules = []
    for i, item in enumerate(value, start=1):
        if isinstance(item, RuleSpec):
            rules.append(item)
            continue
        if not isinstance(item, dict):
            errors.append(f"Rule {i}: must be an object")
            continue
        try:
            rules.append(RuleSpec.model_validate(item))
        except ValidationError as e:
            errors.extend(f"Rule {i}: {msg}" for msg in flatten_validation_error(e))
    if errors:
        raise AuthoringValidationError(errors)

    errors = validate_rules(rules)
    if errors:
        raise AuthoringValidationError(errors)
    return rules


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_nan(value) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _is_integral(value) -> bool:
    # Large ints cannot be converted to float
    return isinstance(value, int) or value.is_integer()


def _is_empty_value(value) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and not value)


def _is_date(value) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def _is_regexp(value) -> bool:
    if isinstance(value, re.Pattern):
        return True
    if not isinstance(value, str):
        return False
    try:
        re.compile(value)
    except re.error:
        return False
    return True


_TYPE_CHECKS = {
    ValidationKind.STRING: lambda v: isinstance(v, str),
    ValidationKind.NUMBER: lambda v: _is_number(v) and not _is_nan(v),
    ValidationKind.BOOLEAN: lambda v: isinstance(v, bool),
    ValidationKind.INTEGER: lambda v: _is_number(v) and _is_integral(v),
    ValidationKind.FLOAT: lambda v: _is_number(v) and not _is_integral(v),
    ValidationKind.EMAIL: lambda v: isinstance(v, str) and bool(_EMAIL_RE.fullmatch(v)),
    ValidationKind.URL: lambda v: isinstance(v, str) and bool(_URL_RE.fullmatch(v)),
    ValidationKind.DATE: _is_date,
    ValidationKind.ARRAY: lambda v: isinstance(v, list),
    ValidationKind.OBJECT: lambda v: isinstance(v, dict),
    ValidationKind.REGEXP: _is_regexp,
    ValidationKind.HEX: lambda v: isinstance(v, str) and bool(_HEX_RE.fullmatch(v)),
    ValidationKind.ENUM: lambda v: True,
    ValidationKind.PATTERN: lambda v: True,
}


def _measure(value) -> Optional[float]:
    if isinstance(value, (str, list)):
        return len(value)
    if _is_number(value):
        return value
    return None


def check_value(rule: RuleSpec, value, label: str = "Value") -> Optional[str]:
    """Check ``value`` against one rule; return its message when violated."""
    message = rule.message or f"{label} is invalid"

    if _is_empty_value(value):
        return message if rule.required else None

    if rule.type is not None and not _TYPE_CHECKS[rule.type](value):
        return message
    if rule.whitespace and isinstance(value, str) and not value.strip():
        return message

    size = _measure(value)
    if size is not None:
        if rule.len is not None and size != rule.len:
            return message
        if rule.min is not None and size < rule.min:
            return message
        if rule.max is not None and size > rule.max:
            return message

    if rule.pattern and isinstance(value, str):
        try:
            if not re.search(rule.pattern, value):
                return message
        except re.error:
            logger.warning(f"Ignoring invalid pattern {rule.pattern!r}")
    if rule.enum:
        values = value if isinstance(value, list) and rule.type != ValidationKind.ARRAY else [value]
        if any(v not in rule.enum for v in values):
            return message
    return None


def check_values(rules: list[RuleSpec], value, label: str = "Value") -> list[str]:
    return [msg for msg in (check_value(r, value, label) for r in rules) if msg]


# ==================== Rule configurator ====================


@dataclass
class RuleConfigResult:
    rules: Optional[list[RuleSpec]] = None
    show_condition: Optional[str] = None


def _is_blank_draft(draft: dict[str, Any]) -> bool:
    return all(_is_empty_value(draft.get(key)) or draft.get(key) is False for key in _CONSTRAINT_KEYS)


class RuleConfigurator:
    """Editing surface for one field's rules and visibility predicate.

    Rules are edited either as a list of drafts (structured mode) or as raw
    JSON text. Switching modes round-trips through the canonical
    serialization; a switch back from text that does not parse is refused and
    leaves the text intact.
    """

    def __init__(self, field_id: str, rules=None, show_condition: Optional[str] = None, field_label: str = ""):
        self.field_id = field_id
        self.field_label = field_label
        self.show_condition = show_condition or ""
        self.mode = RulesMode.STRUCTURED
        self.drafts: list[dict[str, Any]] = []
        self.text = ""

        if isinstance(rules, str):
            try:
                self.drafts = self._drafts_from_text(rules)
            except AuthoringValidationError:
                logger.debug(f"Rules of field {field_id} are not a rule array, opening in text mode")
                self.mode = RulesMode.TEXT
                self.text = rules
        elif rules:
            self.drafts = [_as_document(r) for r in rules]

    @staticmethod
    def _drafts_from_text(text: str) -> list[dict[str, Any]]:
        if not text.strip():
            return []
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            raise AuthoringValidationError([f"Rules are not valid JSON: {e.msg} (line {e.lineno})"])
        if not isinstance(value, list):
            raise AuthoringValidationError(["Rules must be a JSON array"])
        if not all(isinstance(item, dict) for item in value):
            raise AuthoringValidationError(["Every rule must be a JSON object"])
        return [dict(item) for item in value]

    def _require_mode(self, mode: RulesMode):
        if self.mode != mode:
            raise AuthoringValidationError([f"Rules are being edited in {self.mode.value} mode"])

    def add_rule(self, **values) -> int:
        self._require_mode(RulesMode.STRUCTURED)
        draft = {"type": ValidationKind.STRING.value, "message": ""}
        draft.update({k: v for k, v in values.items() if v is not None})
        self.drafts.append(draft)
        return len(self.drafts) - 1

    def update_rule(self, index: int, **changes) -> None:
        self._require_mode(RulesMode.STRUCTURED)
        draft = self.drafts[index]
        for key, value in changes.items():
            if key not in RuleSpec.model_fields:
                raise AuthoringValidationError([f"Unknown rule attribute '{key}'"])
            if value is None:
                draft.pop(key, None)
            else:
                draft[key] = value.value if hasattr(value, "value") else value

    def delete_rule(self, index: int) -> None:
        self._require_mode(RulesMode.STRUCTURED)
        del self.drafts[index]

    def switch_to_text(self) -> str:
        if self.mode == RulesMode.STRUCTURED:
            self.text = serialize_rules(d for d in self.drafts if not _is_blank_draft(d))
            self.mode = RulesMode.TEXT
        return self.text

    def switch_to_structured(self) -> list[dict[str, Any]]:
        if self.mode == RulesMode.TEXT:
            self.drafts = self._drafts_from_text(self.text)
            self.mode = RulesMode.STRUCTURED
        return self.drafts

    def set_text(self, text: str) -> None:
        self._require_mode(RulesMode.TEXT)
        self.text = text

    def set_condition(self, source: Optional[str]) -> None:
        self.show_condition = source or ""

    def accept(self) -> RuleConfigResult:
        errors = []
        rules: list[RuleSpec] = []
        try:
            if self.mode == RulesMode.STRUCTURED:
                rules = parse_rules([d for d in self.drafts if not _is_blank_draft(d)])
            else:
                rules = parse_rules(self.text)
        except AuthoringValidationError as e:
            errors.extend(e.errors)

        condition = self.show_condition.strip()
        errors.extend(f"Show condition: {msg}" for msg in check_predicate(condition))
        if errors:
            raise AuthoringValidationError(errors)
        return RuleConfigResult(rules=rules or None, show_condition=condition or None)
