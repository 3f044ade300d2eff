"""Enumeration type definitions"""

from enum import Enum


class WidgetKind(str, Enum):
    """Closed set of widget kinds a field can use"""

    INPUT = "Input"
    INPUT_PASSWORD = "InputPassword"
    INPUT_NUMBER = "InputNumber"
    TEXT_AREA = "TextArea"
    JSON = "JSON"
    SELECT = "Select"
    RADIO = "Radio"
    CHECKBOX = "Checkbox"
    SWITCH = "Switch"
    DATE_PICKER = "DatePicker"


class Mode(str, Enum):
    """Direction tags partitioning which fields apply"""

    IN = "IN"
    OUT = "OUT"
    IN_OUT = "IN_OUT"
    OUT_IN = "OUT_IN"


class ValidationKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    EMAIL = "email"
    URL = "url"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    ENUM = "enum"
    PATTERN = "pattern"
    REGEXP = "regexp"
    HEX = "hex"


class PredicateKind(str, Enum):
    EXPRESSION = "expression"
    FUNCTION = "function"


class EditorState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"


class RulesMode(str, Enum):
    STRUCTURED = "structured"
    TEXT = "text"


class ConfigStatus(str, Enum):
    """Outcome of a widget property configuration attempt"""

    OK = "ok"
    INVALID = "invalid"
    UNSUPPORTED = "unsupported"
