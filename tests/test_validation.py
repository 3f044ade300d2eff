"""Static schema validation tests"""

import pytest

from fieldforge.errors import AuthoringValidationError
from fieldforge.models import EndpointTypeSchema, FieldDefinition
from fieldforge.validation import ensure_valid, validate_field, validate_fields, validate_schema


def make_field(key="host", **extra):
    return FieldDefinition.model_validate({"field": key, "label": "Label", **extra})


def test_valid_schema(http_document):
    assert validate_schema(EndpointTypeSchema.model_validate(http_document)) == []


def test_field_key_and_label():
    assert validate_field(make_field("")) == ["key is required"]
    assert validate_field(make_field("2fa"))[0].startswith("key must start with a letter")
    assert validate_field(make_field(label=" ")) == ["label is required"]
    assert validate_field(make_field("url\n"))[0].startswith("key must start with a letter")


def test_field_widget_and_modes():
    assert validate_field(make_field(component="Slider")) == ["unknown widget kind 'Slider'"]
    assert validate_field(make_field(mode=["IN", "SIDEWAYS"])) == ["unknown mode 'SIDEWAYS'"]


def test_field_properties_are_checked():
    errors = validate_field(make_field(component="InputNumber", properties={"min": 10, "max": 1}))
    assert errors
    assert all(e.startswith("properties: ") for e in errors)

    errors = validate_field(make_field(properties={"colour": "red"}))
    assert errors and errors[0].startswith("properties: ")


def test_field_rules_are_checked():
    errors = validate_field(make_field(rules=[{"min": 5, "max": 1, "message": "Out of range"}]))
    assert len(errors) == 1
    assert "must not be greater than" in errors[0]


def test_field_show_condition_is_checked():
    errors = validate_field(make_field(showCondition="eval('formValues.a')"))
    assert errors
    assert errors[0].startswith("show condition: ")
    assert "eval/Function" in errors[0]


def test_duplicate_keys():
    fields = [make_field("url"), make_field("method"), make_field("url")]
    assert validate_fields(fields) == ["Field 3 ('url'): duplicate key 'url' (also used by field 1)"]


def test_errors_name_the_field():
    fields = [make_field("host"), make_field("port", component="Slider")]
    assert validate_fields(fields) == ["Field 2 ('port'): unknown widget kind 'Slider'"]


def test_schema_header():
    schema = EndpointTypeSchema(typeCode="1http", typeName="", supportMode=["IN", "UP"])
    errors = validate_schema(schema, require_fields=True)

    assert errors[0].startswith("typeCode must start with a letter")
    assert "typeName is required" in errors
    assert "supportMode: unknown mode 'UP'" in errors
    assert "At least one field is required" in errors


def test_empty_field_list_allowed_by_default():
    assert validate_schema(EndpointTypeSchema(typeCode="http", typeName="HTTP")) == []


def test_ensure_valid_reports_everything():
    schema = EndpointTypeSchema(
        typeCode="http",
        typeName="HTTP",
        schemaFields=[{"field": "a", "label": ""}, {"field": "a", "label": "A"}],
    )
    with pytest.raises(AuthoringValidationError) as excinfo:
        ensure_valid(schema)

    assert excinfo.value.errors == [
        "Field 1 ('a'): label is required",
        "Field 2 ('a'): duplicate key 'a' (also used by field 1)",
    ]
