"""Schema data model tests"""

import pytest
from pydantic import ValidationError

from fieldforge.enums import PredicateKind, ValidationKind
from fieldforge.models import EndpointTypeSchema, FieldDefinition, Predicate, RuleSpec


def test_schema_reads_wire_aliases(http_document):
    schema = EndpointTypeSchema.model_validate(http_document)

    assert schema.type_code == "http"
    assert schema.type_name == "HTTP"
    assert schema.supported_modes == ["IN", "OUT"]
    assert schema.supports_retry is False
    assert [f.key for f in schema.fields] == ["host", "port", "authType", "username"]
    assert schema.fields[0].widget_kind == "Input"
    assert schema.fields[0].rules[0].required is True


def test_schema_defaults():
    schema = EndpointTypeSchema(type_code="kafka", type_name="Kafka")

    assert schema.schema_version == "1.0.0"
    assert schema.status is True
    assert schema.fields == []
    assert schema.supported_modes == []


def test_support_mode_accepts_comma_separated_string():
    schema = EndpointTypeSchema.model_validate({"typeCode": "a", "typeName": "A", "supportMode": "IN, OUT"})
    assert schema.supported_modes == ["IN", "OUT"]


def test_to_document_uses_wire_keys(http_document):
    schema = EndpointTypeSchema.model_validate(http_document)
    document = schema.to_document()

    assert document["typeCode"] == "http"
    assert document["supportRetry"] is False
    assert document["schemaFields"][0]["field"] == "host"
    assert document["schemaFields"][0]["component"] == "Input"
    assert document["schemaFields"][3]["showCondition"] == 'formValues.authType === "basic"'
    assert "description" not in document["schemaFields"][0]


def test_field_mode_string_becomes_list():
    field = FieldDefinition.model_validate({"field": "a", "mode": "IN"})
    assert field.modes == ["IN"]

    field = FieldDefinition.model_validate({"field": "a", "mode": None})
    assert field.modes == []


def test_field_rules_accept_serialized_text():
    field = FieldDefinition.model_validate(
        {"field": "a", "rules": '[{"required": true, "message": "Required"}]'}
    )
    assert field.rules == [RuleSpec(required=True, message="Required")]


def test_field_rules_reject_broken_text():
    with pytest.raises(ValidationError, match="rules is not valid JSON"):
        FieldDefinition.model_validate({"field": "a", "rules": "[{"})


def test_rule_spec_rejects_unknown_attributes():
    with pytest.raises(ValidationError):
        RuleSpec.model_validate({"message": "x", "validator": "fn"})


def test_rule_spec_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        RuleSpec.model_validate({"message": "x", "type": "method"})


def test_rule_spec_is_empty():
    assert RuleSpec().is_empty()
    assert not RuleSpec(message="m").is_empty()
    assert not RuleSpec(min=0).is_empty()


def test_rule_spec_document_omits_unset():
    rule = RuleSpec(type=ValidationKind.EMAIL, message="Bad email")
    assert rule.to_document() == {"type": "email", "message": "Bad email"}


def test_predicate_from_source():
    assert Predicate.from_source(None) is None
    assert Predicate.from_source("   ") is None

    expression = Predicate.from_source("formValues.a === 1")
    assert expression.kind == PredicateKind.EXPRESSION

    function = Predicate.from_source("  (v) => { return v.a === 1; }")
    assert function.kind == PredicateKind.FUNCTION
    assert function.source.startswith("(v)")


def test_with_fields_copies(http_document):
    schema = EndpointTypeSchema.model_validate(http_document)
    fields = schema.fields[:1]
    copy = schema.with_fields(fields)

    fields[0].label = "Changed"
    assert copy.fields[0].label == "Host"
    assert len(copy.fields) == 1
