"""Form interpreter tests"""

import copy
import logging

from fieldforge import predicates
from fieldforge.interpreter import LiveForm, interpret
from fieldforge.models import EndpointTypeSchema, RuleSpec


def field(key, **extra):
    return {"field": key, "label": key.title(), "component": "Input", **extra}


def document(*fields, **header):
    return {"typeCode": "test", "typeName": "Test", "schemaFields": list(fields), **header}


def test_mode_filter_keeps_matching_fields():
    doc = document(
        field("host", mode=["IN"], sortOrder=1),
        field("port", mode=["IN", "OUT"], sortOrder=2),
    )

    assert interpret(doc, "OUT").tree.keys == ["port"]
    assert interpret(doc, "IN").tree.keys == ["host", "port"]
    assert interpret(doc).tree.keys == ["host", "port"]


def test_mode_filter_is_exact_tag_match():
    doc = document(field("a", mode=["IN_OUT"]), field("b", mode="OUT"))

    assert interpret(doc, "IN").tree.keys == []
    assert interpret(doc, "OUT").tree.keys == ["b"]
    assert interpret(doc, "IN_OUT").tree.keys == ["a"]


def test_fields_without_modes_apply_everywhere():
    doc = document(field("a"), field("b", mode=[]))
    assert interpret(doc, "IN").tree.keys == ["a", "b"]


def test_predicate_controls_visibility(http_document):
    assert "username" not in interpret(http_document, "IN").tree.keys
    assert "username" in interpret(http_document, "IN", {"authType": "basic"}).tree.keys


def test_defaults_are_merged_when_absent(http_document):
    result = interpret(http_document, "IN", {"port": 9000})

    assert result.defaults == {"port": 8080, "authType": "none"}
    assert result.values == {"port": 9000, "authType": "none"}
    port = next(c for c in result.tree.controls if c.key == "port")
    assert port.value == 9000
    assert "defaultValue" not in port.properties


def test_defaults_from_other_modes_are_not_merged():
    doc = document(field("a", mode=["IN"], properties={"defaultValue": "x"}))
    assert interpret(doc, "OUT").values == {}


def test_defaults_feed_predicates():
    doc = document(
        field("enabled", component="Switch", properties={"defaultValue": True}),
        field("detail", showCondition="formValues.enabled === true"),
    )
    assert interpret(doc).tree.keys == ["enabled", "detail"]


def test_sort_order_with_missing_last():
    doc = document(field("c"), field("b", sortOrder=2), field("a", sortOrder=1), field("d"))
    assert interpret(doc).tree.keys == ["a", "b", "c", "d"]


def test_broken_predicate_fails_open(caplog):
    doc = document(
        field("a", showCondition="formValues.missing.deep === 1"),
        field("b", showCondition="eval('1')"),
        field("c", showCondition="formValues.x === 1"),
    )
    with caplog.at_level(logging.WARNING):
        tree = interpret(doc, values={}).tree

    assert tree.keys == ["a", "b"]
    assert "Field 'a'" in caplog.text
    assert "Field 'b'" in caplog.text


def test_large_integer_values_do_not_break_rendering():
    doc = document(
        field("a", sortOrder=1),
        field("b", sortOrder=2, showCondition="formValues.a > 5"),
        field("c", sortOrder=3),
        supportRetry=True,
    )
    tree = interpret(doc, values={"a": 10**400, "useExponentialBackoff": 10**400}).tree

    assert tree.keys[:3] == ["a", "b", "c"]
    assert tree.section("retry").controls[3].disabled is False


def test_unexpected_predicate_failure_is_isolated(monkeypatch, caplog):
    lookup = predicates.get_property

    def flaky(obj, name):
        if name == "boom":
            raise RuntimeError("lookup failed")
        return lookup(obj, name)

    monkeypatch.setattr(predicates, "get_property", flaky)
    doc = document(
        field("a", sortOrder=1),
        field("b", sortOrder=2, showCondition="formValues.boom === 1"),
        field("c", sortOrder=3, showCondition="formValues.c === 1"),
    )
    with caplog.at_level(logging.WARNING):
        tree = interpret(doc, values={"c": 1}).tree

    assert tree.keys == ["a", "b", "c"]
    assert "Field 'b'" in caplog.text
    assert "lookup failed" in caplog.text


def test_broken_rules_are_dropped(caplog):
    doc = document(
        field("a", rules="[{"),
        field("b", rules=[{"min": 5, "max": 1, "message": "x"}]),
        field("c", rules='[{"required": true, "message": "Required"}]'),
    )
    with caplog.at_level(logging.WARNING):
        controls = interpret(doc).tree.controls

    assert controls[0].rules == []
    assert controls[1].rules == []
    assert controls[2].rules == [RuleSpec(required=True, message="Required")]
    assert controls[2].required
    assert "rules dropped" in caplog.text


def test_unknown_widget_becomes_disabled_placeholder():
    control = interpret(document(field("a", component="Slider"))).tree.controls[0]

    assert control.supported is False
    assert control.disabled is True
    assert control.control == "Input"
    assert control.widget_kind == "Slider"
    assert "Slider" in control.properties["placeholder"]


def test_widget_dispatch():
    doc = document(
        field("flag", component="Switch"),
        field("notes", component="TextArea", properties={"rows": 6}),
        field("config", component="JSON", properties={"editorMode": "editor"}),
        field("secret", component="InputPassword", properties={"maxLength": 99999}),
    )
    flag, notes, config, secret = interpret(doc).tree.controls

    assert flag.control == "Switch"
    assert flag.value_prop == "checked"
    assert notes.full_width is True
    assert notes.properties["rows"] == 6
    assert config.control == "CodeEditor"
    assert config.full_width is True
    assert secret.control == "Password"
    assert "maxLength" not in secret.properties


def test_retry_section():
    doc = document(field("a"), supportRetry=True)
    tree = interpret(doc, "IN").tree

    assert [s.id for s in tree.sections] == ["fields", "retry"]
    retry = tree.section("retry")
    assert [c.key for c in retry.controls] == [
        "maximumRedeliveries",
        "redeliveryDelay",
        "useExponentialBackoff",
        "backOffMultiplier",
        "maximumRedeliveryDelay",
    ]
    multiplier = retry.controls[3]
    assert multiplier.disabled is True
    assert multiplier.rules == []
    assert tree.visible_count == 1

    tree = interpret(doc, "IN", {"useExponentialBackoff": True}).tree
    multiplier = tree.section("retry").controls[3]
    assert multiplier.disabled is False
    assert multiplier.required


def test_retry_section_absent_by_default(http_document):
    assert interpret(http_document).tree.section("retry") is None


def test_interpret_is_deterministic(http_document):
    values = {"authType": "basic", "host": "example.com"}
    first = interpret(http_document, "IN", values)
    second = interpret(http_document, "IN", values)

    assert first.tree == second.tree
    assert first.values == second.values


def test_inputs_are_not_mutated(http_document):
    values = {"host": "example.com"}
    doc = copy.deepcopy(http_document)

    interpret(doc, "IN", values)

    assert values == {"host": "example.com"}
    assert doc == http_document


def test_accepts_validated_schema(http_document):
    schema = EndpointTypeSchema.model_validate(http_document)
    assert interpret(schema, "OUT").tree.keys == ["port", "authType"]


def test_malformed_documents_never_raise():
    assert interpret(None).tree.keys == []
    assert interpret({"schemaFields": "nope"}).tree.keys == []
    doc = {
        "schemaFields": [
            "junk",
            {"label": "no key"},
            {"field": "a", "mode": 5, "sortOrder": "x", "properties": [1], "label": 3},
            {"field": "b", "component": 42},
        ]
    }
    controls = interpret(doc, "IN").tree.controls
    assert [c.key for c in controls] == ["a", "b"]
    assert controls[0].label == "a"
    assert controls[1].supported is False


# ========== Live form ==========


def test_live_form_reinterprets_on_change(http_document):
    form = LiveForm(http_document, "IN")
    assert "username" not in form.tree.keys

    tree = form.set_value("authType", "basic")
    assert "username" in tree.keys

    form.reset()
    assert "username" not in form.tree.keys


def test_live_form_submit(http_document):
    form = LiveForm(http_document, "IN")
    values, errors = form.submit()

    assert errors == {"host": ["Host is required"]}
    assert values == {"port": 8080, "authType": "none"}

    form.set_values({"host": "example.com", "username": "ignored"})
    values, errors = form.submit()
    assert errors == {}
    assert values == {"host": "example.com", "port": 8080, "authType": "none"}
