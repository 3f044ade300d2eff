"""Visibility predicate tests"""

import pytest

from fieldforge.enums import PredicateKind
from fieldforge.errors import AuthoringValidationError, PredicateEvaluationError
from fieldforge.predicates import (
    UNDEFINED,
    check_predicate,
    compile_predicate,
    detect_kind,
    evaluate_predicate,
    loose_equals,
    strict_equals,
    truthy,
)


def evaluate(source, values):
    return compile_predicate(source).evaluate(values)


# ========== Classification ==========


@pytest.mark.parametrize(
    "source",
    [
        "function (values) { return values.a === 1; }",
        "function check(values) { return values.a === 1; }",
        "(values) => { return values.a === 1; }",
        "values => { return values.a === 1; }",
    ],
)
def test_detect_function_form(source):
    assert detect_kind(source) == PredicateKind.FUNCTION


def test_detect_expression_form():
    assert detect_kind('formValues.authType === "basic"') == PredicateKind.EXPRESSION
    assert detect_kind("(formValues.a === 1)") == PredicateKind.EXPRESSION


# ========== Evaluation ==========


def test_expression_on_auth_type():
    source = 'formValues.authType === "basic"'
    assert evaluate(source, {"authType": "basic"}) is True
    assert evaluate(source, {"authType": "none"}) is False
    assert evaluate(source, {}) is False


def test_function_forms_bind_their_parameter():
    values = {"enabled": True, "level": 3}
    assert evaluate("function (v) { return v.enabled === true; }", values)
    assert evaluate("(v) => { return v.level >= 3; }", values)
    assert evaluate("v => { return v.level < 3; }", values) is False


def test_function_local_bindings():
    source = """
    function (values) {
        const kind = values.auth.kind;
        let strict = values.auth.strict;
        return kind === "token" && !strict;
    }
    """
    assert evaluate(source, {"auth": {"kind": "token", "strict": False}})
    assert not evaluate(source, {"auth": {"kind": "token", "strict": True}})


def test_strict_and_loose_equality():
    assert evaluate('formValues.port == "8080"', {"port": 8080})
    assert not evaluate('formValues.port === "8080"', {"port": 8080})
    assert evaluate("formValues.flag == 1", {"flag": True})
    assert not evaluate("formValues.flag === 1", {"flag": True})


def test_null_and_undefined():
    assert evaluate("formValues.missing == null", {})
    assert not evaluate("formValues.missing === null", {})
    assert evaluate("formValues.missing === undefined", {})
    assert evaluate("formValues.value === null", {"value": None})


def test_truthiness():
    assert evaluate("formValues.items", {"items": []})
    assert not evaluate("formValues.name", {"name": ""})
    assert not evaluate("formValues.count", {"count": 0})
    assert evaluate("!formValues.enabled", {"enabled": False})
    assert evaluate("!!formValues.enabled", {"enabled": "yes"})


def test_logical_operators_short_circuit():
    source = "formValues.a === 1 && formValues.b.c === 2 || formValues.d"
    # formValues.b is never read when a !== 1
    assert evaluate(source, {"a": 0, "d": True})
    assert not evaluate(source, {"a": 0, "d": False})
    assert evaluate(source, {"a": 1, "b": {"c": 2}})


def test_length_and_indexing():
    assert evaluate("formValues.tags.length > 1", {"tags": ["a", "b"]})
    assert evaluate("formValues.name.length === 3", {"name": "abc"})
    assert evaluate("formValues.tags[0] === 'a'", {"tags": ["a", "b"]})
    assert evaluate('formValues["content-type"] === "json"', {"content-type": "json"})


def test_relational_comparisons():
    assert evaluate('"b" > "a"', {})
    assert evaluate("formValues.timeout <= 30", {"timeout": "20"})
    assert not evaluate("formValues.timeout > 1", {"timeout": "abc"})


def test_comments_and_escapes():
    assert evaluate('// only for quoted names\nformValues.s === "a\\"b"', {"s": 'a"b'})
    assert evaluate("/* unicode */ formValues.s === '\\u00e9'", {"s": "é"})


def test_reading_through_undefined_raises():
    with pytest.raises(PredicateEvaluationError, match="of undefined"):
        evaluate("formValues.a.b === 1", {})
    with pytest.raises(PredicateEvaluationError, match="of null"):
        evaluate("formValues.a.b === 1", {"a": None})


def test_large_integers_compare_without_overflow():
    assert evaluate("formValues.a > 5", {"a": 10**400})
    assert evaluate("formValues.a", {"a": 10**400})
    assert evaluate("formValues.a == '1'", {"a": 1})
    assert not evaluate("formValues.a < formValues.b", {"a": 10**400, "b": "x"})


def test_unexpected_failures_become_evaluation_errors(monkeypatch):
    def broken(obj, name):
        raise ValueError("broken lookup")

    monkeypatch.setattr("fieldforge.predicates.get_property", broken)

    with pytest.raises(PredicateEvaluationError, match="ValueError: broken lookup"):
        evaluate("formValues.a === 1", {"a": 1})


def test_empty_predicate_is_true():
    assert evaluate_predicate(None, {})
    assert evaluate_predicate("  ", {})
    assert not evaluate_predicate("formValues.a", {})


# ========== Static checks ==========


def test_eval_is_rejected():
    errors = check_predicate('eval("formValues.a === 1")')
    assert errors
    assert any("eval" in e for e in errors)


def test_function_constructor_is_rejected():
    errors = check_predicate('Function("return true")')
    assert any("Function" in e for e in errors)


@pytest.mark.parametrize("token", ["constructor", "__proto__", "prototype", "window", "globalThis"])
def test_forbidden_identifiers(token):
    errors = check_predicate(f"formValues.{token}")
    assert any(token in e for e in errors)


def test_function_form_requires_return():
    errors = check_predicate("v => { v.a === 1 }")
    assert any("return" in e for e in errors)

    errors = check_predicate("v => v.a === 1")
    assert any("return" in e for e in errors)


def test_unknown_identifier_is_rejected():
    errors = check_predicate("values.a === 1")
    assert len(errors) == 1
    assert "Unknown identifier 'values'" in errors[0]


def test_calls_are_rejected():
    errors = check_predicate("formValues.name.toUpperCase() === 'A'")
    assert any("calls are not allowed" in e for e in errors)


def test_syntax_errors_are_reported():
    assert check_predicate("formValues.a ===")
    assert check_predicate("formValues.a = 1")
    assert check_predicate("formValues.a === 1 === true")
    assert check_predicate("'unterminated")
    assert check_predicate("formValues.a @ 1")


def test_declared_kind_must_match():
    errors = check_predicate("formValues.a", kind="function")
    assert any("declared as function" in e for e in errors)
    assert check_predicate("formValues.a", kind=PredicateKind.EXPRESSION) == []


def test_nesting_is_bounded():
    source = "(" * 100 + "formValues.a" + ")" * 100
    errors = check_predicate(source)
    assert any("nested too deeply" in e for e in errors)


def test_length_is_bounded():
    source = " && ".join(["formValues.a === 1"] * 300)
    assert check_predicate(source) == ["Predicate is longer than 4000 characters"]


def test_valid_sources_pass():
    assert check_predicate('formValues.authType === "basic"') == []
    assert check_predicate("function (v) { return v.a !== 1; }") == []
    assert check_predicate(None) == []


def test_compile_raises_on_rejected_source():
    with pytest.raises(AuthoringValidationError):
        compile_predicate("eval('1')")


def test_compile_is_cached():
    assert compile_predicate("formValues.x === 1") is compile_predicate("formValues.x === 1")


# ========== Value semantics ==========


def test_value_helpers():
    assert truthy({}) is True
    assert truthy(UNDEFINED) is False
    assert strict_equals(None, None)
    assert not strict_equals(None, UNDEFINED)
    assert loose_equals(None, UNDEFINED)
    assert not loose_equals(0, None)
    assert loose_equals("1", True)
