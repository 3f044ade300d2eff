"""Visibility predicates.

Show conditions are authored in a small, JavaScript-flavoured expression
language and evaluated here by a sandboxed interpreter. Nothing is ever handed
to ``eval``: a source either parses under the fixed grammar below or it is
rejected.

    expr    := or
    or      := and ( "||" and )*
    and     := not ( "&&" not )*
    not     := "!" not | compare
    compare := member ( OP member )?
    member  := primary ( "." IDENT | "[" (STRING|NUMBER) "]" )*
    primary := STRING | NUMBER | true | false | null | undefined | IDENT | "(" expr ")"

Expression form binds the form values to ``formValues``. Function form binds
them to the single declared parameter:

    function (values) { const a = values.x; return a === 1; }
    (values) => { return values.x === 1; }
    values => { return values.x === 1; }
"""

import logging
import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional

from .consts import (
    FORBIDDEN_PREDICATE_TOKENS,
    MAX_PREDICATE_DEPTH,
    MAX_PREDICATE_LENGTH,
    VALUES_VARIABLE,
)
from .enums import PredicateKind
from .errors import AuthoringValidationError, PredicateEvaluationError, PredicateSyntaxError

logger = logging.getLogger(__name__)


class _Undefined:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "undefined"

    def __bool__(self):
        return False


UNDEFINED = _Undefined()

_FUNCTION_RE = re.compile(r"^\s*function\b")
_ARROW_RE = re.compile(r"^\s*(\(\s*[A-Za-z_$][\w$]*\s*\)|[A-Za-z_$][\w$]*)\s*=>")
_DYNAMIC_CODE_RE = re.compile(r"\b(eval|Function)\s*\(")
_RETURN_RE = re.compile(r"\breturn\b")

# ==================== Tokenizer ====================

_KEYWORDS = {"true", "false", "null", "undefined", "function", "return", "const", "let", "var"}
_OPERATORS = (
    "===", "!==", "==", "!=", "<=", ">=", "=>", "&&", "||",
    "<", ">", "!", "(", ")", "{", "}", "[", "]", ".", ";", ",", "=",
)  # fmt: skip
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_NUMBER_RE = re.compile(r"\d+(\.\d+)?([eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")


@dataclass(frozen=True)
class Token:
    kind: str  # num, str, ident, kw, op, eof
    value: Any
    pos: int


def tokenize(source: str) -> list[Token]:
    tokens = []
    i, n = 0, len(source)
    while i < n:
        ch = source[i]
        if ch.isspace():
            i += 1
            continue
        if source.startswith("//", i):
            end = source.find("\n", i)
            i = n if end == -1 else end + 1
            continue
        if source.startswith("/*", i):
            end = source.find("*/", i + 2)
            if end == -1:
                raise PredicateSyntaxError("Unterminated comment", i)
            i = end + 2
            continue
        if ch in "'\"":
            value, i = _read_string(source, i)
            tokens.append(Token("str", value, i))
            continue
        m = _NUMBER_RE.match(source, i)
        if m:
            text = m.group(0)
            value = float(text) if any(c in text for c in ".eE") else int(text)
            tokens.append(Token("num", value, i))
            i = m.end()
            continue
        m = _IDENT_RE.match(source, i)
        if m:
            word = m.group(0)
            tokens.append(Token("kw" if word in _KEYWORDS else "ident", word, i))
            i = m.end()
            continue
        op = next((op for op in _OPERATORS if source.startswith(op, i)), None)
        if op is None:
            raise PredicateSyntaxError(f"Unexpected character {ch!r}", i)
        tokens.append(Token("op", op, i))
        i += len(op)
    tokens.append(Token("eof", None, n))
    return tokens


def _read_string(source: str, start: int) -> tuple[str, int]:
    quote = source[start]
    chars = []
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == quote:
            return "".join(chars), i + 1
        if ch == "\n":
            break
        if ch == "\\":
            i += 1
            if i >= len(source):
                break
            esc = source[i]
            if esc == "u":
                digits = source[i + 1 : i + 5]
                if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise PredicateSyntaxError("Invalid unicode escape", i)
                chars.append(chr(int(digits, 16)))
                i += 5
                continue
            chars.append(_ESCAPES.get(esc, esc))
        else:
            chars.append(ch)
        i += 1
    raise PredicateSyntaxError("Unterminated string literal", start)


# ==================== Runtime semantics ====================


def _type_tag(v) -> str:
    if v is UNDEFINED:
        return "undefined"
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "boolean"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, str):
        return "string"
    return "object"


def _is_nan(v) -> bool:
    # Only floats can be NaN; math.isnan overflows on large ints
    return isinstance(v, float) and math.isnan(v)


def truthy(v) -> bool:
    tag = _type_tag(v)
    if tag in ("undefined", "null"):
        return False
    if tag == "boolean":
        return v
    if tag == "number":
        return v != 0 and not _is_nan(v)
    if tag == "string":
        return len(v) > 0
    return True


def to_number(v) -> float:
    tag = _type_tag(v)
    if tag == "number":
        return v
    if tag == "boolean":
        return int(v)
    if tag == "null":
        return 0
    if tag == "string":
        text = v.strip()
        if not text:
            return 0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def strict_equals(a, b) -> bool:
    tag = _type_tag(a)
    if tag != _type_tag(b):
        return False
    if tag == "object":
        return a is b
    return a == b


def loose_equals(a, b) -> bool:
    ta, tb = _type_tag(a), _type_tag(b)
    if ta == tb:
        return strict_equals(a, b)
    nullish = ("undefined", "null")
    if ta in nullish or tb in nullish:
        return ta in nullish and tb in nullish
    if "object" in (ta, tb):
        return False
    return to_number(a) == to_number(b)


def _relational(op: str, a, b) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        left, right = a, b
    else:
        left, right = to_number(a), to_number(b)
        if _is_nan(left) or _is_nan(right):
            return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def _describe(v) -> str:
    return "null" if v is None else "undefined"


def get_property(obj, name):
    if obj is None or obj is UNDEFINED:
        raise PredicateEvaluationError(f"Cannot read property '{name}' of {_describe(obj)}")
    if name == "length" and isinstance(obj, (str, list)):
        return len(obj)
    if isinstance(obj, dict):
        return obj.get(name, UNDEFINED)
    if isinstance(obj, list) and isinstance(name, (int, float)) and not isinstance(name, bool):
        index = int(name)
        if index == name and 0 <= index < len(obj):
            return obj[index]
    if isinstance(obj, list) and isinstance(name, str) and name.isdigit():
        return get_property(obj, int(name))
    return UNDEFINED


# ==================== AST ====================


class Node:
    def evaluate(self, env: dict[str, Any]):
        raise NotImplementedError


@dataclass
class Literal(Node):
    value: Any

    def evaluate(self, env):
        return self.value


@dataclass
class Name(Node):
    name: str

    def evaluate(self, env):
        return env.get(self.name, UNDEFINED)


@dataclass
class Member(Node):
    target: Node
    path: list[Any]

    def evaluate(self, env):
        value = self.target.evaluate(env)
        for name in self.path:
            value = get_property(value, name)
        return value


@dataclass
class Not(Node):
    operand: Node
    count: int = 1

    def evaluate(self, env):
        value = truthy(self.operand.evaluate(env))
        return value if self.count % 2 == 0 else not value


@dataclass
class Logical(Node):
    op: str
    operands: list[Node]

    def evaluate(self, env):
        value = UNDEFINED
        for operand in self.operands:
            value = operand.evaluate(env)
            if self.op == "&&" and not truthy(value):
                return value
            if self.op == "||" and truthy(value):
                return value
        return value


@dataclass
class Compare(Node):
    op: str
    left: Node
    right: Node

    def evaluate(self, env):
        a, b = self.left.evaluate(env), self.right.evaluate(env)
        if self.op == "===":
            return strict_equals(a, b)
        if self.op == "!==":
            return not strict_equals(a, b)
        if self.op == "==":
            return loose_equals(a, b)
        if self.op == "!=":
            return not loose_equals(a, b)
        return _relational(self.op, a, b)


_COMPARE_OPS = {"===", "!==", "==", "!=", "<", "<=", ">", ">="}
_CONSTANTS = {"true": True, "false": False, "null": None, "undefined": UNDEFINED}


# ==================== Parser ====================


class Parser:
    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.index = 0
        self.depth = 0
        self.scope: set[str] = set()

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.current
        if token.kind != "eof":
            self.index += 1
        return token

    def check(self, kind: str, value=None) -> bool:
        token = self.current
        return token.kind == kind and (value is None or token.value == value)

    def accept(self, kind: str, value=None) -> Optional[Token]:
        if self.check(kind, value):
            return self.advance()
        return None

    def expect(self, kind: str, value=None) -> Token:
        if not self.check(kind, value):
            expected = repr(value) if value is not None else kind
            raise PredicateSyntaxError(f"Expected {expected}, found {self._found()}", self.current.pos)
        return self.advance()

    def _found(self) -> str:
        token = self.current
        if token.kind == "eof":
            return "end of input"
        if token.kind == "str":
            return "string literal"
        return repr(token.value)

    def _enter(self):
        self.depth += 1
        if self.depth > MAX_PREDICATE_DEPTH:
            raise PredicateSyntaxError("Predicate is nested too deeply", self.current.pos)

    def _leave(self):
        self.depth -= 1

    # ----- entry points -----

    def parse_expression_source(self) -> "CompiledPredicate":
        self.scope = {VALUES_VARIABLE}
        result = self.parse_expr()
        self.expect("eof")
        return CompiledPredicate(PredicateKind.EXPRESSION, self.source, VALUES_VARIABLE, [], result)

    def parse_function_source(self) -> "CompiledPredicate":
        if self.accept("kw", "function"):
            self.accept("ident")
            self.expect("op", "(")
            param = self.expect("ident").value
            self.expect("op", ")")
        elif self.accept("op", "("):
            param = self.expect("ident").value
            self.expect("op", ")")
            self.expect("op", "=>")
        else:
            param = self.expect("ident").value
            self.expect("op", "=>")
        self.scope = {param}
        bindings, result = self.parse_block()
        self.expect("eof")
        return CompiledPredicate(PredicateKind.FUNCTION, self.source, param, bindings, result)

    def parse_block(self) -> tuple[list[tuple[str, Node]], Node]:
        if not self.check("op", "{"):
            raise PredicateSyntaxError(
                "Function predicates need a block body with a return statement", self.current.pos
            )
        self.advance()
        bindings = []
        while self.current.kind == "kw" and self.current.value in ("const", "let", "var"):
            self.advance()
            name = self.expect("ident").value
            if name in self.scope:
                raise PredicateSyntaxError(f"'{name}' is already declared", self.current.pos)
            self.expect("op", "=")
            value = self.parse_expr()
            self.expect("op", ";")
            self.scope.add(name)
            bindings.append((name, value))
        self.expect("kw", "return")
        result = self.parse_expr()
        self.accept("op", ";")
        self.expect("op", "}")
        return bindings, result

    # ----- expressions -----

    def parse_expr(self) -> Node:
        return self.parse_or()

    def parse_or(self) -> Node:
        operands = [self.parse_and()]
        while self.accept("op", "||"):
            operands.append(self.parse_and())
        return operands[0] if len(operands) == 1 else Logical("||", operands)

    def parse_and(self) -> Node:
        operands = [self.parse_not()]
        while self.accept("op", "&&"):
            operands.append(self.parse_not())
        return operands[0] if len(operands) == 1 else Logical("&&", operands)

    def parse_not(self) -> Node:
        count = 0
        while self.accept("op", "!"):
            count += 1
        operand = self.parse_compare()
        return Not(operand, count) if count else operand

    def parse_compare(self) -> Node:
        left = self.parse_member()
        if self.current.kind == "op" and self.current.value in _COMPARE_OPS:
            op = self.advance().value
            right = self.parse_member()
            if self.current.kind == "op" and self.current.value in _COMPARE_OPS:
                raise PredicateSyntaxError(
                    "Chained comparisons need parentheses", self.current.pos
                )
            return Compare(op, left, right)
        return left

    def parse_member(self) -> Node:
        target = self.parse_primary()
        path = []
        while True:
            if self.accept("op", "."):
                token = self.current
                if token.kind not in ("ident", "kw"):
                    raise PredicateSyntaxError(
                        f"Expected property name, found {self._found()}", token.pos
                    )
                path.append(self.advance().value)
            elif self.accept("op", "["):
                token = self.current
                if token.kind not in ("str", "num"):
                    raise PredicateSyntaxError(
                        "Only string or number literals may be used as an index", token.pos
                    )
                path.append(self.advance().value)
                self.expect("op", "]")
            elif self.check("op", "("):
                raise PredicateSyntaxError("Function calls are not allowed", self.current.pos)
            else:
                break
        return Member(target, path) if path else target

    def parse_primary(self) -> Node:
        token = self.current
        if token.kind in ("num", "str"):
            self.advance()
            return Literal(token.value)
        if token.kind == "kw" and token.value in _CONSTANTS:
            self.advance()
            return Literal(_CONSTANTS[token.value])
        if token.kind == "ident":
            self.advance()
            if token.value not in self.scope:
                raise PredicateSyntaxError(f"Unknown identifier '{token.value}'", token.pos)
            return Name(token.value)
        if self.accept("op", "("):
            self._enter()
            inner = self.parse_expr()
            self.expect("op", ")")
            self._leave()
            return inner
        raise PredicateSyntaxError(f"Unexpected {self._found()}", token.pos)


# ==================== Public API ====================


@dataclass
class CompiledPredicate:
    kind: PredicateKind
    source: str
    variable: str
    bindings: list[tuple[str, Node]] = field(default_factory=list)
    result: Node = None

    def evaluate(self, values) -> bool:
        env = {self.variable: values if values is not None else {}}
        try:
            for name, node in self.bindings:
                env[name] = node.evaluate(env)
            return truthy(self.result.evaluate(env))
        except PredicateEvaluationError:
            raise
        except RecursionError as e:
            raise PredicateEvaluationError("Predicate is too deeply nested to evaluate") from e
        except Exception as e:
            raise PredicateEvaluationError(f"Predicate failed to evaluate: {type(e).__name__}: {e}") from e


def detect_kind(source: str) -> PredicateKind:
    """Classify a predicate source by its shape.

    Examples:
        >>> detect_kind("formValues.enabled === true").value
        'expression'
        >>> detect_kind("v => { return v.enabled; }").value
        'function'
    """
    if _FUNCTION_RE.match(source) or _ARROW_RE.match(source):
        return PredicateKind.FUNCTION
    return PredicateKind.EXPRESSION


def check_predicate(source: str, kind: PredicateKind | str | None = None) -> list[str]:
    """Statically check a predicate source and return every problem found."""
    if source is None or not source.strip():
        return []
    source = source.strip()
    if len(source) > MAX_PREDICATE_LENGTH:
        return [f"Predicate is longer than {MAX_PREDICATE_LENGTH} characters"]

    detected = detect_kind(source)
    errors = []
    if kind is not None and PredicateKind(kind) != detected:
        errors.append(f"Predicate is written in {detected.value} form but declared as {PredicateKind(kind).value}")

    if _DYNAMIC_CODE_RE.search(source):
        errors.append("Predicate must not construct code dynamically (eval/Function)")
    try:
        tokens = tokenize(source)
    except PredicateSyntaxError as e:
        return errors + e.errors
    forbidden = sorted(
        {t.value for t in tokens if t.kind == "ident" and t.value in FORBIDDEN_PREDICATE_TOKENS}
    )
    if forbidden:
        errors.append(f"Predicate uses forbidden identifier(s): {', '.join(forbidden)}")
    if detected == PredicateKind.FUNCTION and not _RETURN_RE.search(source):
        errors.append("Function predicate must contain a return statement")
    if errors:
        return errors

    try:
        _compile(source, detected)
    except PredicateSyntaxError as e:
        errors.extend(e.errors)
    return errors


def validate_predicate(source: str, kind: PredicateKind | str | None = None) -> None:
    errors = check_predicate(source, kind)
    if errors:
        raise AuthoringValidationError(errors)


@lru_cache(maxsize=256)
def _compile(source: str, kind: PredicateKind) -> CompiledPredicate:
    parser = Parser(source)
    if kind == PredicateKind.FUNCTION:
        return parser.parse_function_source()
    return parser.parse_expression_source()


def compile_predicate(source: str) -> CompiledPredicate:
    """Compile a predicate after running every static check on it.

    Raises ``AuthoringValidationError`` when the source is rejected.
    """
    validate_predicate(source)
    source = source.strip()
    return _compile(source, detect_kind(source))


def evaluate_predicate(source: Optional[str], values) -> bool:
    """Evaluate ``source`` against ``values``; an empty predicate is true."""
    if source is None or not source.strip():
        return True
    return compile_predicate(source).evaluate(values)
