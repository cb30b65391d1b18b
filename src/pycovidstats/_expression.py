"""Restricted expression language for ``custom:`` value transforms.

Expressions are evaluated against a single binding, ``value``. Nothing
is handed to the Python interpreter: the text is tokenized, parsed into a
small AST and walked by :func:`evaluate`. Expression length, nesting
depth and the size of integer and string results are bounded.

Grammar::

    expr    := term (("+" | "-") term)*
    term    := power (("*" | "/" | "%") power)*
    power   := unary ("**" power)?
    unary   := ("-" | "+") unary | primary
    primary := NUMBER | STRING | "value" | IDENT "(" [expr ("," expr)*] ")" | "(" expr ")"
"""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pycovidstats.exceptions import TransformError

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<NUMBER>\d+(?:\.\d*)?(?:[eE][-+]?\d+)?|\.\d+(?:[eE][-+]?\d+)?) |
        (?P<STRING>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*') |
        (?P<IDENT>[A-Za-z_][A-Za-z0-9_]*) |
        (?P<OP>\*\*|[-+*/%(),])
    )\s*
    """,
    re.VERBOSE,
)


def round_half_up(value: Any, places: int = 0) -> int | float:
    """Round *value* to *places* decimals, ties away from zero."""
    quantum = Decimal(1).scaleb(-int(places))
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if places <= 0:
        return int(rounded)
    return float(rounded)


_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "float": float,
    "int": int,
    "lower": lambda text: str(text).lower(),
    "max": max,
    "min": min,
    "round": round_half_up,
    "str": str,
    "upper": lambda text: str(text).upper(),
}

_MAX_EXPRESSION_LENGTH = 512
_MAX_DEPTH = 32
_MAX_EXPONENT = 64
_MAX_INT_BITS = 4096
_MAX_STRING_LENGTH = 4096


def _check_size(result: Any) -> Any:
    if isinstance(result, int) and result.bit_length() > _MAX_INT_BITS:
        raise TransformError(f"Integer result exceeds {_MAX_INT_BITS} bits")
    if isinstance(result, str) and len(result) > _MAX_STRING_LENGTH:
        raise TransformError(f"String result exceeds {_MAX_STRING_LENGTH} characters")
    return result


def _bounded_pow(base: Any, exponent: Any) -> Any:
    if abs(exponent) > _MAX_EXPONENT:
        raise TransformError(f"Exponent {exponent} exceeds {_MAX_EXPONENT}")
    if isinstance(base, int | float) and abs(base) > 1 and exponent > 0:
        if exponent * math.log2(abs(base)) > _MAX_INT_BITS:
            raise TransformError(f"Result of {base} ** {exponent} is too large")
    return operator.pow(base, exponent)


def _bounded_mul(left: Any, right: Any) -> Any:
    for text, count in ((left, right), (right, left)):
        if isinstance(text, str) and isinstance(count, int) and len(text) * count > _MAX_STRING_LENGTH:
            raise TransformError(f"String result exceeds {_MAX_STRING_LENGTH} characters")
    return operator.mul(left, right)


_BINARY: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": _bounded_mul,
    "/": operator.truediv,
    "%": operator.mod,
    "**": _bounded_pow,
}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str


def tokenize(text: str) -> list[Token]:
    pos = 0
    out: list[Token] = []
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise TransformError(f"Unexpected character near: {text[pos:pos + 20]!r}")
        pos = m.end()
        kind = m.lastgroup or "OP"
        out.append(Token(kind=kind, value=m.group(kind)))
    return out


# AST nodes
@dataclass(frozen=True)
class Node: ...


@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class ValueRef(Node): ...


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node


@dataclass(frozen=True)
class BinOp(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Call(Node):
    name: str
    args: tuple[Node, ...]


def parse(text: str) -> Node:
    if len(text) > _MAX_EXPRESSION_LENGTH:
        raise TransformError(f"Expression longer than {_MAX_EXPRESSION_LENGTH} characters")
    parser = _Parser(tokenize(text))
    if parser.at_end():
        raise TransformError("Empty expression")
    node = parser.parse_expr()
    if not parser.at_end():
        raise TransformError(f"Unexpected token: {parser.peek().value}")
    return node


class _Parser:
    def __init__(self, toks: list[Token]) -> None:
        self.toks = toks
        self.i = 0
        self.depth = 0

    def at_end(self) -> bool:
        return self.i >= len(self.toks)

    def peek(self) -> Token:
        return self.toks[self.i]

    def match_op(self, *ops: str) -> str | None:
        if self.at_end():
            return None
        tok = self.peek()
        if tok.kind == "OP" and tok.value in ops:
            self.i += 1
            return tok.value
        return None

    def take_op(self, op: str) -> None:
        if self.match_op(op) is None:
            got = "end of input" if self.at_end() else repr(self.peek().value)
            raise TransformError(f"Expected {op!r}, got {got}")

    def parse_expr(self) -> Node:
        self.depth += 1
        if self.depth > _MAX_DEPTH:
            raise TransformError(f"Expression nested deeper than {_MAX_DEPTH} levels")
        node = self.parse_term()
        while (op := self.match_op("+", "-")) is not None:
            node = BinOp(op, node, self.parse_term())
        self.depth -= 1
        return node

    def parse_term(self) -> Node:
        node = self.parse_power()
        while (op := self.match_op("*", "/", "%")) is not None:
            node = BinOp(op, node, self.parse_power())
        return node

    def parse_power(self) -> Node:
        node = self.parse_unary()
        if self.match_op("**") is not None:
            return BinOp("**", node, self.parse_power())
        return node

    def parse_unary(self) -> Node:
        op = self.match_op("-", "+")
        if op is not None:
            return Unary(op, self.parse_unary())
        return self.parse_primary()

    def parse_primary(self) -> Node:
        if self.at_end():
            raise TransformError("Unexpected end of expression")
        if self.match_op("(") is not None:
            node = self.parse_expr()
            self.take_op(")")
            return node

        tok = self.peek()
        self.i += 1
        if tok.kind == "NUMBER":
            return Literal(_coerce_number(tok.value))
        if tok.kind == "STRING":
            return Literal(_unescape(tok.value[1:-1]))
        if tok.kind == "IDENT":
            if tok.value == "value":
                return ValueRef()
            if tok.value not in _FUNCTIONS:
                raise TransformError(f"Unknown name: {tok.value}")
            self.take_op("(")
            args: list[Node] = []
            if self.match_op(")") is None:
                args.append(self.parse_expr())
                while self.match_op(",") is not None:
                    args.append(self.parse_expr())
                self.take_op(")")
            return Call(tok.value, tuple(args))
        raise TransformError(f"Unexpected token: {tok.value}")


_ESCAPES = {"n": "\n", "t": "\t"}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def _unescape(body: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def _coerce_number(text: str) -> int | float:
    if any(ch in text for ch in ".eE"):
        return float(text)
    return int(text)


def evaluate(node: Node, value: Any) -> Any:
    """Evaluate *node* with ``value`` bound to *value*."""
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, ValueRef):
        return value
    if isinstance(node, Unary):
        operand = evaluate(node.operand, value)
        return -operand if node.op == "-" else +operand
    if isinstance(node, BinOp):
        return _check_size(_BINARY[node.op](evaluate(node.left, value), evaluate(node.right, value)))
    if isinstance(node, Call):
        args = [evaluate(arg, value) for arg in node.args]
        return _check_size(_FUNCTIONS[node.name](*args))
    raise TransformError(f"Unsupported node: {node!r}")


def evaluate_expression(text: str, value: Any) -> Any:
    """Parse and evaluate *text* against *value*."""
    return evaluate(parse(text), value)
