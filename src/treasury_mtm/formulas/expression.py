# src/treasury_mtm/formulas/expression.py
"""
Arithmetic expression evaluator for calculated custom fields.

Supports numeric literals, `+ - * /`, unary signs and parentheses, nothing
else. Evaluation is done in Decimal arithmetic by a small recursive-descent
parser:

    expr    := term (('+' | '-') term)*
    term    := factor (('*' | '/') factor)*
    factor  := ('+' | '-') factor | primary
    primary := NUMBER | '(' expr ')'
"""
from __future__ import annotations

import re
from decimal import Decimal, DecimalException, InvalidOperation
from typing import List, Tuple

ALLOWED_EXPRESSION = re.compile(r"^[0-9+\-*/().\s]+$")

_TOKEN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(.))")


class FormulaError(Exception):
    """Raised when a formula cannot be substituted, parsed or evaluated."""

    pass


def tokenize(expression: str) -> List[Tuple[str, str]]:
    """Split into ("num", text) and ("op", char) tokens."""
    if not ALLOWED_EXPRESSION.match(expression):
        raise FormulaError(f"Invalid characters in expression: {expression!r}")

    tokens: List[Tuple[str, str]] = []
    pos = 0
    text = expression.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if m is None:
            raise FormulaError(f"Unexpected input at {pos} in {expression!r}")
        number, op = m.groups()
        if number is not None:
            tokens.append(("num", number))
        else:
            tokens.append(("op", op))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, tokens: List[Tuple[str, str]]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> Tuple[str, str]:
        tok = self.peek()
        if tok is None:
            raise FormulaError("Unexpected end of expression")
        self.pos += 1
        return tok

    def parse(self) -> Decimal:
        value = self.expr()
        if self.peek() is not None:
            raise FormulaError(f"Unexpected token {self.peek()[1]!r}")
        return value

    def expr(self) -> Decimal:
        value = self.term()
        while self.peek() in (("op", "+"), ("op", "-")):
            _, op = self.take()
            rhs = self.term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def term(self) -> Decimal:
        value = self.factor()
        while self.peek() in (("op", "*"), ("op", "/")):
            _, op = self.take()
            rhs = self.factor()
            if op == "*":
                value = value * rhs
            else:
                if rhs == 0:
                    raise FormulaError("Division by zero")
                value = value / rhs
        return value

    def factor(self) -> Decimal:
        tok = self.peek()
        if tok in (("op", "+"), ("op", "-")):
            self.take()
            value = self.factor()
            return -value if tok[1] == "-" else value
        return self.primary()

    def primary(self) -> Decimal:
        kind, text = self.take()
        if kind == "num":
            return Decimal(text)
        if text == "(":
            value = self.expr()
            if self.take() != ("op", ")"):
                raise FormulaError("Expected ')'")
            return value
        raise FormulaError(f"Unexpected token {text!r}")


def evaluate(expression: str) -> Decimal:
    """
    Evaluate an arithmetic expression.

    Raises
    ------
    FormulaError
        On disallowed characters, syntax errors, division by zero or a
        non-finite result.
    """
    try:
        value = _Parser(tokenize(expression)).parse()
    except (InvalidOperation, DecimalException) as e:
        raise FormulaError(f"Arithmetic error in {expression!r}: {e}") from e

    if not value.is_finite():
        raise FormulaError(f"Non-finite result for {expression!r}")
    return value
