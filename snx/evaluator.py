"""Expression evaluator for snx.

Expressions reach this module as plain text in which every variable
reference has already been replaced by a literal. Evaluation runs in
three stages:

1. **Tokenizing**: the text is split into literal, operator and
   parenthesis tokens. A `+` or `-` in unary position is fused onto the
   numeral that follows it.

2. **Shunting-Yard**: the infix token sequence is reordered into postfix
   order using the operator precedence table.

3. **Postfix evaluation**: the postfix sequence runs on a stack of
   `Value` objects, applying the per-operator type and coercion rules.

`evaluate` is the public entry point. It never raises; any failure comes
back as an error `Value`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from .errors import SnxError, SYNTAX_ERROR, TYPE_ERROR, RUNTIME_ERROR
from .types import (
    Value, Number, INT, FLOAT, BOOL, STRING,
    coerce_to_number, number_from_literal, quote,
)

PRECEDENCE = {
    '||': 1,
    '&&': 2,
    '==': 3, '!=': 3,
    '<': 4, '>': 4, '<=': 4, '>=': 4,
    '+': 5, '-': 5,
    '*': 6, '/': 6, '%': 6,
    '!': 7,
}

SINGLE_CHAR_OPERATORS = '()*/%'
TWO_CHAR_OPERATORS = {'==', '!=', '<=', '>=', '&&', '||'}
# A sign following a token that ends in one of these is unary
UNARY_CONTEXT = '(=!<>|&+-*/%'
COMPARISONS = ('<', '>', '<=', '>=')


###############################################################################
# Tokenizer
###############################################################################

def token_kind(lexeme: str) -> str:
    """Derive a token's kind from its lexeme."""
    if lexeme in ('(', ')'):
        return 'paren'
    if lexeme in PRECEDENCE:
        return 'operator'
    if lexeme in ('true', 'false'):
        return BOOL
    if len(lexeme) >= 2 and lexeme[0] == '"' and lexeme[-1] == '"':
        return STRING
    return 'number'


@dataclass
class Token:
    value: str
    column: int

    @property
    def kind(self) -> str:
        return token_kind(self.value)


def _is_numeral_char(c: str) -> bool:
    return c.isdigit() or c == '.'


def tokenize(expr: str) -> List[Token]:
    """Convert an expression into a list of tokens.

    Identifiers other than `true` and `false` are rejected: by the time an
    expression is tokenized the substitution stage has already replaced
    variable names with literals. Numerals are collected without checking
    how many decimal points they contain; malformed numerals are caught
    when the literal is converted to a value.
    """
    tokens: List[Token] = []
    i = 0
    length = len(expr)
    while i < length:
        c = expr[i]
        if c.isspace():
            i += 1
            continue
        if c in SINGLE_CHAR_OPERATORS:
            tokens.append(Token(c, i + 1))
            i += 1
            continue
        if c in '+-':
            unary = not tokens or tokens[-1].value[-1] in UNARY_CONTEXT
            if unary and i + 1 < length and _is_numeral_char(expr[i + 1]):
                start = i
                i += 1
                while i < length and _is_numeral_char(expr[i]):
                    i += 1
                tokens.append(Token(expr[start:i], start + 1))
            else:
                tokens.append(Token(c, i + 1))
                i += 1
            continue
        if c in '=!<>&|':
            pair = expr[i:i + 2]
            if pair in TWO_CHAR_OPERATORS:
                tokens.append(Token(pair, i + 1))
                i += 2
                continue
            if c in '!<>':
                tokens.append(Token(c, i + 1))
                i += 1
                continue
            raise SnxError(SYNTAX_ERROR, f"unexpected character {c!r} at column {i + 1}")
        if _is_numeral_char(c):
            start = i
            while i < length and _is_numeral_char(expr[i]):
                i += 1
            tokens.append(Token(expr[start:i], start + 1))
            continue
        if c == '"':
            start = i
            chars: List[str] = []
            i += 1
            while i < length and expr[i] != '"':
                if expr[i] == '\\' and i + 1 < length:
                    # the escaped character is kept verbatim
                    chars.append(expr[i + 1])
                    i += 2
                else:
                    chars.append(expr[i])
                    i += 1
            if i >= length:
                raise SnxError(SYNTAX_ERROR, f"unterminated string literal at column {start + 1}")
            i += 1
            # stored in canonical form: escapes only where needed
            tokens.append(Token(quote(''.join(chars)), start + 1))
            continue
        if c.isalpha():
            start = i
            while i < length and expr[i].isalpha():
                i += 1
            word = expr[start:i]
            if word not in ('true', 'false'):
                raise SnxError(SYNTAX_ERROR, f"unknown identifier {word!r}")
            tokens.append(Token(word, start + 1))
            continue
        raise SnxError(SYNTAX_ERROR, f"invalid character {c!r} at column {i + 1}")
    return tokens


###############################################################################
# Shunting-Yard
###############################################################################

def to_postfix(tokens: List[Token]) -> List[Token]:
    """Reorder infix tokens into postfix order.

    All binary operators are left associative. `!` is a prefix operator:
    it is pushed without popping anything, and the next lower-precedence
    operator flushes it.
    """
    output: List[Token] = []
    stack: List[Token] = []
    for token in tokens:
        kind = token.kind
        if kind == 'paren':
            if token.value == '(':
                stack.append(token)
                continue
            while stack and stack[-1].value != '(':
                output.append(stack.pop())
            if not stack:
                raise SnxError(SYNTAX_ERROR, 'mismatched parentheses')
            stack.pop()
        elif kind == 'operator':
            if token.value != '!':
                precedence = PRECEDENCE[token.value]
                while stack and stack[-1].value != '(' and PRECEDENCE[stack[-1].value] >= precedence:
                    output.append(stack.pop())
            stack.append(token)
        else:
            output.append(token)
    while stack:
        token = stack.pop()
        if token.value == '(':
            raise SnxError(SYNTAX_ERROR, 'mismatched parentheses')
        output.append(token)
    return output


###############################################################################
# Postfix evaluation
###############################################################################

def literal_value(lexeme: str) -> Value:
    kind = token_kind(lexeme)
    if kind == BOOL:
        return Value.boolean(lexeme == 'true')
    if kind == STRING:
        return Value(STRING, lexeme)
    value = number_from_literal(lexeme)
    if value is None:
        raise SnxError(SYNTAX_ERROR, f"malformed number {lexeme!r}")
    if value.kind == FLOAT and not math.isfinite(value.as_number()):
        raise SnxError(RUNTIME_ERROR, f"number {lexeme!r} is too large")
    return value


def evaluate_postfix(postfix: List[Token]) -> Value:
    stack: List[Value] = []
    for token in postfix:
        if token.kind != 'operator':
            stack.append(literal_value(token.value))
            continue
        op = token.value
        if op == '!':
            if not stack:
                raise SnxError(SYNTAX_ERROR, "insufficient operands for '!'")
            stack.append(apply_unary_op(op, stack.pop()))
            continue
        if len(stack) < 2:
            raise SnxError(SYNTAX_ERROR, f"insufficient operands for '{op}'")
        rhs = stack.pop()
        lhs = stack.pop()
        stack.append(apply_binary_op(op, lhs, rhs))
    if len(stack) != 1:
        raise SnxError(SYNTAX_ERROR, 'invalid expression')
    return stack[0]


def apply_unary_op(op: str, operand: Value) -> Value:
    if operand.kind != BOOL:
        raise SnxError(TYPE_ERROR, f"'{op}' requires a boolean operand")
    return Value.boolean(not operand.as_bool())


def apply_binary_op(op: str, lhs: Value, rhs: Value) -> Value:
    # Logical operators
    if op in ('&&', '||'):
        if lhs.kind != BOOL or rhs.kind != BOOL:
            raise SnxError(TYPE_ERROR, f"operator '{op}' requires boolean operands")
        if op == '&&':
            return Value.boolean(lhs.as_bool() and rhs.as_bool())
        return Value.boolean(lhs.as_bool() or rhs.as_bool())
    if op in ('==', '!='):
        equal = equal_values(lhs, rhs)
        return Value.boolean(equal if op == '==' else not equal)
    if op in COMPARISONS:
        if not (lhs.is_numeric and rhs.is_numeric):
            raise SnxError(TYPE_ERROR, f"operator '{op}' requires numerical operands")
        left = float(lhs.as_number())
        right = float(rhs.as_number())
        if op == '<':
            return Value.boolean(left < right)
        if op == '>':
            return Value.boolean(left > right)
        if op == '<=':
            return Value.boolean(left <= right)
        return Value.boolean(left >= right)
    if op == '+':
        if lhs.kind == STRING and rhs.kind == STRING:
            return Value.string(lhs.as_string() + rhs.as_string())
        left = coerce_to_number(lhs)
        right = coerce_to_number(rhs)
        if left.is_numeric and right.is_numeric:
            return arithmetic(op, lhs, rhs, left, right)
        if (left.kind == STRING and right.is_numeric) or (left.is_numeric and right.kind == STRING):
            # "abc" + 5 -> "abc5"
            return Value.string(left.as_string() + right.as_string())
        raise SnxError(TYPE_ERROR, f"operator '+' not supported for {lhs.kind} and {rhs.kind}")
    if op in ('-', '*', '/', '%'):
        left = coerce_to_number(lhs)
        right = coerce_to_number(rhs)
        if not (left.is_numeric and right.is_numeric):
            raise SnxError(
                TYPE_ERROR,
                f"operator '{op}' requires numerical operands, found {left.kind} and {right.kind}",
            )
        return arithmetic(op, lhs, rhs, left, right)
    raise SnxError(SYNTAX_ERROR, f"unknown operator '{op}'")


def equal_values(lhs: Value, rhs: Value) -> bool:
    # No coercion here: "5" == 5 is a type error
    if lhs.kind == STRING and rhs.kind == STRING:
        return lhs.as_string() == rhs.as_string()
    if lhs.kind == BOOL and rhs.kind == BOOL:
        return lhs.as_bool() == rhs.as_bool()
    if lhs.is_numeric and rhs.is_numeric:
        return float(lhs.as_number()) == float(rhs.as_number())
    raise SnxError(TYPE_ERROR, f"cannot compare {lhs.kind} with {rhs.kind}")


def truncated_remainder(a: int, b: int) -> int:
    """Remainder with the sign of the dividend, like C's `%`."""
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def arithmetic(op: str, lhs: Value, rhs: Value, left: Value, right: Value) -> Value:
    """Apply an arithmetic operator.

    `lhs`/`rhs` are the original operands and decide the result type;
    `left`/`right` are the operands after string-to-number coercion and
    supply the numbers.
    """
    declared_float = FLOAT in (lhs.kind, rhs.kind)
    a = left.as_number()
    b = right.as_number()
    if op == '%':
        if lhs.kind != INT or rhs.kind != INT:
            raise SnxError(TYPE_ERROR, "operator '%' requires integer operands")
        if b == 0:
            raise SnxError(RUNTIME_ERROR, 'modulo by zero')
        return Value.integer(truncated_remainder(a, b))
    if op == '/':
        if b == 0:
            raise SnxError(RUNTIME_ERROR, 'division by zero')
        if not declared_float and isinstance(a, int) and isinstance(b, int) and a % b == 0:
            return Value.integer(a // b)
        result: Number = a / b
    elif op == '+':
        result = a + b
    elif op == '-':
        result = a - b
    else:
        result = a * b
    return number_value(result, declared_float)


def number_value(result: Number, declared_float: bool) -> Value:
    if isinstance(result, float) and not math.isfinite(result):
        raise SnxError(RUNTIME_ERROR, "numeric overflow")
    if declared_float:
        return Value.floating(result)
    if isinstance(result, float):
        if result.is_integer():
            return Value.integer(int(result))
        return Value.floating(result)
    return Value.integer(result)


def evaluate(expr: str) -> Value:
    """Evaluate an expression, returning an error value on any failure."""
    try:
        tokens = tokenize(expr)
        postfix = to_postfix(tokens)
        return evaluate_postfix(postfix)
    except SnxError as e:
        return e.to_value()
    except ArithmeticError as e:
        return Value.error(RUNTIME_ERROR, str(e))
