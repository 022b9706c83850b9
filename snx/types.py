"""Value model for snx.

Every expression result is a `Value`: a kind tag (one of 'int', 'float',
'bool', 'string' or 'error') together with its canonical textual form.
The text is what the substitution stage splices back into later
expressions, so it must always re-lex to the same value. String values
keep their surrounding quote markers as part of the text; backslashes and
double quotes inside them are escaped with a backslash.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

INT = 'int'
FLOAT = 'float'
BOOL = 'bool'
STRING = 'string'
ERROR = 'error'

NUMERIC_KINDS = (INT, FLOAT)

Number = Union[int, float]

_NUMERIC_TEXT = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)')


def format_float(x: float) -> str:
    """Render a float so that the lexer can read it back.

    `repr` switches to exponent notation for very large or very small
    magnitudes, which the lexer does not accept, so those are written out
    in positional form instead.
    """
    text = repr(x)
    if 'e' not in text:
        return text
    text = format(x, 'f').rstrip('0')
    if text.endswith('.'):
        text += '0'
    return text


@dataclass(frozen=True)
class Value:
    """A dynamically typed scalar.

    `kind` and `text` are always consistent: an 'int' text parses as a
    whole number, a 'float' text parses as a float, a 'bool' text is
    `true` or `false`, and a 'string' text is wrapped in double quotes.
    An 'error' text is `"<ErrorName>: <message>"`.
    """
    kind: str
    text: str

    def __repr__(self) -> str:
        return f"{self.kind}({self.text})"

    # Convenience constructors
    @staticmethod
    def integer(n: int) -> 'Value':
        return Value(INT, str(int(n)))

    @staticmethod
    def floating(x: float) -> 'Value':
        return Value(FLOAT, format_float(float(x)))

    @staticmethod
    def boolean(b: bool) -> 'Value':
        return Value(BOOL, 'true' if b else 'false')

    @staticmethod
    def string(s: str) -> 'Value':
        return Value(STRING, quote(s))

    @staticmethod
    def error(name: str, message: str) -> 'Value':
        return Value(ERROR, f"{name}: {message}")

    @staticmethod
    def zero() -> 'Value':
        return Value.integer(0)

    @property
    def is_error(self) -> bool:
        return self.kind == ERROR

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    @property
    def error_name(self) -> str:
        return self.text.split(': ', 1)[0] if self.is_error else ''

    @property
    def error_message(self) -> str:
        if not self.is_error:
            return ''
        parts = self.text.split(': ', 1)
        return parts[1] if len(parts) > 1 else parts[0]

    def as_bool(self) -> bool:
        return self.text == 'true'

    def as_number(self) -> Number:
        if self.kind == INT:
            return int(self.text)
        return float(self.text)

    def as_string(self) -> str:
        """Return the raw content of a string value, or the text of any other."""
        if self.kind == STRING and len(self.text) >= 2:
            return unescape(self.text[1:-1])
        return self.text


def quote(text: str) -> str:
    """Wrap raw text as a string literal the lexer reads back verbatim."""
    return '"' + text.replace('\\', '\\\\').replace('"', '\\"') + '"'


def unescape(text: str) -> str:
    """Drop the backslash from every escape sequence in literal content."""
    chars = []
    escape = False
    for c in text:
        if escape:
            chars.append(c)
            escape = False
        elif c == '\\':
            escape = True
        else:
            chars.append(c)
    return ''.join(chars)


def is_numeric_text(text: str) -> bool:
    """True if `text` is entirely a decimal number (optional sign, at most one point)."""
    return _NUMERIC_TEXT.fullmatch(text) is not None


def coerce_to_number(value: Value) -> Value:
    """Turn a string whose content is a number into that number.

    Any other value, including strings that only partly look numeric,
    is returned unchanged.
    """
    if value.kind != STRING:
        return value
    raw = value.as_string()
    if not is_numeric_text(raw):
        return value
    if '.' in raw:
        return Value.floating(float(raw))
    return Value.integer(int(raw))


def number_from_literal(lexeme: str) -> Optional[Value]:
    """Parse a numeral lexeme, returning None when it is malformed."""
    try:
        if '.' in lexeme:
            return Value.floating(float(lexeme))
        return Value.integer(int(lexeme))
    except ValueError:
        return None


def to_string(value: Value) -> str:
    """Convert a value to the text written by print statements."""
    return value.as_string()
