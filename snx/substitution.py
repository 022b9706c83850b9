"""Text rewriting stages that run before an expression is tokenized.

The input stage replaces each bare `input` keyword with a string literal
holding one line read from standard input. The substitution stage then
replaces bare identifiers with the stored text of the variable they name,
and `${name}` markers inside string literals with the variable's unquoted
text. Both are pure text rewriting; neither knows about operators.
"""

from __future__ import annotations

from typing import Callable, List

from .environment import Environment
from .errors import SYNTAX_ERROR, SUBSTITUTION_ERROR
from .types import STRING, quote

RESERVED_KEYWORDS = frozenset({
    'true', 'false', 'var', 'print', 'println', 'input', 'func', 'return',
    'if', 'else', 'while', 'import', 'END', 'GOTO', 'end', 'STYLE', 'exec',
})

INPUT_KEYWORD = 'input'

Reporter = Callable[[str, str], None]


def _is_word_char(c: str) -> bool:
    return c.isalnum() or c == '_'


def is_variable_name(token: str) -> bool:
    if not token or not (token[0].isalpha() or token[0] == '_'):
        return False
    if token in RESERVED_KEYWORDS:
        return False
    return all(_is_word_char(c) for c in token)


def _resolve(token: str, env: Environment, report: Reporter) -> str:
    if not is_variable_name(token):
        return token
    variable = env.lookup(token)
    if variable is None:
        report(SUBSTITUTION_ERROR, f"undefined variable '{token}'")
        return '0'
    if variable.value is None:
        report(SUBSTITUTION_ERROR, f"variable '{token}' has no value")
        return '0'
    return variable.value.text


def _interpolate(name: str, env: Environment, report: Reporter) -> str:
    variable = env.lookup(name)
    if variable is None or variable.value is None:
        report(SUBSTITUTION_ERROR, f"undefined variable '{name}' used in interpolation")
        return '0'
    if variable.value.kind == STRING:
        # stays escaped, it lands inside the enclosing literal
        return variable.value.text[1:-1]
    return variable.value.text


def substitute(line: str, env: Environment, report: Reporter) -> str:
    """Replace variable references in `line` with literal text.

    Unknown names are reported and replaced by `0` so that evaluation can
    carry on. An unterminated `${` is reported and the raw fragment is
    passed through unchanged.
    """
    result: List[str] = []
    word: List[str] = []
    in_string = False
    escape = False
    i = 0
    length = len(line)
    while i < length:
        c = line[i]
        if in_string:
            if escape:
                escape = False
            elif c == '\\':
                escape = True
            elif c == '$' and line.startswith('{', i + 1):
                close = line.find('}', i + 2)
                if close == -1:
                    fragment = line[i:]
                    report(SYNTAX_ERROR, f"unterminated string interpolation {fragment!r}")
                    result.append(fragment)
                    break
                result.append(_interpolate(line[i + 2:close].strip(), env, report))
                i = close + 1
                continue
            elif c == '"':
                in_string = False
            result.append(c)
            i += 1
            continue
        if _is_word_char(c):
            word.append(c)
            i += 1
            continue
        if word:
            result.append(_resolve(''.join(word), env, report))
            word = []
        if c == '"':
            in_string = True
        result.append(c)
        i += 1
    if word:
        result.append(_resolve(''.join(word), env, report))
    return ''.join(result)


def _inside_string(line: str, pos: int) -> bool:
    inside = False
    escape = False
    for c in line[:pos]:
        if escape:
            escape = False
        elif inside and c == '\\':
            escape = True
        elif c == '"':
            inside = not inside
    return inside


def _is_whole_word(line: str, start: int, end: int) -> bool:
    before = line[start - 1] if start > 0 else ''
    after = line[end] if end < len(line) else ''
    return not (before and _is_word_char(before)) and not (after and _is_word_char(after))


def handle_input(line: str, read_line: Callable[[], str]) -> str:
    """Replace each bare `input` keyword with one line read via `read_line`.

    Occurrences are processed left to right; scanning resumes after the
    inserted literal, so text that was just read is never rescanned.
    """
    pos = line.find(INPUT_KEYWORD)
    while pos != -1:
        end = pos + len(INPUT_KEYWORD)
        if _inside_string(line, pos) or not _is_whole_word(line, pos, end):
            pos = line.find(INPUT_KEYWORD, end)
            continue
        replacement = quote(read_line())
        line = line[:pos] + replacement + line[end:]
        pos = line.find(INPUT_KEYWORD, pos + len(replacement))
    return line
