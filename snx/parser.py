"""Statement grammars for snx.

snx is line oriented: every physical line holds at most one statement,
and expressions inside a statement stay as raw text until execution.
This module classifies a single (stripped) line:

1. **Grammar selection**: there is one Lark grammar per block style. The
   `end` style closes blocks with a bare `end` line and opens them
   implicitly; the `brackets` style opens with a trailing `{` and closes
   with a bare `}`.

2. **Prioritized matching**: each statement kind is its own start rule.
   `parse_statement` tries the requested start rules in order and the
   first one that parses the whole line wins. The result is turned into a
   statement record by `StatementTransformer`.

Results are cached; a line's classification only depends on its text,
the block style and the start rules asked for.
"""

from __future__ import annotations

import enum
from functools import lru_cache
from typing import List, Optional, Tuple

from lark import Lark, Transformer
from lark.exceptions import LarkError

from .statements import (
    Statement, StyleDirective, ProgramEnd, CloseBlock, Goto, Return,
    FuncHeader, FuncCall, IfHeader, VarDecl, Assign, Print, Exec,
)
from .substitution import RESERVED_KEYWORDS


class BlockStyle(enum.Enum):
    END = 'end'
    BRACKETS = 'brackets'


_COMMON_GRAMMAR = r"""
    style_directive: _STYLE "=" STYLE_NAME
    program_end: _HALT
    goto_stmt: _GOTO INT
    return_stmt: _RETURN [EXPR]
    params: NAME ("," NAME)*
    func_call: NAME "(" [ARGS] ")"
    var_decl: _VAR NAME "=" [EXPR]
    assignment: NAME "=" [EXPR]
    print_stmt: PRINT [EXPR]
    exec_stmt: _EXEC [EXPR]

    _STYLE: /STYLE\b/
    _HALT: /END\b/
    _GOTO: /GOTO\b/
    _RETURN: /return\b/
    _FUNC: /func\b/
    _IF: /if\b/
    _VAR: /var\b/
    _EXEC: /exec\b/
    PRINT: /println\b|print\b/
    STYLE_NAME: /["']?[a-z]+["']?/
    EXPR: /.+/
    ARGS: /.+(?=\))/

    %import common.CNAME -> NAME
    %import common.INT
    %import common.WS_INLINE
    %ignore WS_INLINE
"""

END_STYLE_GRAMMAR = _COMMON_GRAMMAR + r"""
    close_block: _CLOSE
    func_header: _FUNC NAME "(" [params] ")"
    if_header: _IF [EXPR]

    _CLOSE: /end\b/
"""

BRACKETS_STYLE_GRAMMAR = _COMMON_GRAMMAR + r"""
    close_block: "}"
    func_header: _FUNC NAME "(" [params] ")" "{"
    if_header: _IF [CONDITION] "{"

    CONDITION: /.+(?=\{)/
"""

STYLE_STATEMENTS = ('style_directive',)
CONTROL_STATEMENTS = ('program_end', 'close_block', 'goto_stmt', 'return_stmt', 'func_header')
DATA_STATEMENTS = ('func_call', 'if_header', 'var_decl', 'assignment', 'print_stmt', 'exec_stmt')
BLOCK_BOUNDARIES = ('if_header', 'func_header', 'close_block')

_ALL_STATEMENTS = list(STYLE_STATEMENTS + CONTROL_STATEMENTS + DATA_STATEMENTS)


def _build_parser(grammar: str) -> Lark:
    return Lark(
        grammar,
        parser='earley',
        lexer='dynamic',
        start=_ALL_STATEMENTS,
        maybe_placeholders=True,
    )


STATEMENT_PARSERS = {
    BlockStyle.END: _build_parser(END_STYLE_GRAMMAR),
    BlockStyle.BRACKETS: _build_parser(BRACKETS_STYLE_GRAMMAR),
}


def _text(token) -> str:
    return '' if token is None else str(token).strip()


def split_arguments(text: str) -> Tuple[str, ...]:
    """Split a call's argument text on commas outside strings and parentheses."""
    args: List[str] = []
    current: List[str] = []
    depth = 0
    in_string = False
    escape = False
    for c in text:
        if in_string:
            current.append(c)
            if escape:
                escape = False
            elif c == '\\':
                escape = True
            elif c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
        elif c == '(':
            depth += 1
        elif c == ')':
            if depth > 0:
                depth -= 1
        elif c == ',' and depth == 0:
            args.append(''.join(current).strip())
            current = []
            continue
        current.append(c)
    last = ''.join(current).strip()
    if last or args:
        args.append(last)
    return tuple(args)


class StatementTransformer(Transformer):
    """Transforms a statement parse tree into a statement record."""

    def style_directive(self, items):
        return StyleDirective(str(items[0]).strip('"\''))

    def program_end(self, items):
        return ProgramEnd()

    def close_block(self, items):
        return CloseBlock()

    def goto_stmt(self, items):
        return Goto(int(items[0]))

    def return_stmt(self, items):
        # `return;` is a plain return
        return Return(_text(items[0]).rstrip(';').strip())

    def params(self, items):
        return [str(item) for item in items]

    def func_header(self, items):
        params = items[1] if items[1] is not None else []
        return FuncHeader(str(items[0]), tuple(params))

    def func_call(self, items):
        return FuncCall(str(items[0]), split_arguments(_text(items[1])))

    def if_header(self, items):
        return IfHeader(_text(items[0]))

    def var_decl(self, items):
        return VarDecl(str(items[0]), _text(items[1]))

    def assignment(self, items):
        return Assign(str(items[0]), _text(items[1]))

    def print_stmt(self, items):
        return Print(_text(items[1]), newline=str(items[0]) == 'println')

    def exec_stmt(self, items):
        return Exec(_text(items[0]))


_TRANSFORMER = StatementTransformer()


@lru_cache(maxsize=4096)
def parse_statement(line: str, style: BlockStyle, starts: Tuple[str, ...]) -> Optional[Statement]:
    """Classify `line` using the first start rule in `starts` that matches.

    Returns None when no rule matches. Calls whose name is a reserved
    keyword are rejected so that e.g. `print(x)` reaches the print rule.
    """
    parser = STATEMENT_PARSERS[style]
    for start in starts:
        try:
            tree = parser.parse(line, start=start)
        except LarkError:
            continue
        statement = _TRANSFORMER.transform(tree)
        if isinstance(statement, FuncCall) and statement.name in RESERVED_KEYWORDS:
            continue
        return statement
    return None


def parse_style(name: str) -> Optional[BlockStyle]:
    """Map a STYLE directive value to a block style; unknown names give None."""
    for style in BlockStyle:
        if style.value == name:
            return style
    return None
