"""Statement records for snx source lines.

Each source line is classified by the statement grammar into one of the
records below. Expression parts are kept as raw text: they are only
substituted and evaluated when the engine executes the line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Statement:
    """Base class for all statement records."""
    pass


@dataclass(frozen=True)
class StyleDirective(Statement):
    style: str


@dataclass(frozen=True)
class ProgramEnd(Statement):
    pass


@dataclass(frozen=True)
class CloseBlock(Statement):
    pass


@dataclass(frozen=True)
class Goto(Statement):
    target: int


@dataclass(frozen=True)
class Return(Statement):
    expr: str  # parsed but not evaluated; return values are not supported


@dataclass(frozen=True)
class FuncHeader(Statement):
    name: str
    params: Tuple[str, ...]


@dataclass(frozen=True)
class FuncCall(Statement):
    name: str
    args: Tuple[str, ...]


@dataclass(frozen=True)
class IfHeader(Statement):
    condition: str


@dataclass(frozen=True)
class VarDecl(Statement):
    name: str
    expr: str


@dataclass(frozen=True)
class Assign(Statement):
    name: str
    expr: str


@dataclass(frozen=True)
class Print(Statement):
    expr: str
    newline: bool = False


@dataclass(frozen=True)
class Exec(Statement):
    expr: str
