from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Function:
    name: str
    parameters: Tuple[str, ...]
    body_start: int  # line number of the function header

    def __repr__(self) -> str:
        return f"<function {self.name}({', '.join(self.parameters)}) at line {self.body_start}>"


@dataclass(frozen=True)
class ReturnAddress:
    line: int
    scope_level: int  # caller's scope level, restored on return
