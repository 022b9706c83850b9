from dataclasses import dataclass
from typing import Dict, List, Optional

from snx.errors import SnxError, NAME_ERROR
from snx.types import Value


@dataclass
class Variable:
    name: str
    scope_level: int
    value: Optional[Value] = None

    def __repr__(self) -> str:
        return f"<var {self.name}@{self.scope_level} = {self.value!r}>"


class Environment:
    """Flat variable store mapping names to variables tagged with a scope level.

    There is no parent chain: a name has at most one live variable, and a
    variable disappears when the scope level it was created at is exited.
    """
    def __init__(self):
        self.variables: Dict[str, Variable] = {}

    def __contains__(self, name: str) -> bool:
        return name in self.variables

    def lookup(self, name: str) -> Optional[Variable]:
        return self.variables.get(name)

    def declare(self, name: str, scope_level: int, value: Optional[Value] = None) -> Variable:
        if name in self.variables:
            raise SnxError(NAME_ERROR, f"cannot redeclare variable '{name}'; a variable with that name already exists")
        variable = Variable(name, scope_level, value)
        self.variables[name] = variable
        return variable

    def assign(self, name: str, value: Value):
        # the variable keeps its scope level
        variable = self.variables.get(name)
        if variable is None:
            raise SnxError(NAME_ERROR, f"variable '{name}' used before declaration")
        variable.value = value

    def evict(self, scope_level: int) -> List[str]:
        """Remove every variable created at `scope_level` or deeper."""
        doomed = [name for name, var in self.variables.items() if var.scope_level >= scope_level]
        for name in doomed:
            del self.variables[name]
        return doomed
