from snx.types import Value

SYNTAX_ERROR = 'SyntaxError'
TYPE_ERROR = 'TypeError'
RUNTIME_ERROR = 'RuntimeError'
NAME_ERROR = 'NameError'
SUBSTITUTION_ERROR = 'SubstitutionError'
WARNING = 'Warning'


class SnxError(Exception):
    """Exception type used to propagate snx errors inside a component."""
    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message

    def to_value(self) -> Value:
        return Value.error(self.name, self.message)


class FatalError(SnxError):
    """Raised for conditions that halt the whole run."""
