# snx language package
# This package provides a line-oriented interpreter for the snx scripting language.
from .interpreter import run_program, run_file, Interpreter, ExecutionState, Diagnostic
from .evaluator import evaluate
from .errors import SnxError, FatalError
from .parser import BlockStyle
from .source import Source
from .types import Value

__all__ = [
    'run_program',
    'run_file',
    'Interpreter',
    'ExecutionState',
    'Diagnostic',
    'evaluate',
    'SnxError',
    'FatalError',
    'BlockStyle',
    'Source',
    'Value',
]
