"""Execution engine for snx.

The engine walks the program one source line at a time. Each line is
classified by the statement grammar of the active block style and then
dispatched; control flow never builds a tree but moves the program
counter instead:

- a false `if` jumps past the matching block close,
- a function header registers the function and jumps past its body,
- a call pushes a return address and jumps into the body,
- `return` (or the close of a function body) pops it again,
- `GOTO` jumps anywhere.

Scopes are a single integer level. Variables remember the level they were
created at and are evicted when that level is exited. Function calls do
not get frames of their own: nested and recursive activations share the
function scope level, and with it any identically named variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .basic_io import BasicIO
from .environment import Environment
from .errors import (
    SnxError, FatalError,
    SYNTAX_ERROR, TYPE_ERROR, RUNTIME_ERROR, NAME_ERROR, WARNING,
)
from .evaluator import evaluate
from .function import Function, ReturnAddress
from .parser import (
    BlockStyle, parse_statement, parse_style,
    STYLE_STATEMENTS, CONTROL_STATEMENTS, DATA_STATEMENTS, BLOCK_BOUNDARIES,
)
from .source import Source
from .statements import (
    Statement, StyleDirective, ProgramEnd, CloseBlock, Goto, Return,
    FuncHeader, FuncCall, IfHeader, VarDecl, Assign, Print, Exec,
)
from .substitution import RESERVED_KEYWORDS, handle_input, substitute
from .types import Value, BOOL, to_string


@dataclass
class ExecutionState:
    program_counter: int = 1
    scope_level: int = 0
    return_stack: List[ReturnAddress] = field(default_factory=list)
    function_depth: int = 0
    # scope level shared by all live function activations (0 when none)
    function_scope: int = 0
    block_style: BlockStyle = BlockStyle.END
    running: bool = True


@dataclass
class Diagnostic:
    line: int
    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind} on line {self.line}: {self.message}"


class Interpreter:
    """Line-by-line execution engine for snx programs."""
    def __init__(
        self,
        debug_level: int = 0,
        debug_file: str = 'debug.txt',
        style: BlockStyle = BlockStyle.END,
        max_call_depth: int = 1000,
        io: Optional[BasicIO] = None,
    ):
        self.env = Environment()
        self.functions: Dict[str, Function] = {}
        self.initial_style = style
        self.state = ExecutionState(block_style=style)
        self.max_call_depth = max_call_depth
        self.io = io if io is not None else BasicIO()
        self.source = Source([])
        self.diagnostics: List[Diagnostic] = []
        self.debug_level = debug_level
        self.debug_file = debug_file
        self.debug_fp = None
        self.runs = 0

    def debug(self, msg: str):
        if self.debug_fp:
            self.debug_fp.write(msg + '\n')
            self.debug_fp.flush()

    def report(self, kind: str, message: str):
        """Record a non-fatal problem and write it to the error stream."""
        diagnostic = Diagnostic(self.state.program_counter, kind, message)
        self.diagnostics.append(diagnostic)
        self.io.error(str(diagnostic))
        if self.debug_level > 0:
            self.debug(str(diagnostic))

    def report_value(self, value: Value):
        self.report(value.error_name, value.error_message)

    # Public API
    def run(self, source: Union[Source, str]) -> ExecutionState:
        if isinstance(source, str):
            source = Source.from_text(source)
        self.source = source
        self.state = ExecutionState(block_style=self.initial_style)
        if self.debug_level > 0:
            # later runs append to the log of the first
            self.debug_fp = open(self.debug_file, 'w' if self.runs == 0 else 'a')
        self.runs += 1
        try:
            while self.state.running and self.source.has_line(self.state.program_counter):
                self.step()
            self.state.running = False
            return self.state
        finally:
            if self.debug_fp:
                self.debug_fp.close()
                self.debug_fp = None

    def step(self):
        """Execute the line under the program counter."""
        state = self.state
        line = self.source.line(state.program_counter).strip()
        if self.debug_level >= 3:
            self.debug(f"[{state.program_counter}] scope={state.scope_level} depth={state.function_depth}: {line}")
        if not line or line.startswith('#'):
            self.advance()
            return
        statement = parse_statement(line, state.block_style, STYLE_STATEMENTS)
        if statement is None:
            statement = parse_statement(line, state.block_style, CONTROL_STATEMENTS)
        if statement is None:
            # Input runs before any expression is looked at
            line = handle_input(line, self.io.read_line)
            statement = parse_statement(line, state.block_style, DATA_STATEMENTS)
        self.execute(statement)

    def execute(self, statement: Optional[Statement]):
        if statement is None:
            # Unrecognized lines are skipped
            self.advance()
            return
        if isinstance(statement, StyleDirective):
            self.set_style(statement.style)
            return
        if isinstance(statement, ProgramEnd):
            self.state.running = False
            if self.debug_level >= 1:
                self.debug(f"program terminated by END on line {self.state.program_counter}")
            return
        if isinstance(statement, CloseBlock):
            self.close_block()
            return
        if isinstance(statement, Goto):
            if not self.source.has_line(statement.target):
                raise FatalError(RUNTIME_ERROR, f"jump to invalid line {statement.target}")
            if self.debug_level >= 1:
                self.debug(f"GOTO {statement.target} from line {self.state.program_counter}")
            self.jump_to(statement.target)
            return
        if isinstance(statement, Return):
            if statement.expr and self.state.return_stack:
                self.report(WARNING, 'return values are not supported; the expression is ignored')
            self.return_from_function()
            return
        if isinstance(statement, FuncHeader):
            self.define_function(statement)
            return
        if isinstance(statement, FuncCall):
            self.call_function(statement)
            return
        if isinstance(statement, IfHeader):
            self.execute_if(statement)
            return
        if isinstance(statement, VarDecl):
            self.declare_variable(statement)
            self.advance()
            return
        if isinstance(statement, Assign):
            self.assign_variable(statement)
            self.advance()
            return
        if isinstance(statement, Print):
            self.print_value(statement)
            self.advance()
            return
        if isinstance(statement, Exec):
            self.run_command(statement)
            self.advance()
            return
        raise NotImplementedError(f"execute: unexpected statement type {type(statement)}")

    # Cursor and scope helpers
    def advance(self):
        self.state.program_counter += 1

    def jump_to(self, line: int):
        # one past the last line is the end of the program
        if 1 <= line <= len(self.source) + 1:
            self.state.program_counter = line
        else:
            raise FatalError(RUNTIME_ERROR, f"jump to invalid line {line}")

    def enter_scope(self):
        self.state.scope_level += 1

    def exit_scope(self):
        state = self.state
        evicted = self.env.evict(state.scope_level)
        if self.debug_level >= 2 and evicted:
            self.debug(f"scope {state.scope_level} closed, removed {', '.join(evicted)}")
        state.scope_level -= 1

    def set_style(self, name: str):
        style = parse_style(name)
        if style is not None:
            self.state.block_style = style
            if self.debug_level >= 1:
                self.debug(f"block style set to {style.value}")
        self.advance()

    def find_block_end(self, start_line: int) -> int:
        """Return the line that closes the block whose body starts at `start_line`."""
        depth = 1
        style = self.state.block_style
        for number in range(start_line, len(self.source) + 1):
            line = self.source.line(number).strip()
            if style is BlockStyle.BRACKETS:
                for c in line:
                    if c == '{':
                        depth += 1
                    elif c == '}':
                        depth -= 1
                        if depth == 0:
                            return number
                continue
            if not line or line.startswith('#'):
                continue
            boundary = parse_statement(line, style, BLOCK_BOUNDARIES)
            if isinstance(boundary, (IfHeader, FuncHeader)):
                depth += 1
            elif isinstance(boundary, CloseBlock):
                depth -= 1
                if depth == 0:
                    return number
        raise SnxError(SYNTAX_ERROR, f"unmatched opening construct near line {start_line - 1}")

    def skip_block(self, start_line: int):
        try:
            end = self.find_block_end(start_line)
        except SnxError as e:
            # the open block runs to the end of the source
            self.report(e.name, e.message)
            self.jump_to(len(self.source) + 1)
            return
        self.jump_to(end + 1)

    def evaluate_expression(self, expr: str) -> Value:
        substituted = substitute(expr, self.env, self.report)
        value = evaluate(substituted)
        if self.debug_level >= 3:
            self.debug(f"evaluate {expr!r} -> {substituted!r} = {value!r}")
        return value

    # Statement handlers
    def close_block(self):
        state = self.state
        if state.function_depth > 0 and state.scope_level == state.function_scope:
            self.return_from_function()
            return
        if state.scope_level > 0:
            self.exit_scope()
        else:
            self.report(SYNTAX_ERROR, 'unexpected block close with no open block')
        self.advance()

    def return_from_function(self):
        state = self.state
        if not state.return_stack:
            raise FatalError(RUNTIME_ERROR, "'return' called outside of a function")
        frame = state.return_stack.pop()
        # Only the outermost activation owns the function scope's variables
        self.env.evict(min(frame.scope_level, state.function_scope) + 1)
        state.function_depth -= 1
        state.scope_level = frame.scope_level
        if state.function_depth == 0:
            state.function_scope = 0
        if self.debug_level >= 1:
            self.debug(f"return to line {frame.line} (depth {state.function_depth})")
        self.jump_to(frame.line)

    def define_function(self, header: FuncHeader):
        state = self.state
        number = state.program_counter
        if state.scope_level != 0:
            self.report(SYNTAX_ERROR, 'function declarations are only allowed in the global scope')
        elif header.name in self.functions:
            self.report(NAME_ERROR, f"function '{header.name}' is already defined")
        else:
            self.functions[header.name] = Function(header.name, header.params, number)
            if self.debug_level >= 1:
                self.debug(f"define function {header.name}({', '.join(header.params)}) at line {number}")
        self.skip_block(number + 1)

    def call_function(self, call: FuncCall):
        state = self.state
        func = self.functions.get(call.name)
        if func is None:
            self.report(NAME_ERROR, f"function '{call.name}' is not defined")
            self.advance()
            return
        if state.function_depth >= self.max_call_depth:
            raise FatalError(RUNTIME_ERROR, f"maximum call depth of {self.max_call_depth} exceeded calling '{call.name}'")
        # Arguments are evaluated in the caller's scope
        arguments = [self.evaluate_expression(arg) if arg else None for arg in call.args]
        state.return_stack.append(ReturnAddress(state.program_counter + 1, state.scope_level))
        if state.function_depth == 0:
            state.function_scope = state.scope_level + 1
        else:
            self.env.evict(state.function_scope + 1)
        state.scope_level = state.function_scope
        state.function_depth += 1
        if self.debug_level >= 1:
            self.debug(f"call {call.name}({', '.join(call.args)}) from line {state.program_counter} (depth {state.function_depth})")
        self.bind_parameters(func, arguments)
        self.jump_to(func.body_start + 1)

    def bind_parameters(self, func: Function, arguments: List[Optional[Value]]):
        state = self.state
        for index, param in enumerate(func.parameters):
            value = arguments[index] if index < len(arguments) else None
            if value is None:
                self.report(WARNING, f"missing argument for parameter '{param}'; defaulting to 0")
                value = Value.zero()
            elif value.is_error:
                self.report(WARNING, f"failed to evaluate argument for parameter '{param}' ({value.text}); defaulting to 0")
                value = Value.zero()
            if param in self.env:
                self.report(NAME_ERROR, f"function parameter '{param}' conflicts with an existing variable")
                continue
            self.env.declare(param, state.scope_level, value)
        if len(arguments) > len(func.parameters):
            self.report(WARNING, f"'{func.name}' takes {len(func.parameters)} argument(s); ignoring the rest")

    def execute_if(self, header: IfHeader):
        value = self.evaluate_expression(header.condition)
        if value.is_error:
            self.report_value(value)
            self.advance()
            return
        if value.kind != BOOL:
            self.report(TYPE_ERROR, f"condition must be a boolean, got {value.kind}; treating it as false")
        if self.debug_level >= 3:
            self.debug(f"if condition {header.condition!r} -> {value.text}")
        if value.kind == BOOL and value.as_bool():
            self.enter_scope()
            self.advance()
        else:
            self.skip_block(self.state.program_counter + 1)

    def declare_variable(self, decl: VarDecl):
        if decl.name in RESERVED_KEYWORDS:
            self.report(SYNTAX_ERROR, f"'{decl.name}' is a reserved keyword")
            return
        try:
            self.env.declare(decl.name, self.state.scope_level)
        except SnxError as e:
            self.report(e.name, e.message)
            return
        value = self.evaluate_expression(decl.expr)
        if value.is_error:
            self.report_value(value)
            return
        self.env.assign(decl.name, value)
        if self.debug_level >= 2:
            self.debug(f"declare {decl.name}@{self.state.scope_level} = {value!r}")

    def assign_variable(self, assign: Assign):
        if assign.name not in self.env:
            self.report(NAME_ERROR, f"variable '{assign.name}' used before declaration")
            return
        value = self.evaluate_expression(assign.expr)
        if value.is_error:
            self.report_value(value)
            return
        self.env.assign(assign.name, value)
        if self.debug_level >= 2:
            self.debug(f"assign {assign.name} = {value!r}")

    def print_value(self, stmt: Print):
        if not stmt.expr:
            if stmt.newline:
                self.io.write('\n')
            return
        value = self.evaluate_expression(stmt.expr)
        if value.is_error:
            self.report_value(value)
            return
        self.io.write(to_string(value) + ('\n' if stmt.newline else ''))

    def run_command(self, stmt: Exec):
        if not self.io.allow_exec:
            self.report(WARNING, 'exec is disabled; command not run')
            return
        value = self.evaluate_expression(stmt.expr)
        if value.is_error:
            self.report_value(value)
            return
        code = self.io.run_command(value.as_string())
        if self.debug_level >= 1:
            self.debug(f"exec {value.as_string()!r} exited with {code}")


def run_program(source: str, debug_level: int = 0, **kwargs) -> Interpreter:
    """Convenience function to run an snx program from source text."""
    interpreter = Interpreter(debug_level=debug_level, **kwargs)
    interpreter.run(Source.from_text(source))
    return interpreter


def run_file(file_path: Union[str, Path], debug_level: int = 0, **kwargs) -> Interpreter:
    """Run an snx script file, returning the interpreter instance."""
    source = Source.from_file(file_path)
    interpreter = Interpreter(debug_level=debug_level, **kwargs)
    interpreter.run(source)
    return interpreter
