import builtins

import pytest

from snx.basic_io import BasicIO
from snx.errors import FatalError
from snx.interpreter import Interpreter, run_program
from snx.parser import BlockStyle


def kinds(interp):
    return [d.kind for d in interp.diagnostics]


class RecordingIO(BasicIO):
    def __init__(self, allow_exec=True):
        super().__init__(allow_exec)
        self.commands = []

    def run_command(self, command):
        self.commands.append(command)
        return 0


def test_print_variables(capsys):
    run_program('var x = 5\nprint x')
    assert capsys.readouterr().out == '5'
    run_program('var s = "hi"\nprintln s\nprintln')
    assert capsys.readouterr().out == 'hi\n\n'


def test_assignment_keeps_declaring_scope(capsys):
    source = '\n'.join([
        'var x = 1',
        'if true',
        'x = 5',
        'end',
        'println x',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == '5\n'
    assert interp.env.lookup('x').scope_level == 0


def test_block_variables_are_removed_on_close(capsys):
    source = '\n'.join([
        'if true',
        'var y = 1',
        'println y',
        'end',
        'y = 2',
        'println y',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == '1\n0\n'
    # writing a dead name is a NameError, reading one substitutes 0
    assert kinds(interp) == ['NameError', 'SubstitutionError']
    assert interp.diagnostics[0].line == 5
    assert 'y' not in interp.env


def test_block_variables_are_removed_brackets_style():
    source = '\n'.join([
        'STYLE = "brackets"',
        'if true {',
        'var y = 1',
        '}',
        'y = 2',
    ])
    interp = run_program(source)
    assert kinds(interp) == ['NameError']


def test_false_if_skips_nested_blocks(capsys):
    source = '\n'.join([
        'if false',
        'println "a"',
        'if true',
        'println "b"',
        'end',
        'func inner()',
        'println "c"',
        'end',
        'println "d"',
        'end',
        'println "after"',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == 'after\n'
    assert interp.functions == {}
    assert interp.diagnostics == []


def test_false_if_skips_nested_blocks_brackets_style(capsys):
    source = '\n'.join([
        'STYLE = "brackets"',
        'if false {',
        '  if true {',
        '    println "b"',
        '  }',
        '  println "c"',
        '}',
        'println "after"',
    ])
    run_program(source)
    assert capsys.readouterr().out == 'after\n'


def test_non_boolean_condition_is_false(capsys):
    interp = run_program('if 1\nprintln "yes"\nend\nprintln "no"')
    assert capsys.readouterr().out == 'no\n'
    assert kinds(interp) == ['TypeError']


def test_unmatched_if_runs_off_the_end(capsys):
    interp = run_program('if false\nprintln "a"\nprintln "b"')
    assert capsys.readouterr().out == ''
    assert kinds(interp) == ['SyntaxError']
    assert 'unmatched opening construct' in interp.diagnostics[0].message


def test_stray_block_close_is_reported():
    interp = run_program('end\nvar x = 1')
    assert kinds(interp) == ['SyntaxError']
    assert interp.env.lookup('x').value.text == '1'


def test_missing_argument_defaults_to_zero(capsys):
    source = '\n'.join([
        'func show(p)',
        'println p',
        'end',
        'show()',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == '0\n'
    assert kinds(interp) == ['Warning']
    assert 'missing argument' in interp.diagnostics[0].message


def test_extra_arguments_are_ignored(capsys):
    source = 'func show(p)\nprintln p\nend\nshow(1, 2)'
    interp = run_program(source)
    assert capsys.readouterr().out == '1\n'
    assert kinds(interp) == ['Warning']


def test_parameter_conflicting_with_global(capsys):
    source = '\n'.join([
        'var p = 1',
        'func show(p)',
        'println p',
        'end',
        'show(9)',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == '1\n'
    assert kinds(interp) == ['NameError']
    assert interp.env.lookup('p').value.text == '1'


def test_call_from_inside_a_block_keeps_block_variables(capsys):
    source = '\n'.join([
        'var shown = 0',
        'func mark()',
        'shown = shown + 1',
        'end',
        'if true',
        'var local = 1',
        'mark()',
        'println local',
        'end',
        'println shown',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == '1\n1\n'
    assert interp.diagnostics == []
    assert interp.state.scope_level == 0


def test_return_ends_the_call(capsys):
    source = '\n'.join([
        'func f()',
        'return 5',
        'println "unreachable"',
        'end',
        'f()',
        'println "after"',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == 'after\n'
    assert kinds(interp) == ['Warning']


def test_return_from_nested_block_restores_scope(capsys):
    source = '\n'.join([
        'func check(v)',
        'if v > 1',
        'var big = true',
        'return',
        'end',
        'println "small"',
        'end',
        'check(5)',
        'check(0)',
        'println "done"',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == 'small\ndone\n'
    assert interp.state.scope_level == 0
    assert 'big' not in interp.env
    assert interp.diagnostics == []


def test_function_redefinition_keeps_first(capsys):
    source = '\n'.join([
        'func f()',
        'println "first"',
        'end',
        'func f()',
        'println "second"',
        'end',
        'f()',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == 'first\n'
    assert kinds(interp) == ['NameError']


def test_function_declared_in_block_is_rejected():
    source = '\n'.join([
        'if true',
        'func f()',
        'println "x"',
        'end',
        'end',
        'f()',
    ])
    interp = run_program(source)
    assert kinds(interp) == ['SyntaxError', 'NameError']
    assert interp.functions == {}


def test_unterminated_interpolation(capsys):
    interp = run_program('var name = "x"\nprintln "hi ${name\nprintln "next"')
    assert capsys.readouterr().out == 'next\n'
    assert kinds(interp) == ['SyntaxError', 'SyntaxError']


def test_failed_statement_leaves_state_unchanged(capsys):
    source = '\n'.join([
        'var a = 1',
        'var b = 1 / 0',
        'a = "oops" - 1',
        'println a',
        'println b',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == '1\n0\n'
    assert kinds(interp) == ['RuntimeError', 'TypeError', 'SubstitutionError']
    assert interp.env.lookup('b').value is None


def test_redeclaration_is_rejected(capsys):
    interp = run_program('var x = 1\nvar x = 2\nprintln x')
    assert capsys.readouterr().out == '1\n'
    assert kinds(interp) == ['NameError']


def test_reserved_variable_name():
    interp = run_program('var while = 1')
    assert kinds(interp) == ['SyntaxError']
    assert 'while' not in interp.env


def test_goto(capsys):
    run_program('GOTO 3\nprintln "skipped"\nprintln "landed"')
    assert capsys.readouterr().out == 'landed\n'


def test_goto_invalid_line_is_fatal():
    with pytest.raises(FatalError):
        run_program('println "a"\nGOTO 99')


def test_return_outside_function_is_fatal():
    with pytest.raises(FatalError) as excinfo:
        run_program('return')
    assert "outside of a function" in str(excinfo.value)


def test_max_call_depth_is_fatal():
    source = 'func loop()\nloop()\nend\nloop()'
    with pytest.raises(FatalError) as excinfo:
        run_program(source, max_call_depth=50)
    assert 'maximum call depth' in str(excinfo.value)


def test_end_stops_the_program(capsys):
    interp = run_program('println "a"\nEND\nprintln "b"')
    assert capsys.readouterr().out == 'a\n'
    assert interp.state.running is False
    assert interp.state.program_counter == 2


def test_comments_and_blank_lines(capsys):
    run_program('# heading\n\n   \nprintln "x" \n  # indented')
    assert capsys.readouterr().out == 'x\n'


def test_style_switch_applies_from_next_line(capsys):
    source = '\n'.join([
        'if false',
        'println "skipped"',
        'end',
        'STYLE = "brackets"',
        'if true {',
        'println "inside"',
        '}',
        'println "done"',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == 'inside\ndone\n'
    assert interp.state.block_style is BlockStyle.BRACKETS


def test_unknown_style_is_ignored():
    interp = run_program('STYLE = "curly"')
    assert interp.state.block_style is BlockStyle.END


def test_initial_style_option(capsys):
    run_program('if true {\nprintln "ok"\n}', style=BlockStyle.BRACKETS)
    assert capsys.readouterr().out == 'ok\n'


def test_input_in_condition(monkeypatch, capsys):
    monkeypatch.setattr(builtins, 'input', lambda prompt='': 'yes')
    run_program('if input == "yes"\nprintln "ok"\nend')
    assert capsys.readouterr().out == 'ok\n'


def test_input_at_end_of_stream(monkeypatch, capsys):
    def no_more_input(prompt=''):
        raise EOFError
    monkeypatch.setattr(builtins, 'input', no_more_input)
    interp = run_program('var s = input\nprintln "[" + s + "]"')
    assert capsys.readouterr().out == '[]\n'
    assert interp.diagnostics == []


def test_exec_runs_evaluated_command():
    io = RecordingIO()
    run_program('var who = "hi"\nexec "echo " + who', io=io)
    assert io.commands == ['echo hi']


def test_exec_can_be_disabled():
    io = RecordingIO(allow_exec=False)
    interp = run_program('exec "echo hi"', io=io)
    assert io.commands == []
    assert kinds(interp) == ['Warning']


def test_diagnostics_go_to_stderr(capsys):
    run_program('var x = 1\nprintln x + "a" - 1')
    err = capsys.readouterr().err
    assert err.startswith('TypeError on line 2: ')


def test_debug_file(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    interp = Interpreter(debug_level=3, debug_file=str(debug_file))
    interp.run('var x = 1\nif x == 1\nend')
    text = debug_file.read_text()
    assert 'declare x@0' in text
    assert "[2] scope=0 depth=0: if x == 1" in text
    assert interp.debug_fp is None


def test_run_accepts_repeated_sources(capsys):
    interp = Interpreter()
    interp.run('println "one"')
    interp.run('println "two"')
    assert capsys.readouterr().out == 'one\ntwo\n'


def test_strings_with_quotes_and_backslashes(capsys):
    source = '\n'.join([
        r'var s = "a\"b"',
        r'var p = "C:\\dir"',
        'println s',
        'println p',
        'println "<${s}>"',
        'println s + p',
    ])
    interp = run_program(source)
    assert capsys.readouterr().out == 'a"b\nC:\\dir\n<a"b>\na"bC:\\dir\n'
    assert interp.diagnostics == []


def test_input_text_survives_storage(monkeypatch, capsys):
    monkeypatch.setattr(builtins, 'input', lambda prompt='': 'say "hi" \\o/')
    interp = run_program('var s = input\nprintln s\nprintln "${s}!"')
    assert capsys.readouterr().out == 'say "hi" \\o/\nsay "hi" \\o/!\n'
    assert interp.env.lookup('s').value.as_string() == 'say "hi" \\o/'
    assert interp.diagnostics == []


def test_debug_log_spans_repeated_runs(tmp_path, capsys):
    debug_file = tmp_path / 'debug.txt'
    interp = Interpreter(debug_level=1, debug_file=str(debug_file))
    interp.run('println "one"\nEND')
    interp.run('GOTO 2\nprintln "two"')
    assert capsys.readouterr().out == 'one\ntwo\n'
    text = debug_file.read_text()
    assert 'program terminated by END on line 2' in text
    assert 'GOTO 2 from line 1' in text
