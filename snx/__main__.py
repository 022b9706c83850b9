"""CLI entry point for the snx interpreter.

Usage:
    python -m snx [-v|-vv|-vvv] [options] <program_file>
    python -m snx --eval <expression>

Options:
  -v                  Increase debug verbosity (can be repeated)
  --style STYLE       Initial block style, `end` (default) or `brackets`
  --max-call-depth N  Abort when more than N function activations are live
  --no-exec           Refuse to run `exec` statements
  --eval EXPR         Evaluate a single expression and print the result

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero. Errors in individual statements are
reported on standard error and execution continues; fatal errors stop the
program with exit status 1.
"""

import argparse
import sys
from pathlib import Path

from .basic_io import BasicIO
from .errors import SnxError
from .evaluator import evaluate
from .interpreter import Interpreter
from .parser import BlockStyle
from .source import Source
from .types import to_string


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="snx language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--style', choices=[s.value for s in BlockStyle], default=BlockStyle.END.value,
                        help='block style in effect until a STYLE directive changes it')
    parser.add_argument('--max-call-depth', type=int, default=1000, metavar='N',
                        help='maximum number of live function activations')
    parser.add_argument('--no-exec', action='store_true', help='disable the exec statement')
    parser.add_argument('--eval', metavar='EXPR', help='evaluate a single expression and print it')
    parser.add_argument('program', nargs='?', help='snx program file (.snx) to execute')
    args = parser.parse_args(argv)

    # Single expression mode
    if args.eval is not None:
        value = evaluate(args.eval)
        if value.is_error:
            print(value.text, file=sys.stderr)
            sys.exit(1)
        print(to_string(value))
        return

    if not args.program:
        parser.error('missing program file; or use --eval')
    program_file = Path(args.program)
    if not program_file.exists():
        print(f"Error: file {program_file} not found", file=sys.stderr)
        sys.exit(1)
    try:
        source = Source.from_file(program_file)
        interpreter = Interpreter(
            debug_level=args.v,
            style=BlockStyle(args.style),
            max_call_depth=args.max_call_depth,
            io=BasicIO(allow_exec=not args.no_exec),
        )
        interpreter.run(source)
    except SnxError as e:
        print(f"Execution Fatal Error: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == '__main__':
    main()
