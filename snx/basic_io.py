import builtins
import subprocess
import sys


class BasicIO:
    """Standard streams and process execution used by the interpreter.

    Streams are looked up on every call so that redirected or captured
    `sys.stdout`/`sys.stderr` are honoured.
    """
    def __init__(self, allow_exec: bool = True):
        self.allow_exec = allow_exec

    def read_line(self) -> str:
        try:
            return builtins.input()
        except EOFError:
            return ''

    def write(self, text: str):
        sys.stdout.write(text)
        sys.stdout.flush()

    def error(self, text: str):
        print(text, file=sys.stderr)

    def run_command(self, command: str) -> int:
        sys.stdout.flush()
        completed = subprocess.run(command, shell=True, check=False)
        return completed.returncode
