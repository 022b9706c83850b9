from pathlib import Path
from typing import List, Sequence, Union

from snx.errors import FatalError, RUNTIME_ERROR


class Source:
    """Immutable, line-addressed program text. Line numbers start at 1."""
    def __init__(self, lines: Sequence[str], name: str = '<string>'):
        self.lines: List[str] = [line.rstrip('\r\n') for line in lines]
        self.name = name

    @classmethod
    def from_text(cls, text: str, name: str = '<string>') -> 'Source':
        return cls(text.splitlines(), name)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'Source':
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            raise FatalError(RUNTIME_ERROR, f"failed to open script file {path}: {e.strerror}")
        except UnicodeDecodeError as e:
            raise FatalError(RUNTIME_ERROR, f"failed to read script file {path}: {e.reason} at byte {e.start}")
        return cls.from_text(text, str(path))

    def __len__(self) -> int:
        return len(self.lines)

    def has_line(self, number: int) -> bool:
        return 1 <= number <= len(self.lines)

    def line(self, number: int) -> str:
        if not self.has_line(number):
            raise IndexError(f"line {number} is outside {self.name}")
        return self.lines[number - 1]
