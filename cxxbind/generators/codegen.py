"""
Code generation utilities

Line builder used by the emitters. It tracks indentation, keeps blank
lines between top-level statements from stacking up and knows how to
write Python comments and docstrings from native comment text.
"""

from typing import List, Optional


class CodeGen:
    """Python source builder with indentation support"""

    def __init__(self, indent_str: str = '    '):
        self._lines: List[str] = []
        self._indent: int = 0
        self._indent_str: str = indent_str

    def line(self, text: str = ''):
        """Add a line at the current indentation"""
        self._lines.append(self._indent_str * self._indent + text if text else '')

    def lines(self, *texts: str):
        for text in texts:
            self.line(text)

    def blank(self, count: int = 1):
        """Make sure the output ends with ``count`` blank lines

        Blank lines already present count towards ``count``; nothing is
        added at the very start of the output.
        """
        if not self._lines:
            return
        trailing = 0
        for text in reversed(self._lines):
            if text:
                break
            trailing += 1
        self._lines.extend([''] * max(0, count - trailing))

    def comment(self, text: str):
        """Add ``text`` as one ``#`` comment line per input line"""
        for part in text.splitlines() or ['']:
            self.line(f'# {part}'.rstrip())

    def docstring(self, text: str):
        """Add ``text`` as a docstring, escaping quotes and backslashes"""
        text = text.replace('\\', '\\\\').replace('"""', '\\"\\"\\"')
        parts = text.splitlines() or ['']
        if len(parts) == 1:
            if parts[0].endswith('"'):
                parts[0] = parts[0][:-1] + '\\"'
            self.line(f'"""{parts[0]}"""')
            return
        self.line(f'"""{parts[0]}')
        for part in parts[1:]:
            self.line(part)
        self.line('"""')

    def indent(self):
        self._indent += 1

    def dedent(self):
        if self._indent > 0:
            self._indent -= 1

    def block(self, header: str, footer: Optional[str] = None):
        """Context manager writing ``header``, an indented body and ``footer``"""
        return _BlockContext(self, header, footer)

    def output(self) -> str:
        """Generated code with exactly one trailing newline"""
        lines = list(self._lines)
        while lines and not lines[-1]:
            lines.pop()
        return '\n'.join(lines) + '\n'

    def clear(self):
        self._lines.clear()
        self._indent = 0


class _BlockContext:
    """Indents the lines written inside a ``with`` statement"""

    def __init__(self, gen: CodeGen, header: str, footer: Optional[str]):
        self._gen = gen
        self._header = header
        self._footer = footer

    def __enter__(self):
        self._gen.line(self._header)
        self._gen.indent()
        return self

    def __exit__(self, *args):
        self._gen.dedent()
        if self._footer is not None:
            self._gen.line(self._footer)
