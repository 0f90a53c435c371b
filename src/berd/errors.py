"""Diagnostics and their Rust-style rendering.

Every stage (lexer, parser, evaluator) reports problems as ``Diagnostic``
records. Fatal problems additionally raise ``FatalError`` carrying every
diagnostic collected up to that point.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from berd.source import Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str = ""


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


class DiagnosticRenderer:
    """Renders diagnostics with the offending source line and carets.

    Source text is looked up by file name. Files on disk are read lazily;
    in-memory sources (stdin, editor buffers, tests) can be registered up
    front with ``add_source``.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, list[str]] = {}

    def add_source(self, filename: str, text: str) -> None:
        self._sources[filename] = text.splitlines()

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _source_line(self, filename: str, line_num: int) -> str | None:
        if filename not in self._sources:
            path = Path(filename)
            try:
                text = path.read_text(encoding="utf-8") if path.is_file() else ""
            except (OSError, UnicodeDecodeError):
                text = ""
            self._sources[filename] = text.splitlines()
        lines = self._sources[filename]
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def render(self, diag: Diagnostic) -> str:
        out: list[str] = []
        color = _COLORS[diag.severity]
        bar = f"{self._c(_BLUE)}   |{self._c(_RESET)}"

        # warning[W101]: message
        out.append(
            f"{self._c(color)}{diag.severity.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            out.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
            out.append(f"  {bar}")
            line = self._source_line(span.file, span.start_line)
            if line is None:
                continue
            out.append(
                f"  {self._c(_BLUE)}{span.start_line:>4} |{self._c(_RESET)} {line}"
            )
            if span.start_line == span.end_line:
                width = max(1, span.end_col - span.start_col + 1)
            else:
                width = max(1, len(line) - span.start_col + 1)
            padding = " " * (span.start_col - 1)
            carets = f"{self._c(color)}{'^' * width}{self._c(_RESET)}"
            if label.message:
                carets += f" {self._c(color)}{label.message}{self._c(_RESET)}"
            out.append(f"  {bar} {padding}{carets}")

        for note in diag.notes:
            out.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(out)


class FatalError(Exception):
    """Stops the run; carries every diagnostic gathered so far."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        errors = [d.message for d in diagnostics if d.is_error]
        super().__init__("; ".join(errors) or "fatal error")
