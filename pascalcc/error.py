"""
Pascal diagnostics system
=========================
Collects every lexical, syntactic and semantic diagnostic of one run.
Analysis continues after a problem is found ("keep going" mode) so that
one mistake does not hide unrelated ones further down the source.
"""

from dataclasses import dataclass
from enum import Enum, auto


class ErrorSeverity(Enum):
    WARNING = auto()
    ERROR   = auto()


class ErrorPhase(Enum):
    LEXICAL   = 'Lexical'
    SYNTACTIC = 'Syntactic'
    SEMANTIC  = 'Semantic'

    @property
    def label(self) -> str:
        return self.value


_ICONS = {
    ErrorSeverity.ERROR:   '❌',
    ErrorSeverity.WARNING: '⚠️',
}


@dataclass(frozen=True)
class Diagnostic:
    """One diagnostic entry"""
    severity: ErrorSeverity
    phase:    ErrorPhase
    message:  str
    line:     int = -1
    column:   int = -1
    hint:     str = ''       # optional fix suggestion

    @property
    def icon(self) -> str:
        return _ICONS[self.severity]

    @property
    def is_error(self) -> bool:
        return self.severity == ErrorSeverity.ERROR

    def as_dict(self) -> dict:
        return {
            'message':  self.message,
            'line':     self.line,
            'phase':    self.phase.label,
            'severity': self.severity.name.lower(),
            'icon':     self.icon,
        }

    def __str__(self):
        loc = str(self.line) if self.line > 0 else '?'
        base = f"[{self.severity.name}] {self.phase.label} line {loc}: {self.message}"
        if self.hint:
            base += f"\n  hint: {self.hint}"
        return base


class SemanticError(Exception):
    """Raised only in fail-fast mode (see DiagnosticBag.raise_if_errors)"""
    def __init__(self, message, line=-1):
        super().__init__(message)
        self.line = line


class DiagnosticBag:
    """
    Append-only diagnostic store shared by the tokenizer, the parser and
    the semantic analyzer. Entries are never mutated or removed; only
    `clear()` empties the bag between independent runs.
    """
    def __init__(self):
        self._diags: list[Diagnostic] = []

    # ── adding ──────────────────────────────────────────────────────────────

    def add_error(self, message: str, line: int, phase: ErrorPhase,
                  severity: ErrorSeverity = ErrorSeverity.ERROR,
                  column: int = -1, hint: str = ''):
        self._diags.append(Diagnostic(severity, phase, message, line, column, hint))

    def error(self, message: str, node=None, phase: ErrorPhase = ErrorPhase.SEMANTIC,
              hint: str = ''):
        line, column = _loc(node)
        self.add_error(message, line, phase, ErrorSeverity.ERROR, column, hint)

    def warning(self, message: str, node=None, phase: ErrorPhase = ErrorPhase.SEMANTIC,
                hint: str = ''):
        line, column = _loc(node)
        self.add_error(message, line, phase, ErrorSeverity.WARNING, column, hint)

    # ── queries ─────────────────────────────────────────────────────────────

    @property
    def has_any(self) -> bool:
        return bool(self._diags)

    @property
    def has_errors(self) -> bool:
        """True when at least one ERROR (non-warning) diagnostic exists"""
        return any(d.is_error for d in self._diags)

    @property
    def count(self) -> int:
        return len(self._diags)

    @property
    def errors(self):
        return [d for d in self._diags if d.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self):
        return [d for d in self._diags if d.severity == ErrorSeverity.WARNING]

    def by_phase(self, phase: ErrorPhase) -> list[Diagnostic]:
        return [d for d in self._diags if d.phase == phase]

    def sorted(self) -> list[Diagnostic]:
        # stable: diagnostics on the same line keep insertion order
        return sorted(self._diags, key=lambda d: d.line)

    def formatted(self) -> list[dict]:
        """Presentation view for front ends, ordered by line"""
        return [d.as_dict() for d in self.sorted()]

    def __iter__(self):
        return iter(self._diags)

    def __len__(self):
        return len(self._diags)

    # ── output ──────────────────────────────────────────────────────────────

    def report(self) -> str:
        if not self._diags:
            return "No diagnostics."
        lines = [f"{d.icon} {d}" for d in self.sorted()]
        summary = (f"\n{'─'*60}\n"
                   f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)")
        return '\n'.join(lines) + summary

    def raise_if_errors(self):
        if self.has_errors:
            first = self.errors[0]
            raise SemanticError(f"{len(self.errors)} error(s) found.\n" +
                                '\n'.join(str(d) for d in self.errors), first.line)

    def clear(self):
        self._diags = []


def _loc(node) -> tuple[int, int]:
    """Extract (line, column) from a token, a tree node or a bare int"""
    if node is None:
        return -1, -1
    if isinstance(node, int):
        return node, -1
    line = getattr(node, 'line', None)
    if line is None:
        return -1, -1
    return line, getattr(node, 'column', None) or -1
