"""
Pascal built-in routine loader
==============================
Built-in functions and procedures are described by their argument count
range and, for functions, a return type. `same` as a return type means
"the type of the first argument" (abs, sqr, succ, pred).

Two ways to load them:

  1. from the default tables below (`BUILTIN_FUNCTION_DEFS`,
     `BUILTIN_PROCEDURE_DEFS`)
  2. from a declaration file, one routine per line:

         function  name(min[..max]): type;
         procedure name(min[..max]);

Usage:
    loader = BuiltinLoader()
    loader.load_defaults()
    loader.load_from_file("crt.decl")
    analyzer = PascalAnalyzer(builtins=loader.get_builtins())
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Optional

from .type import PType, BUILTIN_TYPES

logger = logging.getLogger(__name__)

SAME = 'same'


@dataclass(frozen=True)
class BuiltinRoutine:
    """One built-in; `return_type` is None for procedures"""
    name:        str
    min_args:    int
    max_args:    int
    return_type: Optional[str] = None     # type name or 'same'

    @property
    def is_function(self) -> bool:
        return self.return_type is not None

    def accepts(self, count: int) -> bool:
        return self.min_args <= count <= self.max_args

    def arity_text(self) -> str:
        if self.min_args == self.max_args:
            return f"exactly {self.min_args} argument(s)"
        return f"between {self.min_args} and {self.max_args} arguments"

    def result_type(self, arg_types: list[PType]) -> PType:
        if self.return_type == SAME:
            return arg_types[0] if arg_types else BUILTIN_TYPES['integer']
        return BUILTIN_TYPES[self.return_type]


@dataclass(frozen=True)
class Builtins:
    """Read-only built-in tables handed to the analyzer"""
    functions:  MappingProxyType
    procedures: MappingProxyType

    def function(self, name: str) -> Optional[BuiltinRoutine]:
        return self.functions.get(name.lower())

    def procedure(self, name: str) -> Optional[BuiltinRoutine]:
        return self.procedures.get(name.lower())


# declaration file line:  function copy(3): string;   procedure inc(1..2);
_DECL_RE = re.compile(
    r'(?P<kind>function|procedure)\s+'
    r'(?P<name>[a-zA-Z_]\w*)\s*'
    r'\(\s*(?P<min>\d+)\s*(?:\.\.\s*(?P<max>\d+)\s*)?\)\s*'
    r'(?::\s*(?P<ret>\w+)\s*)?;',
    re.IGNORECASE,
)


class BuiltinLoader:
    """
    Collects built-in routine descriptions from dicts and declaration files.
    """
    def __init__(self):
        self._functions: dict[str, BuiltinRoutine] = {}
        self._procedures: dict[str, BuiltinRoutine] = {}
        self._load_errors: list[str] = []

    def load_defaults(self):
        self.load_from_dict(BUILTIN_FUNCTION_DEFS, BUILTIN_PROCEDURE_DEFS)

    def load_from_dict(self, functions: dict[str, tuple] = None,
                       procedures: dict[str, tuple] = None):
        """
        functions:  {'name': ('return_type', min_args, max_args), ...}
        procedures: {'name': (min_args, max_args), ...}
        """
        for name, (ret, lo, hi) in (functions or {}).items():
            self._add_function(name, lo, hi, ret)
        for name, (lo, hi) in (procedures or {}).items():
            self._procedures[name.lower()] = BuiltinRoutine(name.lower(), lo, hi)

    def load_from_file(self, path: str | Path) -> int:
        """
        Load declarations from a file.
        Returns the number of routines loaded.
        """
        path = Path(path)
        if not path.exists():
            self._load_errors.append(f"File not found: {path}")
            return 0

        count = 0
        with open(path, encoding='utf-8', errors='replace') as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith('//'):
                    continue
                m = _DECL_RE.match(line)
                if not m:
                    self._load_errors.append(f"{path}:{lineno}: unrecognized declaration")
                    continue

                name = m.group('name')
                lo = int(m.group('min'))
                hi = int(m.group('max')) if m.group('max') else lo
                ret = m.group('ret')

                if m.group('kind').lower() == 'function':
                    if ret is None:
                        self._load_errors.append(
                            f"{path}:{lineno}: function '{name}' has no return type")
                        continue
                    if not self._add_function(name, lo, hi, ret, where=f"{path}:{lineno}"):
                        continue
                else:
                    self._procedures[name.lower()] = BuiltinRoutine(name.lower(), lo, hi)
                count += 1

        logger.debug("loaded %d built-in routine(s) from %s", count, path)
        return count

    def _add_function(self, name: str, lo: int, hi: int, ret: str, where: str = '') -> bool:
        ret = ret.lower()
        if ret != SAME and ret not in BUILTIN_TYPES:
            self._load_errors.append(
                f"{where or name}: unknown return type '{ret}' for function '{name}'")
            return False
        self._functions[name.lower()] = BuiltinRoutine(name.lower(), lo, hi, ret)
        return True

    def get_functions(self) -> dict[str, BuiltinRoutine]:
        return dict(self._functions)

    def get_procedures(self) -> dict[str, BuiltinRoutine]:
        return dict(self._procedures)

    def get_builtins(self) -> Builtins:
        return Builtins(MappingProxyType(dict(self._functions)),
                        MappingProxyType(dict(self._procedures)))

    @property
    def load_errors(self):
        return list(self._load_errors)


# ─── Standard built-ins (Turbo Pascal / Free Pascal subset) ──────────────────

BUILTIN_FUNCTION_DEFS = {
    # arithmetic
    'abs':        ('same',    1, 1),
    'sqr':        ('same',    1, 1),
    'sqrt':       ('real',    1, 1),
    'sin':        ('real',    1, 1),
    'cos':        ('real',    1, 1),
    'ln':         ('real',    1, 1),
    'exp':        ('real',    1, 1),
    'arctan':     ('real',    1, 1),
    'int':        ('real',    1, 1),
    'frac':       ('real',    1, 1),

    # conversion / ordinal
    'trunc':      ('integer', 1, 1),
    'round':      ('integer', 1, 1),
    'ord':        ('integer', 1, 1),
    'chr':        ('char',    1, 1),
    'succ':       ('same',    1, 1),
    'pred':       ('same',    1, 1),
    'odd':        ('boolean', 1, 1),

    # strings
    'length':     ('integer', 1, 1),
    'copy':       ('string',  3, 3),
    'concat':     ('string',  1, 99),
    'pos':        ('integer', 2, 2),
    'upcase':     ('char',    1, 1),
    'lowercase':  ('char',    1, 1),

    # misc
    'sizeof':     ('integer', 1, 1),
    'random':     ('integer', 0, 1),

    # crt
    'readkey':    ('char',    0, 0),
    'keypressed': ('boolean', 0, 0),
    'wherex':     ('integer', 0, 0),
    'wherey':     ('integer', 0, 0),
}

BUILTIN_PROCEDURE_DEFS = {
    'inc':       (1, 2),
    'dec':       (1, 2),
    'val':       (3, 3),
    'str':       (2, 2),
    'delete':    (3, 3),
    'insert':    (3, 3),
    'clrscr':    (0, 0),
    'gotoxy':    (2, 2),
    'delay':     (1, 1),
    'halt':      (0, 1),
    'exit':      (0, 0),
    'dispose':   (1, 1),
    'new':       (1, 1),
    'assign':    (2, 2),
    'reset':     (1, 1),
    'rewrite':   (1, 1),
    'close':     (1, 1),
    'append':    (1, 1),
    'randomize': (0, 0),
}


def default_builtins() -> Builtins:
    loader = BuiltinLoader()
    loader.load_defaults()
    return loader.get_builtins()
