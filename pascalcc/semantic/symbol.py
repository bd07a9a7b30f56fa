"""
Pascal symbol table
===================
Nested scopes (global → routine → begin/end block …) plus a permanent
record of every symbol ever declared.

Symbols live in one arena list and are addressed by their index. Each
scope maps a lowercase name to an index, and the historical registry is
simply the whole arena, so a symbol mutated through its scope is the same
object the end-of-run ambiguity and unused-variable checks see, even
after its scope has been popped.

Pascal identifiers are case-insensitive; the declared spelling is kept
for reporting.
"""

from __future__ import annotations

import logging
from enum import Enum

from .type import PType

logger = logging.getLogger(__name__)


class SymbolCategory(Enum):
    VARIABLE     = 'variable'       # var declarations and routine parameters
    CONSTANT     = 'constant'
    FOR_CONTROL  = 'for_control'    # variable used as a for-loop counter
    RETURN_VALUE = 'return_value'   # function name inside its own body (`f := …`)


class Symbol:
    """
    Symbol table entry.

    Attributes:
        name:        declared spelling
        ptype:       declared type (PType)
        scope:       name of the owning scope
        line:        declaration line
        initialized: a value has been stored (assignment, read, for, const)
        use_count:   number of expression-position references
        category:    SymbolCategory
        id:          arena index
    """
    def __init__(self, name: str, ptype: PType, scope: str, line: int,
                 category: SymbolCategory = SymbolCategory.VARIABLE, id: int = -1):
        self.name        = name
        self.ptype       = ptype
        self.scope       = scope
        self.line        = line
        self.initialized = False
        self.use_count   = 0
        self.category    = category
        self.id          = id

    def as_dict(self) -> dict:
        return {
            'name':        self.name,
            'type':        str(self.ptype),
            'scope':       self.scope,
            'line':        self.line,
            'initialized': self.initialized,
            'category':    self.category.value,
            'useCount':    self.use_count,
        }

    def __repr__(self):
        flags = []
        if self.initialized: flags.append('init')
        if self.use_count:   flags.append(f'used={self.use_count}')
        flag_str = ' '.join(flags)
        return f"Symbol({self.category.name} {self.ptype} {self.name!r} @{self.line} {flag_str})"


class Scope:
    """One scope: lowercase name → arena index"""
    def __init__(self, name: str):
        self.name = name
        self._table: dict[str, int] = {}

    def define(self, key: str, symbol_id: int) -> bool:
        if key in self._table:
            return False
        self._table[key] = symbol_id
        return True

    def lookup_local(self, key: str):
        return self._table.get(key)

    def ids(self):
        return self._table.values()


class SymbolTable:
    """
    Scope stack over a symbol arena.
    The bottom scope is `global` and is never popped.
    """
    def __init__(self):
        self._symbols: list[Symbol] = []
        self._scopes: list[Scope] = []
        self._scope_counter = 0
        self.push_scope('global')

    # ── scope management ───────────────────────────────────────────────────

    def push_scope(self, name: str = None) -> str:
        self._scope_counter += 1
        name = name or f'scope_{self._scope_counter}'
        self._scopes.append(Scope(name))
        logger.debug("enter scope %s (depth %d)", name, len(self._scopes))
        return name

    def pop_scope(self):
        if len(self._scopes) > 1:
            scope = self._scopes.pop()
            logger.debug("leave scope %s (%d symbol(s))", scope.name, len(scope.ids()))

    @property
    def current_scope(self) -> Scope:
        return self._scopes[-1]

    @property
    def current_scope_name(self) -> str:
        return self._scopes[-1].name

    @property
    def depth(self) -> int:
        return len(self._scopes)

    # ── symbol operations ──────────────────────────────────────────────────

    def declare(self, name: str, ptype: PType, line: int,
                category: SymbolCategory = SymbolCategory.VARIABLE) -> bool:
        """Declare in the current scope; a same-scope duplicate returns False"""
        key = name.lower()
        scope = self.current_scope
        if scope.lookup_local(key) is not None:
            return False
        sym = Symbol(name, ptype, scope.name, line, category, id=len(self._symbols))
        self._symbols.append(sym)
        scope.define(key, sym.id)
        logger.debug("declare %r: %s in %s (line %d)", name, ptype, scope.name, line)
        return True

    def lookup(self, name: str) -> Symbol | None:
        """Innermost scope first"""
        key = name.lower()
        for scope in reversed(self._scopes):
            symbol_id = scope.lookup_local(key)
            if symbol_id is not None:
                return self._symbols[symbol_id]
        return None

    def lookup_current_scope(self, name: str) -> Symbol | None:
        symbol_id = self.current_scope.lookup_local(name.lower())
        return self._symbols[symbol_id] if symbol_id is not None else None

    def lookup_all(self, name: str) -> list[Symbol]:
        """Every symbol ever declared under this name, in declaration order"""
        key = name.lower()
        return [s for s in self._symbols if s.name.lower() == key]

    def mark_initialized(self, name: str) -> bool:
        sym = self.lookup(name)
        if sym is None:
            return False
        sym.initialized = True
        return True

    def increment_use(self, name: str) -> bool:
        sym = self.lookup(name)
        if sym is None:
            return False
        sym.use_count += 1
        return True

    # ── whole-run queries ──────────────────────────────────────────────────

    def all_symbols(self) -> list[Symbol]:
        return list(self._symbols)

    def formatted_symbols(self) -> list[dict]:
        return [s.as_dict() for s in self._symbols]

    def find_unused_variables(self) -> list[Symbol]:
        return [s for s in self._symbols
                if s.category == SymbolCategory.VARIABLE and s.use_count == 0]

    def _group_by_name(self) -> dict[str, list[Symbol]]:
        groups: dict[str, list[Symbol]] = {}
        for sym in self._symbols:
            if sym.category == SymbolCategory.RETURN_VALUE:
                continue
            groups.setdefault(sym.name.lower(), []).append(sym)
        return groups

    def find_ambiguities(self) -> dict[str, list[Symbol]]:
        """Names declared more than once across all scopes"""
        return {name: syms for name, syms in self._group_by_name().items() if len(syms) > 1}

    def find_type_ambiguities(self) -> dict[str, list[Symbol]]:
        """The ambiguous names whose declarations disagree on type"""
        return {name: syms for name, syms in self.find_ambiguities().items()
                if len({str(s.ptype) for s in syms}) > 1}

    # ── debug helpers ──────────────────────────────────────────────────────

    def dump(self) -> str:
        lines = []
        for i, scope in enumerate(self._scopes):
            indent = '  ' * i
            lines.append(f"{indent}[{scope.name}]")
            for symbol_id in scope.ids():
                lines.append(f"{indent}  {self._symbols[symbol_id]}")
        popped = {s.scope for s in self._symbols} - {s.name for s in self._scopes}
        if popped:
            lines.append(f"(closed scopes: {', '.join(sorted(popped))})")
        return '\n'.join(lines)
