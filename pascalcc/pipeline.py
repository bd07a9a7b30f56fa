"""
pascalcc analysis pipeline
==========================
Chains lexing → parsing → semantic analysis behind one high-level
interface.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from lark import Token, Tree

from .error import DiagnosticBag
from .lexer import Lexer
from .tree.nodes import Program, to_lark_tree
from .tree.parser import Parser
from .semantic.analyzer import PascalAnalyzer
from .semantic.builtins import BuiltinLoader, Builtins
from .semantic.symbol import SymbolTable

logger = logging.getLogger(__name__)


# ─── Result object ────────────────────────────────────────────────────────────

@dataclass
class AnalysisResult:
    """Output of one pipeline run"""
    diags:        DiagnosticBag
    ast:          Optional[Program] = None       # None when the source could not be read
    symbol_table: Optional[SymbolTable] = None
    token_count:  int = 0                        # without the EOF token
    source_name:  str = '<input>'
    tokens:       list[Token] = field(default_factory=list, repr=False)

    @property
    def symbols(self) -> list[dict]:
        if self.symbol_table is None:
            return []
        return self.symbol_table.formatted_symbols()

    @property
    def diagnostics(self) -> list[dict]:
        return self.diags.formatted()

    @property
    def has_critical_errors(self) -> bool:
        return self.diags.has_errors

    @property
    def error_count(self) -> int:
        return self.diags.count

    @property
    def success(self) -> bool:
        return self.ast is not None and not self.diags.has_errors

    def as_dict(self) -> dict:
        return {
            'symbols':             self.symbols,
            'diagnostics':         self.diagnostics,
            'has_critical_errors': self.has_critical_errors,
            'error_count':         self.error_count,
            'token_count':         self.token_count,
        }


# ─── Main pipeline ───────────────────────────────────────────────────────────

class PascalFrontend:
    """
    Pascal compiler front end.

    Steps:
      1. Lexer          → tokens
      2. Parser         → syntax tree
      3. PascalAnalyzer → symbol table + type checks

    Every run gets its own DiagnosticBag, parser, symbol table and
    analyzer; only the read-only built-in tables are shared.

    Usage::

        frontend = PascalFrontend()
        frontend.load_builtins_from_file("crt.decl")     # optional
        result = frontend.process_file("hello.pas")
        print(result.diags.report())
    """

    def __init__(self, load_defaults: bool = True):
        self._builtin_loader = BuiltinLoader()
        if load_defaults:
            self._builtin_loader.load_defaults()

    # ── built-in routines ──────────────────────────────────────────────────

    def load_builtins_from_dict(self, functions: dict = None, procedures: dict = None):
        """Add built-ins (format: see BuiltinLoader.load_from_dict)"""
        self._builtin_loader.load_from_dict(functions, procedures)

    def load_builtins_from_file(self, path: str | Path) -> int:
        """Add built-ins from a declaration file, returns how many were loaded"""
        return self._builtin_loader.load_from_file(path)

    @property
    def builtins(self) -> Builtins:
        return self._builtin_loader.get_builtins()

    @property
    def load_errors(self) -> list[str]:
        return self._builtin_loader.load_errors

    # ── analysis ───────────────────────────────────────────────────────────

    def process_file(self, path: str | Path) -> AnalysisResult:
        """Analyze one .pas file"""
        path = Path(path)
        if not path.exists():
            diag = DiagnosticBag()
            diag.error(f"File not found: {path}")
            return AnalysisResult(diags=diag, source_name=str(path))
        source = path.read_text(encoding='utf-8', errors='replace')
        return self.process_string(source, source_name=str(path))

    def process_string(self, source: str, source_name: str = '<input>') -> AnalysisResult:
        """
        Analyze a source string.
        Every phase runs even when an earlier one reported errors.
        """
        diag = DiagnosticBag()

        tokens = Lexer(source, diag).tokenize()
        logger.debug("%s: lexing done, %d token(s)", source_name, len(tokens) - 1)

        ast = Parser(diag).parse(tokens)
        logger.debug("%s: parsing done, %d diagnostic(s) so far", source_name, diag.count)

        table = SymbolTable()
        PascalAnalyzer(table, diag, self.builtins).analyze(ast)
        logger.debug("%s: analysis done, %d error(s), %d warning(s)",
                     source_name, len(diag.errors), len(diag.warnings))

        return AnalysisResult(
            diags=diag,
            ast=ast,
            symbol_table=table,
            token_count=len(tokens) - 1,
            source_name=source_name,
            tokens=tokens,
        )

    # ── debug helpers ──────────────────────────────────────────────────────

    def tokenize_only(self, source: str) -> list[Token]:
        """Lexing only (debugging)"""
        return Lexer(source).tokenize()

    def parse_only(self, source: str) -> Program:
        """Lexing + parsing, no semantic analysis (debugging)"""
        diag = DiagnosticBag()
        return Parser(diag).parse(Lexer(source, diag).tokenize())

    def tree_only(self, source: str) -> Tree:
        """The syntax tree as a lark Tree, ready for `.pretty()`"""
        return to_lark_tree(self.parse_only(source))


def analyze_source(source: str) -> AnalysisResult:
    """Run the whole pipeline on `source` with the default built-ins"""
    return PascalFrontend().process_string(source)
