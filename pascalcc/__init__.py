"""
pascalcc - Pascal compiler front end
====================================
Module layout:
  pascalcc/
    __init__.py          this file: public API
    error.py             diagnostics
    lexer.py             source text → tokens (lark.Token)
    pipeline.py          lexer → parser → analyzer in one call
    cli.py               `pascalcc check` / `pascalcc verify`
    tree/
      nodes.py           syntax tree node definitions
      parser.py          recursive-descent parser
    semantic/
      type.py            type system and compatibility tables
      symbol.py          scoped symbol table
      analyzer.py        semantic analyzer
      builtins.py        built-in routine tables and loader

Quick start:

    from pascalcc import analyze_source

    result = analyze_source(source_code)
    if result.has_critical_errors:
        print(result.diags.report())
    else:
        print("OK, symbols:")
        print(result.symbol_table.dump())
"""

from .pipeline import PascalFrontend, AnalysisResult, analyze_source
from .error import DiagnosticBag, Diagnostic, ErrorPhase, ErrorSeverity, SemanticError
from .lexer import Lexer, TokenKind, tokenize
from .tree.parser import Parser
from .semantic.analyzer import PascalAnalyzer
from .semantic.symbol import Symbol, SymbolCategory, SymbolTable
from .semantic.type import (
    INTEGER, REAL, BOOLEAN, CHAR, STRING, ERROR_T,
    PType, BasicType, AliasType, ErrorType,
)
from .semantic.builtins import BuiltinLoader, BuiltinRoutine

__all__ = [
    'PascalFrontend', 'AnalysisResult', 'analyze_source',
    'DiagnosticBag', 'Diagnostic', 'ErrorPhase', 'ErrorSeverity', 'SemanticError',
    'Lexer', 'TokenKind', 'tokenize', 'Parser', 'PascalAnalyzer',
    'Symbol', 'SymbolCategory', 'SymbolTable',
    'INTEGER', 'REAL', 'BOOLEAN', 'CHAR', 'STRING', 'ERROR_T',
    'PType', 'BasicType', 'AliasType', 'ErrorType',
    'BuiltinLoader', 'BuiltinRoutine',
]
