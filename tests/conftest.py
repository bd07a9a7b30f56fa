"""Pytest configuration for the pascalcc test suite."""

from pathlib import Path

import pytest

from pascalcc import PascalFrontend
from pascalcc.error import DiagnosticBag
from pascalcc.lexer import tokenize
from pascalcc.tree.parser import Parser


@pytest.fixture
def frontend():
    return PascalFrontend()


@pytest.fixture
def parse_source():
    """Parse a source string, returning (program, diagnostics)."""
    def _parse(source: str):
        diag = DiagnosticBag()
        program = Parser(diag).parse(tokenize(source, diag))
        return program, diag
    return _parse


@pytest.fixture
def write_source(tmp_path):
    """Write a .pas file under tmp_path and return its path."""
    def _write(name: str, text: str, subdir: str = '') -> Path:
        directory = tmp_path / subdir if subdir else tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(text, encoding='utf-8')
        return path
    return _write
