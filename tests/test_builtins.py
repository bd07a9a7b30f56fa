"""Built-in routine tables and declaration files."""

import pytest

from pascalcc.semantic.builtins import BuiltinLoader, default_builtins
from pascalcc.semantic.type import INTEGER, REAL, CHAR


def test_default_tables():
    builtins = default_builtins()
    sqrt = builtins.function('SQRT')
    assert sqrt.is_function
    assert sqrt.accepts(1) and not sqrt.accepts(2)
    inc = builtins.procedure('inc')
    assert not inc.is_function
    assert inc.arity_text() == "between 1 and 2 arguments"
    assert builtins.function('inc') is None


def test_same_return_type_follows_first_argument():
    abs_ = default_builtins().function('abs')
    assert abs_.result_type([REAL]) == REAL
    assert abs_.result_type([INTEGER]) == INTEGER
    assert default_builtins().function('chr').result_type([INTEGER]) == CHAR


def test_load_from_dict():
    loader = BuiltinLoader()
    loader.load_from_dict(functions={'GetCh': ('char', 0, 0)}, procedures={'beep': (0, 1)})
    assert set(loader.get_functions()) == {'getch'}
    assert set(loader.get_procedures()) == {'beep'}
    assert loader.load_errors == []


def test_load_from_file(tmp_path):
    path = tmp_path / 'extra.decl'
    path.write_text(
        "// extra routines\n"
        "function getch(0): char;\n"
        "\n"
        "procedure beep(0..1);\n"
        "function bad(1): complex;\n"
        "garbage line\n",
        encoding='utf-8')
    loader = BuiltinLoader()
    assert loader.load_from_file(path) == 2
    builtins = loader.get_builtins()
    assert builtins.function('getch').result_type([]) == CHAR
    assert builtins.procedure('beep').accepts(1)
    assert builtins.function('bad') is None
    errors = loader.load_errors
    assert len(errors) == 2
    assert "unknown return type 'complex'" in errors[0]
    assert "unrecognized declaration" in errors[1]


def test_function_without_return_type_is_rejected(tmp_path):
    path = tmp_path / 'broken.decl'
    path.write_text("function getch(0);\n", encoding='utf-8')
    loader = BuiltinLoader()
    assert loader.load_from_file(path) == 0
    assert "has no return type" in loader.load_errors[0]


def test_missing_file(tmp_path):
    loader = BuiltinLoader()
    assert loader.load_from_file(tmp_path / 'nope.decl') == 0
    assert loader.load_errors[0].startswith("File not found")


def test_builtin_tables_are_read_only():
    builtins = default_builtins()
    with pytest.raises(TypeError):
        builtins.functions['evil'] = None


def test_custom_builtin_is_seen_by_the_analyzer(frontend):
    frontend.load_builtins_from_dict(functions={'getch': ('char', 0, 0)})
    result = frontend.process_string(
        "program P; var c: char; begin c := getch; writeln(c) end.")
    assert not result.diags.has_any, result.diags.report()
