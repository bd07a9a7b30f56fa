"""DiagnosticBag tests."""

import pytest
from lark import Token

from pascalcc.error import DiagnosticBag, ErrorPhase, ErrorSeverity, SemanticError


def test_empty_bag():
    diag = DiagnosticBag()
    assert not diag.has_any
    assert not diag.has_errors
    assert diag.count == 0
    assert diag.report() == "No diagnostics."


def test_warnings_are_not_critical():
    diag = DiagnosticBag()
    diag.warning("unused", 3)
    assert diag.has_any
    assert not diag.has_errors
    assert len(diag.warnings) == 1


def test_add_error_defaults_to_error_severity():
    diag = DiagnosticBag()
    diag.add_error("bad char", 1, ErrorPhase.LEXICAL)
    (d,) = diag
    assert d.severity == ErrorSeverity.ERROR
    assert diag.has_errors


def test_by_phase():
    diag = DiagnosticBag()
    diag.add_error("a", 1, ErrorPhase.LEXICAL)
    diag.add_error("b", 2, ErrorPhase.SYNTACTIC)
    diag.error("c", 3)
    assert [d.message for d in diag.by_phase(ErrorPhase.SYNTACTIC)] == ["b"]
    assert [d.message for d in diag.by_phase(ErrorPhase.SEMANTIC)] == ["c"]


def test_formatted_is_sorted_by_line_and_stable():
    diag = DiagnosticBag()
    diag.error("late", 9)
    diag.warning("first on 2", 2)
    diag.error("second on 2", 2)
    view = diag.formatted()
    assert [d['message'] for d in view] == ["first on 2", "second on 2", "late"]
    # insertion order is untouched
    assert [d.message for d in diag] == ["late", "first on 2", "second on 2"]


def test_formatted_fields():
    diag = DiagnosticBag()
    diag.error("boom", 4)
    diag.warning("hmm", 5, phase=ErrorPhase.SEMANTIC)
    error, warning = diag.formatted()
    assert error == {'message': 'boom', 'line': 4, 'phase': 'Semantic',
                     'severity': 'error', 'icon': '❌'}
    assert warning['severity'] == 'warning'
    assert warning['icon'] == '⚠️'


def test_location_from_token():
    diag = DiagnosticBag()
    diag.error("here", Token('IDENTIFIER', 'x', 0, 3, 7), phase=ErrorPhase.SYNTACTIC)
    (d,) = diag
    assert (d.line, d.column) == (3, 7)


def test_report_lists_counts():
    diag = DiagnosticBag()
    diag.error("e", 1)
    diag.warning("w", 2)
    text = diag.report()
    assert "1 error(s), 1 warning(s)" in text
    assert "❌" in text


def test_raise_if_errors():
    diag = DiagnosticBag()
    diag.warning("only a warning", 1)
    diag.raise_if_errors()
    diag.error("real problem", 6)
    with pytest.raises(SemanticError) as exc:
        diag.raise_if_errors()
    assert exc.value.line == 6


def test_clear():
    diag = DiagnosticBag()
    diag.error("x", 1)
    diag.clear()
    assert diag.count == 0
