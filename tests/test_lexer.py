"""Lexer tests: token kinds, literals, comments, positions and bad input."""

import pytest

from pascalcc import analyze_source
from pascalcc.error import DiagnosticBag, ErrorPhase
from pascalcc.lexer import TokenKind as K, tokenize


def kinds(source):
    return [t.type for t in tokenize(source)]


def test_minimal_program():
    assert kinds("program Test; begin end.") == [
        K.PROGRAM, K.IDENTIFIER, K.SEMICOLON, K.BEGIN, K.END, K.DOT, K.EOF]


def test_empty_source_yields_only_eof():
    tokens = tokenize("")
    assert len(tokens) == 1
    assert tokens[0].type == K.EOF


def test_exactly_one_eof_token():
    tokens = tokenize("x := 1;\n")
    assert [t.type for t in tokens].count(K.EOF) == 1
    assert tokens[-1].type == K.EOF


def test_keywords_are_case_insensitive_and_lowercased():
    tokens = tokenize("BEGIN End wHiLe")
    assert [t.type for t in tokens[:-1]] == [K.BEGIN, K.END, K.WHILE]
    assert [str(t) for t in tokens[:-1]] == ['begin', 'end', 'while']


def test_identifiers_keep_their_spelling():
    tokens = tokenize("MyVar _tmp x1")
    assert [t.type for t in tokens[:-1]] == [K.IDENTIFIER] * 3
    assert [str(t) for t in tokens[:-1]] == ['MyVar', '_tmp', 'x1']


def test_numbers_and_ranges():
    tokens = tokenize("12 3.14 1..10")
    assert [(t.type, str(t)) for t in tokens[:-1]] == [
        (K.INTEGER_LITERAL, '12'),
        (K.REAL_LITERAL, '3.14'),
        (K.INTEGER_LITERAL, '1'),
        (K.DOTDOT, '..'),
        (K.INTEGER_LITERAL, '10'),
    ]


def test_end_dot_is_not_a_real():
    assert kinds("end.") == [K.END, K.DOT, K.EOF]


@pytest.mark.parametrize("source, text", [
    ("'hello'", "hello"),
    ("'it''s'", "it's"),
    ("´abc´", "abc"),
    ("''", ""),
])
def test_string_literals(source, text):
    tokens = tokenize(source)
    assert tokens[0].type == K.STRING_LITERAL
    assert str(tokens[0]) == text


def test_unterminated_string_runs_to_end_of_input():
    diag = DiagnosticBag()
    tokens = tokenize("'abc", diag)
    assert [t.type for t in tokens] == [K.STRING_LITERAL, K.EOF]
    assert str(tokens[0]) == 'abc'
    assert not diag.has_any


def test_comments_are_dropped():
    source = "{ one } x (* two *) y // three\n z /* four */ w"
    tokens = tokenize(source)
    assert [str(t) for t in tokens[:-1]] == ['x', 'y', 'z', 'w']


def test_unterminated_comment_runs_to_end_of_input():
    assert kinds("x { never closed") == [K.IDENTIFIER, K.EOF]


def test_lines_are_counted_inside_comments_and_strings():
    tokens = tokenize("a\n{\n}\nb 'c\nd' e")
    by_text = {str(t): t.line for t in tokens[:-1]}
    assert by_text['a'] == 1
    assert by_text['b'] == 4
    assert by_text['e'] == 5


def test_relational_operators_share_one_kind():
    tokens = tokenize("= <> < > <= >=")
    assert [t.type for t in tokens[:-1]] == [K.REL_OP] * 6
    assert [str(t) for t in tokens[:-1]] == ['=', '<>', '<', '>', '<=', '>=']


def test_operators_and_delimiters():
    assert kinds("a[1] := b: c, (d) + e - f * g / h;") == [
        K.IDENTIFIER, K.LBRACKET, K.INTEGER_LITERAL, K.RBRACKET, K.ASSIGN,
        K.IDENTIFIER, K.COLON, K.IDENTIFIER, K.COMMA,
        K.LPAREN, K.IDENTIFIER, K.RPAREN, K.PLUS, K.IDENTIFIER, K.MINUS,
        K.IDENTIFIER, K.STAR, K.IDENTIFIER, K.SLASH, K.IDENTIFIER, K.SEMICOLON, K.EOF]


def test_unrecognized_character_is_reported_and_skipped():
    diag = DiagnosticBag()
    tokens = tokenize("x := 1 @ 2", diag)
    assert [str(t) for t in tokens[:-1]] == ['x', ':=', '1', '2']
    assert diag.count == 1
    d = diag.errors[0]
    assert d.phase == ErrorPhase.LEXICAL
    assert "'@'" in d.message
    assert (d.line, d.column) == (1, 8)


def test_accented_letter_is_not_part_of_an_identifier():
    diag = DiagnosticBag()
    tokens = tokenize("var año: integer;", diag)
    assert [str(t) for t in tokens[:-1]] == ['var', 'a', 'o', ':', 'integer', ';']
    (d,) = diag.errors
    assert d.phase == ErrorPhase.LEXICAL
    assert "'ñ'" in d.message
    assert (d.line, d.column) == (1, 6)


def test_superscript_digit_is_not_part_of_a_number():
    diag = DiagnosticBag()
    tokens = tokenize("x := 2²", diag)
    assert [(t.type, str(t)) for t in tokens[:-1]] == [
        (K.IDENTIFIER, 'x'), (K.ASSIGN, ':='), (K.INTEGER_LITERAL, '2')]
    (d,) = diag.errors
    assert d.phase == ErrorPhase.LEXICAL
    assert "'²'" in d.message


def test_non_ascii_identifier_reaches_the_result():
    result = analyze_source("program P; var año: integer; begin año := 1; writeln(año) end.")
    assert result.diags.by_phase(ErrorPhase.LEXICAL)
    assert result.has_critical_errors


def test_token_positions():
    tokens = tokenize("program P;\n  x := 1")
    x = tokens[3]
    assert str(x) == 'x'
    assert (x.line, x.column) == (2, 3)
