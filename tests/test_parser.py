"""Parser tests: tree shapes, disambiguation and error recovery."""

from lark import Token

from pascalcc.error import DiagnosticBag, ErrorPhase
from pascalcc.lexer import TokenKind
from pascalcc.tree.parser import parse
from pascalcc.tree.nodes import (
    Program, VarSection, ConstSection, FunctionDecl, ProcedureDecl, Block,
    Assignment, IfStatement, ForStatement, RepeatStatement, WriteStatement,
    ReadStatement, ProcedureCall, BinaryOp, UnaryOp, Literal, Identifier,
    FunctionCall, ArrayAccess, ErrorNode,
)


def body(parse_source, statements):
    program, diag = parse_source(f"begin {statements} end.")
    assert not diag.has_any, diag.report()
    return program.body.statements


def value_of(parse_source, expression):
    (stmt,) = body(parse_source, f"x := {expression}")
    return stmt.value


# ── program structure ───────────────────────────────────────────────────────

def test_minimal_program(parse_source):
    program, diag = parse_source("program P; begin end.")
    assert isinstance(program, Program)
    assert program.name == 'P'
    assert program.declarations == []
    assert isinstance(program.body, Block)
    assert program.body.statements == []
    assert not diag.has_any


def test_program_header_is_optional(parse_source):
    program, diag = parse_source("begin writeln('hi') end.")
    assert program.name == 'anonymous'
    assert isinstance(program.body.statements[0], WriteStatement)
    assert not diag.has_any


def test_program_parameters_and_uses_clause(parse_source):
    program, diag = parse_source("program P(input, output); uses crt, dos; begin clrscr end.")
    assert not diag.has_any
    (call,) = program.body.statements
    assert isinstance(call, ProcedureCall)
    assert call.name == 'clrscr'
    assert call.arguments == []


def test_declarations_keep_source_order(parse_source):
    program, diag = parse_source(
        "program P;\n"
        "const N = 10;\n"
        "var x: integer;\n"
        "procedure Q; begin end;\n"
        "function F(a: integer): real; begin F := a end;\n"
        "var y: real;\n"
        "begin end.")
    assert not diag.has_any, diag.report()
    assert [type(d) for d in program.declarations] == [
        ConstSection, VarSection, ProcedureDecl, FunctionDecl, VarSection]
    func = program.declarations[3]
    assert func.name == 'F'
    assert [(p.name, p.type_spec.name) for p in func.params] == [('a', 'integer')]
    assert func.return_type.name == 'real'


def test_type_section_is_skipped(parse_source):
    program, diag = parse_source(
        "program P; type TArr = array[1..5] of integer; var a: TArr; begin end.")
    assert not diag.has_any
    (section,) = program.declarations
    assert isinstance(section, VarSection)
    assert section.declarations[0].type_spec.name == 'tarr'


def test_var_declarations(parse_source):
    program, diag = parse_source(
        "var a, b, c: integer; v: array[1..10] of real; s: string[20]; begin end.")
    assert not diag.has_any
    decls = program.declarations[0].declarations
    assert [n.name for n in decls[0].names] == ['a', 'b', 'c']
    assert (decls[1].type_spec.name, decls[1].type_spec.is_array) == ('real', True)
    assert (decls[2].type_spec.name, decls[2].type_spec.is_array) == ('string', False)


def test_routine_params_and_locals(parse_source):
    program, diag = parse_source(
        "procedure Swap(var a, b: integer; const c: char);\n"
        "var t: integer;\n"
        "begin t := a; a := b; b := t end;\n"
        "begin end.")
    assert not diag.has_any, diag.report()
    proc = program.declarations[0]
    assert [(p.name, p.modifier) for p in proc.params] == [('a', 'var'), ('b', 'var'), ('c', 'const')]
    assert isinstance(proc.declarations[0], VarSection)
    assert len(proc.body.statements) == 3


# ── statements ──────────────────────────────────────────────────────────────

def test_identifier_led_statements(parse_source):
    stmts = body(parse_source, "x := 1; a[2] := 3; p; q(1, 2)")
    assert isinstance(stmts[0], Assignment) and stmts[0].index is None
    assert isinstance(stmts[1], Assignment) and isinstance(stmts[1].index, Literal)
    assert isinstance(stmts[2], ProcedureCall) and stmts[2].arguments == []
    assert isinstance(stmts[3], ProcedureCall) and len(stmts[3].arguments) == 2


def test_empty_statements_are_allowed(parse_source):
    stmts = body(parse_source, "; x := 1;; ")
    assert len(stmts) == 1


def test_if_else(parse_source):
    (stmt,) = body(parse_source, "if x > 0 then y := 1 else y := 2")
    assert isinstance(stmt, IfStatement)
    assert isinstance(stmt.condition, BinaryOp)
    assert isinstance(stmt.then_branch, Assignment)
    assert isinstance(stmt.else_branch, Assignment)


def test_for_downto(parse_source):
    (stmt,) = body(parse_source, "for i := 10 downto 1 do writeln(i)")
    assert isinstance(stmt, ForStatement)
    assert stmt.variable == 'i'
    assert stmt.downto is True
    assert isinstance(stmt.body, WriteStatement)


def test_repeat_until(parse_source):
    (stmt,) = body(parse_source, "repeat x := x + 1; y := x until x > 10")
    assert isinstance(stmt, RepeatStatement)
    assert len(stmt.statements) == 2
    assert stmt.condition.op == '>'


def test_write_format_arguments(parse_source):
    (stmt,) = body(parse_source, "writeln(r:8:2, 'x')")
    first, second = stmt.arguments
    assert first.width.value == '8'
    assert first.decimals.value == '2'
    assert second.width is None


def test_read_targets(parse_source):
    (stmt,) = body(parse_source, "readln(a, b[2])")
    assert isinstance(stmt, ReadStatement)
    assert isinstance(stmt.targets[0], Identifier)
    assert isinstance(stmt.targets[1], ArrayAccess)


def test_nested_block_statement(parse_source):
    (stmt,) = body(parse_source, "begin x := 1 end")
    assert isinstance(stmt, Block)


# ── expressions ─────────────────────────────────────────────────────────────

def test_char_and_string_literals(parse_source):
    stmts = body(parse_source, "c := 'a'; s := 'ab'; e := ''")
    assert [s.value.type_name for s in stmts] == ['char', 'string', 'string']


def test_multiplication_binds_tighter_than_addition(parse_source):
    expr = value_of(parse_source, "1 + 2 * 3")
    assert expr.op == '+'
    assert isinstance(expr.left, Literal)
    assert expr.right.op == '*'


def test_relational_has_lowest_precedence(parse_source):
    expr = value_of(parse_source, "a + 1 > b")
    assert expr.op == '>'
    assert expr.left.op == '+'
    assert isinstance(expr.right, Identifier)


def test_unary_minus_wraps_first_term(parse_source):
    expr = value_of(parse_source, "-a * b")
    assert isinstance(expr, UnaryOp) and expr.op == '-'
    assert expr.operand.op == '*'


def test_not_binds_to_factor(parse_source):
    expr = value_of(parse_source, "not a and b")
    assert expr.op == 'and'
    assert isinstance(expr.left, UnaryOp) and expr.left.op == 'not'


def test_calls_and_identifiers_in_expressions(parse_source):
    expr = value_of(parse_source, "sqrt(y) + f")
    assert isinstance(expr.left, FunctionCall)
    assert expr.left.name == 'sqrt'
    assert isinstance(expr.right, Identifier)


# ── error recovery ──────────────────────────────────────────────────────────

def test_missing_semicolon_is_reported_once_per_gap(parse_source):
    program, diag = parse_source(
        "program P; var x, y: integer; begin x := 1 y := 2 end.")
    syntax = diag.by_phase(ErrorPhase.SYNTACTIC)
    assert len(syntax) == 1
    assert "';'" in syntax[0].message
    assert len(program.body.statements) == 2


def test_two_missing_semicolons_give_two_errors(parse_source):
    program, diag = parse_source("begin a := 1 b := 2 c := 3 end.")
    assert len(diag.by_phase(ErrorPhase.SYNTACTIC)) == 2
    assert len(program.body.statements) == 3


def test_missing_then_keeps_the_branch(parse_source):
    program, diag = parse_source("begin if x > 0 y := 1 end.")
    (err,) = diag.errors
    assert "Expected 'then'" in err.message
    assert "'y'" in err.message
    assert isinstance(program.body.statements[0].then_branch, Assignment)


def test_unexpected_factor_yields_error_node(parse_source):
    program, diag = parse_source("begin x := ; end.")
    assert diag.count == 1
    assert isinstance(program.body.statements[0].value, ErrorNode)


def test_for_without_direction_is_reported(parse_source):
    program, diag = parse_source("begin for i := 1 do x := i end.")
    (err,) = diag.errors
    assert "'to' or 'downto'" in err.message
    stmt = program.body.statements[0]
    assert stmt.end is None
    assert isinstance(stmt.body, Assignment)


def test_garbage_never_raises(parse_source):
    program, diag = parse_source("))) begin ;;; end")
    assert isinstance(program, Program)
    assert diag.has_errors


def test_truncated_source_terminates(parse_source):
    program, diag = parse_source("program P; var x: integer; begin x := ")
    assert isinstance(program, Program)
    assert diag.has_errors


def test_module_level_parse_appends_missing_eof():
    tokens = [Token(TokenKind.BEGIN, 'begin', 0, 1, 1), Token(TokenKind.END, 'end', 6, 1, 7)]
    diag = DiagnosticBag()
    program = parse(tokens, diag)
    assert isinstance(program.body, Block)
    assert not diag.has_any
