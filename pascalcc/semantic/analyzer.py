"""
Pascal semantic analyzer
========================
Walks the syntax tree once, depth first, and:
  1. builds the symbol table (variables, constants, parameters)
  2. infers and checks the type of every expression
  3. checks statements (conditions, for-loop rules, calls, reads)
  4. after the walk, reports shadowing, type ambiguity and unused variables

Design:
  - analysis continues after every error; an already-diagnosed
    expression has type ERROR_T, which parents propagate silently
  - every problem goes into the DiagnosticBag, nothing is raised for
    bad input
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..error import DiagnosticBag
from ..tree.nodes import (
    ASTNode, Program, VarSection, ConstSection, FunctionDecl, ProcedureDecl, Block,
    Assignment, IfStatement, WhileStatement, ForStatement, RepeatStatement,
    WriteStatement, ReadStatement, ProcedureCall,
    BinaryOp, UnaryOp, Literal, Identifier, FunctionCall, ArrayAccess, ErrorNode,
)
from .builtins import Builtins, default_builtins
from .symbol import SymbolCategory, SymbolTable
from .type import (
    PType, INTEGER, REAL, BOOLEAN, ERROR_T, BUILTIN_TYPES,
    resolve_type_name, is_error, is_numeric,
    can_assign, resolve_binary_op, classify_operator, type_hint,
)

logger = logging.getLogger(__name__)


@dataclass
class UserRoutine:
    """A function or procedure declared in the program"""
    name:        str
    return_type: Optional[PType]       # None for procedures
    param_count: int
    line:        int

    @property
    def is_function(self) -> bool:
        return self.return_type is not None

    @property
    def kind(self) -> str:
        return 'function' if self.is_function else 'procedure'


class PascalAnalyzer:
    """
    Pascal semantic analyzer.

    Usage:
        analyzer = PascalAnalyzer()
        diags = analyzer.analyze(program)
        if diags.has_errors:
            print(diags.report())
    """

    def __init__(self, table: SymbolTable = None, diag: DiagnosticBag = None,
                 builtins: Builtins = None):
        self.diag     = diag if diag is not None else DiagnosticBag()
        self.table    = table if table is not None else SymbolTable()
        self.builtins = builtins if builtins is not None else default_builtins()

        self.routines: dict[str, UserRoutine] = {}
        # lowercase names of the for-loop counters of the loops being walked
        self._protected: set[str] = set()

    # ══════════════════════════════════════════════════════════════════════
    # Entry point
    # ══════════════════════════════════════════════════════════════════════

    def analyze(self, program: Program) -> DiagnosticBag:
        self._visit(program)

        self._check_scope_ambiguities()
        self._check_type_ambiguities()
        self._check_unused_variables()

        logger.debug("semantic analysis done: %d symbol(s), %d diagnostic(s)",
                     len(self.table.all_symbols()), self.diag.count)
        return self.diag

    # ══════════════════════════════════════════════════════════════════════
    # Dispatch
    # ══════════════════════════════════════════════════════════════════════

    def _visit(self, node: ASTNode):
        """Dispatch to `_visit_<NodeClass>`; expressions return their type"""
        if node is None:
            return None
        method = '_visit_' + type(node).__name__
        handler = getattr(self, method, self._visit_default)
        return handler(node)

    def _visit_default(self, node):
        raise TypeError(f"no semantic rule for node type {type(node).__name__}")

    def _expr(self, node: ASTNode) -> PType:
        # a missing sub-expression was already reported by the parser
        if node is None:
            return ERROR_T
        return self._visit(node)

    # ══════════════════════════════════════════════════════════════════════
    # Declarations
    # ══════════════════════════════════════════════════════════════════════

    def _visit_Program(self, node: Program):
        for decl in node.declarations:
            self._visit(decl)
        # the main block shares the global scope
        if node.body is not None:
            self._visit_statements(node.body.statements)

    def _declare(self, name: str, ptype: PType, line: int, what: str,
                 category: SymbolCategory = SymbolCategory.VARIABLE) -> bool:
        if self.table.declare(name, ptype, line, category):
            return True
        existing = self.table.lookup_current_scope(name)
        self.diag.error(
            f"Redeclaration of {what} '{name}' in scope '{self.table.current_scope_name}'. "
            f"It was already declared as '{existing.ptype}' on line {existing.line}", line)
        return False

    def _visit_VarSection(self, node: VarSection):
        for decl in node.declarations:
            ptype = resolve_type_name(decl.type_spec.name)
            for declared in decl.names:
                self._declare(declared.name, ptype, declared.line, 'variable')

    def _visit_ConstSection(self, node: ConstSection):
        for decl in node.declarations:
            ptype = self._expr(decl.value) if decl.value is not None else INTEGER
            if self._declare(decl.name, ptype, decl.line, 'constant', SymbolCategory.CONSTANT):
                self.table.mark_initialized(decl.name)

    def _visit_FunctionDecl(self, node: FunctionDecl):
        self._analyze_routine(node, resolve_type_name(node.return_type.name))

    def _visit_ProcedureDecl(self, node: ProcedureDecl):
        self._analyze_routine(node, None)

    def _analyze_routine(self, node, return_type: Optional[PType]):
        key = node.name.lower()
        routine = UserRoutine(node.name, return_type, len(node.params), node.line)
        previous = self.routines.get(key)
        if previous is not None:
            self.diag.error(
                f"Redeclaration of {routine.kind} '{node.name}'. "
                f"A {previous.kind} with this name was already declared on line {previous.line}",
                node)
        # registered before the body is walked so that recursive calls resolve
        self.routines[key] = routine

        self.table.push_scope(key)

        for param in node.params:
            ptype = resolve_type_name(param.type_spec.name)
            if self._declare(param.name, ptype, param.line or node.line, 'parameter'):
                self.table.mark_initialized(param.name)
                self.table.increment_use(param.name)

        # `name := value` sets the function result
        if return_type is not None:
            if self.table.declare(node.name, return_type, node.line, SymbolCategory.RETURN_VALUE):
                self.table.mark_initialized(node.name)

        for section in node.declarations:
            self._visit(section)

        if node.body is not None:
            self._visit_statements(node.body.statements)

        self.table.pop_scope()

    # ══════════════════════════════════════════════════════════════════════
    # Statements
    # ══════════════════════════════════════════════════════════════════════

    def _visit_statements(self, statements):
        for stmt in statements:
            self._visit(stmt)

    def _visit_Block(self, node: Block):
        # a begin/end nested inside a statement opens its own scope
        self.table.push_scope(f'block_line_{node.line}')
        self._visit_statements(node.statements)
        self.table.pop_scope()

    def _visit_Assignment(self, node: Assignment):
        name = node.target
        sym = self.table.lookup(name)
        if sym is None:
            self.diag.error(
                f"Variable '{name}' is not declared. "
                f"Declare it in a VAR section before using it", node)
            return

        self._check_not_protected(name, node)

        if sym.category == SymbolCategory.CONSTANT:
            self.diag.error(
                f"Cannot assign a value to the constant '{name}'. Constants are read-only", node)
            return

        if node.index is not None:
            self._expr(node.index)

        value_type = self._expr(node.value)
        if not can_assign(sym.ptype, value_type):
            if sym.ptype == INTEGER and value_type == REAL:
                self.diag.error(
                    f"Type mismatch: cannot assign 'real' to variable '{name}' of type 'integer'. "
                    f"Narrowing real to integer is not allowed in Pascal. Use Trunc() or Round()",
                    node)
            else:
                self.diag.error(
                    f"Type mismatch: cannot assign '{value_type}' to variable '{name}' "
                    f"of type '{sym.ptype}'", node)

        self.table.mark_initialized(name)

    def _check_not_protected(self, name: str, node: ASTNode):
        if name.lower() in self._protected:
            self.diag.error(
                f"Cannot modify the control variable '{name}' inside the body of its FOR loop. "
                f"The control variable is read-only while the loop runs", node)

    def _check_condition(self, condition: ASTNode, statement: str, advice: str, node: ASTNode):
        cond_type = self._expr(condition)
        if cond_type != BOOLEAN and not is_error(cond_type):
            self.diag.error(
                f"The {statement} condition must be of type 'boolean', but got '{cond_type}'. "
                f"{advice}", node)

    def _visit_IfStatement(self, node: IfStatement):
        self._check_condition(
            node.condition, 'IF',
            "Use a relational expression (e.g. x > 0) or a boolean variable", node)
        self._visit(node.then_branch)
        self._visit(node.else_branch)

    def _visit_WhileStatement(self, node: WhileStatement):
        self._check_condition(
            node.condition, 'WHILE',
            "Use a relational expression (e.g. i <= 10) or a boolean variable", node)
        self._visit(node.body)

    def _visit_RepeatStatement(self, node: RepeatStatement):
        self._visit_statements(node.statements)
        self._check_condition(
            node.condition, 'UNTIL',
            "Use a relational expression or a boolean variable", node)

    def _visit_ForStatement(self, node: ForStatement):
        name = node.variable
        if name:
            sym = self.table.lookup(name)
            if sym is None:
                self.diag.error(f"FOR control variable '{name}' is not declared", node)
            elif sym.category == SymbolCategory.CONSTANT:
                self.diag.error(
                    f"The constant '{name}' cannot be used as a FOR control variable", node)
            else:
                if sym.ptype != INTEGER and not is_error(sym.ptype):
                    self.diag.error(
                        f"The FOR control variable '{name}' must be of ordinal type ('integer'), "
                        f"but it is of type '{sym.ptype}'. Pascal FOR loops only accept "
                        f"ordinal types", node)
                self.table.mark_initialized(name)
                if sym.category == SymbolCategory.VARIABLE:
                    sym.category = SymbolCategory.FOR_CONTROL

        for label, bound in (('start', node.start), ('end', node.end)):
            bound_type = self._expr(bound)
            if bound_type != INTEGER and not is_error(bound_type):
                self.diag.error(
                    f"The FOR {label} value must be 'integer', got '{bound_type}'", node)

        # TODO: track protection per loop instead of per name so an inner loop
        # over the same counter does not unprotect the outer one
        key = name.lower()
        if key:
            self._protected.add(key)
        self._visit(node.body)
        self._protected.discard(key)

    def _visit_WriteStatement(self, node: WriteStatement):
        for arg in node.arguments:
            self._expr(arg.value)
            if arg.width is not None:
                self._expr(arg.width)
            if arg.decimals is not None:
                self._expr(arg.decimals)

    def _visit_ReadStatement(self, node: ReadStatement):
        for target in node.targets:
            if isinstance(target, ArrayAccess):
                self._expr(target.index)

            sym = self.table.lookup(target.name)
            if sym is None:
                self.diag.error(
                    f"Variable '{target.name}' in {node.routine.upper()} is not declared", target)
                continue
            if sym.ptype == BOOLEAN:
                self.diag.warning(
                    f"The boolean variable '{target.name}' cannot be read directly "
                    f"with {node.routine.upper()}", target)
            self._check_not_protected(target.name, target)
            self.table.mark_initialized(target.name)
            self.table.increment_use(target.name)

    def _visit_ProcedureCall(self, node: ProcedureCall):
        name = node.name
        for arg in node.arguments:
            self._expr(arg)
        count = len(node.arguments)

        builtin = self.builtins.procedure(name)
        if builtin is not None:
            if not builtin.accepts(count):
                self.diag.error(
                    f"The procedure '{name}' requires {builtin.arity_text()}, "
                    f"{count} given", node)
            return

        builtin = self.builtins.function(name)
        if builtin is not None:
            # `readkey;` is the usual way to pause until a key press
            if builtin.name != 'readkey':
                self.diag.warning(
                    f"'{name}' is a function, not a procedure. "
                    f"Its return value is not used", node)
            return

        routine = self.routines.get(name.lower())
        if routine is not None:
            if count != routine.param_count:
                self.diag.error(
                    f"The {routine.kind} '{name}' expects {routine.param_count} argument(s), "
                    f"{count} given", node)
            return

        if self.table.lookup(name) is not None:
            self.diag.error(
                f"'{name}' is a variable, not a procedure. "
                f"It cannot be called as a statement", node)
        else:
            self.diag.error(
                f"Unknown procedure '{name}'. It is neither a built-in Pascal procedure "
                f"nor a declared routine or variable", node)

    # ══════════════════════════════════════════════════════════════════════
    # Expressions
    # ══════════════════════════════════════════════════════════════════════

    def _visit_Literal(self, node: Literal) -> PType:
        return BUILTIN_TYPES[node.type_name]

    def _visit_ErrorNode(self, node: ErrorNode) -> PType:
        return ERROR_T

    def _visit_Identifier(self, node: Identifier) -> PType:
        name = node.name
        sym = self.table.lookup(name)
        if sym is None:
            # `c := readkey`, `r := random`, `x := myfunc`
            if (self.builtins.function(name) is not None
                    or self.builtins.procedure(name) is not None
                    or name.lower() in self.routines):
                return self._call(name, [], node)
            self.diag.error(
                f"Variable '{name}' is not declared. "
                f"Declare it in a VAR section before using it", node)
            return ERROR_T

        if not sym.initialized:
            self.diag.warning(
                f"Variable '{name}' is used before being initialized. "
                f"Its value is undefined and may cause unpredictable results", node)

        self.table.increment_use(name)
        return sym.ptype

    def _visit_ArrayAccess(self, node: ArrayAccess) -> PType:
        self._expr(node.index)
        sym = self.table.lookup(node.name)
        if sym is None:
            self.diag.error(f"Variable '{node.name}' is not declared", node)
            return ERROR_T
        self.table.increment_use(node.name)
        return sym.ptype

    def _visit_FunctionCall(self, node: FunctionCall) -> PType:
        return self._call(node.name, node.arguments, node)

    def _call(self, name: str, arguments: list, node: ASTNode) -> PType:
        arg_types = [self._expr(arg) for arg in arguments]
        count = len(arguments)

        builtin = self.builtins.function(name)
        if builtin is not None:
            if not builtin.accepts(count):
                self.diag.error(
                    f"The function '{name}' requires {builtin.arity_text()}, "
                    f"{count} given", node)
                return ERROR_T
            return builtin.result_type(arg_types)

        routine = self.routines.get(name.lower())
        if routine is not None:
            if not routine.is_function:
                self.diag.error(
                    f"'{name}' is a procedure and does not return a value. "
                    f"It cannot be used in an expression", node)
                return ERROR_T
            if count != routine.param_count:
                self.diag.error(
                    f"The function '{name}' expects {routine.param_count} argument(s), "
                    f"{count} given", node)
            return routine.return_type

        if self.builtins.procedure(name) is not None:
            self.diag.error(
                f"'{name}' is a procedure and does not return a value. "
                f"It cannot be used in an expression", node)
            return ERROR_T

        if self.table.lookup(name) is not None:
            self.diag.error(
                f"'{name}' is a variable, not a function. "
                f"It cannot be called with parentheses", node)
        else:
            self.diag.error(
                f"Unknown function '{name}'. It is neither a built-in Pascal function "
                f"nor a declared variable", node)
        return ERROR_T

    def _visit_BinaryOp(self, node: BinaryOp) -> PType:
        left = self._expr(node.left)
        right = self._expr(node.right)
        if is_error(left) or is_error(right):
            return ERROR_T

        result = resolve_binary_op(node.op, left, right)
        if result is not None:
            return result

        category = classify_operator(node.op)
        self.diag.error(
            f"Incompatible {category} operation '{node.op}' between types "
            f"'{left}' and '{right}'. {type_hint(left, right, node.op)}", node)
        return ERROR_T

    def _visit_UnaryOp(self, node: UnaryOp) -> PType:
        operand = self._expr(node.operand)
        if is_error(operand):
            return ERROR_T

        if node.op == 'not':
            if operand != BOOLEAN:
                self.diag.error(
                    f"Operator 'not' requires a 'boolean' operand, got '{operand}'. "
                    f"Only logical expressions can be negated", node)
                return ERROR_T
            return BOOLEAN

        if not is_numeric(operand):
            self.diag.error(
                f"Unary negation '-' requires a numeric type (integer or real), "
                f"got '{operand}'", node)
            return ERROR_T
        return operand

    # ══════════════════════════════════════════════════════════════════════
    # Whole-program checks
    # ══════════════════════════════════════════════════════════════════════

    def _check_scope_ambiguities(self):
        for symbols in self.table.find_ambiguities().values():
            sites = ' and '.join(
                f"'{s.scope}' (line {s.line}, type: {s.ptype})" for s in symbols)
            self.diag.warning(
                f"Shadowing ambiguity: the identifier '{symbols[0].name}' is declared in "
                f"multiple scopes: {sites}. This can cause confusion about which variable "
                f"is being used", symbols[0].line)

    def _check_type_ambiguities(self):
        for symbols in self.table.find_type_ambiguities().values():
            types = ', '.join(f"'{s.ptype}' in scope '{s.scope}'" for s in symbols)
            self.diag.warning(
                f"Type ambiguity: the identifier '{symbols[0].name}' has different types "
                f"in different scopes: {types}. The expected type of the identifier "
                f"is unclear", symbols[0].line)

    def _check_unused_variables(self):
        for sym in self.table.find_unused_variables():
            self.diag.warning(
                f"Variable '{sym.name}' declared on line {sym.line} but never used. "
                f"Consider removing it or check whether it should be used", sym.line)
