"""
Pascal parser
=============
Recursive-descent parser turning the token list into the syntax tree of
`tree/nodes.py`.

Error handling is tolerant, not correcting: a mismatch is reported as a
syntactic error and parsing continues from the current token, so a
single mistake can produce follow-up diagnostics but never stops the
analysis of the rest of the program.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from lark import Token

from ..error import DiagnosticBag, ErrorPhase
from ..lexer import TokenKind
from .nodes import (
    ASTNode, TypeSpec, DeclaredName, VarDeclaration, ConstDeclaration, Param, WriteArg,
    Program, VarSection, ConstSection, FunctionDecl, ProcedureDecl, Block,
    Assignment, IfStatement, WhileStatement, ForStatement, RepeatStatement,
    WriteStatement, ReadStatement, ProcedureCall,
    BinaryOp, UnaryOp, Literal, Identifier, FunctionCall, ArrayAccess, ErrorNode,
)

logger = logging.getLogger(__name__)

K = TokenKind

# keywords that name a built-in type in declarations
TYPE_KEYWORDS = (K.INTEGER, K.REAL, K.BOOLEAN, K.CHAR, K.STRING)

# tokens that end a skipped `type` section
_SECTION_STARTS = (K.VAR, K.BEGIN, K.FUNCTION, K.PROCEDURE, K.CONST, K.TYPE, K.EOF)

# tokens an unexpected factor leaves in place for the enclosing rule to handle
_STRUCTURAL = (K.SEMICOLON, K.END, K.UNTIL, K.EOF)

_ADD_OPS = (K.PLUS, K.MINUS, K.OR)
_MUL_OPS = (K.STAR, K.SLASH, K.DIV, K.MOD, K.AND)

_LITERAL_KINDS = (K.IDENTIFIER, K.INTEGER_LITERAL, K.REAL_LITERAL,
                  K.STRING_LITERAL, K.REL_OP)


def describe(token: Token) -> str:
    """Human-readable token description for error messages"""
    if token.type == K.EOF:
        return 'end of input'
    if token.type in _LITERAL_KINDS:
        return f"{token.type} '{token}'"
    return f"'{token}'"


class Parser:
    """Pascal parser; reports into the shared DiagnosticBag"""

    def __init__(self, diag: Optional[DiagnosticBag] = None):
        self.diag = diag if diag is not None else DiagnosticBag()
        self.tokens: List[Token] = []
        self.pos = 0

    def parse(self, tokens: List[Token]) -> Program:
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type != K.EOF:
            last_line = self.tokens[-1].line if self.tokens else 1
            self.tokens.append(Token(K.EOF, '', 0, last_line, 1))
        self.pos = 0
        program = self.parse_program()
        logger.debug("parsed program %r: %d declaration section(s)",
                     program.name, len(program.declarations))
        return program

    # ── token helpers ───────────────────────────────────────────────────────

    def current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]   # EOF

    def peek(self, offset: int = 1) -> Token:
        pos = self.pos + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return self.tokens[-1]

    def advance(self) -> Token:
        token = self.current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def check(self, *kinds: TokenKind) -> bool:
        return self.current().type in kinds

    def match(self, kind: TokenKind) -> bool:
        if self.check(kind):
            self.advance()
            return True
        return False

    def expect(self, kind: TokenKind) -> Optional[Token]:
        """Consume a token of `kind`; report and consume nothing on mismatch"""
        if self.check(kind):
            return self.advance()
        self.syntax_error(f"Expected '{kind}' but found {describe(self.current())}")
        return None

    def syntax_error(self, message: str, token: Optional[Token] = None):
        token = token if token is not None else self.current()
        self.diag.error(message, token, phase=ErrorPhase.SYNTACTIC)

    # ══════════════════════════════════════════════════════════════════════
    # Program & declarations
    # ══════════════════════════════════════════════════════════════════════

    def parse_program(self) -> Program:
        node = Program(line=self.current().line)

        if self.match(K.PROGRAM):
            name = self.expect(K.IDENTIFIER)
            node.name = str(name) if name is not None else 'unknown'
            # optional file parameter list: program P(input, output);
            if self.match(K.LPAREN):
                self.match(K.IDENTIFIER)
                while self.match(K.COMMA):
                    self.match(K.IDENTIFIER)
                self.expect(K.RPAREN)
            self.expect(K.SEMICOLON)

        # uses clause: units are not modeled, only consumed
        if self.match(K.USES):
            while not self.check(K.SEMICOLON, K.EOF):
                self.advance()
            self.match(K.SEMICOLON)

        while self.check(K.CONST, K.TYPE, K.VAR, K.FUNCTION, K.PROCEDURE):
            if self.check(K.CONST):
                node.declarations.append(self.parse_const_section())
            elif self.check(K.TYPE):
                self.skip_type_section()
            elif self.check(K.VAR):
                node.declarations.append(self.parse_var_section())
            elif self.check(K.FUNCTION):
                node.declarations.append(self.parse_function_decl())
            else:
                node.declarations.append(self.parse_procedure_decl())

        node.body = self.parse_block()
        self.match(K.DOT)
        return node

    def skip_type_section(self):
        """Type definitions are not modeled; skip them verbatim"""
        self.advance()
        while not self.check(*_SECTION_STARTS):
            self.advance()

    def parse_const_section(self) -> ConstSection:
        section = ConstSection(line=self.advance().line)
        while self.check(K.IDENTIFIER):
            name = self.advance()
            if self.check(K.REL_OP) and self.current() == '=':
                self.advance()
            else:
                self.syntax_error(f"Expected '=' but found {describe(self.current())}")
            value = self.parse_expression()
            self.expect(K.SEMICOLON)
            section.declarations.append(ConstDeclaration(str(name), value, name.line))
        return section

    def parse_var_section(self) -> VarSection:
        section = VarSection(line=self.advance().line)
        while self.check(K.IDENTIFIER):
            section.declarations.append(self.parse_var_declaration())
            self.expect(K.SEMICOLON)
        return section

    def parse_var_declaration(self) -> VarDeclaration:
        line = self.current().line
        names = self.parse_name_list()
        self.expect(K.COLON)
        return VarDeclaration(names, self.parse_type(), line)

    def parse_name_list(self) -> List[DeclaredName]:
        names = []
        token = self.expect(K.IDENTIFIER)
        if token is not None:
            names.append(DeclaredName(str(token), token.line))
        while self.match(K.COMMA):
            token = self.expect(K.IDENTIFIER)
            if token is not None:
                names.append(DeclaredName(str(token), token.line))
        return names

    def parse_type(self) -> TypeSpec:
        """
        Type ::= TypeName ['[' n ']'] | 'array' '[' lo '..' hi ']' 'of' Type
        Array bounds and string lengths are skipped; only the element type
        is kept.
        """
        if self.match(K.ARRAY):
            self.expect(K.LBRACKET)
            self._skip_to_rbracket()
            self.expect(K.RBRACKET)
            self.expect(K.OF)
            element = self.parse_type()
            return TypeSpec(element.name, is_array=True)

        if self.check(*TYPE_KEYWORDS) or self.check(K.IDENTIFIER):
            name = str(self.advance()).lower()
            # string[n]
            if name == 'string' and self.match(K.LBRACKET):
                self._skip_to_rbracket()
                self.match(K.RBRACKET)
            return TypeSpec(name)

        self.syntax_error(f"Expected a type name but found {describe(self.current())}")
        return TypeSpec('integer')

    def _skip_to_rbracket(self):
        while not self.check(K.RBRACKET, K.EOF):
            self.advance()

    def parse_function_decl(self) -> FunctionDecl:
        line = self.advance().line
        name = self.expect(K.IDENTIFIER)
        node = FunctionDecl(name=str(name) if name is not None else 'unknown', line=line)
        node.params = self.parse_formal_params()
        self.expect(K.COLON)
        node.return_type = self.parse_type()
        self.expect(K.SEMICOLON)
        node.declarations = self.parse_local_declarations()
        node.body = self.parse_block()
        self.expect(K.SEMICOLON)
        return node

    def parse_procedure_decl(self) -> ProcedureDecl:
        line = self.advance().line
        name = self.expect(K.IDENTIFIER)
        node = ProcedureDecl(name=str(name) if name is not None else 'unknown', line=line)
        node.params = self.parse_formal_params()
        self.expect(K.SEMICOLON)
        node.declarations = self.parse_local_declarations()
        node.body = self.parse_block()
        self.expect(K.SEMICOLON)
        return node

    def parse_local_declarations(self) -> List[ASTNode]:
        sections = []
        while self.check(K.VAR, K.CONST):
            if self.check(K.VAR):
                sections.append(self.parse_var_section())
            else:
                sections.append(self.parse_const_section())
        return sections

    def parse_formal_params(self) -> List[Param]:
        """['(' ParamGroup (';' ParamGroup)* ')']"""
        params: List[Param] = []
        if not self.match(K.LPAREN):
            return params
        if not self.check(K.RPAREN):
            params.extend(self.parse_param_group())
            while self.match(K.SEMICOLON):
                params.extend(self.parse_param_group())
        self.expect(K.RPAREN)
        return params

    def parse_param_group(self) -> List[Param]:
        modifier = None
        if self.check(K.VAR, K.CONST):
            modifier = str(self.advance())
        names = self.parse_name_list()
        self.expect(K.COLON)
        type_spec = self.parse_type()
        return [Param(n.name, type_spec, modifier, n.line) for n in names]

    # ══════════════════════════════════════════════════════════════════════
    # Statements
    # ══════════════════════════════════════════════════════════════════════

    def parse_block(self) -> Block:
        block = Block(line=self.current().line)
        self.expect(K.BEGIN)
        block.statements = self.parse_statement_list()
        self.expect(K.END)
        return block

    def parse_statement_list(self) -> List[ASTNode]:
        """Statement (';' Statement)*, stopping at end / until / EOF"""
        statements = []
        while not self.check(K.END, K.UNTIL, K.EOF):
            stmt = self.parse_statement()
            if stmt is not None:
                statements.append(stmt)
            if self.match(K.SEMICOLON):
                continue
            if not self.check(K.END, K.UNTIL, K.EOF):
                # one report per missing separator, then go on with the next statement
                self.syntax_error(
                    f"Expected ';' after statement but found {describe(self.current())}")
        return statements

    def parse_statement(self) -> Optional[ASTNode]:
        token = self.current()
        kind = token.type

        if kind == K.IDENTIFIER:
            # one token of lookahead: a[i] := …, x := …, or a call
            if self.peek().type in (K.LBRACKET, K.ASSIGN):
                return self.parse_assignment()
            return self.parse_procedure_call()
        if kind == K.IF:
            return self.parse_if()
        if kind == K.WHILE:
            return self.parse_while()
        if kind == K.FOR:
            return self.parse_for()
        if kind == K.REPEAT:
            return self.parse_repeat()
        if kind in (K.WRITE, K.WRITELN):
            return self.parse_write()
        if kind in (K.READ, K.READLN):
            return self.parse_read()
        if kind == K.BEGIN:
            return self.parse_block()
        if kind in (K.SEMICOLON, K.END, K.UNTIL, K.EOF):
            return None   # empty statement

        self.syntax_error(f"Unexpected statement: {describe(token)}")
        self.advance()
        return None

    def parse_assignment(self) -> Assignment:
        name = self.advance()
        node = Assignment(target=str(name), line=name.line)
        if self.match(K.LBRACKET):
            node.index = self.parse_expression()
            self.expect(K.RBRACKET)
        self.expect(K.ASSIGN)
        node.value = self.parse_expression()
        return node

    def parse_procedure_call(self) -> ProcedureCall:
        name = self.advance()
        node = ProcedureCall(name=str(name), line=name.line)
        if self.match(K.LPAREN):
            node.arguments = self.parse_arguments()
            self.expect(K.RPAREN)
        return node

    def parse_arguments(self) -> List[ASTNode]:
        args = []
        if self.check(K.RPAREN):
            return args
        args.append(self.parse_expression())
        while self.match(K.COMMA):
            args.append(self.parse_expression())
        return args

    def parse_if(self) -> IfStatement:
        node = IfStatement(line=self.advance().line)
        node.condition = self.parse_expression()
        self.expect(K.THEN)
        if not self.check(K.ELSE):
            node.then_branch = self.parse_statement()
        if self.match(K.ELSE):
            node.else_branch = self.parse_statement()
        return node

    def parse_while(self) -> WhileStatement:
        node = WhileStatement(line=self.advance().line)
        node.condition = self.parse_expression()
        self.expect(K.DO)
        node.body = self.parse_statement()
        return node

    def parse_for(self) -> ForStatement:
        node = ForStatement(line=self.advance().line)
        variable = self.expect(K.IDENTIFIER)
        node.variable = str(variable) if variable is not None else ''
        self.expect(K.ASSIGN)
        node.start = self.parse_expression()
        if self.match(K.DOWNTO):
            node.downto = True
        elif not self.match(K.TO):
            self.syntax_error(
                f"Expected 'to' or 'downto' in for statement but found {describe(self.current())}")
        if not self.check(K.DO):
            node.end = self.parse_expression()
        self.expect(K.DO)
        node.body = self.parse_statement()
        return node

    def parse_repeat(self) -> RepeatStatement:
        node = RepeatStatement(line=self.advance().line)
        node.statements = self.parse_statement_list()
        self.expect(K.UNTIL)
        node.condition = self.parse_expression()
        return node

    def parse_write(self) -> WriteStatement:
        token = self.advance()
        node = WriteStatement(routine=str(token), line=token.line)
        if self.match(K.LPAREN):
            if not self.check(K.RPAREN):
                node.arguments.append(self.parse_write_arg())
                while self.match(K.COMMA):
                    node.arguments.append(self.parse_write_arg())
            self.expect(K.RPAREN)
        return node

    def parse_write_arg(self) -> WriteArg:
        arg = WriteArg(self.parse_expression())
        if self.match(K.COLON):
            arg.width = self.parse_expression()
            if self.match(K.COLON):
                arg.decimals = self.parse_expression()
        return arg

    def parse_read(self) -> ReadStatement:
        token = self.advance()
        node = ReadStatement(routine=str(token), line=token.line)
        if self.match(K.LPAREN):
            if not self.check(K.RPAREN):
                self._append_read_target(node)
                while self.match(K.COMMA):
                    self._append_read_target(node)
            self.expect(K.RPAREN)
        return node

    def _append_read_target(self, node: ReadStatement):
        name = self.expect(K.IDENTIFIER)
        if name is None:
            return
        if self.match(K.LBRACKET):
            index = self.parse_expression()
            self.expect(K.RBRACKET)
            node.targets.append(ArrayAccess(str(name), index, name.line))
        else:
            node.targets.append(Identifier(str(name), name.line))

    # ══════════════════════════════════════════════════════════════════════
    # Expressions
    # ══════════════════════════════════════════════════════════════════════

    def parse_expression(self) -> ASTNode:
        """Expression ::= Simple (RelOp Simple)*"""
        left = self.parse_simple_expression()
        while self.check(K.REL_OP):
            op = self.advance()
            right = self.parse_simple_expression()
            left = BinaryOp(str(op), left, right, op.line)
        return left

    def parse_simple_expression(self) -> ASTNode:
        """Simple ::= ['+'|'-'] Term (('+'|'-'|'or') Term)*"""
        sign = None
        if self.check(K.PLUS, K.MINUS):
            sign = self.advance()

        left = self.parse_term()
        if sign is not None and sign.type == K.MINUS:
            left = UnaryOp('-', left, sign.line)

        while self.check(*_ADD_OPS):
            op = self.advance()
            right = self.parse_term()
            left = BinaryOp(str(op), left, right, op.line)
        return left

    def parse_term(self) -> ASTNode:
        """Term ::= Factor (('*'|'/'|'div'|'mod'|'and') Factor)*"""
        left = self.parse_factor()
        while self.check(*_MUL_OPS):
            op = self.advance()
            right = self.parse_factor()
            left = BinaryOp(str(op), left, right, op.line)
        return left

    def parse_factor(self) -> ASTNode:
        token = self.current()
        kind = token.type

        if kind == K.INTEGER_LITERAL:
            self.advance()
            return Literal(str(token), 'integer', token.line)
        if kind == K.REAL_LITERAL:
            self.advance()
            return Literal(str(token), 'real', token.line)
        if kind == K.STRING_LITERAL:
            self.advance()
            # 'a' is a char literal, anything else a string
            type_name = 'char' if len(token) == 1 else 'string'
            return Literal(str(token), type_name, token.line)
        if kind in (K.TRUE, K.FALSE):
            self.advance()
            return Literal(str(token), 'boolean', token.line)

        if kind == K.IDENTIFIER:
            self.advance()
            if self.match(K.LPAREN):
                args = self.parse_arguments()
                self.expect(K.RPAREN)
                return FunctionCall(str(token), args, token.line)
            if self.match(K.LBRACKET):
                index = self.parse_expression()
                self.expect(K.RBRACKET)
                return ArrayAccess(str(token), index, token.line)
            return Identifier(str(token), token.line)

        if kind == K.NOT:
            self.advance()
            return UnaryOp('not', self.parse_factor(), token.line)

        if kind == K.LPAREN:
            self.advance()
            expr = self.parse_expression()
            self.expect(K.RPAREN)
            return expr

        self.syntax_error(f"Unexpected factor: {describe(token)}")
        if kind not in _STRUCTURAL:
            self.advance()
        return ErrorNode(str(token), token.line)


def parse(tokens: List[Token], diag: Optional[DiagnosticBag] = None) -> Program:
    return Parser(diag).parse(tokens)
