"""
Pascal lexer
============
Turns Pascal source text into a flat list of tokens.

Tokens are `lark.Token` instances (a `str` holding the token text, plus
`.type`, `.line` and `.column`), so they carry their own source position
into every later diagnostic. `.type` is always a `TokenKind` member.

The lexer never fails: an unrecognized character is reported to the
DiagnosticBag as a lexical error and skipped.
"""

from __future__ import annotations

import logging
import string
from enum import Enum
from typing import List, Optional

from lark import Token

from .error import DiagnosticBag, ErrorPhase

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    """Token kinds (the value doubles as the human-readable name)"""
    # literals
    INTEGER_LITERAL = 'integer literal'
    REAL_LITERAL    = 'real literal'
    STRING_LITERAL  = 'string literal'
    IDENTIFIER      = 'identifier'

    # reserved words
    PROGRAM   = 'program'
    VAR       = 'var'
    BEGIN     = 'begin'
    END       = 'end'
    INTEGER   = 'integer'
    REAL      = 'real'
    BOOLEAN   = 'boolean'
    CHAR      = 'char'
    STRING    = 'string'
    IF        = 'if'
    THEN      = 'then'
    ELSE      = 'else'
    WHILE     = 'while'
    DO        = 'do'
    FOR       = 'for'
    TO        = 'to'
    DOWNTO    = 'downto'
    REPEAT    = 'repeat'
    UNTIL     = 'until'
    AND       = 'and'
    OR        = 'or'
    NOT       = 'not'
    TRUE      = 'true'
    FALSE     = 'false'
    DIV       = 'div'
    MOD       = 'mod'
    WRITE     = 'write'
    WRITELN   = 'writeln'
    READ      = 'read'
    READLN    = 'readln'
    FUNCTION  = 'function'
    PROCEDURE = 'procedure'
    CONST     = 'const'
    USES      = 'uses'
    TYPE      = 'type'
    ARRAY     = 'array'
    OF        = 'of'

    # operators
    ASSIGN    = ':='
    REL_OP    = 'relational operator'
    PLUS      = '+'
    MINUS     = '-'
    STAR      = '*'
    SLASH     = '/'

    # delimiters
    COLON     = ':'
    SEMICOLON = ';'
    DOT       = '.'
    DOTDOT    = '..'
    COMMA     = ','
    LPAREN    = '('
    RPAREN    = ')'
    LBRACKET  = '['
    RBRACKET  = ']'

    EOF       = 'end of input'

    def __str__(self):
        return self.value


# reserved word text -> kind
KEYWORDS: dict[str, TokenKind] = {
    kind.value: kind for kind in TokenKind
    if kind.value.isalpha() and kind not in (
        TokenKind.IDENTIFIER,
    )
}

# single-character tokens (the multi-character ones are handled first)
_SIMPLE_TOKENS = {
    ';': TokenKind.SEMICOLON,
    ',': TokenKind.COMMA,
    '(': TokenKind.LPAREN,
    ')': TokenKind.RPAREN,
    '[': TokenKind.LBRACKET,
    ']': TokenKind.RBRACKET,
    '+': TokenKind.PLUS,
    '-': TokenKind.MINUS,
    '*': TokenKind.STAR,
    '/': TokenKind.SLASH,
    '=': TokenKind.REL_OP,
}

# "´" is accepted as a string delimiter for text pasted from word processors
STRING_DELIMITERS = ("'", '´')

# identifiers and numbers are ASCII only; anything else is an unrecognized character
IDENT_START = frozenset(string.ascii_letters + '_')
IDENT_CHARS = IDENT_START | frozenset(string.digits)
DIGITS      = frozenset(string.digits)


class Lexer:
    """Pascal lexer; one instance per source text"""

    def __init__(self, source: str, diag: Optional[DiagnosticBag] = None):
        self.source = source
        self.diag = diag if diag is not None else DiagnosticBag()
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    # ── character helpers ──────────────────────────────────────────────────

    def current_char(self) -> Optional[str]:
        if self.pos >= len(self.source):
            return None
        return self.source[self.pos]

    def peek_char(self, offset: int = 1) -> Optional[str]:
        pos = self.pos + offset
        if pos >= len(self.source):
            return None
        return self.source[pos]

    def advance(self):
        """Consume one character, keeping line/column in sync"""
        if self.pos < len(self.source):
            if self.source[self.pos] == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _emit(self, kind: TokenKind, text: str, line: int, column: int, start: int):
        self.tokens.append(Token(kind, text, start, line, column))

    # ── comments ────────────────────────────────────────────────────────────

    def skip_comment(self) -> bool:
        """Skip one comment starting at the current position, if any"""
        ch, nxt = self.current_char(), self.peek_char()
        if ch == '{':
            self._skip_until('}')
            return True
        if ch == '(' and nxt == '*':
            self.advance()
            self.advance()
            self._skip_until('*)')
            return True
        if ch == '/' and nxt == '/':
            while self.current_char() is not None and self.current_char() != '\n':
                self.advance()
            return True
        if ch == '/' and nxt == '*':
            self.advance()
            self.advance()
            self._skip_until('*/')
            return True
        return False

    def _skip_until(self, closer: str):
        """Consume up to and including `closer` (or to end of input)"""
        if closer == '}':
            self.advance()
        while self.current_char() is not None:
            if self.source.startswith(closer, self.pos):
                for _ in closer:
                    self.advance()
                return
            self.advance()

    # ── literals & words ───────────────────────────────────────────────────

    def read_number(self):
        start, line, column = self.pos, self.line, self.column
        while self.current_char() in DIGITS:
            self.advance()
        kind = TokenKind.INTEGER_LITERAL
        # "1..10" and "end." must not be swallowed: a real needs a digit after '.'
        nxt = self.peek_char()
        if self.current_char() == '.' and nxt in DIGITS:
            kind = TokenKind.REAL_LITERAL
            self.advance()
            while self.current_char() in DIGITS:
                self.advance()
        self._emit(kind, self.source[start:self.pos], line, column, start)

    def read_string(self):
        start, line, column = self.pos, self.line, self.column
        delimiter = self.current_char()
        self.advance()
        chars = []
        while self.current_char() is not None:
            ch = self.current_char()
            if ch == delimiter:
                if self.peek_char() == delimiter:
                    # doubled delimiter is an escaped delimiter
                    chars.append(ch)
                    self.advance()
                    self.advance()
                    continue
                self.advance()
                break
            chars.append(ch)
            self.advance()
        self._emit(TokenKind.STRING_LITERAL, ''.join(chars), line, column, start)

    def read_identifier(self):
        start, line, column = self.pos, self.line, self.column
        while self.current_char() in IDENT_CHARS:
            self.advance()
        text = self.source[start:self.pos]
        kind = KEYWORDS.get(text.lower())
        if kind is not None:
            self._emit(kind, text.lower(), line, column, start)
        else:
            self._emit(TokenKind.IDENTIFIER, text, line, column, start)

    def read_operator(self) -> bool:
        start, line, column = self.pos, self.line, self.column
        ch, nxt = self.current_char(), self.peek_char()

        two = ch + (nxt or '')
        if two == ':=':
            kind = TokenKind.ASSIGN
        elif two == '..':
            kind = TokenKind.DOTDOT
        elif two in ('<=', '<>', '>='):
            kind = TokenKind.REL_OP
        else:
            two = None
        if two:
            self.advance()
            self.advance()
            self._emit(kind, two, line, column, start)
            return True

        if ch in ('<', '>'):
            kind = TokenKind.REL_OP
        elif ch == ':':
            kind = TokenKind.COLON
        elif ch == '.':
            kind = TokenKind.DOT
        else:
            kind = _SIMPLE_TOKENS.get(ch)
        if kind is None:
            return False
        self.advance()
        self._emit(kind, ch, line, column, start)
        return True

    # ── main loop ───────────────────────────────────────────────────────────

    def tokenize(self) -> List[Token]:
        while self.current_char() is not None:
            ch = self.current_char()

            if ch.isspace():
                self.advance()
                continue
            if self.skip_comment():
                continue
            if ch in STRING_DELIMITERS:
                self.read_string()
                continue
            if ch in DIGITS:
                self.read_number()
                continue
            if ch in IDENT_START:
                self.read_identifier()
                continue
            if self.read_operator():
                continue

            self.diag.add_error(f"Unrecognized character: '{ch}'",
                                self.line, ErrorPhase.LEXICAL, column=self.column)
            self.advance()

        self._emit(TokenKind.EOF, '', self.line, self.column, self.pos)
        logger.debug("tokenized %d token(s) over %d line(s)", len(self.tokens) - 1, self.line)
        return self.tokens


def tokenize(source: str, diag: Optional[DiagnosticBag] = None) -> List[Token]:
    """Tokenize `source`; the result always ends with one EOF token"""
    return Lexer(source, diag).tokenize()
