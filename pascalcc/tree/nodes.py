"""
Pascal syntax tree
==================
One dataclass per grammar production. The class itself is the variant
tag: the analyzer dispatches on `type(node).__name__`.

Nodes are built once by the parser and not mutated afterwards, except
for `Program.declarations`, which grows while the parser walks the
declaration sections.

`to_lark_tree` converts a tree into a `lark.Tree` so it can be printed
with `Tree.pretty()` for debugging.
"""

from dataclasses import dataclass, field, fields
from typing import Any, List, Optional

from lark import Tree


# ──────────────────────────────────────────────────────────────────────────────
# Base class
# ──────────────────────────────────────────────────────────────────────────────

class ASTNode:
    """
    Common base of all tree nodes.

    Attributes:
        line: source line the node starts on (0 when unknown)
    """
    line: int = 0


# ──────────────────────────────────────────────────────────────────────────────
# Auxiliary records (parts of declarations / statements, not nodes themselves)
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class TypeSpec:
    """Declared type: `integer`, `string[20]`, `array[1..10] of real`, an alias …"""
    name:     str = 'integer'
    is_array: bool = False

    def __str__(self):
        return f"array of {self.name}" if self.is_array else self.name


@dataclass
class DeclaredName:
    name: str = ''
    line: int = 0


@dataclass
class VarDeclaration:
    """`a, b, c : type`"""
    names:     List[DeclaredName] = field(default_factory=list)
    type_spec: TypeSpec = field(default_factory=TypeSpec)
    line:      int = 0


@dataclass
class ConstDeclaration:
    """`name = expression`"""
    name:  str = ''
    value: Optional[ASTNode] = None
    line:  int = 0


@dataclass
class Param:
    name:      str = ''
    type_spec: TypeSpec = field(default_factory=TypeSpec)
    modifier:  Optional[str] = None      # 'var' / 'const' / None
    line:      int = 0


@dataclass
class WriteArg:
    """One write/writeln argument with its optional `:width[:decimals]` format"""
    value:    ASTNode = None
    width:    Optional[ASTNode] = None
    decimals: Optional[ASTNode] = None


# ──────────────────────────────────────────────────────────────────────────────
# Top level & declarations
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class VarSection(ASTNode):
    declarations: List[VarDeclaration] = field(default_factory=list)
    line:         int = 0


@dataclass
class ConstSection(ASTNode):
    declarations: List[ConstDeclaration] = field(default_factory=list)
    line:         int = 0


@dataclass
class Block(ASTNode):
    statements: List[ASTNode] = field(default_factory=list)
    line:       int = 0


@dataclass
class FunctionDecl(ASTNode):
    name:         str = ''
    params:       List[Param] = field(default_factory=list)
    return_type:  TypeSpec = field(default_factory=TypeSpec)
    declarations: List[ASTNode] = field(default_factory=list)   # local var/const sections
    body:         Optional[Block] = None
    line:         int = 0


@dataclass
class ProcedureDecl(ASTNode):
    name:         str = ''
    params:       List[Param] = field(default_factory=list)
    declarations: List[ASTNode] = field(default_factory=list)
    body:         Optional[Block] = None
    line:         int = 0


@dataclass
class Program(ASTNode):
    """Root node: the whole compilation unit"""
    name:         str = 'anonymous'
    declarations: List[ASTNode] = field(default_factory=list)   # in source order
    body:         Optional[Block] = None
    line:         int = 0


# ──────────────────────────────────────────────────────────────────────────────
# Statements
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class Assignment(ASTNode):
    target: str = ''
    value:  ASTNode = None
    index:  Optional[ASTNode] = None      # set for `a[i] := …`
    line:   int = 0


@dataclass
class IfStatement(ASTNode):
    condition:   ASTNode = None
    then_branch: Optional[ASTNode] = None
    else_branch: Optional[ASTNode] = None
    line:        int = 0


@dataclass
class WhileStatement(ASTNode):
    condition: ASTNode = None
    body:      Optional[ASTNode] = None
    line:      int = 0


@dataclass
class ForStatement(ASTNode):
    variable:  str = ''
    start:     ASTNode = None
    end:       ASTNode = None
    downto:    bool = False
    body:      Optional[ASTNode] = None
    line:      int = 0


@dataclass
class RepeatStatement(ASTNode):
    statements: List[ASTNode] = field(default_factory=list)
    condition:  ASTNode = None
    line:       int = 0


@dataclass
class WriteStatement(ASTNode):
    routine:   str = 'write'              # write / writeln
    arguments: List[WriteArg] = field(default_factory=list)
    line:      int = 0


@dataclass
class ReadStatement(ASTNode):
    routine: str = 'read'                 # read / readln
    targets: List[ASTNode] = field(default_factory=list)   # Identifier / ArrayAccess
    line:    int = 0


@dataclass
class ProcedureCall(ASTNode):
    name:      str = ''
    arguments: List[ASTNode] = field(default_factory=list)
    line:      int = 0


# ──────────────────────────────────────────────────────────────────────────────
# Expressions
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class BinaryOp(ASTNode):
    op:    str = ''
    left:  ASTNode = None
    right: ASTNode = None
    line:  int = 0


@dataclass
class UnaryOp(ASTNode):
    op:      str = ''                     # 'not' / '-'
    operand: ASTNode = None
    line:    int = 0


@dataclass
class Literal(ASTNode):
    value:     str = ''
    type_name: str = 'integer'            # integer / real / string / char / boolean
    line:      int = 0


@dataclass
class Identifier(ASTNode):
    name: str = ''
    line: int = 0

    def __repr__(self):
        return f"Id({self.name})"


@dataclass
class FunctionCall(ASTNode):
    name:      str = ''
    arguments: List[ASTNode] = field(default_factory=list)
    line:      int = 0


@dataclass
class ArrayAccess(ASTNode):
    name:  str = ''
    index: ASTNode = None
    line:  int = 0


@dataclass
class ErrorNode(ASTNode):
    """Placeholder for an expression the parser could not build"""
    text: str = ''
    line: int = 0


# ──────────────────────────────────────────────────────────────────────────────
# Debug dump
# ──────────────────────────────────────────────────────────────────────────────

def to_lark_tree(node: Any):
    """
    Convert a node (or auxiliary record) into a `lark.Tree`.
    Scalars become `name=value` leaves; `line` is folded into the label.
    """
    if isinstance(node, list):
        return Tree('list', [to_lark_tree(item) for item in node])
    if not hasattr(node, '__dataclass_fields__'):
        return repr(node)

    children = []
    for f in fields(node):
        if f.name == 'line':
            continue
        value = getattr(node, f.name)
        if value is None:
            continue
        if isinstance(value, (list, ASTNode)) or hasattr(value, '__dataclass_fields__'):
            if isinstance(value, list) and not value:
                continue
            children.append(Tree(f.name, [to_lark_tree(value)]))
        else:
            children.append(f"{f.name}={value!r}")

    label = type(node).__name__
    line = getattr(node, 'line', 0)
    if line:
        label = f"{label}@{line}"
    return Tree(label, children)
