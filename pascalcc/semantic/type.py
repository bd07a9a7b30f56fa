"""
Pascal type system
==================
The five scalar types of the supported Pascal subset, the `error`
recovery type, and the compatibility tables used for operators and
assignment.

Arrays are not a separate type here: an array variable is typed by its
element type, and `a[i]` yields that type.
"""


class PType:
    """Base class of all types"""
    def __eq__(self, other):
        return isinstance(other, self.__class__)

    def __hash__(self):
        return hash(repr(self))

    def __repr__(self):
        return self.__class__.__name__


# ──────────────────────────────────────────────────────────────────────────────
# Scalar types
# ──────────────────────────────────────────────────────────────────────────────

class BasicType(PType):
    """Built-in scalar type (integer, real, boolean, char, string)"""
    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other):
        return isinstance(other, BasicType) and self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def __repr__(self):
        return self.name


class AliasType(BasicType):
    """
    A type name introduced by a (skipped) `type` section.
    Its definition is not modeled, so it is opaque: only the same alias
    is compatible with it.
    """


class ErrorType(PType):
    """
    Recovery type for an expression that has already been diagnosed.
    Parent expressions propagate it silently, so one mistake is reported
    once.
    """
    name = 'error'

    def __repr__(self):
        return 'error'

    def __hash__(self):
        return hash('error')


# ──────────────────────────────────────────────────────────────────────────────
# Predefined type constants
# ──────────────────────────────────────────────────────────────────────────────

INTEGER = BasicType('integer')
REAL    = BasicType('real')
BOOLEAN = BasicType('boolean')
CHAR    = BasicType('char')
STRING  = BasicType('string')
ERROR_T = ErrorType()

BUILTIN_TYPES: dict[str, PType] = {
    'integer': INTEGER,
    'real':    REAL,
    'boolean': BOOLEAN,
    'char':    CHAR,
    'string':  STRING,
    'error':   ERROR_T,
}


def resolve_type_name(name: str) -> PType:
    """Map a declared type name to its type; unknown names become aliases"""
    key = name.lower()
    if key in BUILTIN_TYPES:
        return BUILTIN_TYPES[key]
    return AliasType(key)


def is_error(t: PType) -> bool:
    return isinstance(t, ErrorType)


def is_numeric(t: PType) -> bool:
    return t in (INTEGER, REAL)


# ──────────────────────────────────────────────────────────────────────────────
# Operator table: left type -> operator -> right type -> result type
# ──────────────────────────────────────────────────────────────────────────────

_NUMERIC_ARITH = {'integer': 'real', 'real': 'real'}
_NUMERIC_CMP   = {'integer': 'boolean', 'real': 'boolean'}

TYPE_COMPATIBILITY: dict[str, dict[str, dict[str, str]]] = {
    'integer': {
        '+':   {'integer': 'integer', 'real': 'real'},
        '-':   {'integer': 'integer', 'real': 'real'},
        '*':   {'integer': 'integer', 'real': 'real'},
        '/':   {'integer': 'real',    'real': 'real'},
        'div': {'integer': 'integer'},
        'mod': {'integer': 'integer'},
        '=':   _NUMERIC_CMP, '<>': _NUMERIC_CMP,
        '<':   _NUMERIC_CMP, '>':  _NUMERIC_CMP,
        '<=':  _NUMERIC_CMP, '>=': _NUMERIC_CMP,
    },
    'real': {
        '+':  _NUMERIC_ARITH, '-': _NUMERIC_ARITH,
        '*':  _NUMERIC_ARITH, '/': _NUMERIC_ARITH,
        '=':  _NUMERIC_CMP, '<>': _NUMERIC_CMP,
        '<':  _NUMERIC_CMP, '>':  _NUMERIC_CMP,
        '<=': _NUMERIC_CMP, '>=': _NUMERIC_CMP,
    },
    'boolean': {
        'and': {'boolean': 'boolean'},
        'or':  {'boolean': 'boolean'},
        '=':   {'boolean': 'boolean'},
        '<>':  {'boolean': 'boolean'},
    },
    'char': {
        '=':  {'char': 'boolean'},
        '<>': {'char': 'boolean'},
        '<':  {'char': 'boolean'},
        '>':  {'char': 'boolean'},
        '+':  {'char': 'string', 'string': 'string'},
    },
    'string': {
        '+':  {'string': 'string', 'char': 'string'},
        '=':  {'string': 'boolean'},
        '<>': {'string': 'boolean'},
    },
}

# variable type -> value types it accepts
ASSIGNABLE_TYPES: dict[str, tuple[str, ...]] = {
    'integer': ('integer',),
    'real':    ('integer', 'real'),
    'boolean': ('boolean',),
    'char':    ('char',),
    'string':  ('string', 'char'),
}

RELATIONAL_OPS = ('=', '<>', '<', '>', '<=', '>=')
LOGICAL_OPS    = ('and', 'or', 'not')
ARITHMETIC_OPS = ('+', '-', '*', '/', 'div', 'mod')


# ──────────────────────────────────────────────────────────────────────────────
# Type rules
# ──────────────────────────────────────────────────────────────────────────────

def can_assign(dst: PType, src: PType) -> bool:
    """
    Can a value of type `src` be stored into a variable of type `dst`?

    - identical types always
    - integer widens to real
    - char widens to string
    - error is compatible with everything (already reported)
    """
    if is_error(dst) or is_error(src):
        return True
    if dst == src:
        return True
    if isinstance(dst, AliasType) or isinstance(src, AliasType):
        return False
    return src.name in ASSIGNABLE_TYPES.get(dst.name, ())


def resolve_binary_op(op: str, ltype: PType, rtype: PType):
    """
    Result type of `ltype op rtype`, or None when the table has no entry.
    An error operand yields ERROR_T.
    """
    if is_error(ltype) or is_error(rtype):
        return ERROR_T
    if isinstance(ltype, AliasType) or isinstance(rtype, AliasType):
        return None
    result = TYPE_COMPATIBILITY.get(ltype.name, {}).get(op.lower(), {}).get(rtype.name)
    if result is None:
        return None
    return BUILTIN_TYPES[result]


def classify_operator(op: str) -> str:
    op = op.lower()
    if op in RELATIONAL_OPS:
        return 'relational'
    if op in LOGICAL_OPS:
        return 'logical'
    if op in ARITHMETIC_OPS:
        return 'arithmetic'
    return ''


def type_hint(left: PType, right: PType, op: str) -> str:
    """Contextual suggestion appended to an incompatible-operation error"""
    numeric = ('integer', 'real')
    lname, rname = str(left), str(right)
    if lname in numeric and rname == 'boolean':
        return "Numeric types cannot be mixed with boolean in arithmetic operations"
    if lname == 'boolean' and rname in numeric:
        return "Boolean values cannot be mixed with numeric types"
    if lname in ('string', 'char') and rname in numeric:
        return "Strings cannot be mixed with numeric types"
    if lname == 'boolean' and op in ('+', '-', '*', '/'):
        return "Boolean values do not support arithmetic operators. Use 'and', 'or'"
    if op.lower() in ('div', 'mod') and rname == 'real':
        return "The 'div' and 'mod' operators only accept integer operands"
    return "Check that both operands have compatible types"
