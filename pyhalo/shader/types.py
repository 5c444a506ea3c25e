"""
Just enough of the WGSL type system to catch common mistakes early.

Types are inferred where that is easy: literals, constructors, declared
variables and parameters, struct members, swizzles and indexing. Anything
else has type None (unknown). A check only fails when both sides are
known, so an unknown type never produces an error; the backend has the
final word on those.
"""

import re
from collections import namedtuple

from . import nodes as n


ABSTRACT_INT = "AbstractInt"
ABSTRACT_FLOAT = "AbstractFloat"

SCALAR_NAMES = {"bool", "i32", "u32", "f32", "f16"}
SHORTHAND_SCALARS = {"i": "i32", "u": "u32", "f": "f32", "h": "f16"}
SWIZZLE_SETS = ("xyzw", "rgba")

# Builtin functions whose result has the type of their first argument
COMPONENTWISE_FUNCTIONS = set(
    """
    abs acos acosh asin asinh atan atanh ceil cos cosh degrees exp exp2 floor
    fract inverseSqrt log log2 normalize radians round saturate sign sin sinh
    sqrt tan tanh trunc dpdx dpdxCoarse dpdxFine dpdy dpdyCoarse dpdyFine
    fwidth fwidthCoarse fwidthFine
    """.split()
)
# Builtin functions that reduce a vector to its scalar type
REDUCING_FUNCTIONS = {"length", "distance", "dot"}

_vec_re = re.compile(r"vec([234])([iufh]?)")
_mat_re = re.compile(r"mat([234])x([234])([fh]?)")


class WgslType(namedtuple("WgslType", ["kind", "scalar", "size", "name"])):
    """A WGSL type, as far as we need to know it.

    The ``kind`` is "scalar", "vector", "matrix" or "struct". For scalars,
    vectors and matrices, ``scalar`` is the component type (None when
    unknown). The ``size`` is the number of components of a vector, or the
    (columns, rows) of a matrix. The ``name`` is the name of a struct.
    """

    __slots__ = ()

    def __str__(self):
        scalar = self.scalar or "?"
        if scalar in (ABSTRACT_INT, ABSTRACT_FLOAT):
            scalar = "{" + scalar + "}"
        if self.kind == "scalar":
            return scalar
        elif self.kind == "vector":
            return f"vec{self.size}<{scalar}>"
        elif self.kind == "matrix":
            return f"mat{self.size[0]}x{self.size[1]}<{scalar}>"
        return self.name


def scalar_type(scalar):
    return WgslType("scalar", scalar, None, None)


def vector_type(size, scalar):
    return WgslType("vector", scalar, size, None)


def matrix_type(columns, rows, scalar):
    return WgslType("matrix", scalar, (columns, rows), None)


def struct_type(name):
    return WgslType("struct", None, None, name)


def is_abstract(scalar):
    return scalar in (ABSTRACT_INT, ABSTRACT_FLOAT)


def concretize(t):
    """Get the type that a ``let`` or ``var`` gets for a value of type t."""
    if t is None or t.kind == "struct":
        return t
    scalar = {ABSTRACT_INT: "i32", ABSTRACT_FLOAT: "f32"}.get(t.scalar, t.scalar)
    return t._replace(scalar=scalar)


def from_type_ref(type_ref, globals):
    """Get the ``WgslType`` for a ``TypeRef`` node, or None.

    The ``globals`` map module-scope names to symbols, so that structs and
    aliases can be looked up.
    """
    symbol = globals.get(type_ref.name)
    if symbol is not None:
        if symbol.kind == "struct":
            return struct_type(type_ref.name)
        elif symbol.kind == "alias":
            return from_type_ref(symbol.node.type, globals)
        return None
    return from_name(type_ref.name, type_ref.args, globals)


def from_name(name, args, globals):
    """Get the type for a builtin type name with template args, or None."""
    if name in SCALAR_NAMES:
        return scalar_type(name)
    m = _vec_re.fullmatch(name)
    if m:
        scalar = SHORTHAND_SCALARS.get(m.group(2)) or _template_scalar(args, globals)
        return vector_type(int(m.group(1)), scalar)
    m = _mat_re.fullmatch(name)
    if m:
        scalar = SHORTHAND_SCALARS.get(m.group(3)) or _template_scalar(args, globals)
        return matrix_type(int(m.group(1)), int(m.group(2)), scalar)
    return None


def _template_scalar(args, globals):
    if len(args) != 1 or not isinstance(args[0], n.TypeRef):
        return None
    t = from_type_ref(args[0], globals)
    if t is not None and t.kind == "scalar":
        return t.scalar
    return None


def literal_type(literal):
    """Get the type of a ``Literal`` node."""
    if literal.kind == "bool":
        return scalar_type("bool")
    value = literal.value.lower()
    if literal.kind == "int":
        return scalar_type({"i": "i32", "u": "u32"}.get(value[-1], ABSTRACT_INT))
    if value.startswith("0x") and "p" not in value:
        return scalar_type(ABSTRACT_FLOAT)  # A trailing 'f' is a hex digit here
    return scalar_type({"f": "f32", "h": "f16"}.get(value[-1], ABSTRACT_FLOAT))


def constructor_type(name, template, arg_types, globals):
    """Get the type of a call to a builtin type constructor, e.g. ``vec4<f32>(...)``."""
    t = from_name(name, template, globals)
    if t is None or t.scalar is not None or not arg_types:
        return t
    # An inferred component type, e.g. ``vec3(1.0)``
    first = arg_types[0]
    if first is not None and first.kind != "struct":
        return t._replace(scalar=first.scalar)
    return t


def builtin_call_type(name, arg_types):
    """Get the result type of a call to a builtin function, or None."""
    if not arg_types or arg_types[0] is None:
        return None
    first = arg_types[0]
    if name in COMPONENTWISE_FUNCTIONS:
        return first
    elif name in REDUCING_FUNCTIONS and first.kind in ("scalar", "vector"):
        return scalar_type(first.scalar)
    return None


def member_type(base, member, globals):
    """Get the type of ``base.member``, or None if it cannot be inferred.

    Raises ``LookupError`` when the member does not exist.
    """
    if base.kind == "struct":
        decl = globals[base.name].node
        for m in decl.members:
            if m.name == member:
                return from_type_ref(m.type, globals)
        raise LookupError(member)
    elif base.kind == "vector":
        for chars in SWIZZLE_SETS:
            if 1 <= len(member) <= 4 and all(c in chars[: base.size] for c in member):
                if len(member) == 1:
                    return scalar_type(base.scalar)
                return vector_type(len(member), base.scalar)
        raise LookupError(member)
    raise LookupError(member)


def index_type(base):
    """Get the type of ``base[i]``, or None."""
    if base is None:
        return None
    elif base.kind == "vector":
        return scalar_type(base.scalar)
    elif base.kind == "matrix":
        return vector_type(base.size[1], base.scalar)
    return None


def unify_scalars(a, b):
    """Get the component type of an arithmetic operation between a and b."""
    if a is None or b is None:
        return None
    elif a == b:
        return a
    elif is_abstract(a) and not is_abstract(b):
        return b
    elif is_abstract(b) and not is_abstract(a):
        return a
    elif is_abstract(a) and is_abstract(b):
        return ABSTRACT_FLOAT
    return None


def unary_type(op, operand):
    if op in ("-", "!", "~"):
        return operand
    return None


def binary_type(op, left, right):
    """Get the result type of a binary operation, or None."""
    if op in ("&&", "||"):
        return scalar_type("bool")
    if left is None or right is None:
        return None
    if "matrix" in (left.kind, right.kind) or "struct" in (left.kind, right.kind):
        return None
    if op in ("<<", ">>"):
        return left
    if op in ("==", "!=", "<", ">", "<=", ">="):
        if left.kind == "vector":
            return vector_type(left.size, "bool")
        return scalar_type("bool")
    scalar = unify_scalars(left.scalar, right.scalar)
    if left.kind == "vector":
        return vector_type(left.size, scalar)
    elif right.kind == "vector":
        return vector_type(right.size, scalar)
    return scalar_type(scalar)


def _scalar_convertible(actual, expected):
    if actual is None or expected is None or actual == expected:
        return True
    elif actual == ABSTRACT_INT:
        return expected in ("i32", "u32", "f32", "f16", ABSTRACT_FLOAT)
    elif actual == ABSTRACT_FLOAT:
        return expected in ("f32", "f16")
    return False


def is_convertible(actual, expected):
    """Whether a value of type actual can be used where expected is required.

    Returns True when either type is unknown.
    """
    if actual is None or expected is None:
        return True
    elif actual.kind != expected.kind:
        return False
    elif actual.kind == "struct":
        return actual.name == expected.name
    elif actual.size != expected.size:
        return False
    return _scalar_convertible(actual.scalar, expected.scalar)
