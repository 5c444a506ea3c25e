"""
Name resolution for a parsed WGSL module.

Every identifier must refer to something: a local, a parameter, a
module-scope declaration, or a builtin. Assignments must target something
writable, calls to user functions must pass the right number of
arguments, members must exist, and return values must have the right type
(where the type can be inferred, see ``types``). Violations are
reported as ``ParseError`` with a span, because they point at a precise
location in the text.
"""

from collections import namedtuple

from ..errors import ParseError
from .lexer import byte_labels
from . import nodes as n
from . import types


Symbol = namedtuple("Symbol", ["kind", "node", "type"], defaults=(None,))
SymbolTable = namedtuple("SymbolTable", ["globals", "calls"])


def _builtin_types():
    names = {"bool", "i32", "u32", "f32", "f16", "array", "atomic", "ptr"}
    names.update(["sampler", "sampler_comparison", "texture_external"])
    for c in (2, 3, 4):
        names.add(f"vec{c}")
        names.update(f"vec{c}{suffix}" for suffix in "ifuh")
        for r in (2, 3, 4):
            names.add(f"mat{c}x{r}")
            names.update(f"mat{c}x{r}{suffix}" for suffix in "fh")
    for dim in ("1d", "2d", "2d_array", "3d", "cube", "cube_array"):
        names.add(f"texture_{dim}")
    for dim in ("2d", "2d_array", "cube", "cube_array", "multisampled_2d"):
        names.add(f"texture_depth_{dim}")
    for dim in ("1d", "2d", "2d_array", "3d"):
        names.add(f"texture_storage_{dim}")
    names.add("texture_multisampled_2d")
    return names


BUILTIN_TYPES = _builtin_types()

# Identifiers that only have meaning inside a template list
TEMPLATE_ENUMERANTS = {
    "function",
    "private",
    "workgroup",
    "uniform",
    "storage",
    "handle",
    "read",
    "write",
    "read_write",
}
for _channels in ("r32", "rg32", "rgba32", "rgba16", "rgba8"):
    TEMPLATE_ENUMERANTS.update(f"{_channels}{t}" for t in ("uint", "sint", "float"))
TEMPLATE_ENUMERANTS.update(["rgba8unorm", "rgba8snorm", "bgra8unorm"])

BUILTIN_FUNCTIONS = set(
    """
    abs acos acosh all any arrayLength asin asinh atan atan2 atanh bitcast ceil
    clamp cos cosh countLeadingZeros countOneBits countTrailingZeros cross
    degrees determinant distance dot dot4U8Packed dot4I8Packed exp exp2
    extractBits faceForward firstLeadingBit firstTrailingBit floor fma fract
    frexp insertBits inverseSqrt ldexp length log log2 max min mix modf
    normalize pow quantizeToF16 radians reflect refract reverseBits round
    saturate select sign sin sinh smoothstep sqrt step tan tanh transpose trunc

    pack4x8snorm pack4x8unorm pack4xI8 pack4xU8 pack4xI8Clamp pack4xU8Clamp
    pack2x16snorm pack2x16unorm pack2x16float unpack4x8snorm unpack4x8unorm
    unpack4xI8 unpack4xU8 unpack2x16snorm unpack2x16unorm unpack2x16float

    textureDimensions textureGather textureGatherCompare textureLoad
    textureNumLayers textureNumLevels textureNumSamples textureSample
    textureSampleBias textureSampleCompare textureSampleCompareLevel
    textureSampleGrad textureSampleLevel textureSampleBaseClampToEdge
    textureStore

    atomicLoad atomicStore atomicAdd atomicSub atomicMax atomicMin atomicAnd
    atomicOr atomicXor atomicExchange atomicCompareExchangeWeak

    dpdx dpdxCoarse dpdxFine dpdy dpdyCoarse dpdyFine fwidth fwidthCoarse
    fwidthFine

    storageBarrier workgroupBarrier textureBarrier workgroupUniformLoad

    subgroupBallot subgroupBroadcast subgroupBroadcastFirst subgroupElect
    subgroupAdd subgroupMul subgroupMin subgroupMax subgroupAnd subgroupOr
    subgroupXor subgroupAll subgroupAny subgroupShuffle quadBroadcast
    quadSwapX quadSwapY quadSwapDiagonal
    """.split()
)

IMMUTABLE_KINDS = {"let", "const", "override"}


def resolve_module(module, source):
    """Check all names in the module, and return a ``SymbolTable``.

    The table has ``globals`` (name -> Symbol) and ``calls`` (function
    name -> dict of called user functions, in call order).
    """
    return Resolver(module, source).run()



class Resolver:
    def __init__(self, module, source):
        self.module = module
        self.source = source
        self.globals = {}
        self.calls = {}
        self.scopes = []
        self.function = None
        self.return_type = None

    def error(self, message, span, label):
        labels = [(span[0], span[1], label)]
        raise ParseError(message, byte_labels(self.source, labels))

    def run(self):
        # Module-scope declarations are order-independent
        for decl in self.module.decls:
            if isinstance(decl, n.StructDecl):
                self.globals[decl.name] = Symbol("struct", decl)
            elif isinstance(decl, n.FunctionDecl):
                self.globals[decl.name] = Symbol("fn", decl)
            elif isinstance(decl, n.VarDecl):
                self.globals[decl.name] = Symbol(decl.kind, decl)
            elif isinstance(decl, n.AliasDecl):
                self.globals[decl.name] = Symbol("alias", decl)

        # Global variables with an explicit type; the others stay unknown
        for name, symbol in list(self.globals.items()):
            if symbol.kind in ("var", "const", "override") and symbol.node.type:
                var_type = types.from_type_ref(symbol.node.type, self.globals)
                self.globals[name] = symbol._replace(type=var_type)

        for decl in self.module.decls:
            if isinstance(decl, n.StructDecl):
                for member in decl.members:
                    self.resolve_type(member.type)
            elif isinstance(decl, n.AliasDecl):
                self.resolve_type(decl.type)
            elif isinstance(decl, n.VarDecl):
                if decl.type is not None:
                    self.resolve_type(decl.type)
                if decl.init is not None:
                    init_type = self.resolve_expr(decl.init)
                    self.check_init_type(decl, init_type)
            elif isinstance(decl, n.ConstAssert):
                self.resolve_expr(decl.expr)
            elif isinstance(decl, n.FunctionDecl):
                self.resolve_function(decl)

        return SymbolTable(self.globals, self.calls)

    # --- scopes

    def lookup(self, name):
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return self.globals.get(name)

    def declare_local(self, name, symbol, span):
        scope = self.scopes[-1]
        if name in scope:
            self.error(f"redefinition of `{name}`", span, f"`{name}` redefined here")
        scope[name] = symbol

    # --- declarations

    def resolve_function(self, decl):
        self.function = decl
        self.calls[decl.name] = {}
        # Parameters live in the same scope as the top-level body statements
        self.scopes = [{}]
        for param in decl.params:
            self.resolve_type(param.type)
            param_type = types.from_type_ref(param.type, self.globals)
            self.declare_local(
                param.name, Symbol("param", param, param_type), param.span
            )
        self.return_type = None
        if decl.return_type is not None:
            self.resolve_type(decl.return_type)
            self.return_type = types.from_type_ref(decl.return_type, self.globals)
        for stmt in decl.body.stmts:
            self.resolve_stmt(stmt)
        self.scopes = []
        self.function = None
        self.return_type = None

    def resolve_type(self, type_ref):
        symbol = self.globals.get(type_ref.name)
        if symbol is not None:
            if symbol.kind not in ("struct", "alias"):
                self.error(
                    f"`{type_ref.name}` is not a type",
                    type_ref.span,
                    f"`{type_ref.name}` is a {symbol.kind}",
                )
        elif type_ref.name not in BUILTIN_TYPES:
            self.error(f"unknown type: `{type_ref.name}`", type_ref.span, "unknown type")
        for arg in type_ref.args:
            self.resolve_template_arg(arg)

    def resolve_template_arg(self, arg):
        if not isinstance(arg, n.TypeRef):
            self.resolve_expr(arg)
        elif arg.args:
            self.resolve_type(arg)
        elif arg.name in TEMPLATE_ENUMERANTS:
            pass
        else:
            symbol = self.lookup(arg.name)
            if symbol is None or symbol.kind not in ("const", "override"):
                self.resolve_type(arg)  # Otherwise e.g. an array size

    def check_init_type(self, decl, init_type):
        if decl.type is None:
            return
        declared = types.from_type_ref(decl.type, self.globals)
        if not types.is_convertible(init_type, declared):
            self.error(
                f"the type of `{decl.name}` is expected to be `{declared}`, "
                f"but got `{init_type}`",
                decl.init.span,
                f"this has type `{init_type}`",
            )

    # --- statements

    def resolve_block(self, block):
        self.scopes.append({})
        for stmt in block.stmts:
            self.resolve_stmt(stmt)
        self.scopes.pop()

    def resolve_stmt(self, stmt):
        if isinstance(stmt, n.Block):
            self.resolve_block(stmt)
        elif isinstance(stmt, n.VarDecl):
            if stmt.type is not None:
                self.resolve_type(stmt.type)
            init_type = None
            if stmt.init is not None:
                init_type = self.resolve_expr(stmt.init)
                self.check_init_type(stmt, init_type)
            if stmt.type is not None:
                var_type = types.from_type_ref(stmt.type, self.globals)
            elif stmt.kind == "const":
                var_type = init_type
            else:
                var_type = types.concretize(init_type)
            self.declare_local(stmt.name, Symbol(stmt.kind, stmt, var_type), stmt.span)
        elif isinstance(stmt, n.Return):
            if stmt.value is not None:
                value_type = self.resolve_expr(stmt.value)
                self.check_return_type(stmt, value_type)
        elif isinstance(stmt, n.If):
            self.resolve_expr(stmt.cond)
            self.resolve_block(stmt.body)
            if stmt.orelse is not None:
                self.resolve_stmt(stmt.orelse)
        elif isinstance(stmt, n.Switch):
            self.resolve_expr(stmt.selector)
            for clause in stmt.clauses:
                for selector in clause.selectors:
                    if selector != "default":
                        self.resolve_expr(selector)
                self.resolve_block(clause.body)
        elif isinstance(stmt, n.Loop):
            # The continuing block can see the declarations of the loop body
            self.scopes.append({})
            for sub in stmt.body.stmts:
                self.resolve_stmt(sub)
            if stmt.continuing is not None:
                self.scopes.append({})
                for sub in stmt.continuing.body.stmts:
                    self.resolve_stmt(sub)
                if stmt.continuing.break_if is not None:
                    self.resolve_expr(stmt.continuing.break_if)
                self.scopes.pop()
            self.scopes.pop()
        elif isinstance(stmt, n.For):
            self.scopes.append({})
            if stmt.init is not None:
                self.resolve_stmt(stmt.init)
            if stmt.cond is not None:
                self.resolve_expr(stmt.cond)
            if stmt.update is not None:
                self.resolve_stmt(stmt.update)
            self.resolve_block(stmt.body)
            self.scopes.pop()
        elif isinstance(stmt, n.While):
            self.resolve_expr(stmt.cond)
            self.resolve_block(stmt.body)
        elif isinstance(stmt, n.Assign):
            if not isinstance(stmt.target, n.Phony):
                self.resolve_expr(stmt.target)
                self.check_assignable(stmt.target)
            if stmt.value is not None:
                self.resolve_expr(stmt.value)
        elif isinstance(stmt, n.CallStmt):
            self.resolve_expr(stmt.call)
        elif isinstance(stmt, n.ConstAssert):
            self.resolve_expr(stmt.expr)

    def check_return_type(self, stmt, value_type):
        expected = self.return_type
        if self.function is None or types.is_convertible(value_type, expected):
            return
        self.error(
            f"mismatched return type: function `{self.function.name}` returns "
            f"`{expected}`, but the value has type `{value_type}`",
            stmt.value.span,
            f"expected `{expected}`",
        )

    def check_assignable(self, target):
        root = target
        while isinstance(root, (n.MemberAccess, n.Index)):
            root = root.base
        if isinstance(root, n.Unary) and root.op == "*":
            return  # Writes through a pointer
        if not isinstance(root, n.Ident):
            self.error(
                "invalid left-hand side of assignment",
                target.span,
                "cannot assign to this expression",
            )
        symbol = self.lookup(root.name)
        if symbol.kind in IMMUTABLE_KINDS:
            self.error(
                f"cannot assign to `{root.name}`: it is immutable",
                target.span,
                f"`{root.name}` is declared with `{symbol.kind}`",
            )
        elif symbol.kind == "param":
            if symbol.node.type.name != "ptr":
                self.error(
                    f"cannot assign to `{root.name}`: it is immutable",
                    target.span,
                    f"`{root.name}` is a function parameter",
                )
        elif symbol.kind == "var":
            if symbol.node.template[:1] == ("uniform",):
                self.error(
                    f"cannot assign to `{root.name}`: uniform variables are read-only",
                    target.span,
                    "read-only uniform",
                )

    # --- expressions

    def resolve_expr(self, expr):
        """Check the names in an expression, and return its type (or None)."""
        if isinstance(expr, n.Literal):
            return types.literal_type(expr)
        elif isinstance(expr, n.Ident):
            symbol = self.lookup(expr.name)
            if symbol is None:
                self.error(
                    f"no definition in scope for identifier: `{expr.name}`",
                    expr.span,
                    "unknown identifier",
                )
            elif symbol.kind in ("fn", "struct", "alias"):
                self.error(
                    f"`{expr.name}` cannot be used as a value",
                    expr.span,
                    f"`{expr.name}` is a {symbol.kind}",
                )
            return symbol.type
        elif isinstance(expr, n.Unary):
            return types.unary_type(expr.op, self.resolve_expr(expr.operand))
        elif isinstance(expr, n.Binary):
            left = self.resolve_expr(expr.left)
            right = self.resolve_expr(expr.right)
            return types.binary_type(expr.op, left, right)
        elif isinstance(expr, n.Index):
            base = self.resolve_expr(expr.base)
            self.resolve_expr(expr.index)
            return types.index_type(base)
        elif isinstance(expr, n.MemberAccess):
            base = self.resolve_expr(expr.base)
            if base is None:
                return None
            try:
                return types.member_type(base, expr.name, self.globals)
            except LookupError:
                name_span = expr.span[1] - len(expr.name), expr.span[1]
                self.error(
                    f"invalid field accessor `{expr.name}`",
                    name_span,
                    f"`{base}` has no member `{expr.name}`",
                )
        elif isinstance(expr, n.Call):
            return self.resolve_call(expr)
        return None

    def resolve_call(self, call):
        name_span = call.span[0], call.span[0] + len(call.name)
        for arg in call.template:
            self.resolve_template_arg(arg)
        symbol = self.lookup(call.name)
        if symbol is None:
            if call.name not in BUILTIN_FUNCTIONS and call.name not in BUILTIN_TYPES:
                self.error(
                    f"no definition in scope for identifier: `{call.name}`",
                    name_span,
                    "unknown function",
                )
        elif symbol.kind == "fn":
            expected = len(symbol.node.params)
            if len(call.args) != expected:
                self.error(
                    f"wrong number of arguments: expected {expected}, found {len(call.args)}",
                    call.span,
                    f"call to `{call.name}`",
                )
            if self.function is not None:
                self.calls[self.function.name][call.name] = call.span
        elif symbol.kind not in ("struct", "alias"):
            self.error(
                f"`{call.name}` is not a function",
                name_span,
                f"`{call.name}` is a {symbol.kind}",
            )
        arg_types = [self.resolve_expr(arg) for arg in call.args]

        if symbol is None:
            if call.name in BUILTIN_TYPES:
                return types.constructor_type(
                    call.name, call.template, arg_types, self.globals
                )
            return types.builtin_call_type(call.name, arg_types)
        elif symbol.kind == "fn":
            if symbol.node.return_type is None:
                return None
            return types.from_type_ref(symbol.node.return_type, self.globals)
        elif symbol.kind == "struct":
            return types.struct_type(call.name)
        return types.from_type_ref(symbol.node.type, self.globals)
