"""
Semantic validation of a resolved WGSL module.

These rules are about the module as a whole (entry points, control flow,
recursion, enabled extensions) and are reported without a span.
"""

from collections import namedtuple

from ..errors import SemanticValidationError
from . import nodes as n


Capabilities = namedtuple("Capabilities", ["extensions", "language_features"])

# The device is not asked for its capabilities: the front end
# accepts everything, and the backend has the final word.
ALL_CAPABILITIES = Capabilities(
    extensions=frozenset(
        [
            "f16",
            "clip_distances",
            "dual_source_blending",
            "subgroups",
            "primitive_index",
        ]
    ),
    language_features=frozenset(
        [
            "readonly_and_readwrite_storage_textures",
            "packed_4x8_integer_dot_product",
            "unrestricted_pointer_parameters",
            "pointer_composite_access",
        ]
    ),
)

F16_TYPES = {"f16"}
F16_TYPES.update(f"vec{c}h" for c in (2, 3, 4))
F16_TYPES.update(f"mat{c}x{r}h" for c in (2, 3, 4) for r in (2, 3, 4))


def format_type(type_ref):
    if not type_ref.args:
        return type_ref.name
    args = ", ".join(
        format_type(arg) if isinstance(arg, n.TypeRef) else "..."
        for arg in type_ref.args
    )
    return f"{type_ref.name}<{args}>"


def validate_module(module, symbols, capabilities=ALL_CAPABILITIES):
    """Validate the module, returning the name of its ``@fragment`` entry point.

    Raises ``SemanticValidationError``.
    """
    enabled = _check_directives(module, capabilities)
    if "f16" not in enabled:
        _check_no_f16(module)

    functions = [d for d in module.decls if isinstance(d, n.FunctionDecl)]
    for func in functions:
        _check_returns(func)
        _check_control_flow(func.body.stmts, func.name, False, False)

    entry_point = _check_entry_points(functions, symbols)
    _check_recursion(symbols.calls)
    return entry_point


def _check_directives(module, capabilities):
    enabled = set()
    for directive in module.directives:
        if directive.kind == "enable":
            allowed = capabilities.extensions
        elif directive.kind == "requires":
            allowed = capabilities.language_features
        else:
            continue
        for name in directive.names:
            if name not in allowed:
                raise SemanticValidationError(
                    f"`{directive.kind} {name};` names an unsupported capability"
                )
            enabled.add(name)
    return enabled


def _check_no_f16(module):
    for node in n.walk(module):
        if isinstance(node, n.TypeRef) and node.name in F16_TYPES:
            used = node.name
        elif (
            isinstance(node, n.Literal)
            and node.kind == "float"
            and node.value.endswith("h")
        ):
            used = node.value
        else:
            continue
        raise SemanticValidationError(
            f"`{used}` requires the f16 extension; add `enable f16;` to the top of the shader"
        )


def _check_returns(func):
    for node in n.walk(func.body):
        if not isinstance(node, n.Return):
            continue
        if func.return_type is None and node.value is not None:
            raise SemanticValidationError(
                f"function `{func.name}` has no return type, but returns a value"
            )
        elif func.return_type is not None and node.value is None:
            raise SemanticValidationError(
                f"function `{func.name}` must return a value of type `{format_type(func.return_type)}`"
            )


def _check_control_flow(stmts, func_name, breakable, in_loop):
    for stmt in stmts:
        if isinstance(stmt, n.Break) and not breakable:
            raise SemanticValidationError(
                f"`break` outside of a loop or switch in function `{func_name}`"
            )
        elif isinstance(stmt, n.Continue) and not in_loop:
            raise SemanticValidationError(
                f"`continue` outside of a loop in function `{func_name}`"
            )
        elif isinstance(stmt, n.Block):
            _check_control_flow(stmt.stmts, func_name, breakable, in_loop)
        elif isinstance(stmt, n.If):
            _check_control_flow(stmt.body.stmts, func_name, breakable, in_loop)
            if stmt.orelse is not None:
                _check_control_flow((stmt.orelse,), func_name, breakable, in_loop)
        elif isinstance(stmt, n.Switch):
            for clause in stmt.clauses:
                _check_control_flow(clause.body.stmts, func_name, True, in_loop)
        elif isinstance(stmt, (n.For, n.While)):
            _check_control_flow(stmt.body.stmts, func_name, True, True)
        elif isinstance(stmt, n.Loop):
            _check_control_flow(stmt.body.stmts, func_name, True, True)
            if stmt.continuing is not None:
                # Only `break if` may leave the loop from the continuing block
                _check_control_flow(
                    stmt.continuing.body.stmts, func_name, False, False
                )


def _check_entry_points(functions, symbols):
    entry_points = {f.name: f for f in functions if n.entry_stage(f)}
    for caller, callees in symbols.calls.items():
        for callee in callees:
            if callee in entry_points:
                raise SemanticValidationError(
                    f"entry point `{callee}` cannot be called (from `{caller}`)"
                )

    fragments = [f for f in functions if n.entry_stage(f) == "fragment"]
    if not fragments:
        raise SemanticValidationError(
            "no `@fragment` entry point found; the shader needs a function like "
            "`@fragment fn fs_main(frag: VertexOutput) -> @location(0) vec4<f32>`"
        )
    elif len(fragments) > 1:
        names = ", ".join(f"`{f.name}`" for f in fragments)
        raise SemanticValidationError(f"multiple `@fragment` entry points: {names}")

    fragment = fragments[0]
    if fragment.return_type is None:
        raise SemanticValidationError(
            f"fragment entry point `{fragment.name}` must return a color, "
            "e.g. `-> @location(0) vec4<f32>`"
        )
    return fragment.name


def _check_recursion(calls):
    # Depth-first search for a cycle in the call graph
    done = set()

    def visit(name, path):
        if name in path:
            cycle = path[path.index(name) :] + [name]
            raise SemanticValidationError(
                "recursive function calls are not allowed: " + " -> ".join(cycle)
            )
        if name in done:
            return
        for callee in calls.get(name, ()):
            visit(callee, path + [name])
        done.add(name)

    for name in calls:
        visit(name, [])
