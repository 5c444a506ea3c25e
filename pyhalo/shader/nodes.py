"""
The syntax tree produced by the WGSL parser.

Nodes are immutable named tuples. Every node has a ``span``: a
``(start, end)`` pair of character offsets into the parsed source.
"""

from collections import namedtuple


def _node(name, fields):
    cls = namedtuple(name, fields + ["span"])
    cls.__doc__ = f"{name}({', '.join(fields)})"
    return cls


# Module level

Module = _node("Module", ["directives", "decls"])
Directive = _node("Directive", ["kind", "names"])
Attribute = _node("Attribute", ["name", "args"])
TypeRef = _node("TypeRef", ["name", "args"])
StructDecl = _node("StructDecl", ["name", "members", "attrs"])
Member = _node("Member", ["name", "type", "attrs"])
FunctionDecl = _node(
    "FunctionDecl", ["name", "params", "return_type", "return_attrs", "body", "attrs"]
)
Param = _node("Param", ["name", "type", "attrs"])
VarDecl = _node("VarDecl", ["kind", "name", "template", "type", "init", "attrs"])
AliasDecl = _node("AliasDecl", ["name", "type"])
ConstAssert = _node("ConstAssert", ["expr"])

# Statements

Block = _node("Block", ["stmts"])
Return = _node("Return", ["value"])
If = _node("If", ["cond", "body", "orelse"])
Switch = _node("Switch", ["selector", "clauses"])
Clause = _node("Clause", ["selectors", "body"])
Loop = _node("Loop", ["body", "continuing"])
Continuing = _node("Continuing", ["body", "break_if"])
For = _node("For", ["init", "cond", "update", "body"])
While = _node("While", ["cond", "body"])
Break = _node("Break", [])
BreakIf = _node("BreakIf", ["cond"])
Continue = _node("Continue", [])
Discard = _node("Discard", [])
Assign = _node("Assign", ["target", "op", "value"])
CallStmt = _node("CallStmt", ["call"])

# Expressions

Ident = _node("Ident", ["name"])
Phony = _node("Phony", [])
Literal = _node("Literal", ["kind", "value"])
Unary = _node("Unary", ["op", "operand"])
Binary = _node("Binary", ["op", "left", "right"])
Call = _node("Call", ["name", "template", "args"])
Index = _node("Index", ["base", "index"])
MemberAccess = _node("MemberAccess", ["base", "name"])


def entry_stage(decl):
    """Get the shader stage of a function ("vertex", "fragment", "compute") or None."""
    for attr in decl.attrs:
        if attr.name in ("vertex", "fragment", "compute"):
            return attr.name
    return None


def walk(node):
    """Iterate over a node and all the nodes below it, depth first."""
    yield node
    for value in node:
        if not isinstance(value, tuple):
            continue
        if hasattr(value, "_fields"):
            yield from walk(value)
        else:
            for item in value:
                if isinstance(item, tuple) and hasattr(item, "_fields"):
                    yield from walk(item)
