"""
A recursive-descent parser for WGSL.

The parser produces the tree defined in ``nodes``. It checks syntax and
module-scope redefinitions; name resolution happens in ``resolve``.
"""

from ..errors import ParseError
from .lexer import Token, tokenize, byte_labels
from . import nodes as n


# Names that accept a template list when used as a callee in an expression,
# e.g. ``vec4<f32>(1.0)``. Other identifiers followed by ``<`` are compared.
TEMPLATED_CALLEES = {"vec2", "vec3", "vec4", "array", "bitcast", "atomic", "ptr"}
TEMPLATED_CALLEES.update(f"mat{c}x{r}" for c in (2, 3, 4) for r in (2, 3, 4))

STATEMENT_KEYWORDS = {
    "return",
    "let",
    "if",
    "for",
    "while",
    "loop",
    "switch",
    "break",
    "continue",
    "discard",
}

ASSIGNMENT_OPS = {"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", ">>=", "<<="}

# From loose to tight binding
BINARY_LEVELS = [
    ("||",),
    ("&&",),
    ("|",),
    ("^",),
    ("&",),
    ("==", "!=", "<", ">", "<=", ">="),
    ("<<", ">>"),
    ("+", "-"),
    ("*", "/", "%"),
]
ADDITIVE_LEVEL = 7
BINARY_PRECEDENCE = {op: level for level, ops in enumerate(BINARY_LEVELS) for op in ops}

# Like naga, limit how deep blocks and expressions can nest
MAX_NESTING = 127

GLOBAL_ITEMS = (
    "global declaration ('struct', 'fn', 'var', 'const', 'override', 'alias')"
)


def describe(tok):
    if tok.kind == "eof":
        return "end of file"
    return f"'{tok.value}'"


def parse(source):
    """Parse WGSL source into a ``Module`` node. Raises ``ParseError``."""
    return Parser(source).parse_module()


class Parser:
    """Turns a token stream into a syntax tree."""

    def __init__(self, source):
        self.source = source
        self.tokens = tokenize(source)
        self.i = 0
        self.names = {}  # module-scope name -> (start, end) of its declaration
        self.depth = 0

    # --- token helpers

    def peek(self, offset=0):
        j = min(self.i + offset, len(self.tokens) - 1)
        return self.tokens[j]

    def next(self):
        tok = self.peek()
        self.i = min(self.i + 1, len(self.tokens) - 1)
        return tok

    def at(self, value, offset=0):
        tok = self.peek(offset)
        return tok.kind in ("op", "keyword") and tok.value == value

    def accept(self, value):
        if self.at(value):
            return self.next()
        return None

    def expect(self, value, context=None):
        if not self.at(value):
            self.error_expected(f"'{value}'", self.peek(), context)
        return self.next()

    def expect_ident(self, what="identifier"):
        tok = self.peek()
        if tok.kind == "keyword":
            self.error(
                f"expected {what}, found reserved keyword '{tok.value}'",
                tok,
                "reserved keyword",
            )
        elif tok.kind != "ident":
            self.error_expected(what, tok)
        return self.next()

    def span_from(self, start):
        return start, self.tokens[max(self.i - 1, 0)].end

    def error(self, message, tok, label):
        labels = [(tok.start, tok.end, label)]
        raise ParseError(message, byte_labels(self.source, labels))

    def error_expected(self, what, tok, context=None):
        message = f"expected {what}, found {describe(tok)}"
        if context:
            message += f" {context}"
        self.error(message, tok, f"expected {what}")

    def check_not_eof(self, context):
        tok = self.peek()
        if tok.kind == "eof":
            self.error_expected("'}'", tok, context)

    def enter(self, tok):
        self.depth += 1
        if self.depth > MAX_NESTING:
            self.error("brace nesting limit reached", tok, f"limit is {MAX_NESTING}")

    def leave(self):
        self.depth -= 1

    def declare(self, tok):
        """Register a module-scope name; they must be unique."""
        previous = self.names.get(tok.value)
        if previous is not None:
            labels = [
                (*previous, f"previous definition of `{tok.value}`"),
                (tok.start, tok.end, f"redefinition of `{tok.value}`"),
            ]
            raise ParseError(
                f"redefinition of `{tok.value}`", byte_labels(self.source, labels)
            )
        self.names[tok.value] = tok.start, tok.end

    # --- module scope

    def parse_module(self):
        directives = []
        while self.peek().kind == "keyword" and self.peek().value in (
            "enable",
            "requires",
            "diagnostic",
        ):
            directives.append(self.parse_directive())
        decls = []
        while self.peek().kind != "eof":
            if self.accept(";"):
                continue
            decls.append(self.parse_global_decl())
        return n.Module(tuple(directives), tuple(decls), (0, len(self.source)))

    def parse_directive(self):
        tok = self.next()
        names = []
        if tok.value == "diagnostic":
            self.expect("(")
            while not self.accept(")"):
                name = self.expect_ident("diagnostic rule").value
                while self.accept("."):
                    name += "." + self.expect_ident("diagnostic rule").value
                names.append(name)
                if not self.accept(","):
                    self.expect(")", "to close the diagnostic directive")
                    break
        else:
            names.append(self.expect_ident(f"name after '{tok.value}'").value)
            while self.accept(",") and not self.at(";"):
                names.append(self.expect_ident(f"name after '{tok.value}'").value)
        self.expect(";", "after directive")
        return n.Directive(tok.value, tuple(names), self.span_from(tok.start))

    def parse_global_decl(self):
        start = self.peek().start
        attrs = self.parse_attributes()
        tok = self.peek()
        if tok.kind == "keyword":
            if tok.value == "struct":
                return self.parse_struct(attrs, start)
            elif tok.value == "fn":
                return self.parse_function(attrs, start)
            elif tok.value in ("var", "const", "override"):
                decl = self.parse_var_decl(attrs, start, True)
                self.expect(";", "after declaration")
                return decl
            elif tok.value == "alias":
                self.next()
                name = self.expect_ident("alias name")
                self.declare(name)
                self.expect("=")
                alias_type = self.parse_type()
                self.expect(";", "after alias")
                return n.AliasDecl(name.value, alias_type, self.span_from(start))
            elif tok.value == "const_assert":
                self.next()
                expr = self.parse_expression()
                self.expect(";", "after const_assert")
                return n.ConstAssert(expr, self.span_from(start))
            elif tok.value in STATEMENT_KEYWORDS:
                self.error_statement_at_module_scope(tok)
        elif tok.kind == "ident" and self.peek(1).value in ASSIGNMENT_OPS | {
            "(",
            ".",
            "[",
            "++",
            "--",
        }:
            self.error_statement_at_module_scope(tok)
        self.error_expected(GLOBAL_ITEMS, tok)

    def error_statement_at_module_scope(self, tok):
        self.error(
            f"missing entry point: found statement starting with {describe(tok)} "
            "outside of a function",
            tok,
            "statements must be inside a `@fragment fn` entry point",
        )

    def parse_attributes(self):
        attrs = []
        while self.at("@"):
            start = self.next().start
            tok = self.peek()
            if tok.kind not in ("ident", "keyword"):
                self.error_expected("attribute name", tok)
            self.next()
            args = ()
            if self.accept("("):
                args = self.parse_arguments_rest()
            attrs.append(n.Attribute(tok.value, args, self.span_from(start)))
        return tuple(attrs)

    def parse_struct(self, attrs, start):
        self.expect("struct")
        name = self.expect_ident("struct name")
        self.declare(name)
        self.expect("{")
        members = []
        member_names = set()
        while not self.accept("}"):
            member_start = self.peek().start
            member_attrs = self.parse_attributes()
            member_name = self.expect_ident("member name")
            if member_name.value in member_names:
                self.error(
                    f"duplicate member `{member_name.value}` in struct `{name.value}`",
                    member_name,
                    "duplicate member",
                )
            member_names.add(member_name.value)
            self.expect(":")
            member_type = self.parse_type()
            members.append(
                n.Member(
                    member_name.value,
                    member_type,
                    member_attrs,
                    self.span_from(member_start),
                )
            )
            if not self.accept(","):
                self.expect("}", "to close the struct")
                break
        return n.StructDecl(name.value, tuple(members), attrs, self.span_from(start))

    def parse_function(self, attrs, start):
        self.expect("fn")
        name = self.expect_ident("function name")
        self.declare(name)
        self.expect("(")
        params = []
        while not self.accept(")"):
            param_start = self.peek().start
            param_attrs = self.parse_attributes()
            param_name = self.expect_ident("parameter name")
            self.expect(":")
            param_type = self.parse_type()
            params.append(
                n.Param(
                    param_name.value,
                    param_type,
                    param_attrs,
                    self.span_from(param_start),
                )
            )
            if not self.accept(","):
                self.expect(")", "to close the parameter list")
                break
        return_type, return_attrs = None, ()
        if self.accept("->"):
            return_attrs = self.parse_attributes()
            return_type = self.parse_type()
        body = self.parse_block()
        return n.FunctionDecl(
            name.value,
            tuple(params),
            return_type,
            return_attrs,
            body,
            attrs,
            self.span_from(start),
        )

    def parse_var_decl(self, attrs, start, is_global):
        kind = self.next().value
        template = ()
        if kind == "var" and self.accept("<"):
            names = [self.expect_ident("address space").value]
            while self.accept(","):
                names.append(self.expect_ident("access mode").value)
            self.expect_template_close()
            template = tuple(names)
        name = self.expect_ident("variable name")
        if is_global:
            self.declare(name)
        var_type = self.parse_type() if self.accept(":") else None
        init = None
        if self.accept("="):
            init = self.parse_expression()
        elif kind in ("let", "const"):
            self.error_expected("'='", self.peek(), f"in `{kind}` declaration")
        elif var_type is None and kind in ("var", "override"):
            self.error_expected("':' or '='", self.peek(), f"in `{kind}` declaration")
        return n.VarDecl(
            kind, name.value, template, var_type, init, attrs, self.span_from(start)
        )

    # --- types and templates

    def parse_type(self):
        tok = self.peek()
        if tok.kind != "ident":
            self.error_expected("type", tok)
        self.next()
        args = ()
        if self.accept("<"):
            args = self.parse_template_rest()
        return n.TypeRef(tok.value, args, self.span_from(tok.start))

    def parse_template_rest(self):
        args = []
        while True:
            if self.peek().kind == "ident":
                args.append(self.parse_type())
            else:
                args.append(self.parse_binary(ADDITIVE_LEVEL))
            if not self.accept(",") or self.at_template_close():
                break
        self.expect_template_close()
        return tuple(args)

    def at_template_close(self):
        tok = self.peek()
        return tok.kind == "op" and tok.value.startswith(">")

    def expect_template_close(self):
        tok = self.peek()
        if not self.at_template_close():
            self.error_expected("'>'", tok, "to close the template list")
        if tok.value == ">":
            self.next()
        else:
            # Split e.g. '>>' so that the enclosing template list can close too
            self.tokens[self.i] = Token("op", tok.value[1:], tok.start + 1, tok.end)

    # --- statements

    def parse_block(self):
        brace = self.expect("{")
        self.enter(brace)
        stmts = []
        while not self.accept("}"):
            self.check_not_eof("to close the block")
            stmt = self.parse_statement()
            if stmt is not None:
                stmts.append(stmt)
        self.leave()
        return n.Block(tuple(stmts), self.span_from(brace.start))

    def parse_statement(self):
        if self.accept(";"):
            return None
        self.parse_attributes()  # Statement attributes have no effect here
        tok = self.peek()
        start = tok.start
        if self.at("{"):
            return self.parse_block()
        if tok.kind == "keyword":
            value = tok.value
            if value == "return":
                self.next()
                result = None if self.at(";") else self.parse_expression()
                self.expect(";", "after return statement")
                return n.Return(result, self.span_from(start))
            elif value in ("let", "var", "const"):
                decl = self.parse_var_decl((), start, False)
                self.expect(";", "after declaration")
                return decl
            elif value == "if":
                return self.parse_if()
            elif value == "switch":
                return self.parse_switch()
            elif value == "loop":
                return self.parse_loop()
            elif value == "for":
                return self.parse_for()
            elif value == "while":
                self.next()
                cond = self.parse_expression()
                body = self.parse_block()
                return n.While(cond, body, self.span_from(start))
            elif value == "break":
                self.next()
                if self.at("if"):
                    self.error(
                        "`break if` is only allowed at the end of a continuing block",
                        self.peek(),
                        "unexpected `break if`",
                    )
                self.expect(";", "after break")
                return n.Break(self.span_from(start))
            elif value == "continue":
                self.next()
                self.expect(";", "after continue")
                return n.Continue(self.span_from(start))
            elif value == "discard":
                self.next()
                self.expect(";", "after discard")
                return n.Discard(self.span_from(start))
            elif value == "const_assert":
                self.next()
                expr = self.parse_expression()
                self.expect(";", "after const_assert")
                return n.ConstAssert(expr, self.span_from(start))
            elif value in ("fn", "struct", "alias", "override"):
                self.error(
                    f"expected statement, found '{value}'",
                    tok,
                    f"`{value}` declarations are only allowed at module scope",
                )
        stmt = self.parse_simple_statement()
        self.expect(";", "after statement")
        return stmt

    def parse_simple_statement(self):
        """An assignment, increment/decrement, or function call."""
        tok = self.peek()
        start = tok.start
        if tok.kind == "ident" and tok.value == "_" and self.at("=", 1):
            self.next()
            self.next()
            value = self.parse_expression()
            target = n.Phony((tok.start, tok.end))
            return n.Assign(target, "=", value, self.span_from(start))
        target = self.parse_unary()
        op = self.peek()
        if op.kind == "op" and op.value in ASSIGNMENT_OPS:
            self.next()
            value = self.parse_expression()
            return n.Assign(target, op.value, value, self.span_from(start))
        elif op.kind == "op" and op.value in ("++", "--"):
            self.next()
            return n.Assign(target, op.value, None, self.span_from(start))
        elif isinstance(target, n.Call):
            return n.CallStmt(target, self.span_from(start))
        self.error_expected("assignment or function call", op)

    def parse_if(self):
        start = self.expect("if").start
        cond = self.parse_expression()
        body = self.parse_block()
        orelse = None
        if self.accept("else"):
            orelse = self.parse_if() if self.at("if") else self.parse_block()
        return n.If(cond, body, orelse, self.span_from(start))

    def parse_switch(self):
        start = self.expect("switch").start
        selector = self.parse_expression()
        self.parse_attributes()
        self.expect("{")
        clauses = []
        while not self.accept("}"):
            clause_start = self.peek().start
            if self.accept("default"):
                selectors = ("default",)
            else:
                self.expect("case", "in switch body")
                selectors = []
                while True:
                    if self.accept("default"):
                        selectors.append("default")
                    else:
                        selectors.append(self.parse_expression())
                    if not self.accept(",") or self.at(":") or self.at("{"):
                        break
                selectors = tuple(selectors)
            self.accept(":")
            body = self.parse_block()
            clauses.append(n.Clause(selectors, body, self.span_from(clause_start)))
        return n.Switch(selector, tuple(clauses), self.span_from(start))

    def parse_loop(self):
        start = self.expect("loop").start
        self.parse_attributes()
        brace = self.expect("{")
        self.enter(brace)
        stmts = []
        continuing = None
        while not self.accept("}"):
            self.check_not_eof("to close the loop")
            if self.at("continuing"):
                continuing = self.parse_continuing()
                self.expect("}", "after the continuing block")
                break
            stmt = self.parse_statement()
            if stmt is not None:
                stmts.append(stmt)
        self.leave()
        body = n.Block(tuple(stmts), self.span_from(brace.start))
        return n.Loop(body, continuing, self.span_from(start))

    def parse_continuing(self):
        start = self.expect("continuing").start
        brace = self.expect("{")
        self.enter(brace)
        stmts = []
        break_if = None
        while not self.accept("}"):
            self.check_not_eof("to close the continuing block")
            if self.at("break") and self.at("if", 1):
                self.next()
                self.next()
                break_if = self.parse_expression()
                self.expect(";", "after `break if`")
                self.expect("}", "after `break if`")
                break
            stmt = self.parse_statement()
            if stmt is not None:
                stmts.append(stmt)
        self.leave()
        body = n.Block(tuple(stmts), self.span_from(brace.start))
        return n.Continuing(body, break_if, self.span_from(start))

    def parse_for(self):
        start = self.expect("for").start
        self.expect("(")
        init = None
        if not self.at(";"):
            tok = self.peek()
            if tok.kind == "keyword" and tok.value in ("let", "var", "const"):
                init = self.parse_var_decl((), tok.start, False)
            else:
                init = self.parse_simple_statement()
        self.expect(";", "in for loop header")
        cond = None if self.at(";") else self.parse_expression()
        self.expect(";", "in for loop header")
        update = None if self.at(")") else self.parse_simple_statement()
        self.expect(")", "to close the for loop header")
        body = self.parse_block()
        return n.For(init, cond, update, body, self.span_from(start))

    # --- expressions

    def parse_expression(self):
        return self.parse_binary(0)

    def parse_binary(self, min_level):
        """Parse operators that bind at least as tight as the given level."""
        start = self.peek().start
        left = self.parse_unary()
        while True:
            tok = self.peek()
            level = BINARY_PRECEDENCE.get(tok.value) if tok.kind == "op" else None
            if level is None or level < min_level:
                return left
            self.next()
            right = self.parse_binary(level + 1)
            left = n.Binary(tok.value, left, right, self.span_from(start))

    def parse_unary(self):
        tok = self.peek()
        if tok.kind == "op" and tok.value in ("-", "!", "~", "*", "&"):
            self.next()
            self.enter(tok)
            operand = self.parse_unary()
            self.leave()
            return n.Unary(tok.value, operand, self.span_from(tok.start))
        return self.parse_postfix()

    def parse_postfix(self):
        start = self.peek().start
        expr = self.parse_primary()
        while True:
            tok = self.accept("[")
            if tok:
                self.enter(tok)
                index = self.parse_expression()
                self.leave()
                self.expect("]", "to close the index")
                expr = n.Index(expr, index, self.span_from(start))
            elif self.accept("."):
                name = self.expect_ident("member name")
                expr = n.MemberAccess(expr, name.value, self.span_from(start))
            else:
                return expr

    def parse_primary(self):
        tok = self.peek()
        if tok.kind in ("int", "float"):
            self.next()
            return n.Literal(tok.kind, tok.value, (tok.start, tok.end))
        elif tok.kind == "keyword" and tok.value in ("true", "false"):
            self.next()
            return n.Literal("bool", tok.value, (tok.start, tok.end))
        elif self.accept("("):
            self.enter(tok)
            expr = self.parse_expression()
            self.leave()
            self.expect(")", "to close the parenthesized expression")
            return expr
        elif tok.kind == "ident":
            self.next()
            template = ()
            if tok.value in TEMPLATED_CALLEES and self.accept("<"):
                template = self.parse_template_rest()
                if not self.at("("):
                    self.error_expected("'('", self.peek(), f"after `{tok.value}<...>`")
            if self.accept("("):
                args = self.parse_arguments_rest()
                return n.Call(tok.value, template, args, self.span_from(tok.start))
            return n.Ident(tok.value, (tok.start, tok.end))
        self.error_expected("expression", tok)

    def parse_arguments_rest(self):
        """Parse a comma-separated list of expressions after an opening '('."""
        self.enter(self.tokens[self.i - 1])
        args = []
        while not self.accept(")"):
            args.append(self.parse_expression())
            if not self.accept(","):
                self.expect(")", "to close the argument list")
                break
        self.leave()
        return tuple(args)
