from pyhalo.errors import ParseError
from pyhalo.shader import nodes as n
from pyhalo.shader.parser import parse
from pytest import raises


def parse_error(source):
    with raises(ParseError) as err:
        parse(source)
    return err.value


def test_parse_empty():
    module = parse("")
    assert module.directives == ()
    assert module.decls == ()


def test_parse_directives():
    module = parse("enable f16;\nrequires pointer_composite_access;\nfn f() {}")
    assert [(d.kind, d.names) for d in module.directives] == [
        ("enable", ("f16",)),
        ("requires", ("pointer_composite_access",)),
    ]


def test_parse_struct():
    module = parse("struct Foo { a: f32, @align(16) b: vec3<f32> };")
    (struct,) = module.decls
    assert isinstance(struct, n.StructDecl)
    assert struct.name == "Foo"
    assert [m.name for m in struct.members] == ["a", "b"]
    b_type = struct.members[1].type
    assert b_type.name == "vec3"
    assert b_type.args[0].name == "f32"
    assert struct.members[1].attrs[0].name == "align"


def test_parse_function():
    source = """
    @fragment
    fn fs_main(@location(0) uv: vec2<f32>) -> @location(0) vec4<f32> {
        return vec4<f32>(uv, 0.0, 1.0);
    }
    """
    (func,) = parse(source).decls
    assert isinstance(func, n.FunctionDecl)
    assert n.entry_stage(func) == "fragment"
    assert [p.name for p in func.params] == ["uv"]
    assert func.return_type.name == "vec4"
    assert func.return_attrs[0].name == "location"
    (ret,) = func.body.stmts
    assert isinstance(ret, n.Return)
    assert isinstance(ret.value, n.Call)
    assert ret.value.name == "vec4"
    assert len(ret.value.args) == 3


def test_parse_global_vars():
    source = """
    @group(0) @binding(0) var<uniform> u: Foo;
    const N = 3;
    override scale: f32 = 1.0;
    alias Color = vec4<f32>;
    """
    decls = parse(source).decls
    assert [type(d).__name__ for d in decls] == [
        "VarDecl",
        "VarDecl",
        "VarDecl",
        "AliasDecl",
    ]
    assert decls[0].template == ("uniform",)
    assert [d.kind for d in decls[:3]] == ["var", "const", "override"]


def test_parse_nested_template_close():
    # The '>>' must be split to close both template lists
    source = "var<private> a: array<vec2<f32>>;\nvar<private> b: array<vec4<f32>, 4>;"
    decls = parse(source).decls
    assert decls[0].type.name == "array"
    assert decls[0].type.args[0].name == "vec2"
    assert len(decls[1].type.args) == 2


def test_parse_operator_precedence():
    (func,) = parse("fn f() { let x = 1 + 2 * 3 < 4 && true; }").decls
    expr = func.body.stmts[0].init
    assert expr.op == "&&"
    assert expr.left.op == "<"
    assert expr.left.left.op == "+"
    assert expr.left.left.right.op == "*"


def test_parse_statements():
    source = """
    fn f(p: ptr<function, f32>) {
        var a = 0.0;
        a += 1.0;
        a++;
        *p = a;
        _ = a;
        if a > 1.0 { a = 0.0; } else if a < 0.0 { a = 1.0; } else { }
        for (var i = 0; i < 4; i++) { continue; }
        while a < 10.0 { a = a * 2.0; break; }
        loop {
            a -= 1.0;
            continuing { break if a < 0.0; }
        }
        switch i32(a) {
            case 0, 1: { }
            default { }
        }
        { let b = a; }
        discard;
    }
    """
    (func,) = parse(source).decls
    stmts = func.body.stmts
    names = [type(s).__name__ for s in stmts]
    assert names == [
        "VarDecl",
        "Assign",
        "Assign",
        "Assign",
        "Assign",
        "If",
        "For",
        "While",
        "Loop",
        "Switch",
        "Block",
        "Discard",
    ]
    assert stmts[2].op == "++"
    assert isinstance(stmts[4].target, n.Phony)
    assert isinstance(stmts[5].orelse, n.If)
    assert stmts[8].continuing.break_if.op == "<"
    assert stmts[9].clauses[1].selectors == ("default",)


def test_parse_spans():
    source = "fn f() {}"
    (func,) = parse(source).decls
    assert func.span == (0, len(source))
    assert func.body.span == (7, 9)


def test_parse_error_missing_semicolon():
    err = parse_error("fn f() { let x = 1 }")
    assert err.message == "expected ';', found '}' after declaration"
    assert err.labels == [(19, 20, "expected ';'")]


def test_parse_error_unclosed_block():
    err = parse_error("fn f() { let x = 1;")
    assert err.message == "expected '}', found end of file to close the block"


def test_parse_error_keyword_as_name():
    err = parse_error("fn loop() {}")
    assert err.message == "expected function name, found reserved keyword 'loop'"
    assert err.labels == [(3, 7, "reserved keyword")]


def test_parse_error_statement_at_module_scope():
    err = parse_error("return vec4<f32>(1.0);")
    assert err.message == (
        "missing entry point: found statement starting with 'return' "
        "outside of a function"
    )
    assert err.labels[0][:2] == (0, 6)

    err = parse_error("color = vec4<f32>(1.0);")
    assert err.message.startswith("missing entry point")


def test_parse_error_unexpected_module_item():
    err = parse_error("42")
    assert err.message.startswith("expected global declaration")


def test_parse_error_redefinition():
    source = "fn foo() {}\nstruct foo { a: f32 };"
    err = parse_error(source)
    assert err.message == "redefinition of `foo`"
    assert err.labels == [
        (3, 6, "previous definition of `foo`"),
        (19, 22, "redefinition of `foo`"),
    ]


def test_parse_error_duplicate_member():
    err = parse_error("struct S { a: f32, a: f32 };")
    assert err.message == "duplicate member `a` in struct `S`"


def test_parse_error_break_if_outside_continuing():
    err = parse_error("fn f() { loop { break if true; } }")
    assert err.message.startswith("`break if` is only allowed")


def test_parse_error_nested_function():
    err = parse_error("fn f() { fn g() {} }")
    assert err.message == "expected statement, found 'fn'"


def test_parse_left_associative_operators():
    (func,) = parse("fn f() { let x = 8 - 4 - 2; let y = 1 << 2 + 3; }").decls
    x = func.body.stmts[0].init
    assert x.op == "-"
    assert x.left.op == "-"
    assert x.right.value == "2"
    y = func.body.stmts[1].init
    assert y.op == "<<"
    assert y.right.op == "+"


def test_parse_deep_nesting():
    # Deep, but within the limit
    nested = "(" * 120 + "1.0" + ")" * 120
    (func,) = parse(f"fn f() {{ let x = {nested}; }}").decls
    assert func.body.stmts[0].init.value == "1.0"

    calls = "abs(" * 100 + "1.0" + ")" * 100
    parse(f"fn f() {{ let x = {calls}; }}")

    blocks = "{" * 100 + "}" * 100
    parse(f"fn f() {blocks}")


def test_parse_error_nesting_limit():
    source = "fn f() { let x = " + "(" * 300 + "1.0" + ")" * 300 + "; }"
    err = parse_error(source)
    assert err.message == "brace nesting limit reached"
    ((start, end, label),) = err.labels
    assert label == "limit is 127"
    # Points at the first parenthesis beyond the limit
    assert source[start:end] == "("
    assert start == source.index("((") + 126

    err = parse_error("fn f() " + "{" * 200 + "}" * 200)
    assert err.message == "brace nesting limit reached"
    err = parse_error("fn f() { let x = " + "- " * 200 + "1; }")
    assert err.message == "brace nesting limit reached"
