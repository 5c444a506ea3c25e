import jinja2


# Templates are available as e.g. 'pyhalo.prologue.wgsl'
root_loader = jinja2.PrefixLoader(
    {"pyhalo": jinja2.PackageLoader("pyhalo.shader.wgsl", ".")}, delimiter="."
)

jinja_env = jinja2.Environment(
    block_start_string="{$",
    block_end_string="$}",
    variable_start_string="{{",
    variable_end_string="}}",
    line_statement_prefix="$$",
    undefined=jinja2.StrictUndefined,
    loader=root_loader,
    keep_trailing_newline=True,
)


def render_wgsl(name, **kwargs):
    """Load a wgsl file from the package and apply templating."""
    try:
        return jinja_env.get_template(name).render(**kwargs)
    except jinja2.UndefinedError as err:
        raise ValueError(f"Cannot compose shader: {err.args[0]}") from None
