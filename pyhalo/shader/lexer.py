"""
Tokenizer for WGSL source.
"""

import re
from collections import namedtuple

from ..errors import ParseError


Token = namedtuple("Token", ["kind", "value", "start", "end"])
Token.__doc__ = "A lexical token. Start and end are character offsets."

KEYWORDS = {
    "alias",
    "break",
    "case",
    "const",
    "const_assert",
    "continue",
    "continuing",
    "default",
    "diagnostic",
    "discard",
    "else",
    "enable",
    "false",
    "fn",
    "for",
    "if",
    "let",
    "loop",
    "override",
    "requires",
    "return",
    "struct",
    "switch",
    "true",
    "var",
    "while",
}

_float_re = r"""
    0[xX](?:[0-9a-fA-F]*\.[0-9a-fA-F]+|[0-9a-fA-F]+\.[0-9a-fA-F]*)(?:[pP][+-]?[0-9]+[fh]?)?
  | 0[xX][0-9a-fA-F]+[pP][+-]?[0-9]+[fh]?
  | [0-9]*\.[0-9]+(?:[eE][+-]?[0-9]+)?[fh]?
  | [0-9]+\.[0-9]*(?:[eE][+-]?[0-9]+)?[fh]?
  | [0-9]+[eE][+-]?[0-9]+[fh]?
  | (?:0|[1-9][0-9]*)[fh]
"""

_int_re = r"0[xX][0-9a-fA-F]+[iu]?|(?:0|[1-9][0-9]*)[iu]?"

_op_re = "|".join(
    re.escape(op)
    for op in [
        ">>=", "<<=",
        "->", "&&", "||", "==", "!=", "<=", ">=", "<<", ">>",
        "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "++", "--",
        "+", "-", "*", "/", "%", "&", "|", "^", "~", "!", "<", ">", "=",
        "(", ")", "[", "]", "{", "}", ",", ".", ";", ":", "@",
    ]
)  # fmt: skip

TOKEN_RE = re.compile(
    rf"""
    (?P<space>\s+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*)
  | (?P<float>{_float_re})
  | (?P<int>{_int_re})
  | (?P<ident>[^\W\d]\w*)
  | (?P<op>{_op_re})
    """,
    re.VERBOSE,
)


def byte_offset(source, index):
    """Convert a character offset in source to a UTF-8 byte offset."""
    return len(source[:index].encode("utf-8"))


def byte_labels(source, labels):
    """Convert (start, end, label) character ranges to byte ranges."""
    return [
        (byte_offset(source, start), byte_offset(source, end), label)
        for start, end, label in labels
    ]


def _skip_block_comment(source, start):
    # Block comments nest in WGSL
    depth = 0
    pos = start
    while pos < len(source):
        if source.startswith("/*", pos):
            depth += 1
            pos += 2
        elif source.startswith("*/", pos):
            depth -= 1
            pos += 2
            if depth == 0:
                return pos
        else:
            pos += 1
    raise ParseError(
        "unterminated block comment",
        byte_labels(source, [(start, start + 2, "comment starts here")]),
    )


def tokenize(source):
    """Split WGSL source into a list of tokens, ending with an "eof" token."""
    tokens = []
    pos = 0
    while pos < len(source):
        m = TOKEN_RE.match(source, pos)
        if m is None:
            char = source[pos]
            raise ParseError(
                f"invalid character found: {char!r}",
                byte_labels(source, [(pos, pos + 1, "invalid character")]),
            )
        kind = m.lastgroup
        value = m.group(0)
        if kind == "block_comment":
            pos = _skip_block_comment(source, pos)
            continue
        elif kind in ("space", "line_comment"):
            pass
        elif kind == "ident" and value in KEYWORDS:
            tokens.append(Token("keyword", value, pos, m.end()))
        else:
            tokens.append(Token(kind, value, pos, m.end()))
        pos = m.end()
    tokens.append(Token("eof", "", len(source), len(source)))
    return tokens
