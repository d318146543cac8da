"""
Tokenizer for ZMK keymap-like DT syntax, turning raw text into a lazy stream of tokens.

The implementation scans the input with a pyparsing grammar that matches exactly one token
at a time, ignoring C-style comments and preprocessor directive lines in between. Keycode expressions
with modifier functions such as `LC(LS(TAB))` are kept as a single opaque identifier.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Iterator

import pyparsing as pp

from zmk_keymap.parse.parse import LexError

logger = logging.getLogger(__name__)


class TokenKind(enum.Enum):
    """All token kinds produced by the tokenizer."""

    IDENTIFIER = "identifier"
    REFERENCE = "reference"
    NUMBER = "number"
    STRING = "string"

    LBRACE = "{"
    RBRACE = "}"
    SEMICOLON = ";"
    EQUALS = "="
    LANGLE = "<"
    RANGLE = ">"
    COLON = ":"
    COMMA = ","


@dataclass(frozen=True)
class Token:
    """
    A lexical token. `value` is the identifier text, the reference name without `&`,
    the integer value of a number, the unquoted content of a string or the punctuation character.
    """

    kind: TokenKind
    value: str | int

    def __str__(self) -> str:
        match self.kind:
            case TokenKind.REFERENCE:
                return f"&{self.value}"
            case TokenKind.STRING:
                return f'"{self.value}"'
        return str(self.value)


@dataclass(frozen=True)
class _Unlexable:
    message: str


_DIRECTIVES = (
    "include",
    "define",
    "undef",
    "ifdef",
    "ifndef",
    "if",
    "elif",
    "else",
    "endif",
    "pragma",
    "error",
    "warning",
    "line",
)


def _at_line_start(in_str: str, loc: int, _toks: pp.ParseResults) -> bool:
    return not in_str[in_str.rfind("\n", 0, loc) + 1 : loc].strip()


def _to_int(text: str) -> int:
    return int(text, 16) if "x" in text.lower() else int(text)


def _build_grammar() -> pp.ParserElement:
    name_re = r"\w(?:[\w\-@.+]|,(?=\w))*"

    # keycode names with optional nested call syntax for modifier functions, e.g. LC(LS(TAB)) or MT(C, LCtrl)
    keycode = pp.Forward()
    keycode <<= pp.Regex(name_re) + pp.Opt(
        pp.Literal("(").leave_whitespace() + pp.Opt(pp.DelimitedList(keycode)) + pp.Literal(")")
    )

    number = pp.Regex(r"-?(?:0[xX][0-9a-fA-F]+|\d+)(?![\w\-@.+(])").add_parse_action(
        lambda toks: Token(TokenKind.NUMBER, _to_int(toks[0]))
    )
    reference = pp.Regex("&" + name_re).add_parse_action(lambda toks: Token(TokenKind.REFERENCE, toks[0][1:]))
    string = pp.QuotedString('"', esc_char="\\").add_parse_action(lambda toks: Token(TokenKind.STRING, toks[0]))
    punctuation = pp.Char("{};=<>:,").add_parse_action(lambda toks: Token(TokenKind(toks[0]), toks[0]))
    # `#name` outside directive lines is a plain property name such as `#binding-cells`
    identifier = (pp.original_text_for(keycode) | pp.Regex("#" + name_re) | pp.Literal("/")).add_parse_action(
        lambda toks: Token(TokenKind.IDENTIFIER, toks[0])
    )

    # anything reaching these did not match a complete token or comment above
    unterminated_comment = pp.Literal("/*").add_parse_action(lambda: _Unlexable("unterminated block comment"))
    unterminated_string = pp.Literal('"').add_parse_action(lambda: _Unlexable("unterminated string"))
    unexpected = pp.Regex(r"\S").add_parse_action(lambda toks: _Unlexable(f'unexpected character "{toks[0]}"'))

    directives = "|".join(_DIRECTIVES)
    preprocessor_line = pp.Regex(rf"#[ \t]*(?:{directives})(?![\w\-])(?:\\\n|[^\n])*").add_condition(_at_line_start)

    grammar = (
        number
        | reference
        | string
        | punctuation
        | unterminated_comment
        | identifier
        | unterminated_string
        | unexpected
    )
    return (
        grammar.ignore(pp.c_style_comment)
        .ignore(pp.dbl_slash_comment)
        .ignore(preprocessor_line)
        .parse_with_tabs()
    )


_GRAMMAR = _build_grammar()


def tokenize(in_str: str) -> Iterator[Token]:
    """
    Lazily tokenize DT source text. Whitespace, comments and preprocessor directive lines
    (`#include`, `#define`, `#ifdef` etc. at the start of a line) never produce tokens.

    Raises LexError on unterminated strings or block comments and on characters outside the grammar.
    """
    for toks, start, _ in _GRAMMAR.scan_string(in_str):
        token = toks[0]
        if isinstance(token, _Unlexable):
            raise LexError(token.message, start, pp.lineno(start, in_str), pp.col(start, in_str))
        yield token
