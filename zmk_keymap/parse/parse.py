"""
Module containing the error types raised by the keymap parsing pipeline.
All of them abort the parse; non-fatal findings are collected as diagnostics instead.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zmk_keymap.parse.lexer import Token


class ParseError(Exception):
    """Error type for exceptions that happen during keymap parsing."""


class LexError(ParseError):
    """Raised by the tokenizer on unterminated strings or block comments and on unexpected characters."""

    def __init__(self, message: str, offset: int, line: int, column: int):
        super().__init__(f"line {line}, column {column}: {message}")
        self.offset = offset
        self.line = line
        self.column = column


class KeymapSyntaxError(ParseError):
    """
    Raised by the structural parser when the token sequence does not fit the node/property grammar.
    `token` is None if the input ended prematurely, `index` is the position in the token stream.
    """

    def __init__(self, message: str, token: "Token | None", index: int):
        found = "end of input" if token is None else f"{token}"
        super().__init__(f"token #{index} ({found}): {message}")
        self.token = token
        self.index = index


class StructureError(ParseError):
    """Raised when the parsed tree does not contain any keymap or combos node."""
