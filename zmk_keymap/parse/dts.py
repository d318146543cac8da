"""
Helper module to parse ZMK keymap-like DT syntax into a tree of nodes, with utilities
to extract their properties and child nodes.

The implementation is a recursive descent parser over the token stream from the lexer.
It mirrors the brace and property structure of the input without attaching meaning to it:
property values are kept as raw token runs and interpreted later by their consumers.
"""

import logging
from itertools import islice
from typing import Callable, Iterable, Iterator

from zmk_keymap.parse.lexer import Token, TokenKind, tokenize
from zmk_keymap.parse.parse import KeymapSyntaxError

logger = logging.getLogger(__name__)


class DTNode:
    """Class representing a DT node with helper methods to extract fields."""

    name: str
    label: str | None
    is_override: bool
    properties: list[tuple[str, list[Token]]]
    children: list["DTNode"]

    def __init__(self, name: str, label: str | None = None, is_override: bool = False):
        """
        Initialize an empty node. `label` is set for `label: name { ... };` definitions and
        `is_override` for `&name { ... };` blocks that modify a node defined elsewhere.
        """
        self.name = name
        self.label = label
        self.is_override = is_override
        self.properties = []
        self.children = []

    def walk(self, prune: Callable[["DTNode"], bool] | None = None) -> Iterator["DTNode"]:
        """
        Iterate over this node and its descendants, depth-first in source order.
        Children of nodes for which `prune` returns True are not visited.
        """
        yield self
        if prune is not None and prune(self):
            return
        for child in self.children:
            yield from child.walk(prune)

    def get_property(self, name: str) -> list[Token] | None:
        """Return raw value tokens of the last definition of property `name`, if any."""
        out = None
        for prop_name, value in self.properties:
            if prop_name == name:
                out = value
        return out

    def get_string(self, name: str) -> str | None:
        """Extract last defined value for a `string` type property."""
        if (value := self.get_property(name)) is None:
            return None
        if len(value) != 1 or value[0].kind != TokenKind.STRING:
            return None
        return str(value[0].value)

    def get_array(self, name: str) -> list[int] | None:
        """
        Extract last defined values for an `array` type property, concatenating all `<...>` groups.
        Raises ValueError if the value has cells that are not plain numbers, e.g. unexpanded macros.
        """
        if (value := self.get_property(name)) is None:
            return None
        out = []
        for token in value:
            match token.kind:
                case TokenKind.LANGLE | TokenKind.RANGLE | TokenKind.COMMA:
                    continue
                case TokenKind.NUMBER:
                    out.append(int(token.value))
                case _:
                    raise ValueError(f'Property "{name}" has a non-numeric cell "{token}"')
        return out

    def get_phandle_array(self, name: str) -> list[Token] | None:
        """
        Extract last defined cells for a `phandle-array` type property, for binding parsing.
        Only tokens inside `<...>` groups are returned, without the brackets and group separators.
        """
        if (value := self.get_property(name)) is None:
            return None
        out = []
        in_array = False
        for token in value:
            match token.kind:
                case TokenKind.LANGLE:
                    in_array = True
                case TokenKind.RANGLE:
                    in_array = False
                case _ if in_array:
                    out.append(token)
        return out

    def __repr__(self) -> str:
        return (
            f"DTNode(name={self.name!r}, label={self.label!r}, "
            f"properties={[prop_name for prop_name, _ in self.properties]}, "
            f"children={[node.name for node in self.children]})"
        )


class _TreeBuilder:
    """Recursive descent over `{ ... };` blocks, consuming tokens strictly left to right."""

    def __init__(self, tokens: Iterable[Token]):
        self._tokens = iter(tokens)
        self._lookahead: list[Token] = []
        self._pos = 0

    def _peek(self) -> Token | None:
        # at most one token is pulled from the lexer ahead of the parser
        if not self._lookahead:
            self._lookahead.extend(islice(self._tokens, 1))
        return self._lookahead[0] if self._lookahead else None

    def _next(self) -> Token:
        if (token := self._peek()) is None:
            raise KeymapSyntaxError("unexpected end of input", None, self._pos)
        self._lookahead.clear()
        self._pos += 1
        return token

    def _expect(self, kind: TokenKind) -> Token:
        token = self._next()
        if token.kind != kind:
            raise KeymapSyntaxError(f'expected "{kind.value}"', token, self._pos - 1)
        return token

    def build(self) -> DTNode:
        """Parse the whole token stream into children of a synthetic root node."""
        root = DTNode(DeviceTree.root_name)
        self._parse_body(root, top_level=True)
        return root

    def _parse_body(self, node: DTNode, top_level: bool = False) -> None:
        while (token := self._peek()) is not None:
            if token.kind == TokenKind.RBRACE:
                if top_level:
                    raise KeymapSyntaxError('unbalanced "}"', token, self._pos)
                return
            self._parse_statement(node)
        if not top_level:
            raise KeymapSyntaxError(f'missing "}}" for node "{node.name}"', None, self._pos)

    def _parse_statement(self, parent: DTNode) -> None:
        index = self._pos
        token = self._next()
        match token.kind:
            case TokenKind.REFERENCE:
                self._expect(TokenKind.LBRACE)
                self._parse_node(parent, DTNode(str(token.value), is_override=True))
            case TokenKind.IDENTIFIER:
                after = self._next()
                match after.kind:
                    case TokenKind.LBRACE:
                        self._parse_node(parent, DTNode(str(token.value)))
                    case TokenKind.COLON:
                        name = self._expect(TokenKind.IDENTIFIER)
                        self._expect(TokenKind.LBRACE)
                        self._parse_node(parent, DTNode(str(name.value), label=str(token.value)))
                    case TokenKind.EQUALS:
                        parent.properties.append((str(token.value), self._parse_value(str(token.value))))
                    case TokenKind.SEMICOLON:  # boolean property
                        parent.properties.append((str(token.value), []))
                    case _:
                        raise KeymapSyntaxError(f'unexpected token after "{token}"', after, self._pos - 1)
            case _:
                raise KeymapSyntaxError("expected a node or a property", token, index)

    def _parse_node(self, parent: DTNode, node: DTNode) -> None:
        self._parse_body(node)
        self._expect(TokenKind.RBRACE)
        self._expect(TokenKind.SEMICOLON)
        parent.children.append(node)

    def _parse_value(self, prop_name: str) -> list[Token]:
        value: list[Token] = []
        in_array = False
        while True:
            index = self._pos
            token = self._next()
            match token.kind:
                case TokenKind.SEMICOLON if not in_array:
                    if not value:
                        raise KeymapSyntaxError(f'empty value for property "{prop_name}"', token, index)
                    return value
                case TokenKind.LANGLE if not in_array:
                    in_array = True
                case TokenKind.RANGLE if in_array:
                    in_array = False
                case TokenKind.SEMICOLON:
                    raise KeymapSyntaxError(f'unterminated "<" array in property "{prop_name}"', token, index)
                case TokenKind.LANGLE | TokenKind.RANGLE | TokenKind.LBRACE | TokenKind.RBRACE:
                    raise KeymapSyntaxError(f'unexpected "{token}" in property "{prop_name}"', token, index)
                case TokenKind.EQUALS | TokenKind.COLON:
                    raise KeymapSyntaxError(f'unexpected "{token}" in property "{prop_name}"', token, index)
            value.append(token)


class DeviceTree:
    """Class that parses a DTS string into a tree of DTNode's under a synthetic root."""

    root_name = "ROOT"

    def __init__(self, in_str: str):
        """Tokenize and parse `in_str`, raising LexError or KeymapSyntaxError for malformed input."""
        self.root = _TreeBuilder(tokenize(in_str)).build()
        logger.debug("parsed top level nodes: %s", [node.name for node in self.root.children])
