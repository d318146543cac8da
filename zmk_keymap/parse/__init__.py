"""Submodule containing the keymap parsing pipeline, from raw devicetree text to KeymapModel."""

from .parse import KeymapSyntaxError, LexError, ParseError, StructureError
from .zmk import KeymapParser, parse_keymap

__all__ = ["KeymapParser", "parse_keymap", "ParseError", "LexError", "KeymapSyntaxError", "StructureError"]
