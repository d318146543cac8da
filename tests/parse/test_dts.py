"""Tests for the recursive descent devicetree parser."""

import pytest

from zmk_keymap.parse.dts import DeviceTree, DTNode
from zmk_keymap.parse.lexer import Token, TokenKind
from zmk_keymap.parse.parse import KeymapSyntaxError, LexError

# ###############
# Test Helpers
# ###############


def _root(source: str) -> DTNode:
    return DeviceTree(source).root


def _only_child(source: str) -> DTNode:
    root = _root(source)
    assert len(root.children) == 1
    return root.children[0]


# ###############
# Nodes
# ###############


class TestNodes:
    def test_empty_input_gives_empty_root(self) -> None:
        root = _root("")
        assert root.name == DeviceTree.root_name
        assert not root.children
        assert not root.properties

    def test_root_slash_node(self) -> None:
        node = _only_child("/ { };")
        assert node.name == "/"
        assert node.label is None

    def test_labeled_node(self) -> None:
        node = _only_child("/ { kp: key_press { }; };").children[0]
        assert node.name == "key_press"
        assert node.label == "kp"

    def test_override_node_named_by_reference(self) -> None:
        node = _only_child('&mt { flavor = "tap-preferred"; tapping_term_ms = <200>; };')
        assert node.name == "mt"
        assert node.is_override
        assert node.get_string("flavor") == "tap-preferred"

    def test_children_in_source_order_with_duplicates(self) -> None:
        node = _only_child("keymap { b { }; a { }; b { }; };")
        assert [child.name for child in node.children] == ["b", "a", "b"]

    def test_multiple_root_blocks(self) -> None:
        root = _root("/ { a { }; }; / { b { }; };")
        assert [node.name for node in root.children] == ["/", "/"]

    def test_walk_is_depth_first(self) -> None:
        root = _root("/ { a { c { }; }; b { }; };")
        assert [node.name for node in root.walk()] == [DeviceTree.root_name, "/", "a", "c", "b"]

    def test_walk_prune_skips_children(self) -> None:
        root = _root("/ { a { c { }; }; b { d { }; }; };")
        names = [node.name for node in root.walk(prune=lambda node: node.name == "a")]
        assert names == [DeviceTree.root_name, "/", "a", "b", "d"]


# ###############
# Properties
# ###############


class TestProperties:
    def test_property_value_tokens_kept_verbatim(self) -> None:
        node = _only_child("n { bindings = <&kp ESC>; };")
        assert node.properties == [
            (
                "bindings",
                [
                    Token(TokenKind.LANGLE, "<"),
                    Token(TokenKind.REFERENCE, "kp"),
                    Token(TokenKind.IDENTIFIER, "ESC"),
                    Token(TokenKind.RANGLE, ">"),
                ],
            )
        ]

    def test_boolean_property(self) -> None:
        node = _only_child("n { hold-trigger-on-release; };")
        assert node.properties == [("hold-trigger-on-release", [])]

    def test_last_definition_wins(self) -> None:
        node = _only_child('n { label = "a"; label = "b"; };')
        assert node.get_string("label") == "b"

    def test_get_string_missing(self) -> None:
        assert _only_child("n { };").get_string("label") is None

    def test_get_string_of_non_string(self) -> None:
        assert _only_child("n { label = <1>; };").get_string("label") is None

    def test_get_array(self) -> None:
        assert _only_child("n { key-positions = <0 1>; };").get_array("key-positions") == [0, 1]

    def test_get_array_multiple_groups(self) -> None:
        assert _only_child("n { cells = <1 2>, <3>; };").get_array("cells") == [1, 2, 3]

    def test_get_array_with_macro_cell(self) -> None:
        with pytest.raises(ValueError):
            _only_child("n { key-positions = <LT0 1>; };").get_array("key-positions")

    def test_get_phandle_array_missing(self) -> None:
        assert _only_child("n { };").get_phandle_array("bindings") is None

    def test_get_phandle_array_strips_group_markers(self) -> None:
        node = _only_child("n { bindings = <&kp A>, <&mo 1>; };")
        assert node.get_phandle_array("bindings") == [
            Token(TokenKind.REFERENCE, "kp"),
            Token(TokenKind.IDENTIFIER, "A"),
            Token(TokenKind.REFERENCE, "mo"),
            Token(TokenKind.NUMBER, 1),
        ]

    def test_get_phandle_array_ignores_cells_outside_groups(self) -> None:
        node = _only_child("n { transform = &default_transform; };")
        assert node.get_phandle_array("transform") == []

    def test_properties_and_children_mixed(self) -> None:
        node = _only_child('combos { compatible = "zmk,combos"; c1 { timeout-ms = <50>; }; };')
        assert [name for name, _ in node.properties] == ["compatible"]
        assert node.children[0].get_array("timeout-ms") == [50]


# ###############
# Syntax Errors
# ###############


class TestSyntaxErrors:
    def test_unterminated_array(self) -> None:
        with pytest.raises(KeymapSyntaxError, match="unterminated") as exc_info:
            _root("combo_esc { bindings = <&kp ESC ; };")
        assert exc_info.value.token == Token(TokenKind.SEMICOLON, ";")
        assert exc_info.value.index == 7

    def test_stray_closing_angle(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("n { a = 1>; };")

    def test_nested_angle(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("n { a = <1 <2>>; };")

    def test_missing_semicolon_after_node(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("n { }")

    def test_missing_closing_brace(self) -> None:
        with pytest.raises(KeymapSyntaxError) as exc_info:
            _root("n { a = <1>;")
        assert exc_info.value.token is None

    def test_unbalanced_closing_brace(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("};")

    def test_empty_value(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("n { a = ; };")

    def test_statement_starting_with_number(self) -> None:
        with pytest.raises(KeymapSyntaxError, match="expected a node or a property"):
            _root("5;")

    def test_identifier_without_assignment(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("n { a b; };")

    def test_brace_in_value(self) -> None:
        with pytest.raises(KeymapSyntaxError):
            _root("n { a = { }; };")

    def test_syntax_error_reported_before_later_lex_error(self) -> None:
        with pytest.raises(KeymapSyntaxError, match="empty value"):
            _root('n { a = ; }; m { label = "never closed; };')

    def test_lex_error_after_valid_prefix(self) -> None:
        with pytest.raises(LexError):
            _root('n { a = <1>; }; m { label = "never closed; };')


class TestSampleKeymap:
    def test_sample_structure(self, sample_keymap: str) -> None:
        root = DeviceTree(sample_keymap).root
        assert [node.name for node in root.children] == ["mt", "/"]
        assert [node.name for node in root.children[1].children] == ["combos", "keymap"]
