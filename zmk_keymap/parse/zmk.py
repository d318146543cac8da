"""Module containing class to extract layers and combos from devicetree format ZMK keymaps."""

import logging
from typing import TypeVar

from zmk_keymap.config import ParseConfig
from zmk_keymap.keymap import Combo, Diagnostic, KeymapModel, Layer
from zmk_keymap.parse.bindings import parse_bindings
from zmk_keymap.parse.dts import DeviceTree, DTNode
from zmk_keymap.parse.parse import StructureError

logger = logging.getLogger(__name__)

_Named = TypeVar("_Named", Layer, Combo)


class KeymapParser:
    """
    Parser for ZMK devicetree keymaps. Malformed input raises a ParseError subclass, while layer and
    combo nodes that do not have the expected shape are skipped and recorded in `diagnostics`.
    """

    def __init__(self, config: ParseConfig | None = None):
        self.cfg = config if config is not None else ParseConfig()
        self.diagnostics: list[Diagnostic] = []

    def _diagnose(self, subject: str, message: str) -> None:
        diagnostic = Diagnostic(subject=subject, message=message)
        logger.warning("%s", diagnostic)
        self.diagnostics.append(diagnostic)

    def _is_container(self, node: DTNode, names: list[str], compatible: str | None) -> bool:
        if node.name in names:
            return True
        return compatible is not None and node.get_string("compatible") == compatible

    def _container_kind(self, node: DTNode) -> str | None:
        if node.is_override:
            return None
        if self._is_container(node, self.cfg.combos_node_names, self.cfg.combos_compatible):
            return "combos"
        if self._is_container(node, self.cfg.keymap_node_names, self.cfg.keymap_compatible):
            return "keymap"
        return None

    def _find_containers(self, root: DTNode) -> tuple[list[DTNode], list[DTNode]]:
        """Find keymap and combos container nodes anywhere in the tree, skipping override blocks."""
        keymap_nodes: list[DTNode] = []
        combos_nodes: list[DTNode] = []
        for node in root.walk(prune=lambda node: node.is_override or self._container_kind(node) is not None):
            match self._container_kind(node):
                case "combos":
                    combos_nodes.append(node)
                case "keymap":
                    keymap_nodes.append(node)
        return keymap_nodes, combos_nodes

    def _get_layer(self, node: DTNode) -> Layer:
        if (tokens := node.get_phandle_array(self.cfg.bindings_property)) is None:
            self._diagnose(node.name, f"layer has no `{self.cfg.bindings_property}` property")
            tokens = []
        label = next(
            (val for prop in self.cfg.layer_label_properties if (val := node.get_string(prop)) is not None), None
        )
        return Layer(name=node.name, bindings=tuple(parse_bindings(tokens)), label=label)

    def _get_combo(self, node: DTNode) -> Combo | None:  # pylint: disable=too-many-return-statements
        try:
            key_positions = node.get_array("key-positions")
            timeout = node.get_array("timeout-ms")
        except ValueError as err:
            self._diagnose(node.name, f"{err}, skipping combo")
            return None

        if not key_positions:
            self._diagnose(node.name, "could not parse `key-positions`, skipping combo")
            return None

        if timeout is None:
            if self.cfg.default_combo_timeout_ms is None:
                self._diagnose(node.name, "missing `timeout-ms`, skipping combo")
                return None
            timeout = [self.cfg.default_combo_timeout_ms]
        if len(timeout) != 1:
            self._diagnose(node.name, f"`timeout-ms` should be a single number but got {timeout}, skipping combo")
            return None

        if (tokens := node.get_phandle_array(self.cfg.bindings_property)) is None:
            self._diagnose(node.name, f"missing `{self.cfg.bindings_property}`, skipping combo")
            return None
        if len(bindings := parse_bindings(tokens)) != 1:
            self._diagnose(node.name, f"expected exactly one binding but found {len(bindings)}, skipping combo")
            return None

        try:
            layers = node.get_array("layers")
        except ValueError as err:
            self._diagnose(node.name, f"{err}, enabling combo on all layers")
            layers = None

        return Combo(
            name=node.name,
            timeout_ms=timeout[0],
            key_positions=tuple(key_positions),
            binding=bindings[0],
            layers=tuple(layers or ()),
        )

    def _check_duplicates(self, items: list[_Named], kind: str) -> list[_Named]:
        seen: set[str] = set()
        out: list[_Named] = []
        for item in items:
            if item.name in seen:
                if self.cfg.duplicate_names == "skip":
                    self._diagnose(item.name, f"duplicate {kind} name, skipping it")
                    continue
                self._diagnose(item.name, f"duplicate {kind} name, keeping both")
            seen.add(item.name)
            out.append(item)
        return out

    def extract(self, root: DTNode) -> KeymapModel:
        """Walk the node tree under `root` and assemble layers and combos in source order."""
        keymap_nodes, combos_nodes = self._find_containers(root)
        if not keymap_nodes and not combos_nodes:
            raise StructureError("Could not find any keymap or combos nodes in the input")

        layers = [self._get_layer(node) for parent in keymap_nodes for node in parent.children]
        combos = [
            combo
            for parent in combos_nodes
            for node in parent.children
            if (combo := self._get_combo(node)) is not None
        ]
        logger.debug("extracted layers: %s", [layer.name for layer in layers])
        logger.debug("extracted combos: %s", [combo.name for combo in combos])

        return KeymapModel(
            layers=tuple(self._check_duplicates(layers, "layer")),
            combos=tuple(self._check_duplicates(combos, "combo")),
        )

    def parse(self, in_str: str) -> KeymapModel:
        """Parse a ZMK keymap from its content, resetting diagnostics from any previous call."""
        self.diagnostics = []
        return self.extract(DeviceTree(in_str).root)


def parse_keymap(in_str: str, config: ParseConfig | None = None) -> tuple[KeymapModel, list[Diagnostic]]:
    """Parse a ZMK keymap string and return the model together with the non-fatal diagnostics."""
    parser = KeymapParser(config)
    keymap = parser.parse(in_str)
    return keymap, parser.diagnostics
