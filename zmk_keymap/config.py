"""
Module containing configuration related to recognizing keymap and combo nodes
in devicetree input and to the handling of anomalous entries during extraction.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ParseConfig(BaseSettings):
    """Configuration settings related to extracting layers and combos from ZMK keymaps."""

    model_config = SettingsConfigDict(env_prefix="KEYMAP_", extra="ignore")

    # node names that mark a container of layer nodes or combo nodes, at any depth
    keymap_node_names: list[str] = ["keymap"]
    combos_node_names: list[str] = ["combos"]

    # nodes with these "compatible" values are recognized as containers regardless of their name,
    # set to null to only match by node name
    keymap_compatible: str | None = "zmk,keymap"
    combos_compatible: str | None = "zmk,combos"

    # property holding the binding array, for both layers and combos
    bindings_property: str = "bindings"

    # string properties on a layer node to take the layer display label from, first one found wins
    layer_label_properties: list[str] = ["display-name", "label"]

    # timeout to assign to combos without a `timeout-ms` property,
    # leave null to skip such combos with a diagnostic instead
    default_combo_timeout_ms: int | None = None

    # what to do with a layer or combo whose name was already seen: "keep" preserves it in the
    # model next to the earlier one, "skip" drops it. a diagnostic is recorded in both cases
    duplicate_names: Literal["keep", "skip"] = "keep"


class Config(BaseSettings):
    """All configuration settings used for this module."""

    model_config = SettingsConfigDict(env_prefix="KEYMAP_")

    parse_config: ParseConfig = ParseConfig()
