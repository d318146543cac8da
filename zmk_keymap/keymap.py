"""
Module with classes that define the parsed keymap representation, with multiple layers
containing behavior invocations and combo specifications. All models are frozen so a parsed
keymap can be handed to consumers read-only.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class KeyCodeToken(BaseModel, frozen=True):
    """
    A keycode parameter, kept as the raw identifier text. Modifier function expressions
    like `LC(LS(TAB))` are not decomposed.
    """

    type: Literal["keycode"] = "keycode"
    text: str

    def __str__(self) -> str:
        return self.text


class NumberLiteral(BaseModel, frozen=True):
    """A numeric parameter, e.g. the layer index in `&mo 1`."""

    type: Literal["number"] = "number"
    value: int

    def __str__(self) -> str:
        return str(self.value)


Param = Annotated[KeyCodeToken | NumberLiteral, Field(discriminator="type")]


class Behavior(BaseModel, frozen=True):
    """Represents one `&action p1 p2 ...` invocation, with as many params as followed it in the source."""

    action: str
    params: tuple[Param, ...] = ()

    def legends(self) -> list[str]:
        """Return display strings for each param: decimal values for numbers, raw text for keycodes."""
        return [str(param) for param in self.params]

    def __str__(self) -> str:
        return " ".join([f"&{self.action}", *self.legends()])


class Layer(BaseModel, frozen=True):
    """A named layer, where the index of each binding is its physical key position."""

    name: str
    bindings: tuple[Behavior, ...] = ()
    label: str | None = None  # from `display-name` or `label` properties, if any


class Combo(BaseModel, frozen=True):
    """
    Represents a combo in the keymap, with the trigger positions, timeout and the activated binding.
    Empty `layers` means the combo is active on all layers.
    """

    name: str
    timeout_ms: int
    key_positions: tuple[int, ...]
    binding: Behavior
    layers: tuple[int, ...] = ()


class Diagnostic(BaseModel, frozen=True):
    """A non-fatal finding during extraction, e.g. a combo that had to be skipped."""

    subject: str
    message: str

    def __str__(self) -> str:
        return f'"{self.subject}": {self.message}'


class KeymapModel(BaseModel, frozen=True):
    """Represents all data extracted from a keymap, layers and combos in source order."""

    layers: tuple[Layer, ...] = ()
    combos: tuple[Combo, ...] = ()

    @property
    def layer_names(self) -> list[str]:
        """Names of the layers in order, including duplicates."""
        return [layer.name for layer in self.layers]

    def dump(self) -> dict:
        """Returns a dict-valued dump of the keymap representation, with bindings as strings."""
        layers = []
        for layer in self.layers:
            layer_dump: dict = {"name": layer.name}
            if layer.label is not None:
                layer_dump["label"] = layer.label
            layer_dump["bindings"] = [str(binding) for binding in layer.bindings]
            layers.append(layer_dump)

        combos = []
        for combo in self.combos:
            combo_dump: dict = {
                "name": combo.name,
                "timeout_ms": combo.timeout_ms,
                "key_positions": list(combo.key_positions),
                "binding": str(combo.binding),
            }
            if combo.layers:
                combo_dump["layers"] = list(combo.layers)
            combos.append(combo_dump)
        return {"layers": layers, "combos": combos}
