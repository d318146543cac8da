"""Parser for ZMK devicetree keymaps into a structured layer and combo model."""

import logging

logger = logging.getLogger(__name__)
