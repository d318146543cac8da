"""
Module to split the raw tokens of a binding array like `<&kp A &mt LSHIFT B &trans>` into behavior invocations.

The split is a greedy scan where each reference token starts a new behavior, so the number of
params for each behavior is whatever followed it in the source. No table of behavior arities is used.
"""

import logging
from typing import Iterable

from zmk_keymap.keymap import Behavior, KeyCodeToken, NumberLiteral, Param
from zmk_keymap.parse.lexer import Token, TokenKind

logger = logging.getLogger(__name__)

_GROUP_MARKERS = (TokenKind.LANGLE, TokenKind.RANGLE, TokenKind.COMMA)


def parse_bindings(tokens: Iterable[Token]) -> list[Behavior]:
    """
    Partition the tokens of a binding array into Behavior's in source order. Array markers are stripped;
    an array without any references results in an empty list.
    """
    behaviors = []
    action: str | None = None
    params: list[Param] = []
    for token in tokens:
        match token.kind:
            case TokenKind.REFERENCE:
                if action is not None:
                    behaviors.append(Behavior(action=action, params=tuple(params)))
                action, params = str(token.value), []
            case kind if kind in _GROUP_MARKERS:
                continue
            case TokenKind.NUMBER if action is not None:
                params.append(NumberLiteral(value=int(token.value)))
            case TokenKind.IDENTIFIER if action is not None:
                params.append(KeyCodeToken(text=str(token.value)))
            case _:
                logger.debug('dropping "%s" in binding array, it cannot be a behavior parameter', token)
    if action is not None:
        behaviors.append(Behavior(action=action, params=tuple(params)))
    return behaviors
