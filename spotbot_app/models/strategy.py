"""
Sell strategies selectable once per run.
"""

from enum import Enum
from typing import Union


class Strategy(str, Enum):
    """Closed set of sell strategies driving the sell engine's transition table."""
    STANDARD = "standard"
    TRAILING = "trailing"
    TRAILING_STOP_LOSS = "trailing-stop-loss"
    TRAILING_STOP_LOSS_QUICK = "trailing-stop-loss-quick"
    STOP_LOSS = "stop-loss"

    @property
    def code(self) -> int:
        return _CODES.index(self)

    @property
    def trails(self) -> bool:
        """Whether open sells are re-priced while the ticker moves."""
        return self in (
            Strategy.TRAILING,
            Strategy.TRAILING_STOP_LOSS,
            Strategy.TRAILING_STOP_LOSS_QUICK,
        )

    @property
    def may_realize_loss(self) -> bool:
        return self in (
            Strategy.TRAILING_STOP_LOSS,
            Strategy.TRAILING_STOP_LOSS_QUICK,
            Strategy.STOP_LOSS,
        )

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_CODES = [
    Strategy.STANDARD,
    Strategy.TRAILING,
    Strategy.TRAILING_STOP_LOSS,
    Strategy.TRAILING_STOP_LOSS_QUICK,
    Strategy.STOP_LOSS,
]

_DESCRIPTIONS = {
    Strategy.STANDARD: "Limit sell at buy price x mult",
    Strategy.TRAILING: "Trailing limit sell, never sells at a loss",
    Strategy.TRAILING_STOP_LOSS: "Trailing limit sell with a stop-loss order",
    Strategy.TRAILING_STOP_LOSS_QUICK: "Trailing stop-loss, sells as soon as ticker reaches the target",
    Strategy.STOP_LOSS: "OCO order (target limit + stop) at buy fill",
}


def parse_strategy(value: Union[int, str, Strategy]) -> Strategy:
    """
    Parse a strategy from its numeric code (0-4), name or value.

    Raises:
        ValueError: If the value does not name one of the five strategies
    """
    if isinstance(value, Strategy):
        return value
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        code = int(value)
        if 0 <= code < len(_CODES):
            return _CODES[code]
        raise ValueError(f"strategy {code} does not exist")
    text = str(value).strip().lower().replace("_", "-")
    for strategy in Strategy:
        if strategy.value == text:
            return strategy
    raise ValueError(f"strategy {value!r} does not exist")
