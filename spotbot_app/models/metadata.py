"""
Engine metadata carried inside a venue client order id.

Sell orders placed by the engine record the entry price and multiplier of
the position they close, so trailing maintenance and stop-leg detection
survive a restart without any local state. The encoding stays inside the
36-character client id limit of the strictest supported venue.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional

PREFIX = "sb"
SEPARATOR = "_"


def _number(value: float) -> str:
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class OrderMetadata:
    """Entry price, multiplier and leg flags of an engine-placed sell."""
    price: float                 # Entry (buy fill) price
    mult: float                  # Take-profit multiplier in force
    trail: bool = False          # Order is re-priced by trailing maintenance
    stop_leg: bool = False       # Order closes a position at its stop
    nonce: str = field(default_factory=lambda: uuid.uuid4().hex[:6])

    def encode(self) -> str:
        flags = ("t" if self.trail else "") + ("s" if self.stop_leg else "")
        return SEPARATOR.join([
            PREFIX + flags,
            _number(self.price),
            _number(self.mult),
            self.nonce,
        ])

    @classmethod
    def decode(cls, client_id: Optional[str]) -> Optional["OrderMetadata"]:
        """Decode a client id; None for ids the engine did not produce."""
        if not client_id or not client_id.startswith(PREFIX):
            return None
        parts = client_id.split(SEPARATOR)
        if len(parts) != 4:
            return None
        flags = parts[0][len(PREFIX):]
        if set(flags) - {"t", "s"}:
            return None
        try:
            price = float(parts[1])
            mult = float(parts[2])
        except ValueError:
            return None
        return cls(
            price=price,
            mult=mult,
            trail="t" in flags,
            stop_leg="s" in flags,
            nonce=parts[3],
        )
