"""Run parameters of the buy path."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from ..config.validation import ConfigValidator, ValidationError
from ..errors import ConfigurationError
from ..models.order import OrderType


@dataclass(frozen=True)
class BuyParams:
    """Resolver and planner knobs for one buy invocation."""
    agg: float = 0.0                # Fixed bucket width; 0 searches for one
    dip: float = 5.0                # Percent below the 24h average
    pip: float = 30.0               # Percent below the ticker
    top: int = 2                    # Orders to place per market
    dist: float = 2.0               # Minimum percent between orders
    size: float = 0.0               # Flat size per order
    price: float = 0.0              # Flat quote budget per order (instead of size)
    devn: float = 1.0               # Limit price deviation multiplier
    mult: float = 1.05              # Take-profit multiplier of the sell path
    dca: bool = False
    strict: bool = False            # Never relax dip
    hold: frozenset = field(default_factory=frozenset)
    max: float = 0.0
    min: float = 0.0
    volume: float = 0.0             # Minimum 24h BTC volume
    quote: Optional[str] = None     # Quote asset when markets == ["all"]
    kind: OrderType = OrderType.LIMIT

    def validate(self) -> list[ValidationError]:
        values = asdict(self)
        values["hold"] = sorted(self.hold)
        return ConfigValidator.validate_buy_params(values)

    def check(self) -> "BuyParams":
        """
        Raise on the first invalid parameter.

        Raises:
            ConfigurationError: A parameter is out of range
        """
        errors = self.validate()
        if errors:
            first = errors[0]
            raise ConfigurationError(
                f"{first.field}: {first.message}",
                field=first.field,
                value=first.value,
            )
        return self

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "BuyParams":
        known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__ and v is not None}
        if "hold" in known:
            known["hold"] = frozenset(known["hold"])
        if "kind" in known and not isinstance(known["kind"], OrderType):
            known["kind"] = OrderType(known["kind"])
        return cls(**known)
