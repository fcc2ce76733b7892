"""
Support filters applied to an aggregated bid book.

Each filter is a pure function returning a new list; the input book is
never modified. ``SupportFilter`` bundles the thresholds of one search.
"""

from dataclasses import dataclass
from typing import Iterable

from ..models.book import BookLevel


def below_ticker(levels: Iterable[BookLevel], ticker: float) -> list[BookLevel]:
    """Drop supports more expensive than the ticker."""
    return [level for level in levels if level.price <= ticker]


def above_floor(levels: Iterable[BookLevel], floor: float) -> list[BookLevel]:
    """Drop supports cheaper than ``floor``; a zero floor keeps everything."""
    if floor <= 0:
        return list(levels)
    return [level for level in levels if level.price >= floor]


def below_dip(levels: Iterable[BookLevel], avg: float, dip: float) -> list[BookLevel]:
    """Drop supports more expensive than the 24h average minus ``dip`` percent."""
    if dip <= 0:
        return list(levels)
    ceiling = avg - (dip / 100) * avg
    return [level for level in levels if level.price <= ceiling]


def below_max(levels: Iterable[BookLevel], max_price: float) -> list[BookLevel]:
    """Drop supports priced at or above ``max_price``; zero disables the cap."""
    if max_price <= 0:
        return list(levels)
    return [level for level in levels if level.price < max_price]


@dataclass(frozen=True)
class SupportFilter:
    """Thresholds deciding which aggregated levels count as supports."""
    ticker: float
    avg: float                      # 24h average
    dip: float = 0.0                # Percent below avg
    pip: float = 100.0              # Percent below ticker
    max_price: float = 0.0
    min_price: float = 0.0

    @property
    def floor(self) -> float:
        """Explicit minimum, else ticker minus ``pip`` percent."""
        if self.min_price > 0:
            return self.min_price
        if self.pip < 100:
            return self.ticker - (self.pip / 100) * self.ticker
        return 0.0

    def with_dip(self, dip: float) -> "SupportFilter":
        return SupportFilter(
            ticker=self.ticker,
            avg=self.avg,
            dip=dip,
            pip=self.pip,
            max_price=self.max_price,
            min_price=self.min_price,
        )

    def apply(self, levels: Iterable[BookLevel]) -> list[BookLevel]:
        out = below_ticker(levels, self.ticker)
        out = above_floor(out, self.floor)
        out = below_dip(out, self.avg, self.dip)
        return below_max(out, self.max_price)

    def accepts(self, level: BookLevel) -> bool:
        return bool(self.apply([level]))
