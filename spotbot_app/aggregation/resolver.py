"""
Support-level search over the bid book.

Walks a ladder of bucket widths from coarse to fine until the aggregated,
filtered book holds enough supports. When no width satisfies the requested
count, the count is lowered one at a time, and (unless strict) the dip is
relaxed one percent at a time, re-running the full count sweep each time.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

from ..config.defaults import AggregationParams
from ..errors import AggregationExhausted, AskingTooMuch, OrderBookTooThin
from ..logging.config import get_planner_logger
from ..models.book import BookLevel, BookSide
from ..utils.precision import round_to
from .filters import SupportFilter

if TYPE_CHECKING:
    from ..venues.base import RawBook, VenueAdapter


@dataclass(frozen=True)
class Resolution:
    """Outcome of a successful support search."""
    market: str
    agg: float
    dip: float
    cnt: int                        # Count accepted; never above len(book)
    book: tuple[BookLevel, ...]     # Aggregated and filtered, highest price first
    ticker: float
    avg: float


@dataclass
class _Attempt:
    agg: float
    levels: list[BookLevel]
    most_levels: int = 0            # Largest surviving book seen at any width


class AggregationResolver:
    """Finds a bucket width yielding enough usable supports."""

    def __init__(self, venue: "VenueAdapter", params: Optional[AggregationParams] = None):
        self.venue = venue
        self.params = params or venue.config.aggregation
        self.logger = get_planner_logger(__name__).bind(venue=venue.code)

    def widths(self) -> Iterator[float]:
        """Bucket widths from coarse to fine, ending at the underflow floor."""
        agg = self.params.start_agg
        while True:
            for step in self.params.ladder:
                agg = round_to(agg * step, self.params.agg_decimals)
                yield agg
                if agg <= self.params.min_agg:
                    return

    def _search(self, raw_book: "RawBook", market: str, flt: SupportFilter, cnt: int) -> _Attempt:
        """
        Single ladder walk for a fixed count.

        Raises:
            AggregationExhausted: The walk underflowed with nothing surviving
        """
        most = 0
        agg = 0.0
        levels: list[BookLevel] = []
        for agg in self.widths():
            if agg <= 0:
                break
            levels = flt.apply(self.venue.aggregate(raw_book, market, agg))
            most = max(most, len(levels))
            if len(levels) >= cnt:
                return _Attempt(agg=agg, levels=levels, most_levels=most)
        if levels:
            return _Attempt(agg=agg, levels=levels, most_levels=most)
        if most > 0:
            raise AskingTooMuch(
                f"cannot find {cnt} supports for {market}",
                levels=most, market=market, dip=flt.dip, cnt=cnt, agg=agg,
            )
        raise OrderBookTooThin(
            f"order book of {market} is too thin",
            market=market, dip=flt.dip, cnt=cnt, agg=agg,
        )

    def _sweep(self, raw_book: "RawBook", market: str, flt: SupportFilter,
               top: int) -> tuple[Optional[_Attempt], int, list[AggregationExhausted]]:
        failures: list[AggregationExhausted] = []
        start = max(top, self.params.min_target_count)
        for cnt in range(start, self.params.lowest_count - 1, -1):
            try:
                return self._search(raw_book, market, flt, cnt), cnt, failures
            except AggregationExhausted as e:
                failures.append(e)
        return None, 0, failures

    def resolve_book(
        self,
        raw_book: "RawBook",
        market: str,
        ticker: float,
        avg: float,
        dip: float,
        pip: float,
        top: int,
        max_price: float = 0.0,
        min_price: float = 0.0,
        strict: bool = False,
    ) -> Resolution:
        """
        Run the search over an already fetched bid book.

        Raises:
            OrderBookTooThin: No level survived filtering at any width or dip
            AskingTooMuch: Levels survived somewhere, never enough of them
        """
        flt = SupportFilter(ticker=ticker, avg=avg, dip=dip, pip=pip,
                            max_price=max_price, min_price=min_price)
        dips = [dip]
        if not strict:
            dips.extend(range(int(round(dip)) - 1, -1, -1))

        failures: list[AggregationExhausted] = []
        for candidate in dips:
            attempt, cnt, tried = self._sweep(raw_book, market, flt.with_dip(candidate), top)
            failures.extend(tried)
            if attempt is None:
                continue
            if candidate != dip:
                self.logger.info("Relaxed dip to find supports", market=market,
                                 dip=dip, relaxed_dip=candidate)
            self.logger.debug("Supports resolved", market=market, agg=attempt.agg,
                              dip=candidate, cnt=cnt, levels=len(attempt.levels))
            return Resolution(
                market=market,
                agg=attempt.agg,
                dip=candidate,
                cnt=min(cnt, len(attempt.levels)),
                book=tuple(attempt.levels),
                ticker=ticker,
                avg=avg,
            )

        most = max((getattr(e, "levels", 0) for e in failures), default=0)
        last = failures[-1] if failures else None
        context = {"ticker": ticker, "avg": avg, "pip": pip, "strict": strict}
        if most > 0:
            raise AskingTooMuch(
                f"cannot find enough supports for {market}; please update your settings",
                levels=most, context=context, market=market, dip=dip,
                cnt=max(top, self.params.min_target_count), agg=last.agg if last else None,
            )
        raise OrderBookTooThin(
            f"cannot find any supports for {market}; the market might be illiquid",
            context=context, market=market, dip=dip,
            cnt=max(top, self.params.min_target_count), agg=last.agg if last else None,
        )

    def resolve(
        self,
        market: str,
        dip: float,
        pip: float,
        top: int,
        max_price: float = 0.0,
        min_price: float = 0.0,
        strict: bool = False,
    ) -> Resolution:
        """Fetch ticker, 24h stats and bids for ``market``, then search."""
        ticker = self.venue.get_ticker(market)
        stats = self.venue.get_24h(market)
        avg = stats.avg(self.venue.get_price_precision(market))
        raw_book = self.venue.get_book(market, BookSide.BIDS.value)
        return self.resolve_book(raw_book, market, ticker, avg, dip, pip, top,
                                 max_price=max_price, min_price=min_price, strict=strict)
