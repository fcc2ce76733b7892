"""
Command line entry point.

Examples:
  python -m spotbot_app book --exchange BINA --market BTC/USDT --agg 50
  python -m spotbot_app agg --exchange BINA --market BTC/USDT --dip 5 --top 2
  python -m spotbot_app buy --exchange BINA --market BTC/USDT,ETH/USDT --size 0.01
  python -m spotbot_app sell --exchange BINA --strategy 1 --mult 1.05
  python -m spotbot_app order --exchange BINA --market BTC/USDT --side sell --size 0.01 --price 99
  python -m spotbot_app cancel --exchange BINA --market BTC/USDT --side buy

Credentials are read from SPOTBOT_<CODE>_KEY, SPOTBOT_<CODE>_SECRET and
(where the venue wants one) SPOTBOT_<CODE>_PASSWORD. Command output goes to
stdout as JSON; logs go to stderr.
"""

import argparse
import json
import sys
from dataclasses import asdict
from typing import Any, Optional

import structlog

from .engine import SpotBotEngine
from .errors import AggregationExhausted, SystemFailureError, VenueError
from .logging.config import configure_logging
from .models.book import BookSide
from .models.order import OrderSide, OrderType
from .planning import BuyParams

logger = structlog.get_logger(__name__)


def _split(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _engine(args: argparse.Namespace) -> SpotBotEngine:
    return SpotBotEngine(args.exchange, config_dir=args.config, sandbox=args.sandbox)


def _buy_params(args: argparse.Namespace) -> BuyParams:
    return BuyParams.from_dict({
        "agg": args.agg,
        "dip": args.dip,
        "pip": args.pip,
        "top": args.top,
        "dist": args.dist,
        "size": args.size,
        "price": args.price,
        "devn": args.devn,
        "mult": args.mult,
        "dca": args.dca,
        "strict": args.strict,
        "hold": _split(args.hold),
        "max": args.max,
        "min": args.min,
        "volume": args.volume,
        "quote": args.quote,
    })


def cmd_book(args: argparse.Namespace) -> int:
    engine = _engine(args)
    side = BookSide(args.side)
    levels = engine.book(args.market, side, args.agg or 0.0)
    print(json.dumps([asdict(level) for level in levels]))
    return 0


def cmd_agg(args: argparse.Namespace) -> int:
    engine = _engine(args)
    resolution = engine.resolve(args.market, _buy_params(args))
    print(json.dumps({"market": resolution.market, "agg": resolution.agg, "dip": resolution.dip}))
    return 0


def cmd_buy(args: argparse.Namespace) -> int:
    engine = _engine(args)
    buy = _buy_params(args)
    markets = _split(args.market)
    if args.repeat:
        engine.buy(markets, buy, test=args.test)
        engine.buy_every(args.repeat, markets, buy)
        return 0
    plans = engine.buy(markets, buy, test=args.test)
    print(json.dumps([
        {
            "market": plan.market,
            "agg": plan.agg,
            "dip": plan.dip,
            "skipped": plan.skipped,
            "calls": [asdict(call) for call in plan.calls],
            "placed": plan.placed,
        }
        for plan in plans
    ]))
    return 0


def cmd_sell(args: argparse.Namespace) -> int:
    engine = _engine(args)
    overrides: dict[str, Any] = {
        "mult": args.mult,
        "stop": args.stop,
        "hold": _split(args.hold),
        "earn": _split(args.earn),
        "markets": _split(args.market),
        "dca": args.dca,
    }
    engine.sell(args.strategy, engine.sell_options(**overrides))
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    engine = _engine(args)
    order_id = engine.order(args.market, OrderSide(args.side), args.size,
                            args.price or 0.0, OrderType(args.kind))
    print(json.dumps({"market": args.market, "side": args.side, "size": args.size,
                      "price": args.price, "kind": args.kind, "order_id": order_id}))
    return 0


def cmd_cancel(args: argparse.Namespace) -> int:
    engine = _engine(args)
    cancelled = engine.cancel(args.market, OrderSide(args.side))
    print(json.dumps({"market": args.market, "side": args.side, "cancelled": cancelled}))
    return 0


def _common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--exchange", required=True, help="Venue code or name, e.g. BINA")
    parser.add_argument("--sandbox", action="store_true")
    parser.add_argument("--config", default=None, help="Directory holding venues.yaml")


def _buy_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--agg", type=float, default=None, help="Fixed bucket width")
    parser.add_argument("--dip", type=float, default=None, help="Percent below the 24h average")
    parser.add_argument("--pip", type=float, default=None, help="Percent below the ticker")
    parser.add_argument("--top", type=int, default=None, help="Orders per market")
    parser.add_argument("--dist", type=float, default=None, help="Percent between orders")
    parser.add_argument("--size", type=float, default=None)
    parser.add_argument("--price", type=float, default=None, help="Quote budget per order")
    parser.add_argument("--devn", type=float, default=None, help="Limit price deviation")
    parser.add_argument("--mult", type=float, default=None)
    parser.add_argument("--dca", action="store_true")
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--hold", default=None, help="Comma-separated markets or assets")
    parser.add_argument("--max", type=float, default=None)
    parser.add_argument("--min", type=float, default=None)
    parser.add_argument("--volume", type=float, default=None, help="Minimum 24h BTC volume")
    parser.add_argument("--quote", default=None, help="Quote asset for --market=all")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spotbot", description="Unattended spot-trading bot")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--json-logs", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("book", help="Print the order book")
    _common(p)
    p.add_argument("--market", required=True)
    p.add_argument("--side", choices=[s.value for s in BookSide], default=BookSide.BIDS.value)
    p.add_argument("--agg", type=float, default=None)
    p.set_defaults(func=cmd_book)

    p = sub.add_parser("agg", help="Print the bucket width the buy path would use")
    _common(p)
    p.add_argument("--market", required=True)
    _buy_flags(p)
    p.set_defaults(func=cmd_agg)

    p = sub.add_parser("buy", help="Open limit buys at support levels")
    _common(p)
    p.add_argument("--market", required=True, help="Comma-separated markets, or all")
    _buy_flags(p)
    p.add_argument("--test", action="store_true", help="Plan without placing orders")
    p.add_argument("--repeat", type=float, default=None, help="Repeat every X hours")
    p.set_defaults(func=cmd_buy)

    p = sub.add_parser("sell", help="Run the sell strategy engine")
    _common(p)
    p.add_argument("--strategy", default="0", help="0..4 or strategy name")
    p.add_argument("--mult", type=float, default=None)
    p.add_argument("--stop", type=float, default=None)
    p.add_argument("--hold", default=None)
    p.add_argument("--earn", default=None)
    p.add_argument("--market", default=None, help="Always-watched markets")
    p.add_argument("--dca", action="store_true")
    p.set_defaults(func=cmd_sell)

    p = sub.add_parser("order", help="Place one order")
    _common(p)
    p.add_argument("--market", required=True)
    p.add_argument("--side", choices=[OrderSide.BUY.value, OrderSide.SELL.value], required=True)
    p.add_argument("--size", type=float, required=True)
    p.add_argument("--price", type=float, default=None, help="Limit price; ignored for market orders")
    p.add_argument("--kind", choices=[OrderType.LIMIT.value, OrderType.MARKET.value],
                   default=OrderType.LIMIT.value)
    p.set_defaults(func=cmd_order)

    p = sub.add_parser("cancel", help="Cancel open orders on one side of a market")
    _common(p)
    p.add_argument("--market", required=True)
    p.add_argument("--side", choices=[OrderSide.BUY.value, OrderSide.SELL.value], required=True)
    p.set_defaults(func=cmd_cancel)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, format_json=args.json_logs)
    try:
        return args.func(args)
    except (AggregationExhausted, SystemFailureError, VenueError, ValueError) as e:
        logger.error("Command failed", command=args.command, error=str(e),
                     error_type=type(e).__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
