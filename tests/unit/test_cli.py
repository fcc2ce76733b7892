"""Tests for the command line entry point."""

import json

import pytest

from spotbot_app import cli
from spotbot_app.errors import ConfigurationError, OrderBookTooThin
from spotbot_app.models.book import BookLevel, BookSide
from spotbot_app.models.order import OrderSide, OrderType


class RecordingEngine:
    """Stands in for SpotBotEngine and records what the commands ask of it."""

    instances = []
    failure = None

    def __init__(self, venue, config_dir=None, sandbox=False):
        self.venue = venue
        self.sandbox = sandbox
        self.calls = []
        RecordingEngine.instances.append(self)

    def _record(self, *call):
        self.calls.append(call)
        if RecordingEngine.failure is not None:
            raise RecordingEngine.failure

    def book(self, market, side, agg):
        self._record("book", market, side, agg)
        return [BookLevel(market, 95.0, 1.5)]

    def cancel(self, market, side):
        self._record("cancel", market, side)
        return 2

    def order(self, market, side, size, price, kind):
        self._record("order", market, side, size, price, kind)
        return "o1"

    def buy(self, markets, buy, test=False):
        self._record("buy", markets, buy, test)
        return []

    def sell_options(self, **overrides):
        return overrides

    def sell(self, strategy, options):
        self._record("sell", strategy, options)


@pytest.fixture(autouse=True)
def engine(monkeypatch):
    RecordingEngine.instances = []
    RecordingEngine.failure = None
    monkeypatch.setattr(cli, "SpotBotEngine", RecordingEngine)
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    return RecordingEngine


class TestParser:
    """Test argument parsing."""

    def test_buy_flags(self):
        args = cli.build_parser().parse_args(
            ["buy", "--exchange", "BINA", "--market", "BTC/USDT", "--dip", "4", "--top", "3", "--dca"])
        buy = cli._buy_params(args)
        assert buy.dip == 4.0
        assert buy.top == 3
        assert buy.dca
        assert buy.pip == 30.0

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_cancel_side_choices(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(
                ["cancel", "--exchange", "BINA", "--market", "BTC/USDT", "--side", "both"])

    @pytest.mark.parametrize("flags", [
        ["--side", "hold", "--size", "1"],
        ["--side", "buy", "--size", "1", "--kind", "stop"],
        ["--side", "buy"],
    ])
    def test_order_flags_rejected(self, flags):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["order", "--exchange", "BINA", "--market", "BTC/USDT", *flags])


class TestCommands:
    """Test commands end to end against a recording engine."""

    def test_book_prints_json(self, engine, capsys):
        assert cli.main(["book", "--exchange", "BINA", "--market", "BTC/USDT", "--agg", "5"]) == 0
        assert engine.instances[0].calls == [("book", "BTC/USDT", BookSide.BIDS, 5.0)]
        assert json.loads(capsys.readouterr().out) == [
            {"market": "BTC/USDT", "price": 95.0, "size": 1.5}
        ]

    def test_buy_splits_markets(self, engine):
        assert cli.main(["buy", "--exchange", "BINA", "--market", "BTC/USDT, ETH/USDT",
                         "--size", "0.01", "--test"]) == 0
        _, markets, buy, test = engine.instances[0].calls[0]
        assert markets == ["BTC/USDT", "ETH/USDT"]
        assert buy.size == 0.01
        assert test

    def test_sell_passes_overrides(self, engine):
        assert cli.main(["sell", "--exchange", "KUCN", "--strategy", "2",
                         "--hold", "BNB", "--mult", "1.1"]) == 0
        _, strategy, options = engine.instances[0].calls[0]
        assert strategy == "2"
        assert options["hold"] == ["BNB"]
        assert options["mult"] == 1.1
        assert options["stop"] is None

    def test_cancel(self, engine, capsys):
        assert cli.main(["cancel", "--exchange", "BINA", "--market", "BTC/USDT", "--side", "sell"]) == 0
        assert engine.instances[0].calls == [("cancel", "BTC/USDT", OrderSide.SELL)]
        assert json.loads(capsys.readouterr().out)["cancelled"] == 2

    def test_order(self, engine, capsys):
        assert cli.main(["order", "--exchange", "BINA", "--market", "BTC/USDT", "--side", "sell",
                         "--size", "0.01", "--price", "99"]) == 0
        assert engine.instances[0].calls == [
            ("order", "BTC/USDT", OrderSide.SELL, 0.01, 99.0, OrderType.LIMIT)
        ]
        assert json.loads(capsys.readouterr().out)["order_id"] == "o1"

    def test_market_order_without_price(self, engine):
        assert cli.main(["order", "--exchange", "BINA", "--market", "BTC/USDT", "--side", "buy",
                         "--size", "0.01", "--kind", "market"]) == 0
        assert engine.instances[0].calls == [
            ("order", "BTC/USDT", OrderSide.BUY, 0.01, 0.0, OrderType.MARKET)
        ]

    @pytest.mark.parametrize("failure", [
        OrderBookTooThin("order book of BTC/USDT is too thin"),
        ConfigurationError("dip: out of range", field="dip"),
        ValueError("strategy 9 does not exist"),
    ])
    def test_failures_exit_with_one(self, engine, failure):
        engine.failure = failure
        assert cli.main(["book", "--exchange", "BINA", "--market", "BTC/USDT"]) == 1
