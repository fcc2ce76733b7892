"""Tests for venue lookup and adapter construction."""

import pytest

from spotbot_app.config.loader import ConfigLoader
from spotbot_app.governor import EndpointIntensity, FixedRate, WeightScaled
from spotbot_app.venues import VENUES, find_venue, get_venue
from spotbot_app.venues.binance import Binance
from spotbot_app.venues.ccxt_venue import Credentials
from spotbot_app.venues.coinbase import Coinbase
from spotbot_app.venues.woo import Woo

CREDENTIALS = Credentials(api_key="key", secret="secret")


@pytest.fixture
def loader(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "venues.yaml").write_text(
        "venues:\n"
        "  GDAX:\n"
        "    governor:\n"
        "      transient_retry_attempts: 5\n"
        "  BINA:\n"
        "    sell:\n"
        "      poll_interval_seconds: 30\n"
    )
    return ConfigLoader.create(config_dir)


class TestFindVenue:
    """Test venue lookup."""

    @pytest.mark.parametrize("name", ["BINA", "bina", "Binance", "binance"])
    def test_by_code_name_or_ccxt_id(self, name):
        assert find_venue(name) is Binance

    def test_coinbase_keeps_its_old_code(self):
        assert find_venue("GDAX") is Coinbase

    def test_unknown_venue(self):
        with pytest.raises(ValueError, match="does not exist"):
            find_venue("mtgox")

    def test_codes_are_unique(self):
        codes = [venue.info.code for venue in VENUES]
        assert len(codes) == len(set(codes))


class TestGetVenue:
    """Test adapter construction with its governor and stores."""

    def test_venue_config_applied(self, loader, session_path):
        venue = get_venue("BINA", credentials=CREDENTIALS, directory=session_path, loader=loader)
        assert isinstance(venue, Binance)
        assert venue.config.sell.poll_interval_seconds == 30
        assert venue.credentials == CREDENTIALS

    def test_run_overrides_win(self, loader, session_path):
        venue = get_venue("BINA", directory=session_path, loader=loader,
                          run_overrides={"sell": {"poll_interval_seconds": 10}})
        assert venue.config.sell.poll_interval_seconds == 10

    def test_pacing_policy_per_venue(self, loader, session_path):
        assert isinstance(get_venue("BINA", directory=session_path, loader=loader).governor.policy,
                          WeightScaled)
        assert isinstance(get_venue("GDAX", directory=session_path, loader=loader).governor.policy,
                          FixedRate)
        assert isinstance(get_venue("WOO", directory=session_path, loader=loader).governor.policy,
                          EndpointIntensity)

    def test_transient_retries_only_where_opted_in(self, loader, session_path):
        coinbase = get_venue("GDAX", directory=session_path, loader=loader)
        binance = get_venue("BINA", directory=session_path, loader=loader)
        assert coinbase.governor.transient_retries == 5
        assert binance.governor.transient_retries == 0

    def test_stores_share_the_session_directory(self, loader, session_path):
        venue = get_venue(Woo.info.code, directory=session_path, loader=loader)
        assert venue.governor.store.directory == session_path
        assert venue.call_store.directory == session_path / "calls"

    def test_credentials_from_environment(self, loader, session_path, monkeypatch):
        monkeypatch.setenv("SPOTBOT_WOO_KEY", "k")
        monkeypatch.setenv("SPOTBOT_WOO_SECRET", "s")
        monkeypatch.delenv("SPOTBOT_WOO_PASSWORD", raising=False)
        venue = get_venue("woo", directory=session_path, loader=loader)
        assert venue.credentials == Credentials("k", "s")
