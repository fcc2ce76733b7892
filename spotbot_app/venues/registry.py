"""
Venue registry.

Maps venue codes and names onto adapter classes and builds an adapter
together with its own governor and call store.
"""

from pathlib import Path
from typing import Any, Optional

from ..config.defaults import DefaultConfig
from ..config.loader import ConfigLoader
from ..governor import RequestGovernor, SessionStore
from ..governor.session import session_dir
from ..persistence import CallStore
from .binance import Binance, BinanceUS
from .bitstamp import Bitstamp
from .ccxt_venue import CcxtVenue, Credentials
from .coinbase import Coinbase
from .cryptocom import CryptoCom
from .hitbtc import HitBTC
from .huobi import Huobi
from .kucoin import Kucoin
from .woo import Woo

VENUES: tuple[type, ...] = (
    Binance,
    BinanceUS,
    Coinbase,
    Bitstamp,
    CryptoCom,
    HitBTC,
    Huobi,
    Kucoin,
    Woo,
)


def find_venue(name: str) -> type:
    """
    Look up an adapter class by code (``BINA``), name (``Binance``) or
    ccxt id (``binance``).

    Raises:
        ValueError: For an unknown venue
    """
    wanted = name.strip().lower()
    for venue in VENUES:
        if wanted in (venue.info.code.lower(), venue.info.name.lower(), venue.ccxt_id):
            return venue
    raise ValueError(f"exchange {name} does not exist")


def get_venue(
    name: str,
    config: Optional[DefaultConfig] = None,
    credentials: Optional[Credentials] = None,
    sandbox: bool = False,
    directory: Optional[Path] = None,
    loader: Optional[ConfigLoader] = None,
    run_overrides: Optional[dict[str, Any]] = None,
) -> CcxtVenue:
    """
    Build a ready-to-use adapter for ``name``.

    Args:
        name: Venue code, name or ccxt id
        config: Complete configuration; loaded through ``loader`` when omitted
        credentials: API credentials; read from the environment when omitted
        sandbox: Talk to the venue's test environment
        directory: Session directory; the shared temp-dir location by default
        loader: Configuration loader used when ``config`` is omitted
        run_overrides: Per-run configuration overrides
    """
    venue_cls = find_venue(name)
    code = venue_cls.info.code
    if config is None:
        config = (loader or ConfigLoader.create()).load(code, run_overrides)
    directory = directory or session_dir(config.governor.session_dir_name)
    if credentials is None:
        credentials = Credentials.from_env(code)

    governor = RequestGovernor(
        code,
        venue_cls.pacing_policy(),
        store=SessionStore(code, directory),
        params=config.governor,
        transient_retries=(config.governor.transient_retry_attempts
                           if venue_cls.retries_transient else 0),
    )
    return venue_cls(
        governor,
        config=config,
        credentials=credentials,
        sandbox=sandbox,
        call_store=CallStore(code, directory),
    )
