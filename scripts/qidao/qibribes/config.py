import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Tuple

from dotenv import find_dotenv, load_dotenv
from web3 import Web3

from .bribes import (
    DEFAULT_MIN_CHAIN_PERCENT,
    DEFAULT_RATE_PER_PERCENT,
    DEFAULT_REDISTRIBUTION_RATE,
    DEFAULT_WHALE_THRESHOLD,
    TETU_ADDRESS,
)
from .errors import ConfigError

GRAPHQL_ENDPOINT = "https://hub.snapshot.org/graphql"
PROPOSAL_ID = "0xae009d3fc6517df8d2761a891be63a8a459e68e54d0b8043de176070a23ac51c"
PAGE_SIZE = 1000
OUR_BRIBED_CHOICE = "WBTC (Arbitrum)"


@dataclass(frozen=True)
class BribeConfig:
    graphql_url: str = GRAPHQL_ENDPOINT
    proposal_id: str = PROPOSAL_ID
    page_size: int = PAGE_SIZE
    tracked_choice: str = OUR_BRIBED_CHOICE
    rate_per_percent: Decimal = DEFAULT_RATE_PER_PERCENT
    min_chain_percent: Decimal = DEFAULT_MIN_CHAIN_PERCENT
    whale_threshold: Decimal = DEFAULT_WHALE_THRESHOLD
    redistribution_rate: Decimal = DEFAULT_REDISTRIBUTION_RATE
    exempt_addresses: Tuple[str, ...] = field(default=(TETU_ADDRESS,))

    def override(self, **kwargs):
        """Return a copy with every non-None keyword applied."""
        return validate(replace(self, **{k: v for k, v in kwargs.items() if v is not None}))


def _decimal(name, raw):
    try:
        return Decimal(str(raw).strip())
    except InvalidOperation:
        raise ConfigError(f"{name} must be a decimal number, got {raw!r}")


def parse_addresses(raw):
    return tuple(a.strip() for a in raw.split(",") if a.strip())


def validate(config):
    if config.page_size <= 0:
        raise ConfigError(f"page size must be positive, got {config.page_size}")
    for addr in config.exempt_addresses:
        if not Web3.is_address(addr):
            raise ConfigError(f"whale exempt address {addr!r} is not a valid address")
    for name in ("rate_per_percent", "min_chain_percent", "whale_threshold", "redistribution_rate"):
        value = Decimal(getattr(config, name))
        if not value.is_finite():
            raise ConfigError(f"{name} must be a finite number, got {value}")
        if value < 0:
            raise ConfigError(f"{name} cannot be negative, got {value}")
    return config


def load_config():
    """Build a BribeConfig from the environment (and .env, if present)."""
    load_dotenv(find_dotenv(usecwd=True))
    page_size = os.getenv("SNAPSHOT_PAGE_SIZE", str(PAGE_SIZE))
    if not page_size.strip().isdigit():
        raise ConfigError(f"SNAPSHOT_PAGE_SIZE must be an integer, got {page_size!r}")

    config = BribeConfig(
        graphql_url=os.getenv("SNAPSHOT_GRAPHQL_URL", GRAPHQL_ENDPOINT),
        proposal_id=os.getenv("QIDAO_PROPOSAL_ID", PROPOSAL_ID),
        page_size=int(page_size),
        tracked_choice=os.getenv("QIDAO_BRIBED_CHOICE", OUR_BRIBED_CHOICE),
        rate_per_percent=_decimal(
            "QI_BRIBE_PER_ONE_PERCENT", os.getenv("QI_BRIBE_PER_ONE_PERCENT", DEFAULT_RATE_PER_PERCENT)),
        min_chain_percent=_decimal(
            "QIDAO_MIN_CHAIN_PERCENT", os.getenv("QIDAO_MIN_CHAIN_PERCENT", DEFAULT_MIN_CHAIN_PERCENT)),
        whale_threshold=_decimal(
            "WHALE_THRESHOLD", os.getenv("WHALE_THRESHOLD", DEFAULT_WHALE_THRESHOLD)),
        redistribution_rate=_decimal(
            "WHALE_REDISTRIBUTION", os.getenv("WHALE_REDISTRIBUTION", DEFAULT_REDISTRIBUTION_RATE)),
        exempt_addresses=parse_addresses(os.getenv("WHALE_EXEMPT_ADDRESSES", TETU_ADDRESS)),
    )
    return validate(config)
