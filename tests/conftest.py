from decimal import Decimal

import pytest

from qibribes.config import BribeConfig
from qibribes.models import Vote

V1 = "0x1111111111111111111111111111111111111111"
V2 = "0x2222222222222222222222222222222222222222"
V3 = "0x3333333333333333333333333333333333333333"
TETU = "0x0644141dd9c2c34802d28d334217bd2034206bf7"


@pytest.fixture
def choices():
    return {1: "A (Ethereum)", 2: "WBTC (Arbitrum)", 3: "C (Optimism)"}


@pytest.fixture
def votes():
    return [
        Vote(voter=V1, vp=Decimal(100000), choice={2: Decimal(1)}, vote_id="v1"),
        Vote(voter=V2, vp=Decimal(300000), choice={2: Decimal(1)}, vote_id="v2"),
        Vote(voter=V3, vp=Decimal(50000), choice={1: Decimal(1)}, vote_id="v3"),
    ]


@pytest.fixture
def config():
    return BribeConfig()


def close(a, b, tol=Decimal("1e-30")):
    return abs(Decimal(a) - Decimal(b)) < tol
