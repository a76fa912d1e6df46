import os
import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import blankart`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from eth_account import Account  # noqa: E402

from blankart.config import get_config_manager  # noqa: E402
from blankart.engine import IssuanceEngine  # noqa: E402
from blankart.events import EventBus, EventRecorder  # noqa: E402
from blankart.lazyminter import LazyMinter  # noqa: E402


NOW = 1_700_000_000
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
BASE_URI = "https://x/"


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    """Every test starts from default configuration with no BLANKART_* overrides."""
    for name in list(os.environ):
        if name.startswith("BLANKART_"):
            monkeypatch.delenv(name, raising=False)
    get_config_manager().reset()
    yield
    get_config_manager().reset()


class Clock:
    """Settable test clock (unix seconds)."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def controller():
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture
def alice():
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture
def bob():
    return Account.from_key("0x" + "33" * 32)


@pytest.fixture
def mallory():
    return Account.from_key("0x" + "44" * 32)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def make_engine(controller, clock, bus):
    """Factory for engines bound to the shared clock and event bus."""
    def factory(max_supply: int = 10, royalty_bps: int = 1000, **kwargs):
        kwargs.setdefault("contract_address", CONTRACT)
        kwargs.setdefault("chain_id", 1337)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("event_bus", bus)
        return IssuanceEngine(controller.address, max_supply, BASE_URI, royalty_bps, **kwargs)
    return factory


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def minter(engine, controller, clock):
    """Voucher signer holding the controller key for ``engine``."""
    return LazyMinter(engine.domain, controller.key, clock=clock)
