import os
import sys

import pytest


# Ensure repository src directory is on sys.path for tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from tally_ledger import (  # noqa: E402
    ElGamalCapability,
    LedgerConfig,
    LocalDecryptionOracle,
    PollLedger,
    elgamal_keygen,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(scope="session")
def keys():
    return elgamal_keygen()


@pytest.fixture
def capability(keys):
    pub, _ = keys
    return ElGamalCapability(pub)


@pytest.fixture
def oracle(keys):
    pub, priv = keys
    return LocalDecryptionOracle(pub, priv, oracle_id="oracle-1", max_count=1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def poll(capability, oracle, clock):
    return PollLedger(
        ["A", "B"],
        capability,
        oracle,
        LedgerConfig(oracle_id="oracle-1", request_ttl=60),
        title="Lunch",
        clock=clock,
    )
