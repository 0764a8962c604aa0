"""Pytest configuration and shared fixtures.

No sys.path hacks - tests import from the installed seedmint package.
"""

import pytest

from seedmint.collaborators import (
    DataUriPublisher,
    FeeBalanceGate,
    InMemoryOwnerRegistry,
    SimulatedRandomnessProvider,
)
from seedmint.config import DEFAULT_CONFIG, MintConfig, RandomnessParams
from seedmint.kernel.ledger import RequestLedger


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


class CountingPublisher(DataUriPublisher):
    """DataUriPublisher that records every markup it was asked to publish."""

    def __init__(self):
        super().__init__()
        self.published = []

    def publish(self, markup, item_id):
        self.published.append((item_id, markup))
        return super().publish(markup, item_id)


@pytest.fixture
def paid_config():
    return MintConfig(randomness=RandomnessParams(key_hash="0xkey", fee=100))


@pytest.fixture
def provider():
    return SimulatedRandomnessProvider(identity="vrf-coordinator")


@pytest.fixture
def gate():
    return FeeBalanceGate(balance=10_000, fee=0)


@pytest.fixture
def registry():
    return InMemoryOwnerRegistry()


@pytest.fixture
def publisher():
    return CountingPublisher()


@pytest.fixture
def ledger(provider, gate, registry, publisher):
    return RequestLedger(DEFAULT_CONFIG, provider, gate, registry, publisher)
