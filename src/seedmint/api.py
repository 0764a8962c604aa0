"""Public API for the seedmint package.

High-level functions that return complete, structured results.
Callers should use these instead of reaching into seedmint.kernel.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel

from seedmint._internal.io.config import load_config_from_path
from seedmint.collaborators import (
    DataUriPublisher,
    FeeBalanceGate,
    InMemoryOwnerRegistry,
    SimulatedRandomnessProvider,
)
from seedmint.config import DEFAULT_CONFIG, GeneratorConfig, MintConfig
from seedmint.errors import InvalidSeed
from seedmint.kernel.dispatch import CallbackInbox
from seedmint.kernel.events import EventLog
from seedmint.kernel.generator import build_shape, render_svg
from seedmint.kernel.hash_utils import hash_markup, validate_uint256
from seedmint.kernel.ledger import RequestLedger


def _normalize_path(path: Union[str, os.PathLike, Path]) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


def _generator_config(config: Optional[Union[MintConfig, GeneratorConfig]]) -> GeneratorConfig:
    if config is None:
        return DEFAULT_CONFIG.generator
    if isinstance(config, MintConfig):
        return config.generator
    return config


class ShapeSummary(BaseModel):
    """Structural summary of the graphic generated for a seed."""
    seed: str  # 0x-prefixed, 64 hex digits
    path_count: int
    commands_per_path: List[int]
    strokes: List[str]
    digest: str  # sha256 of the markup, "sha256:"-prefixed


class VerificationResult(BaseModel):
    """Result of recomputing a graphic from its seed."""
    ok: bool
    expected_digest: str
    actual_digest: str


def load_config(path: Union[str, os.PathLike, Path]) -> MintConfig:
    """Load a configuration JSON file."""
    return load_config_from_path(_normalize_path(path))


def parse_seed(text: str) -> int:
    """Parse a decimal or 0x-prefixed hex seed and range-check it.

    Raises:
        InvalidSeed: Not a number, or outside [0, 2**256)
    """
    raw = text.strip()
    try:
        value = int(raw, 16) if raw.lower().startswith("0x") else int(raw, 10)
    except ValueError:
        raise InvalidSeed(f"Seed must be decimal or 0x-prefixed hex, got {text!r}", value=text)
    return validate_uint256(value)


def render(seed: int, config: Optional[Union[MintConfig, GeneratorConfig]] = None) -> str:
    """Return the SVG markup for a seed."""
    gen_config = _generator_config(config)
    return render_svg(build_shape(seed, gen_config), gen_config)


def describe(seed: int, config: Optional[Union[MintConfig, GeneratorConfig]] = None) -> ShapeSummary:
    """Summarize the shape generated for a seed without returning the markup."""
    gen_config = _generator_config(config)
    shape = build_shape(seed, gen_config)
    return ShapeSummary(
        seed=f"0x{seed:064x}",
        path_count=len(shape.paths),
        commands_per_path=[len(p.commands) for p in shape.paths],
        strokes=[p.stroke for p in shape.paths],
        digest=hash_markup(render_svg(shape, gen_config)),
    )


def verify_markup(
    seed: int,
    markup: Union[str, bytes],
    config: Optional[Union[MintConfig, GeneratorConfig]] = None,
) -> VerificationResult:
    """Recompute the graphic for `seed` and compare it byte-for-byte with `markup`.

    Any observer holding the seed can check a published graphic this way.
    """
    expected = hash_markup(render(seed, config))
    actual = hash_markup(markup)
    return VerificationResult(ok=expected == actual, expected_digest=expected, actual_digest=actual)


@dataclass
class Simulation:
    """A ledger wired to in-memory collaborators."""
    ledger: RequestLedger
    provider: SimulatedRandomnessProvider
    inbox: CallbackInbox
    payment: FeeBalanceGate
    registry: InMemoryOwnerRegistry
    publisher: DataUriPublisher

    @property
    def events(self) -> EventLog:
        return self.ledger.events


def build_simulation(
    config: Optional[MintConfig] = None,
    *,
    balance: int = 0,
    base_seed: Optional[int] = None,
) -> Simulation:
    """Wire a RequestLedger to a simulated provider, inbox, gate, registry and publisher.

    Provider callbacks are queued in the inbox; nothing reaches the ledger
    until `inbox.drain()` runs (or `inbox.start()` launches the worker).
    """
    config = config or DEFAULT_CONFIG
    provider = SimulatedRandomnessProvider(base_seed=base_seed)
    payment = FeeBalanceGate(balance=balance, fee=config.randomness.fee)
    registry = InMemoryOwnerRegistry()
    publisher = DataUriPublisher()
    ledger = RequestLedger(config, provider, payment, registry, publisher)
    inbox = CallbackInbox(ledger)
    provider.sink = inbox.submit
    return Simulation(
        ledger=ledger,
        provider=provider,
        inbox=inbox,
        payment=payment,
        registry=registry,
        publisher=publisher,
    )
