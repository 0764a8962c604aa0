"""seedmint: seed-derived collectible graphics with a verifiable request ledger."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("seedmint")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from seedmint.api import (
    ShapeSummary,
    Simulation,
    VerificationResult,
    build_simulation,
    describe,
    load_config,
    parse_seed,
    render,
    verify_markup,
)
from seedmint.codes import ErrorCode
from seedmint.config import DEFAULT_CONFIG, GeneratorConfig, MintConfig, RandomnessParams
from seedmint.errors import SeedmintError

__all__ = [
    "__version__",
    "render",
    "describe",
    "verify_markup",
    "parse_seed",
    "load_config",
    "build_simulation",
    "Simulation",
    "ShapeSummary",
    "VerificationResult",
    "ErrorCode",
    "SeedmintError",
    "GeneratorConfig",
    "MintConfig",
    "RandomnessParams",
    "DEFAULT_CONFIG",
]
