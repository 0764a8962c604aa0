"""Error code constants for seedmint failures.

These constants prevent stringly-typed error codes and ensure
client code matches on the correct failure reasons.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Ledger and generator error codes."""

    # Request phase
    INSUFFICIENT_RESOURCE = "INSUFFICIENT_RESOURCE"
    DUPLICATE_REQUEST_HANDLE = "DUPLICATE_REQUEST_HANDLE"

    # Fulfillment phase
    UNAUTHORIZED_CALLBACK = "UNAUTHORIZED_CALLBACK"
    INVALID_SEED = "INVALID_SEED"
    UNKNOWN_REQUEST = "UNKNOWN_REQUEST"
    ALREADY_SEEDED = "ALREADY_SEEDED"

    # Finalization phase
    SEED_NOT_READY = "SEED_NOT_READY"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    UNKNOWN_ITEM = "UNKNOWN_ITEM"
