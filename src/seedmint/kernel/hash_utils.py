"""Hash utilities with explicit encoding rules for stable derivation.

This module provides the seed-mixing function and content digests that
guarantee identical output across Python versions, processes and machines.

Key rules:
- Seeds are unsigned 256-bit integers (0 <= x < 2**256)
- Each seed is encoded as exactly 32 big-endian bytes before hashing
- rehash(a, b) = SHA-256(enc(a) || enc(b)) read back as a big-endian integer
- JSON inputs: integers only, floats BANNED
"""

import hashlib
from typing import Any, Union

from seedmint.errors import InvalidSeed

UINT256_BYTES = 32
UINT256_MAX = 2 ** 256 - 1


class CanonicalizationError(ValueError):
    """Raised when an object cannot be canonicalized."""
    pass


def validate_uint256(value: Any, label: str = "seed") -> int:
    """Return value unchanged if it is an unsigned 256-bit integer.

    bool is rejected even though it subclasses int: a flag is never a seed.

    Raises:
        InvalidSeed: If value is not an int in [0, 2**256)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSeed(
            f"{label} must be an int, got {type(value).__name__}",
            value=value,
        )
    if value < 0 or value > UINT256_MAX:
        raise InvalidSeed(f"{label} out of uint256 range: {value}", value=value)
    return value


def encode_uint256(value: int) -> bytes:
    """Encode an unsigned 256-bit integer as 32 big-endian bytes."""
    return validate_uint256(value, "value").to_bytes(UINT256_BYTES, "big")


def rehash(a: int, b: int) -> int:
    """Derive a new 256-bit value from two 256-bit inputs.

    SHA-256 over the 64-byte concatenation of both fixed-width encodings.
    Changing this function changes every generated graphic, including those
    for items seeded but not yet finalized.

    Raises:
        InvalidSeed: If either input is outside the uint256 range
    """
    digest = hashlib.sha256(encode_uint256(a) + encode_uint256(b)).digest()
    return int.from_bytes(digest, "big")


def hash_markup(content: Union[str, bytes]) -> str:
    """Compute SHA256 hash of generated markup.

    Args:
        content: Markup as string or bytes

    Returns:
        SHA256 hash as hex string (prefixed with "sha256:")
    """
    if isinstance(content, str):
        content_bytes = content.encode('utf-8')
    else:
        content_bytes = content

    digest = hashlib.sha256(content_bytes).hexdigest()
    return f"sha256:{digest}"


def validate_json_types(obj: Any, path: str = "") -> None:
    """Validate that a parsed JSON document contains only allowed types.

    Numbers must be integers: floats are BANNED (hard error).

    Raises:
        CanonicalizationError: If floats or non-JSON types are found
    """
    if obj is None or isinstance(obj, (bool, int, str)):
        return
    elif isinstance(obj, float):
        raise CanonicalizationError(
            f"Floats are not allowed (at {path or '<root>'}). Use integers instead."
        )
    elif isinstance(obj, dict):
        for key, value in obj.items():
            if not isinstance(key, str):
                raise CanonicalizationError(
                    f"Dictionary keys must be strings at {path}, got {type(key).__name__}"
                )
            validate_json_types(value, f"{path}.{key}" if path else key)
    elif isinstance(obj, list):
        for i, item in enumerate(obj):
            validate_json_types(item, f"{path}[{i}]" if path else f"[{i}]")
    else:
        raise CanonicalizationError(
            f"Non-JSON type at {path}: {type(obj).__name__}. "
            f"Only None, bool, int, str, dict, and list are allowed."
        )

