"""Configuration models for the generator and the randomness request.

Configuration is fixed at construction: every model is frozen, and the
alphabets are canonicalized to tuples.
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Characters that would break out of an SVG attribute value
_FORBIDDEN_TOKEN_CHARS = frozenset("'\"<>&")

# rehash inputs reach 2 * canvas_size + 1 and canvas_size + max_commands_per_path - 1,
# both of which must stay below 2**256
MAX_CANVAS_SIZE = 2 ** 255 - 1
MAX_COMMANDS_PER_PATH = 2 ** 255


def _validate_alphabet(v: Tuple[str, ...], label: str) -> Tuple[str, ...]:
    if not isinstance(v, tuple):
        v = tuple(v)
    if not v:
        raise ValueError(f"{label} must contain at least one entry")
    for token in v:
        if not token:
            raise ValueError(f"{label} entries must be non-empty strings")
        bad = sorted(set(token) & _FORBIDDEN_TOKEN_CHARS)
        if bad:
            raise ValueError(f"{label} entry {token!r} contains forbidden characters: {bad}")
    return v


class GeneratorConfig(BaseModel):
    """Shape parameters for the procedural generator."""
    max_path_count: int = Field(10, ge=1, description="Upper bound on paths per graphic")
    max_commands_per_path: int = Field(5, ge=1, description="Upper bound on commands per path")
    canvas_size: int = Field(500, ge=1, description="Width and height of the square canvas")
    command_alphabet: Tuple[str, ...] = ("M", "L")
    color_alphabet: Tuple[str, ...] = ("red", "blue", "green", "yellow", "black", "purple")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('canvas_size')
    @classmethod
    def validate_canvas_size(cls, v: int) -> int:
        if v > MAX_CANVAS_SIZE:
            raise ValueError(f"canvas_size must be at most 2**255 - 1, got {v}")
        return v

    @field_validator('max_commands_per_path')
    @classmethod
    def validate_max_commands_per_path(cls, v: int) -> int:
        if v > MAX_COMMANDS_PER_PATH:
            raise ValueError(f"max_commands_per_path must be at most 2**255, got {v}")
        return v

    @field_validator('command_alphabet')
    @classmethod
    def validate_command_alphabet(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Path commands are emitted verbatim into the `d` attribute."""
        return _validate_alphabet(v, "command_alphabet")

    @field_validator('color_alphabet')
    @classmethod
    def validate_color_alphabet(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Colors are emitted verbatim into the `stroke` attribute."""
        return _validate_alphabet(v, "color_alphabet")


class RandomnessParams(BaseModel):
    """Parameters the randomness provider needs to authenticate and price a request."""
    key_hash: str = Field(
        "0x" + "00" * 32,
        min_length=1,
        description="Provider key identifier the request is made against"
    )
    fee: int = Field(0, ge=0, description="Fee (smallest unit) consumed per request")

    model_config = ConfigDict(frozen=True, extra="forbid")


class MintConfig(BaseModel):
    """Complete configuration surface, immutable after construction."""
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    randomness: RandomnessParams = Field(default_factory=RandomnessParams)

    model_config = ConfigDict(frozen=True, extra="forbid")


DEFAULT_CONFIG = MintConfig()
