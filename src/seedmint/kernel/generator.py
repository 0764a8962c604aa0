"""Procedural generator: 256-bit seed -> shape description -> SVG markup.

Pure and deterministic. No I/O, no randomness source other than the seed,
no retained state. Every sub-seed is derived with hash_utils.rehash, so
identical (seed, config) always yields byte-identical markup.
"""

from dataclasses import dataclass
from typing import Tuple

from seedmint.config import GeneratorConfig
from .hash_utils import rehash, validate_uint256

FILL = "transparent"
SVG_NAMESPACE = "http://www.w3.org/2000/svg"


@dataclass(frozen=True)
class PathDescription:
    """One stroked path: command tokens like "M 12 34" plus a stroke color."""
    commands: Tuple[str, ...]
    stroke: str
    fill: str = FILL


@dataclass(frozen=True)
class ShapeDescription:
    """Ordered paths derived from one seed. Ephemeral, never persisted."""
    seed: int
    paths: Tuple[PathDescription, ...]


def _build_path(path_seed: int, config: GeneratorConfig) -> PathDescription:
    size = config.canvas_size
    commands = config.command_alphabet
    command_count = (path_seed % config.max_commands_per_path) + 1

    tokens = []
    for j in range(command_count):
        cmd_seed = rehash(path_seed, j + size)
        command = commands[cmd_seed % len(commands)]
        p1 = rehash(cmd_seed, 2 * size) % size
        p2 = rehash(cmd_seed, 2 * size + 1) % size
        tokens.append(f"{command} {p1} {p2}")

    colors = config.color_alphabet
    return PathDescription(
        commands=tuple(tokens),
        stroke=colors[path_seed % len(colors)],
    )


def build_shape(seed: int, config: GeneratorConfig) -> ShapeDescription:
    """Expand a seed into its shape description.

    path_count = (seed mod max_path_count) + 1, and path i is built from
    rehash(seed, i).

    Raises:
        InvalidSeed: If seed is not an unsigned 256-bit integer
    """
    validate_uint256(seed)
    path_count = (seed % config.max_path_count) + 1
    paths = tuple(_build_path(rehash(seed, i), config) for i in range(path_count))
    return ShapeDescription(seed=seed, paths=paths)


def render_svg(shape: ShapeDescription, config: GeneratorConfig) -> str:
    """Serialize a shape description inside a square canvas wrapper."""
    size = config.canvas_size
    parts = [f"<svg xmlns='{SVG_NAMESPACE}' height='{size}' width='{size}'>"]
    for path in shape.paths:
        d = " ".join(path.commands)
        parts.append(f"<path d='{d}' fill='{path.fill}' stroke='{path.stroke}'/>")
    parts.append("</svg>")
    return "".join(parts)


def generate(seed: int, config: GeneratorConfig) -> str:
    """Generate SVG markup for a seed. Referentially transparent."""
    return render_svg(build_shape(seed, config), config)
