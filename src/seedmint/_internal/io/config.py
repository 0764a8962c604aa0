"""Configuration I/O helpers (internal)."""

import json
from pathlib import Path
from typing import Union

from seedmint.config import MintConfig
from seedmint.kernel.hash_utils import validate_json_types


class ConfigLoadError(ValueError):
    """Raised when a configuration file cannot be read or parsed."""
    pass


def load_config_from_path(path: Union[str, Path]) -> MintConfig:
    """Load a MintConfig from a JSON file path.

    Floats are rejected before validation so that a value like 500.0 never
    silently becomes a canvas size.

    Raises:
        ConfigLoadError: File missing, not JSON, or containing floats
        pydantic.ValidationError: Structure or values invalid
    """
    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigLoadError(f"Cannot read config {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Config {config_path} is not valid JSON: {e}") from e

    try:
        validate_json_types(data)
    except ValueError as e:
        raise ConfigLoadError(f"Config {config_path}: {e}") from e
    return MintConfig.model_validate(data)
