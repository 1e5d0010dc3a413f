"""
Reproducibility utilities.

Seed management for event generation and stable hashes of operator
configurations, stamped into generated source files.
"""

from dataclasses import dataclass, asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Union
import hashlib
import json
import platform
import random
import sys

import numpy as np
import torch


@dataclass
class SeedConfig:
    """Seed configuration for reproducibility."""
    seed: int = 42
    set_python: bool = True
    set_numpy: bool = True
    set_torch: bool = True


def set_seed(seed_or_config: Union[int, SeedConfig] = 42) -> np.random.Generator:
    """
    Set all random seeds for reproducibility.

    Args:
        seed_or_config: Either an integer seed (default: 42) or a SeedConfig object

    Returns:
        A numpy Generator seeded with the same value, for code that takes
        an explicit ``rng`` argument
    """
    if isinstance(seed_or_config, int):
        config = SeedConfig(seed=seed_or_config)
    else:
        config = seed_or_config

    if config.set_python:
        random.seed(config.seed)

    if config.set_numpy:
        np.random.seed(config.seed)

    if config.set_torch:
        torch.manual_seed(config.seed)
        if torch.cuda.is_available():
            torch.cuda.manual_seed_all(config.seed)

    return np.random.default_rng(config.seed)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    return value


def hash_config(config: Any) -> str:
    """
    Generate a SHA256 hash of a configuration.

    Supports:
    - Dictionaries
    - Dataclasses
    - Nested structures (enums are hashed by name)

    Args:
        config: Configuration object (dict or dataclass)

    Returns:
        64-character hex string (SHA256 hash)
    """
    if is_dataclass(config) and not isinstance(config, type):
        config_dict = asdict(config)
    elif isinstance(config, dict):
        config_dict = config
    else:
        config_dict = vars(config) if hasattr(config, "__dict__") else {"value": str(config)}

    # Sort keys for consistent ordering
    json_str = json.dumps(_to_jsonable(config_dict), sort_keys=True, default=str)

    return hashlib.sha256(json_str.encode()).hexdigest()


def get_reproducibility_info() -> Dict[str, Any]:
    """
    Collect environment information for reproducibility logging.

    Returns:
        Dict with Python, NumPy and PyTorch versions, platform, timestamp
    """
    return {
        "python_version": sys.version.split()[0],
        "torch_version": torch.__version__,
        "numpy_version": np.__version__,
        "platform": platform.platform(),
        "timestamp": datetime.now().isoformat(),
    }
