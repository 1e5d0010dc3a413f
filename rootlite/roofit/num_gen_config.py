"""
Numeric event generator configuration.

Defaults follow the usual FOAM settings: 200 samples per cell exploration
and a cell budget that grows with the number of generated dimensions.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass
class FoamConfig:
    """Settings for the FOAM cell-based sampler."""
    n_sample: int = 200  # function calls per cell exploration
    n_cell_1d: int = 30
    n_cell_2d: int = 500
    n_cell_3d: int = 5000
    n_cell_nd: int = 10000
    chat_level: int = 0  # 0 quiet, 1 summary, 2 per-split details

    def n_cells(self, dimensions: int) -> int:
        """Cell budget for a given number of dimensions."""
        if dimensions == 1:
            return self.n_cell_1d
        if dimensions == 2:
            return self.n_cell_2d
        if dimensions == 3:
            return self.n_cell_3d
        return self.n_cell_nd

    def validate(self) -> None:
        """Validate configuration."""
        if self.n_sample < 2:
            raise ValueError("n_sample must be at least 2")
        for name in ("n_cell_1d", "n_cell_2d", "n_cell_3d", "n_cell_nd"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")


@dataclass
class AcceptRejectConfig:
    """Settings for the accept/reject sampler."""
    n_trial_1d: int = 1000  # function calls used to estimate the maximum
    n_trial_nd: int = 100000
    safety_factor: float = 1.2  # envelope = safety_factor * observed maximum

    def validate(self) -> None:
        """Validate configuration."""
        if self.n_trial_1d < 1 or self.n_trial_nd < 1:
            raise ValueError("trial counts must be positive")
        if self.safety_factor < 1.0:
            raise ValueError("safety_factor must be >= 1")


@dataclass
class NumGenConfig:
    """Choice and settings of the numeric generator."""
    method: str = "foam"
    foam: FoamConfig = field(default_factory=FoamConfig)
    accept_reject: AcceptRejectConfig = field(default_factory=AcceptRejectConfig)

    def __post_init__(self):
        """Validate configuration."""
        self.foam.validate()
        self.accept_reject.validate()


def load_num_gen_config(config_path) -> NumGenConfig:
    """
    Load generator configuration from a YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        NumGenConfig instance

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    config = NumGenConfig(
        method=data.get("method", "foam"),
        foam=FoamConfig(**data.get("foam", {})),
        accept_reject=AcceptRejectConfig(**data.get("accept_reject", {})),
    )
    logger.info(f"Loaded numeric generator config from {path}: method={config.method}")
    return config
