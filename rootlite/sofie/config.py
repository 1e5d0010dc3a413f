"""
YAML model descriptions for the code generator.

Example file::

    name: upsample2d
    backend: cpp
    tensors:
      - {name: X, kind: input, shape: [1, 3, 8, 8]}
      - {name: W, kind: initialized, shape: [3, 2, 3, 3], seed: 7}
      - {name: B, kind: initialized, shape: [2], values: [0.1, -0.2]}
    operators:
      - type: ConvTranspose
        input: X
        weight: W
        bias: B
        output: Y
        attributes: {strides: [2, 2], pads: [1, 1, 1, 1]}
    outputs: [Y]
"""

import logging
from dataclasses import dataclass, field
from math import prod
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import yaml

from .attributes import ConvTransposeAttributes
from .model import Model, TensorKind
from .operators import ConvTransposeOperator
from .types import TensorType

logger = logging.getLogger(__name__)

SUPPORTED_OPERATORS = ("ConvTranspose",)


@dataclass
class TensorConfig:
    """One declared tensor."""

    name: str
    shape: List[int]
    kind: TensorKind = TensorKind.INPUT
    type: TensorType = TensorType.FLOAT
    values: Optional[List[float]] = None  # explicit data for initialized tensors
    seed: int = 42  # random normal data when no values are given

    def __post_init__(self):
        """Validate configuration."""
        if isinstance(self.kind, str):
            self.kind = TensorKind(self.kind.lower())
        if isinstance(self.type, str):
            self.type = TensorType.from_string(self.type)
        if self.kind == TensorKind.INTERMEDIATE:
            raise ValueError(f"Tensor '{self.name}': intermediate tensors are produced by operators")
        if self.values is not None and len(self.values) != prod(self.shape):
            raise ValueError(
                f"Tensor '{self.name}' has {len(self.values)} values for shape {self.shape}"
            )

    def data(self) -> np.ndarray:
        if self.values is not None:
            return np.asarray(self.values, dtype=self.type.numpy_dtype)
        rng = np.random.default_rng(self.seed)
        return rng.standard_normal(prod(self.shape)).astype(self.type.numpy_dtype)


@dataclass
class OperatorConfig:
    """One operator node."""

    type: str
    input: str
    weight: str
    output: str
    bias: Optional[str] = None
    attributes: ConvTransposeAttributes = field(default_factory=ConvTransposeAttributes)

    def __post_init__(self):
        """Validate configuration."""
        if self.type not in SUPPORTED_OPERATORS:
            raise ValueError(
                f"Unsupported operator type: {self.type}. Must be one of {list(SUPPORTED_OPERATORS)}"
            )
        if isinstance(self.attributes, dict):
            self.attributes = ConvTransposeAttributes(**self.attributes)


@dataclass
class ModelConfig:
    """Complete model description."""

    name: str
    tensors: List[TensorConfig]
    operators: List[OperatorConfig]
    outputs: List[str]
    backend: str = "cpp"


def _parse(data: Dict[str, Any]) -> ModelConfig:
    try:
        tensors = [TensorConfig(**t) for t in data.get("tensors", [])]
        operators = [OperatorConfig(**op) for op in data.get("operators", [])]
    except TypeError as e:
        raise ValueError(f"Invalid model description: {e}") from e

    if not operators:
        raise ValueError("Model description has no operators")

    outputs = data.get("outputs") or [operators[-1].output]
    return ModelConfig(
        name=data.get("name", "model"),
        tensors=tensors,
        operators=operators,
        outputs=list(outputs),
        backend=data.get("backend", "cpp"),
    )


def load_model_config(config_path) -> ModelConfig:
    """
    Load a model description from a YAML file.

    Args:
        config_path: Path to YAML file

    Returns:
        ModelConfig instance

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the description is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    config = _parse(data)
    logger.info(f"Loaded model '{config.name}' with {len(config.operators)} operator(s) from {path}")
    return config


def build_model(config: ModelConfig) -> Model:
    """
    Build and initialize a Model from a description.

    Args:
        config: Parsed model description

    Returns:
        Initialized Model
    """
    model = Model(config.name)
    for t in config.tensors:
        if t.kind == TensorKind.INPUT:
            model.add_input_tensor(t.name, t.type, t.shape)
        else:
            model.add_initialized_tensor(t.name, t.type, t.shape, t.data())

    for op in config.operators:
        model.add_operator(
            ConvTransposeOperator(
                op.attributes,
                input_name=op.input,
                weight_name=op.weight,
                output_name=op.output,
                bias_name=op.bias,
            )
        )
    model.add_output_tensor_names(config.outputs)
    model.initialize()
    return model
