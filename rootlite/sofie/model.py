"""
Model - tensor registry and operator list for code generation.

Operators look up the tensors they consume here during ``initialize`` and
register the tensors they produce. Once initialized, the model can emit a
complete inference session through any registered renderer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from math import prod
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from rootlite.infrastructure.reproducibility import hash_config
from .types import TensorType

logger = logging.getLogger(__name__)


class TensorKind(Enum):
    """How a tensor gets its data."""
    INPUT = "input"
    INITIALIZED = "initialized"
    INTERMEDIATE = "intermediate"


@dataclass
class TensorInfo:
    """A declared model tensor."""

    name: str
    type: TensorType
    shape: Tuple[int, ...]
    kind: TensorKind
    data: Optional[np.ndarray] = None

    @property
    def size(self) -> int:
        return prod(self.shape)


class Model:
    """
    Container for declared tensors and the operators that use them.

    Example:
        >>> model = Model("upsample")
        >>> model.add_input_tensor("X", TensorType.FLOAT, [1, 3, 8, 8])
        >>> model.add_initialized_tensor("W", TensorType.FLOAT, [3, 2, 3, 3], w)
        >>> model.add_operator(ConvTransposeOperator(attrs, "X", "W", "Y"))
        >>> model.add_output_tensor_names(["Y"])
        >>> model.initialize()
        >>> source = model.generate("cpp")
    """

    def __init__(self, name: str = "model"):
        self.name = name
        self._tensors: Dict[str, TensorInfo] = {}
        self._operators: List = []
        self._output_names: List[str] = []
        self._initialized = False

    # ------------------------------------------------------------------
    # Tensor declarations
    # ------------------------------------------------------------------

    def _declare(self, info: TensorInfo) -> None:
        if info.name in self._tensors:
            raise ValueError(f"Tensor '{info.name}' is already declared in model '{self.name}'")
        if any(int(d) <= 0 for d in info.shape):
            raise ValueError(f"Tensor '{info.name}' has a non-positive dimension: {list(info.shape)}")
        self._tensors[info.name] = info
        logger.debug(f"Declared {info.kind.value} tensor {info.name} {list(info.shape)}")

    def add_input_tensor(self, name: str, type: TensorType, shape: Sequence[int]) -> None:
        """Declare a tensor supplied at inference time."""
        self._declare(TensorInfo(name, type, tuple(int(d) for d in shape), TensorKind.INPUT))

    def add_initialized_tensor(
        self,
        name: str,
        type: TensorType,
        shape: Sequence[int],
        data: np.ndarray,
    ) -> None:
        """
        Declare a tensor with constant data (weights, biases).

        Raises:
            ValueError: If the data size does not match the shape
        """
        shape = tuple(int(d) for d in shape)
        array = np.asarray(data, dtype=type.numpy_dtype).ravel()
        if array.size != prod(shape):
            raise ValueError(
                f"Tensor '{name}' data has {array.size} elements, shape {list(shape)} needs {prod(shape)}"
            )
        self._declare(TensorInfo(name, type, shape, TensorKind.INITIALIZED, array))

    def add_intermediate_tensor(self, name: str, type: TensorType, shape: Sequence[int]) -> None:
        """Declare a tensor produced by an operator."""
        self._declare(TensorInfo(name, type, tuple(int(d) for d in shape), TensorKind.INTERMEDIATE))

    def add_output_tensor_names(self, names: Sequence[str]) -> None:
        self._output_names.extend(names)

    def check_if_tensor_already_exist(self, name: str) -> bool:
        return name in self._tensors

    def _get(self, name: str) -> TensorInfo:
        if name not in self._tensors:
            raise RuntimeError(f"Tensor '{name}' is not declared in model '{self.name}'")
        return self._tensors[name]

    def get_tensor_shape(self, name: str) -> List[int]:
        return list(self._get(name).shape)

    def get_tensor_type(self, name: str) -> TensorType:
        return self._get(name).type

    def is_initialized_tensor(self, name: str) -> bool:
        return self._get(name).kind == TensorKind.INITIALIZED

    def get_initialized_tensor_data(self, name: str) -> np.ndarray:
        info = self._get(name)
        if info.kind != TensorKind.INITIALIZED:
            raise RuntimeError(f"Tensor '{name}' is not an initialized tensor")
        return info.data

    def tensors(self, kind: Optional[TensorKind] = None) -> List[TensorInfo]:
        """Declared tensors in declaration order, optionally filtered by kind."""
        return [t for t in self._tensors.values() if kind is None or t.kind == kind]

    @property
    def output_tensor_names(self) -> List[str]:
        return list(self._output_names)

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def add_operator(self, operator) -> None:
        self._operators.append(operator)
        self._initialized = False

    @property
    def operators(self) -> List:
        return list(self._operators)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Initialize every operator in order.

        Raises:
            RuntimeError: If an operator references an undeclared tensor or an
                output tensor is never produced
        """
        if self._initialized:
            return
        for index, op in enumerate(self._operators):
            logger.info(f"Initializing operator {index}: {type(op).__name__}")
            op.initialize(self)
        for name in self._output_names:
            if name not in self._tensors:
                raise RuntimeError(f"Output tensor '{name}' is not produced by any operator")
        self._initialized = True

    # ------------------------------------------------------------------
    # Weights and code generation
    # ------------------------------------------------------------------

    def weights(self) -> Dict[str, np.ndarray]:
        """Constant tensor data keyed by tensor name."""
        return {t.name: t.data for t in self.tensors(TensorKind.INITIALIZED)}

    def write_weight_file(self, path) -> Path:
        """
        Write initialized tensors as text: ``name length`` then the values.

        Args:
            path: Destination file

        Returns:
            Path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            for info in self.tensors(TensorKind.INITIALIZED):
                f.write(f"{info.name} {info.size}\n")
                f.write(" ".join(repr(float(v)) for v in info.data))
                f.write("\n")
        logger.info(f"Wrote {len(self.weights())} weight tensors to {path}")
        return path

    def config_hash(self) -> str:
        """Stable hash of the model's tensors and operator attributes."""
        description = {
            "name": self.name,
            "tensors": [
                {"name": t.name, "type": t.type.value, "shape": list(t.shape), "kind": t.kind.value}
                for t in self._tensors.values()
            ],
            "operators": [op.describe() for op in self._operators],
        }
        return hash_config(description)

    def generate(self, backend: str = "cpp") -> str:
        """
        Generate the inference session source for a backend.

        Args:
            backend: Registered renderer name ("cpp", "python")

        Returns:
            Generated source text
        """
        from .renderers import create_renderer

        self.initialize()
        renderer = create_renderer(backend)
        logger.info(f"Generating {backend} code for model '{self.name}'")
        return renderer.render_model(self)


def read_weight_file(path) -> Dict[str, np.ndarray]:
    """
    Read a weight file written by ``Model.write_weight_file``.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a record is truncated
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Weight file not found: {path}")

    weights = {}
    with open(path) as f:
        lines = f.read().splitlines()
    if len(lines) % 2:
        raise ValueError(f"Weight file {path} ends with a header and no values")
    for header, values in zip(lines[0::2], lines[1::2]):
        name, length = header.split()
        data = np.array([float(v) for v in values.split()], dtype=np.float32)
        if data.size != int(length):
            raise ValueError(f"Tensor '{name}' expects {length} values, found {data.size}")
        weights[name] = data
    return weights
