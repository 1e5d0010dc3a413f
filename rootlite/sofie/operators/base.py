"""
Base operator interface.

Every operator can infer output types and shapes from its inputs, bind
itself to a model (``initialize``) and emit code through a renderer.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from ..types import TensorType


class Operator(ABC):
    """
    Abstract base class for code-generating operators.

    Subclasses must implement:
    - type_inference(): Output element types from input types
    - shape_inference(): Output shapes from input shapes
    - initialize(): Validate against a model and register outputs
    - generate(): Source text of the operator's kernel
    """

    @property
    @abstractmethod
    def input_names(self) -> List[str]:
        """Names of the model tensors consumed by this operator."""
        pass

    @property
    @abstractmethod
    def output_names(self) -> List[str]:
        """Names of the model tensors produced by this operator."""
        pass

    @abstractmethod
    def type_inference(self, input_types: Sequence[TensorType]) -> List[TensorType]:
        pass

    @abstractmethod
    def shape_inference(self, input_shapes: Sequence[Sequence[int]]) -> List[List[int]]:
        """
        Infer output shapes.

        Args:
            input_shapes: Shapes of the operator inputs, in input order

        Returns:
            One shape per output
        """
        pass

    @abstractmethod
    def initialize(self, model) -> None:
        """
        Bind to a model.

        Raises:
            RuntimeError: If a referenced tensor is not declared in the model
        """
        pass

    @abstractmethod
    def generate(self, op_name: str, renderer) -> str:
        """Source text of the operator body."""
        pass

    def generate_session_members_code(self, op_name: str, renderer) -> str:
        """Declarations of operator-private session members."""
        return ""

    def generate_init_code(self, op_name: str, renderer) -> str:
        """Code run once when the session is constructed."""
        return ""

    def describe(self) -> Dict[str, Any]:
        """Serializable description used for hashing generated code."""
        return {"type": type(self).__name__, "inputs": self.input_names, "outputs": self.output_names}
