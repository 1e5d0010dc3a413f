"""
ConvTranspose operator.

Binds the transposed-convolution planner to a model: checks that the
tensors it needs are declared, broadcasts the bias to the output layout
and registers the output tensor.
"""

import logging
from dataclasses import asdict
from math import prod
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..attributes import ConvTransposeAttributes
from ..planner import ConvTransposePlan, infer_conv_transpose_shape, plan_conv_transpose
from ..types import TensorType
from .base import Operator

logger = logging.getLogger(__name__)


class ConvTransposeOperator(Operator):
    """
    Transposed convolution, lowered to GEMM + col2im + bias AXPY.

    Args:
        attributes: Kernel, stride, dilation, padding and group attributes
        input_name: Input tensor ``[N, C, spatial...]``
        weight_name: Weight tensor ``[C, M / group, kernel...]``
        output_name: Output tensor name
        bias_name: Optional bias tensor ``[M]``
    """

    def __init__(
        self,
        attributes: ConvTransposeAttributes,
        input_name: str,
        weight_name: str,
        output_name: str,
        bias_name: Optional[str] = None,
    ):
        self.attributes = attributes
        self.input_name = input_name
        self.weight_name = weight_name
        self.output_name = output_name
        self.bias_name = bias_name
        self.broadcast_bias_name: Optional[str] = None
        self.output_type: TensorType = TensorType.UNDEFINED
        self._plan: Optional[ConvTransposePlan] = None

    @property
    def input_names(self) -> List[str]:
        names = [self.input_name, self.weight_name]
        if self.bias_name:
            names.append(self.bias_name)
        return names

    @property
    def output_names(self) -> List[str]:
        return [self.output_name]

    @property
    def plan(self) -> ConvTransposePlan:
        if self._plan is None:
            raise RuntimeError("ConvTranspose operator is not initialized")
        return self._plan

    def type_inference(self, input_types: Sequence[TensorType]) -> List[TensorType]:
        return [input_types[0]]

    def shape_inference(self, input_shapes: Sequence[Sequence[int]]) -> List[List[int]]:
        if len(input_shapes) < 2:
            raise ValueError("ConvTranspose needs the input and weight shapes")
        output_shape, _ = infer_conv_transpose_shape(input_shapes[0], input_shapes[1], self.attributes)
        return [output_shape]

    def initialize(self, model) -> None:
        for name in self.input_names:
            if not model.check_if_tensor_already_exist(name):
                raise RuntimeError(
                    f"ConvTranspose: tensor '{name}' is not found in model '{model.name}'"
                )

        input_type = model.get_tensor_type(self.input_name)
        if input_type != TensorType.FLOAT:
            raise RuntimeError(
                f"ConvTranspose: only float tensors are supported, '{self.input_name}' is {input_type.value}"
            )

        input_shape = model.get_tensor_shape(self.input_name)
        weight_shape = model.get_tensor_shape(self.weight_name)
        output_shape = self.shape_inference([input_shape, weight_shape])[0]
        self.output_type = self.type_inference([input_type])[0]

        if self.bias_name:
            self.broadcast_bias_name = self._broadcast_bias(model, output_shape)

        self._plan = plan_conv_transpose(
            input_shape,
            weight_shape,
            self.attributes,
            input_name=self.input_name,
            weight_name=self.weight_name,
            output_name=self.output_name,
            bias_name=self.broadcast_bias_name,
        )

        if model.check_if_tensor_already_exist(self.output_name):
            declared = model.get_tensor_shape(self.output_name)
            if declared != list(self._plan.output_shape):
                raise RuntimeError(
                    f"ConvTranspose: output '{self.output_name}' is declared with shape "
                    f"{declared}, inferred {list(self._plan.output_shape)}"
                )
        else:
            model.add_intermediate_tensor(self.output_name, self.output_type, self._plan.output_shape)

        logger.info(
            f"ConvTranspose {self.input_name}{input_shape} * {self.weight_name}{weight_shape} "
            f"-> {self.output_name}{list(self._plan.output_shape)}"
        )

    def _broadcast_bias(self, model, output_shape: List[int]) -> str:
        """Register the bias repeated over the output spatial positions."""
        bias_type = model.get_tensor_type(self.bias_name)
        if bias_type != TensorType.FLOAT:
            raise RuntimeError(
                f"ConvTranspose: broadcasting of non-float bias '{self.bias_name}' "
                f"({bias_type.value}) is not supported"
            )
        if not model.is_initialized_tensor(self.bias_name):
            raise RuntimeError(f"ConvTranspose: bias '{self.bias_name}' must be an initialized tensor")

        bias_shape = model.get_tensor_shape(self.bias_name)
        channels = output_shape[1]
        if bias_shape != [channels]:
            raise ValueError(
                f"ConvTranspose: bias shape {bias_shape} does not match {channels} output channels"
            )

        name = f"{self.bias_name}bcast"
        if not model.check_if_tensor_already_exist(name):
            data = model.get_initialized_tensor_data(self.bias_name)
            broadcast = np.repeat(data, prod(output_shape[2:]))
            model.add_initialized_tensor(name, TensorType.FLOAT, output_shape[1:], broadcast)
        return name

    def generate(self, op_name: str, renderer) -> str:
        return renderer.render_program(op_name, self.plan.program, title=f"ConvTranspose {op_name}")

    def generate_session_members_code(self, op_name: str, renderer) -> str:
        return renderer.render_workspace(op_name, self.plan.workspace)

    def describe(self) -> Dict[str, Any]:
        description = super().describe()
        description["attributes"] = asdict(self.attributes)
        return description
