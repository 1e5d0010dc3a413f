"""
Transposed-convolution planner and inference code generator.

- attributes / planner: pure shape inference and kernel planning
- ir: the gather/multiply/scatter program a plan describes
- executor / reference: NumPy interpreter and PyTorch oracle
- model / operators: tensor registry and operator binding
- renderers: C++ and NumPy source backends
"""

from .attributes import AutoPad, ConvTransposeAttributes, ResolvedAttributes
from .executor import execute_plan, run_conv_transpose
from .model import Model, TensorKind, read_weight_file
from .operators import ConvTransposeOperator, Operator
from .planner import ConvTransposePlan, infer_conv_transpose_shape, plan_conv_transpose
from .renderers import RendererRegistry, create_renderer, register_renderer
from .types import TensorType

__all__ = [
    "AutoPad",
    "ConvTransposeAttributes",
    "ResolvedAttributes",
    "execute_plan",
    "run_conv_transpose",
    "Model",
    "TensorKind",
    "read_weight_file",
    "ConvTransposeOperator",
    "Operator",
    "ConvTransposePlan",
    "infer_conv_transpose_shape",
    "plan_conv_transpose",
    "RendererRegistry",
    "create_renderer",
    "register_renderer",
    "TensorType",
]
