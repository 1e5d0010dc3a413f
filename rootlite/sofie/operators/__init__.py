"""
Operators understood by the code generator.
"""

from .base import Operator
from .conv_transpose import ConvTransposeOperator

__all__ = ["Operator", "ConvTransposeOperator"]
