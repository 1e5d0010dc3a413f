"""
Tensor element types understood by the code generator.
"""

from enum import Enum

import numpy as np


class TensorType(Enum):
    """Element type of a model tensor."""
    FLOAT = "float"
    DOUBLE = "double"
    INT32 = "int32"
    INT64 = "int64"
    BOOL = "bool"
    UNDEFINED = "undefined"

    @property
    def numpy_dtype(self):
        if self is TensorType.UNDEFINED:
            raise ValueError("UNDEFINED tensor type has no numpy dtype")
        return _NUMPY_DTYPES[self]

    @property
    def cpp_name(self) -> str:
        if self is TensorType.UNDEFINED:
            raise ValueError("UNDEFINED tensor type has no C++ type")
        return _CPP_NAMES[self]

    @classmethod
    def from_string(cls, name: str) -> "TensorType":
        """Parse a type name such as "float" or "FLOAT"."""
        key = name.strip().lower()
        aliases = {"float32": "float", "float64": "double", "int": "int32"}
        key = aliases.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown tensor type: {name}")


_NUMPY_DTYPES = {
    TensorType.FLOAT: np.float32,
    TensorType.DOUBLE: np.float64,
    TensorType.INT32: np.int32,
    TensorType.INT64: np.int64,
    TensorType.BOOL: np.bool_,
}

_CPP_NAMES = {
    TensorType.FLOAT: "float",
    TensorType.DOUBLE: "double",
    TensorType.INT32: "int32_t",
    TensorType.INT64: "int64_t",
    TensorType.BOOL: "bool",
}
