"""
PyTorch reference for transposed convolution.

Wraps ``torch.nn.functional.conv_transpose{1,2,3}d`` with the same
attribute record the planner uses, so generated kernels can be checked
against an independent implementation.
"""

from typing import Optional

import numpy as np
import torch
import torch.nn.functional as F

from .attributes import ConvTransposeAttributes
from .planner import infer_conv_transpose_shape

_FUNCTIONS = {
    1: F.conv_transpose1d,
    2: F.conv_transpose2d,
    3: F.conv_transpose3d,
}


def conv_transpose_reference(
    x: np.ndarray,
    w: np.ndarray,
    b: Optional[np.ndarray] = None,
    attributes: Optional[ConvTransposeAttributes] = None,
) -> np.ndarray:
    """
    Compute a transposed convolution with PyTorch.

    Attributes are resolved exactly like the planner resolves them, so
    auto padding and averaged asymmetric padding are reproduced.

    Args:
        x: Input ``[N, C, spatial...]``
        w: Weight ``[C, M / group, kernel...]``
        b: Optional bias ``[M]``
        attributes: Operator attributes

    Returns:
        Output as a float32 NumPy array
    """
    _, resolved = infer_conv_transpose_shape(x.shape, w.shape, attributes)
    fn = _FUNCTIONS[resolved.spatial_rank]

    with torch.no_grad():
        out = fn(
            torch.as_tensor(np.asarray(x, dtype=np.float32)),
            torch.as_tensor(np.asarray(w, dtype=np.float32)),
            None if b is None else torch.as_tensor(np.asarray(b, dtype=np.float32)),
            stride=resolved.strides,
            padding=resolved.pads_begin,
            output_padding=resolved.output_padding,
            groups=resolved.group,
            dilation=resolved.dilations,
        )
    return out.numpy()
