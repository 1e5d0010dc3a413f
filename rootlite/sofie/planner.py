"""
Shape inference and kernel planning for transposed convolution.

Both entry points are pure functions of the tensor shapes and a
``ConvTransposeAttributes`` record. Nothing here prints source text; the
plan is rendered by a backend from ``rootlite.sofie.renderers``.

Tensor layouts:
- input  ``[N, C, d1, ..., dk]``
- weight ``[C, M / group, k1, ..., kk]``
- bias   ``[M]``
- output ``[N, M, o1, ..., ok]``
"""

import logging
from dataclasses import dataclass
from math import prod
from typing import List, Optional, Sequence, Tuple

from .attributes import AutoPad, ConvTransposeAttributes, ResolvedAttributes
from .ir import Axpy, Buffer, Col2Im, Fill, Gemm, Loop, Node, Slice

logger = logging.getLogger(__name__)

MIN_RANK = 3
MAX_RANK = 5

COL_BUFFER = "col"


def _defaulted(values: Sequence[int], default: int, rank: int, name: str) -> Tuple[int, ...]:
    if not values:
        return (default,) * rank
    if len(values) != rank:
        raise ValueError(f"{name} must have {rank} entries, got {list(values)}")
    return tuple(int(v) for v in values)


def _split_total_padding(total: int, auto_pad: AutoPad) -> Tuple[int, int]:
    """Return (begin, end) for a total padding amount."""
    if auto_pad == AutoPad.SAME_UPPER:
        return total // 2, total - total // 2
    return total - total // 2, total // 2


def resolve_attributes(
    input_shape: Sequence[int],
    weight_shape: Sequence[int],
    attributes: ConvTransposeAttributes,
) -> ResolvedAttributes:
    """
    Fill defaults, validate channels and derive symmetric padding.

    Args:
        input_shape: ``[N, C, spatial...]``
        weight_shape: ``[C, M / group, kernel...]``
        attributes: Requested attributes

    Returns:
        ResolvedAttributes with every field set

    Raises:
        ValueError: On unsupported rank, inconsistent shapes or attributes
    """
    rank = len(input_shape)
    if rank < MIN_RANK or rank > MAX_RANK:
        raise ValueError(
            f"ConvTranspose input must have rank {MIN_RANK}-{MAX_RANK}, "
            f"got shape {list(input_shape)}"
        )
    if len(weight_shape) != rank:
        raise ValueError(
            f"Weight rank {len(weight_shape)} does not match input rank {rank}"
        )
    if any(int(d) <= 0 for d in input_shape) or any(int(d) <= 0 for d in weight_shape):
        raise ValueError(
            f"Shapes must be positive: input {list(input_shape)}, weight {list(weight_shape)}"
        )

    k = rank - 2
    group = attributes.group
    in_channels = int(input_shape[1])

    if in_channels % group != 0:
        raise ValueError(
            f"group={group} does not divide the {in_channels} input channels"
        )
    if int(weight_shape[0]) != in_channels:
        raise ValueError(
            f"Weight has {weight_shape[0]} input channels, input tensor has {in_channels}"
        )
    weight_kernel = tuple(int(v) for v in weight_shape[2:])
    kernel = _defaulted(attributes.kernel_shape, 0, k, "kernel_shape") if attributes.kernel_shape else weight_kernel
    if kernel != weight_kernel:
        raise ValueError(
            f"kernel_shape {list(kernel)} does not match weight spatial shape {list(weight_kernel)}"
        )
    strides = _defaulted(attributes.strides, 1, k, "strides")
    dilations = _defaulted(attributes.dilations, 1, k, "dilations")
    output_padding = _defaulted(attributes.output_padding, 0, k, "output_padding")
    if any(s < 1 for s in strides) or any(d < 1 for d in dilations):
        raise ValueError(f"strides {list(strides)} and dilations {list(dilations)} must be >= 1")
    if any(p < 0 for p in output_padding):
        raise ValueError(f"output_padding must be non-negative, got {list(output_padding)}")

    spatial = [int(v) for v in input_shape[2:]]
    full_extent = [
        strides[i] * (spatial[i] - 1) + output_padding[i] + (kernel[i] - 1) * dilations[i] + 1
        for i in range(k)
    ]

    target: Optional[List[int]] = None
    if attributes.output_shape:
        requested = list(attributes.output_shape)
        if len(requested) == k + 2:
            requested = requested[2:]
        if len(requested) != k:
            raise ValueError(
                f"output_shape must have {k} or {k + 2} entries, got {list(attributes.output_shape)}"
            )
        target = requested
    elif attributes.auto_pad in (AutoPad.SAME_UPPER, AutoPad.SAME_LOWER):
        target = [spatial[i] * strides[i] for i in range(k)]

    if target is not None:
        begins, ends = [], []
        for i in range(k):
            total = full_extent[i] - target[i]
            if total < 0:
                raise ValueError(
                    f"Requested output size {target[i]} on axis {i} exceeds the "
                    f"unpadded size {full_extent[i]}"
                )
            begin, end = _split_total_padding(total, attributes.auto_pad)
            begins.append(begin)
            ends.append(end)
        pads = begins + ends
    elif attributes.auto_pad == AutoPad.VALID or not attributes.pads:
        pads = [0] * (2 * k)
    else:
        if len(attributes.pads) != 2 * k:
            raise ValueError(f"pads must have {2 * k} entries, got {list(attributes.pads)}")
        pads = list(attributes.pads)
        if any(p < 0 for p in pads):
            raise ValueError(f"pads must be non-negative, got {pads}")

    averaged = False
    for i in range(k):
        if pads[i] != pads[i + k]:
            mean = (pads[i] + pads[i + k]) // 2
            logger.warning(
                f"Asymmetric padding on axis {i} ({pads[i]}, {pads[i + k]}) is not "
                f"supported, using {mean} on both sides"
            )
            pads[i] = mean
            pads[i + k] = mean
            averaged = True

    return ResolvedAttributes(
        kernel_shape=kernel,
        strides=strides,
        dilations=dilations,
        pads=tuple(pads),
        output_padding=output_padding,
        group=group,
        padding_was_averaged=averaged,
    )


def output_shape_for(
    input_shape: Sequence[int],
    weight_shape: Sequence[int],
    resolved: ResolvedAttributes,
) -> List[int]:
    """Output shape ``[N, M, o1..ok]`` for already resolved attributes."""
    k = resolved.spatial_rank
    out = [int(input_shape[0]), int(weight_shape[1]) * resolved.group]
    for i in range(k):
        size = (
            resolved.strides[i] * (int(input_shape[i + 2]) - 1)
            + resolved.output_padding[i]
            + (resolved.kernel_shape[i] - 1) * resolved.dilations[i]
            + 1
            - resolved.pads[i]
            - resolved.pads[i + k]
        )
        if size <= 0:
            raise ValueError(
                f"Computed output size {size} on spatial axis {i} is not positive"
            )
        out.append(size)
    return out


def infer_conv_transpose_shape(
    input_shape: Sequence[int],
    weight_shape: Sequence[int],
    attributes: Optional[ConvTransposeAttributes] = None,
) -> Tuple[List[int], ResolvedAttributes]:
    """
    Infer the output shape of a transposed convolution.

    Args:
        input_shape: ``[N, C, spatial...]`` with rank 3 to 5
        weight_shape: ``[C, M / group, kernel...]``
        attributes: Requested attributes (defaults if None)

    Returns:
        Tuple of (output shape, resolved attributes)
    """
    attributes = attributes or ConvTransposeAttributes()
    resolved = resolve_attributes(input_shape, weight_shape, attributes)
    return output_shape_for(input_shape, weight_shape, resolved), resolved


@dataclass(frozen=True)
class ConvTransposePlan:
    """Output of ``plan_conv_transpose``: shapes, workspace and program."""

    input_shape: Tuple[int, ...]
    weight_shape: Tuple[int, ...]
    output_shape: Tuple[int, ...]
    attributes: ResolvedAttributes
    workspace: Tuple[Buffer, ...]
    program: Tuple[Node, ...]
    input_name: str
    weight_name: str
    output_name: str
    bias_name: Optional[str] = None

    @property
    def output_size(self) -> int:
        return prod(self.output_shape)


def plan_conv_transpose(
    input_shape: Sequence[int],
    weight_shape: Sequence[int],
    attributes: Optional[ConvTransposeAttributes] = None,
    input_name: str = "X",
    weight_name: str = "W",
    output_name: str = "Y",
    bias_name: Optional[str] = None,
) -> ConvTransposePlan:
    """
    Plan a transposed convolution as GEMM + col2im + bias AXPY.

    For every batch entry ``n`` and group ``g`` the weight block
    ``W_g`` (``[C/g, (M/g) * K]``) is multiplied transposed with the input
    block ``X_g`` (``[C/g, S_in]``) into the column buffer, which is then
    scattered into ``Y[n, g * M/g : (g + 1) * M/g]``. The bias, when
    present, must already be broadcast to ``[M * S_out]`` and is added once
    per batch entry.

    Args:
        input_shape: Input tensor shape
        weight_shape: Weight tensor shape
        attributes: Requested attributes (defaults if None)
        input_name: Model name of the input tensor
        weight_name: Model name of the weight tensor
        output_name: Model name of the output tensor
        bias_name: Model name of the broadcast bias tensor, if any

    Returns:
        ConvTransposePlan
    """
    output_shape, resolved = infer_conv_transpose_shape(input_shape, weight_shape, attributes)

    batch = int(input_shape[0])
    group = resolved.group
    in_channels = int(input_shape[1])
    out_channels = output_shape[1]
    in_per_group = in_channels // group
    out_per_group = out_channels // group

    input_spatial = tuple(int(v) for v in input_shape[2:])
    output_spatial = tuple(output_shape[2:])
    kernel_size = prod(resolved.kernel_shape)
    in_size = prod(input_spatial)
    out_size = prod(output_spatial)
    col_rows = out_per_group * kernel_size

    col = Buffer(COL_BUFFER, col_rows * in_size)

    gemm = Gemm(
        a=Slice(weight_name, strides=(("g", in_per_group * col_rows),)),
        b=Slice(input_name, strides=(("n", in_channels * in_size), ("g", in_per_group * in_size))),
        c=Slice(COL_BUFFER, workspace=True),
        m=col_rows,
        n=in_size,
        k=in_per_group,
        trans_a=True,
    )
    scatter = Col2Im(
        src=Slice(COL_BUFFER, workspace=True),
        dst=Slice(output_name, strides=(("n", out_channels * out_size), ("g", out_per_group * out_size))),
        channels=out_per_group,
        input_spatial=input_spatial,
        output_spatial=output_spatial,
        kernel=resolved.kernel_shape,
        strides=resolved.strides,
        dilations=resolved.dilations,
        pads_begin=resolved.pads_begin,
    )

    batch_body: List[Node] = [Loop("g", group, (gemm, scatter))]
    if bias_name is not None:
        batch_body.append(
            Axpy(
                x=Slice(bias_name),
                y=Slice(output_name, strides=(("n", out_channels * out_size),)),
                length=out_channels * out_size,
            )
        )

    program = (
        Fill(Slice(output_name), batch * out_channels * out_size),
        Loop("n", batch, tuple(batch_body)),
    )

    return ConvTransposePlan(
        input_shape=tuple(int(v) for v in input_shape),
        weight_shape=tuple(int(v) for v in weight_shape),
        output_shape=tuple(output_shape),
        attributes=resolved,
        workspace=(col,),
        program=program,
        input_name=input_name,
        weight_name=weight_name,
        output_name=output_name,
        bias_name=bias_name,
    )
