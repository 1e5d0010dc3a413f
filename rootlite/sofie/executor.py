"""
NumPy interpreter for kernel programs.

Runs a plan directly on flat arrays. Used to check plans without going
through source generation, and as the numerical baseline the generated
sessions are compared with.
"""

import logging
from math import prod
from typing import Dict, Optional

import numpy as np

from .attributes import ConvTransposeAttributes
from .ir import Axpy, Col2Im, Fill, Gemm, Loop, Node, Slice
from .planner import ConvTransposePlan, plan_conv_transpose

logger = logging.getLogger(__name__)


def col2im_indices(step: Col2Im):
    """
    Precompute the scatter map of a Col2Im step for a single channel.

    Returns:
        Tuple ``(src, dst)`` of flat index arrays: ``src`` indexes the
        ``[prod(kernel), prod(input_spatial)]`` block of one channel and
        ``dst`` the ``prod(output_spatial)`` block of the same channel.
    """
    dims = len(step.kernel)
    kernel_grid = np.indices(step.kernel).reshape(dims, -1)
    input_grid = np.indices(step.input_spatial).reshape(dims, -1)

    strides = np.asarray(step.strides).reshape(dims, 1, 1)
    dilations = np.asarray(step.dilations).reshape(dims, 1, 1)
    pads = np.asarray(step.pads_begin).reshape(dims, 1, 1)
    limits = np.asarray(step.output_spatial).reshape(dims, 1, 1)

    # [dims, K, S_in]
    coords = input_grid[:, None, :] * strides - pads + kernel_grid[:, :, None] * dilations
    valid = np.all((coords >= 0) & (coords < limits), axis=0)

    k_idx, i_idx = np.nonzero(valid)
    src = k_idx * input_grid.shape[1] + i_idx
    dst = np.ravel_multi_index(tuple(coords[:, k_idx, i_idx]), step.output_spatial)
    return src, dst


class PlanExecutor:
    """
    Executes a program against a dictionary of flat tensors.

    Workspace buffers are allocated on construction; scatter maps are cached
    per Col2Im step.
    """

    def __init__(self, plan: ConvTransposePlan, dtype=np.float32):
        self.plan = plan
        self.dtype = dtype
        self.workspace = {b.name: np.zeros(b.size, dtype=dtype) for b in plan.workspace}
        self._scatter_cache: Dict[Col2Im, tuple] = {}

    def _view(self, ref: Slice, tensors: Dict[str, np.ndarray], env: Dict[str, int], length: int) -> np.ndarray:
        store = self.workspace if ref.workspace else tensors
        if ref.tensor not in store:
            raise KeyError(f"Tensor '{ref.tensor}' is not bound")
        start = ref.offset(env)
        return store[ref.tensor][start:start + length]

    def run(self, tensors: Dict[str, np.ndarray]) -> None:
        """Run the program, updating the output tensors in place."""
        self._run_nodes(self.plan.program, tensors, {})

    def _run_nodes(self, nodes, tensors, env) -> None:
        for node in nodes:
            self._run_node(node, tensors, env)

    def _run_node(self, node: Node, tensors, env) -> None:
        if isinstance(node, Loop):
            for i in range(node.count):
                self._run_nodes(node.body, tensors, {**env, node.var: i})
        elif isinstance(node, Fill):
            self._view(node.dst, tensors, env, node.length)[:] = node.value
        elif isinstance(node, Gemm):
            a = self._view(node.a, tensors, env, node.m * node.k)
            b = self._view(node.b, tensors, env, node.k * node.n)
            c = self._view(node.c, tensors, env, node.m * node.n)
            a = a.reshape(node.k, node.m).T if node.trans_a else a.reshape(node.m, node.k)
            b = b.reshape(node.n, node.k).T if node.trans_b else b.reshape(node.k, node.n)
            result = node.alpha * (a @ b)
            if node.beta != 0.0:
                result = result + node.beta * c.reshape(node.m, node.n)
            c[:] = result.ravel()
        elif isinstance(node, Col2Im):
            if node not in self._scatter_cache:
                self._scatter_cache[node] = col2im_indices(node)
            src, dst = self._scatter_cache[node]
            block_in = prod(node.kernel) * prod(node.input_spatial)
            block_out = prod(node.output_spatial)
            col = self._view(node.src, tensors, env, node.channels * block_in)
            out = self._view(node.dst, tensors, env, node.channels * block_out)
            channel = np.arange(node.channels)[:, None]
            np.add.at(out, (channel * block_out + dst).ravel(), col[(channel * block_in + src).ravel()])
        elif isinstance(node, Axpy):
            y = self._view(node.y, tensors, env, node.length)
            y += node.alpha * self._view(node.x, tensors, env, node.length)
        else:
            raise TypeError(f"Unknown IR node: {type(node).__name__}")


def execute_plan(plan: ConvTransposePlan, tensors: Dict[str, np.ndarray]) -> np.ndarray:
    """
    Execute a conv-transpose plan.

    Args:
        plan: Plan from ``plan_conv_transpose``
        tensors: Flat (or reshapeable) arrays keyed by model tensor name.
            The output tensor is allocated when missing.

    Returns:
        Output tensor reshaped to ``plan.output_shape``
    """
    bound = {name: np.ascontiguousarray(value, dtype=np.float32).ravel() for name, value in tensors.items()}
    bound.setdefault(plan.output_name, np.zeros(plan.output_size, dtype=np.float32))
    PlanExecutor(plan).run(bound)
    return bound[plan.output_name].reshape(plan.output_shape)


def run_conv_transpose(
    x: np.ndarray,
    w: np.ndarray,
    b: Optional[np.ndarray] = None,
    attributes: Optional[ConvTransposeAttributes] = None,
) -> np.ndarray:
    """
    Plan and execute a transposed convolution on NumPy arrays.

    Args:
        x: Input ``[N, C, spatial...]``
        w: Weight ``[C, M / group, kernel...]``
        b: Optional bias ``[M]``
        attributes: Operator attributes

    Returns:
        Output array ``[N, M, out_spatial...]``
    """
    plan = plan_conv_transpose(x.shape, w.shape, attributes, bias_name="B" if b is not None else None)
    tensors = {"X": x, "W": w}
    if b is not None:
        spatial = prod(plan.output_shape[2:])
        tensors["B"] = np.repeat(np.asarray(b, dtype=np.float32), spatial)
    return execute_plan(plan, tensors)
