"""
Intermediate representation for generated numeric kernels.

A kernel is a small tree of nodes: loops over named integer variables
containing data-movement and arithmetic steps. Every tensor reference is a
``Slice`` whose flat offset is an affine function of the enclosing loop
variables, so renderers can print it and the executor can evaluate it
without knowing which operator produced it.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Tuple, Union


@dataclass(frozen=True)
class Slice:
    """
    Flat view into a tensor or workspace buffer.

    Attributes:
        tensor: Model tensor name (or buffer name when ``workspace`` is set)
        base: Constant part of the offset
        strides: ``(loop_var, stride)`` pairs added to the offset
        workspace: True for operator-private scratch buffers
    """
    tensor: str
    base: int = 0
    strides: Tuple[Tuple[str, int], ...] = ()
    workspace: bool = False

    def offset(self, env: Dict[str, int]) -> int:
        """Evaluate the offset for concrete loop variable values."""
        return self.base + sum(env[var] * stride for var, stride in self.strides)


@dataclass(frozen=True)
class Buffer:
    """Operator-private workspace declaration."""
    name: str
    size: int


@dataclass(frozen=True)
class Fill:
    """dst[0:length] = value"""
    dst: Slice
    length: int
    value: float = 0.0


@dataclass(frozen=True)
class Gemm:
    """
    Row-major general matrix multiply.

    ``c[m, n] = alpha * op(a)[m, k] @ op(b)[k, n] + beta * c[m, n]`` where
    ``op(a)`` is stored as ``[k, m]`` when ``trans_a`` is set and ``op(b)``
    as ``[n, k]`` when ``trans_b`` is set.
    """
    a: Slice
    b: Slice
    c: Slice
    m: int
    n: int
    k: int
    trans_a: bool = False
    trans_b: bool = False
    alpha: float = 1.0
    beta: float = 0.0


@dataclass(frozen=True)
class Col2Im:
    """
    Scatter-accumulate of a column buffer into an image.

    ``src`` is laid out as ``[channels, prod(kernel), prod(input_spatial)]``
    and ``dst`` as ``[channels, prod(output_spatial)]``. Element
    ``(c, kernel_pos, input_pos)`` is added at output position
    ``input_pos * strides - pads_begin + kernel_pos * dilations`` when that
    position lies inside the output.
    """
    src: Slice
    dst: Slice
    channels: int
    input_spatial: Tuple[int, ...]
    output_spatial: Tuple[int, ...]
    kernel: Tuple[int, ...]
    strides: Tuple[int, ...]
    dilations: Tuple[int, ...]
    pads_begin: Tuple[int, ...]


@dataclass(frozen=True)
class Axpy:
    """y[0:length] += alpha * x[0:length]"""
    x: Slice
    y: Slice
    length: int
    alpha: float = 1.0


Step = Union[Fill, Gemm, Col2Im, Axpy]


@dataclass(frozen=True)
class Loop:
    """``for var in range(count): body``"""
    var: str
    count: int
    body: Tuple[Union["Loop", Step], ...]


Node = Union[Loop, Step]


def walk(program: Tuple[Node, ...]) -> Iterator[Node]:
    """Yield every node of a program depth-first."""
    for node in program:
        yield node
        if isinstance(node, Loop):
            yield from walk(node.body)


def referenced_tensors(program: Tuple[Node, ...]) -> Tuple[str, ...]:
    """Names of the model tensors (not workspace buffers) a program touches."""
    names = []
    for node in walk(program):
        if isinstance(node, Loop):
            continue
        for value in vars(node).values():
            if isinstance(value, Slice) and not value.workspace and value.tensor not in names:
                names.append(value.tensor)
    return tuple(names)
