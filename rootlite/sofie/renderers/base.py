"""
Renderer base class and registry.

A renderer turns kernel IR into source text for one target language. The
walk over loops and steps is shared; subclasses print individual nodes
and assemble the session that owns the tensors.
"""

import logging
import re
from abc import ABC, abstractmethod
from math import prod
from typing import Dict, List, Sequence, Tuple, Type

from ..ir import Axpy, Buffer, Col2Im, Fill, Gemm, Loop, Node, Slice
from ..types import TensorType

logger = logging.getLogger(__name__)


def sanitize(name: str) -> str:
    """Turn a tensor name into a valid identifier fragment."""
    cleaned = re.sub(r"\W", "_", name)
    return cleaned if cleaned and not cleaned[0].isdigit() else f"_{cleaned}"


def affine(base: int, terms: Sequence[Tuple[str, int]]) -> str:
    """Print ``base + var * stride + ...`` omitting zero terms."""
    parts = []
    for var, stride in terms:
        if stride == 0:
            continue
        parts.append(var if stride == 1 else f"{var} * {stride}")
    if base or not parts:
        parts.append(str(base))
    return " + ".join(parts)


def output_position(d: int, step: Col2Im) -> str:
    """Output coordinate on axis ``d``: ``i * stride - pad + k * dilation``."""
    expr = f"i{d}" if step.strides[d] == 1 else f"i{d} * {step.strides[d]}"
    if step.pads_begin[d]:
        expr += f" - {step.pads_begin[d]}"
    expr += f" + k{d}" if step.dilations[d] == 1 else f" + k{d} * {step.dilations[d]}"
    return expr


def row_major_strides(shape: Sequence[int]) -> List[int]:
    strides = []
    acc = 1
    for dim in reversed(shape):
        strides.append(acc)
        acc *= dim
    return list(reversed(strides))


class Renderer(ABC):
    """
    Abstract base class for source renderers.

    Subclasses implement the per-node printers and ``render_model``.
    """

    name: str = ""
    indent_unit: str = "    "

    def tensor_identifier(self, tensor: str) -> str:
        return f"tensor_{sanitize(tensor)}"

    def workspace_identifier(self, op_name: str, buffer: str) -> str:
        return f"op_{sanitize(op_name)}_{sanitize(buffer)}"

    def slice_identifier(self, op_name: str, ref: Slice) -> str:
        if ref.workspace:
            return self.workspace_identifier(op_name, ref.tensor)
        return self.tensor_identifier(ref.tensor)

    def offset(self, ref: Slice) -> str:
        return affine(ref.base, ref.strides)

    def render_program(self, op_name: str, program: Tuple[Node, ...], title: str = "") -> str:
        """
        Render a kernel program with no leading indentation.

        Args:
            op_name: Operator name, used to name workspace buffers
            program: IR nodes
            title: Optional comment line printed first

        Returns:
            Source text
        """
        lines: List[str] = []
        if title:
            lines.append(self.comment(title))
        self._render_nodes(op_name, program, 0, lines)
        return "\n".join(lines)

    def _render_nodes(self, op_name: str, nodes, depth: int, lines: List[str]) -> None:
        for node in nodes:
            if isinstance(node, Loop):
                body_depth = depth + 1
                head, tail = self.loop(node.var, node.count)
                lines.extend(self._indent(head, depth))
                self._render_nodes(op_name, node.body, body_depth, lines)
                lines.extend(self._indent(tail, depth))
            elif isinstance(node, Fill):
                lines.extend(self._indent(self.fill(op_name, node), depth))
            elif isinstance(node, Gemm):
                lines.extend(self._indent(self.gemm(op_name, node), depth))
            elif isinstance(node, Col2Im):
                lines.extend(self._indent(self.col2im(op_name, node), depth))
            elif isinstance(node, Axpy):
                lines.extend(self._indent(self.axpy(op_name, node), depth))
            else:
                raise TypeError(f"Cannot render IR node {type(node).__name__}")

    def _indent(self, lines: Sequence[str], depth: int) -> List[str]:
        pad = self.indent_unit * depth
        return [pad + line if line else line for line in lines]

    @staticmethod
    def col2im_terms(step: Col2Im):
        """
        Index terms shared by every col2im loop nest.

        Returns:
            Tuple ``(src_terms, dst_terms)`` of ``(var, stride)`` pairs for
            the channel ``c``, kernel ``k<i>``, input ``i<i>`` and output
            ``o<i>`` loop variables
        """
        kernel_size = prod(step.kernel)
        in_size = prod(step.input_spatial)
        out_size = prod(step.output_spatial)
        k_strides = row_major_strides(step.kernel)
        i_strides = row_major_strides(step.input_spatial)
        o_strides = row_major_strides(step.output_spatial)

        src_terms = [("c", kernel_size * in_size)]
        src_terms += [(f"k{d}", k_strides[d] * in_size) for d in range(len(step.kernel))]
        src_terms += [(f"i{d}", i_strides[d]) for d in range(len(step.kernel))]
        dst_terms = [("c", out_size)]
        dst_terms += [(f"o{d}", o_strides[d]) for d in range(len(step.kernel))]
        return src_terms, dst_terms

    def check_model(self, model) -> None:
        """
        Raises:
            ValueError: If the model uses tensors the renderer cannot handle
        """
        for info in model.tensors():
            if info.type != TensorType.FLOAT:
                raise ValueError(
                    f"{self.name} renderer only supports float tensors, "
                    f"'{info.name}' is {info.type.value}"
                )

    @abstractmethod
    def comment(self, text: str) -> str:
        pass

    @abstractmethod
    def loop(self, var: str, count: int) -> Tuple[List[str], List[str]]:
        """Lines opening and closing a counted loop."""
        pass

    @abstractmethod
    def fill(self, op_name: str, step: Fill) -> List[str]:
        pass

    @abstractmethod
    def gemm(self, op_name: str, step: Gemm) -> List[str]:
        pass

    @abstractmethod
    def col2im(self, op_name: str, step: Col2Im) -> List[str]:
        pass

    @abstractmethod
    def axpy(self, op_name: str, step: Axpy) -> List[str]:
        pass

    @abstractmethod
    def render_workspace(self, op_name: str, buffers: Sequence[Buffer]) -> str:
        """Session member declarations for operator workspace buffers."""
        pass

    @abstractmethod
    def render_model(self, model) -> str:
        """Complete source of an inference session for an initialized model."""
        pass


class RendererRegistry:
    """
    Registry of available source renderers.

    Renderers register themselves with this class and are instantiated by
    name.
    """

    _renderers: Dict[str, Type[Renderer]] = {}

    @classmethod
    def register(cls, name: str, renderer_class: Type[Renderer]) -> None:
        """
        Register a renderer implementation.

        Args:
            name: Renderer name (e.g., "cpp", "python")
            renderer_class: Renderer subclass
        """
        if name in cls._renderers:
            logger.warning(
                f"Renderer '{name}' already registered. Overwriting with {renderer_class}"
            )
        cls._renderers[name] = renderer_class
        logger.debug(f"Registered renderer: {name} -> {renderer_class.__name__}")

    @classmethod
    def create(cls, name: str) -> Renderer:
        """
        Create a renderer by name.

        Raises:
            ValueError: If the name is not registered
        """
        key = name.lower()
        if key not in cls._renderers:
            available = ", ".join(sorted(cls._renderers.keys()))
            raise ValueError(
                f"Unknown renderer: {name}. "
                f"Available renderers: {available}"
            )
        return cls._renderers[key]()

    @classmethod
    def list_renderers(cls) -> List[str]:
        return sorted(cls._renderers.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name.lower() in cls._renderers

    @classmethod
    def unregister(cls, name: str) -> None:
        """Unregister a renderer (mainly for testing)."""
        if name in cls._renderers:
            del cls._renderers[name]


def create_renderer(name: str) -> Renderer:
    """Convenience wrapper around ``RendererRegistry.create``."""
    return RendererRegistry.create(name)


def register_renderer(name: str):
    """
    Decorator for registering renderer classes.

    Example:
        @register_renderer("cpp")
        class CppRenderer(Renderer):
            ...
    """

    def decorator(cls):
        cls.name = name
        RendererRegistry.register(name, cls)
        return cls

    return decorator
