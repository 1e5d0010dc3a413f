"""
NumPy renderer.

Emits a self-contained Python module with a ``Session`` class. Weights are
passed to the constructor as a ``{name: array}`` mapping (``Model.weights()``
or ``read_weight_file``); ``infer`` takes the model inputs in declaration
order.
"""

from typing import List, Sequence, Tuple

from ..ir import Axpy, Buffer, Col2Im, Fill, Gemm
from ..model import TensorKind
from .base import Renderer, affine, output_position, register_renderer


@register_renderer("python")
class PythonRenderer(Renderer):
    """Renders kernels as NumPy code."""

    indent_unit = "    "

    def workspace_identifier(self, op_name: str, buffer: str) -> str:
        return "self." + super().workspace_identifier(op_name, buffer)

    def comment(self, text: str) -> str:
        return f"# {text}"

    def loop(self, var: str, count: int) -> Tuple[List[str], List[str]]:
        return [f"for {var} in range({count}):"], []

    def fill(self, op_name: str, step: Fill) -> List[str]:
        dst = self.slice_identifier(op_name, step.dst)
        return [
            f"start = {self.offset(step.dst)}",
            f"{dst}[start:start + {step.length}] = {step.value!r}",
        ]

    def gemm(self, op_name: str, step: Gemm) -> List[str]:
        a = self.slice_identifier(op_name, step.a)
        b = self.slice_identifier(op_name, step.b)
        c = self.slice_identifier(op_name, step.c)
        a_view = f".reshape({step.k}, {step.m}).T" if step.trans_a else f".reshape({step.m}, {step.k})"
        b_view = f".reshape({step.n}, {step.k}).T" if step.trans_b else f".reshape({step.k}, {step.n})"
        product = "a_mat @ b_mat" if step.alpha == 1.0 else f"{step.alpha!r} * (a_mat @ b_mat)"
        lines = [
            f"a_start = {self.offset(step.a)}",
            f"b_start = {self.offset(step.b)}",
            f"c_start = {self.offset(step.c)}",
            f"a_mat = {a}[a_start:a_start + {step.m * step.k}]{a_view}",
            f"b_mat = {b}[b_start:b_start + {step.k * step.n}]{b_view}",
        ]
        if step.beta != 0.0:
            lines.append(
                f"{c}[c_start:c_start + {step.m * step.n}] = ({product}).ravel() + "
                f"{step.beta!r} * {c}[c_start:c_start + {step.m * step.n}]"
            )
        else:
            lines.append(f"{c}[c_start:c_start + {step.m * step.n}] = ({product}).ravel()")
        return lines

    def col2im(self, op_name: str, step: Col2Im) -> List[str]:
        src = self.slice_identifier(op_name, step.src)
        dst = self.slice_identifier(op_name, step.dst)
        src_terms, dst_terms = self.col2im_terms(step)
        src_index = affine(step.src.base, list(step.src.strides) + src_terms)
        dst_index = affine(step.dst.base, list(step.dst.strides) + dst_terms)

        lines = ["# col2im"]
        depth = 0

        def emit(line: str) -> None:
            lines.append(self.indent_unit * depth + line)

        emit(f"for c in range({step.channels}):")
        depth += 1
        for d, size in enumerate(step.kernel):
            emit(f"for k{d} in range({size}):")
            depth += 1
        for d, size in enumerate(step.input_spatial):
            emit(f"for i{d} in range({size}):")
            depth += 1
            emit(f"o{d} = {output_position(d, step)}")
            emit(f"if o{d} < 0 or o{d} >= {step.output_spatial[d]}:")
            emit(self.indent_unit + "continue")
        emit(f"{dst}[{dst_index}] += {src}[{src_index}]")
        return lines

    def axpy(self, op_name: str, step: Axpy) -> List[str]:
        x = self.slice_identifier(op_name, step.x)
        y = self.slice_identifier(op_name, step.y)
        scaled = "" if step.alpha == 1.0 else f"{step.alpha!r} * "
        return [
            f"x_start = {self.offset(step.x)}",
            f"y_start = {self.offset(step.y)}",
            f"{y}[y_start:y_start + {step.length}] += {scaled}{x}[x_start:x_start + {step.length}]",
        ]

    def render_workspace(self, op_name: str, buffers: Sequence[Buffer]) -> str:
        return "\n".join(
            f"{self.workspace_identifier(op_name, b.name)} = np.zeros({b.size}, dtype=np.float32)"
            for b in buffers
        )

    def render_model(self, model) -> str:
        self.check_model(model)
        initialized = model.tensors(TensorKind.INITIALIZED)
        intermediate = model.tensors(TensorKind.INTERMEDIATE)
        inputs = model.tensors(TensorKind.INPUT)

        lines = [
            "# Code generated automatically by rootlite.sofie",
            f"# Model: {model.name}",
            f"# Configuration hash: {model.config_hash()}",
            "",
            "import numpy as np",
            "",
            "",
            "class Session:",
            f'    """Inference session for model {model.name!r}."""',
            "",
            "    def __init__(self, weights):",
        ]

        init_body: List[str] = []
        for t in initialized:
            ident = self.tensor_identifier(t.name)
            message = f"tensor '{t.name}' must have {t.size} elements"
            init_body += [
                f"self.{ident} = np.array(weights[{t.name!r}], dtype=np.float32).ravel()",
                f"if self.{ident}.size != {t.size}:",
                f"    raise ValueError({message!r})",
            ]
        for t in intermediate:
            init_body.append(f"self.{self.tensor_identifier(t.name)} = np.zeros({t.size}, dtype=np.float32)")
        for index, op in enumerate(model.operators):
            for code in (
                op.generate_session_members_code(str(index), self),
                op.generate_init_code(str(index), self),
            ):
                if code:
                    init_body += code.splitlines()
        lines += self._indent(init_body or ["pass"], 2)
        lines.append("")

        arguments = ", ".join(["self"] + [self.tensor_identifier(t.name) for t in inputs])
        lines.append(f"    def infer({arguments}):")
        body: List[str] = []
        for t in inputs:
            ident = self.tensor_identifier(t.name)
            message = f"input '{t.name}' must have {t.size} elements"
            body += [
                f"{ident} = np.ascontiguousarray({ident}, dtype=np.float32).ravel()",
                f"if {ident}.size != {t.size}:",
                f"    raise ValueError({message!r})",
            ]
        for t in initialized + intermediate:
            ident = self.tensor_identifier(t.name)
            body.append(f"{ident} = self.{ident}")
        for index, op in enumerate(model.operators):
            body += op.generate(str(index), self).splitlines()

        results = [
            f"{self.tensor_identifier(name)}.reshape({tuple(model.get_tensor_shape(name))}).copy()"
            for name in model.output_tensor_names
        ]
        if len(results) == 1:
            body.append(f"return {results[0]}")
        elif results:
            body.append(f"return ({', '.join(results)})")
        else:
            body.append("return None")
        lines += self._indent(body, 2)
        lines.append("")
        return "\n".join(lines)

