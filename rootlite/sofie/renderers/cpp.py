"""
C++ renderer.

Emits a header with a ``Session`` struct. Matrix products call the Fortran
BLAS ``sgemm_`` (column-major, so row-major operands are passed swapped)
and bias accumulation calls ``saxpy_``. The session constructor reads the
text weight file written by ``Model.write_weight_file``.
"""

from math import prod
from typing import List, Sequence, Tuple

from ..ir import Axpy, Buffer, Col2Im, Fill, Gemm
from ..model import TensorKind
from .base import Renderer, affine, output_position, register_renderer, sanitize

BLAS_DECLARATIONS = """namespace BLAS{
   extern "C" void sgemm_(const char * transa, const char * transb, const int * m, const int * n, const int * k,
                          const float * alpha, const float * A, const int * lda, const float * B, const int * ldb,
                          const float * beta, float * C, const int * ldc);
   extern "C" void saxpy_(const int * n, const float * alpha, const float * x, const int * incx,
                          float * y, const int * incy);
}"""


def _float(value: float) -> str:
    return f"{float(value)!r}f"


@register_renderer("cpp")
class CppRenderer(Renderer):
    """Renders kernels as C++ with BLAS calls."""

    indent_unit = "   "

    def comment(self, text: str) -> str:
        return f"// {text}"

    def loop(self, var: str, count: int) -> Tuple[List[str], List[str]]:
        return [f"for (int {var} = 0; {var} < {count}; {var}++) {{"], ["}"]

    def fill(self, op_name: str, step: Fill) -> List[str]:
        dst = self.slice_identifier(op_name, step.dst)
        return [f"std::fill_n({dst} + {self.offset(step.dst)}, {step.length}, {_float(step.value)});"]

    def gemm(self, op_name: str, step: Gemm) -> List[str]:
        a = self.slice_identifier(op_name, step.a)
        b = self.slice_identifier(op_name, step.b)
        c = self.slice_identifier(op_name, step.c)
        # row-major C = op(A) op(B) is column-major C^T = op(B)^T op(A)^T
        lda = step.m if step.trans_a else step.k
        ldb = step.k if step.trans_b else step.n
        return [
            "{",
            f"   char op_transA = '{'T' if step.trans_a else 'N'}';",
            f"   char op_transB = '{'T' if step.trans_b else 'N'}';",
            f"   int op_m = {step.m};",
            f"   int op_n = {step.n};",
            f"   int op_k = {step.k};",
            f"   int op_lda = {lda};",
            f"   int op_ldb = {ldb};",
            f"   float op_alpha = {_float(step.alpha)};",
            f"   float op_beta = {_float(step.beta)};",
            "   BLAS::sgemm_(&op_transB, &op_transA, &op_n, &op_m, &op_k, &op_alpha,",
            f"                {b} + {self.offset(step.b)}, &op_ldb,",
            f"                {a} + {self.offset(step.a)}, &op_lda,",
            f"                &op_beta, {c} + {self.offset(step.c)}, &op_n);",
            "}",
        ]

    def col2im(self, op_name: str, step: Col2Im) -> List[str]:
        src = self.slice_identifier(op_name, step.src)
        dst = self.slice_identifier(op_name, step.dst)
        src_terms, dst_terms = self.col2im_terms(step)
        src_index = affine(step.src.base, list(step.src.strides) + src_terms)
        dst_index = affine(step.dst.base, list(step.dst.strides) + dst_terms)

        lines = ["// col2im"]
        depth = 0

        def emit(line: str) -> None:
            lines.append(self.indent_unit * depth + line)

        emit(f"for (int c = 0; c < {step.channels}; c++) {{")
        depth += 1
        for d, size in enumerate(step.kernel):
            emit(f"for (int k{d} = 0; k{d} < {size}; k{d}++) {{")
            depth += 1
        for d, size in enumerate(step.input_spatial):
            emit(f"for (int i{d} = 0; i{d} < {size}; i{d}++) {{")
            depth += 1
            emit(f"int o{d} = {output_position(d, step)};")
            emit(f"if (o{d} < 0 || o{d} >= {step.output_spatial[d]}) continue;")
        emit(f"{dst}[{dst_index}] += {src}[{src_index}];")
        while depth > 0:
            depth -= 1
            emit("}")
        return lines

    def axpy(self, op_name: str, step: Axpy) -> List[str]:
        x = self.slice_identifier(op_name, step.x)
        y = self.slice_identifier(op_name, step.y)
        return [
            "{",
            f"   int op_size = {step.length};",
            f"   float op_alpha = {_float(step.alpha)};",
            "   int op_inc = 1;",
            f"   BLAS::saxpy_(&op_size, &op_alpha, {x} + {self.offset(step.x)}, &op_inc, "
            f"{y} + {self.offset(step.y)}, &op_inc);",
            "}",
        ]

    def _storage(self, identifier: str, size: int, cpp_type: str = "float") -> List[str]:
        holder = "f" + identifier[0].upper() + identifier[1:]
        return [
            f"std::vector<{cpp_type}> {holder} = std::vector<{cpp_type}>({size});",
            f"{cpp_type} * {identifier} = {holder}.data();",
        ]

    def render_workspace(self, op_name: str, buffers: Sequence[Buffer]) -> str:
        lines: List[str] = []
        for b in buffers:
            lines += self._storage(self.workspace_identifier(op_name, b.name), b.size)
        return "\n".join(lines)

    def render_model(self, model) -> str:
        self.check_model(model)
        initialized = model.tensors(TensorKind.INITIALIZED)
        intermediate = model.tensors(TensorKind.INTERMEDIATE)
        inputs = model.tensors(TensorKind.INPUT)
        namespace = f"SOFIE_{sanitize(model.name)}"

        lines = [
            "//Code generated automatically by rootlite.sofie",
            f"// Model: {model.name}",
            f"// Configuration hash: {model.config_hash()}",
            "",
            f"#ifndef {namespace.upper()}",
            f"#define {namespace.upper()}",
            "",
            "#include <algorithm>",
            "#include <fstream>",
            "#include <stdexcept>",
            "#include <string>",
            "#include <vector>",
            "",
            BLAS_DECLARATIONS,
            "",
            f"namespace {namespace}{{",
            "",
            "struct Session {",
        ]

        members: List[str] = []
        for t in initialized + intermediate:
            members += self._storage(self.tensor_identifier(t.name), t.size, t.type.cpp_name)
        for index, op in enumerate(model.operators):
            code = op.generate_session_members_code(str(index), self)
            if code:
                members += code.splitlines()
        lines += self._indent(members, 1)
        lines.append("")

        lines.append(f'   Session(std::string filename = "{model.name}.dat") {{')
        ctor: List[str] = []
        if initialized:
            ctor += [
                "std::ifstream f(filename);",
                "if (!f.is_open()) {",
                '   throw std::runtime_error("rootlite.sofie: failed to open weight file " + filename);',
                "}",
                "std::string tensor_name;",
                "size_t length;",
            ]
            for t in initialized:
                ident = self.tensor_identifier(t.name)
                ctor += [
                    "f >> tensor_name >> length;",
                    f'if (tensor_name != "{t.name}") {{',
                    f'   throw std::runtime_error("rootlite.sofie: expected tensor {t.name}, read " + tensor_name);',
                    "}",
                    f"if (length != {t.size}) {{",
                    f'   throw std::runtime_error("rootlite.sofie: tensor {t.name} must have {t.size} elements");',
                    "}",
                    f"for (size_t i = 0; i < length; ++i) f >> {ident}[i];",
                ]
            ctor.append("f.close();")
        for index, op in enumerate(model.operators):
            code = op.generate_init_code(str(index), self)
            if code:
                ctor += code.splitlines()
        lines += self._indent(ctor, 2)
        lines += ["   }", ""]

        outputs = model.output_tensor_names
        return_type = "std::vector<float>" if len(outputs) == 1 else "std::vector<std::vector<float>>"
        arguments = ", ".join(f"{t.type.cpp_name} * {self.tensor_identifier(t.name)}" for t in inputs)
        lines.append(f"   {return_type} infer({arguments}) {{")
        body: List[str] = []
        for index, op in enumerate(model.operators):
            body += op.generate(str(index), self).splitlines()
        results = []
        for name in outputs:
            ident = self.tensor_identifier(name)
            size = prod(model.get_tensor_shape(name))
            results.append(f"std::vector<float>({ident}, {ident} + {size})")
        if len(results) == 1:
            body.append(f"return {results[0]};")
        else:
            body.append(f"return {{{', '.join(results)}}};")
        lines += self._indent(body, 2)
        lines += [
            "   }",
            "};",
            "",
            f"}} // namespace {namespace}",
            "",
            f"#endif // {namespace.upper()}",
            "",
        ]
        return "\n".join(lines)
