"""
Unit tests for the conv-transpose kernel planner and its IR.
"""

import pytest

from rootlite.sofie import ConvTransposeAttributes, plan_conv_transpose
from rootlite.sofie.ir import Axpy, Col2Im, Fill, Gemm, Loop, Slice, referenced_tensors, walk


@pytest.fixture
def grouped_plan():
    """Batch 2, four input channels in two groups, bias present."""
    return plan_conv_transpose(
        [2, 4, 3, 3],
        [4, 3, 2, 2],
        ConvTransposeAttributes(group=2, strides=[2, 2]),
        input_name="X",
        weight_name="W",
        output_name="Y",
        bias_name="Bbcast",
    )


def test_plan_shapes(grouped_plan):
    assert grouped_plan.input_shape == (2, 4, 3, 3)
    assert grouped_plan.weight_shape == (4, 3, 2, 2)
    assert grouped_plan.output_shape == (2, 6, 6, 6)
    assert grouped_plan.output_size == 2 * 6 * 36


def test_program_structure(grouped_plan):
    """Fill, then batch loop over a group loop of GEMM + col2im, then bias."""
    fill, batch_loop = grouped_plan.program
    assert isinstance(fill, Fill)
    assert fill.length == grouped_plan.output_size
    assert isinstance(batch_loop, Loop)
    assert batch_loop.var == "n"
    assert batch_loop.count == 2

    group_loop, bias = batch_loop.body
    assert isinstance(group_loop, Loop)
    assert group_loop.count == 2
    assert isinstance(bias, Axpy)
    assert bias.length == 6 * 36

    gemm, scatter = group_loop.body
    assert isinstance(gemm, Gemm)
    assert isinstance(scatter, Col2Im)


def test_gemm_dimensions_and_offsets(grouped_plan):
    gemm = next(node for node in walk(grouped_plan.program) if isinstance(node, Gemm))
    # m = (M / group) * prod(kernel), n = prod(input spatial), k = C / group
    assert (gemm.m, gemm.n, gemm.k) == (3 * 4, 9, 2)
    assert gemm.trans_a and not gemm.trans_b
    assert gemm.a.offset({"n": 1, "g": 1}) == 2 * 12
    assert gemm.b.offset({"n": 1, "g": 1}) == 4 * 9 + 2 * 9
    assert gemm.c.workspace


def test_col2im_writes_group_block(grouped_plan):
    scatter = next(node for node in walk(grouped_plan.program) if isinstance(node, Col2Im))
    assert scatter.channels == 3
    assert scatter.input_spatial == (3, 3)
    assert scatter.output_spatial == (6, 6)
    assert scatter.dst.offset({"n": 1, "g": 1}) == 6 * 36 + 3 * 36


def test_workspace_holds_one_group_of_columns(grouped_plan):
    (buffer,) = grouped_plan.workspace
    assert buffer.size == 3 * 4 * 9


def test_referenced_tensors(grouped_plan):
    assert referenced_tensors(grouped_plan.program) == ("Y", "W", "X", "Bbcast")


def test_no_bias_step_without_bias():
    plan = plan_conv_transpose([1, 1, 4], [1, 1, 3])
    assert not any(isinstance(node, Axpy) for node in walk(plan.program))
    assert plan.bias_name is None


def test_slice_offset_is_affine():
    ref = Slice("Y", base=5, strides=(("n", 10), ("g", 3)))
    assert ref.offset({"n": 0, "g": 0}) == 5
    assert ref.offset({"n": 2, "g": 1}) == 28


def test_plan_is_pure():
    """Planning twice gives equal plans."""
    attrs = ConvTransposeAttributes(strides=[2], pads=[1, 1])
    assert plan_conv_transpose([1, 2, 5], [2, 2, 3], attrs) == plan_conv_transpose([1, 2, 5], [2, 2, 3], attrs)
