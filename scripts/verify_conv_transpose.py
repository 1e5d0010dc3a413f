#!/usr/bin/env python3
"""
Transposed Convolution Verification Script.

Draws random shapes and attributes, then checks the plan executor and the
generated NumPy session against PyTorch.

Usage:
    python scripts/verify_conv_transpose.py
    python scripts/verify_conv_transpose.py --cases 200 --seed 7
"""

import argparse
import logging
import sys

import numpy as np

from rootlite.infrastructure import set_seed, setup_logging
from rootlite.sofie import ConvTransposeAttributes, ConvTransposeOperator, Model, TensorType, run_conv_transpose
from rootlite.sofie.reference import conv_transpose_reference

logger = logging.getLogger(__name__)


def random_case(rng: np.random.Generator):
    """Random (input shape, weight shape, attributes) with torch-compatible attributes."""
    k = int(rng.integers(1, 4))
    group = int(rng.choice([1, 2]))
    in_channels = group * int(rng.integers(1, 3))
    out_per_group = int(rng.integers(1, 3))
    spatial = [int(rng.integers(2, 6 if k < 3 else 4)) for _ in range(k)]
    kernel = [int(rng.integers(1, 4)) for _ in range(k)]
    strides = [int(rng.integers(1, 3)) for _ in range(k)]
    dilations = [int(rng.integers(1, 3)) for _ in range(k)]
    output_padding = [int(rng.integers(0, max(s, d))) for s, d in zip(strides, dilations)]
    pads = [int(rng.integers(0, kernel[i])) for i in range(k)]

    attributes = ConvTransposeAttributes(
        strides=strides,
        dilations=dilations,
        output_padding=output_padding,
        pads=pads + pads,
        group=group,
    )
    input_shape = [1, in_channels] + spatial
    weight_shape = [in_channels, out_per_group] + kernel
    return input_shape, weight_shape, attributes


def session_output(x, w, b, attributes):
    model = Model("verify")
    model.add_input_tensor("X", TensorType.FLOAT, x.shape)
    model.add_initialized_tensor("W", TensorType.FLOAT, w.shape, w)
    model.add_initialized_tensor("B", TensorType.FLOAT, b.shape, b)
    model.add_operator(ConvTransposeOperator(attributes, "X", "W", "Y", bias_name="B"))
    model.add_output_tensor_names(["Y"])
    model.initialize()

    namespace = {}
    exec(compile(model.generate("python"), "<generated>", "exec"), namespace)
    return namespace["Session"](model.weights()).infer(x)


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify transposed convolution against PyTorch")
    parser.add_argument("--cases", type=int, default=50, help="Number of random cases (default: 50)")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--tolerance", type=float, default=1e-4)
    parser.add_argument("--skip-session", action="store_true", help="Only check the plan executor")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level)
    rng = set_seed(args.seed)

    failures = 0
    for index in range(args.cases):
        input_shape, weight_shape, attributes = random_case(rng)
        try:
            x = rng.standard_normal(input_shape).astype(np.float32)
            w = rng.standard_normal(weight_shape).astype(np.float32)
            b = rng.standard_normal(weight_shape[1] * attributes.group).astype(np.float32)
            expected = conv_transpose_reference(x, w, b, attributes)

            outputs = {"executor": run_conv_transpose(x, w, b, attributes)}
            if not args.skip_session:
                outputs["session"] = session_output(x, w, b, attributes)
        except ValueError as e:
            logger.info(f"Case {index}: skipped ({e})")
            continue

        for name, result in outputs.items():
            error = float(np.max(np.abs(result - expected)))
            if result.shape != expected.shape or error > args.tolerance:
                failures += 1
                logger.error(
                    f"Case {index} {name}: input {input_shape} weight {weight_shape} "
                    f"{attributes} max error {error:.3g}"
                )

    print(f"{args.cases} cases, {failures} failures")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
