"""
Unit tests for the Model registry and the ConvTranspose operator.
"""

import numpy as np
import pytest

from rootlite.sofie import (
    ConvTransposeAttributes,
    ConvTransposeOperator,
    Model,
    TensorKind,
    TensorType,
    read_weight_file,
)


@pytest.fixture
def weights():
    rng = np.random.default_rng(3)
    return {
        "W": rng.standard_normal((3, 2, 3, 3)).astype(np.float32),
        "B": np.array([0.25, -0.5], dtype=np.float32),
    }


@pytest.fixture
def model(weights):
    """Initialized single-operator model with bias."""
    m = Model("upsample")
    m.add_input_tensor("X", TensorType.FLOAT, [1, 3, 8, 8])
    m.add_initialized_tensor("W", TensorType.FLOAT, [3, 2, 3, 3], weights["W"])
    m.add_initialized_tensor("B", TensorType.FLOAT, [2], weights["B"])
    m.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y", bias_name="B"))
    m.add_output_tensor_names(["Y"])
    m.initialize()
    return m


class TestModel:
    """Tensor declarations."""

    def test_output_registered_as_intermediate(self, model) -> None:
        assert model.get_tensor_shape("Y") == [1, 2, 10, 10]
        assert model.get_tensor_type("Y") == TensorType.FLOAT
        assert [t.name for t in model.tensors(TensorKind.INTERMEDIATE)] == ["Y"]

    def test_bias_broadcast_tensor(self, model, weights) -> None:
        assert model.is_initialized_tensor("Bbcast")
        assert model.get_tensor_shape("Bbcast") == [2, 10, 10]
        data = model.get_initialized_tensor_data("Bbcast")
        np.testing.assert_array_equal(data[:100], np.full(100, 0.25, dtype=np.float32))
        np.testing.assert_array_equal(data[100:], np.full(100, -0.5, dtype=np.float32))

    def test_duplicate_tensor_rejected(self, model) -> None:
        with pytest.raises(ValueError, match="already declared"):
            model.add_input_tensor("X", TensorType.FLOAT, [1])

    def test_non_positive_dimension_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-positive"):
            Model().add_input_tensor("X", TensorType.FLOAT, [1, 0, 4])

    def test_initialized_size_mismatch(self) -> None:
        with pytest.raises(ValueError, match="elements"):
            Model().add_initialized_tensor("W", TensorType.FLOAT, [2, 2], np.zeros(3))

    def test_undeclared_tensor_lookup(self) -> None:
        with pytest.raises(RuntimeError, match="not declared"):
            Model("m").get_tensor_shape("missing")

    def test_unproduced_output(self) -> None:
        m = Model()
        m.add_input_tensor("X", TensorType.FLOAT, [1, 1, 4])
        m.add_output_tensor_names(["Z"])
        with pytest.raises(RuntimeError, match="not produced"):
            m.initialize()

    def test_config_hash_is_stable(self, model, weights) -> None:
        other = Model("upsample")
        other.add_input_tensor("X", TensorType.FLOAT, [1, 3, 8, 8])
        other.add_initialized_tensor("W", TensorType.FLOAT, [3, 2, 3, 3], weights["W"])
        other.add_initialized_tensor("B", TensorType.FLOAT, [2], weights["B"])
        other.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y", bias_name="B"))
        other.add_output_tensor_names(["Y"])
        other.initialize()
        assert model.config_hash() == other.config_hash()
        assert len(model.config_hash()) == 64


class TestConvTransposeOperator:
    """Operator binding errors."""

    def test_missing_weight(self) -> None:
        m = Model("m")
        m.add_input_tensor("X", TensorType.FLOAT, [1, 1, 4])
        m.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y"))
        with pytest.raises(RuntimeError, match="tensor 'W' is not found"):
            m.initialize()

    def test_non_float_input(self) -> None:
        m = Model("m")
        m.add_input_tensor("X", TensorType.INT64, [1, 1, 4])
        m.add_initialized_tensor("W", TensorType.FLOAT, [1, 1, 2], np.ones(2))
        m.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y"))
        with pytest.raises(RuntimeError, match="only float tensors"):
            m.initialize()

    def test_non_float_bias(self) -> None:
        m = Model("m")
        m.add_input_tensor("X", TensorType.FLOAT, [1, 1, 4])
        m.add_initialized_tensor("W", TensorType.FLOAT, [1, 1, 2], np.ones(2))
        m.add_initialized_tensor("B", TensorType.INT32, [1], np.ones(1))
        m.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y", bias_name="B"))
        with pytest.raises(RuntimeError, match="non-float bias"):
            m.initialize()

    def test_bias_shape_mismatch(self) -> None:
        m = Model("m")
        m.add_input_tensor("X", TensorType.FLOAT, [1, 1, 4])
        m.add_initialized_tensor("W", TensorType.FLOAT, [1, 1, 2], np.ones(2))
        m.add_initialized_tensor("B", TensorType.FLOAT, [3], np.ones(3))
        m.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y", bias_name="B"))
        with pytest.raises(ValueError, match="output channels"):
            m.initialize()

    def test_declared_output_shape_must_agree(self) -> None:
        m = Model("m")
        m.add_input_tensor("X", TensorType.FLOAT, [1, 1, 4])
        m.add_initialized_tensor("W", TensorType.FLOAT, [1, 1, 2], np.ones(2))
        m.add_intermediate_tensor("Y", TensorType.FLOAT, [1, 1, 4])
        m.add_operator(ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y"))
        with pytest.raises(RuntimeError, match="declared with shape"):
            m.initialize()

    def test_plan_before_initialize(self) -> None:
        op = ConvTransposeOperator(ConvTransposeAttributes(), "X", "W", "Y")
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = op.plan

    def test_shape_and_type_inference(self) -> None:
        op = ConvTransposeOperator(ConvTransposeAttributes(strides=[2]), "X", "W", "Y")
        assert op.shape_inference([[1, 2, 4], [2, 5, 3]]) == [[1, 5, 9]]
        assert op.type_inference([TensorType.FLOAT]) == [TensorType.FLOAT]
        assert op.input_names == ["X", "W"]
        assert op.output_names == ["Y"]


class TestWeightFile:
    """Text weight file written for generated sessions."""

    def test_round_trip(self, model, tmp_path) -> None:
        path = model.write_weight_file(tmp_path / "upsample.dat")
        loaded = read_weight_file(path)

        assert list(loaded) == ["W", "B", "Bbcast"]
        for name, data in model.weights().items():
            np.testing.assert_array_equal(loaded[name], data)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            read_weight_file(tmp_path / "nope.dat")

    def test_truncated_record(self, tmp_path) -> None:
        path = tmp_path / "bad.dat"
        path.write_text("W 3\n1.0 2.0\n")
        with pytest.raises(ValueError, match="expects 3 values"):
            read_weight_file(path)
