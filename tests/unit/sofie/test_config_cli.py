"""
Unit tests for YAML model descriptions and the code generation CLI.
"""

import numpy as np
import pytest
import yaml

from rootlite.sofie import AutoPad, TensorKind, TensorType, read_weight_file
from rootlite.sofie.cli import main
from rootlite.sofie.config import TensorConfig, build_model, load_model_config

MODEL_YAML = {
    "name": "upsample2d",
    "backend": "cpp",
    "tensors": [
        {"name": "X", "kind": "input", "shape": [1, 2, 4, 4]},
        {"name": "W", "kind": "initialized", "shape": [2, 3, 3, 3], "seed": 7},
        {"name": "B", "kind": "initialized", "shape": [3], "values": [0.1, -0.2, 0.3]},
    ],
    "operators": [
        {
            "type": "ConvTranspose",
            "input": "X",
            "weight": "W",
            "bias": "B",
            "output": "Y",
            "attributes": {"strides": [2, 2], "pads": [1, 1, 1, 1], "auto_pad": "NOTSET"},
        }
    ],
    "outputs": ["Y"],
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "model.yaml"
    path.write_text(yaml.safe_dump(MODEL_YAML))
    return path


class TestLoadModelConfig:
    """Parsing model descriptions."""

    def test_load(self, config_file) -> None:
        config = load_model_config(config_file)
        assert config.name == "upsample2d"
        assert [t.name for t in config.tensors] == ["X", "W", "B"]
        assert config.tensors[1].kind == TensorKind.INITIALIZED
        assert config.operators[0].attributes.strides == [2, 2]
        assert config.operators[0].attributes.auto_pad == AutoPad.NOTSET
        assert config.outputs == ["Y"]

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_model_config(tmp_path / "missing.yaml")

    def test_outputs_default_to_last_operator(self, tmp_path) -> None:
        data = dict(MODEL_YAML)
        del data["outputs"]
        path = tmp_path / "model.yaml"
        path.write_text(yaml.safe_dump(data))
        assert load_model_config(path).outputs == ["Y"]

    def test_unknown_operator(self, tmp_path) -> None:
        data = dict(MODEL_YAML, operators=[dict(MODEL_YAML["operators"][0], type="Conv")])
        path = tmp_path / "model.yaml"
        path.write_text(yaml.safe_dump(data))
        with pytest.raises(ValueError, match="Unsupported operator type"):
            load_model_config(path)

    def test_unknown_field(self, tmp_path) -> None:
        data = dict(MODEL_YAML, tensors=[{"name": "X", "shape": [1], "colour": "red"}])
        path = tmp_path / "model.yaml"
        path.write_text(yaml.safe_dump(data))
        with pytest.raises(ValueError, match="Invalid model description"):
            load_model_config(path)

    def test_no_operators(self, tmp_path) -> None:
        path = tmp_path / "model.yaml"
        path.write_text(yaml.safe_dump({"name": "empty", "tensors": []}))
        with pytest.raises(ValueError, match="no operators"):
            load_model_config(path)


class TestTensorConfig:
    def test_values_length_checked(self) -> None:
        with pytest.raises(ValueError, match="values for shape"):
            TensorConfig(name="B", shape=[3], kind="initialized", values=[1.0])

    def test_intermediate_rejected(self) -> None:
        with pytest.raises(ValueError, match="intermediate"):
            TensorConfig(name="Y", shape=[3], kind="intermediate")

    def test_seeded_data_is_reproducible(self) -> None:
        first = TensorConfig(name="W", shape=[2, 2], kind="initialized", seed=3).data()
        second = TensorConfig(name="W", shape=[2, 2], kind="initialized", seed=3).data()
        np.testing.assert_array_equal(first, second)
        assert first.dtype == np.float32

    def test_type_from_string(self) -> None:
        assert TensorConfig(name="X", shape=[1], type="float32").type == TensorType.FLOAT


def test_build_model(config_file):
    model = build_model(load_model_config(config_file))
    assert model.is_initialized
    assert model.get_tensor_shape("Y") == [1, 3, 7, 7]
    np.testing.assert_allclose(model.get_initialized_tensor_data("B"), [0.1, -0.2, 0.3], rtol=1e-6)


class TestCli:
    """End-to-end code generation."""

    def test_writes_header_and_weights(self, config_file, tmp_path) -> None:
        output = tmp_path / "out" / "upsample2d.hxx"
        assert main(["--config", str(config_file), "--output", str(output)]) == 0

        assert "struct Session" in output.read_text()
        weights = read_weight_file(output.with_suffix(".dat"))
        assert set(weights) == {"W", "B", "Bbcast"}

    def test_python_backend(self, config_file, tmp_path) -> None:
        output = tmp_path / "session.py"
        weights = tmp_path / "weights.dat"
        code = main([
            "--config", str(config_file),
            "--backend", "python",
            "--output", str(output),
            "--weights", str(weights),
        ])
        assert code == 0
        assert "class Session" in output.read_text()
        assert weights.exists()

    def test_missing_config_returns_error(self, tmp_path) -> None:
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1

    def test_unknown_backend_rejected_by_parser(self, config_file) -> None:
        with pytest.raises(SystemExit):
            main(["--config", str(config_file), "--backend", "fortran"])
