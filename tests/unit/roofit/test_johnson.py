"""
Unit tests for the Johnson S_U PDF and RealVar.
"""

import logging
import math

import numpy as np
import pytest

from rootlite.roofit import IntegralCode, Johnson, RealVar


@pytest.fixture
def mass():
    return RealVar("mass", 0.0, -5.0, 5.0)


@pytest.fixture
def johnson(mass):
    return Johnson("johnson", mass, mu=0.3, lambda_=1.2, gamma=0.5, delta=1.5)


def _density(x, mu, lam, gamma, delta):
    arg = (x - mu) / lam
    expo = gamma + delta * math.asinh(arg)
    return delta / (lam * math.sqrt(2 * math.pi) * math.sqrt(1 + arg * arg)) * math.exp(-0.5 * expo * expo)


def _integrate(y, x):
    """Trapezoidal rule."""
    return float(np.sum((y[1:] + y[:-1]) * np.diff(x)) / 2.0)


class TestRealVar:
    def test_default_range_is_unbounded(self) -> None:
        var = RealVar("x", 1.5)
        assert var.min() == -1e300
        assert var.max() == 1e300
        assert float(var) == 1.5

    def test_named_range(self) -> None:
        var = RealVar("x", 0.0, -1.0, 1.0)
        var.set_range("signal", -0.5, 0.25)
        assert var.has_range("signal")
        assert var.min("signal") == -0.5
        assert var.max("signal") == 0.25
        assert var.in_range(0.5)
        assert not var.in_range(0.5, "signal")

    def test_unknown_range_falls_back(self, caplog) -> None:
        var = RealVar("x", 0.0, -1.0, 1.0)
        with caplog.at_level(logging.WARNING):
            assert var.min("sideband") == -1.0
        assert "no range named 'sideband'" in caplog.text

    def test_invalid_range(self) -> None:
        with pytest.raises(ValueError, match="invalid range"):
            RealVar("x", 0.0, 2.0, 1.0)
        with pytest.raises(ValueError, match="invalid range"):
            RealVar("x", 0.0).set_range("bad", 3.0, -3.0)


class TestEvaluate:
    def test_matches_closed_form(self, johnson, mass) -> None:
        for x in (-3.0, -0.7, 0.0, 0.3, 2.5):
            mass.value = x
            assert johnson.evaluate() == pytest.approx(_density(x, 0.3, 1.2, 0.5, 1.5), rel=1e-12)

    def test_non_negative(self, johnson, mass) -> None:
        for x in np.linspace(-5.0, 5.0, 41):
            mass.value = x
            assert johnson.evaluate() >= 0.0

    def test_zero_below_threshold(self) -> None:
        mass = RealVar("mass", -1.0, -5.0, 5.0)
        pdf = Johnson("j", mass, 0.0, 1.0, 0.0, 1.0, mass_threshold=0.0)
        assert pdf.evaluate() == 0.0
        mass.value = 0.5
        assert pdf.evaluate() > 0.0

    def test_compute_batch_matches_evaluate(self, johnson, mass) -> None:
        masses = np.linspace(-4.0, 4.0, 17)
        batch = johnson.compute_batch(masses)
        for x, value in zip(masses, batch):
            mass.value = x
            assert value == pytest.approx(johnson.evaluate(), rel=1e-12)

    def test_compute_batch_threshold(self) -> None:
        pdf = Johnson("j", RealVar("mass", 0.0), 0.0, 1.0, 0.0, 1.0, mass_threshold=0.0)
        batch = pdf.compute_batch(np.array([-1.0, -0.1, 0.1]))
        assert batch[0] == 0.0
        assert batch[1] == 0.0
        assert batch[2] > 0.0

    def test_parameters_accept_floats(self, johnson) -> None:
        assert isinstance(johnson.lambda_, RealVar)
        assert [v.name for v in johnson.variables] == ["mass", "mu", "lambda", "gamma", "delta"]

    @pytest.mark.parametrize("lam,delta", [(0.0, 1.0), (-1.0, 1.0), (1.0, 0.0)])
    def test_non_positive_width_or_delta(self, lam, delta) -> None:
        with pytest.raises(ValueError, match="must be > 0"):
            Johnson("j", RealVar("mass", 0.0), 0.0, lam, 0.0, delta)

    def test_unsafe_parameter_range_logged(self, caplog) -> None:
        lam = RealVar("lambda", 1.0, -1.0, 5.0)
        with caplog.at_level(logging.ERROR):
            Johnson("j", RealVar("mass", 0.0), 0.0, lam, 0.0, 1.0)
        assert "exceeds the safe range" in caplog.text

    def test_constant_parameters_log_nothing(self, caplog) -> None:
        with caplog.at_level(logging.ERROR):
            pdf = Johnson("j", RealVar("mass", 0.0), 0.0, 1.0, 0.0, 1.0)
        assert caplog.records == []
        assert (pdf.lambda_.min(), pdf.lambda_.max()) == (1.0, 1.0)


class TestIntegral:
    def test_full_range_integral_is_one(self) -> None:
        pdf = Johnson("j", RealVar("mass", 0.0), 0.3, 1.2, 0.5, 1.5)
        assert pdf.analytical_integral(IntegralCode.MASS) == pytest.approx(1.0, abs=1e-12)

    def test_finite_range_matches_quadrature(self, johnson) -> None:
        grid = np.linspace(-5.0, 5.0, 20001)
        numeric = _integrate(johnson.compute_batch(grid), grid)
        assert johnson.analytical_integral(IntegralCode.MASS) == pytest.approx(numeric, rel=1e-5)

    @pytest.mark.parametrize("low,high", [(-5.0, -2.0), (1.0, 4.0), (-0.5, 0.5)])
    def test_named_range_integral(self, johnson, mass, low, high) -> None:
        mass.set_range("window", low, high)
        grid = np.linspace(low, high, 20001)
        numeric = _integrate(johnson.compute_batch(grid), grid)
        assert johnson.analytical_integral(IntegralCode.MASS, "window") == pytest.approx(numeric, rel=1e-5)

    def test_far_tail_integral_is_tiny_but_positive(self) -> None:
        mass = RealVar("mass", 0.0, 1e6, 1e7)
        pdf = Johnson("j", mass, 0.0, 0.01, 0.0, 5.0)
        assert pdf.analytical_integral(IntegralCode.MASS) == 1e-300

    def test_get_analytical_integral_priority(self, johnson, mass) -> None:
        assert johnson.get_analytical_integral([mass]) == (1, [mass])
        code, matched = johnson.get_analytical_integral([johnson.delta, johnson.gamma])
        assert code == IntegralCode.GAMMA
        assert matched == [johnson.gamma]
        assert johnson.get_analytical_integral([RealVar("other", 0.0)]) == (0, [])

    def test_unknown_code(self, johnson) -> None:
        with pytest.raises(ValueError, match="unknown integral code"):
            johnson.analytical_integral(9)

    def test_normalized_value(self, johnson, mass) -> None:
        mass.value = 0.1
        expected = johnson.evaluate() / johnson.analytical_integral(IntegralCode.MASS)
        assert johnson.get_val([mass]) == pytest.approx(expected)
        assert johnson.get_val() == johnson.evaluate()

    def test_compute_batch_normalized(self, johnson) -> None:
        grid = np.linspace(-5.0, 5.0, 20001)
        assert _integrate(johnson.compute_batch(grid, normalize=True), grid) == pytest.approx(1.0, rel=1e-5)


class TestDirectGeneration:
    def test_generator_code(self, johnson, mass) -> None:
        assert johnson.get_generator([mass]) == (1, [mass])
        assert johnson.get_generator([johnson.mu]) == (0, [])

    def test_generated_values_in_range(self, johnson, mass) -> None:
        rng = np.random.default_rng(11)
        for _ in range(500):
            johnson.generate_event(1, rng)
            assert -5.0 <= mass.value <= 5.0

    def test_threshold_respected(self) -> None:
        mass = RealVar("mass", 0.0, -5.0, 5.0)
        pdf = Johnson("j", mass, 0.0, 1.0, 0.0, 1.0, mass_threshold=1.0)
        data = pdf.generate([mass], 300, rng=np.random.default_rng(12))
        assert data["mass"].min() >= 1.0
        assert data["mass"].max() <= 5.0

    def test_other_codes_not_implemented(self, johnson) -> None:
        with pytest.raises(NotImplementedError, match="not yet implemented"):
            johnson.generate_event(2, np.random.default_rng(0))

    def test_unreachable_range(self) -> None:
        mass = RealVar("mass", 0.0, 1e6, 1e7)
        pdf = Johnson("j", mass, 0.0, 0.01, 0.0, 5.0)
        with pytest.raises(RuntimeError, match="no mass value"):
            pdf.generate_event(1, np.random.default_rng(0), max_trials=100)

    def test_sample_matches_density(self, johnson) -> None:
        """Histogram of direct samples follows the normalized density."""
        data = johnson.generate([johnson.mass], 20000, rng=np.random.default_rng(13))["mass"]
        edges = np.linspace(-5.0, 5.0, 11)
        counts, _ = np.histogram(data, bins=edges)

        fine = np.linspace(-5.0, 5.0, 10001)
        density = johnson.compute_batch(fine, normalize=True)
        expected = [
            _integrate(density[(fine >= lo) & (fine <= hi)], fine[(fine >= lo) & (fine <= hi)]) * len(data)
            for lo, hi in zip(edges[:-1], edges[1:])
        ]
        for observed, mean in zip(counts, expected):
            assert abs(observed - mean) < 5 * math.sqrt(mean) + 5
