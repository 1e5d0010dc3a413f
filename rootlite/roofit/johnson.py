"""
Johnson's S_U distribution.

The PDF results from transforming a normally distributed variable x to

    z = gamma + delta * asinh((x - mu) / lambda)

giving

    PDF(x) = delta / (lambda * sqrt(2 pi)) / sqrt(1 + ((x - mu) / lambda)^2)
             * exp(-0.5 * (gamma + delta * asinh((x - mu) / lambda))^2)

It is often used to fit a mass difference for charm decays, so the
observable is called "mass". A mass threshold sets the PDF to zero to the
left of the threshold.

Reference: Johnson, N. L. (1949). Systems of Frequency Curves Generated by
Methods of Translation. Biometrika 36(1/2), 149-176.
"""

import logging
import math
from enum import IntEnum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .abs_pdf import AbsPdf
from .real_var import RealVar

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi
SQRT2 = math.sqrt(2.0)


class IntegralCode(IntEnum):
    """Analytic integral codes, in matching priority order."""
    MASS = 1
    MEAN = 2
    LAMBDA = 3
    GAMMA = 4
    DELTA = 5


GENERATE_MASS = 1


def _as_var(name: str, value: Union[RealVar, float]) -> RealVar:
    if isinstance(value, RealVar):
        return value
    # constants get a degenerate range
    value = float(value)
    return RealVar(name, value, value, value)


class Johnson(AbsPdf):
    """
    Johnson S_U PDF.

    Args:
        name: Name that identifies the PDF
        mass: The observable (often a mass)
        mu: Location parameter of the Gaussian component
        lambda_: Width parameter (>0) of the Gaussian component
        gamma: Shape parameter that distorts the distribution left/right
        delta: Shape parameter (>0), strength of the Gaussian-like component
        mass_threshold: PDF is zero below this value
        title: Optional description

    Raises:
        ValueError: If lambda or delta is not strictly positive
    """

    def __init__(
        self,
        name: str,
        mass: RealVar,
        mu: Union[RealVar, float],
        lambda_: Union[RealVar, float],
        gamma: Union[RealVar, float],
        delta: Union[RealVar, float],
        mass_threshold: float = -math.inf,
        title: str = "",
    ):
        super().__init__(name, title)
        self.mass = mass
        self.mu = _as_var("mu", mu)
        self.lambda_ = _as_var("lambda", lambda_)
        self.gamma = _as_var("gamma", gamma)
        self.delta = _as_var("delta", delta)
        self.mass_threshold = float(mass_threshold)

        for par in (self.lambda_, self.delta):
            if par.value <= 0:
                raise ValueError(f"{name}: parameter '{par.name}' must be > 0, got {par.value}")
        self.check_range_of_parameters([self.lambda_, self.delta], 0.0)

    @property
    def variables(self) -> List[RealVar]:
        return [self.mass, self.mu, self.lambda_, self.gamma, self.delta]

    def evaluate(self) -> float:
        mass = self.mass.value
        if mass < self.mass_threshold:
            return 0.0

        lam = self.lambda_.value
        delta = self.delta.value
        arg = (mass - self.mu.value) / lam
        expo = self.gamma.value + delta * math.asinh(arg)

        return delta / math.sqrt(TWO_PI) / (lam * math.sqrt(1.0 + arg * arg)) * math.exp(-0.5 * expo * expo)

    def compute_batch(self, masses: np.ndarray, normalize: bool = False, range_name: Optional[str] = None) -> np.ndarray:
        """
        Evaluate the density for many mass values at once.

        Args:
            masses: Array of mass values
            normalize: Divide by the mass integral over ``range_name``
            range_name: Named mass range used for normalization

        Returns:
            Array of densities, zero below the threshold
        """
        masses = np.asarray(masses, dtype=np.float64)
        lam = self.lambda_.value
        delta = self.delta.value
        arg = (masses - self.mu.value) / lam
        expo = self.gamma.value + delta * np.arcsinh(arg)
        result = delta / math.sqrt(TWO_PI) / (lam * np.sqrt(1.0 + arg * arg)) * np.exp(-0.5 * expo * expo)
        result = np.where(masses < self.mass_threshold, 0.0, result)
        if normalize:
            result = result / self.analytical_integral(IntegralCode.MASS, range_name)
        return result

    def get_analytical_integral(self, all_vars: Sequence[RealVar]) -> Tuple[int, List[RealVar]]:
        candidates = (
            (IntegralCode.MASS, self.mass),
            (IntegralCode.MEAN, self.mu),
            (IntegralCode.LAMBDA, self.lambda_),
            (IntegralCode.GAMMA, self.gamma),
            (IntegralCode.DELTA, self.delta),
        )
        for code, var in candidates:
            if any(v is var for v in all_vars):
                return int(code), [var]
        return 0, []

    def analytical_integral(self, code: int, range_name: Optional[str] = None) -> float:
        """
        Integral over one variable, computed as a Gaussian CDF difference.

        All variables are shifted and scaled so that only the standard normal
        CDF of the transformed limits is needed.
        """
        mass = self.mass.value
        mu = self.mu.value
        lam = self.lambda_.value
        gamma = self.gamma.value
        delta = self.delta.value

        if code in (IntegralCode.MASS, IntegralCode.MEAN, IntegralCode.LAMBDA):
            if code == IntegralCode.MASS:
                arg_min = (self.mass.min(range_name) - mu) / lam
                arg_max = (self.mass.max(range_name) - mu) / lam
            elif code == IntegralCode.MEAN:
                arg_min = (mass - self.mu.min(range_name)) / lam
                arg_max = (mass - self.mu.max(range_name)) / lam
            else:
                arg_min = (mass - mu) / self.lambda_.min(range_name)
                arg_max = (mass - mu) / self.lambda_.max(range_name)
            z_min = gamma + delta * math.asinh(arg_min)
            z_max = gamma + delta * math.asinh(arg_max)
        elif code == IntegralCode.GAMMA:
            arg = (mass - mu) / lam
            z_min = self.gamma.min(range_name) + delta * math.asinh(arg)
            z_max = self.gamma.max(range_name) + delta * math.asinh(arg)
        elif code == IntegralCode.DELTA:
            arg = (mass - mu) / lam
            z_min = gamma + self.delta.min(range_name) * math.asinh(arg)
            z_max = gamma + self.delta.max(range_name) * math.asinh(arg)
        else:
            raise ValueError(f"{self.name}: unknown integral code {code}")

        # erfc is most precise in the upper tail, so both limits are mapped
        # there using erfc(-x) = 2 - erfc(x)
        ec_min = math.erfc(abs(z_min / SQRT2))
        ec_max = math.erfc(abs(z_max / SQRT2))

        if z_min * z_max < 0.0:
            result = 0.5 * (2.0 - (ec_min + ec_max))
        elif z_max <= 0.0:
            result = 0.5 * (ec_max - ec_min)
        else:
            result = 0.5 * (ec_min - ec_max)

        return result if result != 0.0 else 1e-300

    def get_generator(self, direct_vars: Sequence[RealVar]) -> Tuple[int, List[RealVar]]:
        """Only generating mass values is supported."""
        if any(v is self.mass for v in direct_vars):
            return GENERATE_MASS, [self.mass]
        return 0, []

    def generate_event(self, code: int, rng: np.random.Generator, max_trials: int = 1_000_000) -> None:
        """
        Draw a mass value by transforming a standard normal deviate.

        Values outside the mass range or below the threshold are redrawn.

        Raises:
            NotImplementedError: For any code other than mass generation
            RuntimeError: If no value is accepted within ``max_trials``
        """
        if code != GENERATE_MASS:
            raise NotImplementedError("Generation in other variables not yet implemented.")

        lam = self.lambda_.value
        low = max(self.mass.min(), self.mass_threshold)
        high = self.mass.max()
        for _ in range(max_trials):
            gauss = rng.standard_normal()
            mass = lam * math.sinh((gauss - self.gamma.value) / self.delta.value) + self.mu.value
            if low <= mass <= high:
                self.mass.value = mass
                return
        raise RuntimeError(
            f"{self.name}: no mass value in [{low}, {high}] after {max_trials} trials"
        )
