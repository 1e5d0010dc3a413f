"""
FOAM-style adaptive cell sampler.

The unit hypercube is split into hyper-rectangular cells. Each cell is
explored with a fixed number of uniform function calls, which gives an
integral estimate and a local maximum. The cell wasting the most envelope
(``volume * max - integral``) is halved along the axis that shrinks the
envelope most, until the cell budget is used. Events are then drawn by
picking a cell in proportion to its envelope and accepting a uniform
point inside it with probability ``f / max``.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..real_var import RealVar
from .base import AbsNumGenerator, register_sampler

logger = logging.getLogger(__name__)


@dataclass
class Cell:
    """One hyper-rectangular cell of the unit hypercube."""
    lower: np.ndarray
    upper: np.ndarray
    integral: float = 0.0
    variance: float = 0.0
    max_value: float = 0.0
    split_dim: int = 0

    @property
    def volume(self) -> float:
        return float(np.prod(self.upper - self.lower))

    @property
    def envelope(self) -> float:
        return self.volume * self.max_value

    @property
    def loss(self) -> float:
        return self.envelope - self.integral


class Foam:
    """
    Adaptive cell-based Monte Carlo engine on the unit hypercube.

    Args:
        integrand: Non-negative function of a point in ``[0, 1]^dimensions``
        dimensions: Number of dimensions
        n_cells: Cell budget
        n_sample: Function calls per cell exploration
        rng: Random generator
        chat_level: 0 quiet, 1 summary, 2 per-split details
    """

    def __init__(
        self,
        integrand: Callable[[np.ndarray], float],
        dimensions: int,
        n_cells: int,
        n_sample: int,
        rng: np.random.Generator,
        chat_level: int = 0,
    ):
        self.integrand = integrand
        self.dimensions = dimensions
        self.n_cells = n_cells
        self.n_sample = n_sample
        self.rng = rng
        self.chat_level = chat_level
        self.cells: List[Cell] = []
        self.n_calls = 0
        self.n_events = 0
        self.n_overflows = 0
        self._n_calls_at_init = 0
        self._cumulative: Optional[np.ndarray] = None

    def _explore(self, cell: Cell) -> Cell:
        points = cell.lower + (cell.upper - cell.lower) * self.rng.random((self.n_sample, self.dimensions))
        values = np.array([self.integrand(p) for p in points])
        self.n_calls += self.n_sample

        volume = cell.volume
        cell.integral = volume * float(values.mean())
        cell.variance = volume * volume * float(values.var()) / self.n_sample
        cell.max_value = float(values.max())

        # axis whose midpoint split gives the smallest total envelope
        best_dim, best_envelope = 0, np.inf
        for d in range(self.dimensions):
            middle = 0.5 * (cell.lower[d] + cell.upper[d])
            below = points[:, d] < middle
            max_low = values[below].max() if below.any() else cell.max_value
            max_high = values[~below].max() if (~below).any() else cell.max_value
            envelope = 0.5 * volume * (max_low + max_high)
            if envelope < best_envelope:
                best_dim, best_envelope = d, envelope
        cell.split_dim = best_dim
        return cell

    def _split(self, cell: Cell) -> Tuple[Cell, Cell]:
        d = cell.split_dim
        middle = 0.5 * (cell.lower[d] + cell.upper[d])
        low_upper = cell.upper.copy()
        low_upper[d] = middle
        high_lower = cell.lower.copy()
        high_lower[d] = middle
        return (
            self._explore(Cell(cell.lower.copy(), low_upper)),
            self._explore(Cell(high_lower, cell.upper.copy())),
        )

    def initialize(self) -> None:
        """
        Build the cell structure.

        Raises:
            RuntimeError: If the integrand vanishes on every explored point
        """
        self.cells = [self._explore(Cell(np.zeros(self.dimensions), np.ones(self.dimensions)))]
        while len(self.cells) < self.n_cells:
            worst = max(range(len(self.cells)), key=lambda i: self.cells[i].loss)
            if self.cells[worst].loss <= 0.0:
                break
            parent = self.cells.pop(worst)
            self.cells.extend(self._split(parent))
            if self.chat_level >= 2:
                logger.info(
                    f"Foam: split cell on axis {parent.split_dim}, "
                    f"{len(self.cells)} cells, loss {parent.loss:.4g}"
                )

        envelopes = np.array([c.envelope for c in self.cells])
        if envelopes.sum() <= 0.0:
            raise RuntimeError("Foam: integrand is zero everywhere in the generation range")
        self._cumulative = np.cumsum(envelopes)
        self._n_calls_at_init = self.n_calls

        if self.chat_level >= 1:
            integral, error = self.integral_estimate()
            logger.info(
                f"Foam: {len(self.cells)} cells, {self.n_calls} calls, "
                f"integral {integral:.6g} +- {error:.2g}, efficiency {self.efficiency():.3f}"
            )

    def integral_estimate(self) -> Tuple[float, float]:
        """Integral over the unit hypercube and its statistical error."""
        integral = sum(c.integral for c in self.cells)
        error = float(np.sqrt(sum(c.variance for c in self.cells)))
        return integral, error

    def efficiency(self) -> float:
        """Expected acceptance rate of ``make_event``."""
        total = sum(c.envelope for c in self.cells)
        return sum(c.integral for c in self.cells) / total if total > 0 else 0.0

    def overflow_rate(self) -> float:
        """Fraction of proposals that exceeded their cell maximum."""
        proposals = self.n_calls - self._n_calls_at_init
        return self.n_overflows / proposals if proposals > 0 else 0.0

    def make_event(self) -> np.ndarray:
        """
        Draw one unweighted point from the unit hypercube.

        Raises:
            RuntimeError: If called before ``initialize``
        """
        if self._cumulative is None:
            raise RuntimeError("Foam: initialize() must be called before make_event()")

        total = self._cumulative[-1]
        while True:
            index = int(np.searchsorted(self._cumulative, self.rng.random() * total, side="right"))
            cell = self.cells[min(index, len(self.cells) - 1)]
            point = cell.lower + (cell.upper - cell.lower) * self.rng.random(self.dimensions)
            value = self.integrand(point)
            self.n_calls += 1
            if value > cell.max_value:
                self.n_overflows += 1
                if self.chat_level >= 1:
                    logger.warning(
                        f"Foam: value {value:.6g} exceeds cell maximum {cell.max_value:.6g}, "
                        f"overflow rate {self.overflow_rate():.3g}"
                    )
            if self.rng.random() * cell.max_value <= value:
                self.n_events += 1
                return point


class FoamBinding:
    """Maps unit-hypercube points onto the generated variables of a PDF."""

    def __init__(self, func, gen_vars: Sequence[RealVar], xmin: np.ndarray, range_: np.ndarray):
        self.func = func
        self.gen_vars = list(gen_vars)
        self.xmin = xmin
        self.range = range_
        self._warned = False

    def to_variables(self, point: np.ndarray) -> np.ndarray:
        return self.xmin + self.range * point

    def __call__(self, point: np.ndarray) -> float:
        for var, value in zip(self.gen_vars, self.to_variables(point)):
            var.value = float(value)
        value = self.func.evaluate()
        if value < 0.0:
            if not self._warned:
                logger.error(
                    f"Foam: '{self.func.name}' is negative ({value}) at "
                    f"{[v.value for v in self.gen_vars]}, using 0"
                )
                self._warned = True
            return 0.0
        return value


@register_sampler("foam")
class FoamGenerator(AbsNumGenerator):
    """
    Generates events from a PDF with the FOAM engine.

    The cell structure is built on construction. Conditional observables
    and categories cannot be sampled.
    """

    def __init__(self, func, gen_vars, config, verbose=False, max_func_val=None, rng=None):
        super().__init__(func, gen_vars, config, verbose, max_func_val, rng)
        foam_config = config.foam
        self._binding = FoamBinding(func, self.gen_vars, self.xmin, self.range)
        self._foam = Foam(
            self._binding,
            self.dimensions,
            n_cells=foam_config.n_cells(self.dimensions),
            n_sample=foam_config.n_sample,
            rng=self.rng,
            chat_level=max(foam_config.chat_level, 1 if verbose else 0),
        )
        self._foam.initialize()

    @property
    def engine(self) -> Foam:
        return self._foam

    def integral_estimate(self) -> Tuple[float, float]:
        """Integral of the PDF over the generation range, with its error."""
        integral, error = self._foam.integral_estimate()
        volume = float(np.prod(self.range))
        return integral * volume, error * volume

    def generate_event(self, remaining: int) -> Tuple[Dict[str, float], float]:
        point = self._foam.make_event()
        self._set_point(self._binding.to_variables(point))
        return self._current_values(), 1.0
