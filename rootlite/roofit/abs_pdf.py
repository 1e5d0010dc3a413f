"""
Base probability density function interface.

A PDF evaluates an unnormalized density from the current values of its
variables. Subclasses can advertise analytic integrals and direct
generators; everything else falls back to numeric methods.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .real_var import RealVar

logger = logging.getLogger(__name__)


class AbsPdf(ABC):
    """
    Abstract base class for probability density functions.

    All PDFs must implement:
    - evaluate(): Unnormalized density at the current variable values
    - variables: The RealVars the density depends on

    Optional capabilities (defaults report "not supported"):
    - get_analytical_integral() / analytical_integral()
    - get_generator() / generate_event()
    """

    def __init__(self, name: str, title: str = ""):
        self.name = name
        self.title = title or name

    @property
    @abstractmethod
    def variables(self) -> List[RealVar]:
        """Variables the density depends on."""
        pass

    @abstractmethod
    def evaluate(self) -> float:
        """Unnormalized density at the current variable values."""
        pass

    def get_analytical_integral(self, all_vars: Sequence[RealVar]) -> Tuple[int, List[RealVar]]:
        """
        Advertise an analytic integral over a subset of ``all_vars``.

        Returns:
            Tuple (code, integrated variables); code 0 means none available
        """
        return 0, []

    def analytical_integral(self, code: int, range_name: Optional[str] = None) -> float:
        raise NotImplementedError(f"{self.name}: no analytical integral with code {code}")

    def get_generator(self, direct_vars: Sequence[RealVar]) -> Tuple[int, List[RealVar]]:
        """
        Advertise direct event generation for a subset of ``direct_vars``.

        Returns:
            Tuple (code, generated variables); code 0 means none available
        """
        return 0, []

    def generate_event(self, code: int, rng: np.random.Generator) -> None:
        raise NotImplementedError(f"{self.name}: no direct generator with code {code}")

    def get_val(self, norm_vars: Optional[Sequence[RealVar]] = None, range_name: Optional[str] = None) -> float:
        """
        Density value, normalized over ``norm_vars`` when given.

        Raises:
            NotImplementedError: If normalization is requested over variables
                without an analytical integral
        """
        value = self.evaluate()
        if not norm_vars:
            return value

        code, matched = self.get_analytical_integral(norm_vars)
        if code == 0 or len(matched) != len(norm_vars):
            names = [v.name for v in norm_vars]
            raise NotImplementedError(f"{self.name}: cannot normalize analytically over {names}")
        return value / self.analytical_integral(code, range_name)

    def check_range_of_parameters(self, params: Sequence[RealVar], limit: float = 0.0) -> bool:
        """
        Log an error for each parameter whose range reaches below ``limit``.

        Returns:
            True if every range is safe
        """
        safe = True
        for par in params:
            if par.min() < limit:
                logger.error(
                    f"The parameter '{par.name}' with range [{par.min()}, {par.max()}] of "
                    f"{type(self).__name__} '{self.name}' exceeds the safe range of ({limit}, inf). "
                    f"Advise to limit its range."
                )
                safe = False
        return safe

    def generate(
        self,
        observables: Sequence[RealVar],
        n_events: int,
        rng: Optional[np.random.Generator] = None,
        config=None,
    ) -> Dict[str, np.ndarray]:
        """
        Generate events for ``observables``.

        Uses the PDF's direct generator when it covers every observable,
        otherwise a numeric generator from the factory. When the numeric
        generator reports a resample ratio below one, each earlier event is
        kept with that probability and the dropped ones are regenerated.

        Args:
            observables: Variables to generate
            n_events: Number of events
            rng: Random generator (a fresh default one if None)
            config: NumGenConfig for the numeric fallback

        Returns:
            Dict mapping variable name to an array of generated values
        """
        from .generators import NumGenFactory
        from .num_gen_config import NumGenConfig

        rng = rng or np.random.default_rng()
        data = {v.name: np.empty(n_events) for v in observables}

        code, generated = self.get_generator(observables)
        if code and len(generated) == len(observables):
            logger.info(f"{self.name}: generating {n_events} events with the direct generator")
            for i in range(n_events):
                self.generate_event(code, rng)
                for v in observables:
                    data[v.name][i] = v.value
            return data

        config = config or NumGenConfig()
        generator = NumGenFactory.create(config.method, self, observables, config, rng=rng)
        logger.info(f"{self.name}: generating {n_events} events with {type(generator).__name__}")
        count = 0
        while count < n_events:
            values, resample_ratio = generator.generate_event(n_events - count)
            if resample_ratio < 1.0 and count > 0:
                # earlier events were accepted under a lower envelope
                keep = rng.random(count) < resample_ratio
                for column in data.values():
                    kept = column[:count][keep]
                    column[: len(kept)] = kept
                logger.info(
                    f"{self.name}: envelope raised, keeping {int(keep.sum())} of {count} "
                    f"events (ratio {resample_ratio:.3g})"
                )
                count = int(keep.sum())
            for name, value in values.items():
                data[name][count] = value
            count += 1
        return data
