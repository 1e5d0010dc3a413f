"""
Accept/reject sampler with a uniform envelope.
"""

import logging
from typing import Dict, Tuple

import numpy as np

from .base import AbsNumGenerator, register_sampler

logger = logging.getLogger(__name__)


@register_sampler("accept_reject")
class AcceptRejectGenerator(AbsNumGenerator):
    """
    Generates events by uniform proposals under a flat envelope.

    The envelope is ``max_func_val`` when given, otherwise the largest value
    seen in a uniform scan times a safety factor. When a proposal exceeds
    the envelope, the envelope is raised and the returned resample ratio
    tells the caller which fraction of earlier events to keep.
    """

    def __init__(self, func, gen_vars, config, verbose=False, max_func_val=None, rng=None):
        super().__init__(func, gen_vars, config, verbose, max_func_val, rng)
        settings = config.accept_reject
        self.safety_factor = settings.safety_factor
        self.n_calls = 0

        if max_func_val is not None:
            self.envelope = float(max_func_val)
        else:
            n_trial = settings.n_trial_1d if self.dimensions == 1 else settings.n_trial_nd
            self.envelope = self._scan_maximum(n_trial) * self.safety_factor

        if self.envelope <= 0.0:
            raise RuntimeError(
                f"AcceptReject: '{func.name}' is zero everywhere in the generation range"
            )
        if verbose:
            logger.info(f"AcceptReject: envelope {self.envelope:.6g} for {[v.name for v in self.gen_vars]}")

    def _evaluate(self, x: np.ndarray) -> float:
        self._set_point(x)
        self.n_calls += 1
        return self.func.evaluate()

    def _scan_maximum(self, n_trial: int) -> float:
        points = self.xmin + self.range * self.rng.random((n_trial, self.dimensions))
        return max(self._evaluate(x) for x in points)

    def generate_event(self, remaining: int) -> Tuple[Dict[str, float], float]:
        resample_ratio = 1.0
        while True:
            x = self.xmin + self.range * self.rng.random(self.dimensions)
            value = self._evaluate(x)
            if value > self.envelope:
                raised = value * self.safety_factor
                logger.warning(
                    f"AcceptReject: function value {value:.6g} exceeds envelope "
                    f"{self.envelope:.6g}, raising it to {raised:.6g}"
                )
                resample_ratio *= self.envelope / raised
                self.envelope = raised
            if self.rng.random() * self.envelope <= value:
                return self._current_values(), resample_ratio
