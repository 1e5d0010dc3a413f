"""
Numeric generator interface and factory.

Numeric generators draw events from any PDF using only ``evaluate()``.
They register themselves with ``NumGenFactory`` under a method name that
``NumGenConfig.method`` selects.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple, Type

import numpy as np

from ..real_var import INFINITY, RealVar

logger = logging.getLogger(__name__)


class AbsNumGenerator(ABC):
    """
    Abstract base class for numeric event generators.

    Args:
        func: PDF to sample
        gen_vars: Variables to generate; each needs a finite range
        config: NumGenConfig
        verbose: Log generator details at INFO level
        max_func_val: Known upper bound of the function, if any
        rng: Random generator (a fresh default one if None)

    Raises:
        ValueError: If a generated variable has no finite range or is not a
            variable of ``func``
    """

    def __init__(
        self,
        func,
        gen_vars: Sequence[RealVar],
        config,
        verbose: bool = False,
        max_func_val: Optional[float] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        if not gen_vars:
            raise ValueError("At least one variable must be generated")
        for var in gen_vars:
            if not any(var is v for v in func.variables):
                raise ValueError(f"'{var.name}' is not a variable of '{func.name}'")
            if var.min() <= -INFINITY or var.max() >= INFINITY:
                raise ValueError(
                    f"Cannot generate '{var.name}' numerically without a finite range"
                )

        self.func = func
        self.gen_vars = list(gen_vars)
        self.config = config
        self.verbose = verbose
        self.max_func_val = max_func_val
        self.rng = rng or np.random.default_rng()
        self.xmin = np.array([v.min() for v in self.gen_vars])
        self.range = np.array([v.max() - v.min() for v in self.gen_vars])

    @property
    def dimensions(self) -> int:
        return len(self.gen_vars)

    def _set_point(self, x: np.ndarray) -> None:
        for var, value in zip(self.gen_vars, x):
            var.value = float(value)

    def _current_values(self) -> Dict[str, float]:
        return {v.name: v.value for v in self.gen_vars}

    @abstractmethod
    def generate_event(self, remaining: int) -> Tuple[Dict[str, float], float]:
        """
        Generate one event.

        Args:
            remaining: Number of events still to be generated

        Returns:
            Tuple (values keyed by variable name, resample ratio). A ratio
            below 1 asks the caller to resample that fraction of the events
            generated so far because the envelope was raised.
        """
        pass

    def can_sample_conditional(self) -> bool:
        return False

    def can_sample_categories(self) -> bool:
        return False


class NumGenFactory:
    """
    Registry of numeric generators.

    Generators register themselves with this class and are instantiated by
    method name.
    """

    _samplers: Dict[str, Type[AbsNumGenerator]] = {}

    @classmethod
    def register(cls, name: str, generator_class: Type[AbsNumGenerator]) -> None:
        """
        Register a generator implementation.

        Args:
            name: Method name (e.g., "foam", "accept_reject")
            generator_class: AbsNumGenerator subclass
        """
        if name in cls._samplers:
            logger.warning(
                f"Sampler '{name}' already registered. Overwriting with {generator_class}"
            )
        cls._samplers[name] = generator_class
        logger.debug(f"Registered sampler: {name} -> {generator_class.__name__}")

    @classmethod
    def create(cls, name: str, func, gen_vars: Sequence[RealVar], config, **kwargs) -> AbsNumGenerator:
        """
        Create a generator by method name.

        Raises:
            ValueError: If the method is not registered
        """
        key = name.lower()
        if key not in cls._samplers:
            available = ", ".join(sorted(cls._samplers.keys()))
            raise ValueError(
                f"Unknown sampler: {name}. "
                f"Available samplers: {available}"
            )
        return cls._samplers[key](func, gen_vars, config, **kwargs)

    @classmethod
    def list_samplers(cls) -> List[str]:
        return sorted(cls._samplers.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name.lower() in cls._samplers

    @classmethod
    def unregister(cls, name: str) -> None:
        """Unregister a sampler (mainly for testing)."""
        if name in cls._samplers:
            del cls._samplers[name]


def register_sampler(name: str):
    """
    Decorator for registering generator classes.

    Example:
        @register_sampler("foam")
        class FoamGenerator(AbsNumGenerator):
            ...
    """

    def decorator(cls):
        NumGenFactory.register(name, cls)
        return cls

    return decorator
