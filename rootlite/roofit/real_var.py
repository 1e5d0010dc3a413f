"""
Real-valued variable with a default range and named sub-ranges.
"""

import logging
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

INFINITY = 1e300


class RealVar:
    """
    A named real variable (observable or parameter).

    Args:
        name: Variable name
        value: Current value
        min_value: Lower bound of the default range
        max_value: Upper bound of the default range
        title: Optional description
    """

    def __init__(
        self,
        name: str,
        value: float,
        min_value: float = -INFINITY,
        max_value: float = INFINITY,
        title: str = "",
    ):
        if min_value > max_value:
            raise ValueError(f"{name}: invalid range [{min_value}, {max_value}]")
        self.name = name
        self.title = title or name
        self._value = float(value)
        self._ranges: Dict[Optional[str], Tuple[float, float]] = {None: (float(min_value), float(max_value))}

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, new_value: float) -> None:
        self._value = float(new_value)

    def __float__(self) -> float:
        return self._value

    def set_range(self, name: Optional[str], min_value: float, max_value: float) -> None:
        """
        Define (or replace) a range. ``name=None`` sets the default range.

        Raises:
            ValueError: If min_value > max_value
        """
        if min_value > max_value:
            raise ValueError(f"{self.name}: invalid range '{name}' [{min_value}, {max_value}]")
        self._ranges[name] = (float(min_value), float(max_value))

    def has_range(self, name: Optional[str]) -> bool:
        return name in self._ranges

    def _range(self, name: Optional[str]) -> Tuple[float, float]:
        if name not in self._ranges:
            logger.warning(f"{self.name}: no range named '{name}', using the default range")
            return self._ranges[None]
        return self._ranges[name]

    def min(self, range_name: Optional[str] = None) -> float:
        return self._range(range_name)[0]

    def max(self, range_name: Optional[str] = None) -> float:
        return self._range(range_name)[1]

    def in_range(self, value: Optional[float] = None, range_name: Optional[str] = None) -> bool:
        """Whether ``value`` (default: the current value) lies inside a range."""
        value = self._value if value is None else value
        low, high = self._range(range_name)
        return low <= value <= high

    def __repr__(self) -> str:
        low, high = self._ranges[None]
        return f"RealVar({self.name}={self._value}, [{low}, {high}])"
