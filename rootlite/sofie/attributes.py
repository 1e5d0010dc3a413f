"""
Declarative attribute records for the transposed convolution operator.

``ConvTransposeAttributes`` holds what the user (or a model file) asked for;
empty lists mean "use the default". ``ResolvedAttributes`` is what the
planner derived: every field is filled and padding is symmetric.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class AutoPad(Enum):
    """Padding mode."""
    NOTSET = "NOTSET"
    SAME_UPPER = "SAME_UPPER"  # extra padding goes after
    SAME_LOWER = "SAME_LOWER"  # extra padding goes before
    VALID = "VALID"

    @classmethod
    def from_string(cls, name: str) -> "AutoPad":
        try:
            return cls(name.strip().upper())
        except ValueError:
            valid = [m.value for m in cls]
            raise ValueError(f"Unknown auto_pad: {name}. Must be one of {valid}")


@dataclass
class ConvTransposeAttributes:
    """Attributes of a transposed convolution as given by the caller."""

    kernel_shape: List[int] = field(default_factory=list)
    strides: List[int] = field(default_factory=list)
    dilations: List[int] = field(default_factory=list)
    pads: List[int] = field(default_factory=list)  # begins..., ends...
    output_padding: List[int] = field(default_factory=list)
    output_shape: List[int] = field(default_factory=list)
    group: int = 1
    auto_pad: AutoPad = AutoPad.NOTSET

    def __post_init__(self):
        """Validate scalar attributes and normalise list fields."""
        if isinstance(self.auto_pad, str):
            self.auto_pad = AutoPad.from_string(self.auto_pad)
        if self.group < 1:
            raise ValueError(f"group must be >= 1, got {self.group}")
        for name in ("kernel_shape", "strides", "dilations", "pads", "output_padding", "output_shape"):
            setattr(self, name, [int(v) for v in getattr(self, name)])


@dataclass(frozen=True)
class ResolvedAttributes:
    """Fully resolved attributes for one spatial rank."""

    kernel_shape: Tuple[int, ...]
    strides: Tuple[int, ...]
    dilations: Tuple[int, ...]
    pads: Tuple[int, ...]  # begins..., ends... (symmetric)
    output_padding: Tuple[int, ...]
    group: int
    padding_was_averaged: bool = False

    @property
    def spatial_rank(self) -> int:
        return len(self.kernel_shape)

    @property
    def pads_begin(self) -> Tuple[int, ...]:
        return self.pads[: self.spatial_rank]

    @property
    def pads_end(self) -> Tuple[int, ...]:
        return self.pads[self.spatial_rank:]
