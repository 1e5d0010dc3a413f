"""
Numeric event generators.

Importing this package registers the "foam" and "accept_reject" samplers.
"""

from .base import AbsNumGenerator, NumGenFactory, register_sampler
from .foam import Foam, FoamBinding, FoamGenerator
from .accept_reject import AcceptRejectGenerator

__all__ = [
    "AbsNumGenerator",
    "NumGenFactory",
    "register_sampler",
    "Foam",
    "FoamBinding",
    "FoamGenerator",
    "AcceptRejectGenerator",
]
