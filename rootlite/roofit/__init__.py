"""
Probability density functions and event generation.

Contains the Johnson S_U PDF, the variables it depends on, and numeric
generators (FOAM cells, accept/reject) for PDFs without a direct generator.
"""

from .real_var import RealVar
from .abs_pdf import AbsPdf
from .johnson import Johnson, IntegralCode
from .num_gen_config import NumGenConfig, FoamConfig, AcceptRejectConfig, load_num_gen_config
from .generators import NumGenFactory, FoamGenerator, AcceptRejectGenerator

__all__ = [
    "RealVar",
    "AbsPdf",
    "Johnson",
    "IntegralCode",
    "NumGenConfig",
    "FoamConfig",
    "AcceptRejectConfig",
    "load_num_gen_config",
    "NumGenFactory",
    "FoamGenerator",
    "AcceptRejectGenerator",
]
