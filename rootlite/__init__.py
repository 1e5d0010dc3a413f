"""
rootlite - numerical analysis toolkit.

Subpackages:
- sofie: transposed-convolution planner and inference code generator
- roofit: probability density functions and numeric event generators
- mathcore: 3D displacement vectors in several coordinate systems
- infrastructure: logging and reproducibility helpers
"""

__version__ = "0.1.0"
