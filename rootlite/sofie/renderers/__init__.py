"""
Source renderers for kernel IR.

Importing this package registers the built-in "cpp" and "python" renderers.
"""

from .base import Renderer, RendererRegistry, create_renderer, register_renderer
from .cpp import CppRenderer
from .python import PythonRenderer

__all__ = [
    "Renderer",
    "RendererRegistry",
    "create_renderer",
    "register_renderer",
    "CppRenderer",
    "PythonRenderer",
]
