"""Graph composition and execution."""

from .model import Model

__all__ = ["Model"]
