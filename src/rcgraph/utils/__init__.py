"""Utility helpers for rcgraph."""

from .general import as_matrix, as_tensor, as_vector
from .linalg import scale_spectral_radius, spectral_radius

__all__ = [
    "as_tensor",
    "as_vector",
    "as_matrix",
    "spectral_radius",
    "scale_spectral_radius",
]
