"""Spectral radius helpers for recurrent weight matrices."""

import logging

import torch

logger = logging.getLogger(__name__)

# Below this the matrix is treated as having no dominant eigenvalue.
_RADIUS_EPS = 1e-8


def spectral_radius(weight: torch.Tensor) -> float:
    """Return the largest absolute eigenvalue of a square matrix.

    Eigenvalues are computed in float64 regardless of the input dtype.
    """
    if weight.dim() != 2 or weight.shape[0] != weight.shape[1]:
        raise ValueError(f"Weight must be square, got shape {tuple(weight.shape)}")
    if weight.numel() == 0:
        return 0.0
    eigenvalues = torch.linalg.eigvals(weight.to(torch.float64))
    return torch.max(torch.abs(eigenvalues)).item()


def scale_spectral_radius(weight: torch.Tensor, target_radius: float) -> torch.Tensor:
    """Rescale ``weight`` so that its spectral radius equals ``target_radius``.

    A matrix whose spectral radius is numerically zero cannot be rescaled;
    it is returned unchanged and a warning is logged.

    Args:
        weight: Square weight matrix
        target_radius: Desired spectral radius

    Returns:
        Scaled copy of ``weight`` (same dtype and device)
    """
    current_radius = spectral_radius(weight)

    if current_radius <= _RADIUS_EPS:
        if torch.any(weight != 0):
            logger.warning(
                "Recurrent matrix has spectral radius %.3g; skipping rescale to %s",
                current_radius,
                target_radius,
            )
        return weight.clone()

    scale = target_radius / current_radius
    return (weight.to(torch.float64) * scale).to(weight.dtype)
