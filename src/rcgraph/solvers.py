"""Closed-form and iterative ridge regression solvers.

Both solvers fit the regularized least-squares problem on centered data:

    (Hc.T @ Hc + ridge * I) @ W = Hc.T @ Yc

where ``Hc`` and ``Yc`` are the design and target matrices with their
column means removed. The bias is recovered as ``mean(Y) - mean(H) @ W``.
All arithmetic runs in float64.
"""

import logging
from typing import Callable, Tuple

import torch

from .errors import DimensionMismatch, InvalidParameter

logger = logging.getLogger(__name__)


def _centered_system(
    H: torch.Tensor,
    Y: torch.Tensor,
    ridge: float,
) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor]:
    """Validate inputs and build the centered normal equations.

    Returns:
        gram: Hc.T @ Hc of shape (n_features, n_features)
        rhs: Hc.T @ Yc of shape (n_features, n_outputs)
        H_mean: Column means of H, shape (1, n_features)
        Y_mean: Column means of Y, shape (1, n_outputs)
    """
    if ridge < 0:
        raise InvalidParameter(f"ridge must be non-negative, got {ridge}")
    if H.dim() != 2 or Y.dim() != 2:
        raise DimensionMismatch(
            f"H and Y must be 2D, got shapes {tuple(H.shape)} and {tuple(Y.shape)}"
        )
    if H.shape[0] != Y.shape[0]:
        raise DimensionMismatch(
            f"Number of samples must match: H has {H.shape[0]}, Y has {Y.shape[0]}"
        )
    if H.shape[0] == 0:
        raise DimensionMismatch("Cannot fit ridge regression on zero samples")

    H = H.to(torch.float64)
    Y = Y.to(torch.float64)

    H_mean = H.mean(dim=0, keepdim=True)
    Y_mean = Y.mean(dim=0, keepdim=True)
    n = float(H.shape[0])

    # (H - mu_H)^T (H - mu_H) = H^T H - n * mu_H^T mu_H
    gram = H.T @ H - n * (H_mean.T @ H_mean)
    rhs = H.T @ Y - n * (H_mean.T @ Y_mean)
    return gram, rhs, H_mean, Y_mean


def ridge_regression(
    H: torch.Tensor,
    Y: torch.Tensor,
    ridge: float,
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Solve ridge regression in closed form.

    Args:
        H: Design matrix of shape (n_samples, n_features)
        Y: Target matrix of shape (n_samples, n_outputs)
        ridge: L2 regularization strength (must be non-negative)

    Returns:
        weight: Matrix of shape (n_outputs, n_features)
        bias: Vector of shape (n_outputs,)

    Raises:
        InvalidParameter: If ridge is negative
        DimensionMismatch: If H and Y disagree on the number of samples
    """
    gram, rhs, H_mean, Y_mean = _centered_system(H, Y, ridge)
    system = gram + ridge * torch.eye(gram.shape[0], dtype=gram.dtype)

    try:
        coefs = torch.linalg.solve(system, rhs)
    except torch.linalg.LinAlgError:
        # Only reachable with ridge == 0 and rank-deficient H
        logger.warning(
            "Ridge system of size %d is singular (ridge=%s); using pseudo-inverse",
            system.shape[0],
            ridge,
        )
        coefs = torch.linalg.pinv(system) @ rhs

    bias = (Y_mean - H_mean @ coefs).squeeze(0)
    return coefs.T.contiguous(), bias


def conjugate_gradient_ridge(
    H: torch.Tensor,
    Y: torch.Tensor,
    ridge: float,
    max_iter: int = 100,
    tol: float = 1e-5,
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Solve ridge regression with Conjugate Gradient.

    Each output column is solved independently with a vectorized CG whose
    scalar updates are computed per column by broadcasting. The normal
    matrix is never inverted.

    Args:
        H: Design matrix of shape (n_samples, n_features)
        Y: Target matrix of shape (n_samples, n_outputs)
        ridge: L2 regularization strength (must be non-negative)
        max_iter: Maximum CG iterations
        tol: Convergence tolerance on the residual norm

    Returns:
        weight: Matrix of shape (n_outputs, n_features)
        bias: Vector of shape (n_outputs,)
    """
    gram, rhs, H_mean, Y_mean = _centered_system(H, Y, ridge)

    def matvec(w: torch.Tensor) -> torch.Tensor:
        return gram @ w + ridge * w

    coefs = _conjugate_gradient(matvec, rhs, max_iter, tol)
    bias = (Y_mean - H_mean @ coefs).squeeze(0)
    return coefs.T.contiguous(), bias


def _conjugate_gradient(
    A_func: Callable[[torch.Tensor], torch.Tensor],
    B: torch.Tensor,
    max_iter: int,
    tol: float,
) -> torch.Tensor:
    """Solve A @ X = B for symmetric positive (semi-)definite A."""
    X = torch.zeros_like(B)
    R = B - A_func(X)
    P = R.clone()
    Rs_old = (R * R).sum(dim=0)

    for i in range(max_iter):
        if torch.all(Rs_old < tol**2):
            logger.debug("CG converged after %d iterations", i)
            break

        AP = A_func(P)
        curvature = (P * AP).sum(dim=0)
        # Converged columns have P == 0; keep their step at zero
        safe = torch.where(curvature > 0, curvature, torch.ones_like(curvature))
        step = torch.where(curvature > 0, Rs_old / safe, torch.zeros_like(curvature))

        X = X + P * step
        R = R - AP * step
        Rs_new = (R * R).sum(dim=0)
        beta = torch.where(Rs_old > 0, Rs_new / torch.clamp(Rs_old, min=1e-300), Rs_old)
        P = R + P * beta
        Rs_old = Rs_new
    else:
        logger.debug("CG stopped at max_iter=%d, residual=%s", max_iter, Rs_old.sqrt().max().item())

    return X


__all__ = ["ridge_regression", "conjugate_gradient_ridge"]
