"""Conversion of user data into the tensors used by nodes and models."""

from typing import Any, Optional

import numpy as np
import torch

from ..errors import DimensionMismatch


def as_tensor(data: Any, dtype: Optional[torch.dtype] = None) -> torch.Tensor:
    """Convert ``data`` to a tensor of any shape.

    Raises:
        DimensionMismatch: If ``data`` is not numeric
    """
    dtype = dtype or torch.get_default_dtype()
    if isinstance(data, torch.Tensor):
        return data.detach().to(dtype=dtype)
    try:
        array = np.asarray(data, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise DimensionMismatch(
            f"Cannot convert {type(data).__name__} to numeric data: {exc}"
        ) from exc
    return torch.as_tensor(array, dtype=dtype)


def as_vector(data: Any, name: str = "input", dtype: Optional[torch.dtype] = None) -> torch.Tensor:
    """Convert ``data`` to a 1D tensor.

    Accepts tensors, numpy arrays, sequences of floats and bare scalars
    (treated as a length-1 vector).

    Args:
        data: Vector-like data
        name: Name used in error messages
        dtype: Target dtype (default: torch default dtype)

    Returns:
        1D tensor

    Raises:
        DimensionMismatch: If ``data`` has more than one axis
    """
    tensor = as_tensor(data, dtype)
    if tensor.dim() == 0:
        return tensor.reshape(1)
    if tensor.dim() != 1:
        raise DimensionMismatch(f"{name} must be a vector, got shape {tuple(tensor.shape)}")
    return tensor


def as_matrix(
    data: Any,
    rows: int,
    cols: Optional[int] = None,
    name: str = "data",
    dtype: Optional[torch.dtype] = None,
) -> torch.Tensor:
    """Convert ``data`` to a ``(rows, cols)`` tensor.

    ``data`` may already be 2D, or flat with ``rows * cols`` entries in
    row-major order. When ``cols`` is None it is inferred from the data.

    Raises:
        DimensionMismatch: If the data does not factor into the requested shape
    """
    tensor = as_tensor(data, dtype)

    if tensor.dim() == 2:
        if tensor.shape[0] != rows:
            raise DimensionMismatch(f"{name} has {tensor.shape[0]} rows, expected {rows}")
        if cols is not None and tensor.shape[1] != cols:
            raise DimensionMismatch(f"{name} has {tensor.shape[1]} columns, expected {cols}")
        return tensor

    if tensor.dim() > 2:
        raise DimensionMismatch(f"{name} must be 1D or 2D, got shape {tuple(tensor.shape)}")

    flat = tensor.reshape(-1)
    if rows <= 0 or flat.numel() % rows != 0:
        raise DimensionMismatch(
            f"{name} has {flat.numel()} values, which does not factor into {rows} rows"
        )
    inferred = flat.numel() // rows
    if cols is not None and inferred != cols:
        raise DimensionMismatch(
            f"{name} has {flat.numel()} values, expected {rows} x {cols} = {rows * cols}"
        )
    return flat.reshape(rows, inferred)
