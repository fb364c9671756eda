"""Premade model architectures for rcgraph.

Available architectures:
- esn: Input -> Reservoir -> Ridge readout
- classic_esn: Readout sees the input concatenated with the reservoir state
- linear_esn: Linear reservoir without readout, for baseline comparison

Each architecture accepts config dicts for full customization while
providing sensible defaults for quick experimentation.
"""

from .esn import classic_esn, esn, linear_esn

__all__ = [
    "esn",
    "classic_esn",
    "linear_esn",
]
