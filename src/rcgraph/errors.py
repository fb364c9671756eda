"""Exception and warning types raised by rcgraph.

Every error raised by the library derives from :class:`RCError`. The
concrete classes also derive from the closest builtin exception so that
callers written against ``ValueError``/``IndexError``/``RuntimeError``
keep working.
"""


class RCError(Exception):
    """Base class for all rcgraph errors."""


class DimensionMismatch(RCError, ValueError):
    """Input, state or training data length disagrees with a node or model."""


class InvalidParameter(RCError, ValueError):
    """A construction or training parameter is out of range."""


class InvalidIndex(RCError, IndexError):
    """An edge references an unknown node, itself, or duplicates an edge."""


class CycleError(InvalidIndex):
    """An edge would close a cycle between distinct nodes of a model."""


class InvalidState(RCError, RuntimeError):
    """The object is not in a state that allows the requested operation."""


class AllocationFailure(RCError, RuntimeError):
    """Weights or state of a node could not be allocated."""


class Untrained(RCError, RuntimeError):
    """A trainable node was used before being fitted."""


class UntrainedWarning(UserWarning):
    """Issued when an untrained readout produces output."""


__all__ = [
    "RCError",
    "DimensionMismatch",
    "InvalidParameter",
    "InvalidIndex",
    "CycleError",
    "InvalidState",
    "AllocationFailure",
    "Untrained",
    "UntrainedWarning",
]
