"""
Readout Training Utilities
==========================

This module provides the trainer that fits readout nodes algebraically
using ridge regression, rather than stochastic gradient descent.

Classes
-------
ReadoutTrainer
    Trainer for fitting the trainable nodes of a Model.

Examples
--------
>>> from rcgraph.training import ReadoutTrainer
>>> trainer = ReadoutTrainer(model)
>>> trainer.fit(X_train, y_train, batch_size=500, warmup=100)

See Also
--------
rcgraph.nodes.RidgeNode : Readout with closed-form and CG solvers.
rcgraph.graph.Model.fit : Shortcut calling this trainer.
"""

from .trainer import ReadoutTrainer

__all__ = ["ReadoutTrainer"]
