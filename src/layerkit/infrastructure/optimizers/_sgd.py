"""
Stochastic Gradient Descent (SGD) over flattened parameter buffers.

This optimizer consumes the pair returned by `Module.get_parameters()`: one
contiguous weight buffer and one contiguous gradient buffer. Because every
layer tensor aliases those buffers, a single vectorized update touches all
parameters of the network at once.

Design notes
------------
- Updates are applied in place on the flat weight buffer.
- `zero_grad()` zeroes the flat gradient buffer, which also zeroes every
  aliased layer gradient.
- Momentum, Nesterov, and other SGD variants are intentionally omitted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tensor._tensor import Tensor


@dataclass
class SGD:
    """
    Stochastic Gradient Descent (SGD) optimizer.

    Update rule
    -----------
    For the flat weights ``w`` and gradients ``g``:

    - If ``weight_decay > 0`` (classical L2 regularization):
        ``g <- g + weight_decay * w``
    - Parameter update:
        ``w <- w - lr * g``

    Parameters
    ----------
    weights : Tensor
        Flat weight buffer.
    gradients : Tensor
        Flat gradient buffer with the same number of elements.
    lr : float, optional
        Learning rate. Must be positive. Defaults to 1e-3.
    weight_decay : float, optional
        L2 weight decay coefficient. Must be non-negative. Defaults to 0.0.
    """

    weights: Tensor
    gradients: Tensor
    lr: float = 1e-3
    weight_decay: float = 0.0

    def __init__(
        self,
        weights: Tensor,
        gradients: Tensor,
        *,
        lr: float = 1e-3,
        weight_decay: float = 0.0,
    ) -> None:
        """
        Construct an SGD optimizer.

        Raises
        ------
        ValueError
            If `lr <= 0`, `weight_decay < 0`, or the buffers differ in size.
        """
        if lr <= 0:
            raise ValueError(f"lr must be positive, got {lr}")
        if weight_decay < 0:
            raise ValueError(f"weight_decay must be non-negative, got {weight_decay}")
        if weights.n_element() != gradients.n_element():
            raise ValueError(
                f"weights ({weights.n_element()}) and gradients "
                f"({gradients.n_element()}) must have the same number of elements"
            )

        self.weights = weights
        self.gradients = gradients
        self.lr = float(lr)
        self.weight_decay = float(weight_decay)

    @classmethod
    def for_module(cls, module: Any, **kwargs: Any) -> "SGD":
        """
        Flatten `module`'s parameters and build an optimizer over them.
        """
        weights, gradients = module.get_parameters()
        return cls(weights, gradients, **kwargs)

    def zero_grad(self) -> None:
        """
        Zero the flat gradient buffer.
        """
        self.gradients.zero_()

    def step(self) -> None:
        """
        Apply one SGD update to the flat weight buffer.
        """
        w = self.weights.data
        g = self.gradients.data
        if self.weight_decay != 0.0:
            g = g + self.weight_decay * w
        w -= self.lr * g
