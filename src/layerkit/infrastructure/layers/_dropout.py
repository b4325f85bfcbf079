"""
Dropout regularization module.

This module implements inverted dropout on top of the node protocol. It is
the reference example of a *mode-dependent* layer:

- training mode (`training()`): y = x * mask / (1 - p),
  mask ~ Bernoulli(1 - p); the scaled mask is kept in a noise buffer and
  reused by the backward pass
- evaluation mode (`evaluate()`): identity in both directions

The noise buffer is transient state and is dropped by `clear_state`.
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

from .._module import TensorModule
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor


@register_module()
class Dropout(TensorModule):
    """
    Dropout regularization layer (inverted dropout).

    Parameters
    ----------
    p : float, optional
        Probability of zeroing an element. Must satisfy 0.0 <= p < 1.0.
        Default is 0.5.
    dtype : dtype-like, optional
        Scalar type (float32 or float64).
    """

    def __init__(self, p: float = 0.5, *, dtype: Any = np.float32) -> None:
        if not 0.0 <= p < 1.0:
            raise ValueError("Dropout probability p must be in [0, 1).")
        super().__init__(dtype=dtype)
        self.p = float(p)
        self.noise = Tensor.empty(self.dtype)

    def update_output(self, input: Tensor) -> Tensor:
        if not self.is_training() or self.p == 0.0:
            self.output.copy_from_numpy(input.data)
            return self.output

        keep_prob = 1.0 - self.p
        mask = (np.random.rand(*input.size()) < keep_prob) / keep_prob
        self.noise.copy_from_numpy(mask)
        self.output.copy_from_numpy(input.data * self.noise.data)
        return self.output

    def update_grad_input(self, input: Tensor, grad_output: Tensor) -> Tensor:
        if not self.is_training() or self.p == 0.0:
            self.grad_input.copy_from_numpy(grad_output.data)
            return self.grad_input

        self.grad_input.copy_from_numpy(grad_output.data * self.noise.data)
        return self.grad_input

    def clear_state(self) -> "Dropout":
        super().clear_state()
        self.noise.clear_state()
        return self

    def _copy_state_into(self, other: "Dropout") -> None:
        super()._copy_state_into(other)
        other.noise = self.noise.clone()

    def get_config(self) -> Dict[str, Any]:
        return {"p": self.p, "dtype": self.dtype_name}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Dropout":
        return cls(p=float(cfg["p"]), dtype=cfg.get("dtype", "float32"))
