"""
Fully-connected (affine) layer.

This module implements `Linear`, a reference parameterized layer:

    y = x @ W^T + b

with explicit weight/bias gradient buffers. It is the canonical example of a
layer that overrides the full backward contract:

- `update_grad_input` computes dL/dx = dL/dy @ W
- `acc_grad_parameters` *adds* `scale * dL/dW` and `scale * dL/db` to the
  gradient buffers, so repeated backward passes accumulate
- `zero_grad_parameters` clears the buffers between optimizer steps

Inputs are either a single sample of shape (in_features,) or a batch of
shape (batch, in_features).

All parameter access goes through `Tensor.data`, which writes into the
tensor's (possibly shared) storage; this keeps the layer working after its
parameters have been flattened by `get_parameters()`.
"""

from __future__ import annotations

import math
from typing import Any, Dict

import numpy as np

from .._module import TensorModule
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor


@register_module()
class Linear(TensorModule):
    """
    Affine layer `y = x @ W^T + b`.

    Parameters
    ----------
    in_features : int
        Size of each input sample.
    out_features : int
        Size of each output sample.
    bias : bool, optional
        Whether to learn an additive bias. Defaults to True.
    dtype : dtype-like, optional
        Scalar type (float32 or float64).

    Attributes
    ----------
    weight : Tensor
        Shape (out_features, in_features).
    bias : Tensor | None
        Shape (out_features,), or None if disabled.
    grad_weight, grad_bias : Tensor | None
        Gradient buffers matching `weight` / `bias`.
    """

    def __init__(
        self,
        in_features: int,
        out_features: int,
        bias: bool = True,
        *,
        dtype: Any = np.float32,
    ) -> None:
        if in_features <= 0 or out_features <= 0:
            raise ValueError(
                "Linear requires positive in_features and out_features, got "
                f"({in_features}, {out_features})."
            )
        super().__init__(dtype=dtype)
        self.in_features = int(in_features)
        self.out_features = int(out_features)

        self.weight = Tensor.zeros((self.out_features, self.in_features), self.dtype)
        self.grad_weight = Tensor.zeros(
            (self.out_features, self.in_features), self.dtype
        )
        if bias:
            self.bias = Tensor.zeros((self.out_features,), self.dtype)
            self.grad_bias = Tensor.zeros((self.out_features,), self.dtype)
        else:
            self.bias = None
            self.grad_bias = None

        self.reset()

    def reset(self) -> None:
        """
        Draw weights and bias from U(-1/sqrt(in_features), 1/sqrt(in_features)).
        """
        stdv = 1.0 / math.sqrt(self.in_features)
        self.weight.data[...] = np.random.uniform(
            -stdv, stdv, size=self.weight.size()
        )
        if self.bias is not None:
            self.bias.data[...] = np.random.uniform(-stdv, stdv, size=self.bias.size())

    def _check_input(self, x: Tensor) -> np.ndarray:
        x_np = x.data
        if x_np.ndim not in (1, 2) or x_np.shape[-1] != self.in_features:
            raise ValueError(
                f"Linear expects input of shape (..., {self.in_features}) with 1 "
                f"or 2 dimensions, got {tuple(x.size())}."
            )
        return x_np

    def update_output(self, input: Tensor) -> Tensor:
        x = self._check_input(input)
        y = x @ self.weight.data.T
        if self.bias is not None:
            y = y + self.bias.data
        self.output.copy_from_numpy(y)
        return self.output

    def update_grad_input(self, input: Tensor, grad_output: Tensor) -> Tensor:
        self._check_input(input)
        gx = grad_output.data @ self.weight.data
        self.grad_input.copy_from_numpy(gx)
        return self.grad_input

    def acc_grad_parameters(
        self, input: Tensor, grad_output: Tensor, scale: float = 1.0
    ) -> None:
        x = self._check_input(input)
        g = grad_output.data
        if x.ndim == 1:
            self.grad_weight.data[...] += scale * np.outer(g, x)
            if self.grad_bias is not None:
                self.grad_bias.data[...] += scale * g
        else:
            self.grad_weight.data[...] += scale * (g.T @ x)
            if self.grad_bias is not None:
                self.grad_bias.data[...] += scale * g.sum(axis=0)

    def zero_grad_parameters(self) -> None:
        self.grad_weight.zero_()
        if self.grad_bias is not None:
            self.grad_bias.zero_()

    def update_parameters(self, learning_rate: float) -> None:
        self.weight.add_(self.grad_weight, alpha=-learning_rate)
        if self.bias is not None:
            self.bias.add_(self.grad_bias, alpha=-learning_rate)

    def parameters(self):
        if self.bias is None:
            return [self.weight], [self.grad_weight]
        return [self.weight, self.bias], [self.grad_weight, self.grad_bias]

    def get_config(self) -> Dict[str, Any]:
        return {
            "in_features": self.in_features,
            "out_features": self.out_features,
            "bias": self.bias is not None,
            "dtype": self.dtype_name,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Linear":
        return cls(
            in_features=int(cfg["in_features"]),
            out_features=int(cfg["out_features"]),
            bias=bool(cfg.get("bias", True)),
            dtype=cfg.get("dtype", "float32"),
        )

    def __repr__(self) -> str:
        return (
            f"Linear(name={self.get_name()!r}, in_features={self.in_features}, "
            f"out_features={self.out_features}, bias={self.bias is not None})"
        )
