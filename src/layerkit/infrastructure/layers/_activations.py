"""
Parameter-free activation layers.

These layers define only `update_output` / `update_grad_input`; they inherit
the no-op parameter hooks from `Module` and report no parameters.
"""

from __future__ import annotations

import numpy as np

from ...domain.model._stateless_mixin import StatelessConfigMixin
from .._module import TensorModule
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor


@register_module()
class ReLU(StatelessConfigMixin, TensorModule):
    """
    Rectified linear unit, `y = max(x, 0)`.
    """

    def update_output(self, input: Tensor) -> Tensor:
        self.output.copy_from_numpy(np.maximum(input.data, 0))
        return self.output

    def update_grad_input(self, input: Tensor, grad_output: Tensor) -> Tensor:
        # Subgradient at 0 is taken as 0.
        self.grad_input.copy_from_numpy(grad_output.data * (input.data > 0))
        return self.grad_input


@register_module()
class Tanh(StatelessConfigMixin, TensorModule):
    """
    Hyperbolic tangent, `y = tanh(x)`.

    The backward pass reuses `output` from the preceding forward pass.
    """

    def update_output(self, input: Tensor) -> Tensor:
        self.output.copy_from_numpy(np.tanh(input.data))
        return self.output

    def update_grad_input(self, input: Tensor, grad_output: Tensor) -> Tensor:
        y = self.output.data
        self.grad_input.copy_from_numpy(grad_output.data * (1.0 - y * y))
        return self.grad_input
