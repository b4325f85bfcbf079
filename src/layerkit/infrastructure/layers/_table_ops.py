"""
Table-input layers.

`CAddTable` takes a `Table` of same-shaped tensors and returns their
elementwise sum. Its `grad_input` is a `Table` too, built through the
`grad_input_factory` hook, which is what makes composite activities work
with `clear_state` and `clone_module` without any type inspection.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ...domain.model._stateless_mixin import StatelessConfigMixin
from .._module import Module
from ..module._serialization_core import register_module
from ..tensor._table import Table
from ..tensor._tensor import Tensor


@register_module()
class CAddTable(StatelessConfigMixin, Module):
    """
    Elementwise sum of every tensor in the input table.
    """

    def __init__(self, *, dtype: Any = np.float32) -> None:
        super().__init__(dtype=dtype, grad_input_factory=Table.empty)

    def update_output(self, input: Table) -> Tensor:
        if len(input) == 0:
            raise ValueError("CAddTable expects at least one input tensor.")
        acc = None
        for key in input:
            x = input[key].data
            acc = np.array(x, copy=True) if acc is None else acc + x
        self.output.copy_from_numpy(acc)
        return self.output

    def update_grad_input(self, input: Table, grad_output: Tensor) -> Table:
        for key in input:
            if key not in self.grad_input:
                self.grad_input[key] = Tensor.empty(self.dtype)
            self.grad_input[key].copy_from_numpy(grad_output.data)
        for key in [k for k in self.grad_input if k not in input]:
            del self.grad_input[key]
        return self.grad_input
