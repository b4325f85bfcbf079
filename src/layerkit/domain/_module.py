"""
Module (layer) interface definitions.

This module defines the domain-level interface for computation nodes using
structural subtyping via `typing.Protocol`. A module wraps a forward
computation and its gradient computation:

- `forward(input)` produces `output`
- `backward(input, grad_output)` produces `grad_input` and accumulates the
  gradients of the module's learnable parameters

Trainers and optimizers depend only on this contract, so concrete layers and
containers stay decoupled from the code that drives them.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IModule(Protocol):
    """
    Domain-level module (layer) interface.

    Notes
    -----
    - `parameters()` returns a pair of equal-length sequences (weights,
      gradients) or None when the module has no learnable parameters.
    - `get_parameters()` returns the same pair compacted into two contiguous
      buffers.
    """

    def forward(self, input: Any) -> Any:
        """
        Execute the forward computation and return `output`.
        """
        ...

    def backward(self, input: Any, grad_output: Any) -> Any:
        """
        Execute the backward computation and return `grad_input`.
        """
        ...

    def parameters(
        self,
    ) -> Optional[Tuple[Sequence[ITensor], Sequence[ITensor]]]:
        """
        Return the (weights, gradients) pair, or None if there is none.
        """
        ...

    def get_parameters(self) -> Tuple[ITensor, ITensor]:
        """
        Return the flattened (weights, gradients) pair.
        """
        ...

    def zero_grad_parameters(self) -> None:
        """
        Reset every parameter gradient buffer to zero.
        """
        ...
