"""
Sequential container module.

This module defines `Sequential`, a container that composes child modules
into a single node by applying them in order:

    y = L_n(...L_2(L_1(x)))

The container forwards every lifecycle call to its children, which makes it
the unit `get_parameters()` is usually called on: the parameters of every
child are flattened together into one weight buffer and one gradient buffer.

Notes
-----
- `_layers` is the authoritative ordered view used by `forward()`; during
  deserialization `_post_load()` rebuilds it from `_modules`.
- `backward` drives each child's own `backward` in reverse order, so child
  timers account for their share of the pass.
"""

import time
from typing import Any, Iterator, List, Optional

import numpy as np

from .._module import Module
from ..module._serialization_core import register_module


@register_module()
class Sequential(Module):
    """
    Sequential container.

    Parameters
    ----------
    *layers : Module
        Child modules, applied in the given order.
    dtype : dtype-like, optional
        Scalar type of the container.
    """

    def __init__(self, *layers: Module, dtype: Any = np.float32) -> None:
        super().__init__(dtype=dtype)
        self._layers: List[Module] = []
        for layer in layers:
            self.add(layer)

    def add(self, layer: Module, name: Optional[str] = None) -> "Sequential":
        """
        Append a module and register it as a child.

        Raises
        ------
        TypeError
            If `layer` is not a `Module`.
        ValueError
            If `name` is already taken.
        """
        if not isinstance(layer, Module):
            raise TypeError(f"Sequential.add expects a Module, got: {type(layer)}")

        layer_name = name if name is not None else str(len(self._layers))
        if layer_name in self._modules:
            raise ValueError(f"Duplicate layer name '{layer_name}' in Sequential.")

        self._layers.append(layer)
        self._modules[layer_name] = layer
        return self

    def _post_load(self) -> None:
        self._layers = list(self._modules.values())

    def __len__(self) -> int:
        return len(self._layers)

    def __getitem__(self, idx: int) -> Module:
        return self._layers[idx]

    def __iter__(self) -> Iterator[Module]:
        return iter(self._layers)

    # ------------------------------------------------------------------
    # Forward / backward
    # ------------------------------------------------------------------
    def update_output(self, input: Any) -> Any:
        out = input
        for layer in self._layers:
            out = layer.forward(out)
        self.output = out
        return out

    def _layer_inputs(self, input: Any) -> List[Any]:
        return [input] + [layer.output for layer in self._layers[:-1]]

    def update_grad_input(self, input: Any, grad_output: Any) -> Any:
        grad = grad_output
        inputs = self._layer_inputs(input)
        for layer, x in zip(reversed(self._layers), reversed(inputs)):
            grad = layer.update_grad_input(x, grad)
            layer.grad_input = grad
        self.grad_input = grad
        return grad

    def acc_grad_parameters(
        self, input: Any, grad_output: Any, scale: float = 1.0
    ) -> None:
        grad = grad_output
        inputs = self._layer_inputs(input)
        for layer, x in zip(reversed(self._layers), reversed(inputs)):
            layer.acc_grad_parameters(x, grad, scale)
            grad = layer.grad_input

    def backward(self, input: Any, grad_output: Any) -> Any:
        if not self._layers:
            return super().backward(input, grad_output)

        before = time.perf_counter_ns()
        grad = grad_output
        inputs = self._layer_inputs(input)
        for layer, x in zip(reversed(self._layers), reversed(inputs)):
            grad = layer.backward(x, grad)
        self.grad_input = grad
        self._backward_time += time.perf_counter_ns() - before
        return grad

    # ------------------------------------------------------------------
    # Parameters and lifecycle, forwarded to children
    # ------------------------------------------------------------------
    def parameters(self):
        weights: list = []
        gradients: list = []
        found = False
        for layer in self._layers:
            params = layer.parameters()
            if params is None:
                continue
            found = True
            weights.extend(params[0])
            gradients.extend(params[1])
        return (weights, gradients) if found else None

    def zero_grad_parameters(self) -> None:
        for layer in self._layers:
            layer.zero_grad_parameters()

    def update_parameters(self, learning_rate: float) -> None:
        for layer in self._layers:
            layer.update_parameters(learning_rate)

    def reset(self) -> None:
        for layer in self._layers:
            layer.reset()

    def training(self) -> "Sequential":
        super().training()
        for layer in self._layers:
            layer.training()
        return self

    def evaluate(self) -> "Sequential":
        super().evaluate()
        for layer in self._layers:
            layer.evaluate()
        return self

    def get_times(self):
        times = []
        for layer in self._layers:
            times.extend(layer.get_times())
        return times

    def reset_times(self) -> None:
        super().reset_times()
        for layer in self._layers:
            layer.reset_times()

    def clear_state(self) -> "Sequential":
        super().clear_state()
        for layer in self._layers:
            layer.clear_state()
        return self

    def setup(self) -> "Sequential":
        for layer in self._layers:
            layer.setup()
        return self

    def _copy_state_into(self, other: "Sequential") -> None:
        self._copy_bookkeeping_into(other)
        for mine, theirs in zip(self._layers, other._layers):
            mine._copy_state_into(theirs)

    def get_config(self) -> dict[str, Any]:
        """
        Children are stored in the module tree, only the scalar type here.
        """
        return {"dtype": self.dtype_name}

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> "Sequential":
        return cls(dtype=cfg.get("dtype", "float32"))

    def __repr__(self) -> str:
        inner = ("," + self._line).join(repr(layer) for layer in self._layers)
        return (
            f"Sequential(name={self.get_name()!r}, "
            f"[{self._line}{inner}{self._line}])"
        )

