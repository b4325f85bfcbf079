"""
Infrastructure module base class.

This module provides `Module`, the concrete computation-node base class that
satisfies the domain-level `IModule` protocol. It implements the protocol
every concrete layer plugs into:

- `forward` / `backward` drivers that time the per-layer hooks
  (`update_output`, `update_grad_input`, `acc_grad_parameters`)
- train/eval mode, naming and timing bookkeeping
- parameter extraction and flattening (`parameters`, `get_parameters`)
- lifecycle hooks used around persistence (`clear_state`, `setup`)
- structural cloning and JSON persistence (`clone_module`, `save`, `load`)

Concrete layers subclass `Module` (or `TensorModule`) and override the hooks.
Instances are not thread-safe: `forward`/`backward` mutate `output`,
`grad_input`, the timers and the gradient buffers. Parallel workers should
each own a clone obtained from `clone_module()`.
"""

from __future__ import annotations

import time
from abc import abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..domain._errors import EmptyParameterListError
from ..domain._module import IModule
from .module._flatten import flatten
from .module._persistence import load_module, save_module
from .module._serialization_core import module_from_config, module_to_config
from .tensor._storage import resolve_dtype
from .tensor._tensor import Tensor

ActivityFactory = Callable[[np.dtype], Any]
ParameterSet = Tuple[Sequence[Tensor], Sequence[Tensor]]


class Module(IModule):
    """
    Infrastructure base class for layers/modules.

    Parameters
    ----------
    dtype : dtype-like, optional
        Scalar type of the module (float32 by default, or float64). Fixed for
        the lifetime of the module.
    output_factory : Callable[[np.dtype], Any], optional
        Builds the initial (empty) `output` activity. Defaults to an empty
        `Tensor`.
    grad_input_factory : Callable[[np.dtype], Any], optional
        Builds the initial (empty) `grad_input` activity. Defaults to an
        empty `Tensor`.

    Attributes
    ----------
    output : Any
        Result of the last forward pass (empty before the first one).
    grad_input : Any
        Result of the last backward pass (empty before the first one).
    _modules : Dict[str, Module]
        Child modules, registered on attribute assignment.

    Notes
    -----
    - Activities must implement `clear_state()` and `clone()` (see
      `IActivity`); `Tensor` and `Table` both do.
    - `output` and `grad_input` are not invalidated between calls; stale
      values stay until the next pass or an explicit `clear_state()`.
    """

    def __init__(
        self,
        *,
        dtype: Any = np.float32,
        output_factory: Optional[ActivityFactory] = None,
        grad_input_factory: Optional[ActivityFactory] = None,
    ) -> None:
        super().__setattr__("_modules", {})  # type: ignore[assignment]
        self._dtype = resolve_dtype(dtype)
        self._output_factory = output_factory or Tensor.empty
        self._grad_input_factory = grad_input_factory or Tensor.empty
        self.output = self._output_factory(self._dtype)
        self.grad_input = self._grad_input_factory(self._dtype)
        self._name: Optional[str] = None
        self._train: bool = True
        self._line: str = "\n"
        self._forward_time: int = 0
        self._backward_time: int = 0

    def __setattr__(self, name: str, value) -> None:
        """
        Intercept attribute assignment to auto-register child Modules.
        """
        if name != "_modules" and isinstance(value, Module):
            self._modules[name] = value
        elif name in self.__dict__.get("_modules", {}) and value is None:
            self._modules.pop(name, None)
        super().__setattr__(name, value)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def dtype_name(self) -> str:
        return self._dtype.name

    # ------------------------------------------------------------------
    # Forward / backward protocol
    # ------------------------------------------------------------------
    def forward(self, input: Any) -> Any:
        """
        Run the forward pass and return `output`.

        Clients call this instead of `update_output`; the elapsed time is
        added to the forward timer on every call.
        """
        before = time.perf_counter_ns()
        result = self.update_output(input)
        self.output = result
        self._forward_time += time.perf_counter_ns() - before
        return result

    def backward(self, input: Any, grad_output: Any) -> Any:
        """
        Run the backward pass and return `grad_input`.

        Computes the gradient with respect to the input first, then
        accumulates the parameter gradients, both against the same
        `input` / `grad_output` pair.
        """
        before = time.perf_counter_ns()
        result = self.update_grad_input(input, grad_output)
        self.acc_grad_parameters(input, grad_output)
        self.grad_input = result
        self._backward_time += time.perf_counter_ns() - before
        return result

    def update_output(self, input: Any) -> Any:
        """
        Compute the forward result. The base behavior is the identity.
        """
        self.output = input
        return self.output

    @abstractmethod
    def update_grad_input(self, input: Any, grad_output: Any) -> Any:
        """
        Compute the gradient of the loss with respect to `input`.

        Every concrete layer must implement this.
        """
        ...

    def acc_grad_parameters(
        self, input: Any, grad_output: Any, scale: float = 1.0
    ) -> None:
        """
        Accumulate parameter gradients into the gradient buffers.

        Overrides must add `scale * dL/dparam` to the buffers, never
        overwrite them. The default does nothing (parameter-free layers).
        """

    def zero_grad_parameters(self) -> None:
        """
        Reset every gradient buffer to zero. No-op for parameter-free layers.
        """

    def update_parameters(self, learning_rate: float) -> None:
        """
        In-place parameter update hook for simple optimizers.
        """

    def reset(self) -> None:
        """
        Re-initialize the parameters.
        """

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def parameters(self) -> Optional[ParameterSet]:
        """
        Return the (weights, gradients) pair of this module.

        Returns
        -------
        Optional[Tuple[Sequence[Tensor], Sequence[Tensor]]]
            Equal-length sequences, pairwise matching by index, or None when
            the module has no learnable parameters.
        """
        return None

    def get_parameters(self) -> Tuple[Tensor, Tensor]:
        """
        Return the weights and the gradients flattened into two buffers.

        After this call every weight (and gradient) tensor of the module
        aliases one contiguous storage, so an optimizer can update the
        whole module in a single pass over the returned tensors.

        Raises
        ------
        EmptyParameterListError
            If the module has no learnable parameters.
        """
        params = self.parameters()
        if params is None:
            raise EmptyParameterListError(f"parameter set of {self.get_name()}")
        weights, gradients = params
        return flatten(weights), flatten(gradients)

    # ------------------------------------------------------------------
    # Mode, naming, timing
    # ------------------------------------------------------------------
    def training(self) -> "Module":
        self._train = True
        return self

    def evaluate(self) -> "Module":
        self._train = False
        return self

    def is_training(self) -> bool:
        return self._train

    def set_line(self, line: str) -> "Module":
        """
        Set the separator containers put between children in `repr`.
        """
        self._line = line
        return self

    def set_name(self, name: str) -> "Module":
        self._name = name
        return self

    def get_name(self) -> str:
        """
        Return the explicit name, or the qualified class name if unset.
        """
        if self._name is None:
            cls = type(self)
            return f"{cls.__module__}.{cls.__qualname__}"
        return self._name

    @property
    def forward_time(self) -> int:
        return self._forward_time

    @property
    def backward_time(self) -> int:
        return self._backward_time

    def get_times(self) -> List[Tuple["Module", int, int]]:
        """
        Return `(module, forward_ns, backward_ns)` entries.

        A leaf module reports exactly one entry, for itself.
        """
        return [(self, self._forward_time, self._backward_time)]

    def reset_times(self) -> None:
        self._forward_time = 0
        self._backward_time = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def clear_state(self) -> "Module":
        """
        Detach the storages of `output` and `grad_input`.
        """
        self.output.clear_state()
        self.grad_input.clear_state()
        return self

    def setup(self) -> "Module":
        """
        Restore the module to a usable state after load or save.
        """
        return self

    def clone_module(self) -> "Module":
        """
        Return a deep copy that shares no storage with this module.

        The copy is rebuilt from `get_config()` and then receives this
        module's state (name, mode, timers, activities, parameter and
        gradient values).
        """
        clone = module_from_config(module_to_config(self))
        self._copy_state_into(clone)
        return clone

    def _copy_bookkeeping_into(self, other: "Module") -> None:
        other._name = self._name
        other._train = self._train
        other._line = self._line
        other._forward_time = self._forward_time
        other._backward_time = self._backward_time
        other.output = self.output.clone()
        other.grad_input = self.grad_input.clone()

    def _copy_state_into(self, other: "Module") -> None:
        """
        Copy this module's state into a structurally identical module.

        Layers holding buffers besides their parameters extend this.
        """
        self._copy_bookkeeping_into(other)
        src = self.parameters()
        dst = other.parameters()
        if src is None or dst is None:
            return
        for s, d in zip(src[0], dst[0]):
            d.copy_(s)
        for s, d in zip(src[1], dst[1]):
            d.copy_(s)

    def save(self, path: str | Path, over_write: bool = False) -> "Module":
        """
        Persist this module to a JSON checkpoint.

        Transient buffers are cleared first, so the file stays lean. `setup()`
        is called afterwards even when persistence fails; the persistence
        error is re-raised unchanged.

        Raises
        ------
        FileExistsError
            If `path` exists and `over_write` is False.
        """
        self.clear_state()
        try:
            save_module(self, path, over_write)
        finally:
            self.setup()
        return self

    @classmethod
    def load(cls, path: str | Path) -> "Module":
        """
        Load a module saved with `save()` and call `setup()` on it.

        Raises
        ------
        TypeError
            If the loaded object is not an instance of `cls`.
        """
        module = load_module(path).setup()
        if not isinstance(module, cls):
            raise TypeError(
                f"Loaded object is {type(module).__name__}, expected {cls.__name__}."
            )
        return module

    # ------------------------------------------------------------------
    # Serialization hooks (opt-in contract)
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration for this module.

        Subclasses that participate in persistence or cloning MUST override
        this method.

        Raises
        ------
        NotImplementedError
            If the module does not support configuration export.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} does not implement get_config(). "
            "This module cannot be saved or cloned."
        )

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Module":
        """
        Reconstruct a module from a configuration.

        Raises
        ------
        NotImplementedError
            If the module does not support reconstruction.
        """
        raise NotImplementedError(
            f"{cls.__name__} does not implement from_config(). "
            "This module cannot be loaded or cloned."
        )

    # ------------------------------------------------------------------
    # Python protocol
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Module):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.output == other.output
            and self.grad_input == other.grad_input
        )

    def __hash__(self) -> int:
        acc = 0
        for obj in (self.output, self.grad_input, type(self)):
            acc = 31 * acc + (0 if obj is None else hash(obj))
        return acc

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.get_name()!r})"


class TensorModule(Module):
    """
    Module whose input, output and gradients are all tensors.
    """

    def __init__(self, *, dtype: Any = np.float32) -> None:
        super().__init__(dtype=dtype)
