"""
Storage and tensor view interface definitions.

This module defines the domain-level contract for the tensor storage model
consumed by the node core. A tensor is a view `(storage, offset, sizes,
strides)` over a shared linear buffer; many tensors may alias one storage.

Only the surface needed by modules and the parameter flattener is modelled
here. Concrete NumPy-backed implementations live in the infrastructure layer.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class IStorage(Protocol):
    """
    Domain-level storage interface.

    A storage is a mutable, resizable linear sequence of scalar elements of a
    single numeric type. Storages compare by identity: two tensors alias each
    other if and only if they reference the same storage object.
    """

    @property
    def dtype(self) -> Any:
        """
        Return the scalar type of the stored elements.
        """
        ...

    def array(self) -> Any:
        """
        Return the backing one-dimensional array.
        """
        ...

    def __len__(self) -> int:
        """
        Return the total number of elements held by the storage.
        """
        ...


@runtime_checkable
class ITensor(Protocol):
    """
    Domain-level tensor view interface.

    Notes
    -----
    - `storage_offset()` is 0-based.
    - A tensor with zero dimensions is considered empty and holds no elements.
    - `set_()` without arguments detaches the tensor from its storage.
    """

    @property
    def dtype(self) -> Any:
        """
        Return the scalar type of the tensor.
        """
        ...

    def storage(self) -> Optional[IStorage]:
        """
        Return the storage this tensor views, or None when detached.
        """
        ...

    def storage_offset(self) -> int:
        """
        Return the 0-based element offset of the view into its storage.
        """
        ...

    def size(self) -> tuple[int, ...]:
        """
        Return the sizes of every dimension.
        """
        ...

    def stride(self) -> tuple[int, ...]:
        """
        Return the strides (in elements) of every dimension.
        """
        ...

    def n_element(self) -> int:
        """
        Return the number of elements addressed by the view.
        """
        ...

    def is_contiguous(self) -> bool:
        """
        Return True if the strides describe a gap-free row-major layout.
        """
        ...

    def set_(
        self,
        storage: Optional[IStorage] = None,
        storage_offset: int = 0,
        sizes: Optional[Sequence[int]] = None,
        strides: Optional[Sequence[int]] = None,
    ) -> "ITensor":
        """
        Rebind this tensor's view in place.

        Called with no arguments the tensor is detached and becomes empty.
        """
        ...
