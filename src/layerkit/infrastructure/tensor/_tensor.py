"""
Concrete Tensor implementation (NumPy backend).

This module provides `Tensor`, a shaped, strided view over a shared
`Storage`. It satisfies both the domain-level `ITensor` view contract and the
`IActivity` capability (`clear_state`, `clone`), so tensors can be used
directly as module inputs, outputs and gradients.

Design notes
------------
- The view is `(storage, storage_offset, sizes, strides)`; offsets and strides
  are counted in elements, offsets are 0-based.
- `data` exposes the view as a *writable* NumPy array built with
  `as_strided`, so writes through it land in the shared storage. This is what
  lets layers keep updating their weights after the parameter flattener has
  re-homed them into one buffer.
- A tensor with zero dimensions is empty (no elements), mirroring the
  "detached" state produced by `set_()`.
- Equality is structural (dtype, sizes, element values), never identity.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import as_strided

from ...domain._tensor import ITensor
from ._storage import Storage, resolve_dtype


def contiguous_strides(sizes: Sequence[int]) -> tuple[int, ...]:
    """
    Return the row-major strides (in elements) for `sizes`.
    """
    strides = []
    acc = 1
    for s in reversed(tuple(sizes)):
        strides.append(acc)
        acc *= max(int(s), 1)
    return tuple(reversed(strides))


class Tensor(ITensor):
    """
    Strided view over a `Storage`.

    Parameters
    ----------
    sizes : Sequence[int], optional
        Shape of a freshly allocated, zero-filled tensor. When omitted (or
        empty) the tensor is created detached and empty.
    dtype : dtype-like, optional
        Scalar type, float32 (default) or float64.

    Notes
    -----
    - Use `from_storage` / `set_` to build views over existing storages.
    - The scalar type is fixed for the lifetime of the tensor; rebinding to a
      storage of another type is rejected.
    """

    def __init__(
        self, sizes: Optional[Sequence[int]] = None, dtype: Any = np.float32
    ) -> None:
        self._dtype: np.dtype = resolve_dtype(dtype)
        self._storage: Optional[Storage] = None
        self._offset: int = 0
        self._sizes: tuple[int, ...] = ()
        self._strides: tuple[int, ...] = ()
        if sizes:
            self.resize_(sizes)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def empty(cls, dtype: Any = np.float32) -> "Tensor":
        """
        Return a detached, empty tensor of the given scalar type.

        This is the default activity factory used by `Module`.
        """
        return cls(dtype=dtype)

    @classmethod
    def zeros(cls, sizes: Sequence[int], dtype: Any = np.float32) -> "Tensor":
        """
        Return a zero-filled tensor backed by a fresh storage.
        """
        return cls(tuple(sizes), dtype=dtype)

    @classmethod
    def from_numpy(cls, arr: Any, dtype: Any = None) -> "Tensor":
        """
        Return a tensor holding a copy of `arr` in a fresh storage.

        Parameters
        ----------
        arr : array-like
            Source values.
        dtype : dtype-like, optional
            Target scalar type. Defaults to the array's own dtype when that
            is supported, otherwise float32.
        """
        a = np.asarray(arr)
        if dtype is None:
            dtype = a.dtype if a.dtype in (np.float32, np.float64) else np.float32
        t = cls(dtype=dtype)
        t.copy_from_numpy(a)
        return t

    @classmethod
    def from_storage(cls, storage: Storage) -> "Tensor":
        """
        Return a one-dimensional contiguous view over the whole `storage`.
        """
        t = cls(dtype=storage.dtype)
        t.set_(storage, 0, (len(storage),), (1,))
        return t

    # ------------------------------------------------------------------
    # View contract
    # ------------------------------------------------------------------
    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def shape(self) -> tuple[int, ...]:
        return self._sizes

    def storage(self) -> Optional[Storage]:
        return self._storage

    def storage_offset(self) -> int:
        return self._offset

    def size(self) -> tuple[int, ...]:
        return self._sizes

    def stride(self) -> tuple[int, ...]:
        return self._strides

    def dim(self) -> int:
        return len(self._sizes)

    def n_element(self) -> int:
        if not self._sizes:
            return 0
        return int(np.prod(self._sizes, dtype=np.int64))

    def is_contiguous(self) -> bool:
        """
        Return True if the strides match a row-major layout over the sizes.

        Dimensions of size 1 carry no layout information and are ignored.
        """
        expected = 1
        for size, stride in zip(reversed(self._sizes), reversed(self._strides)):
            if size != 1:
                if stride != expected:
                    return False
                expected *= size
        return True

    def set_(
        self,
        storage: Optional[Storage] = None,
        storage_offset: int = 0,
        sizes: Optional[Sequence[int]] = None,
        strides: Optional[Sequence[int]] = None,
    ) -> "Tensor":
        """
        Rebind this tensor's view in place.

        Parameters
        ----------
        storage : Storage, optional
            Storage to view. When None the tensor is detached and becomes
            empty; every other argument is then ignored.
        storage_offset : int, optional
            0-based element offset of the view.
        sizes : Sequence[int], optional
            Dimension sizes. Defaults to the whole storage as one dimension.
        strides : Sequence[int], optional
            Element strides. Defaults to row-major strides for `sizes`.

        Returns
        -------
        Tensor
            This tensor.

        Raises
        ------
        TypeError
            If the storage holds a different scalar type.
        ValueError
            If sizes and strides disagree in length, or the view does not fit
            into the storage.
        """
        if storage is None:
            self._storage = None
            self._offset = 0
            self._sizes = ()
            self._strides = ()
            return self

        if storage.dtype != self._dtype:
            raise TypeError(
                f"Cannot view a {storage.dtype.name} storage from a "
                f"{self._dtype.name} tensor."
            )
        sizes = (len(storage) - storage_offset,) if sizes is None else sizes
        sizes = tuple(int(s) for s in sizes)
        strides = (
            contiguous_strides(sizes)
            if strides is None
            else tuple(int(s) for s in strides)
        )
        if len(sizes) != len(strides):
            raise ValueError(
                f"sizes {sizes} and strides {strides} must have the same length."
            )
        if storage_offset < 0:
            raise ValueError(f"storage_offset must be >= 0, got {storage_offset}.")
        if sizes and all(s > 0 for s in sizes):
            last = storage_offset + sum((s - 1) * st for s, st in zip(sizes, strides))
            if last >= len(storage):
                raise ValueError(
                    f"View (offset={storage_offset}, sizes={sizes}, "
                    f"strides={strides}) does not fit a storage of size "
                    f"{len(storage)}."
                )

        self._storage = storage
        self._offset = int(storage_offset)
        self._sizes = sizes
        self._strides = strides
        return self

    def resize_(self, sizes: Sequence[int]) -> "Tensor":
        """
        Reshape the tensor to `sizes` with row-major strides.

        The current storage is reused (and grown if too small); a fresh one
        is allocated when the tensor is detached. Element values are not
        preserved in any meaningful order.
        """
        sizes = tuple(int(s) for s in sizes)
        needed = int(np.prod(sizes, dtype=np.int64)) if sizes else 0
        if self._storage is None:
            self._storage = Storage(needed, dtype=self._dtype)
            self._offset = 0
        elif self._offset + needed > len(self._storage):
            self._storage.resize_(self._offset + needed)
        self._sizes = sizes
        self._strides = contiguous_strides(sizes)
        return self

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------
    @property
    def data(self) -> np.ndarray:
        """
        Return a writable NumPy view aliasing this tensor's elements.

        Raises
        ------
        IndexError
            If the storage was shrunk below the extent of this view.
        """
        if self._storage is None or not self._sizes:
            return np.zeros((0,), dtype=self._dtype)
        if self.n_element() == 0:
            return np.zeros(self._sizes, dtype=self._dtype)
        last = self._offset + sum(
            (s - 1) * st for s, st in zip(self._sizes, self._strides)
        )
        if last >= len(self._storage):
            raise IndexError(
                f"View (offset={self._offset}, sizes={self._sizes}, "
                f"strides={self._strides}) reaches past a storage of size "
                f"{len(self._storage)}."
            )
        base = self._storage.array()[self._offset :]
        itemsize = self._dtype.itemsize
        return as_strided(
            base,
            shape=self._sizes,
            strides=tuple(s * itemsize for s in self._strides),
        )

    def to_numpy(self) -> np.ndarray:
        """
        Return an owning, C-contiguous copy of the tensor's elements.
        """
        return np.array(self.data, dtype=self._dtype, copy=True, order="C")

    def copy_from_numpy(self, arr: Any) -> "Tensor":
        """
        Resize this tensor to `arr.shape` and copy the values in.
        """
        a = np.asarray(arr, dtype=self._dtype)
        if a.ndim == 0:
            a = a.reshape(1)
        storage = self._storage
        if (
            self._sizes != a.shape
            or not self.is_contiguous()
            or storage is None
            or self._offset + a.size > len(storage)
        ):
            self.resize_(a.shape)
        self.data[...] = a
        return self

    def copy_(self, other: "Tensor") -> "Tensor":
        """
        Copy `other`'s elements into this tensor, element by element.

        Raises
        ------
        ValueError
            If the element counts differ.
        """
        if other.n_element() != self.n_element():
            raise ValueError(
                f"copy_ expects {self.n_element()} elements, got {other.n_element()}."
            )
        if self.n_element():
            self.data[...] = other.to_numpy().reshape(self._sizes)
        return self

    def fill_(self, value: float) -> "Tensor":
        if self.n_element():
            self.data[...] = value
        return self

    def zero_(self) -> "Tensor":
        return self.fill_(0.0)

    def add_(self, other: "Tensor", alpha: float = 1.0) -> "Tensor":
        """
        In-place `self += alpha * other` (shapes must match).
        """
        if other.size() != self.size():
            raise ValueError(
                f"add_ shape mismatch: {self.size()} vs {other.size()}."
            )
        if self.n_element():
            self.data[...] += alpha * other.data
        return self

    # ------------------------------------------------------------------
    # Activity capability
    # ------------------------------------------------------------------
    def clear_state(self) -> "Tensor":
        """
        Detach the storage; the tensor becomes empty.
        """
        return self.set_()

    def clone(self) -> "Tensor":
        """
        Return a contiguous copy backed by a fresh storage.
        """
        t = Tensor(dtype=self._dtype)
        if self._sizes:
            t.copy_from_numpy(self.data)
        return t

    # ------------------------------------------------------------------
    # Python protocol
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tensor):
            return NotImplemented
        if self._dtype != other._dtype or self._sizes != other._sizes:
            return False
        return bool(np.array_equal(self.data, other.data))

    def __hash__(self) -> int:
        values = tuple(self.to_numpy().reshape(-1).tolist())
        return hash((self._dtype.name, self._sizes, values))

    def __repr__(self) -> str:
        if self._storage is None:
            return f"Tensor(empty, dtype={self._dtype.name})"
        return (
            f"Tensor(sizes={self._sizes}, dtype={self._dtype.name}, "
            f"offset={self._offset})"
        )
