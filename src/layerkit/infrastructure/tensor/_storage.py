"""
Concrete storage implementation (NumPy backend).

A `Storage` is the shared linear buffer every tensor view points into. It is
a thin owner of a one-dimensional NumPy array with two extra guarantees:

- identity semantics: storages never compare equal by value, so aliasing is
  always detected with `is`
- stable identity across `resize_`: the backing array may be replaced, but
  every tensor referencing the storage observes the new buffer

The module also provides `array_copy`, the bulk element-copy primitive used
by the parameter flattener.
"""

from __future__ import annotations

from typing import Any, Union

import numpy as np

from ...domain._errors import UnsupportedDTypeError

_SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


def resolve_dtype(dtype: Any) -> np.dtype:
    """
    Normalize a dtype-like value and check it is a supported scalar type.

    Parameters
    ----------
    dtype : Any
        Anything accepted by `np.dtype` (e.g. `np.float32`, "float64").

    Returns
    -------
    np.dtype
        The normalized dtype.

    Raises
    ------
    UnsupportedDTypeError
        If the dtype is not float32 or float64.
    """
    try:
        dt = np.dtype(dtype)
    except TypeError:
        raise UnsupportedDTypeError(str(dtype)) from None
    if dt not in _SUPPORTED_DTYPES:
        raise UnsupportedDTypeError(dt.name)
    return dt


class Storage:
    """
    Resizable linear buffer of scalar elements.

    Parameters
    ----------
    size_or_data : int | array-like, optional
        Either the number of zero-initialized elements to allocate, or data
        to copy (flattened in C order). Defaults to 0.
    dtype : dtype-like, optional
        Scalar type, float32 (default) or float64.
    """

    __slots__ = ("_array",)

    def __init__(
        self, size_or_data: Union[int, Any] = 0, dtype: Any = np.float32
    ) -> None:
        dt = resolve_dtype(dtype)
        if isinstance(size_or_data, (int, np.integer)):
            if size_or_data < 0:
                raise ValueError(f"Storage size must be >= 0, got {size_or_data}.")
            self._array = np.zeros(int(size_or_data), dtype=dt)
        else:
            self._array = np.array(size_or_data, dtype=dt).reshape(-1)

    @property
    def dtype(self) -> np.dtype:
        return self._array.dtype

    def array(self) -> np.ndarray:
        """
        Return the backing one-dimensional array (not a copy).
        """
        return self._array

    def __len__(self) -> int:
        return int(self._array.shape[0])

    def resize_(self, size: int) -> "Storage":
        """
        Resize the storage in place, keeping the common prefix.

        New trailing elements are zero. The storage object keeps its
        identity, so aliasing tensors see the resized buffer.
        """
        size = int(size)
        if size < 0:
            raise ValueError(f"Storage size must be >= 0, got {size}.")
        if size == len(self):
            return self
        new_array = np.zeros(size, dtype=self._array.dtype)
        keep = min(size, len(self))
        new_array[:keep] = self._array[:keep]
        self._array = new_array
        return self

    def __repr__(self) -> str:
        return f"Storage(size={len(self)}, dtype={self.dtype.name})"


def array_copy(
    src: Storage, src_pos: int, dest: Storage, dest_pos: int, length: int
) -> None:
    """
    Copy `length` elements from `src[src_pos:]` into `dest[dest_pos:]`.

    Raises
    ------
    IndexError
        If either range falls outside its storage.
    """
    if length == 0:
        return
    if src_pos < 0 or src_pos + length > len(src):
        raise IndexError(
            f"Source range [{src_pos}, {src_pos + length}) is outside a storage "
            f"of size {len(src)}."
        )
    if dest_pos < 0 or dest_pos + length > len(dest):
        raise IndexError(
            f"Destination range [{dest_pos}, {dest_pos + length}) is outside a "
            f"storage of size {len(dest)}."
        )
    dest.array()[dest_pos : dest_pos + length] = src.array()[
        src_pos : src_pos + length
    ]
