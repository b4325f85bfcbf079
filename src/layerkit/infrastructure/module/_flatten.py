"""
Parameter flattening (storage compaction).

Optimizers are simplest and fastest when they update one contiguous buffer
instead of many small tensors. This module merges an ordered sequence of
parameter (or gradient) tensors into a single storage:

1. If the tensors already alias one storage and together cover all of it,
   the sequence is compact and a full view over that storage is returned
   without copying anything.
2. Otherwise every tensor's elements are copied, in order, into one fresh
   storage and each tensor is rebound in place to its slice of it. Sizes and
   strides are kept, only the storage and offset change, so every holder of
   a tensor keeps seeing the same logical values.

After a repack the sequence is compact, so flattening it again is free.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...domain._errors import (
    DTypeMismatchError,
    EmptyParameterListError,
    NonContiguousTensorError,
)
from ..tensor._storage import Storage, array_copy
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


def is_compact(parameters: Sequence[Tensor]) -> Optional[Tensor]:
    """
    Return a full view over the shared storage if `parameters` is compact.

    A sequence is compact when every tensor references the *same* storage
    object and the element counts sum to exactly the storage length.

    Parameters
    ----------
    parameters : Sequence[Tensor]
        Non-empty ordered sequence of tensors.

    Returns
    -------
    Optional[Tensor]
        A one-dimensional contiguous view over the shared storage, or None
        when the sequence is not compact.

    Raises
    ------
    EmptyParameterListError
        If `parameters` is empty.
    """
    if len(parameters) == 0:
        raise EmptyParameterListError()

    storage = parameters[0].storage()
    if storage is None:
        return None

    length = parameters[0].n_element()
    for p in parameters[1:]:
        if p.storage() is not storage:
            return None
        length += p.n_element()

    if length != len(storage):
        return None

    return Tensor.from_storage(storage)


def flatten(parameters: Sequence[Tensor]) -> Tensor:
    """
    Merge `parameters` into one contiguous storage and return a view over it.

    Parameters
    ----------
    parameters : Sequence[Tensor]
        Non-empty ordered sequence of tensors of one scalar type. On the
        repack path every tensor is rebound in place to alias the new
        storage.

    Returns
    -------
    Tensor
        One-dimensional tensor whose elements are the concatenation of the
        inputs' elements, in input order.

    Raises
    ------
    EmptyParameterListError
        If `parameters` is empty.
    NonContiguousTensorError
        If a repack is needed and some tensor is not contiguous.
    DTypeMismatchError
        If a repack is needed and the tensors do not share one scalar type.

    Notes
    -----
    All preconditions are checked before any element is copied, so a
    precondition failure leaves every input untouched.
    """
    compacted = is_compact(parameters)
    if compacted is not None:
        logger.debug(
            "flatten: %d tensor(s) already compact (%d elements), no copy",
            len(parameters),
            compacted.n_element(),
        )
        return compacted

    dtype = parameters[0].dtype
    length = 0
    for i, p in enumerate(parameters):
        if not p.is_contiguous():
            raise NonContiguousTensorError(i, p.size(), p.stride())
        if p.dtype != dtype:
            raise DTypeMismatchError(dtype.name, p.dtype.name, i)
        length += p.n_element()

    result_storage = Storage(length, dtype=dtype)

    offset = 0
    for p in parameters:
        n = p.n_element()
        src = p.storage()
        if src is not None:
            array_copy(src, p.storage_offset(), result_storage, offset, n)
        p.set_(result_storage, offset, p.size(), p.stride())
        offset += n

    logger.debug(
        "flatten: repacked %d tensor(s) into one storage of %d elements",
        len(parameters),
        length,
    )
    return Tensor.from_storage(result_storage)
