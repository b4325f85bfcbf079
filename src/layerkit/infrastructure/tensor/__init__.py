from ._storage import Storage, array_copy, resolve_dtype
from ._table import Table
from ._tensor import Tensor, contiguous_strides

__all__ = [
    Storage.__name__,
    Table.__name__,
    Tensor.__name__,
    array_copy.__name__,
    contiguous_strides.__name__,
    resolve_dtype.__name__,
]
