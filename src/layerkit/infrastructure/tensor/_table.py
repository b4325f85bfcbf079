"""
Composite activity container.

`Table` is an ordered mapping of activities (tensors or nested tables) used
as the input or output of multi-input / multi-output modules. It implements
the `IActivity` capability by recursing into its entries, so the module core
can clear or clone it without knowing what it holds.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterator, Optional

import numpy as np

from ...domain._activity import IActivity


class Table(IActivity):
    """
    Ordered container of activities.

    Positional entries passed to the constructor are stored under the keys
    0, 1, 2, ...; keyword entries keep their names.

    Examples
    --------
    >>> t = Table(Tensor.zeros((2,)), Tensor.zeros((2,)))
    >>> len(t)
    2
    """

    def __init__(self, *items: Any, **named: Any) -> None:
        self._entries: Dict[Hashable, Any] = {}
        for i, item in enumerate(items):
            self._entries[i] = item
        for key, item in named.items():
            self._entries[key] = item

    @classmethod
    def empty(cls, dtype: Any = np.float32) -> "Table":
        """
        Return an empty table (activity factory signature).
        """
        return cls()

    def __getitem__(self, key: Hashable) -> Any:
        return self._entries[key]

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._entries[key] = value

    def __delitem__(self, key: Hashable) -> None:
        del self._entries[key]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._entries)

    def keys(self):
        return self._entries.keys()

    def values(self):
        return self._entries.values()

    def items(self):
        return self._entries.items()

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        return self._entries.get(key, default)

    def clear_state(self) -> "Table":
        """
        Clear every constituent activity in place.
        """
        for value in self._entries.values():
            clear = getattr(value, "clear_state", None)
            if callable(clear):
                clear()
        return self

    def clone(self) -> "Table":
        """
        Return a deep copy whose tensors own fresh storages.
        """
        out = Table()
        for key, value in self._entries.items():
            clone = getattr(value, "clone", None)
            out._entries[key] = clone() if callable(clone) else value
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        # Order-free, matching dict equality.
        return hash(
            frozenset((key, hash(value)) for key, value in self._entries.items())
        )

    def __repr__(self) -> str:
        inner = ", ".join(f"{k!r}: {v!r}" for k, v in self._entries.items())
        return f"Table({{{inner}}})"
