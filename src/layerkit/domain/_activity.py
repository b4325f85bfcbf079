"""
Activity capability interface.

Module inputs and outputs ("activities") are either single tensors or
composite containers of tensors. Instead of inspecting runtime types, the
module core relies on this structural capability: every activity can drop
its bulky buffers and can produce an independent deep copy of itself.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IActivity(Protocol):
    """
    Capability shared by everything a module may consume or produce.

    Notes
    -----
    - Composite activities implement `clear_state` by recursing into their
      constituent tensors.
    - `clone` must not share any storage with the original.
    """

    def clear_state(self) -> "IActivity":
        """
        Detach every storage held by this activity and return it.
        """
        ...

    def clone(self) -> "IActivity":
        """
        Return a value-independent deep copy of this activity.
        """
        ...
