"""
LayerKit: the computational-node core of a layer-based neural network library.

The package is split into a `domain` layer (structural contracts and error
types) and an `infrastructure` layer (NumPy-backed tensors, the `Module`
base class, parameter flattening, persistence and reference layers).
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
