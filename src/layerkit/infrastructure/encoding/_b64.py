"""
Base64 array payloads for JSON checkpoints.

A payload is a small dict holding one tensor's elements:

    {"b64": "<base64 of C-order bytes>", "dtype": "<f4", "shape": [2, 3]}

The dtype string keeps the byte order, so checkpoints written on one
platform decode identically on another.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict

import numpy as np

from ...domain._errors import CheckpointFormatError

_PAYLOAD_KEYS = ("b64", "dtype", "shape")


def encode_array(arr: np.ndarray) -> Dict[str, Any]:
    """
    Encode `arr` as a JSON-safe payload (elements in C order).
    """
    a = np.ascontiguousarray(arr)
    return {
        "b64": base64.b64encode(a.tobytes()).decode("ascii"),
        "dtype": a.dtype.str,
        "shape": list(a.shape),
    }


def decode_array(payload: Dict[str, Any]) -> np.ndarray:
    """
    Decode a payload produced by `encode_array` into an owning array.

    Raises
    ------
    CheckpointFormatError
        If a key is missing or the base64 text is malformed.
    ValueError
        If the byte count does not match the declared dtype and shape.
    """
    missing = [k for k in _PAYLOAD_KEYS if k not in payload]
    if missing:
        raise CheckpointFormatError(f"array payload without {missing}")
    try:
        raw = base64.b64decode(str(payload["b64"]).encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise CheckpointFormatError("array payload with malformed base64") from None

    dtype = np.dtype(str(payload["dtype"]))
    shape = tuple(int(x) for x in payload["shape"])
    expected = int(np.prod(shape, dtype=np.int64)) * dtype.itemsize
    if len(raw) != expected:
        raise ValueError(
            f"Array payload holds {len(raw)} bytes, shape {shape} of "
            f"{dtype.name} needs {expected}."
        )
    return np.frombuffer(raw, dtype=dtype).reshape(shape).copy()
