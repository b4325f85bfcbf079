"""
Module persistence service.

Modules are written to a single JSON checkpoint (no pickle):

    {
      "format": "layerkit.json.module.v1",
      "arch": <architecture tree, see `module_to_config`>,
      "state": {
        "weights":   [<ndarray payload>, ...],
        "gradients": [<ndarray payload>, ...]
      }
    }

Weights and gradients are stored in `parameters()` order, which is fully
determined by the architecture, so no per-tensor names are needed. Transient
buffers (`output`, `grad_input`) are not part of the format; `Module.save`
clears them before calling into this service.

I/O and JSON errors propagate unchanged to the caller.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ...domain._errors import CheckpointFormatError
from ..encoding._b64 import decode_array, encode_array
from ._serialization_core import module_from_config, module_to_config

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT = "layerkit.json.module.v1"


def extract_state_payload(module: Any) -> Dict[str, List[Dict[str, Any]]]:
    """
    Encode a module's weights and gradients as JSON payload lists.
    """
    params = module.parameters()
    if params is None:
        return {"weights": [], "gradients": []}

    weights, gradients = params
    return {
        "weights": [encode_array(w.to_numpy()) for w in weights],
        "gradients": [encode_array(g.to_numpy()) for g in gradients],
    }


def _load_tensors_(
    kind: str, targets: Sequence[Any], payloads: Sequence[Dict[str, Any]]
) -> None:
    if len(targets) != len(payloads):
        raise ValueError(
            f"Checkpoint holds {len(payloads)} {kind} tensor(s), "
            f"model expects {len(targets)}."
        )
    for i, (t, payload) in enumerate(zip(targets, payloads)):
        arr = decode_array(payload).astype(t.dtype, copy=False)
        if tuple(arr.shape) != tuple(t.size()):
            raise ValueError(
                f"Shape mismatch for {kind}[{i}]: model {tuple(t.size())} "
                f"vs checkpoint {tuple(arr.shape)}"
            )
        t.data[...] = arr


def load_state_payload_(
    module: Any, payload: Dict[str, List[Dict[str, Any]]]
) -> None:
    """
    In-place load of weights and gradients from JSON payloads.

    Raises
    ------
    ValueError
        If the number or shapes of tensors do not match the module.
    """
    params = module.parameters()
    weights, gradients = params if params is not None else ([], [])
    _load_tensors_("weights", weights, payload.get("weights", []))
    _load_tensors_("gradients", gradients, payload.get("gradients", []))


def save_module(module: Any, path: str | Path, over_write: bool = False) -> None:
    """
    Write `module` to a JSON checkpoint at `path`.

    Parameters
    ----------
    module : Module
        Module to persist. Must be registered via `@register_module`, as
        must every child module.
    path : str | Path
        Output file path. Missing parent directories are created.
    over_write : bool, optional
        Replace an existing file. Defaults to False.

    Raises
    ------
    FileExistsError
        If `path` exists and `over_write` is False.
    """
    p = Path(path)
    if p.exists() and not over_write:
        raise FileExistsError(f"File '{p}' already exists (over_write=False).")
    p.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "format": CHECKPOINT_FORMAT,
        "arch": module_to_config(module),
        "state": extract_state_payload(module),
    }

    p.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    logger.debug("saved %s to %s", module.get_name(), p)


def load_module(path: str | Path) -> Any:
    """
    Read a module from a JSON checkpoint written by `save_module`.

    Raises
    ------
    CheckpointFormatError
        If the file does not carry the expected format tag.
    ValueError
        If an architecture type is unknown or the state does not match it.
    """
    p = Path(path)
    payload = json.loads(p.read_text(encoding="utf-8"))

    fmt = payload.get("format")
    if fmt != CHECKPOINT_FORMAT:
        raise CheckpointFormatError(fmt)

    module = module_from_config(payload["arch"])
    load_state_payload_(module, payload.get("state", {}))
    logger.debug("loaded %s from %s", module.get_name(), p)
    return module
