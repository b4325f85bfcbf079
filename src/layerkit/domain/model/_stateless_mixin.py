"""
Config hooks for layers whose only setting is their scalar type.

Activations and table operations mix this in so that persistence and
`clone_module` can rebuild them from `{"dtype": ...}` alone.
"""

from typing import Any, Dict
from typing_extensions import Self


class StatelessConfigMixin:
    """
    Provide `get_config` / `from_config` for hyperparameter-free layers.

    The host must expose `dtype_name` and accept a `dtype` keyword, which
    every `Module` does.
    """

    def get_config(self) -> Dict[str, Any]:
        return {"dtype": getattr(self, "dtype_name")}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        """
        Build a fresh layer; a config without "dtype" means float32.
        """
        return cls(dtype=cfg.get("dtype", "float32"))
