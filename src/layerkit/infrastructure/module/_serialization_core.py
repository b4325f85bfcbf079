from __future__ import annotations

from typing import Any, Callable, Optional, Type

_MODULE_REGISTRY: dict[str, Type[Any]] = {}


def register_module(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a Module class for persistence and structural cloning.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _MODULE_REGISTRY[key] = cls
        cls._registry_key = key
        return cls

    return deco


def registered_type(type_name: str) -> Type[Any]:
    """
    Look up a registered Module class by name.

    Raises
    ------
    ValueError
        If no class was registered under `type_name`.
    """
    if type_name not in _MODULE_REGISTRY:
        raise ValueError(
            f"Unknown module type '{type_name}'. Register it via @register_module."
        )
    return _MODULE_REGISTRY[type_name]


def module_to_config(m: Any) -> dict[str, Any]:
    """
    Convert a Module into a JSON-serializable architecture tree.

    Node format
    -----------
    {
      "type": "Linear",
      "config": {...},
      "name": "encoder" | null,
      "training": true,
      "children": [["0", <node>], ["1", <node>], ...]
    }

    Children are kept as an ordered list of (name, node) pairs so their
    order survives `json.dumps(..., sort_keys=True)`.
    Only the explicitly set name is stored; the generated default name is
    recomputed on load.
    """
    type_name = type(m).__dict__.get("_registry_key", type(m).__name__)

    cfg = m.get_config()

    children: list[list[Any]] = []
    submods = getattr(m, "_modules", None)
    if isinstance(submods, dict):
        for name, child in submods.items():
            children.append([str(name), module_to_config(child)])

    return {
        "type": type_name,
        "config": cfg,
        "name": getattr(m, "_name", None),
        "training": bool(m.is_training()),
        "children": children,
    }


def module_from_config(node: dict[str, Any]) -> Any:
    """
    Rebuild a Module (and its children) from an architecture tree.
    """
    cls = registered_type(str(node["type"]))
    cfg = node.get("config", {}) or {}

    m = cls.from_config(cfg)

    children = node.get("children", []) or []
    if children:
        if not isinstance(getattr(m, "_modules", None), dict):
            raise ValueError(
                f"Module '{node['type']}' cannot accept children (no _modules dict)."
            )
        for name, child_node in children:
            m._modules[str(name)] = module_from_config(child_node)

    post = getattr(m, "_post_load", None)
    if callable(post):
        post()

    if node.get("name") is not None:
        m.set_name(str(node["name"]))
    # Children restored their own modes above; containers must not
    # propagate theirs over them here.
    m._train = bool(node.get("training", True))

    return m
