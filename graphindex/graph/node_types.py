"""
Node type configuration.

Node types are declared in YAML, one mapping per type name:

    Acme:Page:
      superTypes: [Acme:Document]
      search:
        fulltext:
          enable: true
      properties:
        title:
          type: string
          search:
            fulltextExtractor: h1

Supertype configuration is deep-merged into the subtype; the subtype wins.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from graphindex.shared.exceptions import ConfigurationError
from graphindex.shared.observability import get_logger

logger = get_logger(__name__)

FALLBACK_NODE_TYPE = "unstructured"


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class NodeType:
    def __init__(
        self,
        name: str,
        configuration: Optional[Mapping[str, Any]] = None,
        supertypes: Optional[List["NodeType"]] = None,
    ):
        self.name = name
        self.declared_supertypes = list(supertypes or [])
        full: Dict[str, Any] = {}
        for supertype in self.declared_supertypes:
            inherited = supertype.full_configuration
            inherited.pop("abstract", None)
            full = _deep_merge(full, inherited)
        self._configuration = _deep_merge(full, configuration or {})

    @property
    def full_configuration(self) -> Dict[str, Any]:
        return copy.deepcopy(self._configuration)

    @property
    def is_abstract(self) -> bool:
        return bool(self._configuration.get("abstract", False))

    @property
    def properties(self) -> Dict[str, Dict[str, Any]]:
        return self._configuration.get("properties") or {}

    def has_configuration(self, path: str) -> bool:
        return self.get_configuration(path) is not None

    def get_configuration(self, path: str) -> Any:
        """Dot separated lookup, e.g. ``search.fulltext.enable``."""
        current: Any = self._configuration
        for part in path.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return None
            current = current[part]
        return current

    @property
    def is_fulltext_root(self) -> bool:
        return self.get_configuration("search.fulltext.enable") is True

    def type_and_supertypes(self) -> List[str]:
        names = [self.name]
        for supertype in self.declared_supertypes:
            for name in supertype.type_and_supertypes():
                if name not in names:
                    names.append(name)
        return names

    def __repr__(self) -> str:
        return f"NodeType({self.name!r})"


class NodeTypeManager:
    """Resolves node type names to NodeType instances."""

    def __init__(self, declarations: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._declarations: Dict[str, Mapping[str, Any]] = dict(declarations or {})
        self._node_types: Dict[str, NodeType] = {}
        for name in self._declarations:
            self._resolve(name, ())
        if FALLBACK_NODE_TYPE not in self._node_types:
            self._node_types[FALLBACK_NODE_TYPE] = NodeType(FALLBACK_NODE_TYPE)

    @classmethod
    def from_file(cls, path: str | Path) -> "NodeTypeManager":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Node type configuration not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            declarations = yaml.safe_load(f) or {}
        logger.info("node_types_loaded", path=str(path), count=len(declarations))
        return cls(declarations)

    def _resolve(self, name: str, chain: tuple) -> NodeType:
        if name in self._node_types:
            return self._node_types[name]
        if name in chain:
            raise ConfigurationError(
                f"Circular supertype declaration: {' -> '.join(chain + (name,))}"
            )
        if name not in self._declarations:
            raise ConfigurationError(f'Supertype "{name}" is not declared')

        declaration = dict(self._declarations[name] or {})
        raw_supertypes = declaration.pop("superTypes", None) or []
        if isinstance(raw_supertypes, Mapping):
            # {"Acme:Document": true, "Acme:Hidden": false}
            raw_supertypes = [n for n, enabled in raw_supertypes.items() if enabled]
        supertypes = [self._resolve(n, chain + (name,)) for n in raw_supertypes]

        node_type = NodeType(name, declaration, supertypes)
        self._node_types[name] = node_type
        return node_type

    def has_node_type(self, name: str) -> bool:
        return name in self._node_types

    def get_node_type(self, name: str) -> NodeType:
        node_type = self._node_types.get(name)
        if node_type is None:
            logger.warning("unknown_node_type", node_type=name, fallback=FALLBACK_NODE_TYPE)
            return self._node_types[FALLBACK_NODE_TYPE]
        return node_type

    def get_node_types(self) -> Dict[str, NodeType]:
        return dict(self._node_types)
