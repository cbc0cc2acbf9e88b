"""
Dimension space value objects.

A DimensionSpacePoint is one coordinate tuple across all content dimensions
(for example language and the reserved workspace dimension). Points are
immutable and hashable so they can be used as set members and dict keys.
"""

from __future__ import annotations

import hashlib
import itertools
import json
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

WORKSPACE_DIMENSION = "_workspace"
LIVE_WORKSPACE = "live"


class DimensionSpacePoint:
    """An ordered mapping of dimension name to coordinate value."""

    __slots__ = ("_coordinates", "_key")

    def __init__(self, coordinates: Optional[Mapping[str, str]] = None):
        self._coordinates: Dict[str, str] = {
            str(name): str(value) for name, value in (coordinates or {}).items()
        }
        self._key = tuple(sorted(self._coordinates.items()))

    @classmethod
    def from_json(cls, raw: str) -> "DimensionSpacePoint":
        return cls(json.loads(raw))

    @property
    def coordinates(self) -> Dict[str, str]:
        return dict(self._coordinates)

    def coordinate(self, dimension: str) -> Optional[str]:
        return self._coordinates.get(dimension)

    def without(self, dimension: str) -> "DimensionSpacePoint":
        """Return a copy of this point with one dimension removed."""
        return DimensionSpacePoint(
            {k: v for k, v in self._coordinates.items() if k != dimension}
        )

    def without_workspace(self) -> "DimensionSpacePoint":
        return self.without(WORKSPACE_DIMENSION)

    def with_coordinate(self, dimension: str, value: str) -> "DimensionSpacePoint":
        coordinates = dict(self._coordinates)
        coordinates[dimension] = value
        return DimensionSpacePoint(coordinates)

    def to_json(self) -> str:
        """Canonical JSON: keys sorted, no whitespace."""
        return json.dumps(dict(self._key), sort_keys=True, separators=(",", ":"))

    @property
    def hash(self) -> str:
        """Stable dimension hash, identical across processes and runs."""
        return hashlib.md5(self.to_json().encode("utf-8")).hexdigest()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DimensionSpacePoint):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __len__(self) -> int:
        return len(self._coordinates)

    def __repr__(self) -> str:
        return f"DimensionSpacePoint({self._coordinates!r})"


class DimensionSpacePointSet:
    """Insertion ordered set of dimension space points."""

    def __init__(self, points: Iterable[DimensionSpacePoint] = ()):
        self._points: Dict[DimensionSpacePoint, None] = {}
        for point in points:
            self._points[point] = None

    def add(self, point: DimensionSpacePoint) -> None:
        self._points[point] = None

    def contains(self, point: DimensionSpacePoint) -> bool:
        return point in self._points

    def union(self, other: Iterable[DimensionSpacePoint]) -> "DimensionSpacePointSet":
        merged = DimensionSpacePointSet(self)
        for point in other:
            merged.add(point)
        return merged

    def __contains__(self, point: object) -> bool:
        return point in self._points

    def __iter__(self) -> Iterator[DimensionSpacePoint]:
        return iter(list(self._points))

    def __len__(self) -> int:
        return len(self._points)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DimensionSpacePointSet):
            return NotImplemented
        return set(self._points) == set(other._points)

    def __repr__(self) -> str:
        return f"DimensionSpacePointSet({list(self._points)!r})"


@dataclass(frozen=True)
class ContentStreamIdentity:
    """Identifies the versioned branch a subgraph belongs to."""

    value: str

    @classmethod
    def for_point(cls, point: DimensionSpacePoint) -> "ContentStreamIdentity":
        return cls(point.coordinate(WORKSPACE_DIMENSION) or LIVE_WORKSPACE)

    def __str__(self) -> str:
        return self.value


class DimensionCombinator:
    """
    Expands configured dimension presets into all allowed combinations.

    The resulting points never carry the workspace coordinate; combinations
    are produced in configuration order.
    """

    def __init__(self, presets: Mapping[str, List[str]]):
        self.presets = {name: list(values) for name, values in presets.items()}

    def get_all_allowed_combinations(self) -> List[DimensionSpacePoint]:
        if not self.presets:
            return [DimensionSpacePoint()]
        names = list(self.presets)
        return [
            DimensionSpacePoint(dict(zip(names, values)))
            for values in itertools.product(*(self.presets[n] for n in names))
        ]
