"""Tests for dimension space points, point sets and the combinator."""

import hashlib

from graphindex.dimensions import (
    ContentStreamIdentity,
    DimensionCombinator,
    DimensionSpacePoint,
    DimensionSpacePointSet,
)


class TestDimensionSpacePoint:
    def test_equality_ignores_coordinate_order(self):
        a = DimensionSpacePoint({"language": "en", "market": "us"})
        b = DimensionSpacePoint({"market": "us", "language": "en"})
        assert a == b
        assert hash(a) == hash(b)
        assert a.hash == b.hash

    def test_hash_is_md5_of_canonical_json(self):
        """The dimension hash must be stable across processes."""
        p = DimensionSpacePoint({"language": "en"})
        assert p.to_json() == '{"language":"en"}'
        assert p.hash == hashlib.md5(b'{"language":"en"}').hexdigest()

    def test_without_workspace(self):
        p = DimensionSpacePoint({"language": "de", "_workspace": "user-admin"})
        stripped = p.without_workspace()
        assert stripped == DimensionSpacePoint({"language": "de"})
        assert p.coordinate("_workspace") == "user-admin"
        assert stripped.coordinate("_workspace") is None

    def test_with_coordinate_returns_copy(self):
        p = DimensionSpacePoint({"language": "de"})
        q = p.with_coordinate("_workspace", "live")
        assert len(p) == 1
        assert len(q) == 2

    def test_from_json_round_trip(self):
        p = DimensionSpacePoint({"language": "en"})
        assert DimensionSpacePoint.from_json(p.to_json()) == p


class TestDimensionSpacePointSet:
    def test_keeps_insertion_order_and_deduplicates(self):
        en = DimensionSpacePoint({"language": "en"})
        de = DimensionSpacePoint({"language": "de"})
        points = DimensionSpacePointSet([en, de, en])
        assert list(points) == [en, de]
        assert len(points) == 2
        assert points.contains(de)

    def test_union(self):
        en = DimensionSpacePoint({"language": "en"})
        de = DimensionSpacePoint({"language": "de"})
        merged = DimensionSpacePointSet([en]).union([de])
        assert merged == DimensionSpacePointSet([de, en])


class TestContentStreamIdentity:
    def test_defaults_to_live(self):
        assert ContentStreamIdentity.for_point(DimensionSpacePoint()).value == "live"

    def test_uses_workspace_coordinate(self):
        p = DimensionSpacePoint({"_workspace": "review"})
        assert str(ContentStreamIdentity.for_point(p)) == "review"


class TestDimensionCombinator:
    def test_cartesian_product_in_configuration_order(self):
        combinator = DimensionCombinator({"language": ["en", "de"], "market": ["us"]})
        combinations = combinator.get_all_allowed_combinations()
        assert combinations == [
            DimensionSpacePoint({"language": "en", "market": "us"}),
            DimensionSpacePoint({"language": "de", "market": "us"}),
        ]

    def test_no_presets_yields_single_empty_point(self):
        assert DimensionCombinator({}).get_all_allowed_combinations() == [DimensionSpacePoint()]
