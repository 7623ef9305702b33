"""Unit tests for composition parsing and matching."""

import pytest

from xrd_ingestor.compositions import (
    build_composite_kind_lookup,
    match_compositions,
    parse_composition,
)
from xrd_ingestor.models import Composition, CompositeType, Definition


def _definition(raw, effective=None):
    return Definition(raw=raw, cluster_name="east", effective_composite_type=effective)


def _composition(name, api_version, kind):
    return Composition(name=name, composite_type=CompositeType(api_version, kind), cluster_name="east")


class TestParseComposition:

    @pytest.mark.unit
    def test_parse(self, make_composition):
        composition = parse_composition(
            make_composition("db-aws", "example.org/v1alpha1", "XDatabase"), "east"
        )
        assert composition.name == "db-aws"
        assert composition.composite_type == CompositeType("example.org/v1alpha1", "XDatabase")
        assert composition.cluster_name == "east"

    @pytest.mark.unit
    def test_missing_type_ref(self):
        composition = parse_composition({"metadata": {"name": "broken"}, "spec": {}}, "east")
        assert composition.composite_type is None

    @pytest.mark.unit
    def test_missing_name(self):
        assert parse_composition({"metadata": {}}, "east") is None


class TestMatchCompositions:

    @pytest.mark.unit
    def test_exact_match(self, make_xrd):
        xrd = _definition(make_xrd(), CompositeType("example.org/v1alpha1", "XDatabase"))
        match_compositions([xrd], [_composition("db-aws", "example.org/v1alpha1", "XDatabase")])
        assert xrd.compositions == ["db-aws"]

    @pytest.mark.unit
    def test_kind_case_insensitive(self, make_xrd):
        xrd = _definition(make_xrd(), CompositeType("example.org/v1alpha1", "XDatabase"))
        match_compositions([xrd], [_composition("db-aws", "example.org/v1alpha1", "xdatabase")])
        assert xrd.compositions == ["db-aws"]

    @pytest.mark.unit
    def test_api_version_must_match_exactly(self, make_xrd):
        xrd = _definition(make_xrd(), CompositeType("example.org/v1alpha1", "XDatabase"))
        match_compositions([xrd], [
            _composition("db-beta", "example.org/v1beta1", "XDatabase"),
            _composition("db-upper", "Example.org/v1alpha1", "XDatabase"),
        ])
        assert xrd.compositions == []

    @pytest.mark.unit
    def test_deduplicated_across_clusters(self, make_xrd):
        xrd = _definition(make_xrd(), CompositeType("example.org/v1alpha1", "XDatabase"))
        match_compositions([xrd], [
            _composition("db-aws", "example.org/v1alpha1", "XDatabase"),
            _composition("db-aws", "example.org/v1alpha1", "XDatabase"),
        ])
        assert xrd.compositions == ["db-aws"]

    @pytest.mark.unit
    def test_definition_without_type_never_matches(self, make_xrd):
        xrd = _definition(make_xrd())
        match_compositions([xrd], [_composition("db-aws", "example.org/v1alpha1", "XDatabase")])
        assert xrd.compositions == []

    @pytest.mark.unit
    def test_only_compositions_mutated(self, make_xrd):
        raw = make_xrd()
        xrd = _definition(raw, CompositeType("example.org/v1alpha1", "XDatabase"))
        xrd.clusters = ["east"]
        match_compositions([xrd], [_composition("db-aws", "example.org/v1alpha1", "XDatabase")])
        assert xrd.raw is raw
        assert xrd.clusters == ["east"]
        assert xrd.effective_composite_type == CompositeType("example.org/v1alpha1", "XDatabase")


class TestCompositeKindLookup:

    @pytest.mark.unit
    def test_direct_definitions_indexed_by_both_casings(self, make_xrd):
        xrd = _definition(make_xrd(scope="Namespaced", claim_kind=None))
        lookup = build_composite_kind_lookup([xrd])
        assert lookup["XDatabase|example.org|v1alpha1"] is xrd
        assert lookup["xdatabase|example.org|v1alpha1"] is xrd

    @pytest.mark.unit
    def test_claim_definitions_not_indexed(self, make_xrd):
        lookup = build_composite_kind_lookup([
            _definition(make_xrd()),
            _definition(make_xrd(scope="LegacyCluster")),
        ])
        assert lookup == {}
