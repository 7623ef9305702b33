"""Unit tests for XRD dialect classification."""

import pytest

from xrd_ingestor.dialect import (
    Dialect,
    classify_dialect,
    resource_kind,
    resource_plural,
)


class TestClassifyDialect:

    @pytest.mark.unit
    def test_no_scope_is_legacy_claim(self, make_xrd):
        profile = classify_dialect(make_xrd())
        assert profile.dialect == Dialect.LEGACY_CLAIM
        assert profile.crossplane_version == "v1"
        assert profile.scope == "Cluster"
        assert profile.needs_namespace is True
        assert profile.has_claim_fields is True
        assert profile.settings_nesting_depth == 0

    @pytest.mark.unit
    def test_empty_scope_is_legacy_claim(self, make_xrd):
        assert classify_dialect(make_xrd(scope="")).dialect == Dialect.LEGACY_CLAIM

    @pytest.mark.unit
    def test_legacy_cluster(self, make_xrd):
        profile = classify_dialect(make_xrd(scope="LegacyCluster"))
        assert profile.dialect == Dialect.LEGACY_CLUSTER
        assert profile.crossplane_version == "v2"
        assert profile.scope == "LegacyCluster"
        assert profile.needs_namespace is True
        assert profile.has_claim_fields is True
        assert profile.settings_nesting_depth == 0

    @pytest.mark.unit
    def test_direct_namespaced(self, make_xrd):
        profile = classify_dialect(make_xrd(scope="Namespaced", claim_kind=None))
        assert profile.dialect == Dialect.DIRECT_NAMESPACED
        assert profile.needs_namespace is True
        assert profile.has_claim_fields is False
        assert profile.settings_nesting_depth == 1
        assert profile.namespace_param == "xrNamespace"

    @pytest.mark.unit
    def test_cluster_scope_is_direct_cluster(self, make_xrd):
        profile = classify_dialect(make_xrd(scope="Cluster", claim_kind=None))
        assert profile.dialect == Dialect.DIRECT_CLUSTER
        assert profile.scope == "Cluster"
        assert profile.needs_namespace is False
        assert profile.namespace_param == ""

    @pytest.mark.unit
    def test_unknown_scope_is_direct_cluster(self, make_xrd):
        profile = classify_dialect(make_xrd(scope="SomethingNew", claim_kind=None))
        assert profile.dialect == Dialect.DIRECT_CLUSTER
        assert profile.scope == "SomethingNew"

    @pytest.mark.unit
    def test_classification_ignores_api_version(self, make_xrd):
        xrd = make_xrd()
        xrd["apiVersion"] = "apiextensions.crossplane.io/v2"
        assert classify_dialect(xrd).dialect == Dialect.LEGACY_CLAIM

    @pytest.mark.unit
    def test_total_on_empty_input(self):
        assert classify_dialect({}).dialect == Dialect.LEGACY_CLAIM
        assert classify_dialect(None).dialect == Dialect.LEGACY_CLAIM


class TestResourceNames:

    @pytest.mark.unit
    def test_claim_dialect_uses_claim_names(self, make_xrd):
        xrd = make_xrd()
        assert resource_kind(xrd) == "Database"
        assert resource_plural(xrd) == "databases"

    @pytest.mark.unit
    def test_direct_dialect_uses_composite_names(self, make_xrd):
        xrd = make_xrd(scope="Namespaced", claim_kind=None)
        assert resource_kind(xrd) == "XDatabase"
        assert resource_plural(xrd) == "xdatabases"
