"""Shared fixtures for building raw Kubernetes objects."""

from unittest.mock import MagicMock

import pytest

from xrd_ingestor.config import IngestorSettings
from xrd_ingestor.fetcher import FetchResponse, XRD_V1, XRD_V2, COMPOSITIONS, CRDS
from xrd_ingestor.models import ClusterDetails


def _version(name, spec_properties=None, required=None, storage=True):
    spec = {"type": "object", "properties": spec_properties or {}}
    if required:
        spec["required"] = required
    return {
        "name": name,
        "served": True,
        "referenceable": storage,
        "storage": storage,
        "schema": {
            "openAPIV3Schema": {
                "type": "object",
                "properties": {"spec": spec},
            },
        },
    }


@pytest.fixture
def make_version():
    return _version


@pytest.fixture
def make_xrd():
    def _make(
        name="xdatabases.example.org",
        group="example.org",
        kind="XDatabase",
        plural="xdatabases",
        claim_kind="Database",
        claim_plural="databases",
        scope=None,
        versions=None,
        annotations=None,
        status_type=None,
        spec_properties=None,
    ):
        spec = {
            "group": group,
            "names": {"kind": kind, "plural": plural},
            "versions": versions if versions is not None else [_version("v1alpha1", spec_properties)],
        }
        if scope is not None:
            spec["scope"] = scope
        if claim_kind:
            spec["claimNames"] = {"kind": claim_kind, "plural": claim_plural}
        xrd = {
            "apiVersion": "apiextensions.crossplane.io/v2" if scope else "apiextensions.crossplane.io/v1",
            "kind": "CompositeResourceDefinition",
            "metadata": {
                "name": name,
                "annotations": annotations if annotations is not None else {},
            },
            "spec": spec,
        }
        if status_type is not None:
            xrd["status"] = {"controllers": {"compositeResourceType": status_type}}
        return xrd

    return _make


@pytest.fixture
def make_composition():
    def _make(name, api_version, kind):
        return {
            "apiVersion": "apiextensions.crossplane.io/v1",
            "kind": "Composition",
            "metadata": {"name": name},
            "spec": {"compositeTypeRef": {"apiVersion": api_version, "kind": kind}},
        }

    return _make


@pytest.fixture
def make_crd():
    def _make(
        name="widgets.example.com",
        group="example.com",
        kind="Widget",
        plural="widgets",
        singular="widget",
        scope="Namespaced",
        versions=None,
        labels=None,
    ):
        return {
            "apiVersion": "apiextensions.k8s.io/v1",
            "kind": "CustomResourceDefinition",
            "metadata": {"name": name, "labels": labels or {}},
            "spec": {
                "group": group,
                "names": {"kind": kind, "plural": plural, "singular": singular},
                "scope": scope,
                "versions": versions or [_version("v1")],
            },
        }

    return _make


@pytest.fixture
def settings():
    return IngestorSettings(ingest_all_xrds=True)


def _cluster(name, url=None):
    return ClusterDetails(name=name, url=url or f"https://{name}.example.com:6443")


@pytest.fixture
def cluster():
    return _cluster


@pytest.fixture
def fake_fetcher():
    """A fetcher whose responses are keyed by cluster name.

    ``inventory[cluster] = {"xrds": [...], "crds": [...], "compositions": [...]}``;
    ``"labelled_crds": {selector: [...]}`` stands in for server-side label filtering;
    a value of ``Exception`` raises on the first call for that cluster.
    """

    def _make(inventory):
        fetcher = MagicMock()

        def fetch_objects(cluster, credential, objects_to_fetch, label_selector=""):
            data = inventory.get(cluster.name, {})
            if isinstance(data, Exception):
                raise data
            responses = []
            for obj in objects_to_fetch:
                if obj in (XRD_V1, XRD_V2):
                    items = data.get("xrds", []) if obj == XRD_V2 else data.get("xrds_v1", [])
                elif obj == CRDS and label_selector:
                    items = data.get("labelled_crds", {}).get(label_selector, [])
                elif obj == CRDS:
                    items = data.get("crds", [])
                elif obj == COMPOSITIONS:
                    items = data.get("compositions", [])
                else:
                    items = []
                responses.append(FetchResponse(obj, list(items)))
            return responses

        fetcher.fetch_objects.side_effect = fetch_objects
        return fetcher

    return _make


@pytest.fixture
def make_aggregator(settings, fake_fetcher):
    from xrd_ingestor.aggregator import DefinitionAggregator

    def _make(clusters, inventory, config=None, auth_strategies=None):
        supplier = MagicMock()
        supplier.get_clusters.return_value = clusters
        return DefinitionAggregator(
            config or settings,
            fetcher=fake_fetcher(inventory),
            cluster_supplier=supplier,
            auth_strategies=auth_strategies or {"kubeconfig": lambda c: MagicMock()},
        )

    return _make
