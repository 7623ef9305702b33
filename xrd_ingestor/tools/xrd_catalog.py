"""Crossplane XRD catalog tools.

Expose the multi-cluster XRD ingestion pipeline over MCP so an operator (or
an LLM) can see which composite resource definitions were found, how each one
was classified, and exactly which software template and API entities a
refresh would publish.

Tools:
    discover_xrds          - List merged XRDs across all reachable clusters
    describe_xrd           - Dialect, clusters, compositions and diagnostics of one XRD
    preview_xrd_template   - Generated Template entities for one XRD
    preview_xrd_api        - Generated API entities for one XRD
    lookup_composite_kind  - Resolve a direct XR kind/group/version to its XRD
    refresh_catalog        - Run a full refresh pass and publish the entity set
"""

import logging
from typing import Any, Dict, List, Optional

from mcp.types import ToolAnnotations

from xrd_ingestor.aggregator import DefinitionAggregator
from xrd_ingestor.compositions import build_composite_kind_lookup
from xrd_ingestor.config import get_settings
from xrd_ingestor.dialect import classify_dialect
from xrd_ingestor.entities import xrd_to_apis, xrd_to_templates
from xrd_ingestor.models import Definition
from xrd_ingestor.provider import InMemoryCatalogConnection, XRDTemplateEntityProvider

logger = logging.getLogger("xrd-ingestor")


def build_aggregator() -> DefinitionAggregator:
    return DefinitionAggregator(get_settings())


def _summarize(xrd: Definition) -> Dict[str, Any]:
    profile = classify_dialect(xrd.raw)
    return {
        "name": xrd.name,
        "group": xrd.group,
        "kind": xrd.names.get("kind"),
        "claimKind": xrd.claim_names.get("kind"),
        "dialect": profile.dialect.value,
        "crossplaneVersion": profile.crossplane_version,
        "scope": profile.scope,
        "versions": [v.get("name") for v in xrd.versions],
        "clusters": list(xrd.clusters),
        "compositions": list(xrd.compositions),
    }


def _find(definitions: List[Definition], xrd_name: str) -> Optional[Definition]:
    return next((d for d in definitions if d.name == xrd_name), None)


def _filter_version(entities: List[Dict[str, Any]], version: str, xrd: Definition) -> List[Dict[str, Any]]:
    if not version:
        return entities
    wanted = {f"{xrd.name}-{version}"}
    return [
        e for e in entities
        if e["metadata"]["name"] in wanted or e["metadata"]["name"].endswith(f"--{version}")
    ]


def _not_found(xrd_name: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": f"XRD '{xrd_name}' not found",
        "hint": "Use discover_xrds to list ingested XRDs",
    }


def register_xrd_catalog_tools(server, non_destructive: bool):
    """Register XRD catalog discovery, preview and refresh tools."""

    connection = InMemoryCatalogConnection()

    @server.tool(
        annotations=ToolAnnotations(
            title="Discover Crossplane XRDs",
            readOnlyHint=True,
        ),
    )
    def discover_xrds(
        cluster: str = ""
    ) -> Dict[str, Any]:
        """Discover composite resource definitions across every reachable cluster.

        Definitions with the same name on several clusters are merged into one
        entry listing every cluster it was seen on.

        Args:
            cluster: Only return XRDs observed on this cluster. Empty returns all.
        """
        try:
            result = build_aggregator().aggregate()
            xrds = [
                _summarize(d) for d in result.definitions
                if not cluster or cluster in d.clusters
            ]
            return {
                "success": True,
                "count": len(xrds),
                "xrds": xrds,
                "compositionCount": len(result.compositions),
                "skippedClusters": result.skipped_clusters,
            }
        except Exception as e:
            logger.error(f"Error discovering XRDs: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Crossplane XRD",
            readOnlyHint=True,
        ),
    )
    def describe_xrd(
        xrd_name: str
    ) -> Dict[str, Any]:
        """Show how one XRD was classified and matched.

        Includes both composite type candidates (controller status and spec
        derived) and any clusters whose copy of the schema diverged.

        Args:
            xrd_name: Full XRD name (e.g., "xpostgresqlinstances.database.example.org")
        """
        try:
            result = build_aggregator().aggregate()
            xrd = _find(result.definitions, xrd_name)
            if xrd is None:
                return _not_found(xrd_name)
            profile = classify_dialect(xrd.raw)
            summary = _summarize(xrd)
            summary.update({
                "needsNamespace": profile.needs_namespace,
                "claimBased": profile.has_claim_fields,
                "clusterDetails": [c.as_server() for c in xrd.cluster_details],
                "hasGeneratedCRD": xrd.generated_crd is not None,
                "diagnostics": xrd.diagnostics(),
            })
            return {"success": True, "xrd": summary}
        except Exception as e:
            logger.error(f"Error describing XRD: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Preview XRD Software Template",
            readOnlyHint=True,
        ),
    )
    def preview_xrd_template(
        xrd_name: str,
        version: str = ""
    ) -> Dict[str, Any]:
        """Render the Template entities a refresh would publish for one XRD.

        Args:
            xrd_name: Full XRD name
            version: Only this schema version (e.g., "v1alpha1"). Empty returns all.
        """
        try:
            aggregator = build_aggregator()
            result = aggregator.aggregate()
            xrd = _find(result.definitions, xrd_name)
            if xrd is None:
                return _not_found(xrd_name)
            templates = _filter_version(xrd_to_templates(xrd, aggregator.settings), version, xrd)
            return {"success": True, "count": len(templates), "templates": templates}
        except Exception as e:
            logger.error(f"Error previewing XRD template: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Preview XRD API Entity",
            readOnlyHint=True,
        ),
    )
    def preview_xrd_api(
        xrd_name: str,
        version: str = ""
    ) -> Dict[str, Any]:
        """Render the OpenAPI-backed API entities a refresh would publish for one XRD.

        Args:
            xrd_name: Full XRD name
            version: Only this schema version. Empty returns all.
        """
        try:
            result = build_aggregator().aggregate()
            xrd = _find(result.definitions, xrd_name)
            if xrd is None:
                return _not_found(xrd_name)
            apis = _filter_version(xrd_to_apis(xrd), version, xrd)
            return {"success": True, "count": len(apis), "apis": apis}
        except Exception as e:
            logger.error(f"Error previewing XRD API: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Lookup Composite Resource Kind",
            readOnlyHint=True,
        ),
    )
    def lookup_composite_kind(
        kind: str,
        group: str,
        version: str
    ) -> Dict[str, Any]:
        """Find the direct (Cluster or Namespaced scoped) v2 XRD serving a kind.

        Args:
            kind: Composite resource kind (any casing of the declared kind)
            group: API group of the composite resource
            version: API version name (e.g., "v1alpha1")
        """
        try:
            lookup = build_composite_kind_lookup(build_aggregator().aggregate().definitions)
            xrd = lookup.get(f"{kind}|{group}|{version}") or lookup.get(f"{kind.lower()}|{group}|{version}")
            if xrd is None:
                return {
                    "success": False,
                    "error": f"No direct XRD serves {kind} in {group}/{version}",
                }
            return {"success": True, "xrd": _summarize(xrd)}
        except Exception as e:
            logger.error(f"Error looking up composite kind: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Refresh XRD Catalog",
            readOnlyHint=False,
            idempotentHint=True,
        ),
    )
    def refresh_catalog() -> Dict[str, Any]:
        """Run a full refresh pass and replace the published entity set.

        The previous entity set is always replaced wholesale; a pass that fails
        publishes an empty set.
        """
        try:
            aggregator = build_aggregator()
            provider = XRDTemplateEntityProvider(aggregator.settings, aggregator)
            provider.connect(connection)
            entities = provider.run()
            kinds: Dict[str, int] = {}
            for entity in entities:
                kinds[entity["kind"]] = kinds.get(entity["kind"], 0) + 1
            return {
                "success": True,
                "count": len(entities),
                "byKind": kinds,
                "entityNames": [e["metadata"]["name"] for e in entities],
                "mutations": connection.mutations,
            }
        except Exception as e:
            logger.error(f"Error refreshing catalog: {e}")
            return {"success": False, "error": str(e)}
