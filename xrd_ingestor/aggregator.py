"""Multi-cluster aggregation of composite resource definitions.

One pass walks every reachable cluster in order. Per cluster it lists the
definitions (v2 then v1 API), the compositions and, exactly once, the CRDs:
the CRD list supplies the generated schema for every definition on that
cluster and the generic CRDs selected by name. A configured CRD label
selector is passed to the API server in one extra filtered listing.

A malformed definition or composition is logged and skipped on its own;
only a failed listing skips the whole cluster.

Definitions are merged by name. The first sighting seeds the entry; later
sightings only add cluster membership. A later copy whose schema differs is
recorded in ``Definition.diverged_clusters`` and logged, the first-seen schema
is kept.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from xrd_ingestor.compositions import match_compositions, parse_composition
from xrd_ingestor.config import IngestorSettings
from xrd_ingestor.dialect import classify_dialect
from xrd_ingestor.fetcher import (
    COMPOSITIONS,
    CRDS,
    XRD_V1,
    XRD_V2,
    ClusterSupplier,
    KubernetesResourceFetcher,
)
from xrd_ingestor.k8s_config import CredentialError, default_auth_strategies
from xrd_ingestor.models import (
    ClusterDetails,
    Composition,
    CompositeType,
    CustomResourceDefinition,
    Definition,
)

logger = logging.getLogger("xrd-ingestor")

AuthStrategy = Callable[[ClusterDetails], Any]


@dataclass
class AggregationResult:
    definitions: List[Definition] = field(default_factory=list)
    compositions: List[Composition] = field(default_factory=list)
    crds: List[CustomResourceDefinition] = field(default_factory=list)
    skipped_clusters: List[str] = field(default_factory=list)


def schema_fingerprint(xrd: Dict[str, Any]) -> str:
    versions = (xrd.get("spec") or {}).get("versions") or []
    payload = json.dumps(versions, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def resolve_composite_types(xrd: Dict[str, Any]):
    """Return ``(status_type, spec_type)`` candidates for a raw definition."""
    status_type = CompositeType.from_mapping(
        ((xrd.get("status") or {}).get("controllers") or {}).get("compositeResourceType")
    )
    spec = xrd.get("spec") or {}
    kind = (spec.get("names") or {}).get("kind")
    versions = spec.get("versions") or []
    group = spec.get("group")
    spec_type = None
    if kind and group and versions and versions[0].get("name"):
        spec_type = CompositeType(api_version=f"{group}/{versions[0]['name']}", kind=kind)
    return status_type, spec_type


def has_valid_versions(xrd: Dict[str, Any]) -> bool:
    """At least one version, and every version a mapping with a name."""
    versions = (xrd.get("spec") or {}).get("versions")
    if not isinstance(versions, list) or not versions:
        return False
    return all(isinstance(v, dict) and v.get("name") for v in versions)


class DefinitionAggregator:
    def __init__(
        self,
        settings: IngestorSettings,
        fetcher: Optional[KubernetesResourceFetcher] = None,
        cluster_supplier: Optional[ClusterSupplier] = None,
        auth_strategies: Optional[Dict[str, AuthStrategy]] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or KubernetesResourceFetcher()
        self.cluster_supplier = cluster_supplier or ClusterSupplier(settings)
        self.auth_strategies = (
            dict(auth_strategies) if auth_strategies is not None else default_auth_strategies()
        )

    def _annotation(self, name: str) -> str:
        return f"{self.settings.annotation_prefix}/{name}"

    def _resolve_credential(self, cluster: ClusterDetails) -> Any:
        strategy = self.auth_strategies.get(cluster.auth_provider)
        if strategy is None:
            raise CredentialError(
                f"no auth strategy registered for provider '{cluster.auth_provider}'"
            )
        return strategy(cluster)

    def should_ingest(self, xrd: Dict[str, Any]) -> bool:
        annotations = (xrd.get("metadata") or {}).get("annotations") or {}
        if annotations.get(self._annotation("exclude-from-catalog")):
            return False
        if not self.settings.ingest_all_xrds and not annotations.get(self._annotation("add-to-catalog")):
            return False
        profile = classify_dialect(xrd)
        if profile.has_claim_fields and not ((xrd.get("spec") or {}).get("claimNames") or {}).get("kind"):
            return False
        return True

    def _select_generic_crds(
        self,
        cluster: ClusterDetails,
        credential: Any,
        crd_map: Dict[str, Dict[str, Any]],
    ) -> Dict[str, Dict[str, Any]]:
        """CRDs named in config plus those the API server matches against the label selector."""
        generic = self.settings.generic_crds
        selected = {name: crd_map[name] for name in generic.crd_names if name in crd_map}
        if generic.crd_label_selector:
            responses = self.fetcher.fetch_objects(
                cluster, credential, [CRDS], label_selector=generic.crd_label_selector
            )
            for response in responses:
                for crd in response.resources:
                    crd_name = (crd.get("metadata") or {}).get("name")
                    if crd_name and crd_name not in selected:
                        selected[crd_name] = crd
        return selected

    def aggregate(self) -> AggregationResult:
        result = AggregationResult()
        clusters = self.cluster_supplier.get_clusters()
        if not clusters:
            logger.warning("No clusters found.")
            return result

        definitions: Dict[str, Definition] = {}
        crds: Dict[str, CustomResourceDefinition] = {}
        allowed = self.settings.allowed_cluster_names

        for cluster in clusters:
            if allowed is not None and cluster.name not in allowed:
                logger.debug(
                    f"Skipping cluster: {cluster.name} as it is not included in the allowedClusterNames configuration."
                )
                continue
            try:
                credential = self._resolve_credential(cluster)
            except Exception as e:
                logger.error(
                    f"Failed to get auth credentials for cluster {cluster.name} with provider {cluster.auth_provider}: {e}"
                )
                result.skipped_clusters.append(cluster.name)
                continue
            try:
                self._aggregate_cluster(cluster, credential, definitions, crds, result)
            except Exception as e:
                logger.error(f"Failed to fetch XRD objects for cluster {cluster.name}: {e}")
                result.skipped_clusters.append(cluster.name)

        result.definitions = list(definitions.values())
        result.crds = list(crds.values())
        match_compositions(result.definitions, result.compositions)
        logger.debug(
            f"Aggregated {len(result.definitions)} XRDs, {len(result.compositions)} compositions "
            f"and {len(result.crds)} CRDs from {len(clusters)} clusters"
        )
        return result

    def _aggregate_cluster(
        self,
        cluster: ClusterDetails,
        credential: Any,
        definitions: Dict[str, Definition],
        crds: Dict[str, CustomResourceDefinition],
        result: AggregationResult,
    ) -> None:
        xrd_responses = self.fetcher.fetch_objects(cluster, credential, [XRD_V2, XRD_V1])
        crd_responses = self.fetcher.fetch_objects(cluster, credential, [CRDS])
        composition_responses = self.fetcher.fetch_objects(cluster, credential, [COMPOSITIONS])

        crd_map: Dict[str, Dict[str, Any]] = {}
        for response in crd_responses:
            for crd in response.resources:
                crd_name = (crd.get("metadata") or {}).get("name")
                if crd_name:
                    crd_map[crd_name] = crd

        # All listings complete before the first merge.
        selected_crds: Dict[str, Dict[str, Any]] = {}
        if self.settings.generic_crds.enabled:
            selected_crds = self._select_generic_crds(cluster, credential, crd_map)

        for crd_name, crd in selected_crds.items():
            if crd_name in crds:
                crds[crd_name].add_cluster(cluster)
            else:
                entry = CustomResourceDefinition(raw=crd, cluster_name=cluster.name)
                entry.add_cluster(cluster)
                crds[crd_name] = entry

        ingested = 0
        for response in xrd_responses:
            for xrd in response.resources:
                name = (xrd.get("metadata") or {}).get("name") if isinstance(xrd, dict) else None
                if not name:
                    logger.warning(f"Skipping XRD without metadata.name on cluster {cluster.name}")
                    continue
                if not has_valid_versions(xrd):
                    logger.warning(
                        f"Skipping XRD {name} on cluster {cluster.name} due to missing, empty or malformed versions array"
                    )
                    continue
                try:
                    if not self.should_ingest(xrd):
                        continue
                    self._merge_definition(xrd, cluster, crd_map, definitions)
                except Exception as e:
                    logger.error(f"Failed to process XRD {name} on cluster {cluster.name}: {e}")
                    continue
                ingested += 1

        for response in composition_responses:
            for obj in response.resources:
                try:
                    composition = parse_composition(obj, cluster.name)
                except Exception as e:
                    logger.error(f"Failed to parse composition on cluster {cluster.name}: {e}")
                    continue
                if composition is not None:
                    result.compositions.append(composition)

        logger.debug(f"Fetched {ingested} objects from cluster: {cluster.name}")

    def _merge_definition(
        self,
        xrd: Dict[str, Any],
        cluster: ClusterDetails,
        crd_map: Dict[str, Dict[str, Any]],
        definitions: Dict[str, Definition],
    ) -> None:
        name = xrd["metadata"]["name"]
        fingerprint = schema_fingerprint(xrd)

        existing = definitions.get(name)
        if existing is not None:
            added = existing.add_cluster(cluster)
            if added and fingerprint != existing.schema_fingerprint:
                existing.diverged_clusters.append(cluster.name)
                logger.warning(
                    f"XRD {name} on cluster {cluster.name} has a schema that differs from the copy "
                    f"first seen on {existing.cluster_name}; keeping the first-seen schema"
                )
            return

        status_type, spec_type = resolve_composite_types(xrd)
        effective = status_type or spec_type
        if status_type is None and spec_type is not None:
            logger.info(
                f"XRD {name} has empty controllers status (likely Configuration-managed). "
                f"Using fallback: Kind: {spec_type.kind}, ApiVersion: {spec_type.api_version}"
            )
        elif effective is None:
            logger.error(
                f"XRD {name} has invalid controllers status and cannot derive composite type from spec. "
                f"Composition matching is disabled for it."
            )
        elif spec_type is not None and spec_type != status_type:
            logger.debug(
                f"XRD {name} composite type candidates differ: status={status_type.as_dict()} "
                f"spec={spec_type.as_dict()}"
            )

        entry = Definition(
            raw=xrd,
            cluster_name=cluster.name,
            generated_crd=crd_map.get(name),
            effective_composite_type=effective,
            status_composite_type=status_type,
            spec_composite_type=spec_type,
            schema_fingerprint=fingerprint,
        )
        entry.add_cluster(cluster)
        definitions[name] = entry
