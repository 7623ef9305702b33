"""In-memory records produced by one refresh pass.

Raw Kubernetes objects stay plain dicts (as returned by the custom objects
API); these records wrap them with the per-pass data the pipeline derives.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ClusterDetails:
    name: str
    url: str
    auth_provider: str = "kubeconfig"
    service_account_token: Optional[str] = None
    skip_tls_verify: bool = False
    ca_data: Optional[str] = None

    def as_server(self) -> Dict[str, str]:
        return {"url": self.url, "description": self.name}


@dataclass(frozen=True)
class CompositeType:
    """The group/version/kind a definition's composite resource is served as."""

    api_version: str
    kind: str

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> Optional["CompositeType"]:
        if not data:
            return None
        api_version = data.get("apiVersion") or ""
        kind = data.get("kind") or ""
        if not api_version or not kind:
            return None
        return cls(api_version=api_version, kind=kind)

    def as_dict(self) -> Dict[str, str]:
        return {"apiVersion": self.api_version, "kind": self.kind}


@dataclass
class Composition:
    name: str
    composite_type: Optional[CompositeType]
    cluster_name: str


@dataclass
class Definition:
    """A composite resource definition merged across every cluster it was seen on."""

    raw: Dict[str, Any]
    cluster_name: str
    clusters: List[str] = field(default_factory=list)
    cluster_details: List[ClusterDetails] = field(default_factory=list)
    generated_crd: Optional[Dict[str, Any]] = None
    effective_composite_type: Optional[CompositeType] = None
    status_composite_type: Optional[CompositeType] = None
    spec_composite_type: Optional[CompositeType] = None
    compositions: List[str] = field(default_factory=list)
    schema_fingerprint: str = ""
    diverged_clusters: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.raw["metadata"]["name"]

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.raw.get("metadata") or {}

    @property
    def spec(self) -> Dict[str, Any]:
        return self.raw.get("spec") or {}

    @property
    def group(self) -> str:
        return self.spec.get("group", "")

    @property
    def versions(self) -> List[Dict[str, Any]]:
        return self.spec.get("versions") or []

    @property
    def names(self) -> Dict[str, Any]:
        return self.spec.get("names") or {}

    @property
    def claim_names(self) -> Dict[str, Any]:
        return self.spec.get("claimNames") or {}

    @property
    def default_composition_name(self) -> Optional[str]:
        return (self.spec.get("defaultCompositionRef") or {}).get("name")

    def add_cluster(self, cluster: ClusterDetails) -> bool:
        if cluster.name in self.clusters:
            return False
        self.clusters.append(cluster.name)
        self.cluster_details.append(cluster)
        return True

    def diagnostics(self) -> Dict[str, Any]:
        return {
            "statusCompositeType": self.status_composite_type.as_dict()
            if self.status_composite_type else None,
            "specCompositeType": self.spec_composite_type.as_dict()
            if self.spec_composite_type else None,
            "effectiveCompositeType": self.effective_composite_type.as_dict()
            if self.effective_composite_type else None,
            "divergedClusters": list(self.diverged_clusters),
        }


@dataclass
class CustomResourceDefinition:
    """A plain CRD selected for generic template generation."""

    raw: Dict[str, Any]
    cluster_name: str
    clusters: List[str] = field(default_factory=list)
    cluster_details: List[ClusterDetails] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.raw["metadata"]["name"]

    @property
    def spec(self) -> Dict[str, Any]:
        return self.raw.get("spec") or {}

    @property
    def names(self) -> Dict[str, Any]:
        return self.spec.get("names") or {}

    @property
    def group(self) -> str:
        return self.spec.get("group", "")

    @property
    def scope(self) -> str:
        return self.spec.get("scope", "Namespaced")

    @property
    def versions(self) -> List[Dict[str, Any]]:
        return self.spec.get("versions") or []

    def add_cluster(self, cluster: ClusterDetails) -> bool:
        if cluster.name in self.clusters:
            return False
        self.clusters.append(cluster.name)
        self.cluster_details.append(cluster)
        return True
