"""Crossplane version/scope classification of composite resource definitions.

The classification is structural: a ``spec.scope`` field only exists on v2
definitions, so its presence (not the apiVersion string) picks the dialect
family. Every downstream builder branches on the returned profile.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict

SCOPE_LEGACY_CLUSTER = "LegacyCluster"
SCOPE_CLUSTER = "Cluster"
SCOPE_NAMESPACED = "Namespaced"


class Dialect(str, enum.Enum):
    LEGACY_CLAIM = "legacy-claim"
    LEGACY_CLUSTER = "legacy-cluster"
    DIRECT_CLUSTER = "direct-cluster"
    DIRECT_NAMESPACED = "direct-namespaced"


@dataclass(frozen=True)
class DialectProfile:
    dialect: Dialect
    crossplane_version: str
    scope: str
    needs_namespace: bool
    has_claim_fields: bool
    settings_nesting_depth: int

    @property
    def is_claim_based(self) -> bool:
        return self.has_claim_fields

    @property
    def namespace_param(self) -> str:
        return "xrNamespace" if self.needs_namespace else ""


def classify_dialect(xrd: Dict[str, Any]) -> DialectProfile:
    """Classify a raw definition object. Total: any input yields a profile."""
    spec = (xrd or {}).get("spec") or {}
    scope = spec.get("scope")

    if not scope:
        return DialectProfile(
            dialect=Dialect.LEGACY_CLAIM,
            crossplane_version="v1",
            scope=SCOPE_CLUSTER,
            needs_namespace=True,
            has_claim_fields=True,
            settings_nesting_depth=0,
        )
    if scope == SCOPE_LEGACY_CLUSTER:
        return DialectProfile(
            dialect=Dialect.LEGACY_CLUSTER,
            crossplane_version="v2",
            scope=scope,
            needs_namespace=True,
            has_claim_fields=True,
            settings_nesting_depth=0,
        )
    if scope == SCOPE_NAMESPACED:
        return DialectProfile(
            dialect=Dialect.DIRECT_NAMESPACED,
            crossplane_version="v2",
            scope=scope,
            needs_namespace=True,
            has_claim_fields=False,
            settings_nesting_depth=1,
        )
    return DialectProfile(
        dialect=Dialect.DIRECT_CLUSTER,
        crossplane_version="v2",
        scope=scope,
        needs_namespace=False,
        has_claim_fields=False,
        settings_nesting_depth=1,
    )


def resource_kind(xrd: Dict[str, Any]) -> str:
    """Kind a user creates: the claim kind for claim dialects, else the XR kind."""
    spec = (xrd or {}).get("spec") or {}
    if classify_dialect(xrd).has_claim_fields:
        return (spec.get("claimNames") or {}).get("kind") or ""
    return (spec.get("names") or {}).get("kind") or (xrd.get("metadata") or {}).get("name", "")


def resource_plural(xrd: Dict[str, Any]) -> str:
    spec = (xrd or {}).get("spec") or {}
    if classify_dialect(xrd).has_claim_fields:
        return (spec.get("claimNames") or {}).get("plural") or ""
    return (spec.get("names") or {}).get("plural") or (xrd.get("metadata") or {}).get("name", "")
