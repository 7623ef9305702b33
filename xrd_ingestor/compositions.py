"""Association of compositions with the definitions whose composite type they produce."""

import logging
from typing import Any, Dict, Iterable, Optional

from xrd_ingestor.dialect import classify_dialect
from xrd_ingestor.models import Composition, CompositeType, Definition

logger = logging.getLogger("xrd-ingestor")


def parse_composition(obj: Dict[str, Any], cluster_name: str) -> Optional[Composition]:
    metadata = obj.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        return None
    ref = (obj.get("spec") or {}).get("compositeTypeRef")
    return Composition(
        name=name,
        composite_type=CompositeType.from_mapping(ref),
        cluster_name=cluster_name,
    )


def _types_match(produced: CompositeType, effective: CompositeType) -> bool:
    if produced.api_version != effective.api_version:
        return False
    # User-authored compositions are inconsistent about kind casing.
    if produced.kind == effective.kind:
        return True
    return produced.kind.lower() == effective.kind.lower()


def match_compositions(
    definitions: Iterable[Definition], compositions: Iterable[Composition]
) -> None:
    """Append matching composition names to each definition, deduplicated.

    Only ``Definition.compositions`` is ever mutated.
    """
    definitions = list(definitions)
    for composition in compositions:
        produced = composition.composite_type
        if produced is None:
            logger.debug(f"Composition {composition.name} has no compositeTypeRef, skipping")
            continue
        for xrd in definitions:
            effective = xrd.effective_composite_type
            if effective is None:
                continue
            if _types_match(produced, effective) and composition.name not in xrd.compositions:
                xrd.compositions.append(composition.name)


def build_composite_kind_lookup(definitions: Iterable[Definition]) -> Dict[str, Definition]:
    """Index direct (non-claim) v2 definitions by ``Kind|group|version``.

    Each version is registered under both the declared kind and its lower-cased
    form so resources reporting either casing resolve to the same definition.
    """
    lookup: Dict[str, Definition] = {}
    for xrd in definitions:
        if classify_dialect(xrd.raw).has_claim_fields:
            continue
        kind = xrd.names.get("kind") or ""
        for version in xrd.versions:
            version_name = version.get("name")
            lookup[f"{kind}|{xrd.group}|{version_name}"] = xrd
            lookup[f"{kind.lower()}|{xrd.group}|{version_name}"] = xrd
    return lookup

