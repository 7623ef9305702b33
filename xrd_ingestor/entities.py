"""Catalog entity construction: one Template and one API entity per definition version."""

import logging
from typing import Any, Dict, List

import yaml

from xrd_ingestor.api_docs import (
    build_openapi_document,
    cluster_list_paths,
    cluster_object_paths,
    namespaced_paths,
)
from xrd_ingestor.config import IngestorSettings, PublishPhaseSettings
from xrd_ingestor.dialect import Dialect, classify_dialect, resource_kind, resource_plural
from xrd_ingestor.models import CustomResourceDefinition, Definition
from xrd_ingestor.schema_compiler import (
    NAME_MAX_LENGTH,
    build_crd_parameters,
    build_parameters,
    resolve_schema_properties,
)
from xrd_ingestor.workflow import build_crd_steps, build_xrd_steps, pull_request_url

logger = logging.getLogger("xrd-ingestor")

TEMPLATE_API_VERSION = "scaffolder.backstage.io/v1beta3"
CATALOG_API_VERSION = "backstage.io/v1alpha1"
API_OWNER = "kubernetes-auto-ingested"
API_SYSTEM = "kubernets-auto-ingested"


class _NoAliasDumper(yaml.SafeDumper):
    def ignore_aliases(self, data):
        return True


def dump_yaml(document: Dict[str, Any]) -> str:
    return yaml.dump(document, Dumper=_NoAliasDumper, sort_keys=False, allow_unicode=True)


def validate_entity_name(entity: Dict[str, Any]) -> bool:
    name = entity["metadata"]["name"]
    if len(name) > NAME_MAX_LENGTH:
        logger.warning(
            f"The entity {name} of type {entity['kind']} cant be ingested as its auto generated name "
            f"would be over {NAME_MAX_LENGTH} characters long. Consider shortening the names in the "
            f"relevant sources to allow this resource to be ingested."
        )
        return False
    return True


def _origin_annotations(cluster_name: str) -> Dict[str, str]:
    return {
        "backstage.io/managed-by-location": f"cluster origin: {cluster_name}",
        "backstage.io/managed-by-origin-location": f"cluster origin: {cluster_name}",
    }


def _output_links(publish: PublishPhaseSettings) -> Dict[str, Any]:
    return {
        "links": [
            {
                "title": "Download YAML Manifest",
                "url": "data:application/yaml;charset=utf-8,${{ steps.generateManifest.output.manifest }}",
            },
            {
                "title": "Open Pull Request",
                "if": "${{ parameters.pushToGit }}",
                "url": pull_request_url(publish),
            },
        ]
    }


def _is_well_formed(xrd: Definition, purpose: str) -> bool:
    if not xrd.raw.get("metadata") or not xrd.raw.get("spec"):
        logger.warning(f"Skipping {purpose} for XRD {xrd.metadata.get('name', 'unknown')} due to missing metadata or spec")
        return False
    if not isinstance(xrd.spec.get("versions"), list) or not xrd.spec["versions"]:
        logger.warning(f"Skipping {purpose} for XRD {xrd.name} due to missing or empty versions array")
        return False
    return True


def xrd_to_templates(xrd: Definition, settings: IngestorSettings) -> List[Dict[str, Any]]:
    if not _is_well_formed(xrd, "template generation"):
        return []

    profile = classify_dialect(xrd.raw)
    prefix = settings.annotation_prefix
    publish = settings.xrd_publish
    clusters = xrd.clusters or [xrd.cluster_name]
    title = xrd.claim_names.get("kind") or xrd.names.get("kind") or xrd.name

    annotations = _origin_annotations(xrd.cluster_name)
    if profile.has_claim_fields:
        annotations[f"{prefix}/crossplane-claim"] = "true"
    annotations[f"{prefix}/crossplane-version"] = profile.crossplane_version
    annotations[f"{prefix}/crossplane-scope"] = profile.scope

    templates = []
    for version in xrd.versions:
        templates.append({
            "apiVersion": TEMPLATE_API_VERSION,
            "kind": "Template",
            "metadata": {
                "name": f"{xrd.name}-{version.get('name')}",
                "title": title,
                "description": f"A template to create a {xrd.name} instance",
                "labels": {"forEntity": "system", "source": "crossplane"},
                "tags": ["crossplane"] + [f"cluster:{c}" for c in clusters],
                "annotations": dict(annotations),
            },
            "spec": {
                "type": xrd.name,
                "parameters": build_parameters(
                    version,
                    profile,
                    clusters,
                    xrd.compositions,
                    publish,
                    placeholders=settings.convert_default_values_to_placeholders,
                    default_composition=xrd.default_composition_name,
                ),
                "steps": build_xrd_steps(version, xrd.raw, profile, publish),
                "output": _output_links(publish),
            },
        })
    return [t for t in templates if validate_entity_name(t)]


def xrd_to_apis(xrd: Definition) -> List[Dict[str, Any]]:
    if not _is_well_formed(xrd, "API generation"):
        return []

    profile = classify_dialect(xrd.raw)
    plural = resource_plural(xrd.raw)
    kind = resource_kind(xrd.raw)
    group = xrd.group

    apis = []
    for version in xrd.versions:
        version_name = version.get("name")
        if profile.dialect == Dialect.DIRECT_CLUSTER:
            paths = cluster_list_paths(group, version_name, plural)
        else:
            paths = namespaced_paths(group, version_name, plural, kind)
        document = build_openapi_document(
            title=f"{plural}.{group}",
            version=version_name,
            clusters=xrd.cluster_details,
            paths=paths,
            schema_properties=resolve_schema_properties(version, xrd.generated_crd),
        )
        name = f"{kind.lower()}-{group}--{version_name}"
        apis.append(_api_entity(name, xrd.cluster_name, document))
    return [a for a in apis if validate_entity_name(a)]


def _api_entity(name: str, cluster_name: str, document: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "apiVersion": CATALOG_API_VERSION,
        "kind": "API",
        "metadata": {
            "name": name,
            "title": name,
            "annotations": _origin_annotations(cluster_name),
        },
        "spec": {
            "type": "openapi",
            "lifecycle": "production",
            "owner": API_OWNER,
            "system": API_SYSTEM,
            "definition": dump_yaml(document),
        },
    }


def crd_to_templates(crd: CustomResourceDefinition, settings: IngestorSettings) -> List[Dict[str, Any]]:
    stored = next((v for v in crd.versions if v.get("storage") is True), None)
    if stored is None:
        logger.warning(f"No stored version found for CRD {crd.name}, skipping template generation")
        return []

    publish = settings.crd_publish
    clusters = crd.clusters or [crd.cluster_name]
    namespaced = crd.scope == "Namespaced"
    singular = crd.names.get("singular") or crd.names.get("kind", "").lower()
    template = {
        "apiVersion": TEMPLATE_API_VERSION,
        "kind": "Template",
        "metadata": {
            "name": f"{singular}-{stored.get('name')}",
            "title": crd.names.get("kind"),
            "description": f"A template to create a {crd.names.get('kind')} instance",
            "tags": ["kubernetes-crd"] + [f"cluster:{c}" for c in clusters],
            "labels": {"forEntity": "system", "source": "kubernetes"},
            "annotations": _origin_annotations(crd.cluster_name),
        },
        "spec": {
            "type": singular,
            "parameters": build_crd_parameters(stored, namespaced, clusters, publish),
            "steps": build_crd_steps(stored, crd.raw, publish),
            "output": _output_links(publish),
        },
    }
    return [template] if validate_entity_name(template) else []


def crd_to_apis(crd: CustomResourceDefinition) -> List[Dict[str, Any]]:
    plural = crd.names.get("plural", "")
    kind = crd.names.get("kind", "")
    apis = []
    for version in crd.versions:
        version_name = version.get("name")
        if crd.scope == "Cluster":
            paths = cluster_object_paths(crd.group, version_name, plural, kind)
        else:
            paths = namespaced_paths(crd.group, version_name, plural, kind)
        document = build_openapi_document(
            title=f"{plural}.{crd.group}",
            version=version_name,
            clusters=crd.cluster_details,
            paths=paths,
            schema_properties=resolve_schema_properties(version, None),
        )
        apis.append(_api_entity(f"{kind.lower()}-{crd.group}--{version_name}", crd.cluster_name, document))
    return [a for a in apis if validate_entity_name(a)]
