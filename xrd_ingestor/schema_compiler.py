"""Compile an OpenAPI v3 structural schema into software template parameters.

``compile_properties`` is the single recursive walk over schema properties.
The parameter group builders assemble the four form groups a template shows:
resource metadata, resource spec, crossplane settings and creation
(publication) settings. Dialect differences are carried by ``DialectProfile``.
"""

import copy
from typing import Any, Dict, List, Optional

from xrd_ingestor.config import (
    PUBLISH_TARGET_BITBUCKET,
    PUBLISH_TARGET_BITBUCKET_CLOUD,
    PUBLISH_TARGET_GITHUB,
    PUBLISH_TARGET_GITLAB,
    PublishPhaseSettings,
)
from xrd_ingestor.dialect import Dialect, DialectProfile

NAME_PATTERN = "^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
NAME_MAX_LENGTH = 63

SELECTION_RUNTIME = "runtime"
SELECTION_DIRECT_REFERENCE = "direct-reference"
SELECTION_LABEL_SELECTOR = "label-selector"

MANIFEST_LAYOUTS = ["cluster-scoped", "namespace-scoped", "custom"]

MANIFEST_LAYOUT_HELP = (
    "Choose how the manifest should be generated in the repo.\n"
    "* Cluster-scoped - a manifest is created for each selected cluster under the root directory of the clusters name\n"
    "* namespace-scoped - a manifest is created for the resource under the root directory with the namespace name\n"
    "* custom - a manifest is created under the specified base path"
)

PROVIDER_HOSTS: Dict[str, List[str]] = {
    PUBLISH_TARGET_GITHUB: ["github.com"],
    PUBLISH_TARGET_GITLAB: ["gitlab.com"],
    PUBLISH_TARGET_BITBUCKET: ["only-bitbucket-server-is-allowed"],
    PUBLISH_TARGET_BITBUCKET_CLOUD: ["bitbucket.org"],
}


def compile_properties(
    properties: Optional[Dict[str, Any]],
    placeholders: bool = False,
    strip_required: bool = False,
) -> Dict[str, Any]:
    """Rewrite schema properties depth-first into form fields.

    - ``x-kubernetes-preserve-unknown-fields`` without a type becomes a
      multi-line free-text field.
    - An object with properties recurses; a boolean ``enabled`` child gates
      its siblings behind an ``if enabled == true`` dependency.
    - With ``placeholders`` set, a non-boolean typed field's default moves to
      ``ui:placeholder``.
    - With ``strip_required`` set, ``required`` lists are dropped at every
      level (generic CRD forms).
    """
    compiled: Dict[str, Any] = {}
    for key, value in (properties or {}).items():
        if not isinstance(value, dict):
            compiled[key] = value
            continue
        field = dict(value)
        if strip_required:
            field.pop("required", None)

        if field.get("x-kubernetes-preserve-unknown-fields") is True and not field.get("type"):
            field["type"] = "string"
            field["ui:widget"] = "textarea"
            field["ui:options"] = {"rows": 10}
            compiled[key] = field
        elif field.get("type") == "object" and field.get("properties"):
            children = compile_properties(field["properties"], placeholders, strip_required)
            field["properties"] = children
            enabled = field["properties"].get("enabled")
            if isinstance(enabled, dict) and enabled.get("type") == "boolean":
                _gate_on_enabled(field)
            compiled[key] = field
        elif placeholders and "default" in field and field.get("type") and field["type"] != "boolean":
            field["ui:placeholder"] = field.pop("default")
            compiled[key] = field
        else:
            compiled[key] = field
    return compiled


def _gate_on_enabled(field: Dict[str, Any]) -> None:
    siblings = {k: v for k, v in field["properties"].items() if k != "enabled"}
    then: Dict[str, Any] = {"properties": siblings}
    required = field.get("required")
    if required:
        gated = [r for r in required if r in siblings]
        if gated:
            then["required"] = gated
            field["required"] = [r for r in required if r not in siblings]
            if not field["required"]:
                del field["required"]
    field["properties"] = {"enabled": field["properties"]["enabled"]}
    field["dependencies"] = {
        "enabled": {
            "if": {"properties": {"enabled": {"const": True}}},
            "then": then,
        }
    }


def spec_properties(version: Dict[str, Any]) -> Dict[str, Any]:
    schema = (version.get("schema") or {}).get("openAPIV3Schema") or {}
    spec = (schema.get("properties") or {}).get("spec") or {}
    return spec.get("properties") or {}


def _name_field(title: str, description: str) -> Dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "pattern": NAME_PATTERN,
        "maxLength": NAME_MAX_LENGTH,
        "type": "string",
    }


def _owner_field() -> Dict[str, Any]:
    return {
        "title": "Owner",
        "description": "The owner of the resource",
        "type": "string",
        "ui:field": "OwnerPicker",
        "ui:options": {"catalogFilter": {"kind": "Group"}},
    }


def build_metadata_group(profile: DialectProfile) -> Dict[str, Any]:
    group: Dict[str, Any] = {
        "title": "Resource Metadata",
        "required": ["xrName", "owner"],
        "properties": {
            "xrName": _name_field("Name", "The name of the resource"),
        },
        "type": "object",
    }
    if profile.needs_namespace:
        group["required"].append("xrNamespace")
        group["properties"]["xrNamespace"] = _name_field(
            "Namespace", "The namespace in which to create the resource"
        )
    group["properties"]["owner"] = _owner_field()
    return group


def build_spec_group(version: Dict[str, Any], placeholders: bool = False) -> Dict[str, Any]:
    return {
        "title": "Resource Spec",
        "properties": compile_properties(spec_properties(version), placeholders),
        "type": "object",
    }


def _selection_fields(
    compositions: List[str], default_composition: Optional[str]
):
    strategies = [SELECTION_RUNTIME]
    if compositions:
        strategies.append(SELECTION_DIRECT_REFERENCE)
    strategies.append(SELECTION_LABEL_SELECTOR)

    properties = {
        "compositionUpdatePolicy": {
            "title": "Composition Update Policy",
            "enum": ["Automatic", "Manual"],
            "type": "string",
        },
        "compositionSelectionStrategy": {
            "title": "Composition Selection Strategy",
            "description": "How the composition should be selected.",
            "enum": strategies,
            "default": SELECTION_RUNTIME,
            "type": "string",
        },
    }

    one_of: List[Dict[str, Any]] = [
        {"properties": {"compositionSelectionStrategy": {"enum": [SELECTION_RUNTIME]}}},
    ]
    if compositions:
        name_field: Dict[str, Any] = {
            "type": "string",
            "title": "Select A Composition By Name",
            "enum": list(compositions),
        }
        if default_composition:
            name_field["default"] = default_composition
        one_of.append({
            "properties": {
                "compositionSelectionStrategy": {"enum": [SELECTION_DIRECT_REFERENCE]},
                "compositionRef": {
                    "title": "Composition Reference",
                    "properties": {"name": name_field},
                    "required": ["name"],
                    "type": "object",
                },
            },
        })
    one_of.append({
        "properties": {
            "compositionSelectionStrategy": {"enum": [SELECTION_LABEL_SELECTOR]},
            "compositionSelector": {
                "title": "Composition Selector",
                "properties": {
                    "matchLabels": {
                        "title": "Match Labels",
                        "additionalProperties": {"type": "string"},
                        "type": "object",
                    },
                },
                "required": ["matchLabels"],
                "type": "object",
            },
        },
    })
    return properties, {"compositionSelectionStrategy": {"oneOf": one_of}}


def build_crossplane_group(
    profile: DialectProfile,
    compositions: List[str],
    default_composition: Optional[str] = None,
) -> Dict[str, Any]:
    selection, dependencies = _selection_fields(compositions, default_composition)

    if profile.settings_nesting_depth > 0:
        return {
            "title": "Crossplane Settings",
            "properties": {
                "crossplane": {
                    "title": "Crossplane Configuration",
                    "type": "object",
                    "properties": selection,
                    "dependencies": dependencies,
                },
            },
            "type": "object",
        }

    properties: Dict[str, Any] = {
        "writeConnectionSecretToRef": {
            "title": "Crossplane Configuration Details",
            "properties": {
                "name": {"title": "Connection Secret Name", "type": "string"},
            },
            "type": "object",
        },
        "compositeDeletePolicy": {
            "title": "Composite Delete Policy",
            "default": "Background",
            "enum": ["Background", "Foreground"],
            "type": "string",
        },
    }
    properties.update(selection)
    return {
        "title": "Crossplane Settings",
        "properties": properties,
        "dependencies": dependencies,
        "type": "object",
    }


def allowed_hosts(publish: PublishPhaseSettings) -> List[str]:
    if publish.allowed_targets is not None:
        return list(publish.allowed_targets)
    return list(PROVIDER_HOSTS.get(publish.target or "", []))


def build_publish_group(
    clusters: List[str], publish: PublishPhaseSettings, namespaced: bool = False
) -> Dict[str, Any]:
    enabled_properties: Dict[str, Any] = {"pushToGit": {"enum": [True]}}
    if publish.allow_repo_selection:
        enabled_properties["repoUrl"] = {
            "content": {"type": "string"},
            "description": "Name of repository",
            "ui:field": "RepoUrlPicker",
            "ui:options": {"allowedHosts": allowed_hosts(publish)},
        }
        enabled_properties["targetBranch"] = {
            "type": "string",
            "description": "Target Branch for the PR",
            "default": "main",
        }
    enabled_properties["manifestLayout"] = {
        "type": "string",
        "description": "Layout of the manifest",
        "default": "namespace-scoped" if namespaced else "cluster-scoped",
        "ui:help": MANIFEST_LAYOUT_HELP,
        "enum": list(MANIFEST_LAYOUTS),
    }

    layout_dependencies = {
        "manifestLayout": {
            "oneOf": [
                {
                    "properties": {
                        "manifestLayout": {"enum": ["cluster-scoped"]},
                        "clusters": {
                            "title": "Target Clusters",
                            "description": "The target clusters to apply the resource to",
                            "type": "array",
                            "minItems": 1,
                            "items": {"enum": list(clusters), "type": "string"},
                            "uniqueItems": True,
                            "ui:widget": "checkboxes",
                        },
                    },
                    "required": ["clusters"],
                },
                {
                    "properties": {
                        "manifestLayout": {"enum": ["custom"]},
                        "basePath": {
                            "type": "string",
                            "description": "Base path in GitOps repository to push the manifest to",
                        },
                    },
                    "required": ["basePath"],
                },
                {"properties": {"manifestLayout": {"enum": ["namespace-scoped"]}}},
            ],
        },
    }

    return {
        "title": "Creation Settings",
        "properties": {
            "pushToGit": {
                "title": "Push Manifest to GitOps Repository",
                "type": "boolean",
                "default": True,
            },
        },
        "dependencies": {
            "pushToGit": {
                "oneOf": [
                    {"properties": {"pushToGit": {"enum": [False]}}},
                    {
                        "properties": enabled_properties,
                        "dependencies": layout_dependencies,
                    },
                ],
            },
        },
    }


def build_parameters(
    version: Dict[str, Any],
    profile: DialectProfile,
    clusters: List[str],
    compositions: List[str],
    publish: PublishPhaseSettings,
    placeholders: bool = False,
    default_composition: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """The four ordered parameter groups of a definition version's template."""
    return [
        build_metadata_group(profile),
        build_spec_group(version, placeholders),
        build_crossplane_group(profile, compositions, default_composition),
        build_publish_group(clusters, publish, profile.dialect == Dialect.DIRECT_NAMESPACED),
    ]


def build_crd_parameters(
    version: Dict[str, Any],
    namespaced: bool,
    clusters: List[str],
    publish: PublishPhaseSettings,
) -> List[Dict[str, Any]]:
    metadata: Dict[str, Any] = {
        "title": "Resource Metadata",
        "required": ["name"],
        "properties": {"name": _name_field("Name", "The name of the resource")},
        "type": "object",
    }
    if namespaced:
        metadata["properties"]["namespace"] = _name_field(
            "Namespace", "The namespace in which to create the resource"
        )
    metadata["properties"]["owner"] = _owner_field()

    spec_group = {
        "title": "Resource Spec",
        "properties": compile_properties(spec_properties(version), strip_required=True),
        "type": "object",
    }
    return [metadata, spec_group, build_publish_group(clusters, publish)]


def resolve_schema_properties(
    version: Dict[str, Any], generated_crd: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    """Top-level schema properties, preferring the generated CRD's matching version."""
    if generated_crd:
        crd_versions = (generated_crd.get("spec") or {}).get("versions") or []
        match = (
            next((v for v in crd_versions if v.get("name") == version.get("name")), None)
            or next((v for v in crd_versions if v.get("storage")), None)
            or (crd_versions[0] if crd_versions else None)
        )
        if match:
            props = ((match.get("schema") or {}).get("openAPIV3Schema") or {}).get("properties")
            if props:
                return copy.deepcopy(props)
    schema = (version.get("schema") or {}).get("openAPIV3Schema") or {}
    return copy.deepcopy(schema.get("properties") or {})
