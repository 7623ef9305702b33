"""OpenAPI 3.0 documents describing the Kubernetes API of ingested resource kinds."""

from typing import Any, Dict, List

from xrd_ingestor.models import ClusterDetails

TAG_CLUSTER = "Cluster Scoped Operations"
TAG_NAMESPACE = "Namespace Scoped Operations"
TAG_OBJECT = "Specific Object Scoped Operations"

TAGS = [
    {"name": TAG_CLUSTER, "description": "Operations on the cluster level"},
    {"name": TAG_NAMESPACE, "description": "Operations on the namespace level"},
    {"name": TAG_OBJECT, "description": "Operations on a specific resource"},
]

RESOURCE_REF = {"$ref": "#/components/schemas/Resource"}


def _path_param(name: str) -> Dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}


def _list_response(description: str) -> Dict[str, Any]:
    return {
        "200": {
            "description": description,
            "content": {
                "application/json": {
                    "schema": {"type": "array", "items": dict(RESOURCE_REF)},
                },
            },
        },
    }


def _request_body() -> Dict[str, Any]:
    return {
        "required": True,
        "content": {"application/json": {"schema": {"type": "object", **RESOURCE_REF}}},
    }


def _list_all(plural: str) -> Dict[str, Any]:
    return {
        "get": {
            "tags": [TAG_CLUSTER],
            "summary": f"List all {plural} in all namespaces",
            "operationId": f"list{plural}AllNamespaces",
            "responses": _list_response(f"List of {plural} in all namespaces"),
        },
    }


def _create(tag: str, params: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "tags": [tag],
        "summary": "Create a resource",
        "operationId": "createResource",
        "parameters": params,
        "requestBody": _request_body(),
        "responses": {"201": {"description": "Resource created"}},
    }


def _object_operations(kind: str, params: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "get": {
            "tags": [TAG_OBJECT],
            "summary": f"Get a {kind}",
            "operationId": f"get{kind}",
            "parameters": params,
            "responses": {
                "200": {
                    "description": "Resource details",
                    "content": {"application/json": {"schema": {"type": "object", **RESOURCE_REF}}},
                },
            },
        },
        "put": {
            "tags": [TAG_OBJECT],
            "summary": "Update a resource",
            "operationId": "updateResource",
            "parameters": params,
            "requestBody": _request_body(),
            "responses": {"200": {"description": "Resource updated"}},
        },
        "delete": {
            "tags": [TAG_OBJECT],
            "summary": "Delete a resource",
            "operationId": "deleteResource",
            "parameters": params,
            "responses": {"200": {"description": "Resource deleted"}},
        },
    }


def namespaced_paths(group: str, version: str, plural: str, kind: str) -> Dict[str, Any]:
    base = f"/apis/{group}/{version}"
    ns_params = [_path_param("namespace")]
    obj_params = [_path_param("namespace"), _path_param("name")]
    return {
        f"{base}/{plural}": _list_all(plural),
        f"{base}/namespaces/{{namespace}}/{plural}": {
            "get": {
                "tags": [TAG_NAMESPACE],
                "summary": f"List all {plural} in a namespace",
                "operationId": f"list{plural}",
                "parameters": ns_params,
                "responses": _list_response(f"List of {plural}"),
            },
            "post": _create(TAG_NAMESPACE, [_path_param("namespace")]),
        },
        f"{base}/namespaces/{{namespace}}/{plural}/{{name}}": _object_operations(kind, obj_params),
    }


def cluster_list_paths(group: str, version: str, plural: str) -> Dict[str, Any]:
    return {f"/apis/{group}/{version}/{plural}": _list_all(plural)}


def cluster_object_paths(group: str, version: str, plural: str, kind: str) -> Dict[str, Any]:
    """Cluster-scoped CRD paths: flat list and create, then per-name operations."""
    base = f"/apis/{group}/{version}/{plural}"
    list_create = _list_all(plural)
    list_create["post"] = _create(TAG_CLUSTER, [])
    return {
        base: list_create,
        f"{base}/{{name}}": _object_operations(kind, [_path_param("name")]),
    }


def build_openapi_document(
    title: str,
    version: str,
    clusters: List[ClusterDetails],
    paths: Dict[str, Any],
    schema_properties: Dict[str, Any],
) -> Dict[str, Any]:
    return {
        "openapi": "3.0.0",
        "info": {"title": title, "version": version},
        "servers": [c.as_server() for c in clusters],
        "tags": [dict(t) for t in TAGS],
        "paths": paths,
        "components": {
            "schemas": {
                "Resource": {"type": "object", "properties": schema_properties},
            },
            "securitySchemes": {
                "bearerHttpAuthentication": {
                    "description": "Bearer token using a JWT",
                    "type": "http",
                    "scheme": "bearer",
                    "bearerFormat": "JWT",
                },
            },
        },
        "security": [{"bearerHttpAuthentication": []}],
    }
