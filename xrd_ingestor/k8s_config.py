"""Kubernetes client construction per kubeconfig context or explicit cluster."""

import hashlib
import logging
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from kubernetes import client, config

from xrd_ingestor.models import ClusterDetails

logger = logging.getLogger("xrd-ingestor")


class CredentialError(Exception):
    """No usable credential could be produced for a cluster."""


def get_api_client(context: str = "") -> client.ApiClient:
    return config.new_client_from_config(context=context or None)


def list_kubeconfig_clusters() -> List[ClusterDetails]:
    """One ClusterDetails per kubeconfig context, named after the context."""
    contexts, _ = config.list_kube_config_contexts()
    clusters: List[ClusterDetails] = []
    for ctx in contexts or []:
        name = ctx["name"]
        try:
            host = get_api_client(name).configuration.host
        except Exception as e:
            logger.error(f"Error loading kubeconfig context {name}: {e}")
            continue
        clusters.append(ClusterDetails(name=name, url=host, auth_provider="kubeconfig"))
    return clusters


def kubeconfig_credential(cluster: ClusterDetails) -> Any:
    try:
        return get_api_client(cluster.name)
    except Exception as e:
        raise CredentialError(
            f"kubeconfig context '{cluster.name}' could not be loaded: {e}"
        ) from e


def ca_cert_path(cluster_name: str, ca_data: str, directory: Optional[Path] = None) -> str:
    """Write a cluster CA bundle once and return its path.

    The file name is derived from the cluster name and the bundle contents, so
    repeated refreshes reuse one file and a rotated CA gets a new one.
    """
    digest = hashlib.sha256(f"{cluster_name}\0{ca_data}".encode("utf-8")).hexdigest()[:16]
    path = Path(directory or tempfile.gettempdir()) / f"xrd-ingestor-ca-{digest}.crt"
    if not path.exists():
        path.write_text(ca_data, encoding="utf-8")
    return str(path)


def service_account_credential(cluster: ClusterDetails) -> Any:
    if not cluster.service_account_token:
        raise CredentialError(
            f"cluster '{cluster.name}' uses serviceAccount auth but has no token configured"
        )
    configuration = client.Configuration()
    configuration.host = cluster.url
    configuration.api_key = {"authorization": cluster.service_account_token}
    configuration.api_key_prefix = {"authorization": "Bearer"}
    configuration.verify_ssl = not cluster.skip_tls_verify
    if cluster.ca_data:
        configuration.ssl_ca_cert = ca_cert_path(cluster.name, cluster.ca_data)
    return client.ApiClient(configuration)


def default_auth_strategies():
    return {
        "kubeconfig": kubeconfig_credential,
        "serviceAccount": service_account_credential,
    }
