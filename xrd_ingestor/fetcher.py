"""Per-cluster listing of custom objects by group/version/plural."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from xrd_ingestor.config import IngestorSettings
from xrd_ingestor.k8s_config import list_kubeconfig_clusters
from xrd_ingestor.models import ClusterDetails

logger = logging.getLogger("xrd-ingestor")


@dataclass(frozen=True)
class ObjectToFetch:
    group: str
    api_version: str
    plural: str


XRD_V1 = ObjectToFetch("apiextensions.crossplane.io", "v1", "compositeresourcedefinitions")
XRD_V2 = ObjectToFetch("apiextensions.crossplane.io", "v2", "compositeresourcedefinitions")
COMPOSITIONS = ObjectToFetch("apiextensions.crossplane.io", "v1", "compositions")
CRDS = ObjectToFetch("apiextensions.k8s.io", "v1", "customresourcedefinitions")


@dataclass
class FetchResponse:
    object_type: ObjectToFetch
    resources: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


class ClusterSupplier:
    """Explicitly configured clusters, else every kubeconfig context."""

    def __init__(self, settings: IngestorSettings):
        self.settings = settings

    def get_clusters(self) -> List[ClusterDetails]:
        if self.settings.clusters:
            return [
                ClusterDetails(
                    name=c.name,
                    url=c.url,
                    auth_provider=c.auth_provider,
                    service_account_token=c.service_account_token,
                    skip_tls_verify=c.skip_tls_verify,
                    ca_data=c.ca_data,
                )
                for c in self.settings.clusters
            ]
        return list_kubeconfig_clusters()


class KubernetesResourceFetcher:
    def fetch_objects(
        self,
        cluster: ClusterDetails,
        credential: Any,
        objects_to_fetch: Iterable[ObjectToFetch],
        label_selector: str = "",
    ) -> List[FetchResponse]:
        """List every requested object type cluster-wide.

        A 404 for one type (API group not installed) is reported on its
        envelope; any other API error propagates to the caller.
        """
        api = client.CustomObjectsApi(credential)
        responses: List[FetchResponse] = []
        for obj in objects_to_fetch:
            kwargs: Dict[str, Any] = {}
            if label_selector:
                kwargs["label_selector"] = label_selector
            try:
                raw = api.list_cluster_custom_object(
                    group=obj.group, version=obj.api_version, plural=obj.plural, **kwargs,
                )
            except ApiException as e:
                if e.status == 404:
                    logger.debug(
                        f"{obj.plural}.{obj.group}/{obj.api_version} not served by cluster {cluster.name}"
                    )
                    responses.append(FetchResponse(obj, [], error="NOT_FOUND"))
                    continue
                raise
            responses.append(FetchResponse(obj, list(raw.get("items", []))))
        return responses
