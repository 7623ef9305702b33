"""Entity provider: one refresh pass ending in a full-replacement catalog mutation."""

import logging
from typing import Any, Dict, List, Optional, Protocol

from xrd_ingestor.aggregator import AggregationResult, DefinitionAggregator
from xrd_ingestor.config import IngestorSettings
from xrd_ingestor.entities import crd_to_apis, crd_to_templates, xrd_to_apis, xrd_to_templates

logger = logging.getLogger("xrd-ingestor")


class EntityProviderConnection(Protocol):
    def apply_mutation(self, mutation: Dict[str, Any]) -> None:
        ...


class InMemoryCatalogConnection:
    """Keeps the most recent full entity set; each mutation replaces the last."""

    def __init__(self):
        self.entities: List[Dict[str, Any]] = []
        self.mutations = 0

    def apply_mutation(self, mutation: Dict[str, Any]) -> None:
        if mutation.get("type") != "full":
            raise ValueError(f"Unsupported mutation type: {mutation.get('type')}")
        self.entities = [item["entity"] for item in mutation.get("entities", [])]
        self.mutations += 1


class XRDTemplateEntityProvider:
    def __init__(
        self,
        settings: IngestorSettings,
        aggregator: Optional[DefinitionAggregator] = None,
    ):
        self.settings = settings
        self.aggregator = aggregator or DefinitionAggregator(settings)
        self.connection: Optional[EntityProviderConnection] = None
        self.last_result: Optional[AggregationResult] = None

    def get_provider_name(self) -> str:
        return "XRDTemplateEntityProvider"

    def connect(self, connection: EntityProviderConnection) -> None:
        self.connection = connection

    def build_entities(self, result: AggregationResult) -> List[Dict[str, Any]]:
        entities: List[Dict[str, Any]] = []
        if self.settings.xrds_enabled:
            for xrd in result.definitions:
                entities.extend(xrd_to_templates(xrd, self.settings))
            for xrd in result.definitions:
                entities.extend(xrd_to_apis(xrd))
        for crd in result.crds:
            entities.extend(crd_to_templates(crd, self.settings))
        for crd in result.crds:
            entities.extend(crd_to_apis(crd))
        return entities

    def _apply(self, entities: List[Dict[str, Any]]) -> None:
        location_key = f"provider:{self.get_provider_name()}"
        self.connection.apply_mutation({
            "type": "full",
            "entities": [{"entity": e, "locationKey": location_key} for e in entities],
        })

    def run(self) -> List[Dict[str, Any]]:
        """Run one refresh pass and publish its complete entity set.

        Any failure publishes an empty set so stale entities do not linger.
        """
        if self.connection is None:
            raise RuntimeError("Connection not initialized")

        if not self.settings.crossplane_enabled:
            self._apply([])
            return []

        try:
            result = self.aggregator.aggregate()
            entities = self.build_entities(result)
        except Exception as e:
            logger.error(f"Failed to run {self.get_provider_name()}: {e}")
            self.last_result = None
            self._apply([])
            return []

        self.last_result = result
        self._apply(entities)
        logger.info(f"{self.get_provider_name()} published {len(entities)} entities")
        return entities
