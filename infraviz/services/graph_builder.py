import datetime
from typing import Dict, List, Optional

from loguru import logger

from infraviz.core.config import settings
from infraviz.services.graph.node_props_preparer import prepare_node_metadata
from infraviz.services.graph.relationship_creator import discover_relationships
from infraviz.services.graph.schemas import (
    AwsResource,
    GraphData,
    GraphLink,
    GraphMetadata,
    GraphNode,
    InfrastructureLayer,
    RelationshipType,
    ResourceType,
)
from infraviz.services.graph.utils import determine_group, determine_layer


class GraphBuilder:
    """Builds the infrastructure graph from scanned AWS resources."""

    def __init__(self, relationship_strengths: Optional[Dict[str, int]] = None):
        self.relationship_strengths = relationship_strengths or settings.RELATIONSHIP_STRENGTHS

    def build_graph(self, resources: List[AwsResource], region: str) -> GraphData:
        """
        Project resources to nodes and inferred relationships to links.

        Args:
            resources: Flat output of AwsScanner.scan_all_resources
            region: The scanned region, reported in the graph metadata

        Returns:
            GraphData with zero-filled resource and layer counts
        """
        logger.info(f"Building graph for {len(resources)} resources in {region}...")

        unique_resources: List[AwsResource] = []
        seen_ids = set()
        for resource in resources:
            if resource.id in seen_ids:
                logger.warning(f"Duplicate resource id '{resource.id}' ({resource.type.value}), keeping the first occurrence.")
                continue
            seen_ids.add(resource.id)
            unique_resources.append(resource)

        nodes = [self._create_node(r) for r in unique_resources]
        links = [
            GraphLink(
                source=rel.source_id,
                target=rel.target_id,
                type=rel.type,
                value=self.get_relationship_strength(rel.type),
                metadata=rel.metadata,
            )
            for rel in discover_relationships(unique_resources)
        ]

        metadata = GraphMetadata(
            scan_timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            region=region,
            total_resources=len(unique_resources),
            resource_counts=self.calculate_resource_counts(unique_resources),
            layer_counts=self.calculate_layer_counts(nodes),
        )
        logger.info(f"Graph build finished: {len(nodes)} nodes, {len(links)} links.")
        return GraphData(nodes=nodes, links=links, metadata=metadata)

    def _create_node(self, resource: AwsResource) -> GraphNode:
        return GraphNode(
            id=resource.id,
            name=resource.name,
            type=resource.type,
            group=determine_group(resource),
            layer=determine_layer(resource.type),
            metadata=prepare_node_metadata(resource),
        )

    def get_relationship_strength(self, rel_type: RelationshipType) -> int:
        return self.relationship_strengths.get(rel_type.value, self.relationship_strengths.get("DEFAULT", 1))

    @staticmethod
    def calculate_resource_counts(resources: List[AwsResource]) -> Dict[str, int]:
        counts = {t.value: 0 for t in ResourceType}
        for resource in resources:
            counts[resource.type.value] += 1
        return counts

    @staticmethod
    def calculate_layer_counts(nodes: List[GraphNode]) -> Dict[int, int]:
        counts = {int(layer): 0 for layer in InfrastructureLayer}
        for node in nodes:
            counts[node.layer] = counts.get(node.layer, 0) + 1
        return counts
