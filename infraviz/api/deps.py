from infraviz.services.aws_scanner import AwsScanner
from infraviz.services.graph.business_flow import BusinessFlowBuilder
from infraviz.services.graph_builder import GraphBuilder


# Service dependencies
def get_aws_scanner() -> AwsScanner:
    """Provide AwsScanner instance."""
    return AwsScanner()


def get_graph_builder() -> GraphBuilder:
    """Provide GraphBuilder instance."""
    return GraphBuilder()


def get_business_flow_builder() -> BusinessFlowBuilder:
    return BusinessFlowBuilder()
