from typing import Dict, List, Optional

from loguru import logger

from infraviz.services.graph.schemas import CostBreakdownItem, CostSummary, GraphNode, PricingData, ResourceType

HOURS_PER_MONTH = 24 * 30

# Monthly estimates in USD, used for nodes without live pricing
MONTHLY_COST_ESTIMATES = {
    ResourceType.EC2_INSTANCE: 50.0,
    ResourceType.EKS_CLUSTER: 73.0, # control plane
    ResourceType.EKS_NODEGROUP: 25.0,
    ResourceType.EKS_FARGATE_PROFILE: 15.0,
    ResourceType.ELASTIC_LOAD_BALANCER: 25.0,
    ResourceType.NAT_GATEWAY: 45.0,
    ResourceType.S3_BUCKET: 5.0,
    ResourceType.RDS_INSTANCE: 45.0, # db.t3.micro
    ResourceType.EBS_VOLUME: 10.0,
    ResourceType.LAMBDA_FUNCTION: 8.0,
}

COST_CATEGORIES = {
    ResourceType.EC2_INSTANCE: "compute",
    ResourceType.EKS_CLUSTER: "containers",
    ResourceType.EKS_NODEGROUP: "containers",
    ResourceType.EKS_FARGATE_PROFILE: "containers",
    ResourceType.ELASTIC_LOAD_BALANCER: "networking",
    ResourceType.NAT_GATEWAY: "networking",
    ResourceType.INTERNET_GATEWAY: "networking",
    ResourceType.S3_BUCKET: "storage",
    ResourceType.EBS_VOLUME: "storage",
    ResourceType.RDS_INSTANCE: "database",
    ResourceType.LAMBDA_FUNCTION: "app_services",
}

CATEGORY_LABELS = {
    "compute": "Compute",
    "containers": "Containers",
    "networking": "Networking",
    "storage": "Storage",
    "database": "Database",
    "app_services": "App Services",
}


def monthly_cost(node: GraphNode, pricing: Optional[PricingData] = None) -> float:
    if pricing is not None:
        if pricing.price_per_month:
            return pricing.price_per_month
        return (pricing.price_per_hour or 0.0) * HOURS_PER_MONTH
    return MONTHLY_COST_ESTIMATES.get(node.type, 0.0)


def calculate_costs(nodes: List[GraphNode], pricing_data: Optional[Dict[str, PricingData]] = None) -> CostSummary:
    """Roll monthly node costs up into spending categories."""
    pricing_data = pricing_data or {}
    costs = {category: 0.0 for category in CATEGORY_LABELS}
    live_priced = 0

    for node in nodes:
        category = COST_CATEGORIES.get(node.type)
        if category is None:
            continue
        pricing = pricing_data.get(node.id)
        if pricing is not None:
            live_priced += 1
        costs[category] += monthly_cost(node, pricing)

    total = sum(costs.values())
    breakdown = [
        CostBreakdownItem(
            category=label,
            amount=round(costs[category], 2),
            percentage=round(costs[category] / total * 100, 2) if total else 0.0,
        )
        for category, label in CATEGORY_LABELS.items()
        if costs[category] > 0
    ]

    logger.debug(f"Estimated monthly cost ${total:.2f} across {len(nodes)} nodes ({live_priced} live priced).")
    return CostSummary(
        **{category: round(amount, 2) for category, amount in costs.items()},
        total=round(total, 2),
        breakdown=breakdown,
        live_priced_resources=live_priced,
    )
