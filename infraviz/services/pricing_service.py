import concurrent.futures
import datetime
import json
import threading
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from infraviz.core.config import settings
from infraviz.core.exceptions import PricingError
from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import GraphNode, PricingData, ResourceType

# The Pricing API is only served from these regions
PRICING_API_REGIONS = ["us-east-1", "eu-central-1", "ap-south-1"]

HOURS_PER_MONTH = 24 * 30
ESTIMATED_STORAGE_GB = 50

REGION_TO_LOCATION = {
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "eu-west-1": "Europe (Ireland)",
    "eu-central-1": "Europe (Frankfurt)",
    "ap-south-1": "Asia Pacific (Mumbai)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
    "ap-southeast-2": "Asia Pacific (Sydney)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
    "ca-central-1": "Canada (Central)",
    "sa-east-1": "South America (Sao Paulo)",
}

# Used when the Pricing API call for the service fails
FALLBACK_PRICING = {
    ResourceType.EKS_CLUSTER: PricingData(price_per_hour=0.10, price_per_month=73.0, unit="Hrs"),
    ResourceType.ELASTIC_LOAD_BALANCER: PricingData(price_per_hour=0.0225, price_per_month=16.425, unit="Hrs"),
    ResourceType.NAT_GATEWAY: PricingData(price_per_hour=0.045, price_per_month=32.85, unit="Hrs"),
    ResourceType.S3_BUCKET: PricingData(price_per_gb=0.023, price_per_month=5.0, unit="GB-Mo"),
    ResourceType.EBS_VOLUME: PricingData(price_per_gb=0.10, price_per_month=8.0, unit="GB-Mo"),
}

PRICED_TYPES = {
    ResourceType.EC2_INSTANCE,
    ResourceType.EKS_CLUSTER,
    ResourceType.RDS_INSTANCE,
    ResourceType.ELASTIC_LOAD_BALANCER,
    ResourceType.NAT_GATEWAY,
    ResourceType.S3_BUCKET,
    ResourceType.EBS_VOLUME,
}

# Node metadata field that carries the instance size, per priced type
INSTANCE_TYPE_FIELDS = {
    ResourceType.EC2_INSTANCE: "instance_type",
    ResourceType.RDS_INSTANCE: "instance_class",
}

# Prices do not depend on the account, so the cache is shared by every scan in the process
_pricing_cache: Dict[str, Tuple[PricingData, datetime.datetime]] = {}
_pricing_cache_lock = threading.Lock()


def map_region_to_location(region: str) -> str:
    """Pricing API 'location' attribute for a region code; unknown regions pass through."""
    return REGION_TO_LOCATION.get(region, region)


def pricing_key(resource_type: ResourceType, region: str, instance_type: Optional[str] = None) -> str:
    return f"{resource_type.value}-{region}-{instance_type or 'default'}"


def extract_pricing(price_list: Optional[List[str]]) -> Optional[PricingData]:
    """
    Reads the first OnDemand price dimension with a positive USD price.

    GB-denominated prices are reported per GB with a 50 GB monthly estimate,
    everything else as an hourly price over a 30 day month.

    Raises:
        PricingError: If the first price list entry is not a valid product document
    """
    if not price_list:
        return None

    try:
        product = json.loads(price_list[0]) if isinstance(price_list[0], str) else price_list[0]
        terms = (product.get("terms") or {}).get("OnDemand") or {}
    except (ValueError, AttributeError) as e:
        raise PricingError(f"Could not parse price list entry: {e}") from e

    for term in terms.values():
        for dimension in (term.get("priceDimensions") or {}).values():
            try:
                price_per_unit = float((dimension.get("pricePerUnit") or {}).get("USD", "0"))
            except (TypeError, ValueError):
                continue
            if price_per_unit <= 0:
                continue

            unit = dimension.get("unit") or "Hrs"
            if "GB" in unit:
                return PricingData(
                    price_per_gb=price_per_unit,
                    price_per_month=price_per_unit * ESTIMATED_STORAGE_GB,
                    unit=unit,
                )
            return PricingData(
                price_per_hour=price_per_unit,
                price_per_month=price_per_unit * HOURS_PER_MONTH,
                unit=unit,
            )
    return None


class AwsPricingService:
    """Live On-Demand prices from the AWS Pricing API, cached per lookup key across scans."""

    def __init__(self, aws_provider: AwsProvider, region: str = "us-east-1", cache_ttl_hours: Optional[int] = None):
        self.region = region
        pricing_region = region if region in PRICING_API_REGIONS else "us-east-1"
        self.pricing_client = aws_provider.get_client("pricing", region=pricing_region)
        self.cache_ttl = datetime.timedelta(hours=cache_ttl_hours or settings.PRICING_CACHE_TTL_HOURS)
        self._cache = _pricing_cache
        self._cache_lock = _pricing_cache_lock

    def get_resource_pricing(self, resource_type: ResourceType, region: str, instance_type: Optional[str] = None) -> Optional[PricingData]:
        """
        Price one resource type in a region.

        Returns:
            PricingData, or None for types without a price or when no price could be determined
        """
        if resource_type not in PRICED_TYPES:
            return None

        cache_key = pricing_key(resource_type, region, instance_type)
        now = datetime.datetime.now(datetime.timezone.utc)
        with self._cache_lock:
            cached = self._cache.get(cache_key)
            if cached and cached[1] > now:
                return cached[0]

        try:
            pricing = self._fetch_pricing(resource_type, region, instance_type)
        except Exception as e:
            logger.error(f"Error fetching pricing for {resource_type.value}: {e}")
            return None

        if pricing:
            with self._cache_lock:
                self._cache[cache_key] = (pricing, now + self.cache_ttl)
        return pricing

    def _fetch_pricing(self, resource_type: ResourceType, region: str, instance_type: Optional[str]) -> Optional[PricingData]:
        location = map_region_to_location(region)
        usage_prefix = region.upper().replace("-", "")

        if resource_type == ResourceType.EC2_INSTANCE:
            service_code, filters = "AmazonEC2", {
                "instanceType": instance_type or "t3.medium",
                "location": location,
                "tenancy": "Shared",
                "operatingSystem": "Linux",
                "preInstalledSw": "NA",
            }
        elif resource_type == ResourceType.EKS_CLUSTER:
            service_code, filters = "AmazonEKS", {"location": location}
        elif resource_type == ResourceType.RDS_INSTANCE:
            service_code, filters = "AmazonRDS", {
                "instanceType": instance_type or "db.t3.micro",
                "location": location,
                "databaseEngine": "PostgreSQL",
            }
        elif resource_type == ResourceType.ELASTIC_LOAD_BALANCER:
            service_code, filters = "AWSELB", {"location": location, "usagetype": f"{usage_prefix}-LoadBalancerUsage"}
        elif resource_type == ResourceType.NAT_GATEWAY:
            service_code, filters = "AmazonVPC", {"location": location, "usagetype": f"{usage_prefix}-NatGateway-Hours"}
        elif resource_type == ResourceType.S3_BUCKET:
            service_code, filters = "AmazonS3", {"location": location, "storageClass": "General Purpose"}
        else:
            service_code, filters = "AmazonEC2", {"location": location, "productFamily": "Storage", "volumeType": "General Purpose"}

        try:
            response = self.pricing_client.get_products(
                ServiceCode=service_code,
                Filters=[{"Type": "TERM_MATCH", "Field": field, "Value": value} for field, value in filters.items()],
                MaxResults=1,
            )
            return extract_pricing(response.get("PriceList"))
        except Exception as e:
            fallback = FALLBACK_PRICING.get(resource_type)
            if fallback is None:
                raise
            logger.warning(f"Pricing API lookup for {resource_type.value} failed ({e}); using fallback pricing.")
            return fallback.model_copy()

    def get_bulk_resource_pricing(self, items: List[Dict[str, Any]]) -> Dict[str, PricingData]:
        """
        Price many (type, region, instance_type) combinations in parallel.

        Args:
            items: Dicts with 'type', 'region' and optional 'instance_type'

        Returns:
            PricingData keyed by '<type>-<region>-<instance_type|default>'; unpriced items are absent
        """
        unique: Dict[str, Dict[str, Any]] = {}
        for item in items:
            unique.setdefault(pricing_key(item["type"], item["region"], item.get("instance_type")), item)

        results: Dict[str, PricingData] = {}
        if not unique:
            return results

        with concurrent.futures.ThreadPoolExecutor(max_workers=settings.MAX_SCANNER_WORKERS) as executor:
            futures_map = {
                executor.submit(self.get_resource_pricing, item["type"], item["region"], item.get("instance_type")): key
                for key, item in unique.items()
            }
            for future in concurrent.futures.as_completed(futures_map):
                key = futures_map[future]
                try:
                    pricing = future.result()
                except Exception as exc:
                    logger.error(f"Pricing task failed for {key}: {exc}")
                    continue
                if pricing:
                    results[key] = pricing

        logger.debug(f"Resolved pricing for {len(results)}/{len(unique)} pricing keys.")
        return results

    def price_graph_nodes(self, nodes: List[GraphNode]) -> Dict[str, PricingData]:
        """Live pricing per node id for every priced node in the graph."""
        node_keys: Dict[str, str] = {}
        items = []
        for node in nodes:
            if node.type not in PRICED_TYPES:
                continue
            region = node.metadata.get("region") or self.region
            if region == "global":
                region = self.region
            field = INSTANCE_TYPE_FIELDS.get(node.type)
            instance_type = node.metadata.get(field) if field else None
            item = {"type": node.type, "region": region, "instance_type": instance_type}
            items.append(item)
            node_keys[node.id] = pricing_key(node.type, region, instance_type)

        bulk = self.get_bulk_resource_pricing(items)
        return {node_id: bulk[key] for node_id, key in node_keys.items() if key in bulk}
