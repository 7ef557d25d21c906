from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from loguru import logger

from infraviz.api.deps import get_aws_scanner, get_business_flow_builder, get_graph_builder
from infraviz.api.v1.schemas import ScanRequest, ScanResponse
from infraviz.core.config import settings
from infraviz.core.exceptions import ScannerError
from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.aws_scanner import AwsScanner
from infraviz.services.cost_calculator import calculate_costs
from infraviz.services.graph.business_flow import BusinessFlowBuilder
from infraviz.services.graph.schemas import PricingData, ViewMode
from infraviz.services.graph_builder import GraphBuilder
from infraviz.services.pricing_service import AwsPricingService

router = APIRouter()


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = ScanResponse(success=False, error=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# Sync def: boto3 calls block, so FastAPI runs this in its threadpool
@router.post("/scan", response_model=ScanResponse)
def scan_infrastructure(
    scan_request: ScanRequest,
    aws_scanner: AwsScanner = Depends(get_aws_scanner),
    graph_builder: GraphBuilder = Depends(get_graph_builder),
    flow_builder: BusinessFlowBuilder = Depends(get_business_flow_builder),
) -> Any:
    """
    Scan one AWS region and return its infrastructure graph.
    """
    credentials = scan_request.credentials
    if credentials is None:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Missing AWS credentials")
    if not credentials.access_key_id or not credentials.secret_access_key or not credentials.region:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Missing required credential fields: access_key_id, secret_access_key, region",
        )

    region = credentials.region
    try:
        logger.info(f"Starting AWS infrastructure scan for region: {region}")
        aws_provider = AwsProvider(
            region=region,
            access_key_id=credentials.access_key_id,
            secret_access_key=credentials.secret_access_key,
            session_token=credentials.session_token,
        )
        logger.info(f"Provider created for account {aws_provider.account_id}")

        resources = aws_scanner.scan_all_resources(aws_provider, region, services=scan_request.services)
        logger.info(f"Discovered {len(resources)} AWS resources")

        graph = graph_builder.build_graph(resources, region)

        include_pricing = scan_request.include_pricing
        if include_pricing is None:
            include_pricing = settings.ENABLE_LIVE_PRICING
        pricing_data: Optional[Dict[str, PricingData]] = None
        if include_pricing:
            try:
                pricing_data = AwsPricingService(aws_provider, region).price_graph_nodes(graph.nodes)
            except Exception as pricing_e:
                logger.error(f"Live pricing failed, falling back to estimates: {pricing_e}")

        if scan_request.view_mode == ViewMode.INFRASTRUCTURE:
            data = graph
        else:
            data = flow_builder.build(graph, resources)
        data.pricing_data = pricing_data
        data.cost_summary = calculate_costs(data.nodes, pricing_data)

        logger.info(f"Generated {data.view_mode.value} graph with {len(data.nodes)} nodes and {len(data.links)} links")
        return ScanResponse(success=True, data=data)

    except ConnectionError as ce: # Catch specific connection errors from provider
        logger.error(f"AWS Connection Error during provider setup: {ce}")
        return _error_response(status.HTTP_400_BAD_REQUEST, f"AWS Connection Error: {str(ce)}")
    except ScannerError as se:
        logger.error(f"Invalid scan request: {se}")
        return _error_response(status.HTTP_400_BAD_REQUEST, str(se))
    except Exception as e:
        logger.exception(f"Error in scan endpoint: {e}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Unknown error occurred")
