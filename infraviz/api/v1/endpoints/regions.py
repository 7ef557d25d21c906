from fastapi import APIRouter

from infraviz.api.v1.schemas import RegionInfo, RegionsResponse

router = APIRouter()

AWS_REGIONS = [
    RegionInfo(code="us-east-1", name="US East (N. Virginia)"),
    RegionInfo(code="us-east-2", name="US East (Ohio)"),
    RegionInfo(code="us-west-1", name="US West (N. California)"),
    RegionInfo(code="us-west-2", name="US West (Oregon)"),
    RegionInfo(code="ap-south-1", name="Asia Pacific (Mumbai)"),
    RegionInfo(code="ap-southeast-1", name="Asia Pacific (Singapore)"),
    RegionInfo(code="ap-southeast-2", name="Asia Pacific (Sydney)"),
    RegionInfo(code="ap-northeast-1", name="Asia Pacific (Tokyo)"),
    RegionInfo(code="eu-west-1", name="Europe (Ireland)"),
    RegionInfo(code="eu-central-1", name="Europe (Frankfurt)"),
    RegionInfo(code="ca-central-1", name="Canada (Central)"),
]


@router.get("/regions", response_model=RegionsResponse)
async def list_regions() -> RegionsResponse:
    """Regions offered for scanning."""
    return RegionsResponse(regions=AWS_REGIONS)
