from typing import Annotated, Dict, List, Union

from pydantic import validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from infraviz import __version__


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "AWS Infrastructure Visualizer"
    VERSION: str = __version__

    # CORS
    # NoDecode: comma separated values reach the validator as a plain string
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str) and v.startswith("[") and v.endswith("]"):
            try:
                import json
                return json.loads(v.replace("'", '"'))
            except json.JSONDecodeError:
                raise ValueError("BACKEND_CORS_ORIGINS string is not valid JSON list format")
        elif isinstance(v, list):
            return v
        raise ValueError("BACKEND_CORS_ORIGINS must be a list or a comma-separated string or a JSON string list")

    # Debug settings
    DEBUG: bool = False

    # Logging Level
    LOG_LEVEL: str = "INFO" # Default to INFO, can be overridden by env var

    # Scanning
    DEFAULT_REGION: str = "us-east-1"
    MAX_SCANNER_WORKERS: int = 10

    # Pricing (live Pricing API lookups are opt-in, static estimates otherwise)
    ENABLE_LIVE_PRICING: bool = False
    PRICING_CACHE_TTL_HOURS: int = 24

    # Business flow
    MAX_FLOW_PATHS: int = 50

    # Link strength per relationship type, used as GraphLink.value
    RELATIONSHIP_STRENGTHS: Dict[str, int] = {
        "contains": 3,
        "manages": 3,
        "attached-to": 2,
        "associated-with": 2,
        "runs-on": 2,
        "uses": 1,
        "member-of": 1,
        "routes-to": 1,
        "DEFAULT": 1
    }

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra='ignore'
    )


settings = Settings()
