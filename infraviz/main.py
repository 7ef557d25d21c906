import datetime
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# .env must be loaded before settings and boto3 read the environment
load_dotenv()

# --- Logging ---
from loguru import logger
from infraviz.core.config import settings

logger.remove()
log_level = settings.LOG_LEVEL.upper() if settings.LOG_LEVEL else "INFO"
logger.add(sys.stderr, level=log_level, format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}")
logger.info(f"Logger configured with level: {log_level}")
# --- End Logging ---

from infraviz.api.v1.api import api_router
from infraviz.api.v1.schemas import HealthResponse

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    debug=settings.DEBUG,
)

# CORS for the browser front end
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        version=settings.VERSION,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("infraviz.main:app", host="0.0.0.0", port=8000, reload=True)
