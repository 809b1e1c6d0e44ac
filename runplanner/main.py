import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from runplanner.config import settings
from runplanner.models.request import RouteGenerationRequest
from runplanner.models.response import RouteResponse
from runplanner.services.map import OpenElevationService, OSRMRouterService, OverpassFeatureService
from runplanner.services.route_service import RouteService

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One connection pool for all outbound map calls
    async with httpx.AsyncClient() as client:
        app.state.route_service = RouteService(
            router=OSRMRouterService(client=client),
            feature_service=OverpassFeatureService(client=client),
            elevation_service=OpenElevationService(client=client),
        )
        logger.info("Run planner API v%s started", settings.api_version)
        yield
    logger.info("Run planner API shutdown")


app = FastAPI(
    title="Run Planner API",
    description="Running route generation on open map services",
    version=settings.api_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_route_service(request: Request) -> RouteService:
    return request.app.state.route_service


@app.post("/api/v1/routes/generate", response_model=RouteResponse)
async def generate_routes(
    criteria: RouteGenerationRequest,
    route_service: RouteService = Depends(get_route_service),
):
    """Generate ranked running routes for a start point, distance and style"""
    try:
        return await route_service.generate(criteria)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Route generation failed")
        raise HTTPException(
            status_code=500, detail=f"Route generation failed: {str(e)}"
        )


@app.get("/health")
async def health_check():
    """Health check"""
    return {"status": "healthy", "version": settings.api_version}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
