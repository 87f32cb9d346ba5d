"""
Main FastAPI application bootstrap.
Configures logging and includes routers.
"""
import logging

from fastapi import FastAPI

from cloudprice.api.pricing import router as pricing_router


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Cloud Instance Pricing",
    description="Normalized hourly and monthly prices for cloud instances, volumes and managed databases",
)

# Include routers
app.include_router(pricing_router)


@app.get("/health")
def health() -> dict:
    """Liveness probe."""
    return {"status": "ok"}
