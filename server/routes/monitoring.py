"""
Monitoring API routes
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from config import get_logger
from server.metrics import get_metrics_text

logger = get_logger(__name__).bind(component="monitoring_api")

router = APIRouter()


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint

    Returns metrics in Prometheus text format for scraping.
    """
    try:
        return Response(content=get_metrics_text(), media_type="text/plain")
    except Exception as e:
        logger.error("prometheus metrics endpoint failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate metrics")
