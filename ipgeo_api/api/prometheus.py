"""
Prometheus metrics endpoint
"""

import logging
from fastapi import APIRouter, Response
from fastapi.responses import PlainTextResponse
from ..services.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["Metrics"])

logger = logging.getLogger("ipgeo")

@router.get("/metrics", summary="Prometheus metrics")
async def get_prometheus_metrics() -> Response:
    """
    Get metrics in Prometheus exposition format.

    Returns metrics in plain text format suitable for Prometheus scraping.
    """
    try:
        metrics_data = prometheus_metrics.get_metrics()
    except Exception as e:
        logger.error(f"Failed to get metrics: {e}")
        return PlainTextResponse(
            content="# Metrics temporarily unavailable\n",
            media_type="text/plain"
        )
    return Response(
        content=metrics_data,
        media_type=prometheus_metrics.get_content_type()
    )
