"""
Metrics Endpoint

GET /metrics - Prometheus metrics endpoint
"""

from fastapi import APIRouter, Response

from bgremoval.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes:
    - removal_latency_seconds (per backend)
    - removal_requests_total
    - remote_api_calls_total
    - staged_files_active
    - http_requests_total
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
