"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - tenancy_denials_total{reason}
    - tenancy_cache_lookups_total{resource, outcome}
    - tenancy_filtered_items_total{resource}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
