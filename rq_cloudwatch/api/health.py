"""Health check API endpoints"""
from fastapi import APIRouter, Request

from rq_cloudwatch import __version__
from rq_cloudwatch.schemas import HealthResponse, PublisherStatus

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint.

    Reports "degraded" whenever the publisher loop is not running, which
    includes a loop that died on a fatal transport error.
    """
    publisher = request.app.state.publisher
    status = PublisherStatus.from_publisher(publisher)

    return HealthResponse(
        status="ok" if status.running else "degraded",
        version=__version__,
        publisher=status
    )
