"""Standalone publisher service - FastAPI app

Runs the CloudWatch publisher next to (not inside) the RQ workers and
exposes its health and Prometheus self-metrics.
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rq_cloudwatch import __version__
from rq_cloudwatch.activation import enable
from rq_cloudwatch.api import health
from rq_cloudwatch.config import PublisherConfig
from rq_cloudwatch.host import Host

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(
    host: Optional[Host] = None,
    client: Optional[Any] = None,
    config: Optional[PublisherConfig] = None
) -> FastAPI:
    """Build the service app.

    Args:
        host: Host adapter (RQHost from REDIS_URL if not provided)
        client: CloudWatch client wrapper (built from AWS env if not provided)
        config: Publisher configuration (read from env if not provided)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting rq-cloudwatch v{__version__}")

        app_host = host
        if app_host is None:
            from rq_cloudwatch.rq_host import RQHost
            app_host = RQHost.from_env()

        publisher = enable(
            client=client,
            host=app_host,
            config=config or PublisherConfig.from_env(),
        )
        app.state.publisher = publisher
        app_host.fire("startup")

        yield

        logger.info("Shutting down rq-cloudwatch")
        app_host.fire("quiet")
        app_host.fire("shutdown")

    app = FastAPI(
        title="rq-cloudwatch",
        description="Publishes RQ queue and worker stats to CloudWatch",
        version=__version__,
        lifespan=lifespan
    )

    app.include_router(health.router, tags=["Health"])

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint.

        Exposes the publisher's own counters (cycles, batches, refreshes).
        """
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
