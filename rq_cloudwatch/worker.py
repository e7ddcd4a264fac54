"""RQ worker with the CloudWatch publisher attached to its lifecycle

Every worker started this way also publishes fleet-wide stats. RQ has no
leader election, so each node publishes the same numbers.
"""
from __future__ import annotations

import logging
import os
import sys

import structlog
from redis import Redis
from rq import Queue, Worker

from rq_cloudwatch.activation import enable
from rq_cloudwatch.config import PublisherConfig
from rq_cloudwatch.rq_host import DEFAULT_REDIS_URL, RQHost

LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()
structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL),
)
logger = structlog.get_logger()

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def queue_names() -> list[str]:
    raw = os.getenv("RQ_QUEUES", "default")
    return [name.strip() for name in raw.split(",") if name.strip()]


def main() -> None:
    redis_url = os.getenv("REDIS_URL", DEFAULT_REDIS_URL)
    names = queue_names()
    logger.info("worker.start", redis_url=redis_url, queues=names)

    redis = Redis.from_url(redis_url)
    host = RQHost(redis, logger=logging.getLogger("rq_cloudwatch.worker"))
    enable(
        host=host,
        config=PublisherConfig.from_env(),
        external_logger=logger,
    )

    worker = Worker([Queue(name, connection=redis) for name in names], connection=redis)

    host.fire("startup")
    try:
        worker.work(with_scheduler=True)
    except Exception:
        logger.exception("worker.crashed")
        sys.exit(1)
    finally:
        host.fire("quiet")
        host.fire("shutdown")

    logger.info("worker.stopped")


if __name__ == "__main__":
    main()
