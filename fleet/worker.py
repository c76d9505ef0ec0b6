"""
Temporal worker that runs the reconciliation workflow and its activity.

Also home to the process-level helpers shared by every fleet entry point
(API, worker and CLI): logging setup and the Temporal connection.
"""

import asyncio
import logging
import os
from typing import Optional, Tuple

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.service import RPCError
from temporalio.worker import Worker

from fleet.repos.minio import (
    MinioBoatRepository,
    MinioLoadRepository,
    bucket_prefix_from_env,
    client_from_env,
)
from fleet.repos.temporal.activities import ReconcileAssignmentsActivity
from fleet.workflow import RECONCILE_TASK_QUEUE, ReconcileAssignmentsWorkflow

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every HTTP round trip at DEBUG.
CHATTY_LOGGERS = ("urllib3", "google.auth")


def _level_from_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    level = logging.getLevelName(value.upper())
    if isinstance(level, int):
        return level
    print(f"Invalid {name}: {value}, using {logging.getLevelName(default)}")
    return default


def setup_logging() -> None:
    """Configure logging from LOG_LEVEL and LOG_FORMAT.

    Storage and auth transports stay at WARNING unless LIBRARY_LOG_LEVEL
    says otherwise.
    """
    level = _level_from_env("LOG_LEVEL", logging.INFO)
    logging.basicConfig(
        level=level,
        format=os.environ.get("LOG_FORMAT", DEFAULT_LOG_FORMAT),
        force=True,
    )
    library_level = _level_from_env("LIBRARY_LOG_LEVEL", logging.WARNING)
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logger.debug(
        "Logging configured",
        extra={
            "log_level": logging.getLevelName(level),
            "library_log_level": logging.getLevelName(library_level),
        },
    )


async def get_temporal_client_with_retries(
    endpoint: str, attempts: int = 10, delay: int = 5
) -> Client:
    """Connect to Temporal, retrying while the server is unreachable.

    The pydantic data converter is used so that workflow results such as
    ``ReconciliationReport`` round-trip as models.
    """
    namespace = os.environ.get("TEMPORAL_NAMESPACE", "default")
    last_error: Optional[RPCError] = None
    for attempt in range(1, attempts + 1):
        try:
            client = await Client.connect(
                endpoint,
                data_converter=pydantic_data_converter,
                namespace=namespace,
            )
        except RPCError as e:
            last_error = e
            logger.warning(
                "Temporal not reachable",
                extra={
                    "endpoint": endpoint,
                    "attempt": attempt,
                    "max_attempts": attempts,
                    "error": str(e),
                },
            )
            if attempt < attempts:
                await asyncio.sleep(delay)
            continue
        logger.info(
            "Connected to Temporal",
            extra={
                "endpoint": endpoint,
                "namespace": namespace,
                "attempt": attempt,
            },
        )
        return client

    logger.error(
        "Giving up on Temporal",
        extra={"endpoint": endpoint, "total_attempts": attempts},
    )
    if last_error is not None:
        raise last_error
    raise RuntimeError(f"Could not connect to Temporal at {endpoint}")


def build_minio_repositories() -> Tuple[
    MinioBoatRepository, MinioLoadRepository
]:
    """Boat and Load repositories sharing one MinIO client."""
    client = client_from_env()
    prefix = bucket_prefix_from_env()
    return (
        MinioBoatRepository(client, bucket_prefix=prefix),
        MinioLoadRepository(client, bucket_prefix=prefix),
    )


async def run_worker() -> None:
    setup_logging()

    temporal_endpoint = os.environ.get("TEMPORAL_ENDPOINT", "localhost:7233")
    client = await get_temporal_client_with_retries(temporal_endpoint)

    boat_repo, load_repo = build_minio_repositories()
    reconcile = ReconcileAssignmentsActivity(boat_repo, load_repo)

    worker = Worker(
        client,
        task_queue=RECONCILE_TASK_QUEUE,
        workflows=[ReconcileAssignmentsWorkflow],
        activities=[reconcile.execute],
    )
    logger.info(
        "Fleet worker polling",
        extra={
            "temporal_endpoint": temporal_endpoint,
            "task_queue": RECONCILE_TASK_QUEUE,
        },
    )
    await worker.run()


if __name__ == "__main__":
    asyncio.run(run_worker())
