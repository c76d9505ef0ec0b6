"""
CLI for triggering the Boat/Load reconciliation pass.

By default the pass runs as a Temporal workflow on the fleet worker. With
``--direct`` it runs in this process against MinIO, which is useful when no
worker is deployed.
"""

import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

import click

from fleet.domain import ReconciliationReport
from fleet.usecase import ReconcileAssignmentsUseCase
from fleet.worker import (
    build_minio_repositories,
    get_temporal_client_with_retries,
    setup_logging,
)
from fleet.workflow import RECONCILE_TASK_QUEUE, ReconcileAssignmentsWorkflow

logger = logging.getLogger(__name__)


def _echo_report(report: ReconciliationReport) -> None:
    click.echo(f"Boats scanned: {report.boats_scanned}")
    click.echo(f"Loads scanned: {report.loads_scanned}")
    click.echo(f"Dangling references removed: {report.dangling_refs_removed}")
    click.echo(f"Stale references removed: {report.stale_refs_removed}")
    click.echo(
        f"Duplicate references removed: {report.duplicate_refs_removed}"
    )
    click.echo(f"Carriers cleared: {report.carriers_cleared}")
    click.echo(f"References restored: {report.refs_restored}")
    if report.skipped:
        click.echo(f"Skipped (changed during pass): {len(report.skipped)}")
        for record in report.skipped:
            click.echo(f"  {record}")


async def _run_direct() -> ReconciliationReport:
    boat_repo, load_repo = build_minio_repositories()
    use_case = ReconcileAssignmentsUseCase(boat_repo, load_repo)
    return await use_case.execute()


async def _run_workflow(temporal_address: str) -> ReconciliationReport:
    client = await get_temporal_client_with_retries(
        temporal_address, attempts=3, delay=2
    )
    workflow_id = (
        "fleet-reconcile-"
        f"{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S')}"
    )
    click.echo(f"Starting reconciliation workflow: {workflow_id}")
    handle = await client.start_workflow(
        ReconcileAssignmentsWorkflow.run,
        id=workflow_id,
        task_queue=RECONCILE_TASK_QUEUE,
    )
    click.echo(f"Run ID: {handle.result_run_id}")
    return await handle.result()


@click.command()
@click.option(
    "--direct",
    is_flag=True,
    help="Run the pass in this process instead of on a Temporal worker",
)
@click.option(
    "--temporal-address",
    default=None,
    help="Temporal server address (defaults to TEMPORAL_ENDPOINT env var "
    "or localhost:7233)",
)
def main(direct: bool, temporal_address: Optional[str]) -> None:
    """Repair one-sided Boat/Load references."""
    setup_logging()
    if temporal_address is None:
        temporal_address = os.environ.get(
            "TEMPORAL_ENDPOINT", "localhost:7233"
        )

    try:
        if direct:
            report = asyncio.run(_run_direct())
        else:
            report = asyncio.run(_run_workflow(temporal_address))
    except Exception as e:
        logger.error(f"Reconciliation failed: {str(e)}", exc_info=True)
        click.echo(f"Reconciliation failed: {str(e)}", err=True)
        sys.exit(1)

    _echo_report(report)
    if report.skipped:
        sys.exit(2)


if __name__ == "__main__":
    main()
