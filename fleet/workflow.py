"""
Temporal workflow for the periodic assignment reconciliation pass.

The workflow is a thin wrapper: the repair logic lives in
``ReconcileAssignmentsUseCase`` and runs inside a single activity, which
Temporal retries with backoff if storage is unavailable.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from fleet.domain import ReconciliationReport

RECONCILE_TASK_QUEUE = "fleet-reconcile-queue"
RECONCILE_ACTIVITY_NAME = "fleet.reconcile_assignments.execute"


@workflow.defn
class ReconcileAssignmentsWorkflow:
    @workflow.run
    async def run(self) -> ReconciliationReport:
        workflow.logger.info(
            "Starting ReconcileAssignmentsWorkflow",
            extra={"workflow_id": workflow.info().workflow_id},
        )
        report: ReconciliationReport = await workflow.execute_activity(
            RECONCILE_ACTIVITY_NAME,
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=RetryPolicy(
                initial_interval=timedelta(seconds=5),
                backoff_coefficient=2.0,
                maximum_attempts=5,
            ),
            result_type=ReconciliationReport,
        )
        workflow.logger.info(
            "ReconcileAssignmentsWorkflow finished",
            extra={"repairs": report.repairs, "skipped": len(report.skipped)},
        )
        return report
