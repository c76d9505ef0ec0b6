"""
Temporal activity wrapping the assignment reconciliation pass.

Only the worker imports this module, so the MinIO client never enters the
workflow sandbox.
"""

import logging

from temporalio import activity

from fleet.domain import ReconciliationReport
from fleet.repositories import BoatRepository, LoadRepository
from fleet.usecase import ReconcileAssignmentsUseCase
from fleet.workflow import RECONCILE_ACTIVITY_NAME

logger = logging.getLogger(__name__)


class ReconcileAssignmentsActivity:
    """
    Runs ``ReconcileAssignmentsUseCase`` against the injected repositories.
    """

    def __init__(
        self, boat_repo: BoatRepository, load_repo: LoadRepository
    ) -> None:
        self._use_case = ReconcileAssignmentsUseCase(
            boat_repo=boat_repo, load_repo=load_repo
        )
        logger.debug("Initialized ReconcileAssignmentsActivity")

    @activity.defn(name=RECONCILE_ACTIVITY_NAME)
    async def execute(self) -> ReconciliationReport:
        logger.info("Activity: reconcile_assignments called")
        report = await self._use_case.execute()
        logger.info(
            "Activity: reconcile_assignments finished",
            extra=report.as_log_extra(),
        )
        return report
