from __future__ import annotations

from ..repositories import (
    SqlCampRepository,
    SqlDailySnapshotRepository,
    SqlPlanRepository,
    SqlSessionCompensationRepository,
)
from .incentives import IncentiveService
from .overview import OverviewService


def incentive_service(session) -> IncentiveService:
    return IncentiveService(
        plans=SqlPlanRepository(session),
        sessions=SqlSessionCompensationRepository(session),
        snapshots=SqlDailySnapshotRepository(session),
        camps=SqlCampRepository(session),
    )


def overview_service(session) -> OverviewService:
    return OverviewService(
        sessions=SqlSessionCompensationRepository(session),
        camps=SqlCampRepository(session),
    )
