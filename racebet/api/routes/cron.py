"""定期精算のトリガー"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends

from racebet.api.dependencies import get_context, verify_cron_secret
from racebet.api.schemas import SettlementResponse
from racebet.container import AppContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get(
    "/update-races",
    response_model=SettlementResponse,
    dependencies=[Depends(verify_cron_secret)],
)
def update_races(context: AppContext = Depends(get_context)):
    report = context.settlement_service.update_race_statuses()
    logger.info("Settlement sweep finished: %s", report)
    return SettlementResponse(**asdict(report))
