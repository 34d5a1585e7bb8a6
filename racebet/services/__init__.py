"""サービスパッケージ"""

from racebet.services.settlement_service import (
    RaceDataSource,
    SettlementReport,
    SettlementService,
    TransferService,
    calculate_payout,
    derive_driver_result,
    winning_position,
)

__all__ = [
    "RaceDataSource",
    "SettlementReport",
    "SettlementService",
    "TransferService",
    "calculate_payout",
    "derive_driver_result",
    "winning_position",
]
