"""設定から具体的な協調オブジェクトを組み立てるモジュール

DBエンジン、レースデータソース、Solanaアダプター、精算サービスは
ここで一度だけ作り、HTTPアプリやCLIコマンドに渡す。
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Engine

from racebet.clients import build_race_data_source
from racebet.config import Settings
from racebet.db import get_engine, init_db
from racebet.services.settlement_service import SettlementService
from racebet.wallet.transfer import SolanaTransferService, load_keypair

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """リクエストハンドラーとCLIコマンドが共有する協調オブジェクト"""

    settings: Settings
    engine: Engine
    race_data_source: Any
    transfer_service: Any
    settlement_service: SettlementService


def build_context(
    settings: Settings,
    engine: Engine | None = None,
    race_data_source: Any = None,
    transfer_service: Any = None,
    house_keypair: Any = None,
) -> AppContext:
    """アプリケーションコンテキストを構築する（テーブルがなければ作成）

    Args:
        settings: アプリケーション設定
        engine: 既存のエンジン（省略時は ``settings.database_url`` から作成）
        race_data_source: レースデータソース（省略時は設定から決定）
        transfer_service: 送金アダプター（省略時は ``settings.solana_rpc_host`` に接続）
        house_keypair: 払い戻しに署名する鍵（省略時は設定から読み込む）
    """
    engine = engine if engine is not None else get_engine(settings.database_url)
    init_db(engine)

    if race_data_source is None:
        race_data_source = build_race_data_source(settings)
    if transfer_service is None:
        transfer_service = SolanaTransferService(endpoint=settings.solana_rpc_host)

    if house_keypair is None and settings.house_wallet_secret_key:
        house_keypair = load_keypair(settings.house_wallet_secret_key)
        if str(house_keypair.pubkey()) != settings.house_wallet_address:
            logger.warning("HOUSE_WALLET_SECRET_KEY does not match HOUSE_WALLET_ADDRESS")
    if house_keypair is None:
        logger.warning("House wallet secret key not configured, payouts are disabled")

    settlement_service = SettlementService(
        engine=engine,
        race_data_source=race_data_source,
        transfer_service=transfer_service,
        house_wallet=settings.house_wallet_address or None,
        house_keypair=house_keypair,
        confirm_timeout=settings.payout_confirm_timeout,
        max_retries=settings.payout_max_retries,
    )

    return AppContext(
        settings=settings,
        engine=engine,
        race_data_source=race_data_source,
        transfer_service=transfer_service,
        settlement_service=settlement_service,
    )
