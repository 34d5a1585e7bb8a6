"""精算コマンド"""

import dataclasses

import click

from racebet.config import Settings
from racebet.container import build_context


@click.command("update-races")
@click.option("--db", type=str, default=None, help="DBファイルパスまたはURL（省略時は DATABASE_URL）")
@click.pass_obj
def update_races(settings: Settings, db: str | None):
    """開始済みレースの結果を取得してベットを精算する"""
    if db:
        settings = dataclasses.replace(settings, database_url=db)

    context = build_context(settings)
    report = context.settlement_service.update_race_statuses()

    click.echo(f"対象レース: {report.races_checked}")
    click.echo(f"  完了: {report.races_completed}")
    click.echo(f"  失敗: {report.races_failed}")
    click.echo(f"ベット: 的中 {report.bets_won} / 不的中 {report.bets_lost}")
    click.echo(f"払い戻し: 送金 {report.payouts_sent} / 保留 {report.payouts_pending}")
