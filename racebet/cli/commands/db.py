"""データベース管理コマンド"""

import click

from racebet.config import Settings
from racebet.db import get_engine, get_session, init_db
from racebet.seed import seed_demo_data


def _database(settings: Settings, db: str | None) -> str:
    return db or settings.database_url


@click.command("init-db")
@click.option("--db", type=str, default=None, help="DBファイルパスまたはURL（省略時は DATABASE_URL）")
@click.pass_obj
def init_db_command(settings: Settings, db: str | None):
    """テーブルを作成する"""
    database = _database(settings, db)
    init_db(get_engine(database))
    click.echo(f"データベースを初期化しました: {database}")


@click.command()
@click.option("--db", type=str, default=None, help="DBファイルパスまたはURL（省略時は DATABASE_URL）")
@click.option("--yes", is_flag=True, default=False, help="確認せずに既存データを置き換える")
@click.pass_obj
def seed(settings: Settings, db: str | None, yes: bool):
    """デモデータを投入する（既存データは削除）"""
    database = _database(settings, db)
    if not yes:
        click.confirm(f"{database} の既存データを削除してデモデータを投入しますか?", abort=True)

    engine = get_engine(database)
    init_db(engine)
    with get_session(engine) as session:
        counts = seed_demo_data(session)

    click.echo(
        f"投入完了: users={counts['users']} races={counts['races']} bets={counts['bets']}"
    )
