"""Click CLIメインモジュール"""

import click

from racebet.config import Settings
from racebet.logging_config import configure_logging


@click.group()
@click.option("--log-level", default=None, help="ログレベル（省略時は LOG_LEVEL）")
@click.pass_context
def main(ctx: click.Context, log_level: str | None):
    """racebet - iRacingのレースにSolanaで賭ける"""
    settings = Settings.from_env()
    configure_logging((log_level or settings.log_level).upper())
    ctx.obj = settings


# コマンドの登録
from racebet.cli.commands.db import init_db_command, seed  # noqa: E402
from racebet.cli.commands.races import update_races  # noqa: E402
from racebet.cli.commands.serve import serve  # noqa: E402
from racebet.cli.commands.wallet import balance  # noqa: E402

main.add_command(init_db_command)
main.add_command(seed)
main.add_command(update_races)
main.add_command(serve)
main.add_command(balance)


__all__ = ["main"]
