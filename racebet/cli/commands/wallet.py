"""ウォレットコマンド"""

import click

from racebet.config import Settings
from racebet.errors import RaceBetError
from racebet.wallet.transfer import SolanaTransferService


@click.command()
@click.argument("wallet")
@click.pass_obj
def balance(settings: Settings, wallet: str):
    """ウォレットの残高（SOL）を表示する"""
    service = SolanaTransferService(endpoint=settings.solana_rpc_host)
    try:
        sol = service.get_balance(wallet)
    except RaceBetError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"{wallet}: {sol} SOL")
