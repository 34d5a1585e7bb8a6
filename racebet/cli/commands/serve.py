"""APIサーバー起動コマンド"""

import click
import uvicorn

from racebet.api import create_app
from racebet.config import Settings
from racebet.errors import RaceBetError


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="バインドするホスト")
@click.option("--port", default=8000, show_default=True, type=int, help="ポート番号")
@click.pass_obj
def serve(settings: Settings, host: str, port: int):
    """HTTP APIを起動する"""
    try:
        app = create_app(settings)
    except RaceBetError as e:
        raise click.ClickException(str(e)) from e
    uvicorn.run(app, host=host, port=port, log_config=None)
