"""Tests for the racebet click commands."""

import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from sqlalchemy import inspect, select

from racebet.cli import main
from racebet.constants import RaceStatus
from racebet.db import get_engine, get_session
from racebet.errors import UpstreamUnavailableError
from racebet.models import Race

ENV_VARS = (
    "DATABASE_URL",
    "IRACING_CLIENT_ID",
    "IRACING_CLIENT_SECRET",
    "IRACING_REDIRECT_URI",
    "IRACING_REFRESH_TOKEN",
    "HOUSE_WALLET_ADDRESS",
    "HOUSE_WALLET_SECRET_KEY",
    "SECRET_KEY",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main が付けたログハンドラーをテスト後に外す"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner(monkeypatch, tmp_path):
    """環境変数の影響を受けない CliRunner"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "racebet.db")


class TestInitDb:
    """init-db コマンド"""

    def test_テーブルを作成する(self, runner, db_path):
        result = runner.invoke(main, ["init-db", "--db", db_path])

        assert result.exit_code == 0, result.output
        engine = get_engine(db_path)
        try:
            assert "bets" in inspect(engine).get_table_names()
        finally:
            engine.dispose()

    def test_DATABASE_URLを使う(self, runner, db_path, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")

        result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        assert db_path in result.output


class TestSeed:
    """seed コマンド"""

    def test_デモデータを投入する(self, runner, db_path):
        result = runner.invoke(main, ["seed", "--db", db_path, "--yes"])

        assert result.exit_code == 0, result.output
        assert "users=2 races=3 bets=2" in result.output
        engine = get_engine(db_path)
        try:
            with get_session(engine) as session:
                statuses = session.execute(
                    select(Race.name, Race.status).order_by(Race.start_time)
                ).all()
        finally:
            engine.dispose()
        assert statuses == [
            ("Nürburgring 24h", RaceStatus.COMPLETED),
            ("Monaco Grand Prix", RaceStatus.LIVE),
            ("Daytona 500", RaceStatus.UPCOMING),
        ]

    def test_確認で中止できる(self, runner, db_path):
        result = runner.invoke(main, ["seed", "--db", db_path], input="n\n")

        assert result.exit_code == 1
        assert "Aborted" in result.output


class TestUpdateRaces:
    """update-races コマンド"""

    def test_精算結果を表示する(self, runner, db_path):
        runner.invoke(main, ["seed", "--db", db_path, "--yes"])

        result = runner.invoke(main, ["update-races", "--db", db_path])

        assert result.exit_code == 0, result.output
        # 開始済みで未完了なのは Monaco Grand Prix のみ
        assert "対象レース: 1" in result.output
        assert "完了: 0" in result.output


class TestBalance:
    """balance コマンド"""

    @patch("racebet.cli.commands.wallet.SolanaTransferService")
    def test_残高を表示する(self, mock_service, runner):
        mock_service.return_value.get_balance.return_value = 2.5

        result = runner.invoke(main, ["balance", "WalletAddress"])

        assert result.exit_code == 0, result.output
        assert "WalletAddress: 2.5 SOL" in result.output
        mock_service.return_value.get_balance.assert_called_once_with("WalletAddress")

    @patch("racebet.cli.commands.wallet.SolanaTransferService")
    def test_取得失敗はエラー終了(self, mock_service, runner):
        mock_service.return_value.get_balance.side_effect = UpstreamUnavailableError("rpc down")

        result = runner.invoke(main, ["balance", "WalletAddress"])

        assert result.exit_code == 1
        assert "rpc down" in result.output


class TestServe:
    """serve コマンド"""

    @patch("racebet.cli.commands.serve.uvicorn.run")
    @patch("racebet.cli.commands.serve.create_app")
    def test_uvicornで起動する(self, mock_create_app, mock_run, runner):
        result = runner.invoke(main, ["serve", "--port", "9000"])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()
        args, kwargs = mock_run.call_args
        assert args[0] is mock_create_app.return_value
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000

    @patch("racebet.cli.commands.serve.uvicorn.run")
    def test_SECRET_KEYが未設定なら起動しない(self, mock_run, runner):
        result = runner.invoke(main, ["serve"])

        assert result.exit_code == 1
        assert "SECRET_KEY" in result.output
        mock_run.assert_not_called()
