"""Tests for race-data source selection and the placeholder source."""

import pytest

from racebet.clients import IRacingClient, PlaceholderRaceDataSource, build_race_data_source
from racebet.clients.placeholder import PLACEHOLDER_PROFILE
from racebet.config import Settings
from racebet.errors import AuthorizationError


class TestBuildRaceDataSource:
    def test_認証情報が揃っていれば実クライアント(self):
        settings = Settings(
            iracing_client_id="id",
            iracing_client_secret="secret",
            iracing_redirect_uri="https://app/callback",
            iracing_refresh_token="stored",
        )

        source = build_race_data_source(settings)

        assert isinstance(source, IRacingClient)
        assert source.tokens.refresh_token == "stored"

    def test_認証情報が欠けていればプレースホルダー(self, caplog):
        settings = Settings(iracing_client_id="id", iracing_client_secret="secret")

        with caplog.at_level("WARNING"):
            source = build_race_data_source(settings)

        assert isinstance(source, PlaceholderRaceDataSource)
        assert "placeholder" in caplog.text


class TestPlaceholderRaceDataSource:
    def test_結果は常に未確定(self):
        assert PlaceholderRaceDataSource().get_race_results(12345) is None

    def test_固定プロフィール(self):
        assert PlaceholderRaceDataSource().get_profile() == PLACEHOLDER_PROFILE

    def test_サインインは受け付けない(self):
        with pytest.raises(AuthorizationError):
            PlaceholderRaceDataSource().exchange_code_for_tokens("anything")

    def test_シリーズ一覧はコピーを返す(self):
        source = PlaceholderRaceDataSource()
        series = source.get_active_series()
        series[0]["series_name"] = "changed"

        assert source.get_active_series()[0]["series_name"] != "changed"
