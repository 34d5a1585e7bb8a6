"""Tests for the race-data DTOs."""

from datetime import datetime

import pytest

from racebet.models.results import (
    AuthTokens,
    IRacingProfile,
    RaceResults,
    ResultRow,
    parse_api_datetime,
)


class TestParseApiDatetime:
    """API日時文字列のパース"""

    def test_Z付きはnaive_UTCに変換される(self):
        assert parse_api_datetime("2024-05-01T18:30:00Z") == datetime(2024, 5, 1, 18, 30)

    def test_オフセット付きはUTCに変換される(self):
        assert parse_api_datetime("2024-05-01T20:30:00+02:00") == datetime(2024, 5, 1, 18, 30)

    @pytest.mark.parametrize("value", [None, ""])
    def test_空値はNone(self, value):
        assert parse_api_datetime(value) is None


class TestResultRow:
    """ResultRow.from_api"""

    def test_laps_completeとlivery_car_numberを読む(self):
        row = ResultRow.from_api(
            {
                "cust_id": "100001",
                "display_name": "Driver 1",
                "finish_position": 0,
                "laps_complete": 42,
                "livery": {"car_number": "7"},
            }
        )

        assert row == ResultRow(
            cust_id=100001,
            display_name="Driver 1",
            finish_position=0,
            laps_completed=42,
            car_number="7",
            team_name=None,
        )

    def test_finish_position欠落は未完走扱い(self):
        row = ResultRow.from_api({"cust_id": 1, "laps_completed": 3, "livery": None})

        assert row.finish_position == -1
        assert row.laps_completed == 3
        assert row.car_number == ""


class TestRaceResults:
    """RaceResults.from_api"""

    def test_フラットなresultsリスト(self):
        results = RaceResults.from_api(
            {
                "subsession_id": 12345,
                "name": "Daytona 500",
                "track": {"track_name": "Daytona International Speedway"},
                "start_time": "2024-05-01T18:00:00Z",
                "end_time": "2024-05-01T20:00:00Z",
                "results": [
                    {"cust_id": 100001, "finish_position": 0, "laps_complete": 200},
                    {"cust_id": 100002, "finish_position": 1, "laps_complete": 199},
                ],
            }
        )

        assert results.subsession_id == 12345
        assert results.track_name == "Daytona International Speedway"
        assert results.session_end_time == datetime(2024, 5, 1, 20, 0)
        assert [r.cust_id for r in results.results] == [100001, 100002]
        assert isinstance(results.results, tuple)

    def test_session_resultsからRACEセッションを選ぶ(self):
        results = RaceResults.from_api(
            {
                "subsession_id": 1,
                "series_name": "Road Series",
                "session_results": [
                    {"simsession_name": "QUALIFY", "results": [{"cust_id": 9}]},
                    {"simsession_name": "RACE", "results": [{"cust_id": 5, "finish_position": 0}]},
                ],
            }
        )

        assert results.name == "Road Series"
        assert [r.cust_id for r in results.results] == [5]
        assert results.session_start_time is None

    def test_RACEが無ければ最後のセッション(self):
        results = RaceResults.from_api(
            {
                "subsession_id": 1,
                "session_results": [
                    {"simsession_name": "PRACTICE", "results": [{"cust_id": 1}]},
                    {"simsession_name": "FEATURE", "results": [{"cust_id": 2}]},
                ],
            }
        )

        assert [r.cust_id for r in results.results] == [2]

    def test_結果なし(self):
        results = RaceResults.from_api({"subsession_id": 1})
        assert results.results == ()


class TestProfileAndTokens:
    def test_profile(self):
        profile = IRacingProfile.from_api(
            {"cust_id": "42", "email": "m@example.com", "display_name": "Member"}
        )
        assert profile == IRacingProfile(cust_id=42, email="m@example.com", display_name="Member")

    def test_tokens_defaults(self):
        tokens = AuthTokens.from_api({"access_token": "abc"})
        assert tokens.refresh_token is None
        assert tokens.expires_in == 0
        assert tokens.token_type == "Bearer"
