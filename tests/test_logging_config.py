"""configure_logging のテスト"""

import logging

import pytest

from racebet.logging_config import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _racebet_handlers():
    return [h for h in logging.getLogger().handlers if getattr(h, "_racebet", False)]


class TestConfigureLogging:
    def test_レベルを設定する(self):
        configure_logging("DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_二回呼んでもハンドラーは一つ(self):
        configure_logging("INFO")
        configure_logging("WARNING")

        assert len(_racebet_handlers()) == 1
        assert logging.getLogger().level == logging.WARNING
