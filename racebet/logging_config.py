"""ロギング設定モジュール

CLIとHTTPアプリで共通のルートロガー設定。
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    """ルートロガーに標準出力のハンドラーを1つだけ付ける

    複数回呼んでも出力は重複せず、前のハンドラーを置き換える。

    Args:
        level: ログレベル名（"INFO", "DEBUG" など）または数値
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_racebet", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._racebet = True
    root.addHandler(handler)
