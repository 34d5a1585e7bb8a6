"""例外クラス定義

サービス層とHTTP層で共通に使う例外の階層。
"""


class RaceBetError(Exception):
    """racebet の例外の基底クラス"""


class ValidationError(RaceBetError):
    """リクエストの値が欠けている、または矛盾している"""


class AuthorizationError(RaceBetError):
    """呼び出し元が未認証、または権限がない"""


class NotFoundError(RaceBetError):
    """対象のエンティティが存在しない"""


class UpstreamUnavailableError(RaceBetError):
    """iRacing API または Solana RPC に接続できない"""


class TransferError(RaceBetError):
    """Solana 送金の構築・送信・確認に失敗した"""


class ConfigurationError(RaceBetError):
    """設定が不足している、または安全でない"""
