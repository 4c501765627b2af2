from __future__ import annotations

from typing import Optional


class FetcherError(Exception):
    """餘額查詢工具的基底例外。"""


class ConfigurationError(FetcherError):
    """設定或環境變數錯誤。"""


class BalanceFetchError(FetcherError):
    """單一錢包查詢失敗，只影響該錢包的結果。"""

    kind = "unexpected"


class TransportError(BalanceFetchError):
    """連線層錯誤（逾時、DNS、連線被拒）。"""

    kind = "transport"


class ProtocolError(BalanceFetchError):
    """RPC 端點回傳非成功狀態或 JSON-RPC error。"""

    kind = "protocol"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        rpc_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.rpc_code = rpc_code


class ParseError(BalanceFetchError):
    """回應內容無法解析為餘額。"""

    kind = "parse"
