from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, Optional

import httpx

from ..core.errors import BalanceFetchError, ParseError, ProtocolError, TransportError
from ..core.types import BalanceFailure, BalanceQuery, BalanceResult, BalanceSuccess
from ..core.utils import U64_MAX


logger = logging.getLogger(__name__)

_BODY_PREVIEW_LIMIT = 200
_KEEPALIVE_LIMIT = 20


class SolanaRPCClient:
    """Solana JSON-RPC 餘額查詢介面層，每次查詢只送出一個請求。"""

    def __init__(
        self,
        endpoint: str,
        *,
        query: Optional[BalanceQuery] = None,
        timeout: Optional[float] = 30.0,
        max_connections: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._endpoint = endpoint
        self._query = query or BalanceQuery()
        self._ids = itertools.count(1)
        # 連線池上限跟隨 max_concurrency，None 為不限制
        keepalive = _KEEPALIVE_LIMIT if max_connections is None else min(_KEEPALIVE_LIMIT, max_connections)
        self._limits = httpx.Limits(max_connections=max_connections, max_keepalive_connections=keepalive)
        self._client = httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "User-Agent": "sol-balance-fetcher/0.1.0",
            },
            timeout=timeout,
            limits=self._limits,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def limits(self) -> httpx.Limits:
        return self._limits

    async def aclose(self) -> None:
        """關閉底層 HTTP 連線。"""

        await self._client.aclose()

    async def __aenter__(self) -> "SolanaRPCClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.aclose()

    def build_request(self, address: str) -> Dict[str, Any]:
        """組出 JSON-RPC 2.0 請求內容。"""

        return {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": self._query.method,
            "params": self._query.build_params(address),
        }

    async def _post(self, payload: Dict[str, Any]) -> Any:
        try:
            response = await self._client.post(self._endpoint, json=payload)
        except httpx.RequestError as error:
            raise TransportError(f"{type(error).__name__}: {str(error) or 'request failed'}") from error

        if not response.is_success:
            message = f"HTTP {response.status_code} {response.reason_phrase}"
            body = " ".join(response.text[:_BODY_PREVIEW_LIMIT].split())
            if body:
                message = f"{message}: {body}"
            raise ProtocolError(
                message,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as error:
            raise ParseError(f"回應不是合法的 JSON：{error}") from error
        if not isinstance(data, dict):
            raise ParseError(f"回應必須為 JSON 物件，實際為 {type(data).__name__}")

        rpc_error = data.get("error")
        if rpc_error is not None:
            if isinstance(rpc_error, dict):
                code = rpc_error.get("code")
                message = rpc_error.get("message", "")
            else:
                code, message = None, str(rpc_error)
            raise ProtocolError(
                f"RPC error {code}: {message}",
                status_code=response.status_code,
                rpc_code=code if isinstance(code, int) else None,
            )

        if "result" not in data:
            raise ParseError("回應缺少 result 欄位")
        return data["result"]

    @staticmethod
    def parse_lamports(result: Any) -> int:
        """接受整數或 Solana 的 {"context": ..., "value": N} 格式。"""

        value = result.get("value") if isinstance(result, dict) else result
        if isinstance(value, bool) or not isinstance(value, int):
            raise ParseError(f"餘額必須為整數，實際為 {value!r}")
        if value < 0 or value > U64_MAX:
            raise ParseError(f"餘額超出 u64 範圍：{value}")
        return value

    async def get_balance(self, address: str) -> int:
        """查詢單一地址餘額，失敗時拋出 BalanceFetchError 子類別。"""

        result = await self._post(self.build_request(address))
        return self.parse_lamports(result)

    async def fetch_balance(self, address: str) -> BalanceResult:
        """查詢單一地址餘額，所有可預期的錯誤都轉為 BalanceFailure。"""

        try:
            lamports = await self.get_balance(address)
        except BalanceFetchError as error:
            logger.warning(
                "balance_fetch_failed",
                extra={"address": address, "kind": error.kind, "error": str(error)},
            )
            return BalanceFailure(address=address, reason=str(error), kind=error.kind)
        return BalanceSuccess(address=address, lamports=lamports)
