from __future__ import annotations

from typing import Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .utils import U64_MAX


ADDRESS_PLACEHOLDER = "{address}"

WalletAddress = str


def _substitute(value: Any, address: str) -> Any:
    if value == ADDRESS_PLACEHOLDER:
        return address
    if isinstance(value, list):
        return [_substitute(item, address) for item in value]
    if isinstance(value, dict):
        return {key: _substitute(item, address) for key, item in value.items()}
    return value


class BalanceQuery(BaseModel):
    """RPC 端點的餘額查詢格式（方法名稱與參數樣板）。"""

    model_config = ConfigDict(frozen=True)

    method: str = "getBalance"
    params: List[Any] = Field(default_factory=lambda: [ADDRESS_PLACEHOLDER])
    commitment: Optional[str] = None

    def build_params(self, address: WalletAddress) -> List[Any]:
        """以錢包地址取代樣板中的佔位字串。"""

        params = _substitute(list(self.params), address)
        if self.commitment:
            params.append({"commitment": self.commitment})
        return params


class FetchConfig(BaseModel):
    """單次執行所需的不可變設定值。"""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    addresses: Tuple[WalletAddress, ...] = ()
    query: BalanceQuery = Field(default_factory=BalanceQuery)
    timeout: Optional[float] = Field(30.0, gt=0)
    max_concurrency: Optional[int] = Field(None, ge=1)


class BalanceSuccess(BaseModel):
    """查詢成功，餘額以最小單位（lamports）表示。"""

    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    address: WalletAddress
    lamports: int = Field(ge=0, le=U64_MAX)


class BalanceFailure(BaseModel):
    """查詢失敗與原因。"""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    address: WalletAddress
    reason: str
    kind: Literal["transport", "protocol", "parse", "unexpected"] = "unexpected"


BalanceResult = Union[BalanceSuccess, BalanceFailure]


class ReportEntry(BaseModel):
    """依輸入順序排列的單一錢包結果。"""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    address: WalletAddress
    result: BalanceResult

    @property
    def ok(self) -> bool:
        return self.result.ok

    @property
    def lamports(self) -> Optional[int]:
        if isinstance(self.result, BalanceSuccess):
            return self.result.lamports
        return None

    @property
    def reason(self) -> Optional[str]:
        if isinstance(self.result, BalanceFailure):
            return self.result.reason
        return None

    def summarize(self) -> str:
        """回傳單行摘要。"""

        if isinstance(self.result, BalanceSuccess):
            return f"{self.address} lamports={self.result.lamports}"
        return f"{self.address} error={self.result.reason}"
