from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, List, Optional, Sequence

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.errors import ConfigurationError
from ..core.types import BalanceQuery, FetchConfig
from .validators import validate_balance_query, validate_wallets


class AppSettings(BaseSettings):
    """應用程式環境設定。"""

    solana_rpc_url: HttpUrl = Field("https://api.mainnet-beta.solana.com", alias="SOLANA_RPC_URL")
    wallets_raw: str = Field("", alias="WALLETS")

    rpc_balance_method: str = Field("getBalance", alias="RPC_BALANCE_METHOD")
    rpc_balance_params: str = Field('["{address}"]', alias="RPC_BALANCE_PARAMS")
    rpc_commitment: Optional[str] = Field(None, alias="RPC_COMMITMENT")
    rpc_timeout_seconds: Optional[Annotated[float, Field(gt=0)]] = Field(30.0, alias="RPC_TIMEOUT_SECONDS")
    max_concurrency: Optional[Annotated[int, Field(ge=1)]] = Field(None, alias="MAX_CONCURRENCY")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=(".env",), env_file_encoding="utf-8", extra="ignore")

    @property
    def wallets(self) -> List[str]:
        return [item.strip() for item in self.wallets_raw.split(",") if item.strip()]

    @property
    def balance_params(self) -> List[Any]:
        try:
            raw = json.loads(self.rpc_balance_params)
        except json.JSONDecodeError as error:
            raise ConfigurationError(f"RPC_BALANCE_PARAMS 不是合法的 JSON：{error}") from error
        if not isinstance(raw, list):
            raise ConfigurationError("RPC_BALANCE_PARAMS 必須為 JSON 陣列")
        return raw

    @property
    def balance_query(self) -> BalanceQuery:
        """依設定組出餘額查詢格式。"""

        query = BalanceQuery(
            method=self.rpc_balance_method.strip(),
            params=self.balance_params,
            commitment=self.rpc_commitment or None,
        )
        validate_balance_query(query)
        return query

    def to_fetch_config(
        self,
        *,
        endpoint: Optional[str] = None,
        wallets: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
    ) -> FetchConfig:
        """建立單次執行用的設定值，CLI 參數優先於環境變數。"""

        addresses = list(wallets) if wallets else self.wallets
        validate_wallets(addresses)
        return FetchConfig(
            endpoint=endpoint or str(self.solana_rpc_url),
            addresses=tuple(address.strip() for address in addresses),
            query=self.balance_query,
            timeout=timeout if timeout is not None else self.rpc_timeout_seconds,
            max_concurrency=max_concurrency if max_concurrency is not None else self.max_concurrency,
        )

    @field_validator("rpc_timeout_seconds", "max_concurrency", "rpc_commitment", mode="before")
    @classmethod
    def _empty_as_none(cls, value: Any) -> Any:
        if value in ("", "null", "None"):
            return None
        return value


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """載入並快取設定。"""

    return AppSettings()
