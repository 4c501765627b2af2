from __future__ import annotations

from typing import Any, Iterable

from ..core.errors import ConfigurationError
from ..core.types import ADDRESS_PLACEHOLDER, BalanceQuery


def _contains_placeholder(value: Any) -> bool:
    if value == ADDRESS_PLACEHOLDER:
        return True
    if isinstance(value, list):
        return any(_contains_placeholder(item) for item in value)
    if isinstance(value, dict):
        return any(_contains_placeholder(item) for item in value.values())
    return False


def validate_balance_query(query: BalanceQuery) -> None:
    """確認查詢方法與參數樣板可用。"""

    if not query.method:
        raise ConfigurationError("RPC_BALANCE_METHOD 不可為空")
    if not _contains_placeholder(query.params):
        raise ConfigurationError(f"RPC_BALANCE_PARAMS 必須包含 {ADDRESS_PLACEHOLDER} 佔位字串")


def validate_wallets(wallets: Iterable[str]) -> None:
    """確認錢包地址皆為非空字串。"""

    for position, wallet in enumerate(wallets):
        if not isinstance(wallet, str) or not wallet.strip():
            raise ConfigurationError(f"第 {position + 1} 個錢包地址為空")
