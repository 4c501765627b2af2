from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from ..adapters.solana_rpc import SolanaRPCClient
from ..core.types import BalanceFailure, BalanceResult, FetchConfig, ReportEntry


logger = logging.getLogger(__name__)


class BalanceClient(Protocol):
    async def fetch_balance(self, address: str) -> BalanceResult:
        ...


class BalanceFetchOrchestrator:
    """對每個錢包同時發出一次查詢，並依輸入順序彙整結果。"""

    def __init__(self, client: BalanceClient, *, max_concurrency: Optional[int] = None) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency 必須為正整數")
        self._client = client
        self._max_concurrency = max_concurrency

    async def fetch_all(self, addresses: Sequence[str]) -> List[ReportEntry]:
        """等待所有查詢結束後回傳，輸出順序與輸入相同，重複地址各自查詢。"""

        addresses = list(addresses)
        if not addresses:
            return []

        logger.info("balance_fetch_started", extra={"wallets": len(addresses)})
        slots: List[Optional[BalanceResult]] = [None] * len(addresses)
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None

        async def _fetch_into_slot(index: int, address: str) -> None:
            if semaphore is None:
                slots[index] = await self._fetch_one(address)
                return
            async with semaphore:
                slots[index] = await self._fetch_one(address)

        await asyncio.gather(
            *(_fetch_into_slot(index, address) for index, address in enumerate(addresses))
        )

        entries: List[ReportEntry] = []
        for index, (address, result) in enumerate(zip(addresses, slots)):
            assert result is not None  # every slot is filled once gather returns
            entries.append(ReportEntry(index=index, address=address, result=result))

        failed = sum(1 for entry in entries if not entry.ok)
        logger.info(
            "balance_fetch_completed",
            extra={"wallets": len(entries), "ok": len(entries) - failed, "failed": failed},
        )
        return entries

    async def _fetch_one(self, address: str) -> BalanceResult:
        try:
            return await self._client.fetch_balance(address)
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "balance_fetch_unexpected_error",
                extra={"address": address},
                exc_info=error,
            )
            return BalanceFailure(
                address=address,
                reason=f"{type(error).__name__}: {error}",
                kind="unexpected",
            )


async def fetch_balances(
    config: FetchConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ReportEntry]:
    """依設定查詢所有錢包餘額；沒有錢包時不建立連線。"""

    if not config.addresses:
        return []
    async with SolanaRPCClient(
        config.endpoint,
        query=config.query,
        timeout=config.timeout,
        max_connections=config.max_concurrency,
        transport=transport,
    ) as client:
        orchestrator = BalanceFetchOrchestrator(client, max_concurrency=config.max_concurrency)
        return await orchestrator.fetch_all(config.addresses)


def run_fetch(
    config: FetchConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ReportEntry]:
    """同步包裝，供 CLI 使用。"""

    return asyncio.run(fetch_balances(config, transport=transport))
