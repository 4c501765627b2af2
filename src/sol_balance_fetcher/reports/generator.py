"""錢包餘額報表輸出，lamports 與 SOL 的換算只在此層進行。"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from ..core.types import BalanceFailure, ReportEntry
from ..core.utils import format_sol


REPORT_TITLE = "=== Solana Wallet Balances ==="


class ReportGenerator:
    def render_text(self, entries: Sequence[ReportEntry]) -> str:
        lines: List[str] = [REPORT_TITLE, ""]
        if not entries:
            lines.append("No wallets configured.")
            return "\n".join(lines)
        for entry in entries:
            lines.append(f"Wallet: {entry.address}")
            if entry.lamports is not None:
                lines.append(f"Balance: {entry.lamports} lamports ({format_sol(entry.lamports)} SOL)")
            else:
                lines.append(f"Error: {entry.reason}")
            lines.append("---")
        return "\n".join(lines)

    def render_json(self, entries: Sequence[ReportEntry]) -> str:
        return json.dumps([self._entry_payload(entry) for entry in entries], ensure_ascii=False, indent=2)

    def summarize(self, entries: Sequence[ReportEntry]) -> str:
        failed = sum(1 for entry in entries if not entry.ok)
        return f"wallets={len(entries)} ok={len(entries) - failed} failed={failed}"

    @staticmethod
    def _entry_payload(entry: ReportEntry) -> Dict[str, Any]:
        lamports = entry.lamports
        return {
            "address": entry.address,
            "ok": entry.ok,
            "lamports": lamports,
            "sol": format_sol(lamports) if lamports is not None else None,
            "error": entry.reason,
            "kind": entry.result.kind if isinstance(entry.result, BalanceFailure) else None,
        }
