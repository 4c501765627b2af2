from __future__ import annotations

from decimal import Decimal


LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1


def lamports_to_sol(lamports: int) -> Decimal:
    """將 lamports 換算為 SOL（精確小數，不經過浮點數）。"""

    return Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)


def format_sol(lamports: int) -> str:
    return f"{lamports_to_sol(lamports):.9f}"
