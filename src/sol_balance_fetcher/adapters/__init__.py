"""Adapters package exports."""

from .solana_rpc import SolanaRPCClient

__all__ = ["SolanaRPCClient"]
