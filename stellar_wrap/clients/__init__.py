"""Ledger, stats and wallet clients."""

from stellar_wrap.clients.soroban_rpc import RpcClientPool, RpcError, SorobanRpcClient
from stellar_wrap.clients.stats_api import StatsApiClient
from stellar_wrap.clients.wallet_bridge import (
    SorobanWalletBridge,
    TransactionBuilder,
    TransactionSigner,
    WalletBridge,
)

__all__ = [
    "RpcClientPool",
    "RpcError",
    "SorobanRpcClient",
    "StatsApiClient",
    "SorobanWalletBridge",
    "TransactionBuilder",
    "TransactionSigner",
    "WalletBridge",
]
