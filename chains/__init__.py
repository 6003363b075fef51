"""
chains/ - Blockchain interaction layer.

Modules:
- providers: JSON-RPC provider management with failover
- client: ChainClient protocol and its RPC-backed implementation
- abi: call encoding and return-data decoding
- wallet: transaction signing
"""

from chains.abi import (
    decode_result,
    encode_call,
    function_selector,
    parse_signature,
)
from chains.client import (
    ChainClient,
    RPCChainClient,
    parse_receipt,
)
from chains.providers import (
    RPCProvider,
    RPCResponse,
    RPCStats,
)
from chains.wallet import Wallet

__all__ = [
    # Providers
    "RPCProvider",
    "RPCResponse",
    "RPCStats",
    # Client
    "ChainClient",
    "RPCChainClient",
    "parse_receipt",
    # ABI
    "decode_result",
    "encode_call",
    "function_selector",
    "parse_signature",
    # Wallet
    "Wallet",
]
