"""Node communication interfaces."""

from mcp_bitcom.node.interface import (
    NodeInterface,
    NodeInfo,
    TransactionInfo,
)
from mcp_bitcom.node.cli import BitcoinCLI
from mcp_bitcom.node.rpc import BitcoinRPC

__all__ = [
    "NodeInterface",
    "NodeInfo",
    "TransactionInfo",
    "BitcoinCLI",
    "BitcoinRPC",
]
