"""Abstract interface for node communication."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NodeInfo:
    """Node information."""
    connected: bool
    network: str
    block_height: int
    version: int
    errors: str = ""


@dataclass
class TransactionInfo:
    """Transaction information."""
    txid: str
    blockhash: Optional[str]
    confirmations: int
    time: Optional[int]
    hex: str
    decoded: dict

    def output_scripts(self) -> list[tuple[int, str]]:
        """(vout, locking script hex) for every output of the decoded tx."""
        scripts = []
        for out in self.decoded.get("vout", []):
            script_hex = out.get("scriptPubKey", {}).get("hex")
            if script_hex is not None:
                scripts.append((out.get("n", len(scripts)), script_hex))
        return scripts


class NodeInterface(ABC):
    """Abstract interface for node communication."""

    @abstractmethod
    async def get_info(self) -> NodeInfo:
        """Get node status and network info."""
        pass  # pragma: no cover

    @abstractmethod
    async def get_transaction(self, txid: str) -> TransactionInfo:
        """Get transaction details, including decoded outputs."""
        pass  # pragma: no cover
