"""Node CLI (subprocess) interface."""

import asyncio
import json
import logging
from typing import Any

from mcp_bitcom.config import Config, Network
from mcp_bitcom.node.interface import (
    NodeInterface,
    NodeInfo,
    TransactionInfo,
)

logger = logging.getLogger(__name__)

# Network CLI flags
NETWORK_FLAGS = {
    Network.MAINNET: [],
    Network.TESTNET: ["-testnet"],
    Network.REGTEST: ["-regtest"],
}


class BitcoinCLI(NodeInterface):
    """Node interface via a bitcoin-cli compatible subprocess."""

    def __init__(self, config: Config):
        self.config = config
        self.cli_path = config.cli_path
        self.network = config.network
        self.datadir = config.cli_datadir

    def _build_command(self, method: str, *args: Any) -> list[str]:
        """Build CLI command line."""
        cmd = [self.cli_path]
        cmd.extend(NETWORK_FLAGS.get(self.network, []))
        if self.datadir:
            cmd.append(f"-datadir={self.datadir}")
        cmd.append(method)
        cmd.extend(str(arg) for arg in args)
        return cmd

    async def _call(self, method: str, *args: Any) -> Any:
        """Execute a CLI command and parse its JSON response."""
        cmd = self._build_command(method, *args)
        logger.debug("Running %s", method)

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            error_msg = stderr.decode().strip()
            raise RuntimeError(f"bitcoin-cli error: {error_msg}")

        output = stdout.decode().strip()
        if not output:
            return None

        try:
            return json.loads(output)
        except json.JSONDecodeError:
            # Some commands return plain text
            return output

    async def get_info(self) -> NodeInfo:
        """Get node status and network info."""
        try:
            chain_info = await self._call("getblockchaininfo")
            network_info = await self._call("getnetworkinfo")
        except Exception as e:
            logger.warning("Node unreachable: %s", e)
            return NodeInfo(
                connected=False,
                network="unknown",
                block_height=0,
                version=0,
                errors=str(e),
            )

        return NodeInfo(
            connected=True,
            network=chain_info["chain"],
            block_height=chain_info["blocks"],
            version=network_info["version"],
            errors=chain_info.get("warnings", ""),
        )

    async def get_transaction(self, txid: str) -> TransactionInfo:
        """Get transaction details with decoded outputs."""
        try:
            result = await self._call("getrawtransaction", txid, "true")
        except RuntimeError:
            # Wallet transactions without a tx index
            wallet_tx = await self._call("gettransaction", txid)
            result = await self._call("decoderawtransaction", wallet_tx["hex"])
            result = {**wallet_tx, **result}

        return TransactionInfo(
            txid=result["txid"],
            blockhash=result.get("blockhash"),
            confirmations=result.get("confirmations", 0),
            time=result.get("time"),
            hex=result["hex"],
            decoded=result,
        )
