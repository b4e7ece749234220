"""MCP server for Bitcom OP_RETURN protocols.

This server exposes tools for splitting locking scripts into Bitcom
envelopes, decoding the MAP, B, AIP and BAP protocols they carry, building
new protocol scripts, and reading them from transactions on a node.
"""

import base64
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from mcp_bitcom.config import Config, ConnectionMethod, load_config
from mcp_bitcom.envelope import (
    Envelope,
    Segment,
    decode_envelope,
    encode_envelope,
)
from mcp_bitcom.node.cli import BitcoinCLI
from mcp_bitcom.node.interface import NodeInterface
from mcp_bitcom.node.rpc import BitcoinRPC
from mcp_bitcom.protocols import (
    Attachment,
    Attestation,
    BSocial,
    MapRecord,
    Signature,
)

logger = logging.getLogger(__name__)


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ValueError(f"Invalid hex string: {e}") from e


def _data_bytes(data: str, encoding: str) -> bytes:
    if encoding == "hex":
        return _hex_bytes(data)
    if encoding == "base64":
        return base64.b64decode(data, validate=True)
    return data.encode(encoding)


def parse_records(envelope: Envelope, config: Config) -> dict:
    """Run every protocol codec over an envelope.

    Returns:
        Dictionary keyed by protocol name; protocols with no records are
        omitted.
    """
    records = {
        "map": MapRecord.from_envelope(envelope, config.map_prefix),
        "b": Attachment.from_envelope(envelope, config.b_prefix),
        "aip": Signature.from_envelope(envelope, config.aip_prefix),
        "bap": Attestation.from_envelope(
            envelope, config.bap_prefix, signature_protocol_id=config.aip_prefix
        ),
    }
    return {
        name: [record.to_dict() for record in found]
        for name, found in records.items()
        if found
    }


def social_record(envelopes: list[Envelope], config: Config) -> Optional[BSocial]:
    """Read BSocial actions from envelopes using the configured protocol ids."""
    return BSocial.from_envelopes(
        envelopes,
        map_id=config.map_prefix,
        b_id=config.b_prefix,
        aip_id=config.aip_prefix,
    )


def create_server(config: Optional[Config] = None) -> FastMCP:
    """Create and configure the MCP server with all tools.

    Args:
        config: Optional configuration. If not provided, uses defaults.

    Returns:
        Configured FastMCP server instance.
    """
    if config is None:
        config = Config()

    mcp = FastMCP("mcp-bitcom")

    # Store config on server for access by tools
    mcp._config = config
    mcp._node: Optional[NodeInterface] = None

    def get_node() -> NodeInterface:
        """Get or create the node interface."""
        if mcp._node is None:
            if config.connection_method == ConnectionMethod.CLI:
                mcp._node = BitcoinCLI(config)
            else:
                mcp._node = BitcoinRPC(config)
        return mcp._node

    def read_script(script_hex: str) -> bytes:
        script = _hex_bytes(script_hex)
        if len(script) > config.max_script_size:
            raise ValueError(
                f"Script too large: {len(script)} bytes "
                f"(limit {config.max_script_size})"
            )
        return script

    # =========================================================================
    # Envelope
    # =========================================================================

    @mcp.tool()
    def decode_bitcom(script_hex: str) -> dict:
        """Split a locking script into its Bitcom protocol segments.

        Args:
            script_hex: Locking script as hex string

        Returns:
            Dictionary with 'prefix_hex' and the ordered 'protocols', each
            with 'proto', 'pos' and 'script_hex'.
        """
        try:
            envelope = decode_envelope(read_script(script_hex))
        except ValueError as e:
            return {"error": str(e)}

        return {
            "prefix_hex": envelope.prefix.hex(),
            "protocols": [
                {
                    "proto": s.protocol_id,
                    "pos": s.offset,
                    "script_hex": s.payload.hex(),
                }
                for s in envelope.segments
            ],
        }

    @mcp.tool()
    def encode_bitcom(protocols: list[dict], prefix_hex: str = "") -> dict:
        """Assemble a locking script from Bitcom protocol segments.

        Args:
            protocols: Ordered list of {'proto': id, 'script_hex': payload}
            prefix_hex: Script bytes to place before OP_RETURN (optional)

        Returns:
            Dictionary with 'script_hex' and 'script_size'.
        """
        try:
            segments = tuple(
                Segment(p["proto"], _hex_bytes(p.get("script_hex", "")))
                for p in protocols
            )
            prefix = _hex_bytes(prefix_hex)
        except KeyError as e:
            return {"error": f"Protocol entry missing {e}"}
        except ValueError as e:
            return {"error": str(e)}

        script = encode_envelope(Envelope(prefix, segments))
        return {"script_hex": script.hex(), "script_size": len(script)}

    @mcp.tool()
    def parse_bitcom(script_hex: str) -> dict:
        """Decode the MAP, B, AIP and BAP records carried by a script.

        Args:
            script_hex: Locking script as hex string

        Returns:
            Dictionary with 'protocols' (ids in order) and one list of
            records per protocol found ('map', 'b', 'aip', 'bap'), plus
            'bsocial' when the records form BSocial actions.
        """
        try:
            envelope = decode_envelope(read_script(script_hex))
        except ValueError as e:
            return {"error": str(e)}

        result = {"protocols": envelope.protocols()}
        result.update(parse_records(envelope, config))
        social = social_record([envelope], config)
        if social is not None:
            result["bsocial"] = social.to_dict()
        return result

    # =========================================================================
    # Protocol builders
    # =========================================================================

    @mcp.tool()
    def create_map_script(command: str = "SET", entries: Optional[dict] = None) -> dict:
        """Create a MAP key/value script.

        Args:
            command: MAP command ('SET', 'DEL', 'ADD', 'SELECT')
            entries: Key/value pairs (SET only)

        Returns:
            Dictionary with 'payload_hex' and 'script_hex'.
        """
        try:
            record = MapRecord(command=command, entries=dict(entries or {}))
        except ValueError as e:
            return {"error": str(e)}

        return {
            "command": record.command_name,
            "payload_hex": record.to_payload().hex(),
            "script_hex": record.to_script(protocol_id=config.map_prefix).hex(),
        }

    @mcp.tool()
    def create_attachment_script(
        data: str,
        media_type: str = "text/plain",
        encoding: str = "utf-8",
        filename: Optional[str] = None,
        data_encoding: str = "utf-8",
    ) -> dict:
        """Create a B protocol attachment script.

        Args:
            data: Attachment content
            media_type: MIME type of the content (default: 'text/plain')
            encoding: Encoding declared in the record (default: 'utf-8')
            filename: Optional filename
            data_encoding: How 'data' is given ('utf-8', 'hex' or 'base64')

        Returns:
            Dictionary with 'data_size', 'payload_hex' and 'script_hex'.
        """
        try:
            content = _data_bytes(data, data_encoding)
        except (ValueError, LookupError) as e:
            return {"error": str(e)}

        attachment = Attachment(
            data=content,
            media_type=media_type,
            encoding=encoding,
            filename=filename,
        )
        return {
            "data_size": len(content),
            "payload_hex": attachment.to_payload().hex(),
            "script_hex": attachment.to_script(protocol_id=config.b_prefix).hex(),
        }

    @mcp.tool()
    def create_attestation_script(kind: str, identity: str, secondary: str) -> dict:
        """Create an unsigned BAP script.

        Args:
            kind: Record type ('ID', 'ATTEST', 'REVOKE', 'ALIAS')
            identity: Identity key, attested txid or alias
            secondary: Address (ID, ALIAS) or sequence number (ATTEST, REVOKE)

        Returns:
            Dictionary with 'type', 'payload_hex' and 'script_hex'.
        """
        try:
            attestation = Attestation(kind=kind.upper(), identity=identity, secondary=secondary)
        except ValueError:
            return {"error": f"Unknown BAP type: {kind}"}

        return {
            "type": attestation.kind.value,
            "payload_hex": attestation.to_payload().hex(),
            "script_hex": attestation.to_script(protocol_id=config.bap_prefix).hex(),
        }

    # =========================================================================
    # Node Interface
    # =========================================================================

    @mcp.tool()
    async def get_node_info() -> dict:
        """Check connection and network status.

        Returns:
            Dictionary with node information including connection status,
            network, block height, and version.
        """
        node = get_node()
        info = await node.get_info()
        return {
            "connected": info.connected,
            "network": info.network,
            "block_height": info.block_height,
            "version": info.version,
            "errors": info.errors if info.errors else None,
        }

    @mcp.tool()
    async def get_transaction_bitcom(txid: str) -> dict:
        """Fetch a transaction and decode the Bitcom data of its outputs.

        Args:
            txid: Transaction ID (hash)

        Returns:
            Dictionary with the txid and one entry per output that carries
            Bitcom protocols, plus 'bsocial' for the whole transaction.
            Outputs larger than the configured script size are skipped.
        """
        node = get_node()
        tx = await node.get_transaction(txid)

        outputs = []
        envelopes = []
        for vout, script_hex in tx.output_scripts():
            try:
                envelope = decode_envelope(read_script(script_hex))
            except ValueError as e:
                logger.warning("Skipping output %d of %s: %s", vout, txid, e)
                continue
            if not envelope.segments:
                continue
            output = {"vout": vout, "protocols": envelope.protocols()}
            output.update(parse_records(envelope, config))
            outputs.append(output)
            envelopes.append(envelope)

        logger.info("Transaction %s: %d Bitcom outputs", txid, len(outputs))
        result = {
            "txid": tx.txid,
            "confirmations": tx.confirmations,
            "outputs": outputs,
        }
        social = social_record(envelopes, config)
        if social is not None:
            result["bsocial"] = social.to_dict()
        return result

    return mcp


def main():
    """Entry point for the MCP server."""
    from pathlib import Path

    # Try to load config from standard locations
    config_paths = [
        Path("mcp-bitcom.toml"),
        Path.home() / ".config" / "mcp-bitcom" / "config.toml",
    ]

    config = None
    for path in config_paths:
        if path.exists():
            config = load_config(path)
            break

    if config is None:
        config = Config()

    # stdout carries the MCP stdio transport
    logging.basicConfig(level=config.log_level)

    server = create_server(config)
    server.run()


if __name__ == "__main__":
    main()
