"""Tests for MCP server."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from mcp_bitcom.config import Config
from mcp_bitcom.envelope import Envelope, Segment
from mcp_bitcom.node.interface import NodeInfo, TransactionInfo
from mcp_bitcom.primitives import OP_FALSE, push_all
from mcp_bitcom.protocols import (
    AIP_PREFIX,
    B_PREFIX,
    BAP_PREFIX,
    MAP_PREFIX,
)
from mcp_bitcom.server import create_server

EXPECTED_TOOLS = {
    "decode_bitcom",
    "encode_bitcom",
    "parse_bitcom",
    "create_map_script",
    "create_attachment_script",
    "create_attestation_script",
    "get_node_info",
    "get_transaction_bitcom",
}


def tool(server, name):
    return server._tool_manager._tools[name].fn


def social_post_script() -> bytes:
    return Envelope(bytes([OP_FALSE]), (
        Segment(B_PREFIX, push_all(b"Hello Bitcom", b"text/plain", b"utf-8")),
        Segment(MAP_PREFIX, push_all(b"SET", b"app", b"bsocial", b"type", b"post")),
        Segment(AIP_PREFIX, push_all(b"BITCOIN_ECDSA", b"1EXhSbGFiEAZCE5eeBvUxT6cBVHhrpPWXz", b"sig", b"0", b"1")),
    )).to_script()


@pytest.fixture
def server():
    """Create a fresh server for each test."""
    return create_server()


class TestServerCreation:
    """Test server initialization."""

    def test_create_server_returns_server(self):
        """create_server returns configured server."""
        assert create_server() is not None

    def test_server_keeps_config(self):
        """The configuration is stored on the server."""
        config = Config(max_script_size=10)
        assert create_server(config)._config is config

    @pytest.mark.asyncio
    async def test_server_has_expected_tools(self, server):
        """Server registers all expected tools."""
        tools = await server.list_tools()

        assert {t.name for t in tools} == EXPECTED_TOOLS


class TestEnvelopeTools:
    """Test decode_bitcom and encode_bitcom."""

    def test_decode_bitcom(self, server):
        """Segments are returned in order with hex payloads."""
        result = tool(server, "decode_bitcom")(social_post_script().hex())

        assert result["prefix_hex"] == "00"
        assert [p["proto"] for p in result["protocols"]] == [B_PREFIX, MAP_PREFIX, AIP_PREFIX]
        assert result["protocols"][0]["pos"] == 2

    def test_decode_encode_roundtrip(self, server):
        """encode_bitcom reproduces a decoded script."""
        script_hex = social_post_script().hex()
        decoded = tool(server, "decode_bitcom")(script_hex)

        encoded = tool(server, "encode_bitcom")(decoded["protocols"], decoded["prefix_hex"])

        assert encoded["script_hex"] == script_hex

    def test_decode_invalid_hex(self, server):
        """Invalid hex is reported as an error."""
        result = tool(server, "decode_bitcom")("not_valid_hex")

        assert "Invalid hex string" in result["error"]

    def test_decode_too_large(self):
        """Scripts above the configured size are refused."""
        server = create_server(Config(max_script_size=4))

        result = tool(server, "decode_bitcom")("00" * 5)

        assert "too large" in result["error"]

    def test_encode_missing_proto(self, server):
        """Protocol entries need an id."""
        result = tool(server, "encode_bitcom")([{"script_hex": "00"}])

        assert "proto" in result["error"]

    def test_decode_no_op_return(self, server):
        """Scripts without OP_RETURN decode to no protocols."""
        result = tool(server, "decode_bitcom")("76a914" + "00" * 20 + "88ac")

        assert result == {"prefix_hex": "", "protocols": []}


class TestParseBitcom:
    """Test parse_bitcom."""

    def test_parse_social_post(self, server):
        """MAP, B and AIP records are decoded together."""
        result = tool(server, "parse_bitcom")(social_post_script().hex())

        assert result["map"] == [{"cmd": "SET", "data": {"app": "bsocial", "type": "post"}}]
        assert result["b"][0]["mediaType"] == "text/plain"
        assert result["aip"][0]["fieldIndexes"] == [0, 1]
        assert "bap" not in result
        assert result["bsocial"]["post"] == {"type": "post", "app": "bsocial"}

    def test_parse_signed_identity(self, server):
        """A BAP record picks up the following AIP segment."""
        script = Envelope(segments=(
            Segment(BAP_PREFIX, push_all(b"ID", b"idkey", b"1Addr")),
            Segment(AIP_PREFIX, push_all(b"BITCOIN_ECDSA", b"1Signer", b"sig")),
        )).to_script()

        result = tool(server, "parse_bitcom")(script.hex())

        assert result["bap"][0]["is_signed_by_id"] is True
        assert result["bap"][0]["root_address"] == "1Signer"
        assert len(result["aip"]) == 1

    def test_configured_protocol_id(self):
        """Protocol ids come from the configuration."""
        server = create_server(Config(map_prefix="MYMAP"))
        script = Envelope(segments=(Segment("MYMAP", push_all(b"SET", b"a", b"1")),)).to_script()

        result = tool(server, "parse_bitcom")(script.hex())

        assert result["map"] == [{"cmd": "SET", "data": {"a": "1"}}]


class TestBuilderTools:
    """Test the protocol script builders."""

    def test_create_map_script(self, server):
        """The MAP script parses back to the same entries."""
        built = tool(server, "create_map_script")("SET", {"app": "test", "type": "like"})

        parsed = tool(server, "parse_bitcom")(built["script_hex"])

        assert parsed["map"][0]["data"] == {"app": "test", "type": "like"}

    def test_create_map_script_rejects_entries_for_del(self, server):
        """Only SET carries entries."""
        result = tool(server, "create_map_script")("DEL", {"a": "1"})

        assert "error" in result

    def test_create_attachment_script_hex(self, server):
        """Hex data is embedded as bytes."""
        built = tool(server, "create_attachment_script")(
            "89504e47", "image/png", "binary", "logo.png", "hex"
        )

        parsed = tool(server, "parse_bitcom")(built["script_hex"])

        assert built["data_size"] == 4
        assert parsed["b"][0] == {
            "mediaType": "image/png",
            "encoding": "binary",
            "data": "iVBORw==",
            "filename": "logo.png",
        }

    def test_create_attachment_invalid_hex(self, server):
        """Invalid hex data is reported as an error."""
        result = tool(server, "create_attachment_script")("zz", data_encoding="hex")

        assert "Invalid hex string" in result["error"]

    def test_create_attestation_script(self, server):
        """BAP type names are case-insensitive on input."""
        built = tool(server, "create_attestation_script")("attest", "ab" * 32, "0")

        parsed = tool(server, "parse_bitcom")(built["script_hex"])

        assert built["type"] == "ATTEST"
        assert parsed["bap"][0]["sequence_num"] == "0"

    def test_create_attestation_unknown_type(self, server):
        """Unknown BAP types are reported as an error."""
        result = tool(server, "create_attestation_script")("CLAIM", "a", "b")

        assert result == {"error": "Unknown BAP type: CLAIM"}


class TestNodeTools:
    """Test node-backed tools with a mocked node."""

    @pytest.mark.asyncio
    async def test_get_node_info(self, server):
        """Node info is passed through."""
        node = MagicMock()
        node.get_info = AsyncMock(return_value=NodeInfo(True, "main", 800000, 10020000))
        server._node = node

        result = await tool(server, "get_node_info")()

        assert result["connected"] is True
        assert result["block_height"] == 800000
        assert result["errors"] is None

    @pytest.mark.asyncio
    async def test_get_transaction_bitcom(self, server):
        """Only outputs with Bitcom data are reported."""
        tx = TransactionInfo(
            txid="abc",
            blockhash=None,
            confirmations=2,
            time=None,
            hex="",
            decoded={"vout": [
                {"n": 0, "scriptPubKey": {"hex": social_post_script().hex()}},
                {"n": 1, "scriptPubKey": {"hex": "76a914" + "00" * 20 + "88ac"}},
            ]},
        )
        node = MagicMock()
        node.get_transaction = AsyncMock(return_value=tx)
        server._node = node

        result = await tool(server, "get_transaction_bitcom")("abc")

        assert result["txid"] == "abc"
        assert len(result["outputs"]) == 1
        assert result["outputs"][0]["vout"] == 0
        assert result["outputs"][0]["map"][0]["data"]["app"] == "bsocial"

    @pytest.mark.asyncio
    async def test_get_transaction_bitcom_bsocial(self, server):
        """BSocial actions are read across all outputs."""
        tx = TransactionInfo(
            txid="abc",
            blockhash=None,
            confirmations=0,
            time=None,
            hex="",
            decoded={"vout": [
                {"n": 0, "scriptPubKey": {"hex": social_post_script().hex()}},
            ]},
        )
        node = MagicMock()
        node.get_transaction = AsyncMock(return_value=tx)
        server._node = node

        result = await tool(server, "get_transaction_bitcom")("abc")

        assert result["bsocial"]["post"] == {"type": "post", "app": "bsocial"}
        assert result["bsocial"]["attachments"][0]["mediaType"] == "text/plain"
        assert result["bsocial"]["aip"]["fieldIndexes"] == [0, 1]

    @pytest.mark.asyncio
    async def test_get_transaction_bitcom_skips_oversize_output(self):
        """Outputs above the configured script size are not decoded."""
        server = create_server(Config(max_script_size=64))
        big = social_post_script()
        small = Envelope(segments=(
            Segment(MAP_PREFIX, push_all(b"SET", b"a", b"1")),
        )).to_script()
        assert len(big) > 64 >= len(small)
        tx = TransactionInfo(
            txid="abc",
            blockhash=None,
            confirmations=1,
            time=None,
            hex="",
            decoded={"vout": [
                {"n": 0, "scriptPubKey": {"hex": big.hex()}},
                {"n": 1, "scriptPubKey": {"hex": small.hex()}},
            ]},
        )
        node = MagicMock()
        node.get_transaction = AsyncMock(return_value=tx)
        server._node = node

        result = await tool(server, "get_transaction_bitcom")("abc")

        assert [o["vout"] for o in result["outputs"]] == [1]
        assert "bsocial" not in result
