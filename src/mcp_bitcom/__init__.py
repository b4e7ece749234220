"""MCP server and codecs for Bitcom OP_RETURN protocols."""

__version__ = "0.1.0"

# Server entry points
from mcp_bitcom.server import create_server, main

# Configuration
from mcp_bitcom.config import Config, Network, ConnectionMethod

# Envelope encoding/decoding
from mcp_bitcom.envelope import (
    Envelope,
    Segment,
    decode_envelope,
    decode_envelope_hex,
    encode_envelope,
    find_pipe,
    find_return,
)

# Script primitives
from mcp_bitcom.primitives import (
    ScriptError,
    ScriptOp,
    encode_push_data,
    read_op,
)

# Protocol codecs
from mcp_bitcom.protocols import (
    Attachment,
    Attestation,
    AttestationType,
    BSocial,
    MapCommand,
    MapRecord,
    Signature,
)

__all__ = [
    # Version
    "__version__",
    # Server
    "create_server",
    "main",
    # Config
    "Config",
    "Network",
    "ConnectionMethod",
    # Envelope
    "Envelope",
    "Segment",
    "decode_envelope",
    "decode_envelope_hex",
    "encode_envelope",
    "find_pipe",
    "find_return",
    # Primitives
    "ScriptError",
    "ScriptOp",
    "encode_push_data",
    "read_op",
    # Protocols
    "Attachment",
    "Attestation",
    "AttestationType",
    "BSocial",
    "MapCommand",
    "MapRecord",
    "Signature",
]
