"""Bitcom envelope encoding and decoding.

The envelope format lives in a locking script after OP_RETURN:

    <prefix> OP_RETURN <protocol id> <payload ops> | <protocol id> <payload ops> ...

- Prefix: every byte before OP_RETURN, kept verbatim
- Protocol id: the first push of each segment
- Payload: every byte up to the next pipe token or the end of the script
- Pipe: a one-byte push of "|" (0x01 0x7C) separating segments
"""

import base64
import logging
from dataclasses import dataclass, field
from typing import Optional

from mcp_bitcom.primitives import (
    OP_DATA1,
    OP_RETURN,
    ScriptError,
    encode_push_data,
    iter_ops,
    read_op,
)

logger = logging.getLogger(__name__)

PIPE = b"|"
PIPE_PUSH = bytes([OP_DATA1]) + PIPE


@dataclass(frozen=True)
class Segment:
    """One protocol unit of an envelope."""

    protocol_id: str
    payload: bytes
    offset: int = 0  # where the protocol id push starts in the source script

    def to_dict(self) -> dict:
        return {
            "proto": self.protocol_id,
            "script": base64.b64encode(self.payload).decode("ascii"),
            "pos": self.offset,
        }


@dataclass(frozen=True)
class Envelope:
    """Decoded Bitcom envelope."""

    prefix: bytes = b""
    segments: tuple[Segment, ...] = field(default_factory=tuple)

    def protocols(self) -> list[str]:
        """Protocol ids in script order."""
        return [s.protocol_id for s in self.segments]

    def segments_for(self, protocol_id: str) -> list[Segment]:
        """Segments carrying ``protocol_id`` (exact, case-sensitive match)."""
        return [s for s in self.segments if s.protocol_id == protocol_id]

    def to_script(self) -> bytes:
        return encode_envelope(self)

    def to_dict(self) -> dict:
        result = {"protos": [s.to_dict() for s in self.segments]}
        if self.prefix:
            result["prefix"] = base64.b64encode(self.prefix).decode("ascii")
        return result


def find_return(script: bytes, start: int = 0) -> Optional[int]:
    """Offset of the first OP_RETURN at or after ``start``, or None."""
    for pos, op in iter_ops(script, start):
        if op.op == OP_RETURN:
            return pos
    return None


def find_pipe(script: bytes, start: int = 0) -> Optional[int]:
    """Offset of the first pipe token at or after ``start``, or None.

    Only the minimal one-byte push counts; a "|" inside a longer push or
    encoded with PUSHDATA1 is data.
    """
    for pos, op in iter_ops(script, start):
        if op.op == OP_DATA1 and op.data == PIPE:
            return pos
    return None


def decode_envelope(script: bytes) -> Envelope:
    """Split a locking script into its Bitcom segments.

    Never raises for malformed scripts: a script without OP_RETURN yields an
    empty envelope, and an unreadable protocol id ends the segment list.

    Args:
        script: Raw locking script bytes

    Returns:
        Decoded Envelope
    """
    script = bytes(script)
    ret = find_return(script)
    if ret is None:
        return Envelope()

    segments = []
    pos = ret + 1
    while True:
        offset = pos
        # The pipe search starts at the protocol id, so an id pushed as "|"
        # is its own separator
        pipe = find_pipe(script, offset)
        try:
            op, pos = read_op(script, pos)
        except ScriptError as e:
            if offset < len(script):
                logger.debug("Bitcom protocol id unreadable at %d: %s", offset, e)
            break

        protocol_id = (op.data or b"").decode("utf-8", errors="replace")
        if pipe is None:
            segments.append(Segment(protocol_id, script[pos:], offset))
            break

        payload = script[pos:pipe] if pipe >= pos else b""
        segments.append(Segment(protocol_id, payload, offset))
        # Skip the pipe's length byte and its data byte
        pos = pipe + len(PIPE_PUSH)

    return Envelope(prefix=script[:ret], segments=tuple(segments))


def decode_envelope_hex(script_hex: str) -> Envelope:
    """Decode an envelope from a hex-encoded script.

    Raises:
        ValueError: If script_hex is not valid hex
    """
    return decode_envelope(bytes.fromhex(script_hex))


def encode_envelope(envelope: Envelope) -> bytes:
    """Reassemble a locking script from an envelope.

    Payloads are emitted verbatim; they must already be a sequence of script
    operations (as built by the protocol codecs or taken from a decode).
    """
    parts = [envelope.prefix]
    if envelope.segments:
        parts.append(bytes([OP_RETURN]))
        for i, segment in enumerate(envelope.segments):
            if i:
                parts.append(PIPE_PUSH)
            parts.append(encode_push_data(segment.protocol_id.encode("utf-8")))
            parts.append(segment.payload)
    return b"".join(parts)
