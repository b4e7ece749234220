"""Bitcoin script operation reading and pushdata encoding.

Every codec in this package walks a script one operation at a time with
``read_op``. The cursor position is always passed in and handed back, so
concurrent decodes never share state.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

# Bitcoin script opcodes
OP_0 = 0x00
OP_FALSE = OP_0
OP_DATA1 = 0x01
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1 = 0x51
OP_RETURN = 0x6A


class ScriptError(ValueError):
    """Raised when an operation cannot be read from a script."""


@dataclass(frozen=True)
class ScriptOp:
    """A single script operation: an opcode and, for pushes, its data."""

    op: int
    data: Optional[bytes] = None

    @property
    def is_push(self) -> bool:
        return self.data is not None


def read_op(script: bytes, pos: int) -> tuple[ScriptOp, int]:
    """Read the operation starting at ``pos``.

    Args:
        script: Script bytes
        pos: Offset of the operation's opcode

    Returns:
        Tuple of the operation and the offset just past it

    Raises:
        ScriptError: If pos is at or past the end, or a push is truncated
    """
    if pos < 0 or pos >= len(script):
        raise ScriptError(f"Read past end of script at offset {pos}")

    op = script[pos]
    pos += 1

    if op < OP_PUSHDATA1:
        # Direct push, opcode is the length
        length = op
    elif op == OP_PUSHDATA1:
        if pos + 1 > len(script):
            raise ScriptError("Truncated PUSHDATA1 length")
        length = script[pos]
        pos += 1
    elif op == OP_PUSHDATA2:
        if pos + 2 > len(script):
            raise ScriptError("Truncated PUSHDATA2 length")
        length = int.from_bytes(script[pos:pos+2], 'little')
        pos += 2
    elif op == OP_PUSHDATA4:
        if pos + 4 > len(script):
            raise ScriptError("Truncated PUSHDATA4 length")
        length = int.from_bytes(script[pos:pos+4], 'little')
        pos += 4
    else:
        return ScriptOp(op), pos

    if pos + length > len(script):
        raise ScriptError(
            f"Push truncated: expected {length} bytes, got {len(script) - pos}"
        )
    return ScriptOp(op, bytes(script[pos:pos+length])), pos + length


def iter_ops(script: bytes, pos: int = 0) -> Iterator[tuple[int, ScriptOp]]:
    """Yield ``(offset, op)`` pairs until the end or the first bad operation."""
    while pos < len(script):
        try:
            op, next_pos = read_op(script, pos)
        except ScriptError:
            return
        yield pos, op
        pos = next_pos


def encode_push_data(data: bytes) -> bytes:
    """Encode ``data`` as a single minimal push operation.

    Uses appropriate push opcode based on data size:
    - < 76 bytes: direct push (1 byte length, empty data is OP_0)
    - 76-255 bytes: OP_PUSHDATA1 (1 byte length)
    - 256-65535 bytes: OP_PUSHDATA2 (2 byte length, little-endian)
    - > 65535 bytes: OP_PUSHDATA4 (4 byte length, little-endian)
    """
    length = len(data)

    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    elif length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    elif length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, 'little') + data
    else:
        return bytes([OP_PUSHDATA4]) + length.to_bytes(4, 'little') + data


def push_all(*items: bytes) -> bytes:
    """Concatenate one push operation per item."""
    return b"".join(encode_push_data(item) for item in items)


def encode_op_return_script(data: bytes) -> bytes:
    """Encode data into a single-push OP_RETURN script.

    Args:
        data: Raw data to embed in OP_RETURN

    Returns:
        Complete OP_RETURN script as bytes
    """
    return bytes([OP_RETURN]) + encode_push_data(data)


def decode_op_return_script(script: bytes) -> bytes:
    """Decode the data of a single-push OP_RETURN script.

    Args:
        script: OP_RETURN script bytes

    Returns:
        Extracted data payload

    Raises:
        ValueError: If script is not a valid OP_RETURN
    """
    if len(script) < 2:
        raise ValueError("Script too short")

    if script[0] != OP_RETURN:
        raise ValueError(f"Script is not an OP_RETURN (opcode: {script[0]:#x})")

    op, _ = read_op(script, 1)
    if not op.is_push:
        raise ValueError(f"Invalid push opcode: {op.op:#x}")
    return op.data
