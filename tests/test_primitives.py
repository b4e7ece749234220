"""Tests for script primitives."""

import pytest
from mcp_bitcom.primitives import (
    OP_1,
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    OP_PUSHDATA4,
    OP_RETURN,
    ScriptError,
    ScriptOp,
    decode_op_return_script,
    encode_op_return_script,
    encode_push_data,
    iter_ops,
    push_all,
    read_op,
)


class TestPushEncoding:
    """Test pushdata encoding."""

    def test_encode_empty_is_op_0(self):
        """Empty data encodes as OP_0."""
        assert encode_push_data(b"") == b"\x00"

    def test_encode_small_data(self):
        """Encode small data (< 76 bytes) directly."""
        assert encode_push_data(b"hello") == b"\x05hello"

    def test_encode_medium_data(self):
        """Encode 76-255 bytes with PUSHDATA1."""
        data = b"x" * 76
        pushed = encode_push_data(data)

        assert pushed[0] == OP_PUSHDATA1
        assert pushed[1] == 76
        assert pushed[2:] == data

    def test_encode_large_data(self):
        """Encode 256+ bytes with PUSHDATA2."""
        data = b"x" * 300
        pushed = encode_push_data(data)

        assert pushed[0] == OP_PUSHDATA2
        assert int.from_bytes(pushed[1:3], 'little') == 300
        assert pushed[3:] == data

    def test_encode_very_large_data(self):
        """Encode data > 65535 bytes with PUSHDATA4."""
        data = b"x" * 65536
        pushed = encode_push_data(data)

        assert pushed[0] == OP_PUSHDATA4
        assert int.from_bytes(pushed[1:5], 'little') == 65536

    def test_push_all_concatenates(self):
        """push_all emits one push per item."""
        assert push_all(b"a", b"bc") == b"\x01a\x02bc"


class TestReadOp:
    """Test the operation cursor."""

    def test_read_direct_push(self):
        """Direct push returns data and the next offset."""
        op, pos = read_op(b"\x03abc\x01d", 0)

        assert op == ScriptOp(3, b"abc")
        assert pos == 4

    def test_read_from_offset(self):
        """Reading starts at the given offset."""
        op, pos = read_op(b"\x03abc\x01d", 4)

        assert op.data == b"d"
        assert pos == 6

    def test_read_op_0(self):
        """OP_0 is an empty push."""
        op, pos = read_op(b"\x00", 0)

        assert op.is_push
        assert op.data == b""
        assert pos == 1

    def test_read_bare_opcode(self):
        """Non-push opcodes carry no data."""
        op, pos = read_op(bytes([OP_RETURN]), 0)

        assert op.op == OP_RETURN
        assert op.data is None
        assert not op.is_push
        assert pos == 1

    @pytest.mark.parametrize("pushed", [
        encode_push_data(b"y" * 100),
        encode_push_data(b"y" * 1000),
        encode_push_data(b"y" * 70000),
    ])
    def test_read_extended_pushes(self, pushed):
        """PUSHDATA1/2/4 are read back in full."""
        op, pos = read_op(pushed, 0)

        assert op.data == pushed[-len(op.data):]
        assert pos == len(pushed)

    def test_read_past_end_fails(self):
        """Reading at the end of the script fails."""
        with pytest.raises(ScriptError, match="past end"):
            read_op(b"\x01a", 2)

    def test_truncated_push_fails(self):
        """A push longer than the remaining bytes fails."""
        with pytest.raises(ScriptError, match="truncated"):
            read_op(b"\x05ab", 0)

    @pytest.mark.parametrize("script,name", [
        (bytes([OP_PUSHDATA1]), "PUSHDATA1"),
        (bytes([OP_PUSHDATA2, 0x01]), "PUSHDATA2"),
        (bytes([OP_PUSHDATA4, 0x01, 0x00]), "PUSHDATA4"),
    ])
    def test_truncated_length_fails(self, script, name):
        """A missing length prefix fails."""
        with pytest.raises(ScriptError, match=f"Truncated {name}"):
            read_op(script, 0)

    def test_script_error_is_value_error(self):
        """ScriptError can be handled as ValueError."""
        with pytest.raises(ValueError):
            read_op(b"", 0)


class TestIterOps:
    """Test fail-soft iteration."""

    def test_iterates_with_offsets(self):
        """Yields every operation with its start offset."""
        ops = list(iter_ops(bytes([OP_1]) + b"\x02ab"))

        assert ops == [(0, ScriptOp(OP_1)), (1, ScriptOp(2, b"ab"))]

    def test_stops_at_bad_operation(self):
        """Iteration ends quietly at a truncated push."""
        ops = list(iter_ops(b"\x01a\x09short"))

        assert [op.data for _, op in ops] == [b"a"]


class TestOpReturnScript:
    """Test single-push OP_RETURN scripts."""

    def test_encode_small_data(self):
        """Encode small data behind OP_RETURN."""
        script = encode_op_return_script(b"hello")

        assert script == bytes([OP_RETURN, 5]) + b"hello"

    def test_decode_roundtrip(self):
        """Data survives encode and decode."""
        data = b"x" * 300
        assert decode_op_return_script(encode_op_return_script(data)) == data

    def test_decode_not_op_return(self):
        """Reject scripts not starting with OP_RETURN."""
        with pytest.raises(ValueError, match="not an OP_RETURN"):
            decode_op_return_script(b"\x76\xa9")

    def test_decode_too_short(self):
        """Reject scripts with no push."""
        with pytest.raises(ValueError, match="too short"):
            decode_op_return_script(bytes([OP_RETURN]))

    def test_decode_invalid_push_opcode(self):
        """Reject a bare opcode where the push should be."""
        with pytest.raises(ValueError, match="Invalid push opcode"):
            decode_op_return_script(bytes([OP_RETURN, 0x4F]) + b"data")

    def test_decode_truncated(self):
        """Reject truncated data."""
        with pytest.raises(ValueError, match="truncated"):
            decode_op_return_script(bytes([OP_RETURN, 10]) + b"abc")
