"""Base protocol class for Bitcom protocols."""

from abc import ABC, abstractmethod
from typing import ClassVar, Optional

from mcp_bitcom.envelope import Envelope, Segment, encode_envelope


def text(data: Optional[bytes]) -> str:
    """Decode pushed bytes as text without ever failing."""
    return (data or b"").decode("utf-8", errors="replace")


class Protocol(ABC):
    """Base class for protocols carried in a Bitcom envelope segment."""

    PREFIX: ClassVar[str]

    @abstractmethod
    def to_payload(self) -> bytes:
        """Encode the record as the push operations following the prefix."""
        pass  # pragma: no cover

    @abstractmethod
    def to_dict(self) -> dict:
        """Presentation form of the record."""
        pass  # pragma: no cover

    @classmethod
    @abstractmethod
    def decode(cls, payload: bytes):
        """Decode a segment payload, returning None when it does not parse."""
        pass  # pragma: no cover

    def to_segment(self, protocol_id: Optional[str] = None) -> Segment:
        return Segment(protocol_id or self.PREFIX, self.to_payload())

    def to_script(self, prefix: bytes = b"", protocol_id: Optional[str] = None) -> bytes:
        """Convert to a complete OP_RETURN locking script."""
        return encode_envelope(Envelope(prefix, (self.to_segment(protocol_id),)))

    @classmethod
    def from_envelope(cls, envelope: Envelope, protocol_id: Optional[str] = None) -> list:
        """Decode every segment of this protocol, skipping ones that fail."""
        records = []
        for segment in envelope.segments_for(protocol_id or cls.PREFIX):
            record = cls.decode(segment.payload)
            if record is not None:
                records.append(record)
        return records
