"""BAP (Bitcoin Attestation Protocol) identity records.

    1BAPSuaPnfGnSBM3GLV9yhxUdYe4vGbdMT ID     <identity key> <address>
    1BAPSuaPnfGnSBM3GLV9yhxUdYe4vGbdMT ATTEST <txid>         <sequence number>
    1BAPSuaPnfGnSBM3GLV9yhxUdYe4vGbdMT REVOKE <txid>         <sequence number>
    1BAPSuaPnfGnSBM3GLV9yhxUdYe4vGbdMT ALIAS  <alias>        <address>

A record is normally followed by an AIP signature chain:

    ... | 15PciHG22SNLQJXMoSUaWVi7WSqc7hCfva <algorithm> <signer address> <signature>
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

from mcp_bitcom.envelope import PIPE, PIPE_PUSH, Envelope
from mcp_bitcom.primitives import ScriptError, encode_push_data, iter_ops, push_all, read_op
from mcp_bitcom.protocols.aip import AIP_PREFIX, Signature, parse_index
from mcp_bitcom.protocols.base import Protocol, text

logger = logging.getLogger(__name__)

BAP_PREFIX = "1BAPSuaPnfGnSBM3GLV9yhxUdYe4vGbdMT"


class AttestationType(str, Enum):
    """BAP record types."""

    ATTEST = "ATTEST"
    ID = "ID"
    REVOKE = "REVOKE"
    ALIAS = "ALIAS"


# Types whose second field is an address; the others carry a sequence number
_ADDRESS_TYPES = (AttestationType.ID, AttestationType.ALIAS)


@dataclass(frozen=True)
class Attestation(Protocol):
    """A decoded BAP record.

    ``identity`` is the identity key (ID), the attested or revoked txid
    (ATTEST, REVOKE) or the alias (ALIAS). ``secondary`` is an address for
    ID and ALIAS and a sequence number for ATTEST and REVOKE.
    """

    PREFIX: ClassVar[str] = BAP_PREFIX

    kind: AttestationType
    identity: str
    secondary: str
    embedded_signature: Optional[Signature] = None
    signature_protocol: Optional[str] = None
    root_address: Optional[str] = None
    is_signed_by_id: bool = False

    def __post_init__(self):
        object.__setattr__(self, "kind", AttestationType(self.kind))

    @property
    def address(self) -> Optional[str]:
        return self.secondary if self.kind in _ADDRESS_TYPES else None

    @property
    def sequence_num(self) -> Optional[str]:
        return None if self.kind in _ADDRESS_TYPES else self.secondary

    @classmethod
    def decode(cls, payload: bytes) -> Optional["Attestation"]:
        """Decode a BAP payload, including a trailing signature chain if any."""
        try:
            op, pos = read_op(payload, 0)
        except ScriptError:
            return None

        try:
            kind = AttestationType(text(op.data))
        except ValueError:
            logger.debug("Unknown BAP type %r", op.data)
            return None

        try:
            identity_op, pos = read_op(payload, pos)
            secondary_op, pos = read_op(payload, pos)
        except ScriptError:
            logger.debug("BAP %s record is missing required fields", kind.value)
            return None

        chain = []
        seen_pipe = False
        for _, op in iter_ops(payload, pos):
            if seen_pipe:
                chain.append(op)
            elif op.data == PIPE:
                seen_pipe = True

        embedded = None
        signature_protocol = None
        root_address = None
        signed_by_id = False
        # The first op after the pipe is the signing protocol's id
        if len(chain) >= 3:
            signature_protocol = text(chain[0].data)
            signature = text(chain[3].data) if len(chain) > 3 else None
            indexes = []
            for index_op in chain[4:]:
                index = parse_index(index_op.data)
                if index is None:
                    break
                indexes.append(index)
            embedded = Signature(
                algorithm=text(chain[1].data),
                address=text(chain[2].data),
                signature=signature,
                field_indexes=indexes,
            )
            if signature is not None and kind == AttestationType.ID:
                root_address = embedded.address
                signed_by_id = True

        return cls(
            kind=kind,
            identity=text(identity_op.data),
            secondary=text(secondary_op.data),
            embedded_signature=embedded,
            signature_protocol=signature_protocol,
            root_address=root_address,
            is_signed_by_id=signed_by_id,
        )

    @classmethod
    def from_envelope(
        cls,
        envelope: Envelope,
        protocol_id: Optional[str] = None,
        signature_protocol_id: Optional[str] = None,
    ) -> list["Attestation"]:
        """Decode every BAP segment of an envelope.

        A signature segment directly after a BAP segment is read as that
        record's signature chain.
        """
        protocol_id = protocol_id or cls.PREFIX
        signature_protocol_id = signature_protocol_id or AIP_PREFIX

        records = []
        segments = envelope.segments
        for i, segment in enumerate(segments):
            if segment.protocol_id != protocol_id:
                continue
            payload = segment.payload
            if i + 1 < len(segments) and segments[i + 1].protocol_id == signature_protocol_id:
                following = segments[i + 1]
                payload = b"".join((
                    payload,
                    PIPE_PUSH,
                    encode_push_data(following.protocol_id.encode("utf-8")),
                    following.payload,
                ))
            record = cls.decode(payload)
            if record is not None:
                records.append(record)
        return records

    def to_payload(self) -> bytes:
        payload = push_all(
            self.kind.value.encode("utf-8"),
            self.identity.encode("utf-8"),
            self.secondary.encode("utf-8"),
        )
        sig = self.embedded_signature
        if sig is None:
            return payload

        items = [PIPE, (self.signature_protocol or AIP_PREFIX).encode("utf-8"),
                 sig.algorithm.encode("utf-8"), sig.address.encode("utf-8")]
        if sig.signature is not None or sig.field_indexes:
            items.append((sig.signature or "").encode("utf-8"))
            items.extend(str(i).encode("utf-8") for i in sig.field_indexes)
        return payload + push_all(*items)

    def to_dict(self) -> dict:
        result = {"type": self.kind.value}
        if self.identity:
            result["identity"] = self.identity
        if self.address:
            result["address"] = self.address
        if self.sequence_num:
            result["sequence_num"] = self.sequence_num
        sig = self.embedded_signature
        if sig is not None:
            for key, value in (
                ("algorithm", sig.algorithm),
                ("signer_addr", sig.address),
                ("signature", sig.signature),
            ):
                if value:
                    result[key] = value
        if self.root_address:
            result["root_address"] = self.root_address
        result["is_signed_by_id"] = self.is_signed_by_id
        return result
