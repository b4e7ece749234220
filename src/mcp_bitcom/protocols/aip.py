"""AIP (Author Identity Protocol) signatures.

    15PciHG22SNLQJXMoSUaWVi7WSqc7hCfva <algorithm> <address> <signature> [<index> ...]

The optional indexes name the script fields covered by the signature.
Signatures are decoded, never verified.
"""

import logging
import re
from dataclasses import dataclass
from typing import ClassVar, Optional

from mcp_bitcom.primitives import ScriptError, push_all, read_op
from mcp_bitcom.protocols.base import Protocol, text

logger = logging.getLogger(__name__)

AIP_PREFIX = "15PciHG22SNLQJXMoSUaWVi7WSqc7hCfva"

ALGORITHM_BITCOIN_ECDSA = "BITCOIN_ECDSA"

_INDEX_RE = re.compile(rb"[+-]?[0-9]+")


def parse_index(data: Optional[bytes]) -> Optional[int]:
    """Parse a pushed base-10 integer, None if it is not one."""
    if data is None or not _INDEX_RE.fullmatch(data):
        return None
    return int(data)


@dataclass(frozen=True)
class Signature(Protocol):
    """An AIP signature record.

    ``signature`` is None only for a signature chain embedded in another
    protocol that stops after the signer address.
    """

    PREFIX: ClassVar[str] = AIP_PREFIX

    algorithm: str
    address: str
    signature: Optional[str]
    field_indexes: tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "field_indexes", tuple(self.field_indexes))

    @classmethod
    def decode(cls, payload: bytes) -> Optional["Signature"]:
        """Decode an AIP segment payload.

        Trailing indexes are read until the first operation that is missing
        or not an integer.
        """
        fields = []
        pos = 0
        try:
            for _ in range(3):
                op, pos = read_op(payload, pos)
                fields.append(text(op.data))
        except ScriptError:
            logger.debug("AIP payload has %d of 3 required fields", len(fields))
            return None

        indexes = []
        while True:
            try:
                op, pos = read_op(payload, pos)
            except ScriptError:
                break
            index = parse_index(op.data)
            if index is None:
                break
            indexes.append(index)

        algorithm, address, signature = fields
        return cls(algorithm, address, signature, indexes)

    def to_payload(self) -> bytes:
        items = [self.algorithm, self.address, self.signature or ""]
        items.extend(str(i) for i in self.field_indexes)
        return push_all(*(item.encode("utf-8") for item in items))

    def to_dict(self) -> dict:
        result = {
            "algorithm": self.algorithm,
            "address": self.address,
            "signature": self.signature,
        }
        if self.field_indexes:
            result["fieldIndexes"] = list(self.field_indexes)
        return result
