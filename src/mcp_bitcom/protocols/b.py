"""B protocol binary attachments.

    19HxigV4QyBv3tHpQVcUEQyq1pzZVdoAut <data> <media type> <encoding> [<filename>]
"""

import base64
import logging
from dataclasses import dataclass
from typing import ClassVar, Optional

from mcp_bitcom.primitives import ScriptError, push_all, read_op
from mcp_bitcom.protocols.base import Protocol, text

logger = logging.getLogger(__name__)

B_PREFIX = "19HxigV4QyBv3tHpQVcUEQyq1pzZVdoAut"

# Common media types
MEDIA_TYPE_TEXT_PLAIN = "text/plain"
MEDIA_TYPE_TEXT_MARKDOWN = "text/markdown"
MEDIA_TYPE_TEXT_HTML = "text/html"
MEDIA_TYPE_IMAGE_PNG = "image/png"
MEDIA_TYPE_IMAGE_JPEG = "image/jpeg"

ENCODING_UTF8 = "utf-8"
ENCODING_BINARY = "binary"


@dataclass(frozen=True)
class Attachment(Protocol):
    """A B protocol attachment."""

    PREFIX: ClassVar[str] = B_PREFIX

    data: bytes
    media_type: str
    encoding: str
    filename: Optional[str] = None

    @classmethod
    def decode(cls, payload: bytes) -> Optional["Attachment"]:
        """Decode a B segment payload.

        Data, media type and encoding are required; the filename is optional.
        """
        fields = []
        pos = 0
        for _ in range(4):
            try:
                op, pos = read_op(payload, pos)
            except ScriptError:
                break
            fields.append(op.data or b"")

        if len(fields) < 3:
            logger.debug("B payload has %d of 3 required fields", len(fields))
            return None

        return cls(
            data=fields[0],
            media_type=text(fields[1]),
            encoding=text(fields[2]),
            filename=text(fields[3]) if len(fields) > 3 else None,
        )

    def as_text(self) -> Optional[str]:
        """Attachment data as text, or None for binary or undecodable data."""
        if self.encoding.lower() == ENCODING_BINARY:
            return None
        try:
            return self.data.decode(self.encoding)
        except (LookupError, UnicodeDecodeError):
            return None

    def to_payload(self) -> bytes:
        items = [self.data, self.media_type.encode("utf-8"), self.encoding.encode("utf-8")]
        if self.filename is not None:
            items.append(self.filename.encode("utf-8"))
        return push_all(*items)

    def to_dict(self) -> dict:
        result = {
            "mediaType": self.media_type,
            "encoding": self.encoding,
            "data": base64.b64encode(self.data).decode("ascii"),
        }
        if self.filename:
            result["filename"] = self.filename
        return result
