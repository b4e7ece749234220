"""BSocial actions built from MAP, B and AIP records.

BSocial is an application convention rather than a protocol of its own: the
action lives in a MAP SET record and any content in B attachments.

    MAP SET app bsocial type post [context <name> contextValue <value> ...]
    MAP SET app bsocial type like tx <txid>
    MAP SET app bsocial type follow bapID <identity key>
    MAP SET app bsocial type post tags <tag> [<tag> ...]

A post whose MAP record carries a ``tx`` key is a reply to that transaction.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional

from mcp_bitcom.envelope import Envelope
from mcp_bitcom.primitives import iter_ops
from mcp_bitcom.protocols.aip import AIP_PREFIX, Signature
from mcp_bitcom.protocols.b import B_PREFIX, Attachment
from mcp_bitcom.protocols.base import text
from mcp_bitcom.protocols.map import MAP_PREFIX, MapCommand, MapRecord

logger = logging.getLogger(__name__)

BSOCIAL_APP = "bsocial"


class ActionType(str, Enum):
    """Values of the MAP ``type`` key."""

    POST = "post"
    LIKE = "like"
    UNLIKE = "unlike"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    MESSAGE = "message"


class ActionContext(str, Enum):
    """Well-known values of the MAP ``context`` key."""

    TX = "tx"
    CHANNEL = "channel"
    BAP_ID = "bapID"
    PROVIDER = "provider"
    VIDEO_ID = "videoID"
    GEOHASH = "geohash"
    BTC_TX = "btcTx"
    ETH_TX = "ethTx"


@dataclass(frozen=True)
class Action:
    """One BSocial action and the content it carries."""

    kind: ActionType
    app: str = ""
    context: str = ""
    context_value: str = ""
    subcontext: str = ""
    subcontext_value: str = ""
    content: Optional[Attachment] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", ActionType(self.kind))

    @classmethod
    def from_entries(cls, kind: ActionType, entries: Mapping[str, str]) -> "Action":
        """Build a content action (post, reply, message) from MAP entries."""
        content = None
        if "content" in entries:
            content = Attachment(
                data=entries["content"].encode("utf-8"),
                media_type=entries.get("mediaType", ""),
                encoding=entries.get("encoding", ""),
            )
        return cls(
            kind=kind,
            app=entries.get("app", ""),
            context=entries.get("context", ""),
            context_value=entries.get("contextValue", ""),
            subcontext=entries.get("subcontext", ""),
            subcontext_value=entries.get("subcontextValue", ""),
            content=content,
        )

    def to_dict(self) -> dict:
        result = {"type": self.kind.value}
        for key, value in (
            ("app", self.app),
            ("context", self.context),
            ("contextValue", self.context_value),
            ("subcontext", self.subcontext),
            ("subcontextValue", self.subcontext_value),
        ):
            if value:
                result[key] = value
        if self.content is not None:
            result["b"] = self.content.to_dict()
        return result


def _read_tags(payload: bytes) -> tuple[str, ...]:
    """Every push after the ``tags`` key of a MAP SET payload."""
    ops = [op for _, op in iter_ops(payload)]
    # ops[0] is the command; keys sit at odd positions
    for i in range(1, len(ops), 2):
        if ops[i].data == b"tags":
            return tuple(text(op.data) for op in ops[i + 1:])
    return ()


# Action types that reference another transaction or identity
_REFERENCE_CONTEXTS = {
    ActionType.LIKE: ActionContext.TX,
    ActionType.UNLIKE: ActionContext.TX,
    ActionType.FOLLOW: ActionContext.BAP_ID,
    ActionType.UNFOLLOW: ActionContext.BAP_ID,
}


@dataclass(frozen=True)
class BSocial:
    """The BSocial content of a transaction.

    At most one action of each kind is kept; a later MAP record of the same
    kind replaces an earlier one.
    """

    post: Optional[Action] = None
    reply: Optional[Action] = None
    like: Optional[Action] = None
    unlike: Optional[Action] = None
    follow: Optional[Action] = None
    unfollow: Optional[Action] = None
    message: Optional[Action] = None
    signature: Optional[Signature] = None
    attachments: tuple[Attachment, ...] = ()
    tags: tuple[tuple[str, ...], ...] = ()

    def is_empty(self) -> bool:
        return self == BSocial()

    @classmethod
    def from_envelopes(
        cls,
        envelopes: Iterable[Envelope],
        map_id: Optional[str] = None,
        b_id: Optional[str] = None,
        aip_id: Optional[str] = None,
    ) -> Optional["BSocial"]:
        """Collect BSocial actions from the envelopes of a transaction's outputs.

        Args:
            envelopes: Decoded envelopes, in output order
            map_id: MAP protocol id (default: MAP_PREFIX)
            b_id: B protocol id (default: B_PREFIX)
            aip_id: AIP protocol id (default: AIP_PREFIX)

        Returns:
            BSocial record, or None if the envelopes carry nothing BSocial
            understands.
        """
        map_id = map_id or MAP_PREFIX
        b_id = b_id or B_PREFIX
        aip_id = aip_id or AIP_PREFIX

        actions = {}
        signature = None
        attachments = []
        tags = []
        for envelope in envelopes:
            for segment in envelope.segments:
                if segment.protocol_id == map_id:
                    record = MapRecord.decode(segment.payload)
                    if record is not None and record.command == MapCommand.SET:
                        found = _read_map(record, segment.payload, tags)
                        if found is not None:
                            slot, action = found
                            actions[slot] = action
                elif segment.protocol_id == b_id:
                    attachment = Attachment.decode(segment.payload)
                    if attachment is not None:
                        attachments.append(attachment)
                elif segment.protocol_id == aip_id and signature is None:
                    signature = Signature.decode(segment.payload)

        result = cls(
            signature=signature,
            attachments=tuple(attachments),
            tags=tuple(tags),
            **actions,
        )
        if result.is_empty():
            return None
        return result

    @classmethod
    def from_envelope(cls, envelope: Envelope, **protocol_ids) -> Optional["BSocial"]:
        """Collect BSocial actions from a single output."""
        return cls.from_envelopes([envelope], **protocol_ids)

    def actions(self) -> dict:
        """Actions present, keyed by kind name."""
        return {
            name: action
            for name, action in (
                ("post", self.post),
                ("reply", self.reply),
                ("like", self.like),
                ("unlike", self.unlike),
                ("follow", self.follow),
                ("unfollow", self.unfollow),
                ("message", self.message),
            )
            if action is not None
        }

    def to_dict(self) -> dict:
        result = {name: action.to_dict() for name, action in self.actions().items()}
        if self.signature is not None:
            result["aip"] = self.signature.to_dict()
        if self.attachments:
            result["attachments"] = [a.to_dict() for a in self.attachments]
        if self.tags:
            result["tags"] = [list(t) for t in self.tags]
        return result


def _read_map(record: MapRecord, payload: bytes, tags: list) -> Optional[tuple[str, Action]]:
    """Classify one MAP SET record.

    Tag records are appended to ``tags``. Returns the action slot and action,
    or None when the record is not an action.
    """
    entries = record.entries
    kind = entries.get("type", "")

    if entries.get("app") == BSOCIAL_APP and kind == ActionType.POST.value and "tags" in entries:
        tags.append(_read_tags(payload))
        return None

    try:
        kind = ActionType(kind)
    except ValueError:
        logger.debug("MAP record has no BSocial action type: %r", kind)
        return None

    if kind in _REFERENCE_CONTEXTS:
        context = _REFERENCE_CONTEXTS[kind]
        return kind.value, Action(
            kind=kind,
            app=entries.get("app", ""),
            context=context.value,
            context_value=entries.get(context.value, ""),
        )

    slot = kind.value
    if kind == ActionType.POST and ActionContext.TX.value in entries:
        slot = "reply"
    return slot, Action.from_entries(kind, entries)
