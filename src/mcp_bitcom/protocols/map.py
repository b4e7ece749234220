"""MAP (Magic Attribute Protocol) key/value store.

MAP attaches string attributes to a transaction:

    1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5 SET <key> <value> [<key> <value> ...]

Only SET carries operands; DEL, ADD and SELECT records decode to a command
with no entries.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional

from mcp_bitcom.primitives import ScriptError, push_all, read_op
from mcp_bitcom.protocols.base import Protocol, text

logger = logging.getLogger(__name__)

MAP_PREFIX = "1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5"


class MapCommand(str, Enum):
    """MAP commands."""

    SET = "SET"
    DEL = "DEL"
    ADD = "ADD"
    SELECT = "SELECT"


def _command(value: str):
    try:
        return MapCommand(value)
    except ValueError:
        # Unknown commands are kept verbatim
        return value


def _normalize(data: Optional[bytes]) -> Optional[str]:
    """Key/value text with NULs turned into spaces, None if not UTF-8."""
    try:
        value = (data or b"").replace(b"\x00", b" ").decode("utf-8")
    except UnicodeDecodeError:
        return None
    return value.replace("\\u0000", " ")


@dataclass(frozen=True)
class MapRecord(Protocol):
    """A decoded MAP command."""

    PREFIX: ClassVar[str] = MAP_PREFIX

    command: str
    entries: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.entries and self.command != MapCommand.SET:
            raise ValueError(f"Only SET carries entries, got {self.command}")
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __hash__(self):
        return hash((self.command_name, frozenset(self.entries.items())))

    @classmethod
    def read(cls, payload: bytes, pos: int = 0) -> tuple[Optional["MapRecord"], int]:
        """Decode a MAP record starting at ``pos``.

        Returns:
            Tuple of the record (None if no command could be read) and the
            offset where parsing stopped. A key without a value is left
            unconsumed.
        """
        try:
            op, pos = read_op(payload, pos)
        except ScriptError:
            return None, pos

        command = _command(text(op.data))
        entries = {}
        if command == MapCommand.SET:
            while True:
                pair_start = pos
                try:
                    key_op, pos = read_op(payload, pos)
                except ScriptError:
                    break
                try:
                    value_op, pos = read_op(payload, pos)
                except ScriptError:
                    logger.debug("MAP key at %d has no value", pair_start)
                    pos = pair_start
                    break

                key = _normalize(key_op.data)
                value = _normalize(value_op.data)
                if key is None or value is None:
                    logger.debug("Skipping non UTF-8 MAP pair at %d", pair_start)
                    continue
                entries[key] = value

        return cls(command=command, entries=entries), pos

    @classmethod
    def decode(cls, payload: bytes) -> Optional["MapRecord"]:
        """Decode a MAP segment payload."""
        record, _ = cls.read(payload)
        return record

    @property
    def command_name(self) -> str:
        if isinstance(self.command, MapCommand):
            return self.command.value
        return self.command

    def to_payload(self) -> bytes:
        items = [self.command_name]
        for key, value in self.entries.items():
            items.extend((key, value))
        return push_all(*(item.encode("utf-8") for item in items))

    def to_dict(self) -> dict:
        result = {"cmd": self.command_name}
        if self.entries:
            result["data"] = dict(self.entries)
        return result
