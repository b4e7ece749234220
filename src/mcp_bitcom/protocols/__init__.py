"""Bitcom protocol codecs."""

from mcp_bitcom.protocols.base import Protocol
from mcp_bitcom.protocols.map import MAP_PREFIX, MapCommand, MapRecord
from mcp_bitcom.protocols.b import B_PREFIX, Attachment
from mcp_bitcom.protocols.aip import AIP_PREFIX, Signature
from mcp_bitcom.protocols.bap import BAP_PREFIX, Attestation, AttestationType
from mcp_bitcom.protocols.bsocial import BSOCIAL_APP, Action, ActionContext, ActionType, BSocial

__all__ = [
    "Protocol",
    "MAP_PREFIX",
    "MapCommand",
    "MapRecord",
    "B_PREFIX",
    "Attachment",
    "AIP_PREFIX",
    "Signature",
    "BAP_PREFIX",
    "Attestation",
    "AttestationType",
    "BSOCIAL_APP",
    "Action",
    "ActionContext",
    "ActionType",
    "BSocial",
]
