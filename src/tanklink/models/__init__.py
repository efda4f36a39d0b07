"""Data models for tanklink payloads, readings and snapshots."""

from tanklink.models._base import TankLinkBaseModel
from tanklink.models.payload import GatewayPayload, PayloadKind
from tanklink.models.reading import INVALID, HistoryEntry, Reading, ReadingStatus
from tanklink.models.snapshot import BroadcastKind, BroadcastMessage, Snapshot
from tanklink.models.tank import TankConfig

__all__ = [
    "BroadcastKind",
    "BroadcastMessage",
    "GatewayPayload",
    "HistoryEntry",
    "INVALID",
    "PayloadKind",
    "Reading",
    "ReadingStatus",
    "Snapshot",
    "TankConfig",
    "TankLinkBaseModel",
]
