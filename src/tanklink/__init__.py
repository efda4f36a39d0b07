"""tanklink - Liveness-aware telemetry engine for LoRa tank level sensors."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tanklink")
except PackageNotFoundError:
    __version__ = "0+local"
from tanklink.broadcast import Broadcaster, OverflowPolicy, Subscription
from tanklink.config import TankLinkConfig
from tanklink.config_store import JsonTankConfigStore, MemoryTankConfigStore, TankConfigStore
from tanklink.core import ConfigUpdate, IngestResult, TelemetryCore, TelemetryStats
from tanklink.exceptions import (
    GatewayUnavailableError,
    PayloadError,
    TankConfigError,
    TankLinkConfigError,
    TankLinkError,
)
from tanklink.models import (
    BroadcastKind,
    BroadcastMessage,
    GatewayPayload,
    HistoryEntry,
    PayloadKind,
    Reading,
    ReadingStatus,
    Snapshot,
    TankConfig,
)
from tanklink.quality import SignalQualityEstimator, quality_from_signal
from tanklink.relay import CommandRelay, CommandTransport
from tanklink.service import TankLinkService
from tanklink.state.events import ModeTransition, SystemMode
from tanklink.state.liveness import LivenessState, LivenessTracker

__all__ = [
    "__version__",
    "BroadcastKind",
    "BroadcastMessage",
    "Broadcaster",
    "CommandRelay",
    "CommandTransport",
    "ConfigUpdate",
    "GatewayPayload",
    "GatewayUnavailableError",
    "HistoryEntry",
    "IngestResult",
    "JsonTankConfigStore",
    "LivenessState",
    "LivenessTracker",
    "MemoryTankConfigStore",
    "ModeTransition",
    "OverflowPolicy",
    "PayloadError",
    "PayloadKind",
    "Reading",
    "ReadingStatus",
    "SignalQualityEstimator",
    "Snapshot",
    "Subscription",
    "SystemMode",
    "TankConfig",
    "TankConfigError",
    "TankConfigStore",
    "TankLinkConfig",
    "TankLinkConfigError",
    "TankLinkError",
    "TankLinkService",
    "TelemetryCore",
    "TelemetryStats",
    "quality_from_signal",
]
