"""Outbound display payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tanklink.models.reading import HistoryEntry, Reading
from tanklink.models.tank import TankConfig
from tanklink.state.events import SystemMode
from tanklink.state.liveness import LivenessState


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Snapshot(BaseModel):
    """Everything a viewer needs to render the tank.

    Pull queries and periodic pushes both serve this exact model.
    """

    model_config = ConfigDict(frozen=True)

    mode: SystemMode
    reading: Reading | None = Field(default=None, description="Latest reading or a placeholder for the mode")
    history: list[HistoryEntry] = Field(default_factory=list)
    tank_config: TankConfig | None = None
    liveness: LivenessState
    generated_at: datetime = Field(default_factory=_utcnow)


class BroadcastKind(StrEnum):
    READING = "reading"
    SNAPSHOT = "snapshot"
    MODE_CHANGED = "mode_changed"
    GATEWAY_RECONNECTED = "gateway_reconnected"


class BroadcastMessage(BaseModel):
    """Envelope fanned out to every subscriber."""

    model_config = ConfigDict(frozen=True)

    kind: BroadcastKind
    data: dict[str, Any] = Field(default_factory=dict)
    sent_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def of(cls, kind: BroadcastKind, model: BaseModel | dict[str, Any]) -> BroadcastMessage:
        data = model.model_dump(mode="json") if isinstance(model, BaseModel) else dict(model)
        return cls(kind=kind, data=data)
