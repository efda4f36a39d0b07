"""Tank calibration persistence.

Only one thing is ever persisted: the latest valid :class:`TankConfig`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from tanklink.exceptions import TankConfigError
from tanklink.models.tank import TankConfig

_logger = logging.getLogger(__name__)


class TankConfigStore(Protocol):
    def load(self) -> TankConfig | None: ...

    def save(self, config: TankConfig) -> None: ...


class MemoryTankConfigStore:
    """Keeps the calibration for the lifetime of the process."""

    def __init__(self, initial: TankConfig | None = None) -> None:
        self._config = initial.check() if initial is not None else None

    def load(self) -> TankConfig | None:
        return self._config

    def save(self, config: TankConfig) -> None:
        self._config = config.check()


class JsonTankConfigStore:
    """Stores the calibration snapshot as a single JSON file.

    Writes go to a sibling temporary file first and are moved into place,
    so a crash mid-write never leaves a truncated snapshot behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> TankConfig | None:
        """Read the snapshot; a missing, unreadable or invalid file gives ``None``."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            _logger.warning("Could not read tank config snapshot %s", self._path, exc_info=True)
            return None
        try:
            return TankConfig.model_validate_json(text).check()
        except (ValidationError, TankConfigError):
            _logger.warning("Ignoring invalid tank config snapshot %s", self._path, exc_info=True)
            return None

    def save(self, config: TankConfig) -> None:
        config.check()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        tmp_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)
        _logger.debug("Tank config saved to %s", self._path)
