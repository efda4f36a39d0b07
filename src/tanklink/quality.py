"""Uplink signal quality estimation.

Quality is advisory display data.  It never feeds the mode decision.
"""

from __future__ import annotations

from typing import NamedTuple

# (minimum RSSI in dBm, score), checked top to bottom.
RSSI_BUCKETS: tuple[tuple[float, int], ...] = (
    (-40.0, 100),
    (-50.0, 95),
    (-60.0, 85),
    (-70.0, 75),
    (-80.0, 60),
    (-90.0, 45),
    (-100.0, 30),
    (-105.0, 15),
)
RSSI_FLOOR_SCORE = 5

SNR_EXCELLENT_DB = 10.0
SNR_GOOD_DB = 5.0
SNR_POOR_DB = 0.0
SNR_BAD_DB = -5.0

SNR_EXCELLENT_BONUS = 15
SNR_GOOD_BONUS = 10
SNR_POOR_PENALTY = -10
SNR_BAD_PENALTY = -20


class SignalSample(NamedTuple):
    rssi: float | None
    snr: float | None = None


def _rssi_score(rssi: float) -> int:
    for threshold, score in RSSI_BUCKETS:
        if rssi >= threshold:
            return score
    return RSSI_FLOOR_SCORE


def _snr_adjustment(snr: float | None) -> int:
    if snr is None:
        return 0
    if snr > SNR_EXCELLENT_DB:
        return SNR_EXCELLENT_BONUS
    if snr > SNR_GOOD_DB:
        return SNR_GOOD_BONUS
    if snr < SNR_BAD_DB:
        return SNR_BAD_PENALTY
    if snr < SNR_POOR_DB:
        return SNR_POOR_PENALTY
    return 0


def quality_from_signal(rssi: float, snr: float | None = None) -> int:
    """Map LoRa RSSI (dBm) and SNR (dB) to a 0-100 quality score."""
    return max(0, min(100, _rssi_score(rssi) + _snr_adjustment(snr)))


class SignalQualityEstimator:
    """Quality estimator remembering the last good score.

    A packet without RSSI keeps showing the previous score instead of
    snapping to zero.  ``None`` means no score has ever been computed
    (or the cache was reset when the uplink went silent).
    """

    def __init__(self) -> None:
        self._last_good: int | None = None

    @property
    def last_good(self) -> int | None:
        return self._last_good

    def estimate(self, rssi: float | None, snr: float | None = None) -> int | None:
        if rssi is None:
            return self._last_good
        self._last_good = quality_from_signal(rssi, snr)
        return self._last_good

    def estimate_sample(self, sample: SignalSample) -> int | None:
        return self.estimate(sample.rssi, sample.snr)

    def reset(self) -> None:
        self._last_good = None
