"""Significance filter for incoming sensor samples."""

from __future__ import annotations

from datetime import timedelta
from typing import Mapping, Optional

from models.records import SensorSample

DEFAULT_STALENESS_WINDOW = timedelta(minutes=30)


class SpikeFilter:
    """Pure decision component that can be unit tested in isolation.

    A candidate is worth storing when there is no baseline, when the baseline
    is older than the staleness window, or when any channel present in both
    samples moved by at least its threshold.
    """

    def __init__(
        self,
        thresholds: Mapping[str, float],
        staleness_window: timedelta = DEFAULT_STALENESS_WINDOW,
    ) -> None:
        self.thresholds = dict(thresholds)
        self.staleness_window = staleness_window

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(self.thresholds)

    def should_persist(self, candidate: SensorSample, baseline: Optional[SensorSample]) -> bool:
        if baseline is None:
            return True

        if candidate.timestamp - baseline.timestamp > self.staleness_window:
            return True

        return self.spiking_channel(candidate, baseline) is not None

    def spiking_channel(self, candidate: SensorSample, baseline: SensorSample) -> Optional[str]:
        """Name of the first channel whose change meets its threshold, if any."""
        for channel, threshold in self.thresholds.items():
            current = candidate.value(channel)
            previous = baseline.value(channel)
            if current is None or previous is None:
                continue
            if abs(current - previous) >= threshold:
                return channel
        return None
