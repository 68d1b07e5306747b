"""Synthetic telemetry generator standing in for an onboard data link."""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Callable, List

from ..config import TelemetrySourceConfig
from ..models import TelemetrySample, utcnow
from .base import SourceClient

VOLTAGE_RANGE = (3.2, 12.6)
TEMPERATURE_RANGE = (-50.0, 80.0)


def batch_name(moment: datetime) -> str:
    return f"telemetry_{moment.strftime('%Y%m%d_%H%M%S')}.csv"


class SyntheticTelemetrySource(SourceClient):
    """Produce ``batch_size`` samples one second apart, ending now."""

    name = "telemetry"

    def __init__(
        self,
        config: TelemetrySourceConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or TelemetrySourceConfig()
        self._rng = rng or random.Random()
        self._clock = clock

    def fetch(self) -> List[TelemetrySample]:
        now = self._clock()
        count = self.config.batch_size
        source_file = batch_name(now)
        start = now - timedelta(seconds=count - 1)
        return [
            TelemetrySample(
                recorded_at=start + timedelta(seconds=index),
                voltage=round(self._rng.uniform(*VOLTAGE_RANGE), 2),
                temperature=round(self._rng.uniform(*TEMPERATURE_RANGE), 2),
                source_file=source_file,
                created_at=now,
            )
            for index in range(count)
        ]


__all__ = ["SyntheticTelemetrySource", "TEMPERATURE_RANGE", "VOLTAGE_RANGE", "batch_name"]
