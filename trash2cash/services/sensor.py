"""Stand-in for the station's material/weight sensor."""

import random
import threading
from dataclasses import dataclass

DETECTABLE_MATERIALS = ("plastic", "glass", "metal", "paper")


@dataclass(frozen=True)
class SensorReading:
    material: str | None
    weight: float
    status: str  # "detected" or "empty"

    @property
    def detected(self) -> bool:
        return self.status == "detected"


class SimulatedSensor:
    """Random readings between 0.1 and 5.0 kg, occasionally reporting no item."""

    def __init__(self, seed: int | None = None, empty_ratio: float = 0.1):
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self.empty_ratio = empty_ratio

    def read(self) -> SensorReading:
        with self._lock:
            if self._random.random() < self.empty_ratio:
                return SensorReading(material=None, weight=0.0, status="empty")
            material = self._random.choice(DETECTABLE_MATERIALS)
            weight = round(0.1 + self._random.randrange(50) / 10.0, 1)
        return SensorReading(material=material, weight=weight, status="detected")
