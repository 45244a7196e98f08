"""Reward rates and reading validation."""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from trash2cash.core.errors import InvalidInput

MATERIALS = ("plastic", "metal", "paper", "glass", "other")

# Rupiah per kilogram.
DEFAULT_RATES = {
    "plastic": 2000.0,
    "metal": 3000.0,
    "glass": 1600.0,
    "paper": 1000.0,
    "other": 500.0,
}


def validate_material(material: object) -> str:
    if not isinstance(material, str) or not material.strip():
        raise InvalidInput("Invalid sensor data: material is required")
    value = material.strip().lower()
    if value not in MATERIALS:
        raise InvalidInput(f"Invalid sensor data: unknown material '{material}'")
    return value


def validate_weight(weight: object) -> float:
    # bool is an int subclass; a sensor reporting True is not a weight.
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        raise InvalidInput("Invalid sensor data: weight must be a number")
    value = float(weight)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput("Invalid sensor data: weight must be greater than zero")
    return value


@dataclass(frozen=True)
class RewardQuote:
    material: str
    weight: float
    rate: float
    reward: float


class RewardCalculator:
    """Pure `rate[material] * weight`; safe to share between threads."""

    def __init__(self, rates: Mapping[str, float] | None = None):
        merged = dict(DEFAULT_RATES)
        for material, rate in (rates or {}).items():
            if material not in MATERIALS:
                raise ValueError(f"Unknown material in reward rates: {material}")
            if rate < 0:
                raise ValueError(f"Reward rate for {material} must be non-negative")
            merged[material] = float(rate)
        self.rates = MappingProxyType(merged)

    def rate_for(self, material: object) -> float:
        return self.rates[validate_material(material)]

    def reward(self, material: object, weight: object) -> float:
        return self.quote(material, weight).reward

    def quote(self, material: object, weight: object) -> RewardQuote:
        name = validate_material(material)
        kg = validate_weight(weight)
        rate = self.rates[name]
        return RewardQuote(material=name, weight=kg, rate=rate, reward=round(rate * kg, 2))
