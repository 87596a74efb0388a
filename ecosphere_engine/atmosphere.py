# ecosphere_engine/atmosphere.py

from dataclasses import dataclass, asdict

from . import config as cfg


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass
class Atmosphere:
    """The per-world gas pools (percent) and sunlight intensity shared by every entity."""
    o2: float = cfg.DEFAULT_O2
    co2: float = 100.0 - cfg.DEFAULT_O2
    sunlight: float = cfg.DEFAULT_SUNLIGHT

    def __post_init__(self):
        self.o2 = _clamp(float(self.o2), cfg.GAS_MIN, cfg.GAS_MAX)
        self.co2 = _clamp(float(self.co2), cfg.GAS_MIN, cfg.GAS_MAX)
        self.sunlight = _clamp(float(self.sunlight), cfg.SUNLIGHT_MIN, cfg.SUNLIGHT_MAX)

    @classmethod
    def from_o2(cls, o2: float, sunlight: float = cfg.DEFAULT_SUNLIGHT) -> "Atmosphere":
        return cls(o2=o2, co2=100.0 - o2, sunlight=sunlight)

    def add_o2(self, amount: float):
        self.o2 = _clamp(self.o2 + amount, cfg.GAS_MIN, cfg.GAS_MAX)

    def add_co2(self, amount: float):
        self.co2 = _clamp(self.co2 + amount, cfg.GAS_MIN, cfg.GAS_MAX)

    def respire(self, o2_use: float, co2_release: float):
        """Animal/decomposer breathing: O2 in, CO2 out."""
        self.add_o2(-o2_use)
        self.add_co2(co2_release)

    def photosynthesize(self):
        self.add_co2(-cfg.PHOTOSYNTHESIS_CO2_USE)
        self.add_o2(cfg.PHOTOSYNTHESIS_O2_RELEASE)

    def rebalance(self):
        """Shrinks both gases proportionally so that o2 + co2 <= 100."""
        total = self.o2 + self.co2
        if total > cfg.GAS_MAX:
            excess = total - cfg.GAS_MAX
            o2_share = self.o2 / total
            self.o2 -= excess * o2_share
            self.co2 -= excess * (1.0 - o2_share)
            # Guard against float drift leaving the sum a hair above the cap.
            if self.o2 + self.co2 > cfg.GAS_MAX:
                self.co2 = cfg.GAS_MAX - self.o2
        return self

    def to_dict(self) -> dict:
        return asdict(self)
