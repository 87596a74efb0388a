# ecosphere_engine/stats.py

import math
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Dict

from .entity import EntityType, LIVING_KINDS


def biodiversity(populations: Dict[str, int]) -> float:
    """
    Shannon entropy over living species proportions, normalised to [0, 1] by the
    entropy of an even split across the species present. Zero-count species are
    left out of both sums, so a world with fewer than two species reports 0.
    """
    counts = [populations.get(kind.key, 0) for kind in LIVING_KINDS]
    counts = [c for c in counts if c > 0]
    total = sum(counts)
    if total == 0 or len(counts) < 2:
        return 0.0
    entropy = -sum((c / total) * math.log(c / total) for c in counts)
    return entropy / math.log(len(counts))


def average_fitness(entities) -> float:
    """Mean genetic fitness over living entities that carry genetics; 0 when none do."""
    scores = [e.genetics.fitness() for e in entities
              if e.genetics is not None and e.kind != EntityType.DEAD_MATTER]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


@dataclass
class HistoryRecord:
    generation: int
    populations: Dict[str, int]
    o2: float
    co2: float
    biodiversity: float
    average_fitness: float

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(
            generation=int(data['generation']),
            populations={k: int(v) for k, v in data['populations'].items()},
            o2=float(data['o2']),
            co2=float(data['co2']),
            biodiversity=float(data['biodiversity']),
            average_fitness=float(data['average_fitness']),
        )


@dataclass
class History:
    """Bounded ring buffer of HistoryRecords; the oldest is dropped once full."""
    interval: int
    length: int
    records: deque = field(default=None)

    def __post_init__(self):
        if self.records is None:
            self.records = deque(maxlen=self.length)

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def due(self, generation: int) -> bool:
        return self.interval > 0 and generation % self.interval == 0

    def append(self, record: HistoryRecord):
        self.records.append(record)

    def clear(self):
        self.records.clear()

    def latest(self):
        return self.records[-1] if self.records else None

    def series(self, key: str):
        """One column across the buffer: a population key, or a record field name."""
        if key in HistoryRecord.__dataclass_fields__:
            return [getattr(r, key) for r in self.records]
        return [r.populations.get(key, 0) for r in self.records]


def extinctions(previous: Dict[str, int], current: Dict[str, int]):
    """Living species whose count dropped to zero since the last population snapshot."""
    return [kind.key for kind in LIVING_KINDS
            if previous.get(kind.key, 0) > 0 and current.get(kind.key, 0) == 0]
