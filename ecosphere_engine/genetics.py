# ecosphere_engine/genetics.py

from dataclasses import dataclass, fields
from typing import Dict, Optional

from . import config as cfg


def _clamp_gene(value: float) -> float:
    return max(cfg.GENE_MIN, min(cfg.GENE_MAX, float(value)))


@dataclass
class Genetics:
    """Heritable trait vector. Every trait is a multiplier around 1.0, bounded to [GENE_MIN, GENE_MAX]."""
    speed: float = 1.0
    efficiency: float = 1.0
    size: float = 1.0
    fertility: float = 1.0
    immunity: float = 1.0
    lifespan: float = 1.0
    perception: float = 1.0
    camouflage: float = 1.0

    def __post_init__(self):
        for f in fields(self):
            setattr(self, f.name, _clamp_gene(getattr(self, f.name)))

    @classmethod
    def random(cls, rng) -> "Genetics":
        """Fresh genetics for a seed entity: each trait drawn independently."""
        return cls(**{key: rng.uniform(cfg.GENE_SEED_MIN, cfg.GENE_SEED_MAX) for key in cfg.TRAIT_KEYS})

    @classmethod
    def inherit(cls, parent_a: "Genetics", parent_b: Optional["Genetics"], rng) -> "Genetics":
        """
        Child trait = mean of both parents, then a MUTATION_CHANCE roll per trait
        for a uniform perturbation. A missing second parent means self-pollination.
        """
        if parent_b is None:
            parent_b = parent_a
        values = {}
        for key in cfg.TRAIT_KEYS:
            value = (getattr(parent_a, key) + getattr(parent_b, key)) / 2.0
            if rng.random() < cfg.MUTATION_CHANCE:
                value += rng.uniform(-cfg.MUTATION_AMOUNT, cfg.MUTATION_AMOUNT)
            values[key] = value
        return cls(**values)

    def copy(self) -> "Genetics":
        return Genetics(**self.to_dict())

    def fitness(self) -> float:
        """Mean of the survival-relevant traits; size is a trade-off and left out."""
        keys = [k for k in cfg.TRAIT_KEYS if k != 'size']
        return sum(getattr(self, k) for k in keys) / len(keys)

    def to_dict(self) -> Dict[str, float]:
        return {key: getattr(self, key) for key in cfg.TRAIT_KEYS}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "Genetics":
        missing = [k for k in cfg.TRAIT_KEYS if k not in data]
        if missing:
            raise ValueError(f"genetics missing traits: {', '.join(missing)}")
        return cls(**{k: float(data[k]) for k in cfg.TRAIT_KEYS})


NEUTRAL = Genetics()
