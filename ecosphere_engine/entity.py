# ecosphere_engine/entity.py

from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Tuple

from . import config as cfg
from .genetics import Genetics, NEUTRAL

Position = Tuple[int, int, int]


class EntityType(IntEnum):
    """Closed set of occupant kinds. Values are the codes stored in the kind grid."""
    PLANT = 0
    HERBIVORE = 1
    CARNIVORE = 2
    DECOMPOSER = 3
    DEAD_MATTER = 4
    OMNIVORE = 5
    APEX_PREDATOR = 6
    PARASITE = 7

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def profile(self) -> dict:
        return cfg.SPECIES[self.key]

    @classmethod
    def from_key(cls, key: str) -> "EntityType":
        return cls[key.upper()]


EMPTY = -1
LIVING_KINDS = tuple(k for k in EntityType if k != EntityType.DEAD_MATTER)
ANIMAL_KINDS = (EntityType.HERBIVORE, EntityType.CARNIVORE, EntityType.OMNIVORE, EntityType.APEX_PREDATOR)
CLASSIC_KINDS = (EntityType.PLANT, EntityType.HERBIVORE, EntityType.CARNIVORE,
                 EntityType.DECOMPOSER, EntityType.DEAD_MATTER)
# Kinds that leave no DeadMatter when they die.
VANISHING_KINDS = (EntityType.DECOMPOSER, EntityType.PARASITE, EntityType.DEAD_MATTER)


class LifeStage(Enum):
    JUVENILE = 'juvenile'
    ADULT = 'adult'
    ELDER = 'elder'

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER = [LifeStage.JUVENILE, LifeStage.ADULT, LifeStage.ELDER]


def stage_for_age(age: int, max_age: float) -> LifeStage:
    ratio = age / max_age if max_age > 0 else 1.0
    if ratio < cfg.JUVENILE_AGE_RATIO:
        return LifeStage.JUVENILE
    if ratio < cfg.ELDER_AGE_RATIO:
        return LifeStage.ADULT
    return LifeStage.ELDER


@dataclass
class Entity:
    uid: int
    kind: EntityType
    x: int
    y: int
    z: int
    energy: float
    max_age: float
    age: int = 0
    stage: LifeStage = LifeStage.JUVENILE
    genetics: Optional[Genetics] = None
    repro_cooldown: int = 0
    infected: bool = False
    infection_timer: int = 0
    immune: bool = False
    immunity_timer: int = 0
    host_uid: Optional[int] = None
    parasite_count: int = 0
    trail: deque = field(default_factory=lambda: deque(maxlen=cfg.TRAIL_LENGTH))

    @property
    def pos(self) -> Position:
        return (self.x, self.y, self.z)

    @property
    def traits(self) -> Genetics:
        """The entity's genetics, or the neutral vector when genetics are off."""
        return self.genetics if self.genetics is not None else NEUTRAL

    @property
    def is_alive(self) -> bool:
        return self.kind != EntityType.DEAD_MATTER

    @property
    def is_animal(self) -> bool:
        return self.kind in ANIMAL_KINDS

    def should_die(self) -> bool:
        return self.energy <= 0 or self.age > self.max_age

    def advance_stage(self):
        """Recomputes the lifecycle stage from age; stages never regress."""
        stage = stage_for_age(self.age, self.max_age)
        if stage.rank > self.stage.rank:
            self.stage = stage
        return self.stage

    def gain(self, amount: float):
        self.energy = min(cfg.MAX_ENERGY, self.energy + amount)


def create_entity(uid: int, kind: EntityType, pos: Position, rng, genetics: Optional[Genetics] = None) -> Entity:
    """Builds a fresh entity with energy and max age sampled from its species band."""
    profile = kind.profile
    base_energy, energy_spread = profile['energy']
    base_age, age_spread = profile['max_age']
    energy = base_energy + rng.random() * energy_spread
    max_age = base_age + rng.random() * age_spread
    if genetics is not None:
        max_age *= genetics.lifespan
    x, y, z = pos
    return Entity(uid=uid, kind=kind, x=int(x), y=int(y), z=int(z),
                  energy=energy, max_age=max_age, genetics=genetics)
