# ecosphere_engine/world.py

import copy
from collections import Counter, deque
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from . import config as cfg
from . import engine
from . import persistence
from .atmosphere import Atmosphere
from .disease import infect
from .entity import ANIMAL_KINDS, CLASSIC_KINDS, EntityType, LIVING_KINDS
from .environment import DisasterKind, Environment, apply_disaster
from .genetics import Genetics
from .grid import Grid
from .logger import log
from .spatial import SpatialQueries
from .stats import History, HistoryRecord, average_fitness, biodiversity, extinctions
from .terrain import Terrain

# Seeding order; plants first so grazers land beside food.
SEED_ORDER = [
    EntityType.PLANT, EntityType.HERBIVORE, EntityType.CARNIVORE, EntityType.DECOMPOSER,
    EntityType.OMNIVORE, EntityType.APEX_PREDATOR, EntityType.PARASITE,
]


@dataclass(frozen=True)
class Snapshot:
    """Read-only view handed to renderers; arrays are copies flagged non-writeable."""
    generation: int
    kinds: np.ndarray
    energy: np.ndarray
    terrain: np.ndarray
    populations: Dict[str, int]
    atmosphere: Dict[str, float]
    hour: int
    season: str
    weather: str
    disasters: Tuple[dict, ...]
    biodiversity: float
    average_fitness: float


def _frozen(array):
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


# ==============================================================================
# THE PYTHON WORLD CLASS: OWNS ALL STATE AND DRIVES THE TICK ENGINE
# ==============================================================================
class World:
    """Prepares initial conditions and advances the ecosystem one generation at a time."""

    def __init__(self, settings=None, seed=None, rng=None, populate=True):
        self.settings = settings if settings is not None else cfg.WorldSettings()
        self._initial_settings = copy.deepcopy(self.settings)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.events = deque(maxlen=cfg.EVENT_LOG_LENGTH)
        self._reset_state()
        if populate:
            self.populate()

    # --- Setup ---
    def _reset_state(self):
        s = self.settings
        self.generation = 0
        self.counters = Counter()
        self.grid = Grid(s.width, s.height, s.depth)
        if s.enable_terrain:
            self.terrain = Terrain.generate(s.width, s.height, seed=int(self.rng.integers(0, 10_000)))
        else:
            self.terrain = Terrain.flat(s.width, s.height)
        self.atmosphere = Atmosphere.from_o2(s.o2, s.sunlight)
        self.environment = Environment()
        self.history = History(s.history_interval, s.history_length)
        self.spatial = SpatialQueries(self.grid, self.terrain, self.rng, s.neighborhood, s.move_bias)
        self.populations = self.grid.populations()
        self.events.clear()

    def _log(self, message):
        if self.settings.verbose:
            log(message, self.generation)

    def record_event(self, message):
        self.events.append((self.generation, message))
        self._log(message)

    def _allowed_kinds(self):
        return CLASSIC_KINDS if self.settings.is_classic else tuple(EntityType)

    def _seed_genetics(self):
        return Genetics.random(self.rng) if self.settings.enable_genetics else None

    def _random_cell(self, kind):
        s = self.settings
        depth = min(s.depth, cfg.PLANT_MAX_LAYER + 1) if kind == EntityType.PLANT else s.depth
        return (int(self.rng.integers(s.width)), int(self.rng.integers(s.height)), int(self.rng.integers(depth)))

    def _try_seed(self, kind, pos):
        if not self.grid.in_bounds(pos) or not self.spatial.is_passable(pos, kind):
            return None
        if kind == EntityType.PLANT and pos[2] > cfg.PLANT_MAX_LAYER:
            return None
        return self.grid.spawn(kind, pos, self.rng, self._seed_genetics())

    def _seed_scattered(self, kind, count):
        placed = 0
        attempts = count * cfg.POPULATE_ATTEMPTS_PER_ENTITY
        while placed < count and attempts > 0:
            attempts -= 1
            if self._try_seed(kind, self._random_cell(kind)) is not None:
                placed += 1
        return placed

    def _seed_colonies(self, kind, count):
        """Places `count` entities in clusters around random centres."""
        s = self.settings
        placed = 0
        attempts = count * cfg.POPULATE_ATTEMPTS_PER_ENTITY
        while placed < count and attempts > 0:
            cx, cy, cz = self._random_cell(kind)
            for _ in range(s.colony_seed_size):
                if placed >= count or attempts <= 0:
                    break
                attempts -= 1
                dx, dy = self.rng.normal(0.0, s.colony_spread, size=2)
                pos = (int(round(cx + dx)), int(round(cy + dy)), cz)
                if self._try_seed(kind, pos) is not None:
                    placed += 1
        return placed

    def populate(self):
        """Clears the world and seeds it from the current settings. Resets generation and history."""
        s = self.settings
        self._reset_state()
        total_cells = s.width * s.height * s.depth
        allowed = self._allowed_kinds()

        for kind in SEED_ORDER:
            if kind not in allowed:
                continue
            fraction = cfg.density(s, kind.key)
            if fraction <= 0:
                continue
            if kind == EntityType.PLANT and not s.colony_seeding:
                # Plants cover the lit ground layers cell by cell.
                for z in range(min(s.depth, cfg.PLANT_MAX_LAYER + 1)):
                    for y in range(s.height):
                        for x in range(s.width):
                            if self.rng.random() < fraction * 1.5:
                                self._try_seed(kind, (x, y, z))
                continue
            count = int(total_cells * fraction)
            if s.colony_seeding:
                self._seed_colonies(kind, count)
            else:
                self._seed_scattered(kind, count)

        if s.enable_disease and s.initial_infection > 0:
            for entity in list(self.grid.entities.values()):
                if entity.kind in ANIMAL_KINDS and self.rng.random() < s.initial_infection:
                    infect(entity)

        self.populations = self.grid.populations()
        summary = ", ".join(f"{k}={v}" for k, v in self.populations.items() if v)
        self.record_event(f"Ecosystem initialized ({s.width}x{s.height}x{s.depth}): {summary or 'empty'}")
        if s.enable_terrain and s.verbose:
            for name, share in self.terrain.distribution().items():
                self._log(f"  {name}: {share * 100:.1f}% of cells")
        return self.populations

    def reset(self):
        """Restores the settings the world was built with and repopulates."""
        self.settings = copy.deepcopy(self._initial_settings)
        return self.populate()

    def apply_preset(self, name):
        """Loads a named preset's densities and atmosphere, then repopulates. Raises KeyError."""
        self.settings.apply_preset(name)
        self.record_event(f"Preset '{name}' applied")
        return self.populate()

    # --- The step ---
    def step(self):
        """Advances the simulation by exactly one generation."""
        s = self.settings
        env = self.environment
        self.counters = Counter()

        terrain = self.terrain if s.enable_terrain else None
        new_weather = env.advance(self.rng, terrain, roll_weather=s.enable_weather)
        if new_weather is not None:
            self.record_event(f"Weather changed to {new_weather.value} ({env.season.value})")

        if s.enable_disasters:
            disaster = env.maybe_trigger(self.rng, s.width, s.height)
            if disaster is not None:
                self.record_event(f"{disaster.kind.value.capitalize()} struck at {disaster.center} (radius {disaster.radius})")
        # Each disaster acts on exactly `remaining` ticks, then expires.
        for disaster in env.disasters:
            apply_disaster(self, disaster)
        for disaster in env.update_disasters():
            self.record_event(f"{disaster.kind.value.capitalize()} at {disaster.center} has ended")

        engine.tick_logic(self)
        self.atmosphere.rebalance()

        self.generation += 1
        self._record()
        return self.counters

    def _record(self):
        previous = self.populations
        self.populations = self.grid.populations()
        for key in extinctions(previous, self.populations):
            self.record_event(f"Warning: {key} population has gone extinct")
        if self.history.due(self.generation):
            self.history.append(HistoryRecord(
                generation=self.generation,
                populations=dict(self.populations),
                o2=self.atmosphere.o2,
                co2=self.atmosphere.co2,
                biodiversity=self.biodiversity,
                average_fitness=self.average_fitness,
            ))

    def run(self, generations, callback=None):
        """Steps `generations` times; `callback(world)` runs after each step."""
        for _ in range(generations):
            self.step()
            if callback is not None:
                callback(self)
        return self.populations

    # --- Direct cell tools ---
    def spawn_at(self, pos, kind):
        """Places a fresh entity if the cell is in bounds, empty and passable for `kind`."""
        if isinstance(kind, str):
            kind = EntityType.from_key(kind)
        kind = EntityType(kind)
        pos = tuple(int(c) for c in pos)
        if kind not in self._allowed_kinds() or not self.grid.in_bounds(pos):
            return None
        if not self.spatial.is_passable(pos, kind):
            return None
        entity = self.grid.spawn(kind, pos, self.rng, self._seed_genetics())
        if entity is not None:
            self.populations = self.grid.populations()
        return entity

    def kill_at(self, pos):
        """Removes whatever occupies the cell outright, leaving no residue."""
        pos = tuple(int(c) for c in pos)
        entity = self.grid.get(pos)
        if entity is None:
            return False
        if entity.kind == EntityType.PARASITE:
            engine.detach_parasite(self, entity)
        self.grid.remove(entity)
        self.populations = self.grid.populations()
        return True

    def trigger_disaster(self, kind, center=None, radius=None, duration=None):
        """Starts a disaster by hand; it takes effect from the next step. None if off-grid."""
        kind = DisasterKind(kind.value if isinstance(kind, DisasterKind) else str(kind).lower())
        s = self.settings
        if center is None:
            center = (int(self.rng.integers(s.width)), int(self.rng.integers(s.height)))
        if not self.terrain.in_bounds(center[0], center[1]):
            return None
        disaster = self.environment.start_disaster(kind, center, self.rng, radius, duration)
        self.record_event(f"{kind.value.capitalize()} triggered at {disaster.center} (radius {disaster.radius})")
        return disaster

    # --- Persistence ---
    def save_state(self):
        return persistence.save_state(self)

    def load_state(self, blob):
        return persistence.load_state(self, blob)

    def restore(self, parts):
        """Swaps in components decoded by the persistence layer."""
        self.settings = parts['settings']
        self.generation = parts['generation']
        self.grid = parts['grid']
        self.terrain = parts['terrain']
        self.atmosphere = parts['atmosphere']
        self.environment = parts['environment']
        self.history = parts['history']
        if parts['rng'] is not None:
            self.rng = parts['rng']
        s = self.settings
        self.spatial = SpatialQueries(self.grid, self.terrain, self.rng, s.neighborhood, s.move_bias)
        self.populations = self.grid.populations()
        self.counters = Counter()

    # --- Read-only accessors ---
    @property
    def biodiversity(self):
        return biodiversity(self.populations)

    @property
    def average_fitness(self):
        return average_fitness(self.grid.entities.values())

    @property
    def living_count(self):
        return sum(self.populations.get(k.key, 0) for k in LIVING_KINDS)

    def snapshot(self) -> Snapshot:
        energy = np.zeros(self.grid.shape, dtype=np.float64)
        for entity in self.grid.entities.values():
            energy[entity.pos] = entity.energy
        env = self.environment
        return Snapshot(
            generation=self.generation,
            kinds=_frozen(self.grid.kinds),
            energy=_frozen(energy),
            terrain=_frozen(self.terrain.types),
            populations=dict(self.populations),
            atmosphere=self.atmosphere.to_dict(),
            hour=env.hour,
            season=env.season.value,
            weather=env.weather.value,
            disasters=tuple(d.to_dict() for d in env.disasters),
            biodiversity=self.biodiversity,
            average_fitness=self.average_fitness,
        )
