# --- ECOSPHERE CONSTANTS: TUNED RATES, SPECIES PROFILES AND PRESETS ---

from dataclasses import dataclass, field, asdict
from typing import Dict

# World & Performance Parameters
CLASSIC_GRID_SIZE = 14; CLASSIC_HEIGHT_LAYERS = 5
DEFAULT_WIDTH = 48; DEFAULT_HEIGHT = 48; DEFAULT_DEPTH = 1
MAX_ENERGY = 250.0           # Hard cap applied after every energy gain
POPULATE_ATTEMPTS_PER_ENTITY = 50

# Atmosphere (percentages, 0-100) and light (1-10)
GAS_MIN = 0.0; GAS_MAX = 100.0
SUNLIGHT_MIN = 0.0; SUNLIGHT_MAX = 10.0
DEFAULT_O2 = 50.0; DEFAULT_SUNLIGHT = 5.0
O2_BREATHING_THRESHOLD = 10.0   # Below this, animals suffocate
CO2_PHOTOSYNTHESIS_THRESHOLD = 5.0

# --- PLANT PHYSIOLOGY ---
PHOTOSYNTHESIS_RATE = 0.3       # Energy per unit of sunlight
PHOTOSYNTHESIS_CO2_USE = 0.05; PHOTOSYNTHESIS_O2_RELEASE = 0.08
CO2_STARVATION_PENALTY = 1.0
FULL_LIGHT_LAYERS = 2           # Layers below this get full light
LIGHT_FALLOFF = 0.3
PLANT_MAX_LAYER = 1             # Plants only spread into layers z <= 1
PLANT_SPREAD_RADIUS = 3         # A neighbour plant must be this close to seed
PLANT_POLLEN_COST = 5.0         # Paid by the pollinating mate
COLONY_BONUS_PER_NEIGHBOUR = 0.05; COLONY_BONUS_MAX_NEIGHBOURS = 4

# --- ANIMAL BEHAVIOUR ---
PREY_RESIDUE_ENERGY = 15.0      # DeadMatter left behind by a successful hunt
PACK_BONUS_PER_MEMBER = 0.1; PACK_BONUS_MAX_MEMBERS = 3; PACK_RADIUS = 2
HUNT_PROBABILITY_MIN = 0.05; HUNT_PROBABILITY_MAX = 0.95
THREAT_RANGE = 3; FOOD_RANGE = 4
MATE_RADIUS = 2
MATE_ENERGY_FACTOR = 0.6        # Mate needs this fraction of its own threshold
MATE_COST_FACTOR = 0.5          # Mate pays this fraction of the reproduction cost
MOVE_JITTER = 0.5; TRAIL_PENALTY = 0.5
TRAIL_LENGTH = 8
STORM_MOVE_FACTOR = 0.5
WINTER_UPKEEP_FACTOR = 1.2

# --- DECOMPOSITION ---
DECOMPOSER_YIELD = 0.6
DECOMPOSITION_CO2_RELEASE = 0.5
DECOMPOSITION_FERTILITY_GAIN = 0.05
DECAY_RATE = 0.5
DECAY_CO2_PER_TICK = 0.01; DECAY_CO2_ON_REMOVAL = 0.2
DECAY_FERTILITY_GAIN = 0.02
DECOMPOSER_CLUSTER_BONUS = 0.1; DECOMPOSER_CLUSTER_RADIUS = 2

# --- PARASITES ---
PARASITE_MAX_PER_HOST = 2
PARASITE_DRAIN = 1.5; PARASITE_DRAIN_EFFICIENCY = 0.8
PARASITE_VECTOR_CHANCE = 0.02
PARASITE_HOST_RANGE = 3

# --- LIFECYCLE ---
JUVENILE_AGE_RATIO = 0.15; ELDER_AGE_RATIO = 0.75
STAGE_SPEED = {'juvenile': 0.8, 'adult': 1.0, 'elder': 0.7}
STAGE_SIZE = {'juvenile': 0.6, 'adult': 1.0, 'elder': 0.9}

# --- GENETICS (8 traits) ---
GENE_MIN = 0.3; GENE_MAX = 2.0
GENE_SEED_MIN = 0.8; GENE_SEED_MAX = 1.2
MUTATION_CHANCE = 0.2
MUTATION_AMOUNT = 0.15
TRAIT_KEYS = [
    'speed', 'efficiency', 'size', 'fertility',
    'immunity', 'lifespan', 'perception', 'camouflage',
]

# --- DISEASE ---
DISEASE_DAMAGE = 0.8
DISEASE_TRANSMISSION = 0.15
DISEASE_DURATION = 20
IMMUNITY_DURATION = 40
DISEASE_SPONTANEOUS_CHANCE = 0.0005

# --- TIME, SEASONS & WEATHER ---
DAY_LENGTH = 24; DAWN_HOUR = 6; DUSK_HOUR = 18
DAY_LIGHT_FACTOR = 1.2; NIGHT_LIGHT_FACTOR = 0.6
SEASON_LENGTH = 60
SEASONS = ['spring', 'summer', 'autumn', 'winter']
SEASON_LIGHT = {'spring': 1.1, 'summer': 1.25, 'autumn': 0.9, 'winter': 0.6}
WEATHERS = ['clear', 'rain', 'drought', 'storm']
WEATHER_WEIGHTS = {
    'spring': [0.45, 0.35, 0.05, 0.15],
    'summer': [0.50, 0.15, 0.25, 0.10],
    'autumn': [0.45, 0.30, 0.10, 0.15],
    'winter': [0.55, 0.20, 0.05, 0.20],
}
WEATHER_LIGHT = {'clear': 1.0, 'rain': 0.9, 'drought': 0.8, 'storm': 0.6}
WEATHER_DURATION_MIN = 10; WEATHER_DURATION_MAX = 30
RAIN_MOISTURE_GAIN = 0.002; DROUGHT_MOISTURE_LOSS = 0.002

# --- DISASTERS ---
DISASTER_COOLDOWN = 50
DISASTER_CHANCE = 0.01
DROUGHT_FIRE_MULTIPLIER = 2.0
DISASTER_RADIUS_MIN = 2; DISASTER_RADIUS_MAX = 4
DISASTER_DURATION_MIN = 3; DISASTER_DURATION_MAX = 8
FIRE_BURN_CHANCE = 0.3; FIRE_ASH_ENERGY = 10.0; FIRE_ANIMAL_DAMAGE = 5.0
FIRE_MOISTURE_LOSS = 0.05; FIRE_FERTILITY_LOSS = 0.02
FLOOD_MOISTURE_GAIN = 0.05; FLOOD_FERTILITY_GAIN = 0.01
FLOOD_ANIMAL_DAMAGE = 3.0; FLOOD_LOW_ELEVATION = 0.4
OUTBREAK_INFECTION_CHANCE = 0.5

# --- TERRAIN ---
TERRAIN_NOISE_SCALE = 0.12
TERRAIN_NOISE_OCTAVES = 4
TERRAIN_WATER_LEVEL = 0.18; TERRAIN_MOUNTAIN_LEVEL = 0.85
TERRAIN_FERTILE_MOISTURE = 0.6; TERRAIN_BARREN_MOISTURE = 0.3
MOVE_ENERGY_COST = 0.1

# --- STATISTICS & HISTORY ---
HISTORY_INTERVAL = 5
HISTORY_LENGTH = 200
EVENT_LOG_LENGTH = 50
TICKER_INTERVAL = 100

# --- PERSISTENCE ---
SAVE_FORMAT_VERSION = "1.0"

# --- SPECIES PROFILES ---
# energy/max_age bands are (base, spread): value = base + U(0, 1) * spread.
# Keys absent from a profile mean the behaviour does not apply to that kind.
SPECIES = {
    'plant': {
        'energy': (50.0, 30.0), 'max_age': (80.0, 40.0),
        'upkeep': 0.3, 'residue': 20.0,
        'repro_energy': 80.0, 'repro_chance': 0.08, 'repro_cost': 30.0, 'cooldown': 5,
    },
    'herbivore': {
        'energy': (70.0, 40.0), 'max_age': (60.0, 30.0),
        'upkeep': 0.8, 'residue': 35.0,
        'o2_use': 0.03, 'co2_release': 0.02, 'suffocation': 5.0,
        'move_chance': 0.4, 'satiation': 100.0,
        'repro_energy': 90.0, 'repro_chance': 0.05, 'repro_cost': 40.0, 'cooldown': 8,
        'graze_cap': 25.0,
    },
    'carnivore': {
        'energy': (100.0, 50.0), 'max_age': (50.0, 25.0),
        'upkeep': 1.2, 'residue': 40.0,
        'o2_use': 0.04, 'co2_release': 0.03, 'suffocation': 6.0,
        'move_chance': 0.6, 'satiation': 120.0,
        'repro_energy': 110.0, 'repro_chance': 0.03, 'repro_cost': 50.0, 'cooldown': 12,
        'hunt_chance': 0.7, 'hunt_yield': 0.8, 'hunt_cap': 50.0,
    },
    'decomposer': {
        'energy': (40.0, 20.0), 'max_age': (100.0, 50.0),
        'upkeep': 0.4,
        'o2_use': 0.01, 'co2_release': 0.02,
        'move_chance': 0.2,
        'repro_energy': 60.0, 'repro_chance': 0.04, 'repro_cost': 25.0, 'cooldown': 6,
    },
    'dead_matter': {
        'energy': (30.0, 20.0), 'max_age': (20.0, 10.0),
    },
    'omnivore': {
        'energy': (80.0, 40.0), 'max_age': (60.0, 30.0),
        'upkeep': 1.0, 'residue': 38.0,
        'o2_use': 0.035, 'co2_release': 0.025, 'suffocation': 5.0,
        'move_chance': 0.5, 'satiation': 110.0,
        'repro_energy': 100.0, 'repro_chance': 0.04, 'repro_cost': 45.0, 'cooldown': 10,
        'hunt_chance': 0.4, 'hunt_yield': 0.7, 'hunt_cap': 40.0, 'graze_cap': 20.0,
    },
    'apex_predator': {
        'energy': (130.0, 50.0), 'max_age': (70.0, 30.0),
        'upkeep': 1.5, 'residue': 50.0,
        'o2_use': 0.05, 'co2_release': 0.04, 'suffocation': 7.0,
        'move_chance': 0.65, 'satiation': 150.0,
        'repro_energy': 140.0, 'repro_chance': 0.02, 'repro_cost': 60.0, 'cooldown': 15,
        'hunt_chance': 0.75, 'hunt_yield': 0.8, 'hunt_cap': 70.0,
    },
    'parasite': {
        'energy': (20.0, 15.0), 'max_age': (40.0, 20.0),
        'upkeep': 0.2,
        'o2_use': 0.005, 'co2_release': 0.005, 'suffocation': 2.0,
        'move_chance': 0.3,
        'repro_energy': 30.0, 'repro_chance': 0.05, 'repro_cost': 12.0, 'cooldown': 6,
    },
}

# Feeding and fear relations, by species key.
DIET = {
    'herbivore': ['plant'],
    'carnivore': ['herbivore', 'omnivore'],
    'omnivore': ['herbivore', 'plant'],
    'apex_predator': ['carnivore', 'omnivore', 'herbivore'],
    'decomposer': ['dead_matter'],
}
THREATS = {
    'herbivore': ['carnivore', 'omnivore', 'apex_predator'],
    'omnivore': ['carnivore', 'apex_predator'],
    'carnivore': ['apex_predator'],
}

# --- PRESETS ---
# Density keys are fractions of the relevant cell count; o2 sets co2 = 100 - o2.
PRESETS = {
    'balanced': {
        'densities': {'plant': 0.15, 'herbivore': 0.05, 'carnivore': 0.02, 'decomposer': 0.03,
                      'omnivore': 0.015, 'apex_predator': 0.004, 'parasite': 0.01},
        'o2': 50.0, 'sunlight': 5.0,
    },
    'jungle': {
        'densities': {'plant': 0.25, 'herbivore': 0.08, 'carnivore': 0.01, 'decomposer': 0.04,
                      'omnivore': 0.02, 'apex_predator': 0.002, 'parasite': 0.01},
        'o2': 60.0, 'sunlight': 8.0,
    },
    'predator': {
        'densities': {'plant': 0.10, 'herbivore': 0.06, 'carnivore': 0.05, 'decomposer': 0.02,
                      'omnivore': 0.02, 'apex_predator': 0.01, 'parasite': 0.005},
        'o2': 45.0, 'sunlight': 4.0,
    },
    'barren': {
        'densities': {'plant': 0.05, 'herbivore': 0.02, 'carnivore': 0.01, 'decomposer': 0.01,
                      'omnivore': 0.005, 'apex_predator': 0.0, 'parasite': 0.0},
        'o2': 30.0, 'sunlight': 3.0,
    },
    'outbreak': {
        'densities': {'plant': 0.18, 'herbivore': 0.07, 'carnivore': 0.02, 'decomposer': 0.03,
                      'omnivore': 0.02, 'apex_predator': 0.004, 'parasite': 0.03},
        'o2': 50.0, 'sunlight': 5.0,
        'initial_infection': 0.1,
    },
    'extinction': {
        'densities': {'plant': 0.04, 'herbivore': 0.06, 'carnivore': 0.06, 'decomposer': 0.01,
                      'omnivore': 0.02, 'apex_predator': 0.015, 'parasite': 0.02},
        'o2': 20.0, 'sunlight': 2.0,
    },
}
CLASSIC_PRESETS = ['balanced', 'jungle', 'predator', 'barren']


def _default_densities():
    return dict(PRESETS['balanced']['densities'])


@dataclass
class WorldSettings:
    """Runtime-adjustable knobs of a world; the tuned rates above stay module constants."""
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    depth: int = DEFAULT_DEPTH
    densities: Dict[str, float] = field(default_factory=_default_densities)
    o2: float = DEFAULT_O2
    sunlight: float = DEFAULT_SUNLIGHT
    move_bias: float = 0.6
    neighborhood: str = 'moore'          # 'moore' or 'von_neumann'
    plant_spread_radius: int = PLANT_SPREAD_RADIUS   # 0 lets isolated plants seed
    enable_terrain: bool = True
    enable_genetics: bool = True
    enable_lifecycle: bool = True
    enable_disease: bool = True
    enable_disasters: bool = True
    enable_weather: bool = True
    colony_seeding: bool = True
    colony_seed_size: int = 6            # Entities per colony centre
    colony_spread: float = 2.0           # Std-dev of placement around a centre
    initial_infection: float = 0.0
    history_interval: int = HISTORY_INTERVAL
    history_length: int = HISTORY_LENGTH
    verbose: bool = True

    @classmethod
    def classic(cls, **overrides) -> "WorldSettings":
        """The original 14x14x5 voxel world: five kinds and no extended systems."""
        densities = {k: v for k, v in PRESETS['balanced']['densities'].items()
                     if k in ('plant', 'herbivore', 'carnivore', 'decomposer')}
        values = dict(
            width=CLASSIC_GRID_SIZE, height=CLASSIC_GRID_SIZE, depth=CLASSIC_HEIGHT_LAYERS,
            densities=densities, plant_spread_radius=0, move_bias=0.0,
            enable_terrain=False, enable_genetics=False, enable_lifecycle=False,
            enable_disease=False, enable_disasters=False, enable_weather=False,
            colony_seeding=False,
        )
        values.update(overrides)
        return cls(**values)

    @property
    def is_classic(self) -> bool:
        return not (self.enable_terrain or self.enable_genetics or self.enable_lifecycle
                    or self.enable_disease or self.enable_disasters or self.enable_weather)

    def apply_preset(self, name: str) -> dict:
        """Copies a preset's densities and atmosphere into these settings. Raises KeyError."""
        preset = PRESETS[name]
        densities = dict(preset['densities'])
        if self.is_classic:
            densities = {k: v for k, v in densities.items()
                         if k in ('plant', 'herbivore', 'carnivore', 'decomposer')}
        self.densities = densities
        self.o2 = preset['o2']
        self.sunlight = preset['sunlight']
        self.initial_infection = preset.get('initial_infection', 0.0)
        return preset

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, strict: bool = False) -> "WorldSettings":
        known = cls.__dataclass_fields__
        unknown = [k for k in data if k not in known]
        if strict and unknown:
            raise ValueError(f"unknown settings: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


def preset_names(classic: bool = False) -> list:
    return list(CLASSIC_PRESETS) if classic else list(PRESETS)


def density(settings: WorldSettings, key: str) -> float:
    return float(settings.densities.get(key, 0.0))


