# ecosphere_engine/environment.py

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from . import config as cfg
from .disease import infect
from .entity import EntityType


class Season(Enum):
    SPRING = 'spring'
    SUMMER = 'summer'
    AUTUMN = 'autumn'
    WINTER = 'winter'


class Weather(Enum):
    CLEAR = 'clear'
    RAIN = 'rain'
    DROUGHT = 'drought'
    STORM = 'storm'


class DisasterKind(Enum):
    FIRE = 'fire'
    FLOOD = 'flood'
    OUTBREAK = 'outbreak'


@dataclass
class Disaster:
    kind: DisasterKind
    center: Tuple[int, int]
    radius: int
    remaining: int

    def to_dict(self):
        return {'kind': self.kind.value, 'center': list(self.center),
                'radius': self.radius, 'remaining': self.remaining}

    @classmethod
    def from_dict(cls, data):
        return cls(DisasterKind(data['kind']), tuple(int(c) for c in data['center']),
                   int(data['radius']), int(data['remaining']))


@dataclass
class Environment:
    """Day/season/weather clock plus the list of active disasters."""
    tick: int = 0
    weather: Weather = Weather.CLEAR
    weather_timer: int = cfg.WEATHER_DURATION_MIN
    disaster_cooldown: int = cfg.DISASTER_COOLDOWN
    disasters: List[Disaster] = field(default_factory=list)

    # --- Clock ---
    @property
    def hour(self) -> int:
        return self.tick % cfg.DAY_LENGTH

    @property
    def day(self) -> int:
        return self.tick // cfg.DAY_LENGTH

    @property
    def season(self) -> Season:
        return Season(cfg.SEASONS[(self.tick // cfg.SEASON_LENGTH) % len(cfg.SEASONS)])

    @property
    def is_daytime(self) -> bool:
        return cfg.DAWN_HOUR <= self.hour < cfg.DUSK_HOUR

    @property
    def daylight(self) -> float:
        return cfg.DAY_LIGHT_FACTOR if self.is_daytime else cfg.NIGHT_LIGHT_FACTOR

    def light_factor(self) -> float:
        """Combined daylight x season x weather multiplier for photosynthesis."""
        return self.daylight * cfg.SEASON_LIGHT[self.season.value] * cfg.WEATHER_LIGHT[self.weather.value]

    def upkeep_factor(self) -> float:
        return cfg.WINTER_UPKEEP_FACTOR if self.season is Season.WINTER else 1.0

    def move_factor(self) -> float:
        return cfg.STORM_MOVE_FACTOR if self.weather is Weather.STORM else 1.0

    def advance(self, rng, terrain=None, roll_weather=True):
        """
        Moves the clock one tick and re-rolls the weather when its timer runs out.
        Returns the new Weather on a change, else None.
        """
        self.tick += 1
        if not roll_weather:
            return None
        if terrain is not None:
            if self.weather is Weather.RAIN:
                terrain.adjust_moisture(cfg.RAIN_MOISTURE_GAIN)
            elif self.weather is Weather.DROUGHT:
                terrain.adjust_moisture(-cfg.DROUGHT_MOISTURE_LOSS)

        self.weather_timer -= 1
        if self.weather_timer > 0:
            return None
        previous = self.weather
        weights = cfg.WEATHER_WEIGHTS[self.season.value]
        self.weather = Weather(cfg.WEATHERS[int(rng.choice(len(cfg.WEATHERS), p=weights))])
        self.weather_timer = int(rng.integers(cfg.WEATHER_DURATION_MIN, cfg.WEATHER_DURATION_MAX + 1))
        return self.weather if self.weather is not previous else None

    # --- Disasters ---
    def update_disasters(self):
        """Counts active disasters down and drops expired ones. Returns the expired list."""
        expired = []
        for disaster in self.disasters:
            disaster.remaining -= 1
            if disaster.remaining <= 0:
                expired.append(disaster)
        self.disasters = [d for d in self.disasters if d.remaining > 0]
        if self.disaster_cooldown > 0:
            self.disaster_cooldown -= 1
        return expired

    def maybe_trigger(self, rng, width, height):
        """Random disaster once the cooldown has run out; drought doubles the fire odds."""
        if self.disaster_cooldown > 0:
            return None
        kinds = list(DisasterKind)
        chances = [cfg.DISASTER_CHANCE] * len(kinds)
        if self.weather is Weather.DROUGHT:
            chances[kinds.index(DisasterKind.FIRE)] *= cfg.DROUGHT_FIRE_MULTIPLIER
        roll = rng.random()
        for kind, chance in zip(kinds, chances):
            if roll < chance:
                center = (int(rng.integers(width)), int(rng.integers(height)))
                return self.start_disaster(kind, center, rng)
            roll -= chance
        return None

    def start_disaster(self, kind, center, rng, radius=None, duration=None):
        if radius is None:
            radius = int(rng.integers(cfg.DISASTER_RADIUS_MIN, cfg.DISASTER_RADIUS_MAX + 1))
        if duration is None:
            duration = int(rng.integers(cfg.DISASTER_DURATION_MIN, cfg.DISASTER_DURATION_MAX + 1))
        disaster = Disaster(DisasterKind(kind), (int(center[0]), int(center[1])), int(radius), int(duration))
        self.disasters.append(disaster)
        self.disaster_cooldown = cfg.DISASTER_COOLDOWN
        return disaster

    def to_dict(self):
        return {
            'tick': self.tick,
            'weather': self.weather.value,
            'weather_timer': self.weather_timer,
            'disaster_cooldown': self.disaster_cooldown,
            'disasters': [d.to_dict() for d in self.disasters],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            tick=int(data['tick']),
            weather=Weather(data['weather']),
            weather_timer=int(data['weather_timer']),
            disaster_cooldown=int(data['disaster_cooldown']),
            disasters=[Disaster.from_dict(d) for d in data.get('disasters', [])],
        )


def apply_disaster(world, disaster):
    """One tick of a disaster's area effect on terrain and occupants. Returns cells touched."""
    grid, terrain, rng = world.grid, world.terrain, world.rng
    cx, cy = disaster.center
    affected = 0
    for x, y in terrain.cells_in_radius(cx, cy, disaster.radius):
        if disaster.kind is DisasterKind.FIRE:
            terrain.wet(x, y, -cfg.FIRE_MOISTURE_LOSS)
            terrain.enrich(x, y, -cfg.FIRE_FERTILITY_LOSS)
        elif disaster.kind is DisasterKind.FLOOD:
            if terrain.elevation[x, y] >= cfg.FLOOD_LOW_ELEVATION:
                continue
            terrain.wet(x, y, cfg.FLOOD_MOISTURE_GAIN)
            terrain.enrich(x, y, cfg.FLOOD_FERTILITY_GAIN)

        for z in range(grid.depth):
            entity = grid.get((x, y, z))
            if entity is None:
                continue
            affected += 1
            if disaster.kind is DisasterKind.FIRE:
                if entity.kind == EntityType.PLANT:
                    if rng.random() < cfg.FIRE_BURN_CHANCE:
                        grid.convert_to_dead_matter(entity, cfg.FIRE_ASH_ENERGY, rng)
                elif entity.is_animal:
                    entity.energy -= cfg.FIRE_ANIMAL_DAMAGE
            elif disaster.kind is DisasterKind.FLOOD:
                if entity.is_animal:
                    entity.energy -= cfg.FLOOD_ANIMAL_DAMAGE
            elif disaster.kind is DisasterKind.OUTBREAK:
                if rng.random() < cfg.OUTBREAK_INFECTION_CHANCE:
                    infect(entity)
    return affected
