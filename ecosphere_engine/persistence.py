# ecosphere_engine/persistence.py

import json
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from . import config as cfg
from .atmosphere import Atmosphere
from .entity import Entity, EntityType, LifeStage
from .environment import Environment
from .genetics import Genetics
from .grid import Grid
from .logger import log
from .stats import History, HistoryRecord
from .terrain import Terrain


@dataclass
class LoadResult:
    ok: bool
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def __bool__(self):
        return self.ok


def entity_to_dict(entity: Entity) -> dict:
    return {
        'uid': entity.uid,
        'kind': entity.kind.key,
        'pos': [entity.x, entity.y, entity.z],
        'energy': entity.energy,
        'max_age': entity.max_age,
        'age': entity.age,
        'stage': entity.stage.value,
        'genetics': entity.genetics.to_dict() if entity.genetics is not None else None,
        'repro_cooldown': entity.repro_cooldown,
        'infected': entity.infected,
        'infection_timer': entity.infection_timer,
        'immune': entity.immune,
        'immunity_timer': entity.immunity_timer,
        'host_uid': entity.host_uid,
        'parasite_count': entity.parasite_count,
    }


def entity_from_dict(data: dict) -> Entity:
    x, y, z = (int(c) for c in data['pos'])
    genetics = data.get('genetics')
    host_uid = data.get('host_uid')
    return Entity(
        uid=int(data['uid']),
        kind=EntityType.from_key(data['kind']),
        x=x, y=y, z=z,
        energy=float(data['energy']),
        max_age=float(data['max_age']),
        age=int(data['age']),
        stage=LifeStage(data['stage']),
        genetics=Genetics.from_dict(genetics) if genetics is not None else None,
        repro_cooldown=int(data.get('repro_cooldown', 0)),
        infected=bool(data.get('infected', False)),
        infection_timer=int(data.get('infection_timer', 0)),
        immune=bool(data.get('immune', False)),
        immunity_timer=int(data.get('immunity_timer', 0)),
        host_uid=int(host_uid) if host_uid is not None else None,
        parasite_count=int(data.get('parasite_count', 0)),
    )


def encode_world(world) -> dict:
    """Everything needed to resume a world; trails are not kept."""
    return {
        'version': cfg.SAVE_FORMAT_VERSION,
        'generation': world.generation,
        'settings': world.settings.to_dict(),
        'atmosphere': world.atmosphere.to_dict(),
        'environment': world.environment.to_dict(),
        'terrain': world.terrain.to_dict(),
        'next_uid': world.grid.next_uid,
        'entities': [entity_to_dict(e) for e in world.grid.entities.values()],
        'history': [r.to_dict() for r in world.history],
        'rng_state': world.rng.bit_generator.state,
    }


def save_state(world) -> str:
    return json.dumps(encode_world(world))


def _section(data, key, kind, default=None):
    value = data.get(key, default) if default is not None else data[key]
    if not isinstance(value, kind):
        raise TypeError(f"'{key}' must be a {kind.__name__}, got {type(value).__name__}")
    return value


def _records(data, key, default=None):
    """A list section whose every entry is an object."""
    entries = _section(data, key, list, default)
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise TypeError(f"'{key}[{i}]' must be a dict, got {type(entry).__name__}")
    return entries


def decode_world(data: dict):
    """
    Builds every component from a decoded save without touching a live world.
    Raises KeyError/ValueError/TypeError/IndexError/AttributeError on malformed input.
    """
    settings = cfg.WorldSettings.from_dict(_section(data, 'settings', dict))
    terrain = Terrain.from_dict(_section(data, 'terrain', dict))
    if terrain.shape != (settings.width, settings.height):
        raise ValueError(f"terrain shape {terrain.shape} does not match {settings.width}x{settings.height}")
    atmosphere = Atmosphere(**_section(data, 'atmosphere', dict))
    environment = Environment.from_dict(_section(data, 'environment', dict))

    grid = Grid(settings.width, settings.height, settings.depth)
    for entry in _records(data, 'entities'):
        grid.place(entity_from_dict(entry))
    grid.next_uid = max(grid.next_uid, int(data.get('next_uid', 0)))

    history = History(settings.history_interval, settings.history_length)
    for entry in _records(data, 'history', default=[]):
        history.append(HistoryRecord.from_dict(entry))

    rng = None
    if data.get('rng_state') is not None:
        rng = np.random.default_rng()
        rng.bit_generator.state = data['rng_state']

    return {
        'generation': int(data['generation']),
        'settings': settings,
        'terrain': terrain,
        'atmosphere': atmosphere,
        'environment': environment,
        'grid': grid,
        'history': history,
        'rng': rng,
    }


def load_state(world, blob) -> LoadResult:
    """
    All-or-nothing restore: the blob is parsed into fresh components first and the
    world is only touched once that succeeds. A version mismatch is a warning.
    """
    warnings = []
    try:
        data = json.loads(blob) if isinstance(blob, (str, bytes, bytearray)) else blob
        if not isinstance(data, dict):
            raise TypeError(f"save data must be an object, got {type(data).__name__}")
        version = data.get('version')
        if version != cfg.SAVE_FORMAT_VERSION:
            warnings.append(f"save version {version!r} differs from {cfg.SAVE_FORMAT_VERSION!r}; loading anyway")
        parts = decode_world(data)
    except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
        return LoadResult(ok=False, error=f"{type(e).__name__}: {e}")

    world.restore(parts)
    if world.settings.verbose:
        for warning in warnings:
            log(f"Warning: {warning}", world.generation)
    return LoadResult(ok=True, warnings=warnings)
