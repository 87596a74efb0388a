import pytest

from ecosphere_engine.config import WorldSettings
from ecosphere_engine.world import World


def classic_world(width=10, height=10, depth=1, seed=0, **overrides):
    """An empty classic-rules world; tests place entities by hand."""
    settings = WorldSettings.classic(width=width, height=height, depth=depth,
                                     densities={}, verbose=False, **overrides)
    return World(settings, seed=seed, populate=False)


def place(world, kind, pos, energy=None, max_age=10_000, age=0):
    """Spawns an entity and pins its energy/max age so outcomes are predictable."""
    entity = world.spawn_at(pos, kind)
    assert entity is not None, f"could not place {kind} at {pos}"
    if energy is not None:
        entity.energy = float(energy)
    entity.max_age = float(max_age)
    entity.age = age
    return entity


@pytest.fixture
def empty_world():
    return classic_world()


@pytest.fixture
def small_world():
    """A populated complete-rules world, small enough to step quickly."""
    settings = WorldSettings(width=20, height=20, verbose=False, history_interval=5)
    return World(settings, seed=1234)

