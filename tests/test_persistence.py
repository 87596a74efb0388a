import json

import numpy as np
import pytest

from ecosphere_engine import config as cfg
from ecosphere_engine.persistence import entity_to_dict
from ecosphere_engine.world import World

from conftest import classic_world


def fresh_world(seed=0):
    return World(cfg.WorldSettings(width=12, height=12, verbose=False), seed=seed, populate=False)


def test_round_trip_restores_the_world(small_world):
    small_world.run(7)
    blob = small_world.save_state()

    other = fresh_world()
    result = other.load_state(blob)
    assert result.ok
    assert result.warnings == []
    assert other.generation == 7
    assert other.populations == small_world.populations
    assert other.atmosphere == small_world.atmosphere
    assert other.environment == small_world.environment
    assert np.array_equal(other.grid.kinds, small_world.grid.kinds)
    assert np.array_equal(other.terrain.moisture, small_world.terrain.moisture)
    assert [r.generation for r in other.history] == [5]

    originals = {uid: entity_to_dict(e) for uid, e in small_world.grid.entities.items()}
    restored = {uid: entity_to_dict(e) for uid, e in other.grid.entities.items()}
    assert restored == originals


def test_loaded_worlds_continue_identically(small_world):
    small_world.run(4)
    blob = small_world.save_state()
    a, b = fresh_world(1), fresh_world(2)
    assert a.load_state(blob) and b.load_state(blob)
    a.run(6)
    b.run(6)
    assert a.populations == b.populations
    assert np.array_equal(a.grid.kinds, b.grid.kinds)


def test_new_uids_never_collide_after_load(small_world):
    small_world.run(3)
    other = fresh_world()
    other.load_state(small_world.save_state())
    assert other.grid.next_uid > max(other.grid.entities, default=-1)


def test_truncated_blob_leaves_world_untouched():
    world = classic_world(6, 6)
    world.run(2)
    grid = world.grid
    result = world.load_state('{"version": "1.0", "generation": ')
    assert not result.ok
    assert 'JSONDecodeError' in result.error
    assert world.grid is grid
    assert world.generation == 2


def test_out_of_bounds_entity_rejects_whole_load(small_world):
    data = json.loads(small_world.save_state())
    data['entities'][0]['pos'] = [999, 0, 0]
    target = classic_world(6, 6)
    result = target.load_state(json.dumps(data))
    assert not result.ok
    assert target.settings.width == 6
    assert target.populations == target.grid.populations()


def test_missing_section_is_reported():
    world = classic_world(4, 4)
    data = json.loads(world.save_state())
    del data['terrain']
    result = world.load_state(data)
    assert not result.ok
    assert 'terrain' in result.error


def test_section_of_the_wrong_shape_is_reported():
    world = classic_world(4, 4)
    data = json.loads(world.save_state())
    data['settings'] = [1, 2]
    result = world.load_state(data)
    assert not result.ok
    assert 'settings' in result.error
    assert world.settings.width == 4


def test_malformed_history_record_is_reported():
    world = classic_world(4, 4)
    world.run(2)
    data = json.loads(world.save_state())
    data['history'] = [{'generation': 5, 'populations': [], 'o2': 20.0, 'co2': 1.0,
                        'biodiversity': 0.0, 'average_fitness': 0.0}]
    result = world.load_state(data)
    assert not result.ok
    assert world.generation == 2


def test_non_dict_entity_entry_is_reported():
    world = classic_world(4, 4)
    data = json.loads(world.save_state())
    data['entities'] = ['plant']
    result = world.load_state(data)
    assert not result.ok
    assert 'entities[0]' in result.error


def test_non_object_blob_is_rejected():
    world = classic_world(4, 4)
    assert not world.load_state('[1, 2, 3]')


def test_version_mismatch_only_warns():
    world = classic_world(4, 4)
    data = json.loads(world.save_state())
    data['version'] = '0.9'
    result = world.load_state(data)
    assert result.ok
    assert len(result.warnings) == 1
    assert '0.9' in result.warnings[0]


def test_rng_state_is_carried_over():
    world = classic_world(4, 4, seed=11)
    blob = world.save_state()
    expected = world.rng.random(3)
    other = fresh_world()
    other.load_state(blob)
    assert other.rng.random(3) == pytest.approx(expected)
