import numpy as np
import pytest

from ecosphere_engine import terrain as tr


def test_noise_is_normalised_and_deterministic():
    a = tr.generate_noise(20, 15, 0.1, 4, 7)
    b = tr.generate_noise(20, 15, 0.1, 4, 7)
    assert a.shape == (20, 15)
    assert np.array_equal(a, b)
    assert a.min() == pytest.approx(0.0)
    assert a.max() == pytest.approx(1.0)


def test_generated_terrain_uses_known_types():
    terrain = tr.Terrain.generate(40, 30, seed=12)
    assert terrain.shape == (40, 30)
    assert set(np.unique(terrain.types)) <= {tr.TERRAIN_NORMAL, tr.TERRAIN_WATER, tr.TERRAIN_MOUNTAIN,
                                             tr.TERRAIN_FERTILE, tr.TERRAIN_BARREN}
    for field in (terrain.fertility, terrain.moisture, terrain.elevation):
        assert field.min() >= 0.0 and field.max() <= 1.0
    assert sum(terrain.distribution().values()) == pytest.approx(1.0)


def test_different_seeds_give_different_maps():
    a = tr.Terrain.generate(30, 30, seed=1)
    b = tr.Terrain.generate(30, 30, seed=2)
    assert not np.array_equal(a.elevation, b.elevation)


def test_classification_thresholds():
    elevation = np.array([[0.1, 0.9, 0.5, 0.5, 0.5]])
    moisture = np.array([[0.5, 0.5, 0.7, 0.2, 0.45]])
    types = tr.classify_terrain(elevation, moisture, 0.18, 0.85, 0.6, 0.3)
    assert list(types[0]) == [tr.TERRAIN_WATER, tr.TERRAIN_MOUNTAIN, tr.TERRAIN_FERTILE,
                              tr.TERRAIN_BARREN, tr.TERRAIN_NORMAL]


def test_passability_rules():
    terrain = tr.Terrain.flat(3, 1)
    terrain.types[0, 0] = tr.TERRAIN_WATER
    terrain.types[1, 0] = tr.TERRAIN_MOUNTAIN
    assert terrain.is_passable(0, 0, is_plant=True)
    assert not terrain.is_passable(0, 0)
    assert not terrain.is_passable(1, 0, is_plant=True)
    assert terrain.is_passable(2, 0)


def test_flat_terrain_is_neutral_for_growth():
    terrain = tr.Terrain.flat(2, 2)
    assert terrain.growth_factor(0, 0) == pytest.approx(1.0)
    assert terrain.movement_cost(1, 1) == 1.0


def test_soil_mutations_are_clamped():
    terrain = tr.Terrain.flat(2, 2)
    terrain.enrich(0, 0, 5.0)
    assert terrain.fertility[0, 0] == 1.0
    terrain.wet(1, 1, -5.0)
    assert terrain.moisture[1, 1] == 0.0
    terrain.types[0, 1] = tr.TERRAIN_WATER
    terrain.moisture[0, 1] = 1.0
    terrain.adjust_moisture(-0.5)
    assert terrain.moisture[0, 1] == 1.0
    assert terrain.moisture[1, 0] == pytest.approx(0.0)


def test_cells_in_radius_are_clipped():
    terrain = tr.Terrain.flat(5, 5)
    assert len(terrain.cells_in_radius(2, 2, 1)) == 5
    assert (0, 0) in terrain.cells_in_radius(0, 0, 2)
    assert all(terrain.in_bounds(x, y) for x, y in terrain.cells_in_radius(0, 0, 3))


def test_mismatched_fields_are_rejected():
    with pytest.raises(ValueError):
        tr.Terrain(np.zeros((2, 2)), np.zeros((2, 3)), np.zeros((2, 2)), np.zeros((2, 2)))
