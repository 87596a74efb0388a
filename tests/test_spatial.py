import pytest

from ecosphere_engine.entity import EntityType
from ecosphere_engine.terrain import TERRAIN_MOUNTAIN, TERRAIN_WATER

from conftest import classic_world, place


def test_moore_neighbors_in_2d():
    world = classic_world(5, 5)
    assert len(world.spatial.neighbors((2, 2, 0))) == 8
    assert sorted(world.spatial.neighbors((0, 0, 0))) == [(0, 1, 0), (1, 0, 0), (1, 1, 0)]


def test_moore_neighbors_in_3d():
    world = classic_world(5, 5, 5)
    assert len(world.spatial.neighbors((2, 2, 2))) == 26
    assert len(world.spatial.neighbors((0, 0, 0))) == 7


def test_von_neumann_neighbors():
    world = classic_world(5, 5, neighborhood='von_neumann')
    assert sorted(world.spatial.neighbors((2, 2, 0))) == [(1, 2, 0), (2, 1, 0), (2, 3, 0), (3, 2, 0)]
    assert len(world.spatial.neighbors((2, 2, 0), radius=2)) == 12


def test_neighbors_with_radius_are_clipped():
    world = classic_world(5, 5)
    cells = world.spatial.neighbors((0, 0, 0), radius=2)
    assert len(cells) == 8
    assert all(0 <= x < 5 and 0 <= y < 5 for x, y, _ in cells)


def test_find_empty_neighbor_none_when_surrounded():
    world = classic_world(3, 3)
    for x in range(3):
        for y in range(3):
            if (x, y) != (1, 1):
                place(world, EntityType.PLANT, (x, y, 0))
    assert world.spatial.find_empty_neighbor((1, 1, 0)) is None


def test_find_empty_neighbor_respects_terrain():
    world = classic_world(3, 1)
    world.terrain.types[0, 0] = TERRAIN_WATER
    world.terrain.types[2, 0] = TERRAIN_MOUNTAIN
    assert world.spatial.find_empty_neighbor((1, 0, 0), EntityType.HERBIVORE) is None
    assert world.spatial.find_empty_neighbor((1, 0, 0), EntityType.PLANT) == (0, 0, 0)


def test_find_empty_neighbor_is_uniform():
    world = classic_world(3, 1)
    seen = {world.spatial.find_empty_neighbor((1, 0, 0)) for _ in range(100)}
    assert seen == {(0, 0, 0), (2, 0, 0)}


def test_find_neighbor_of_type():
    world = classic_world(5, 5)
    place(world, EntityType.PLANT, (3, 3, 0))
    place(world, EntityType.HERBIVORE, (1, 1, 0))
    assert world.spatial.find_neighbor_of_type((2, 2, 0), EntityType.PLANT) == (3, 3, 0)
    assert world.spatial.find_neighbor_of_type((2, 2, 0), EntityType.CARNIVORE) is None


def test_find_entity_in_range_picks_nearest():
    world = classic_world(10, 10)
    place(world, EntityType.HERBIVORE, (8, 2, 0))
    place(world, EntityType.HERBIVORE, (4, 4, 0))
    assert world.spatial.find_entity_in_range((2, 2, 0), EntityType.HERBIVORE, 4) == (4, 4, 0)


def test_find_entity_in_range_breaks_ties_by_scan_order():
    world = classic_world(5, 5)
    place(world, EntityType.HERBIVORE, (2, 3, 0))
    place(world, EntityType.HERBIVORE, (3, 2, 0))
    place(world, EntityType.HERBIVORE, (2, 1, 0))
    assert world.spatial.find_entity_in_range((2, 2, 0), EntityType.HERBIVORE, 2) == (2, 1, 0)


def test_find_entity_in_range_scales_with_perception():
    world = classic_world(12, 1)
    place(world, EntityType.CARNIVORE, (6, 0, 0))
    spatial = world.spatial
    assert spatial.find_entity_in_range((0, 0, 0), EntityType.CARNIVORE, 4) is None
    assert spatial.find_entity_in_range((0, 0, 0), EntityType.CARNIVORE, 4, perception=1.5) == (6, 0, 0)


def test_count_nearby_of_type_excludes_centre():
    world = classic_world(5, 5)
    for pos in [(2, 2, 0), (1, 1, 0), (3, 3, 0), (0, 0, 0)]:
        place(world, EntityType.PLANT, pos)
    assert world.spatial.count_nearby_of_type((2, 2, 0), EntityType.PLANT, 1) == 2
    assert world.spatial.count_nearby_of_type((2, 2, 0), EntityType.PLANT, 2) == 3


def test_colony_biased_move_heads_for_the_cluster():
    world = classic_world(6, 5, move_bias=1.0)
    mover = place(world, EntityType.HERBIVORE, (2, 2, 0))
    for pos in [(4, 1, 0), (4, 2, 0), (4, 3, 0)]:
        place(world, EntityType.HERBIVORE, pos)
    for _ in range(20):
        assert world.spatial.find_colony_biased_move(mover.pos, mover.kind) == (3, 2, 0)


def test_colony_biased_move_avoids_recent_trail():
    world = classic_world(3, 1, move_bias=1.0)
    mover = place(world, EntityType.HERBIVORE, (1, 0, 0))
    for _ in range(20):
        assert world.spatial.find_colony_biased_move(mover.pos, mover.kind, trail=[(0, 0, 0)]) == (2, 0, 0)


def test_colony_biased_move_none_when_boxed_in():
    world = classic_world(2, 1, move_bias=1.0)
    mover = place(world, EntityType.HERBIVORE, (0, 0, 0))
    place(world, EntityType.PLANT, (1, 0, 0))
    assert world.spatial.find_colony_biased_move(mover.pos, mover.kind) is None


@pytest.mark.parametrize("toward", [True, False])
def test_step_toward_and_away(toward):
    world = classic_world(7, 1)
    spatial = world.spatial
    if toward:
        assert spatial.step_toward((3, 0, 0), (6, 0, 0)) == (4, 0, 0)
    else:
        assert spatial.step_away((3, 0, 0), (6, 0, 0)) == (2, 0, 0)
