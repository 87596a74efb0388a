import math

import pytest

from ecosphere_engine.entity import EntityType
from ecosphere_engine.genetics import Genetics
from ecosphere_engine.stats import History, HistoryRecord, average_fitness, biodiversity, extinctions

from conftest import classic_world, place


def record(generation, plants=0, herbivores=0):
    return HistoryRecord(generation, {'plant': plants, 'herbivore': herbivores},
                         o2=21.0, co2=0.5, biodiversity=0.0, average_fitness=0.0)


@pytest.mark.parametrize("populations, expected", [
    ({}, 0.0),
    ({'plant': 10}, 0.0),
    ({'plant': 10, 'herbivore': 0}, 0.0),
    ({'plant': 5, 'herbivore': 5}, 1.0),
    ({'plant': 3, 'herbivore': 3, 'carnivore': 3}, 1.0),
])
def test_biodiversity_edge_cases(populations, expected):
    assert biodiversity(populations) == pytest.approx(expected)


def test_biodiversity_ignores_dead_matter():
    assert biodiversity({'plant': 4, 'dead_matter': 100}) == 0.0


def test_uneven_split_scores_below_one():
    score = biodiversity({'plant': 9, 'herbivore': 1})
    expected = -(0.9 * math.log(0.9) + 0.1 * math.log(0.1)) / math.log(2)
    assert score == pytest.approx(expected)
    assert 0.0 < score < 1.0


def test_average_fitness_skips_entities_without_genetics():
    world = classic_world(4, 4)
    plain = place(world, EntityType.PLANT, (0, 0, 0))
    gifted = place(world, EntityType.HERBIVORE, (1, 0, 0))
    gifted.genetics = Genetics(speed=1.5, efficiency=0.5)
    assert average_fitness([plain]) == 0.0
    assert average_fitness([plain, gifted]) == pytest.approx(gifted.genetics.fitness())


def test_history_drops_oldest_records():
    history = History(interval=2, length=3)
    for generation in range(2, 12, 2):
        history.append(record(generation, plants=generation))
    assert len(history) == 3
    assert history.series('generation') == [6, 8, 10]
    assert history.series('plant') == [6, 8, 10]
    assert history.series('carnivore') == [0, 0, 0]
    assert history.latest().generation == 10


def test_history_due_follows_interval():
    history = History(interval=5, length=10)
    assert history.due(10)
    assert not history.due(11)
    assert not History(interval=0, length=10).due(0)


def test_history_record_round_trips_through_dict():
    original = record(40, plants=12, herbivores=3)
    assert HistoryRecord.from_dict(original.to_dict()) == original


def test_extinctions_lists_species_that_hit_zero():
    before = {'plant': 5, 'herbivore': 2, 'carnivore': 0, 'dead_matter': 3}
    after = {'plant': 5, 'herbivore': 0, 'carnivore': 0, 'dead_matter': 0}
    assert extinctions(before, after) == ['herbivore']
