import numpy as np
import pytest

from ecosphere_engine import config as cfg
from ecosphere_engine.genetics import Genetics


class NoMutationRng:
    """Stands in for a Generator whose mutation rolls always miss."""

    def random(self):
        return 0.99

    def uniform(self, low, high):
        raise AssertionError("no perturbation expected")


def test_random_traits_are_within_the_seed_band():
    rng = np.random.default_rng(3)
    for _ in range(50):
        genes = Genetics.random(rng)
        for value in genes.to_dict().values():
            assert cfg.GENE_SEED_MIN <= value <= cfg.GENE_SEED_MAX


def test_child_is_parent_mean_without_mutation():
    a = Genetics(speed=0.8, efficiency=1.2, size=1.0, fertility=0.9)
    b = Genetics(speed=1.2, efficiency=1.0, size=1.4, fertility=1.1)
    child = Genetics.inherit(a, b, NoMutationRng())
    assert child.speed == pytest.approx(1.0)
    assert child.efficiency == pytest.approx(1.1)
    assert child.size == pytest.approx(1.2)
    assert child.fertility == pytest.approx(1.0)


def test_self_pollination_copies_the_single_parent():
    a = Genetics.random(np.random.default_rng(1))
    child = Genetics.inherit(a, None, NoMutationRng())
    assert child.to_dict() == pytest.approx(a.to_dict())


def test_traits_stay_clamped_through_inheritance():
    rng = np.random.default_rng(11)
    high = Genetics(**{k: cfg.GENE_MAX for k in cfg.TRAIT_KEYS})
    low = Genetics(**{k: cfg.GENE_MIN for k in cfg.TRAIT_KEYS})
    for _ in range(200):
        for child in (Genetics.inherit(high, high, rng), Genetics.inherit(low, low, rng)):
            for value in child.to_dict().values():
                assert cfg.GENE_MIN <= value <= cfg.GENE_MAX


def test_constructor_clamps_out_of_range_values():
    genes = Genetics(speed=5.0, camouflage=0.0)
    assert genes.speed == cfg.GENE_MAX
    assert genes.camouflage == cfg.GENE_MIN


def test_child_genetics_are_not_aliased():
    a = Genetics()
    child = Genetics.inherit(a, a, NoMutationRng())
    child.speed = 1.7
    assert a.speed == 1.0
    clone = a.copy()
    clone.size = 0.5
    assert a.size == 1.0


def test_mutation_rate_is_roughly_twenty_percent():
    rng = np.random.default_rng(5)
    parent = Genetics()
    changed = total = 0
    for _ in range(1000):
        child = Genetics.inherit(parent, parent, rng)
        for value in child.to_dict().values():
            total += 1
            changed += value != 1.0
    assert 0.17 < changed / total < 0.23


def test_fitness_ignores_size():
    assert Genetics(size=2.0).fitness() == pytest.approx(1.0)
    assert Genetics(speed=1.7).fitness() == pytest.approx(1.1)


def test_from_dict_rejects_missing_traits():
    with pytest.raises(ValueError):
        Genetics.from_dict({'speed': 1.0})
