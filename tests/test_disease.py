from ecosphere_engine import config as cfg
from ecosphere_engine.disease import infect, transmission_chance, update_disease
from ecosphere_engine.entity import EntityType
from ecosphere_engine.genetics import Genetics

from conftest import classic_world, place


def disease_world(width=3, height=3):
    return classic_world(width, height, enable_disease=True)


def test_only_animals_catch_disease():
    world = disease_world()
    plant = place(world, EntityType.PLANT, (0, 0, 0))
    herbivore = place(world, EntityType.HERBIVORE, (1, 0, 0))
    assert not infect(plant)
    assert infect(herbivore)
    assert herbivore.infected
    assert herbivore.infection_timer == cfg.DISEASE_DURATION


def test_infection_damages_every_tick():
    world = disease_world()
    sick = place(world, EntityType.HERBIVORE, (1, 1, 0), energy=50)
    infect(sick)
    update_disease(sick, world)
    assert sick.energy == 50 - cfg.DISEASE_DAMAGE
    assert sick.infection_timer == cfg.DISEASE_DURATION - 1


def test_recovery_grants_temporary_immunity():
    world = disease_world()
    sick = place(world, EntityType.CARNIVORE, (1, 1, 0), energy=100)
    infect(sick)
    for _ in range(cfg.DISEASE_DURATION):
        update_disease(sick, world)
    assert not sick.infected
    assert sick.immune
    assert sick.immunity_timer == cfg.IMMUNITY_DURATION
    assert not infect(sick)

    for _ in range(cfg.IMMUNITY_DURATION):
        update_disease(sick, world)
    assert not sick.immune


def test_disease_spreads_to_adjacent_animals():
    spread = 0
    for seed in range(40):
        world = classic_world(3, 3, seed=seed, enable_disease=True)
        sick = place(world, EntityType.HERBIVORE, (1, 1, 0), energy=100)
        neighbour = place(world, EntityType.HERBIVORE, (0, 1, 0), energy=100)
        infect(sick)
        for _ in range(5):
            update_disease(sick, world)
        spread += neighbour.infected
    assert 0 < spread < 40


def test_immunity_trait_lowers_transmission():
    world = disease_world()
    hardy = place(world, EntityType.HERBIVORE, (0, 0, 0))
    hardy.genetics = Genetics(immunity=2.0)
    frail = place(world, EntityType.HERBIVORE, (1, 0, 0))
    frail.genetics = Genetics(immunity=0.5)
    assert transmission_chance(hardy) == cfg.DISEASE_TRANSMISSION / 2.0
    assert transmission_chance(frail) == cfg.DISEASE_TRANSMISSION / 0.5
