# ecosphere_engine/disease.py

from . import config as cfg


def can_infect(entity):
    return entity.is_animal and not entity.infected and not entity.immune


def infect(entity, duration=cfg.DISEASE_DURATION):
    """Starts an infection; immune, infected and non-animal entities are left alone."""
    if not can_infect(entity):
        return False
    entity.infected = True
    entity.infection_timer = duration
    return True


def recover(entity):
    entity.infected = False
    entity.infection_timer = 0
    entity.immune = True
    entity.immunity_timer = cfg.IMMUNITY_DURATION


def transmission_chance(target):
    return min(1.0, cfg.DISEASE_TRANSMISSION / target.traits.immunity)


def update_disease(entity, world):
    """
    One tick of disease for an animal: damage, spread to adjacent animals,
    then the infection or immunity countdown. Returns the number of new infections.
    """
    if entity.immune:
        entity.immunity_timer -= 1
        if entity.immunity_timer <= 0:
            entity.immune = False
            entity.immunity_timer = 0
        return 0

    if not entity.infected:
        if world.rng.random() < cfg.DISEASE_SPONTANEOUS_CHANCE:
            infect(entity)
        return 0

    entity.energy -= cfg.DISEASE_DAMAGE
    spread = 0
    for cell in world.spatial.neighbors(entity.pos):
        other = world.grid.get(cell)
        if other is None or not can_infect(other):
            continue
        if world.rng.random() < transmission_chance(other):
            infect(other)
            spread += 1

    entity.infection_timer -= 1
    if entity.infection_timer <= 0:
        recover(entity)
    return spread
