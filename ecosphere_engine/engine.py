# ecosphere_engine/engine.py

from . import config as cfg
from .disease import infect, update_disease
from .entity import ANIMAL_KINDS, EntityType, LifeStage, VANISHING_KINDS
from .genetics import Genetics

# ==============================================================================
# PART 1: SHARED BEHAVIOUR HELPERS
# ==============================================================================
def _layer_light(z, depth):
    """Full light near the ground, linear falloff with height above it."""
    if z < cfg.FULL_LIGHT_LAYERS:
        return 1.0
    return 1.0 - (z / depth) * cfg.LIGHT_FALLOFF


def _stage_speed(world, entity):
    if not world.settings.enable_lifecycle:
        return 1.0
    return cfg.STAGE_SPEED[entity.stage.value]


def _stage_size(world, entity):
    if not world.settings.enable_lifecycle:
        return 1.0
    return cfg.STAGE_SIZE[entity.stage.value]


def _effective_size(world, entity):
    size = entity.traits.size if world.settings.enable_genetics else 1.0
    return size * _stage_size(world, entity)


def _adjacent(a, b):
    return max(abs(a[0] - b[0]), abs(a[1] - b[1]), abs(a[2] - b[2])) <= 1


def breathe(world, entity):
    """Gas exchange; kinds with a suffocation penalty pay it when O2 runs low."""
    profile = entity.kind.profile
    atmosphere = world.atmosphere
    if 'suffocation' not in profile:
        atmosphere.respire(profile['o2_use'], profile['co2_release'])
        return True
    if atmosphere.o2 > cfg.O2_BREATHING_THRESHOLD:
        atmosphere.respire(profile['o2_use'], profile['co2_release'])
        return True
    entity.energy -= profile['suffocation']
    world.counters['suffocations'] += 1
    return False


def upkeep(world, entity):
    """Per-tick energy cost, ageing, stage recompute and cooldown countdown."""
    cost = entity.kind.profile['upkeep']
    if world.settings.enable_genetics:
        cost *= entity.traits.size
        if entity.kind != EntityType.PLANT:
            cost /= entity.traits.efficiency
    cost *= _stage_size(world, entity)
    if world.settings.enable_weather:
        cost *= world.environment.upkeep_factor()
    entity.energy -= cost
    entity.age += 1
    entity.advance_stage()
    if entity.repro_cooldown > 0:
        entity.repro_cooldown -= 1


def die(world, entity):
    """Converts an entity to DeadMatter, or removes it for kinds that leave no residue."""
    grid = world.grid
    if entity.kind == EntityType.PARASITE and entity.host_uid is not None:
        host = grid.entity(entity.host_uid)
        if host is not None:
            host.parasite_count = max(0, host.parasite_count - 1)

    if entity.kind in VANISHING_KINDS:
        grid.remove(entity)
        if entity.kind == EntityType.DEAD_MATTER:
            world.atmosphere.add_co2(cfg.DECAY_CO2_ON_REMOVAL)
            if world.settings.enable_terrain:
                world.terrain.enrich(entity.x, entity.y, cfg.DECAY_FERTILITY_GAIN)
    else:
        grid.convert_to_dead_matter(entity, entity.kind.profile['residue'], world.rng)
    world.counters['deaths'] += 1
    world.counters[f'deaths.{entity.kind.key}'] += 1


def finish(world, entity):
    """Death check closing every rule; True when the entity survives the tick."""
    if entity.should_die():
        die(world, entity)
        return False
    return True


# --- Movement ---
def move_chance(world, entity):
    chance = entity.kind.profile['move_chance']
    if world.settings.enable_genetics:
        chance *= entity.traits.speed
    chance *= _stage_speed(world, entity)
    if world.settings.enable_weather:
        chance *= world.environment.move_factor()
    return min(1.0, chance)


def choose_move(world, entity):
    """Flee a visible threat, else seek visible food when hungry, else a colony-biased step."""
    spatial = world.spatial
    pos = entity.pos
    if world.settings.enable_genetics:
        perception = entity.traits.perception
        threats = [EntityType.from_key(k) for k in cfg.THREATS.get(entity.kind.key, [])]
        if threats:
            threat = spatial.find_nearest_of_types(pos, threats, cfg.THREAT_RANGE, perception)
            if threat is not None:
                target = spatial.step_away(pos, threat, entity.kind)
                if target is not None:
                    return target
        satiation = entity.kind.profile.get('satiation')
        foods = [EntityType.from_key(k) for k in cfg.DIET.get(entity.kind.key, [])]
        if foods and (satiation is None or entity.energy < satiation):
            food = spatial.find_nearest_of_types(pos, foods, cfg.FOOD_RANGE, perception)
            if food is not None and not _adjacent(pos, food):
                target = spatial.step_toward(pos, food, entity.kind)
                if target is not None:
                    return target
    return spatial.find_colony_biased_move(pos, entity.kind, entity.trail)


def move(world, entity, target=None):
    if target is None:
        if world.rng.random() >= move_chance(world, entity):
            return False
        target = choose_move(world, entity)
        if target is None:
            return False
    origin = entity.pos
    if not world.grid.move(entity, target):
        return False
    entity.trail.append(origin)
    if world.settings.enable_terrain:
        entity.energy -= cfg.MOVE_ENERGY_COST * world.terrain.movement_cost(target[0], target[1]) \
            * _effective_size(world, entity)
    world.counters['moves'] += 1
    return True


# --- Feeding ---
def graze(world, entity):
    """Eats one adjacent plant outright."""
    cell = world.spatial.find_neighbor_of_type(entity.pos, EntityType.PLANT)
    if cell is None:
        return False
    plant = world.grid.get(cell)
    cap = entity.kind.profile['graze_cap'] * _effective_size(world, entity)
    entity.gain(min(plant.energy, cap))
    world.grid.remove(plant)
    world.counters['grazes'] += 1
    return True


def hunt_probability(world, hunter, prey):
    """Speed ratio, prey camouflage and pack bonus, clamped; always 1 without genetics."""
    if not world.settings.enable_genetics:
        return 1.0
    hunter_speed = hunter.traits.speed * _stage_speed(world, hunter)
    prey_speed = prey.traits.speed * _stage_speed(world, prey)
    pack = world.spatial.count_nearby_of_type(hunter.pos, hunter.kind, cfg.PACK_RADIUS)
    pack_bonus = 1.0 + cfg.PACK_BONUS_PER_MEMBER * min(pack, cfg.PACK_BONUS_MAX_MEMBERS)
    probability = hunter.kind.profile['hunt_chance'] * (hunter_speed / prey_speed) / prey.traits.camouflage
    probability *= pack_bonus
    return max(cfg.HUNT_PROBABILITY_MIN, min(cfg.HUNT_PROBABILITY_MAX, probability))


def hunt(world, entity, prey_kind):
    """One attack on an adjacent prey of `prey_kind`; prey becomes DeadMatter on success."""
    cell = world.spatial.find_neighbor_of_type(entity.pos, prey_kind)
    if cell is None:
        return None
    prey = world.grid.get(cell)
    if world.rng.random() >= hunt_probability(world, entity, prey):
        world.counters['failed_hunts'] += 1
        return False
    profile = entity.kind.profile
    cap = profile['hunt_cap'] * _effective_size(world, entity)
    entity.gain(min(prey.energy * profile['hunt_yield'], cap))
    world.grid.convert_to_dead_matter(prey, cfg.PREY_RESIDUE_ENERGY, world.rng)
    world.counters['hunts'] += 1
    world.counters[f'deaths.{prey.kind.key}'] += 1
    world.counters['deaths'] += 1
    return True


def feed(world, entity):
    """Walks the species' diet in priority order; at most one meal or attack per tick."""
    satiation = entity.kind.profile.get('satiation')
    if satiation is not None and entity.energy >= satiation:
        return False
    for key in cfg.DIET.get(entity.kind.key, []):
        food = EntityType.from_key(key)
        if food == EntityType.PLANT:
            if graze(world, entity):
                return True
        else:
            outcome = hunt(world, entity, food)
            if outcome is not None:
                return outcome
    return False


# --- Reproduction ---
def _mate_eligible(world, candidate, kind):
    if candidate is None or candidate.kind != kind or candidate.repro_cooldown > 0:
        return False
    if world.settings.enable_lifecycle and kind != EntityType.PLANT and candidate.stage is LifeStage.JUVENILE:
        return False
    return candidate.energy >= kind.profile['repro_energy'] * cfg.MATE_ENERGY_FACTOR


def find_mate(world, entity, radius):
    mates = [world.grid.get(cell) for cell in world.spatial.neighbors(entity.pos, radius)
             if world.grid.kinds[cell] == entity.kind]
    mates = [m for m in mates if _mate_eligible(world, m, entity.kind)]
    if not mates:
        return None
    return mates[int(world.rng.integers(len(mates)))]


def reproduction_chance(world, entity):
    chance = entity.kind.profile['repro_chance']
    if world.settings.enable_genetics:
        chance *= entity.traits.fertility
    if entity.kind == EntityType.DECOMPOSER and not world.settings.is_classic:
        cluster = world.spatial.count_nearby_of_type(entity.pos, entity.kind, cfg.DECOMPOSER_CLUSTER_RADIUS)
        chance *= 1.0 + cfg.DECOMPOSER_CLUSTER_BONUS * cluster
    return chance


def reproduce(world, entity):
    """
    Offspring into an empty neighbour. Placement is checked before any energy is
    debited, so a parent with no room keeps its energy. With genetics on, animals
    need an eligible mate nearby and plants cross-pollinate when one is in reach.
    Returns the child or None.
    """
    settings = world.settings
    profile = entity.kind.profile
    if entity.energy <= profile['repro_energy'] or entity.repro_cooldown > 0:
        return None
    if settings.enable_lifecycle and entity.kind != EntityType.PLANT and entity.stage is LifeStage.JUVENILE:
        return None
    if world.rng.random() >= reproduction_chance(world, entity):
        return None

    is_plant = entity.kind == EntityType.PLANT
    if is_plant and settings.plant_spread_radius > 0:
        if world.spatial.count_nearby_of_type(entity.pos, entity.kind, settings.plant_spread_radius) == 0:
            return None
    site = world.spatial.find_empty_neighbor(entity.pos, entity.kind,
                                             max_z=cfg.PLANT_MAX_LAYER if is_plant else None)
    if site is None:
        return None

    mate = None
    if settings.enable_genetics:
        if is_plant:
            mate = find_mate(world, entity, max(1, settings.plant_spread_radius))
        elif entity.is_animal:
            mate = find_mate(world, entity, cfg.MATE_RADIUS)
            if mate is None:
                return None

    genetics = None
    if settings.enable_genetics:
        genetics = Genetics.inherit(entity.traits, mate.traits if mate is not None else None, world.rng)
    child = world.grid.spawn(entity.kind, site, world.rng, genetics)

    entity.energy -= profile['repro_cost']
    entity.repro_cooldown = profile['cooldown']
    if mate is not None:
        if is_plant:
            mate.energy -= cfg.PLANT_POLLEN_COST
        else:
            mate.energy -= profile['repro_cost'] * cfg.MATE_COST_FACTOR
            mate.repro_cooldown = profile['cooldown']
    world.counters['births'] += 1
    world.counters[f'births.{entity.kind.key}'] += 1
    return child


# ==============================================================================
# PART 2: PER-SPECIES RULES (each returns True when the entity survives)
# ==============================================================================
def plant_growth(world, entity):
    """Photosynthesis gain before gas checks; exposed for the viewer and tests."""
    settings = world.settings
    gain = world.atmosphere.sunlight * cfg.PHOTOSYNTHESIS_RATE * _layer_light(entity.z, world.grid.depth)
    if settings.enable_terrain:
        gain *= world.terrain.growth_factor(entity.x, entity.y)
    if not settings.is_classic:
        neighbours = world.spatial.count_nearby_of_type(entity.pos, EntityType.PLANT, 1)
        gain *= 1.0 + cfg.COLONY_BONUS_PER_NEIGHBOUR * min(neighbours, cfg.COLONY_BONUS_MAX_NEIGHBOURS)
    if settings.enable_weather:
        gain *= world.environment.light_factor()
    if settings.enable_genetics:
        gain *= entity.traits.efficiency
    return gain


def update_plant(world, entity):
    atmosphere = world.atmosphere
    if atmosphere.co2 > cfg.CO2_PHOTOSYNTHESIS_THRESHOLD:
        entity.gain(plant_growth(world, entity))
        atmosphere.photosynthesize()
    else:
        entity.energy -= cfg.CO2_STARVATION_PENALTY
    upkeep(world, entity)
    reproduce(world, entity)
    return finish(world, entity)


def update_animal(world, entity):
    """Herbivore, Carnivore, Omnivore and ApexPredator share one shape; diets differ."""
    breathe(world, entity)
    if world.settings.enable_disease:
        world.counters['infections'] += update_disease(entity, world)
    feed(world, entity)
    move(world, entity)
    upkeep(world, entity)
    reproduce(world, entity)
    return finish(world, entity)


def update_decomposer(world, entity):
    breathe(world, entity)
    cell = world.spatial.find_neighbor_of_type(entity.pos, EntityType.DEAD_MATTER)
    if cell is not None:
        matter = world.grid.get(cell)
        gain = matter.energy * cfg.DECOMPOSER_YIELD
        if world.settings.enable_genetics:
            gain *= entity.traits.efficiency
        entity.gain(gain)
        world.atmosphere.add_co2(cfg.DECOMPOSITION_CO2_RELEASE)
        if world.settings.enable_terrain:
            world.terrain.enrich(cell[0], cell[1], cfg.DECOMPOSITION_FERTILITY_GAIN)
        world.grid.remove(matter)
        world.counters['decompositions'] += 1
    move(world, entity)
    upkeep(world, entity)
    reproduce(world, entity)
    return finish(world, entity)


def update_dead_matter(world, entity):
    entity.energy -= cfg.DECAY_RATE
    entity.age += 1
    if not world.settings.is_classic:
        world.atmosphere.add_co2(cfg.DECAY_CO2_PER_TICK)
    return finish(world, entity)


def detach_parasite(world, parasite):
    host = world.grid.entity(parasite.host_uid) if parasite.host_uid is not None else None
    if host is not None:
        host.parasite_count = max(0, host.parasite_count - 1)
    parasite.host_uid = None


def _attach(world, parasite):
    """Latches onto an adjacent animal that still has room for another parasite."""
    hosts = [world.grid.get(cell) for cell in world.spatial.neighbors(parasite.pos)]
    hosts = [h for h in hosts if h is not None and h.is_animal
             and h.parasite_count < cfg.PARASITE_MAX_PER_HOST]
    if not hosts:
        return None
    host = hosts[int(world.rng.integers(len(hosts)))]
    parasite.host_uid = host.uid
    host.parasite_count += 1
    world.counters['attachments'] += 1
    return host


def _follow(world, parasite, host):
    """Keeps the parasite adjacent to a host that has moved away; False if it cannot."""
    if _adjacent(parasite.pos, host.pos):
        return True
    cells = [c for c in world.spatial.empty_neighbors(parasite.pos, parasite.kind) if _adjacent(c, host.pos)]
    if not cells:
        return False
    return move(world, parasite, cells[int(world.rng.integers(len(cells)))])


def update_parasite(world, entity):
    breathe(world, entity)
    host = None
    if entity.host_uid is not None:
        host = world.grid.entity(entity.host_uid)
        if host is None or not host.is_animal:
            entity.host_uid = None
            host = None
        elif not _follow(world, entity, host):
            detach_parasite(world, entity)
            host = None

    if host is None:
        host = _attach(world, entity)
        if host is None:
            target = None
            if world.rng.random() < move_chance(world, entity):
                prey = world.spatial.find_nearest_of_types(entity.pos, ANIMAL_KINDS, cfg.PARASITE_HOST_RANGE)
                if prey is not None:
                    target = world.spatial.step_toward(entity.pos, prey, entity.kind)
                if target is None:
                    target = world.spatial.find_colony_biased_move(entity.pos, entity.kind, entity.trail)
            if target is not None:
                move(world, entity, target)

    if host is not None:
        drain = min(cfg.PARASITE_DRAIN, max(0.0, host.energy))
        host.energy -= cfg.PARASITE_DRAIN
        gain = drain * cfg.PARASITE_DRAIN_EFFICIENCY
        if world.settings.enable_genetics:
            gain *= entity.traits.efficiency
        entity.gain(gain)
        if world.settings.enable_disease and world.rng.random() < cfg.PARASITE_VECTOR_CHANCE:
            if infect(host):
                world.counters['infections'] += 1

    upkeep(world, entity)
    reproduce(world, entity)
    return finish(world, entity)


SPECIES_RULES = {
    EntityType.PLANT: update_plant,
    EntityType.HERBIVORE: update_animal,
    EntityType.CARNIVORE: update_animal,
    EntityType.OMNIVORE: update_animal,
    EntityType.APEX_PREDATOR: update_animal,
    EntityType.DECOMPOSER: update_decomposer,
    EntityType.DEAD_MATTER: update_dead_matter,
    EntityType.PARASITE: update_parasite,
}


# ==============================================================================
# PART 3: THE PER-TICK WORKLIST DRIVER
# ==============================================================================
def shuffle_in_place(items, rng):
    """Fisher-Yates shuffle driven by the world's generator."""
    for i in range(len(items) - 1, 0, -1):
        j = int(rng.integers(i + 1))
        items[i], items[j] = items[j], items[i]
    return items


def reap(world):
    """Settles anything left dead after its own turn, e.g. drained by a parasite."""
    reaped = 0
    for entity in list(world.grid.entities.values()):
        if world.grid.entity(entity.uid) is None:
            continue
        if entity.should_die():
            die(world, entity)
            reaped += 1
    return reaped


def tick_logic(world):
    """
    Executes one generation of entity updates: snapshot the occupied cells, shuffle,
    then dispatch each entry whose cell still holds the same entity. Entries whose
    occupant was eaten, killed or replaced earlier in the tick are skipped.
    """
    grid = world.grid
    worklist = shuffle_in_place(grid.occupied(), world.rng)
    processed = 0
    for uid, pos in worklist:
        if not grid.holds(pos, uid):
            continue
        entity = grid.entity(uid)
        SPECIES_RULES[entity.kind](world, entity)
        processed += 1
    world.counters['reaped'] += reap(world)
    return processed
