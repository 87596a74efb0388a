# ecosphere_engine/grid.py

import numpy as np
import numba

from .entity import EMPTY, Entity, EntityType, create_entity


@numba.njit
def count_kinds(kinds, n_kinds):
    """Population bincount over the kind grid; empty cells (-1) are ignored."""
    counts = np.zeros(n_kinds, dtype=np.int64)
    flat = kinds.ravel()
    for i in range(flat.size):
        k = flat[i]
        if k >= 0:
            counts[k] += 1
    return counts


class Grid:
    """
    Entity arena plus the cell arrays that reference it. `handles[x, y, z]` holds the
    uid of the occupant (or EMPTY) and `kinds[x, y, z]` its EntityType code, kept in
    step so numba kernels can scan kinds without touching Python objects. Every
    placement change goes through place/move/remove, which update the arena record
    and both arrays together.
    """

    def __init__(self, width, height, depth=1):
        self.width, self.height, self.depth = int(width), int(height), int(depth)
        self.shape = (self.width, self.height, self.depth)
        self.handles = np.full(self.shape, EMPTY, dtype=np.int64)
        self.kinds = np.full(self.shape, EMPTY, dtype=np.int8)
        self.entities = {}
        self.next_uid = 0

    def __len__(self):
        return len(self.entities)

    def clear(self):
        self.handles.fill(EMPTY)
        self.kinds.fill(EMPTY)
        self.entities.clear()
        self.next_uid = 0

    # --- Lookup ---
    def in_bounds(self, pos):
        x, y, z = pos
        return 0 <= x < self.width and 0 <= y < self.height and 0 <= z < self.depth

    def is_empty(self, pos):
        return self.handles[pos] == EMPTY

    def get(self, pos):
        """The entity at `pos`, or None for an empty or out-of-bounds cell."""
        if not self.in_bounds(pos):
            return None
        uid = self.handles[pos]
        if uid == EMPTY:
            return None
        return self.entities[int(uid)]

    def entity(self, uid):
        return self.entities.get(uid)

    def kind_at(self, pos):
        return int(self.kinds[pos])

    def holds(self, pos, uid):
        """True while the cell at `pos` still references entity `uid`."""
        return int(self.handles[pos]) == uid

    def occupied(self):
        """(uid, pos) for every occupant in scan order: z, then y, then x."""
        xs, ys, zs = np.nonzero(self.handles != EMPTY)
        order = np.lexsort((xs, ys, zs))
        return [(int(self.handles[xs[i], ys[i], zs[i]]), (int(xs[i]), int(ys[i]), int(zs[i])))
                for i in order]

    def populations(self):
        counts = count_kinds(self.kinds, len(EntityType))
        return {kind.key: int(counts[kind]) for kind in EntityType}

    # --- Mutation ---
    def place(self, entity: Entity):
        """Registers an entity in the arena at its own position. The cell must be empty."""
        pos = entity.pos
        if not self.in_bounds(pos):
            raise IndexError(f"position {pos} outside grid {self.shape}")
        if self.handles[pos] != EMPTY:
            raise ValueError(f"cell {pos} already occupied by uid {int(self.handles[pos])}")
        self.entities[entity.uid] = entity
        self.handles[pos] = entity.uid
        self.kinds[pos] = int(entity.kind)
        self.next_uid = max(self.next_uid, entity.uid + 1)
        return entity

    def spawn(self, kind: EntityType, pos, rng, genetics=None, energy=None):
        """Creates a fresh entity at an empty in-bounds cell; None otherwise."""
        if not self.in_bounds(pos) or not self.is_empty(pos):
            return None
        entity = create_entity(self.next_uid, kind, pos, rng, genetics)
        if energy is not None:
            entity.energy = float(energy)
        return self.place(entity)

    def move(self, entity: Entity, pos):
        """Moves an entity to an empty cell, keeping record and arrays in sync."""
        if not self.in_bounds(pos) or not self.is_empty(pos):
            return False
        old = entity.pos
        self.handles[old] = EMPTY
        self.kinds[old] = EMPTY
        entity.x, entity.y, entity.z = (int(c) for c in pos)
        self.handles[pos] = entity.uid
        self.kinds[pos] = int(entity.kind)
        return True

    def remove(self, entity: Entity):
        if self.entities.pop(entity.uid, None) is None:
            return
        pos = entity.pos
        if self.handles[pos] == entity.uid:
            self.handles[pos] = EMPTY
            self.kinds[pos] = EMPTY

    def convert_to_dead_matter(self, entity: Entity, energy: float, rng):
        """Replaces an occupant by a DeadMatter entity holding `energy`."""
        pos = entity.pos
        self.remove(entity)
        return self.spawn(EntityType.DEAD_MATTER, pos, rng, energy=energy)
