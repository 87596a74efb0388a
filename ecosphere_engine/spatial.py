# ecosphere_engine/spatial.py

import math

import numpy as np
import numba

from . import config as cfg
from .entity import EntityType

# ==============================================================================
# PART 1: NUMBA SCAN KERNELS OVER THE KIND GRID
# ==============================================================================
@numba.njit
def count_kind_in_cube(kinds, x, y, z, kind, radius):
    """Cells of `kind` within Chebyshev `radius` of (x, y, z), centre excluded."""
    width, height, depth = kinds.shape
    count = 0
    for nz in range(max(0, z - radius), min(depth, z + radius + 1)):
        for ny in range(max(0, y - radius), min(height, y + radius + 1)):
            for nx in range(max(0, x - radius), min(width, x + radius + 1)):
                if nx == x and ny == y and nz == z:
                    continue
                if kinds[nx, ny, nz] == kind:
                    count += 1
    return count


@numba.njit
def nearest_of_kind(kinds, x, y, z, kind, reach):
    """
    Nearest cell of `kind` by Euclidean distance, no farther than `reach`.
    Scans z, y, x ascending and keeps the first of equally distant cells.
    Returns (-1, -1, -1) when nothing qualifies.
    """
    width, height, depth = kinds.shape
    best_d2 = reach * reach + 1
    bx, by, bz = -1, -1, -1
    for nz in range(max(0, z - reach), min(depth, z + reach + 1)):
        for ny in range(max(0, y - reach), min(height, y + reach + 1)):
            for nx in range(max(0, x - reach), min(width, x + reach + 1)):
                if nx == x and ny == y and nz == z:
                    continue
                if kinds[nx, ny, nz] != kind:
                    continue
                d2 = (nx - x) ** 2 + (ny - y) ** 2 + (nz - z) ** 2
                if d2 <= reach * reach and d2 < best_d2:
                    best_d2 = d2
                    bx, by, bz = nx, ny, nz
    return bx, by, bz


# ==============================================================================
# PART 2: READ-ONLY QUERIES USED BY THE SPECIES RULES
# ==============================================================================
_OFFSET_CACHE = {}


def _offsets(radius, neighborhood, flat):
    key = (radius, neighborhood, flat)
    if key not in _OFFSET_CACHE:
        dz_range = range(0, 1) if flat else range(-radius, radius + 1)
        offsets = []
        for dz in dz_range:
            for dy in range(-radius, radius + 1):
                for dx in range(-radius, radius + 1):
                    if dx == 0 and dy == 0 and dz == 0:
                        continue
                    if neighborhood == 'von_neumann' and abs(dx) + abs(dy) + abs(dz) > radius:
                        continue
                    offsets.append((dx, dy, dz))
        _OFFSET_CACHE[key] = offsets
    return _OFFSET_CACHE[key]


class SpatialQueries:
    """Neighbour and ranged searches over one world's grid and terrain. Never mutates either."""

    def __init__(self, grid, terrain, rng, neighborhood='moore', move_bias=0.6):
        self.grid = grid
        self.terrain = terrain
        self.rng = rng
        self.neighborhood = neighborhood
        self.move_bias = move_bias

    def _choice(self, cells):
        if not cells:
            return None
        return cells[int(self.rng.integers(len(cells)))]

    def neighbors(self, pos, radius=1):
        """In-bounds cells around `pos`, centre excluded, no wraparound."""
        x, y, z = pos
        grid = self.grid
        cells = []
        for dx, dy, dz in _offsets(radius, self.neighborhood, grid.depth == 1):
            nx, ny, nz = x + dx, y + dy, z + dz
            if 0 <= nx < grid.width and 0 <= ny < grid.height and 0 <= nz < grid.depth:
                cells.append((nx, ny, nz))
        return cells

    def is_passable(self, pos, kind=None):
        return self.terrain.is_passable(pos[0], pos[1], is_plant=kind == EntityType.PLANT)

    def empty_neighbors(self, pos, kind=None, max_z=None):
        cells = []
        for cell in self.neighbors(pos):
            if max_z is not None and cell[2] > max_z:
                continue
            if self.grid.is_empty(cell) and self.is_passable(cell, kind):
                cells.append(cell)
        return cells

    def find_empty_neighbor(self, pos, kind=None, max_z=None):
        """Uniform choice among empty cells `kind` may enter, or None."""
        return self._choice(self.empty_neighbors(pos, kind, max_z))

    def find_neighbor_of_type(self, pos, kind):
        """Uniform choice among adjacent cells holding `kind`, or None."""
        kinds = self.grid.kinds
        return self._choice([cell for cell in self.neighbors(pos) if kinds[cell] == kind])

    def find_entity_in_range(self, pos, kind, search_range, perception=1.0):
        reach = int(math.ceil(search_range * perception))
        if reach <= 0:
            return None
        x, y, z = pos
        bx, by, bz = nearest_of_kind(self.grid.kinds, x, y, z, int(kind), reach)
        if bx < 0:
            return None
        return (int(bx), int(by), int(bz))

    def find_nearest_of_types(self, pos, kinds, search_range, perception=1.0):
        """Closest hit over several kinds; earlier kinds win distance ties."""
        best, best_d2 = None, None
        for kind in kinds:
            hit = self.find_entity_in_range(pos, kind, search_range, perception)
            if hit is None:
                continue
            d2 = distance_sq(pos, hit)
            if best is None or d2 < best_d2:
                best, best_d2 = hit, d2
        return best

    def count_nearby_of_type(self, pos, kind, radius):
        x, y, z = pos
        return int(count_kind_in_cube(self.grid.kinds, x, y, z, int(kind), radius))

    def find_colony_biased_move(self, pos, kind, trail=()):
        """
        With probability move_bias, the empty neighbour with the most same-kind
        cells around it (the mover itself not counted) plus jitter, less a penalty
        for recently visited cells. Otherwise a uniform pick.
        """
        candidates = self.empty_neighbors(pos, kind)
        if not candidates:
            return None
        if self.move_bias <= 0 or self.rng.random() >= self.move_bias:
            return self._choice(candidates)

        kinds = self.grid.kinds
        mover_counted = 1 if kinds[pos] == kind else 0
        best, best_score = None, -np.inf
        for cell in candidates:
            density = self.count_nearby_of_type(cell, kind, 1) - mover_counted
            score = density + self.rng.random() * cfg.MOVE_JITTER
            if cell in trail:
                score -= cfg.TRAIL_PENALTY
            if score > best_score:
                best, best_score = cell, score
        return best

    def step_toward(self, pos, target, kind=None):
        """Empty neighbour closest to `target`, only if it is closer than `pos`."""
        return self._step_by_distance(pos, target, kind, toward=True)

    def step_away(self, pos, threat, kind=None):
        """Empty neighbour farthest from `threat`, only if it is farther than `pos`."""
        return self._step_by_distance(pos, threat, kind, toward=False)

    def _step_by_distance(self, pos, ref, kind, toward):
        current = distance_sq(pos, ref)
        best, best_d2 = None, current
        for cell in self.empty_neighbors(pos, kind):
            d2 = distance_sq(cell, ref)
            if (toward and d2 < best_d2) or (not toward and d2 > best_d2):
                best, best_d2 = cell, d2
        return best


def distance_sq(a, b):
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2
