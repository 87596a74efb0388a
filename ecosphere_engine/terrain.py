# --- ecosphere_engine/terrain.py: Procedural terrain and per-cell soil properties ---

import numpy as np
import numba

from . import config as cfg

# Terrain types
TERRAIN_NORMAL = 0
TERRAIN_WATER = 1
TERRAIN_MOUNTAIN = 2
TERRAIN_FERTILE = 3
TERRAIN_BARREN = 4

TERRAIN_NAMES = ["Normal", "Water", "Mountain", "Fertile", "Barren"]

# Base soil fertility by terrain type
TERRAIN_BASE_FERTILITY = {
    TERRAIN_NORMAL: 0.5,
    TERRAIN_WATER: 0.3,
    TERRAIN_MOUNTAIN: 0.1,
    TERRAIN_FERTILE: 0.9,
    TERRAIN_BARREN: 0.15,
}

# Movement cost multipliers (impassable types are never entered)
TERRAIN_MOVEMENT_COSTS = {
    TERRAIN_NORMAL: 1.0,
    TERRAIN_FERTILE: 1.2,    # Dense vegetation
    TERRAIN_BARREN: 0.8,
}


@numba.njit
def _lattice_value(ix, iy, seed):
    """Deterministic pseudo-random value in [0, 1) for an integer lattice point."""
    h = np.sin(ix * 12.9898 + iy * 78.233 + seed * 37.719) * 43758.5453
    return h - np.floor(h)


@numba.njit
def _smoothstep(t):
    return t * t * (3.0 - 2.0 * t)


@numba.njit
def generate_noise(width, height, scale=0.1, octaves=4, seed_offset=0):
    """Octave value noise, normalized to [0, 1]."""
    noise = np.zeros((width, height), dtype=np.float64)

    for octave in range(octaves):
        frequency = scale * (2 ** octave)
        amplitude = 1.0 / (2 ** octave)
        octave_seed = seed_offset + octave * 101

        for x in range(width):
            for y in range(height):
                sx = x * frequency
                sy = y * frequency
                ix = np.floor(sx)
                iy = np.floor(sy)
                tx = _smoothstep(sx - ix)
                ty = _smoothstep(sy - iy)

                v00 = _lattice_value(ix, iy, octave_seed)
                v10 = _lattice_value(ix + 1.0, iy, octave_seed)
                v01 = _lattice_value(ix, iy + 1.0, octave_seed)
                v11 = _lattice_value(ix + 1.0, iy + 1.0, octave_seed)

                top = v00 + (v10 - v00) * tx
                bottom = v01 + (v11 - v01) * tx
                noise[x, y] += (top + (bottom - top) * ty) * amplitude

    # Normalize to 0-1 range
    min_val = np.min(noise)
    max_val = np.max(noise)
    if max_val > min_val:
        noise = (noise - min_val) / (max_val - min_val)
    else:
        noise[:, :] = 0.5

    return noise


@numba.njit
def classify_terrain(elevation, moisture, water_level, mountain_level, fertile_moisture, barren_moisture):
    """Maps elevation/moisture fields onto terrain types."""
    width, height = elevation.shape
    terrain = np.zeros((width, height), dtype=np.int8)

    for x in range(width):
        for y in range(height):
            elev = elevation[x, y]
            moist = moisture[x, y]

            if elev < water_level:
                terrain[x, y] = TERRAIN_WATER
            elif elev > mountain_level:
                terrain[x, y] = TERRAIN_MOUNTAIN
            elif moist > fertile_moisture and elev > 0.3 and elev < 0.75:
                terrain[x, y] = TERRAIN_FERTILE
            elif moist < barren_moisture:
                terrain[x, y] = TERRAIN_BARREN
            else:
                terrain[x, y] = TERRAIN_NORMAL

    return terrain


class Terrain:
    """Per-column terrain: a type grid plus fertility, moisture and elevation fields, indexed [x, y]."""

    def __init__(self, types, fertility, moisture, elevation):
        self.types = np.asarray(types, dtype=np.int8)
        self.fertility = np.asarray(fertility, dtype=np.float64)
        self.moisture = np.asarray(moisture, dtype=np.float64)
        self.elevation = np.asarray(elevation, dtype=np.float64)
        shapes = {self.types.shape, self.fertility.shape, self.moisture.shape, self.elevation.shape}
        if len(shapes) != 1 or self.types.ndim != 2:
            raise ValueError(f"terrain fields must share one 2D shape, got {sorted(shapes)}")

    @property
    def shape(self):
        return self.types.shape

    @classmethod
    def flat(cls, width, height):
        """Uniform Normal terrain, used when the terrain model is switched off."""
        return cls(
            np.full((width, height), TERRAIN_NORMAL, dtype=np.int8),
            np.full((width, height), TERRAIN_BASE_FERTILITY[TERRAIN_NORMAL]),
            np.full((width, height), 0.5),
            np.full((width, height), 0.5),
        )

    @classmethod
    def generate(cls, width, height, seed=42):
        """Generate procedural terrain; deterministic for a given seed."""
        elevation = generate_noise(width, height, cfg.TERRAIN_NOISE_SCALE, cfg.TERRAIN_NOISE_OCTAVES, seed)
        moisture = generate_noise(width, height, cfg.TERRAIN_NOISE_SCALE * 0.8, cfg.TERRAIN_NOISE_OCTAVES, seed + 100)
        types = classify_terrain(
            elevation, moisture,
            cfg.TERRAIN_WATER_LEVEL, cfg.TERRAIN_MOUNTAIN_LEVEL,
            cfg.TERRAIN_FERTILE_MOISTURE, cfg.TERRAIN_BARREN_MOISTURE,
        )

        fertility = np.zeros((width, height), dtype=np.float64)
        for terrain_type, base in TERRAIN_BASE_FERTILITY.items():
            fertility[types == terrain_type] = base
        # Wetter soil is a little richer
        fertility = np.clip(fertility + (moisture - 0.5) * 0.2, 0.0, 1.0)
        moisture = moisture.copy()
        moisture[types == TERRAIN_WATER] = 1.0

        return cls(types, fertility, moisture, elevation)

    def in_bounds(self, x, y):
        return 0 <= x < self.types.shape[0] and 0 <= y < self.types.shape[1]

    def type_at(self, x, y):
        return int(self.types[x, y])

    def is_passable(self, x, y, is_plant=False):
        """Mountains block everything; water only admits plants."""
        terrain_type = self.types[x, y]
        if terrain_type == TERRAIN_MOUNTAIN:
            return False
        if terrain_type == TERRAIN_WATER:
            return is_plant
        return True

    def movement_cost(self, x, y):
        return TERRAIN_MOVEMENT_COSTS.get(int(self.types[x, y]), 1.0)

    def growth_factor(self, x, y):
        """Photosynthesis multiplier; 1.0 on Normal soil of average moisture."""
        return (0.5 + self.fertility[x, y]) * (0.75 + 0.5 * self.moisture[x, y])

    def enrich(self, x, y, amount):
        self.fertility[x, y] = min(1.0, max(0.0, self.fertility[x, y] + amount))

    def wet(self, x, y, amount):
        if self.types[x, y] == TERRAIN_WATER:
            return
        self.moisture[x, y] = min(1.0, max(0.0, self.moisture[x, y] + amount))

    def adjust_moisture(self, amount):
        """Weather-driven moisture drift over all land cells."""
        land = self.types != TERRAIN_WATER
        self.moisture[land] = np.clip(self.moisture[land] + amount, 0.0, 1.0)

    def cells_in_radius(self, cx, cy, radius):
        """All (x, y) columns within Euclidean radius of a centre, clipped to the grid."""
        width, height = self.types.shape
        cells = []
        for x in range(max(0, cx - radius), min(width, cx + radius + 1)):
            for y in range(max(0, cy - radius), min(height, cy + radius + 1)):
                if (x - cx) ** 2 + (y - cy) ** 2 <= radius * radius:
                    cells.append((x, y))
        return cells

    def distribution(self):
        """Share of cells per terrain name."""
        total = self.types.size
        unique, counts = np.unique(self.types, return_counts=True)
        return {TERRAIN_NAMES[int(t)]: count / total for t, count in zip(unique, counts)}

    def copy(self):
        return Terrain(self.types.copy(), self.fertility.copy(), self.moisture.copy(), self.elevation.copy())

    def to_dict(self):
        return {
            'types': self.types.tolist(),
            'fertility': self.fertility.tolist(),
            'moisture': self.moisture.tolist(),
            'elevation': self.elevation.tolist(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(data['types'], data['fertility'], data['moisture'], data['elevation'])


def get_terrain_color(terrain_type):
    """Get color for terrain visualization (for the playback viewer)."""
    colors = {
        TERRAIN_NORMAL: '#4d7c0f',     # Olive green
        TERRAIN_WATER: '#1e3a8a',      # Deep blue
        TERRAIN_MOUNTAIN: '#78716c',   # Gray-brown
        TERRAIN_FERTILE: '#15803d',    # Dark green
        TERRAIN_BARREN: '#a16207',     # Dust
    }
    return colors.get(terrain_type, '#000000')
