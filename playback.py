import argparse
import csv
import os

import numpy as np
import matplotlib
import matplotlib.pyplot as plt
from matplotlib.colors import ListedColormap, BoundaryNorm
from matplotlib.lines import Line2D

from ecosphere_engine.entity import EMPTY, EntityType, LIVING_KINDS
from ecosphere_engine.terrain import TERRAIN_NAMES, get_terrain_color
from ecosphere_engine.world import World
import ecosphere_engine.config as cfg

# Visualization constants
ENTITY_SIZE_BASE = 14
TERRAIN_ALPHA = 0.55
SPECIES_COLORS = {
    EntityType.PLANT: '#22c55e',
    EntityType.HERBIVORE: '#facc15',
    EntityType.CARNIVORE: '#ef4444',
    EntityType.DECOMPOSER: '#a855f7',
    EntityType.DEAD_MATTER: '#78350f',
    EntityType.OMNIVORE: '#f97316',
    EntityType.APEX_PREDATOR: '#be123c',
    EntityType.PARASITE: '#06b6d4',
}


def load_chronicle(run_number: int, directory: str = "chronicles"):
    """Loads a history chronicle CSV into a dict of columns, or None on failure."""
    filename = os.path.join(directory, f"run_{run_number}_chronicle.csv")
    print(f"Loading chronicle from {filename}...")
    try:
        with open(filename, 'r', newline='') as f:
            reader = csv.DictReader(f)
            rows = [row for row in reader if row]
    except (FileNotFoundError, IOError):
        print(f"Error: Chronicle file '{filename}' not found or is empty.")
        return None
    if not rows:
        print(f"Error: Chronicle file '{filename}' has no records.")
        return None
    try:
        return {key: np.array([float(row[key]) for row in rows]) for key in rows[0]}
    except ValueError:
        print(f"Error: Could not parse data in {filename}. The file may be corrupted.")
        return None


def load_world(run_number: int, directory: str = "chronicles"):
    """Rebuilds a World from its saved state JSON, or None on failure."""
    filename = os.path.join(directory, f"run_{run_number}_state.json")
    try:
        with open(filename) as f:
            blob = f.read()
    except (FileNotFoundError, IOError):
        print(f"Warning: State file '{filename}' not found; map view disabled.")
        return None
    world = World(cfg.WorldSettings(width=1, height=1, verbose=False), populate=False)
    result = world.load_state(blob)
    if not result.ok:
        print(f"Warning: Could not load '{filename}': {result.error}")
        return None
    for warning in result.warnings:
        print(f"Warning: {warning}")
    return world


def top_down_kinds(kinds: np.ndarray) -> np.ndarray:
    """Projects a (width, height, depth) kind grid to the highest occupant per column."""
    projection = np.full(kinds.shape[:2], EMPTY, dtype=np.int8)
    for z in range(kinds.shape[2]):
        layer = kinds[:, :, z]
        projection = np.where(layer != EMPTY, layer, projection)
    return projection


def draw_snapshot(ax, snapshot):
    """Terrain as the base layer with one marker per visible occupant."""
    ax.set_facecolor('#000511')
    terrain_cmap = ListedColormap([get_terrain_color(t) for t in range(len(TERRAIN_NAMES))])
    terrain_norm = BoundaryNorm(np.arange(len(TERRAIN_NAMES) + 1), terrain_cmap.N)
    ax.imshow(snapshot.terrain.T, cmap=terrain_cmap, norm=terrain_norm, alpha=TERRAIN_ALPHA,
              interpolation='nearest', origin='lower', zorder=1)

    projection = top_down_kinds(snapshot.kinds)
    for kind, color in SPECIES_COLORS.items():
        xs, ys = np.nonzero(projection == int(kind))
        if len(xs):
            ax.scatter(xs, ys, s=ENTITY_SIZE_BASE, c=color, edgecolors='white', linewidths=0.3,
                       zorder=3, label=kind.key)

    atm = snapshot.atmosphere
    ax.set_title(f"Generation {snapshot.generation} | {snapshot.season}, {snapshot.weather} | "
                 f"O2 {atm['o2']:.1f}% CO2 {atm['co2']:.1f}%", color='white', fontsize=12)
    ax.set_xticks([])
    ax.set_yticks([])
    handles = [Line2D([0], [0], marker='o', color='w', markerfacecolor=c, label=k.key, markersize=7)
               for k, c in SPECIES_COLORS.items()]
    legend = ax.legend(handles=handles, loc='upper left', fontsize=8, facecolor='black', edgecolor='gray')
    for text in legend.get_texts():
        text.set_color('white')


def draw_history(ax_pop, ax_atm, chronicle):
    """Population curves on one axis, atmosphere and biodiversity on the other."""
    generations = chronicle['generation']
    for kind in LIVING_KINDS:
        series = chronicle.get(kind.key)
        if series is not None and series.any():
            ax_pop.plot(generations, series, color=SPECIES_COLORS[kind], label=kind.key, linewidth=1.2)
    ax_pop.set_ylabel("Population")
    ax_pop.legend(fontsize=8)
    ax_pop.grid(alpha=0.2)

    ax_atm.plot(generations, chronicle['o2'], color='#38bdf8', label='O2 %')
    ax_atm.plot(generations, chronicle['co2'], color='#94a3b8', label='CO2 %')
    ax_atm.set_ylabel("Gas %")
    ax_atm.set_xlabel("Generation")
    ax_div = ax_atm.twinx()
    ax_div.plot(generations, chronicle['biodiversity'], color='#f472b6', linestyle='--', label='Biodiversity')
    ax_div.set_ylim(0, 1)
    ax_div.set_ylabel("Biodiversity")
    ax_atm.legend(loc='upper left', fontsize=8)
    ax_atm.grid(alpha=0.2)


def main(run_number: int, directory: str, save_path=None):
    chronicle = load_chronicle(run_number, directory)
    world = load_world(run_number, directory)
    if chronicle is None and world is None:
        print("Nothing to show.")
        return 1

    fig = plt.figure(figsize=(16, 8))
    gs = fig.add_gridspec(2, 2, width_ratios=[1.1, 1.0], hspace=0.3, wspace=0.25)
    if world is not None:
        draw_snapshot(fig.add_subplot(gs[:, 0]), world.snapshot())
    if chronicle is not None:
        draw_history(fig.add_subplot(gs[0, 1]), fig.add_subplot(gs[1, 1]), chronicle)
    fig.suptitle(f"Ecosphere - Run #{run_number}", fontsize=16, fontweight='bold')

    if save_path:
        fig.savefig(save_path, dpi=120)
        print(f"Figure saved to {save_path}")
    else:
        plt.show()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Render a saved Ecosphere run.")
    parser.add_argument("run_number", type=int, nargs='?', default=1)
    parser.add_argument("--dir", default="chronicles")
    parser.add_argument("--save", default=None, help="Write a PNG instead of opening a window.")
    args = parser.parse_args()
    if args.save:
        matplotlib.use('Agg')
    raise SystemExit(main(args.run_number, args.dir, args.save))
