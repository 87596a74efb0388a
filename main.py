# Batch simulation runner: steps worlds headless and writes chronicles for playback.py

import csv
import argparse
import os
import sys
from ecosphere_engine.world import World
from ecosphere_engine.entity import LIVING_KINDS
import ecosphere_engine.config as cfg

CHRONICLE_DIR = "chronicles"


def save_chronicle(world: World, run_number: int, out_dir: str = CHRONICLE_DIR):
    """Saves the world's history buffer to a CSV file."""
    os.makedirs(out_dir, exist_ok=True)
    filename = os.path.join(out_dir, f"run_{run_number}_chronicle.csv")

    species = [kind.key for kind in LIVING_KINDS]
    header = ['generation'] + species + ['o2', 'co2', 'biodiversity', 'average_fitness']

    with open(filename, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for record in world.history:
            writer.writerow([record.generation]
                            + [record.populations.get(key, 0) for key in species]
                            + [f"{record.o2:.4f}", f"{record.co2:.4f}",
                               f"{record.biodiversity:.4f}", f"{record.average_fitness:.4f}"])
    print(f"Successfully saved chronicle to {filename}")
    return filename


def save_world(world: World, run_number: int, out_dir: str = CHRONICLE_DIR):
    """Writes the full world state as JSON for later playback or resumption."""
    os.makedirs(out_dir, exist_ok=True)
    filename = os.path.join(out_dir, f"run_{run_number}_state.json")
    with open(filename, 'w') as f:
        f.write(world.save_state())
    print(f"World state saved to {filename}")
    return filename


def build_settings(args) -> cfg.WorldSettings:
    overrides = {}
    for key in ('width', 'height', 'depth'):
        if getattr(args, key) is not None:
            overrides[key] = getattr(args, key)
    settings = cfg.WorldSettings.classic(**overrides) if args.classic else cfg.WorldSettings(**overrides)
    settings.verbose = not args.quiet
    settings.apply_preset(args.preset)
    return settings


def ticker(world: World):
    if world.generation % cfg.TICKER_INTERVAL != 0:
        return
    pops = world.populations
    atm = world.atmosphere
    print(f"  Gen {world.generation:6d} | living {world.living_count:5d} | "
          f"P {pops['plant']:4d} H {pops['herbivore']:4d} C {pops['carnivore']:4d} D {pops['decomposer']:4d} | "
          f"O2 {atm.o2:5.1f}% CO2 {atm.co2:5.1f}% | diversity {world.biodiversity:.2f}")


def main(args) -> int:
    """
    Runs a specified number of separate, independent ecosystem simulations.
    """
    print(f"--- Preparing to run {args.runs} simulation(s) of {args.generations} generations. ---")

    # --- The batch-run loop ---
    for run_number in range(1, args.runs + 1):
        print(f"\n--- Starting Run #{run_number}/{args.runs} (preset '{args.preset}') ---")

        # 1. Initialize a completely new world for each run.
        seed = None if args.seed is None else args.seed + run_number - 1
        world = World(build_settings(args), seed=seed)

        # 2. Step it, stopping early once every living species is gone.
        for _ in range(args.generations):
            world.step()
            ticker(world)
            if world.living_count == 0:
                print(f"All life extinct at generation {world.generation}.")
                break

        # 3. Save the results.
        if len(world.history) > 0:
            save_chronicle(world, run_number, args.out)
        else:
            print("Simulation recorded no history. Nothing to chronicle.")
        save_world(world, run_number, args.out)

        print(f"--- Run #{run_number} Complete ---")
    return 0


def load_and_resume(path: str, generations: int) -> int:
    """Resumes a saved world for more generations."""
    try:
        with open(path) as f:
            blob = f.read()
    except OSError as e:
        print(f"Error: could not read state file '{path}': {e}")
        return 1
    world = World(cfg.WorldSettings(width=1, height=1, verbose=False), populate=False)
    result = world.load_state(blob)
    if not result.ok:
        print(f"Error: could not load '{path}': {result.error}")
        return 1
    print(f"Resumed world at generation {world.generation} from {path}")
    for _ in range(generations):
        world.step()
        ticker(world)
    with open(path, 'w') as f:
        f.write(world.save_state())
    print(f"World state saved to {path}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the Ecosphere simulation harness.")
    parser.add_argument("runs", type=int, nargs='?', default=1, help="How many independent runs.")
    parser.add_argument("-g", "--generations", type=int, default=1000)
    parser.add_argument("-p", "--preset", default='balanced', choices=cfg.preset_names())
    parser.add_argument("--classic", action='store_true', help="14x14x5 voxel world with the five classic kinds.")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--width", type=int, default=None)
    parser.add_argument("--height", type=int, default=None)
    parser.add_argument("--depth", type=int, default=None)
    parser.add_argument("--out", default=CHRONICLE_DIR)
    parser.add_argument("--resume", default=None, help="Continue a saved state file instead of starting fresh.")
    parser.add_argument("-q", "--quiet", action='store_true')
    args = parser.parse_args()
    if args.resume:
        sys.exit(load_and_resume(args.resume, args.generations))
    sys.exit(main(args))
