from roofsim.core.layouts import LayoutCatalog
from roofsim.simulation import SimulationRunner
import logging
import sys
import time


def sweep(layout_id=None):
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")
    catalog = LayoutCatalog()
    layout_id = layout_id or catalog.default_id

    print(f"Initializing Runner for '{layout_id}'...")
    runner = SimulationRunner(layout_id, catalog=catalog)

    print("\nRunning Day Sweep (15 min steps)...")
    start = time.time()
    res = runner.run_day()
    end = time.time()

    print(f"\nSweep Complete in {end-start:.2f}s")
    print(f"Result Shape: {res.shape}")
    day = res[res['is_daylight']]
    print(day.head())

    print("\nMean shade over daylight (%):")
    for col, value in SimulationRunner.summarize(res).items():
        print(f"  {col.replace('shade_', '').upper():<5} {value * 100:5.1f}")

    shaded = day[(day.filter(like='shade_') > 0).any(axis=1)]
    print(f"\nSteps with any shade: {len(shaded)} of {len(day)}")


if __name__ == "__main__":
    sweep(sys.argv[1] if len(sys.argv) > 1 else None)
