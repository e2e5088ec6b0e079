#!/usr/bin/env python3
"""Example 1: SIR epidemic model

Computes the flowpipe of the discrete SIR model from a box of initial states
and compares the two transformation modes:

    AFO: every parallelotope is bounded along all the bundle directions
    OFO: every parallelotope is bounded along its own directions only
"""

import os
import argparse
import time

from BundleReach import TransformationMode, configure_logging
from BundleReach.systems import sir_model
from BundleReach.cache import save_flowpipe, load_flowpipe
from BundleReach.plot import save_flowpipe_plot


# ==============================================================================
# System Parameters
# ==============================================================================

beta, gamma = 0.34, 0.05   # infection and recovery rates
dt = 0.1                   # discretization step
steps = 300                # time horizon


def main():
    parser = argparse.ArgumentParser(description='SIR reachability with caching')
    parser.add_argument('--steps', type=int, default=steps,
                        help='Number of reachability steps')
    parser.add_argument('--jobs', type=int, default=1,
                        help='Number of parallel jobs (-1 uses all CPUs)')
    parser.add_argument('--no-cache', action='store_true',
                        help='Recompute the flowpipes even if they are cached')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()

    configure_logging(args.verbose)

    output_dir = 'example_1_sir'
    os.makedirs(output_dir, exist_ok=True)

    print("=" * 80)
    print("BundleReach Example 1: SIR epidemic model")
    print("=" * 80 + "\n")

    for mode in (TransformationMode.AFO, TransformationMode.OFO):
        print("=" * 80)
        print(f"MODE {mode.value}")
        print("=" * 80)

        cache_path = os.path.join(output_dir, f'flowpipe_{mode.value}.json')
        flowpipe = None if args.no_cache else load_flowpipe(cache_path)

        if flowpipe is not None:
            print("  Loaded from cache")
        else:
            model = sir_model(beta=beta, gamma=gamma, dt=dt, mode=mode)
            t0 = time.time()
            flowpipe = model.reach(args.steps, n_jobs=args.jobs)
            t_compute = time.time() - t0
            print(f"  Computation time: {t_compute:.2f} seconds")

            save_flowpipe(cache_path, flowpipe,
                          metadata={'mode': mode.value, 'computation_time': t_compute})
            print("  Saved to cache")

        box = flowpipe.bounding_box(len(flowpipe) - 1)
        print(f"  Steps: {len(flowpipe) - 1}")
        for name, lower, upper in zip('sir', box[0], box[1]):
            print(f"  {name} in [{lower:.5f}, {upper:.5f}]")

        plot_path = os.path.join(output_dir, f'sir_{mode.value}.png')
        save_flowpipe_plot(flowpipe, plot_path, dims=(0, 1), labels=('s', 'i'),
                           title=f'SIR flowpipe ({mode.value})')
        print(f"  Saved plot to: {plot_path}\n")


if __name__ == '__main__':
    main()
