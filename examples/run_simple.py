# examples/run_simple.py

import logging
import os

import matplotlib.pyplot as plt

from amm_settlement.models.settlement_model import SettlementModel
from amm_settlement.utils.config_parser import load_config


def main():
    logging.basicConfig(level=logging.WARNING)

    # 1. Locate and load the YAML scenario
    script_dir = os.path.dirname(os.path.abspath(__file__))
    config = load_config(os.path.join(script_dir, "config_showcase.yaml"))

    # 2. Build the model and run the configured number of steps
    model = SettlementModel(config)
    df = model.run()

    # 3. Summaries
    print("\n=== Final model metrics (last 5 steps) ===")
    print(df[["Settled", "Failures"]].tail())
    print("\n=== Failures by kind ===")
    for kind, count in sorted(model.metrics["failures"].items()):
        print(f"{kind}: {count}")

    # 4. Plot k for every pool; it never falls across swaps
    fig, axes = plt.subplots(len(model.pools), 1, figsize=(8, 3 * len(model.pools)), sharex=True)
    for ax, pool in zip(axes, model.pools):
        frame = model.get_pool_frame(pool.pool_id)
        ax.plot(frame.index, frame["k"].astype(float), label="k", color="tab:blue")
        ax.set_ylabel("k", color="tab:blue")
        ax.tick_params(axis="y", labelcolor="tab:blue")
        ax2 = ax.twinx()
        ax2.plot(frame.index, frame["lp_supply"].astype(float), label="LP supply", color="tab:orange", linestyle="--")
        ax2.set_ylabel("LP supply", color="tab:orange")
        ax.set_title(pool.pool_id)
    axes[-1].set_xlabel("Time Step")

    fig.suptitle("Pool Invariant and LP Supply Over Time")
    fig.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
