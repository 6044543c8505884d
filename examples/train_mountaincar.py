"""
Train the online algorithms on Mountain Car (binned state key).

Mountain Car does not enumerate its states, so only Monte Carlo, TD, SARSA and
Q-learning apply. Reward is -1 per step, so a return of -200 means the car never
reached the flag within the step cap.

Run from repo root:
    python examples/train_mountaincar.py

It saves:
    assets/plots/mountaincar_rewards.png
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np

from rl_learning_tool.common.plotting import save_reward_curves
from rl_learning_tool.common.seeding import seed_everything
from rl_learning_tool.session import COMPATIBLE_ALGORITHMS, Snapshot, TrainingConfig, TrainingSession


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Online tabular algorithms on Mountain Car.")
    p.add_argument("--gamma", type=float, default=0.99, help="Discount factor.")
    p.add_argument("--alpha", type=float, default=0.1, help="Learning rate.")
    p.add_argument("--epsilon", type=float, default=0.1, help="Exploration probability.")
    p.add_argument("--episodes", type=int, default=300, help="Episodes per algorithm.")
    p.add_argument("--seed", type=int, default=0, help="Master seed.")
    p.add_argument("--smooth", type=int, default=20, help="Smoothing window for plotting.")
    p.add_argument("--report-every", type=int, default=50, help="Print progress every N episodes.")
    p.add_argument("--out_dir", type=str, default="assets/plots", help="Where to save plots.")
    return p.parse_args()


def main():
    args = parse_args()
    seed_everything(args.seed)

    config = TrainingConfig(
        gamma=args.gamma,
        alpha=args.alpha,
        epsilon=args.epsilon,
        episodes=args.episodes,
        snapshot_every=args.report_every,
        seed=args.seed,
    )

    curves: dict[str, tuple[float, ...]] = {}

    for algo in COMPATIBLE_ALGORITHMS["mountaincar"]:
        session = TrainingSession("mountaincar", algo, config)

        def report(snap: Snapshot, algo: str = algo) -> None:
            recent = snap.reward_history[-args.report_every:]
            print(f"[{algo}] episode {snap.episode}: mean reward {np.mean(recent):.1f}, states seen {len(snap.values)}")

        snap = session.train(on_snapshot=report)
        curves[algo] = snap.reward_history

    out_path = Path(args.out_dir) / "mountaincar_rewards.png"
    save_reward_curves(
        curves=curves,
        out_path=out_path,
        title="Mountain Car: reward per episode",
        smooth_window=args.smooth,
    )

    tail = min(50, args.episodes)
    print("\nFinal performance (mean reward over last episodes):")
    for label, curve in curves.items():
        print(f"  {label:12s} {np.mean(curve[-tail:]):.2f}")
    print(f"\nSaved plot: {out_path.resolve()}")


if __name__ == "__main__":
    main()
