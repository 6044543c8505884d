"""
Run all six algorithms on the 5x5 Grid World and compare them.

This script prints, for each algorithm:
- the value function as a grid
- the greedy policy as arrows
- the return of a greedy replay from the start cell

It also saves plots to assets/plots/:
1) Value heatmap + policy arrows for each algorithm
2) Convergence curve for value iteration (delta vs sweep)
3) Reward per episode for the online algorithms

Run from repo root:
    python examples/train_gridworld.py
"""

from __future__ import annotations

import argparse
from pathlib import Path

from rl_learning_tool.common.plotting import save_convergence_curve, save_reward_curves, save_value_heatmap_with_policy
from rl_learning_tool.common.seeding import seed_everything
from rl_learning_tool.envs import GridWorld
from rl_learning_tool.session import COMPATIBLE_ALGORITHMS, TrainingConfig, TrainingSession

ARROWS = {
    "up": "↑",
    "down": "↓",
    "left": "←",
    "right": "→",
}


def format_values(values: dict[str, float], env: GridWorld) -> str:
    """
    Format a value table as a grid string. Obstacles are shown as '#', unseen states as '.'.

    :param values: Mapping state key -> value.
        :type values: dict[str, float]
    :param env: Grid World.
        :type env: GridWorld

    :return: Multi-line string.
        :rtype: str
    """
    lines = []
    for r in range(env.rows):
        row_vals = []
        for c in range(env.cols):
            s = env.state_key(r, c)
            if env.is_obstacle(r, c):
                row_vals.append("  #   ")
            elif s not in values:
                row_vals.append("  .   ")
            else:
                row_vals.append(f"{values[s]:6.2f}")
        lines.append(" ".join(row_vals))
    return "\n".join(lines)


def format_policy(policy: dict[str, str], env: GridWorld) -> str:
    """
    Format a deterministic policy as arrows on the grid, for example:

    → → → → ↓
    ↑ # → → ↓
    ...

    :param policy: Mapping state key -> action.
        :type policy: dict[str, str]
    :param env: Grid World.
        :type env: GridWorld

    :return: Multi-line string.
        :rtype: str
    """
    lines = []
    for r in range(env.rows):
        row_syms = []
        for c in range(env.cols):
            s = env.state_key(r, c)
            if env.is_obstacle(r, c):
                row_syms.append("#")
            elif env.is_goal(r, c):
                row_syms.append("G")
            else:
                row_syms.append(ARROWS.get(policy.get(s), "."))
        lines.append(" ".join(row_syms))
    return "\n".join(lines)


def parse_args() -> argparse.Namespace:
    """
    Parse CLI arguments.

    :return: Parsed args.
        :rtype: argparse.Namespace
    """
    p = argparse.ArgumentParser(description="Compare the six tabular algorithms on the Grid World.")
    p.add_argument("--gamma", type=float, default=0.9, help="Discount factor.")
    p.add_argument("--alpha", type=float, default=0.1, help="Learning rate (TD, SARSA, Q-learning).")
    p.add_argument("--epsilon", type=float, default=0.1, help="Exploration probability.")
    p.add_argument("--episodes", type=int, default=500, help="Episodes for the online algorithms.")
    p.add_argument("--seed", type=int, default=0, help="Master seed.")
    p.add_argument("--smooth", type=int, default=10, help="Smoothing window for the reward plot.")
    p.add_argument("--out_dir", type=str, default="assets/plots", help="Where to save plots.")
    return p.parse_args()


def main():
    args = parse_args()
    seed_everything(args.seed)
    out_dir = Path(args.out_dir)

    config = TrainingConfig(
        gamma=args.gamma,
        alpha=args.alpha,
        epsilon=args.epsilon,
        episodes=args.episodes,
        seed=args.seed,
    )

    reward_curves: dict[str, tuple[float, ...]] = {}

    for algo in COMPATIBLE_ALGORITHMS["gridworld"]:
        session = TrainingSession("gridworld", algo, config)
        snap = session.train()
        env = session.env

        print(f"\n=== {algo} ===")
        print("V:")
        print(format_values(snap.values, env))
        print("\nGreedy policy:")
        print(format_policy(snap.policy, env))

        replay = session.run_policy()
        status = "reached the goal" if replay.done else "did not reach the goal"
        print(f"\nGreedy replay: {replay.steps} steps, return {replay.total_reward:.2f} ({status})")

        save_value_heatmap_with_policy(
            values=snap.values,
            policy=snap.policy,
            env=env,
            out_path=out_dir / f"gridworld_{algo}_values_policy.png",
            title=f"Grid World ({algo}) - V + greedy policy",
        )

        if algo == "value-iteration":
            save_convergence_curve(
                deltas=session.algorithm.deltas,
                out_path=out_dir / "gridworld_value_iteration_convergence.png",
                title="Value Iteration convergence (max |V_{k+1} - V_k|)",
            )

        if snap.reward_history:
            reward_curves[algo] = snap.reward_history

    save_reward_curves(
        curves=reward_curves,
        out_path=out_dir / "gridworld_rewards.png",
        title="Grid World: reward per episode",
        smooth_window=args.smooth,
    )

    print(f"\nSaved plots to: {out_dir.resolve()}")


if __name__ == "__main__":
    main()
