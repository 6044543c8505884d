from __future__ import annotations
from pathlib import Path
from typing import Mapping, Sequence
import matplotlib.pyplot as plt
import numpy as np

from rl_learning_tool.envs.gridworld import GridWorld

# (dx, dy) in image coordinates: rows grow downwards
ARROWS = {
    "up": (0.0, -0.3),
    "down": (0.0, 0.3),
    "left": (-0.3, 0.0),
    "right": (0.3, 0.0),
}


def _save(fig: plt.Figure, out_path: str | Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
    return out_path


def moving_average(x: Sequence[float], window: int) -> np.ndarray:
    """
    Trailing mean over the last `window` points.

    The first window-1 points average whatever is available so far, so the output
    keeps the length of the input and starts at x[0] instead of a padded value.

    :param x: 1D curve.
        :type x: Sequence[float]
    :param window: Window size. 1 (or less) returns the curve unchanged.
        :type window: int

    :return: Smoothed curve, same length as x.
        :rtype: np.ndarray
    """
    x = np.asarray(x, dtype=np.float64)
    if window <= 1 or x.size == 0:
        return x

    csum = np.cumsum(x)
    sums = csum.copy()
    sums[window:] = csum[window:] - csum[:-window]
    counts = np.minimum(np.arange(1, x.size + 1), window)
    return sums / counts


def save_reward_curves(
    *,
    curves: Mapping[str, Sequence[float]],
    out_path: str | Path,
    title: str,
    smooth_window: int = 1,
    xlabel: str = "Episode",
    ylabel: str = "Total reward",
) -> Path:
    """
    Plot one reward-per-episode curve per algorithm.

    With smoothing, the raw curve stays in the background (faded) under the trailing mean.

    :param curves: Mapping label -> reward per episode.
        :type curves: Mapping[str, Sequence[float]]
    :param out_path: Output image path (parent directories are created).
        :type out_path: str | Path
    :param title: Plot title.
        :type title: str
    :param smooth_window: Trailing mean window (1 means raw curves only).
        :type smooth_window: int
    :param xlabel: x-axis label.
        :type xlabel: str
    :param ylabel: y-axis label.
        :type ylabel: str

    :return: Path of the written image.
        :rtype: Path
    """
    if not curves:
        raise ValueError("curves is empty, nothing to plot")

    fig, ax = plt.subplots()
    for label, rewards in curves.items():
        rewards = np.asarray(rewards, dtype=np.float64)
        if smooth_window > 1:
            (raw,) = ax.plot(rewards, alpha=0.25)
            ax.plot(moving_average(rewards, smooth_window), color=raw.get_color(), label=label)
        else:
            ax.plot(rewards, label=label)

    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.grid(True, alpha=0.3)
    ax.legend()
    return _save(fig, out_path)


def values_to_grid(values: dict[str, float], env: GridWorld) -> np.ndarray:
    """
    Lay a value table out as a (rows, cols) array. Obstacles and missing states are NaN.

    :param values: Mapping state key -> value.
        :type values: dict[str, float]
    :param env: Grid World the keys belong to.
        :type env: GridWorld

    :return: Array of shape (rows, cols).
        :rtype: np.ndarray
    """
    grid = np.full((env.rows, env.cols), np.nan, dtype=np.float64)
    for state, v in values.items():
        r, c = env.parse_key(state)
        if not env.is_obstacle(r, c):
            grid[r, c] = v
    return grid


def save_value_heatmap_with_policy(
    *,
    values: dict[str, float],
    policy: dict[str, str],
    env: GridWorld,
    out_path: str | Path,
    title: str,
    annotate: bool = True,
) -> Path:
    """
    Save a heatmap of V over the grid with the greedy policy drawn as arrows.

    Obstacles are left blank, the goal is marked with "G" and gets no arrow.

    :param values: Mapping state key -> value.
        :type values: dict[str, float]
    :param policy: Mapping state key -> action.
        :type policy: dict[str, str]
    :param env: Grid World the keys belong to.
        :type env: GridWorld
    :param out_path: Output path for the saved image.
        :type out_path: str | Path
    :param title: Plot title.
        :type title: str
    :param annotate: Write the value inside each cell.
        :type annotate: bool

    :return: Path of the written image.
        :rtype: Path
    """
    grid = values_to_grid(values, env)

    fig, ax = plt.subplots()
    image = ax.imshow(np.ma.masked_invalid(grid), cmap="viridis")
    fig.colorbar(image, ax=ax, label="V(s)")

    for r in range(env.rows):
        for c in range(env.cols):
            if env.is_obstacle(r, c):
                continue
            if env.is_goal(r, c):
                ax.text(c, r, "G", ha="center", va="center", color="white", fontweight="bold")
                continue

            state = env.state_key(r, c)
            if annotate and not np.isnan(grid[r, c]):
                ax.text(c, r + 0.35, f"{grid[r, c]:.1f}", ha="center", va="center", color="white", fontsize=7)
            if state in policy:
                dx, dy = ARROWS[policy[state]]
                ax.arrow(c - dx / 2, r - dy / 2, dx, dy, head_width=0.12, length_includes_head=True, color="white")

    ax.set_title(title)
    ax.set_xticks(range(env.cols))
    ax.set_yticks(range(env.rows))
    return _save(fig, out_path)


def save_convergence_curve(*, deltas: Sequence[float], out_path: str | Path, title: str, logy: bool = True) -> Path:
    """
    Save the value iteration convergence curve (delta per sweep).

    :param deltas: max_s |V_{k+1}(s) - V_k(s)| for each sweep k.
        :type deltas: Sequence[float]
    :param out_path: Output path for the saved image.
        :type out_path: str | Path
    :param title: Plot title.
        :type title: str
    :param logy: Use a log scale on the y axis (zero deltas are dropped).
        :type logy: bool

    :return: Path of the written image.
        :rtype: Path
    """
    y = np.asarray(deltas, dtype=np.float64)
    x = np.arange(1, len(y) + 1)
    if logy:
        keep = y > 0  # log(0) is undefined
        x, y = x[keep], y[keep]

    fig, ax = plt.subplots()
    ax.plot(x, y, marker="o")
    if logy:
        ax.set_yscale("log")
    ax.set_title(title)
    ax.set_xlabel("Sweep")
    ax.set_ylabel("delta")
    ax.grid(True)
    return _save(fig, out_path)
