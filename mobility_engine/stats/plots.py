"""
Faceted scatter plots of per-group fits.
"""

from typing import Dict, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from .regression import FittedModel, GroupFits, partition_by_group, usable_pairs  # noqa: E402
from .schema import TableLike, as_frame  # noqa: E402


def _make_axes(n_panels: int, ncols: int = 3):
    """Create a subplot grid sized to the number of groups."""
    cols = min(ncols, n_panels)
    rows = (n_panels + cols - 1) // cols
    fig, axes = plt.subplots(rows, cols, figsize=(4.5 * cols, 3.5 * rows), squeeze=False)
    axes = axes.flatten()
    for j in range(n_panels, len(axes)):
        axes[j].set_visible(False)
    return fig, axes[:n_panels]


def plot_group_fits(
    table: TableLike,
    fits: GroupFits,
    group_key: str,
    ncols: int = 3,
    normalize_keys: bool = True,
    title: Optional[str] = None,
):
    """
    One facet per fitted group: usable points, fitted line, slope label.

    Args:
        table: the table the fits were computed from
        fits: result of fit_group_models on the same table
        group_key: grouping column used for the fits
        ncols: facets per row

    Returns the matplotlib Figure. Groups without a model are not drawn.
    """
    if not fits.models:
        raise ValueError("No fitted groups to plot")

    frame = as_frame(table)
    parts: Dict[str, pd.DataFrame] = {
        key.label: part
        for key, part in partition_by_group(frame, group_key, normalize_keys=normalize_keys).items()
    }

    fig, axes = _make_axes(len(fits.models), ncols=ncols)
    for ax, (label, model) in zip(axes, fits.models.items()):
        pairs = usable_pairs(parts[label], fits.response, fits.predictor)
        _draw_fit(ax, pairs, model)
        ax.set_title(label, fontsize=11)
        ax.set_xlabel(fits.predictor, fontsize=9)
        ax.set_ylabel(fits.response, fontsize=9)
        ax.grid(True, alpha=0.3)

    fig.suptitle(title or f"{fits.response} ~ {fits.predictor} by {group_key}", fontsize=13, fontweight="bold")
    fig.tight_layout(rect=[0.0, 0.0, 1.0, 0.95])
    return fig


def _draw_fit(ax, pairs: pd.DataFrame, model: FittedModel) -> None:
    ax.scatter(pairs["x"], pairs["y"], s=12, alpha=0.6)
    xs = np.linspace(pairs["x"].min(), pairs["x"].max(), 50)
    ax.plot(xs, model.predict(xs), "r-", linewidth=1.5)
    # exactly one annotation per facet
    ax.text(
        0.03, 0.95, f"slope = {model.slope:.3g}",
        transform=ax.transAxes, va="top", fontsize=9,
        bbox={"boxstyle": "round", "facecolor": "white", "alpha": 0.7},
    )
