"""
Plot tests (Agg backend, no display needed)
"""
import pandas as pd
import pytest

from mobility_engine.stats.plots import plot_group_fits
from mobility_engine.stats.regression import GroupFits, fit_group_models

import matplotlib.pyplot as plt  # noqa: E402


def test_one_facet_and_one_annotation_per_group(mobility_frame):
    fits = fit_group_models(mobility_frame, "country", "total_cases", "parks")
    fig = plot_group_fits(mobility_frame, fits, "country", ncols=2)
    try:
        visible = [ax for ax in fig.axes if ax.get_visible()]
        assert [ax.get_title() for ax in visible] == ["Italy", "Spain", "Norway"]
        for ax in visible:
            labels = [t.get_text() for t in ax.texts]
            assert len(labels) == 1
            assert labels[0].startswith("slope = ")
    finally:
        plt.close(fig)


def test_skipped_groups_are_not_drawn():
    df = pd.DataFrame({"g": ["A", "A", "B"], "x": [1, 2, 1], "y": [1, 3, 2]})
    fits = fit_group_models(df, "g", "y", "x", on_insufficient="skip")
    fig = plot_group_fits(df, fits, "g")
    try:
        assert [ax.get_title() for ax in fig.axes if ax.get_visible()] == ["A"]
    finally:
        plt.close(fig)


def test_nothing_to_plot():
    with pytest.raises(ValueError):
        plot_group_fits(pd.DataFrame({"g": ["A"]}), GroupFits(response="y", predictor="x"), "g")
