"""Tests for trajectory plots."""

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from rescue_sim.config.settings import AnalysisConfig
from rescue_sim.utils.visualization import TrajectoryVisualizer


@pytest.fixture
def trajectories() -> pd.DataFrame:
    rows = []
    for model in AnalysisConfig.MODEL_VARIANTS:
        for trt, group in AnalysisConfig.GROUP_LABELS.items():
            for t in (0.0, 3.0, 6.0):
                estimate = 10 - 0.5 * t * trt
                rows.append({'model': model, 'group': group, 'treatment': trt, 'time': t,
                             'estimate': estimate, 'lower': estimate - 1, 'upper': estimate + 1})
    return pd.DataFrame(rows)


class TestTrajectoryFacets:

    def teardown_method(self):
        plt.close('all')

    def test_one_facet_per_model(self, trajectories, tmp_path):
        fig = TrajectoryVisualizer(save_dir=tmp_path).trajectory_facets(trajectories)
        titles = [ax.get_title() for ax in fig.axes]
        assert titles == list(AnalysisConfig.MODEL_VARIANTS)

    def test_single_bottom_legend(self, trajectories, tmp_path):
        fig = TrajectoryVisualizer(save_dir=tmp_path).trajectory_facets(trajectories)
        assert len(fig.legends) == 1
        assert all(ax.get_legend() is None for ax in fig.axes)
        labels = [t.get_text() for t in fig.legends[0].get_texts()]
        assert set(AnalysisConfig.GROUP_PALETTE) <= set(labels)

    def test_subset_of_models(self, trajectories, tmp_path):
        subset = trajectories[trajectories['model'] == AnalysisConfig.MODEL_NO_CENSORING]
        fig = TrajectoryVisualizer(save_dir=tmp_path).trajectory_facets(subset, show_ci=True)
        assert len(fig.axes) == 1

    def test_empty_raises(self, trajectories, tmp_path):
        with pytest.raises(ValueError):
            TrajectoryVisualizer(save_dir=tmp_path).trajectory_facets(trajectories.iloc[0:0])

    def test_saves_png(self, trajectories, tmp_path):
        TrajectoryVisualizer(save_dir=tmp_path).trajectory_facets(trajectories, save_name='facets')
        assert (tmp_path / 'facets.png').exists()


class TestIndividualTrajectories:

    def teardown_method(self):
        plt.close('all')

    def test_plot(self, paper_dataset, tmp_path):
        fig = TrajectoryVisualizer(save_dir=tmp_path).individual_trajectories(
            paper_dataset, save_name='individual.png'
        )
        assert len(fig.axes) == 1
        assert (tmp_path / 'individual.png').exists()
