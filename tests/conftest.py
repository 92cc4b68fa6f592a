"""Shared fixtures for rescue simulation tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from rescue_sim.analysis.rescue_analysis import simulate_trial_dataset
from rescue_sim.data.design import build_design_matrix
from rescue_sim.models.mixed_models import TrajectoryEstimator
from rescue_sim.models.specs import CovarianceSpec, CensoringSpec


@pytest.fixture
def rng() -> np.random.Generator:
    """Fresh seeded generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def covariance_spec() -> CovarianceSpec:
    """Paper scenario response model."""
    return CovarianceSpec.from_config()


@pytest.fixture
def censoring_spec() -> CensoringSpec:
    """Paper scenario rescue model."""
    return CensoringSpec.from_config()


@pytest.fixture
def small_design() -> pd.DataFrame:
    """Four subjects (two per arm), three visits at months 0, 3, 6."""
    return build_design_matrix(2, 2, 3, start=0.0, increment=3.0, include_subject_id=True)


@pytest.fixture(scope="session")
def paper_dataset() -> pd.DataFrame:
    """One simulated dataset under the paper scenario."""
    return simulate_trial_dataset(np.random.default_rng(2024))


@pytest.fixture(scope="session")
def paper_fits(paper_dataset):
    """Three mixed-model fits on the paper dataset."""
    estimator = TrajectoryEstimator()
    return estimator, estimator.fit_all(paper_dataset, verbose=False)
