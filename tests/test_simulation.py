"""Tests for the longitudinal response simulator."""

import warnings

import numpy as np
import pandas as pd
import pytest

from rescue_sim.data.design import build_design_matrix
from rescue_sim.data.simulation import (
    random_effects_covariance,
    marginal_covariance,
    subject_covariances,
    full_covariance,
    linear_predictor,
    simulate_latent_responses,
    floor_and_clamp,
    simulate_responses,
)
from rescue_sim.models.specs import CovarianceSpec
from rescue_sim.utils.errors import InvalidParameterError, NumericalError


def make_spec(intercept_var=2.15, slope_var=0.25, cov=-0.125, residual_var=2.0,
              beta=(10.0, -1.0 / 6.0, 0.0, -0.5)):
    return CovarianceSpec(beta=beta, intercept_var=intercept_var, slope_var=slope_var,
                          intercept_slope_cov=cov, residual_var=residual_var)


class TestCovariance:
    """Random-effects and marginal covariance construction."""

    def test_random_effects_matrix(self):
        r = random_effects_covariance(make_spec())
        np.testing.assert_allclose(r, [[2.15, -0.125], [-0.125, 0.25]])

    @pytest.mark.parametrize("intercept_var,slope_var,cov", [
        (1.0, 1.0, 2.0),
        (0.5, 0.5, -0.6),
        (-1.0, 1.0, 0.0),
        (1.0, -0.1, 0.0),
    ])
    def test_not_psd_raises(self, intercept_var, slope_var, cov):
        with pytest.raises(NumericalError):
            random_effects_covariance(make_spec(intercept_var, slope_var, cov))

    def test_boundary_is_accepted(self):
        """Product equal to covariance squared is still PSD."""
        r = random_effects_covariance(make_spec(1.0, 4.0, 2.0))
        assert np.linalg.eigvalsh(r).min() > -1e-12

    def test_marginal_symmetric_and_psd(self):
        """Valid parameter sets give symmetric PSD blocks."""
        rng = np.random.default_rng(0)
        z = np.column_stack([np.ones(3), [0.0, 3.0, 6.0]])
        for _ in range(100):
            v0, v1 = rng.uniform(0, 5, size=2)
            cov = rng.uniform(-1, 1) * np.sqrt(v0 * v1)
            sigma = marginal_covariance(z, make_spec(v0, v1, cov, rng.uniform(0, 3)))
            np.testing.assert_allclose(sigma, sigma.T)
            assert np.linalg.eigvalsh(sigma).min() > -1e-9

    def test_marginal_formula(self):
        z = np.column_stack([np.ones(3), [0.0, 3.0, 6.0]])
        spec = make_spec()
        expected = z @ random_effects_covariance(spec) @ z.T + 2.0 * np.eye(3)
        np.testing.assert_allclose(marginal_covariance(z, spec), expected)
        assert marginal_covariance(z, spec)[2, 2] == pytest.approx(11.65)

    def test_marginal_rejects_bad_shape(self):
        with pytest.raises(InvalidParameterError):
            marginal_covariance(np.ones((3, 3)), make_spec())

    def test_negative_residual_raises(self):
        z = np.column_stack([np.ones(3), [0.0, 3.0, 6.0]])
        with pytest.raises(NumericalError):
            marginal_covariance(z, make_spec(residual_var=-1.0))

    def test_per_subject_depends_on_group(self, small_design):
        """With Z = (treatment, time) control subjects lose the intercept variance."""
        blocks = subject_covariances(small_design, make_spec())
        np.testing.assert_allclose(blocks[1], blocks[2])
        np.testing.assert_allclose(blocks[3], blocks[4])
        assert blocks[1][0, 0] == pytest.approx(2.15 + 2.0)
        assert blocks[3][0, 0] == pytest.approx(2.0)

    def test_shared_uses_first_subject(self, small_design):
        blocks = subject_covariances(small_design, make_spec(), shared_covariance=True)
        for sigma in blocks.values():
            np.testing.assert_allclose(sigma, blocks[1])

    def test_full_covariance_block_diagonal(self, small_design):
        full = full_covariance(small_design, make_spec(), shared_covariance=True)
        assert full.shape == (12, 12)
        np.testing.assert_allclose(full, full.T)
        assert np.all(full[:3, 3:] == 0)
        assert np.all(full[3:6, 6:] == 0)


class TestFloorAndClamp:
    """Rounding to the bounded integer scale."""

    def test_values(self):
        np.testing.assert_array_equal(floor_and_clamp([-1.5, -0.2, 0.2, 3.9, 7.0]),
                                      [0.0, 0.0, 0.0, 3.0, 7.0])

    def test_idempotent(self):
        values = np.random.default_rng(3).normal(2.0, 5.0, size=500)
        once = floor_and_clamp(values)
        np.testing.assert_array_equal(floor_and_clamp(once), once)

    def test_series(self):
        result = floor_and_clamp(pd.Series([-2.7, 4.2], index=[10, 11]))
        assert result.tolist() == [0.0, 4.0]
        assert result.index.tolist() == [10, 11]


class TestSimulateResponses:
    """Multivariate normal draws per subject."""

    def test_integer_non_negative(self, small_design, rng):
        response = simulate_responses(small_design, make_spec(), rng)
        assert len(response) == len(small_design)
        assert response.name == 'response'
        assert np.issubdtype(response.dtype, np.integer)
        assert (response >= 0).all()

    def test_reproducible(self, small_design):
        first = simulate_responses(small_design, make_spec(), np.random.default_rng(9))
        second = simulate_responses(small_design, make_spec(), np.random.default_rng(9))
        pd.testing.assert_series_equal(first, second)

    def test_different_seeds_differ(self):
        design = build_design_matrix(20, 20, 3, increment=3.0, include_subject_id=True)
        first = simulate_latent_responses(design, make_spec(), np.random.default_rng(1))
        second = simulate_latent_responses(design, make_spec(), np.random.default_rng(2))
        assert not np.allclose(first, second)

    def test_latent_mean_matches_linear_predictor(self):
        """Sample means per arm and visit approach X beta."""
        design = build_design_matrix(1000, 1000, 3, increment=3.0, include_subject_id=True)
        spec = make_spec()
        latent = simulate_latent_responses(design, spec, np.random.default_rng(5),
                                           shared_covariance=True)
        frame = design.assign(latent=latent, mean=linear_predictor(design, spec))
        summary = frame.groupby(['treatment', 'time'])[['latent', 'mean']].mean()
        np.testing.assert_allclose(summary['latent'], summary['mean'], atol=0.4)

    def test_beta_length_mismatch(self, small_design, rng):
        with pytest.raises(InvalidParameterError, match="beta"):
            simulate_responses(small_design, make_spec(beta=(1.0, 2.0)), rng)

    def test_missing_random_effect_column(self, rng):
        design = build_design_matrix(2, 2, 3, include_interaction=False, include_subject_id=True)
        with pytest.raises(InvalidParameterError, match="missing"):
            simulate_responses(design, make_spec(beta=(1.0, 0.0, 0.0)), rng,
                               random_effect_columns=('intercept', 'visit'))

    def test_not_psd_raises(self, small_design, rng):
        with pytest.raises(NumericalError):
            simulate_responses(small_design, make_spec(1.0, 1.0, 3.0), rng)

    def test_extra_covariates_enter_mean(self, rng):
        design = build_design_matrix(3, 3, 2, n_continuous=1, include_subject_id=True, rng=rng)
        spec = make_spec(beta=(5.0, 0.0, 0.0, 0.0, 1.0))
        np.testing.assert_allclose(linear_predictor(design, spec), 5.0 + design['continuous_1'])

    def test_scores_above_maximum_warn(self, small_design, rng):
        spec = make_spec(beta=(100.0, 0.0, 0.0, 0.0))
        with pytest.warns(UserWarning, match="instrument maximum"):
            response = simulate_responses(small_design, spec, rng, score_max=24)
        assert (response > 24).all()

    def test_no_warning_in_range(self, small_design, rng):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            simulate_responses(small_design, make_spec(beta=(5.0, 0.0, 0.0, 0.0)), rng, score_max=24)
