"""
Data module for the rescue therapy simulation.

This module provides the design matrix builder, the longitudinal response
simulator and the informative (rescue) censoring simulator.
"""

from .design import build_design_matrix, design_column_names, visit_times, subject_table
from .simulation import (
    random_effects_covariance,
    marginal_covariance,
    subject_covariances,
    full_covariance,
    linear_predictor,
    simulate_latent_responses,
    floor_and_clamp,
    simulate_responses,
)
from .censoring import (
    censoring_probability,
    final_visits,
    simulate_censoring,
    apply_rescue_effect,
    simulate_rescue_censoring,
)

__all__ = [
    # Design matrix
    'build_design_matrix',
    'design_column_names',
    'visit_times',
    'subject_table',

    # Response simulation
    'random_effects_covariance',
    'marginal_covariance',
    'subject_covariances',
    'full_covariance',
    'linear_predictor',
    'simulate_latent_responses',
    'floor_and_clamp',
    'simulate_responses',

    # Rescue censoring
    'censoring_probability',
    'final_visits',
    'simulate_censoring',
    'apply_rescue_effect',
    'simulate_rescue_censoring',
]
