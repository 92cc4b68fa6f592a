"""
Informative censoring by rescue therapy.

The probability that a subject receives rescue therapy depends on the arm
and on the final-visit score through a logistic link. Rescue only alters
the final visit; every earlier visit is observed as simulated.
"""

import pandas as pd
import numpy as np
from scipy.special import expit

from ..models.specs import CensoringSpec
from ..utils.errors import InvalidParameterError

REQUIRED_COLUMNS = ['subject_id', 'treatment', 'time', 'response']


def censoring_probability(treatment, final_response, spec: CensoringSpec) -> np.ndarray:
    """
    Logistic probability of rescue: expit(alpha + x * theta1 + y * theta2).

    Args:
        treatment: Treatment indicator per subject
        final_response: Final-visit score per subject
        spec: Censoring parameters

    Returns:
        Array of probabilities in (0, 1)
    """
    treatment = np.asarray(treatment, dtype=float)
    final_response = np.asarray(final_response, dtype=float)

    if treatment.shape != final_response.shape:
        raise InvalidParameterError(
            f"treatment and final_response differ in shape: {treatment.shape} vs {final_response.shape}"
        )

    eta = spec.intercept + treatment * spec.treatment_coef + final_response * spec.outcome_coef
    return expit(eta)


def final_visits(dataset: pd.DataFrame, response_col: str = 'response') -> pd.DataFrame:
    """Last visit of every subject, in subject order."""
    missing = [c for c in ['subject_id', 'treatment', 'time', response_col] if c not in dataset.columns]
    if missing:
        raise InvalidParameterError(f"Dataset is missing columns: {missing}")

    last_time = dataset.groupby('subject_id', sort=False)['time'].transform('max')
    return dataset[dataset['time'] == last_time].reset_index(drop=True)


def simulate_censoring(final: pd.DataFrame,
                       spec: CensoringSpec,
                       rng: np.random.Generator) -> pd.DataFrame:
    """
    Draw one rescue indicator per subject.

    Args:
        final: One row per subject with subject_id, treatment and response
        spec: Censoring parameters
        rng: Random generator; one Bernoulli draw per subject in row order

    Returns:
        DataFrame with subject_id, probability and censored (0/1)
    """
    probability = censoring_probability(final['treatment'], final['response'], spec)
    censored = rng.binomial(1, probability)

    return pd.DataFrame({
        'subject_id': final['subject_id'].to_numpy(),
        'probability': probability,
        'censored': censored.astype(int),
    })


def apply_rescue_effect(dataset: pd.DataFrame,
                        outcomes: pd.DataFrame,
                        rescue_factor: float) -> pd.DataFrame:
    """
    Attach censoring indicators and derive the observed score series.

    Observed equals the true score everywhere except the final visit of a
    rescued subject, where it becomes floor(score * rescue_factor).

    Returns:
        Copy of dataset with censored and observed_response columns
    """
    if not np.isfinite(rescue_factor) or rescue_factor < 0:
        raise InvalidParameterError(f"rescue_factor must be a non-negative number, got {rescue_factor}")

    result = dataset.copy()
    indicator = outcomes.set_index('subject_id')['censored']
    result['censored'] = result['subject_id'].map(indicator).fillna(0).astype(int)

    last_time = result.groupby('subject_id', sort=False)['time'].transform('max')
    rescued = (result['censored'] == 1) & (result['time'] == last_time)

    observed = result['response'].copy()
    observed[rescued] = np.floor(result.loc[rescued, 'response'] * rescue_factor).astype(int)
    result['observed_response'] = observed.astype(int)

    return result


def simulate_rescue_censoring(dataset: pd.DataFrame,
                              spec: CensoringSpec,
                              rng: np.random.Generator) -> pd.DataFrame:
    """
    Simulate rescue therapy for a longitudinal dataset.

    Args:
        dataset: One row per subject-visit with subject_id, treatment, time, response
        spec: Censoring parameters
        rng: Random generator

    Returns:
        Copy of dataset with censored and observed_response columns
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in dataset.columns]
    if missing:
        raise InvalidParameterError(f"Dataset is missing columns: {missing}")

    outcomes = simulate_censoring(final_visits(dataset), spec, rng)
    return apply_rescue_effect(dataset, outcomes, spec.rescue_factor)
