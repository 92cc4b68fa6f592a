"""
Design matrix construction for the simulated longitudinal trial.

One row per (subject, visit), ordered by subject then visit. Treated
subjects come first: the first n_treatment subjects carry treatment = 1,
the remaining n_control carry treatment = 0.
"""

import pandas as pd
import numpy as np
from typing import List, Optional, Sequence, Union

from ..utils.errors import InvalidParameterError


def _check_count(name: str, value: int, minimum: int = 0) -> int:
    """Validate a non-negative (or >= minimum) integer count."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidParameterError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def _resolve_binary_probabilities(n_binary: int,
                                  binary_prob: Union[float, Sequence[float]]) -> np.ndarray:
    """
    Broadcast binary success probabilities to one value per covariate.

    Args:
        n_binary: Number of extra binary covariates
        binary_prob: Scalar or sequence of length 1 or n_binary

    Returns:
        Array of length n_binary
    """
    probs = np.atleast_1d(np.asarray(binary_prob, dtype=float))

    if probs.ndim != 1 or len(probs) not in (1, n_binary):
        raise InvalidParameterError(
            f"binary_prob must have length 1 or {n_binary}, got {probs.size}"
        )
    if not np.all(np.isfinite(probs)) or np.any((probs < 0) | (probs > 1)):
        raise InvalidParameterError(f"binary_prob values must lie in [0, 1], got {probs.tolist()}")

    return np.broadcast_to(probs, (n_binary,)).copy()


def design_column_names(n_binary: int = 0, n_continuous: int = 0,
                        include_interaction: bool = True) -> List[str]:
    """Fixed column order of the design matrix (without subject_id)."""
    columns = ['intercept', 'treatment', 'time']
    if include_interaction:
        columns.append('treatment_time')
    columns += [f'binary_{j + 1}' for j in range(n_binary)]
    columns += [f'continuous_{j + 1}' for j in range(n_continuous)]
    return columns


def visit_times(n_visits: int, start: float = 0.0, increment: float = 1.0) -> np.ndarray:
    """Shared time grid: start + increment * visit index."""
    n_visits = _check_count('n_visits', n_visits, minimum=1)
    return start + increment * np.arange(n_visits, dtype=float)


def build_design_matrix(n_treatment: int,
                        n_control: int,
                        n_visits: int,
                        start: float = 0.0,
                        increment: float = 1.0,
                        n_binary: int = 0,
                        binary_prob: Union[float, Sequence[float]] = 0.5,
                        n_continuous: int = 0,
                        include_interaction: bool = True,
                        include_subject_id: bool = False,
                        rng: Optional[np.random.Generator] = None) -> pd.DataFrame:
    """
    Build fixed-effect covariates for every (subject, visit) pair.

    Extra binary covariates are one Bernoulli draw per subject and extra
    continuous covariates one standard-normal draw per subject, each
    repeated across the subject's visits. All arguments are validated
    before anything is drawn from rng.

    Args:
        n_treatment: Subjects in the treatment arm (listed first)
        n_control: Subjects in the control arm
        n_visits: Repeated measurements per subject (K)
        start: Time of the first visit
        increment: Time between consecutive visits
        n_binary: Number of extra binary covariates
        binary_prob: Success probability, scalar or one per binary covariate
        n_continuous: Number of extra continuous covariates
        include_interaction: Whether to add the treatment x time column
        include_subject_id: Whether to prepend a 1-based subject_id column
        rng: Random generator, required only when extra covariates are requested

    Returns:
        DataFrame with (n_treatment + n_control) * n_visits rows
    """
    n_treatment = _check_count('n_treatment', n_treatment)
    n_control = _check_count('n_control', n_control)
    n_visits = _check_count('n_visits', n_visits, minimum=1)
    n_binary = _check_count('n_binary', n_binary)
    n_continuous = _check_count('n_continuous', n_continuous)

    n_subjects = n_treatment + n_control
    if n_subjects == 0:
        raise InvalidParameterError("At least one subject is required")
    if not (np.isfinite(start) and np.isfinite(increment)):
        raise InvalidParameterError("start and increment must be finite")

    probs = _resolve_binary_probabilities(n_binary, binary_prob)

    if (n_binary or n_continuous) and rng is None:
        raise InvalidParameterError("rng is required to draw extra covariates")

    times = visit_times(n_visits, start, increment)
    subject_ids = np.repeat(np.arange(1, n_subjects + 1), n_visits)
    treatment = np.repeat(
        np.concatenate([np.ones(n_treatment), np.zeros(n_control)]), n_visits
    )
    time = np.tile(times, n_subjects)

    design = pd.DataFrame({
        'intercept': np.ones(n_subjects * n_visits),
        'treatment': treatment,
        'time': time,
    })
    if include_interaction:
        design['treatment_time'] = treatment * time

    # Subject-level draws, broadcast over visits
    if n_binary:
        binary = rng.binomial(1, probs, size=(n_subjects, n_binary)).astype(float)
        for j in range(n_binary):
            design[f'binary_{j + 1}'] = np.repeat(binary[:, j], n_visits)

    if n_continuous:
        continuous = rng.standard_normal((n_subjects, n_continuous))
        for j in range(n_continuous):
            design[f'continuous_{j + 1}'] = np.repeat(continuous[:, j], n_visits)

    if include_subject_id:
        design.insert(0, 'subject_id', subject_ids)

    return design


def subject_table(design: pd.DataFrame) -> pd.DataFrame:
    """
    One row per subject with its arm assignment.

    Args:
        design: Design matrix with a subject_id column

    Returns:
        DataFrame with subject_id and treatment
    """
    if 'subject_id' not in design.columns:
        raise InvalidParameterError("design must include a subject_id column")

    subjects = design.groupby('subject_id', sort=False)['treatment'].first().reset_index()
    subjects['treatment'] = subjects['treatment'].astype(int)
    return subjects
