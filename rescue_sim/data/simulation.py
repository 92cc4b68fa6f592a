"""
Longitudinal response simulation under a linear mixed model.

Each subject's K responses are multivariate normal with mean X_i beta and
covariance Z_i R Z_i' + sigma^2 I_K. Subjects are independent, so the
full covariance is block diagonal and each subject is drawn separately,
in subject order, from the same generator.
"""

import warnings
import pandas as pd
import numpy as np
from scipy.linalg import block_diag
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.settings import ResponseModelConfig
from ..models.specs import CovarianceSpec
from ..utils.errors import InvalidParameterError, NumericalError

# Relative tolerance for eigenvalue checks
PSD_TOLERANCE = 1e-10


def random_effects_covariance(spec: CovarianceSpec) -> np.ndarray:
    """
    Build the 2x2 random-effects covariance R from the three scalars.

    Raises:
        NumericalError: If R is not positive semi-definite
    """
    values = (spec.intercept_var, spec.slope_var, spec.intercept_slope_cov)
    if not np.all(np.isfinite(values)):
        raise NumericalError(f"Random-effect parameters must be finite, got {values}")

    if spec.intercept_var < 0 or spec.slope_var < 0:
        raise NumericalError(
            f"Random-effect variances must be non-negative "
            f"(intercept={spec.intercept_var}, slope={spec.slope_var})"
        )
    if spec.intercept_var * spec.slope_var < spec.intercept_slope_cov ** 2:
        raise NumericalError(
            f"Random-effects covariance is not positive semi-definite: "
            f"{spec.intercept_var} * {spec.slope_var} < {spec.intercept_slope_cov}^2"
        )

    return np.array([
        [spec.intercept_var, spec.intercept_slope_cov],
        [spec.intercept_slope_cov, spec.slope_var],
    ])


def marginal_covariance(z: np.ndarray, spec: CovarianceSpec) -> np.ndarray:
    """
    Marginal covariance of one subject's responses: Z R Z' + sigma^2 I.

    Args:
        z: K x 2 random-effect design of the subject
        spec: Covariance parameters

    Returns:
        Symmetric K x K matrix
    """
    z = np.asarray(z, dtype=float)
    if z.ndim != 2 or z.shape[1] != 2:
        raise InvalidParameterError(f"Random-effect design must be K x 2, got shape {z.shape}")
    if not np.isfinite(spec.residual_var) or spec.residual_var < 0:
        raise NumericalError(f"Residual variance must be non-negative, got {spec.residual_var}")

    r = random_effects_covariance(spec)
    sigma = z @ r @ z.T + spec.residual_var * np.eye(z.shape[0])

    # Remove floating-point asymmetry
    sigma = (sigma + sigma.T) / 2.0
    _check_positive_semidefinite(sigma)
    return sigma


def _check_positive_semidefinite(sigma: np.ndarray):
    eigenvalues = np.linalg.eigvalsh(sigma)
    scale = max(1.0, float(np.max(np.abs(eigenvalues))))
    if eigenvalues.min() < -PSD_TOLERANCE * scale:
        raise NumericalError(
            f"Marginal covariance is not positive semi-definite "
            f"(smallest eigenvalue {eigenvalues.min():.3e})"
        )


def _fixed_effect_columns(design: pd.DataFrame) -> List[str]:
    return [c for c in design.columns if c != 'subject_id']


def _require_columns(design: pd.DataFrame, columns: Sequence[str]):
    missing = [c for c in columns if c not in design.columns]
    if missing:
        raise InvalidParameterError(f"Design matrix is missing columns: {missing}")


def subject_covariances(design: pd.DataFrame,
                        spec: CovarianceSpec,
                        random_effect_columns: Sequence[str] = ResponseModelConfig.RANDOM_EFFECT_COLUMNS,
                        shared_covariance: bool = False) -> Dict[int, np.ndarray]:
    """
    Marginal covariance per subject.

    Subjects with the same random-effect template share one matrix. With
    shared_covariance=True the first subject's matrix is used for everyone.

    Returns:
        Mapping subject_id -> K x K covariance
    """
    _require_columns(design, ['subject_id', *random_effect_columns])

    covariances = {}
    cache: Dict[Tuple, np.ndarray] = {}
    shared = None

    for subject_id, rows in design.groupby('subject_id', sort=False):
        if shared_covariance and shared is not None:
            covariances[subject_id] = shared
            continue

        z = rows[list(random_effect_columns)].to_numpy(dtype=float)
        key = (z.shape, z.tobytes())
        if key not in cache:
            cache[key] = marginal_covariance(z, spec)
        covariances[subject_id] = cache[key]

        if shared_covariance:
            shared = covariances[subject_id]

    return covariances


def full_covariance(design: pd.DataFrame,
                    spec: CovarianceSpec,
                    random_effect_columns: Sequence[str] = ResponseModelConfig.RANDOM_EFFECT_COLUMNS,
                    shared_covariance: bool = False) -> np.ndarray:
    """
    Dense N*K x N*K block-diagonal covariance.

    Only for inspection on small designs; simulation never builds it.
    """
    blocks = subject_covariances(design, spec, random_effect_columns, shared_covariance)
    return block_diag(*blocks.values())


def linear_predictor(design: pd.DataFrame, spec: CovarianceSpec) -> np.ndarray:
    """Mean vector X beta over the fixed-effect columns of the design."""
    columns = _fixed_effect_columns(design)
    beta = spec.beta_vector

    if len(beta) != len(columns):
        raise InvalidParameterError(
            f"beta has {len(beta)} entries but the design has {len(columns)} "
            f"fixed-effect columns {columns}"
        )
    if not np.all(np.isfinite(beta)):
        raise InvalidParameterError(f"beta must be finite, got {spec.beta}")

    return design[columns].to_numpy(dtype=float) @ beta


def simulate_latent_responses(design: pd.DataFrame,
                              spec: CovarianceSpec,
                              rng: np.random.Generator,
                              random_effect_columns: Sequence[str] = ResponseModelConfig.RANDOM_EFFECT_COLUMNS,
                              shared_covariance: bool = False) -> pd.Series:
    """
    Draw continuous responses, one multivariate normal per subject.

    Args:
        design: Design matrix with subject_id, ordered by subject then visit
        spec: Fixed effects and covariance parameters
        rng: Random generator; consumed in subject order
        random_effect_columns: Two design columns forming Z_i
        shared_covariance: Use the first subject's covariance for all subjects

    Returns:
        Series aligned with the design index
    """
    mean = pd.Series(linear_predictor(design, spec), index=design.index)
    covariances = subject_covariances(design, spec, random_effect_columns, shared_covariance)

    latent = pd.Series(np.nan, index=design.index, name='latent_response')
    for subject_id, rows in design.groupby('subject_id', sort=False):
        sigma = covariances[subject_id]
        if sigma.shape[0] != len(rows):
            raise NumericalError(
                f"Shared covariance has dimension {sigma.shape[0]} but subject "
                f"{subject_id} has {len(rows)} visits"
            )
        try:
            draw = rng.multivariate_normal(mean.loc[rows.index].to_numpy(), sigma,
                                           check_valid='raise')
        except (ValueError, np.linalg.LinAlgError) as e:
            raise NumericalError(f"Multivariate normal draw failed for subject {subject_id}: {e}") from e
        latent.loc[rows.index] = draw

    return latent


def floor_and_clamp(values, lower: float = ResponseModelConfig.SCORE_MIN):
    """
    Round toward negative infinity, then raise anything below lower to lower.

    Idempotent: applying it twice gives the same result as once.
    """
    if isinstance(values, pd.Series):
        return values.pipe(np.floor).clip(lower=lower)
    return np.maximum(np.floor(np.asarray(values, dtype=float)), lower)


def simulate_responses(design: pd.DataFrame,
                       spec: CovarianceSpec,
                       rng: np.random.Generator,
                       random_effect_columns: Sequence[str] = ResponseModelConfig.RANDOM_EFFECT_COLUMNS,
                       shared_covariance: bool = False,
                       score_max: Optional[float] = ResponseModelConfig.SCORE_MAX) -> pd.Series:
    """
    Simulate integer scores on a bounded, non-negative scale.

    Scores above score_max are kept as drawn; a warning reports them.

    Returns:
        Integer Series named 'response', aligned with the design index
    """
    latent = simulate_latent_responses(design, spec, rng, random_effect_columns, shared_covariance)
    response = floor_and_clamp(latent).astype(int).rename('response')

    if score_max is not None:
        n_above = int((response > score_max).sum())
        if n_above:
            warnings.warn(f"{n_above} simulated scores exceed the instrument maximum of {score_max}")

    return response
