"""
Parameter containers for the response and rescue-censoring models.
"""

import numpy as np
from typing import Sequence, Tuple
from dataclasses import dataclass, field

from ..config.settings import ResponseModelConfig, CensoringConfig


@dataclass(frozen=True)
class CovarianceSpec:
    """
    Population parameters of the linear mixed model generating responses.

    beta holds the fixed effects in design-column order (intercept,
    treatment, time, interaction, then any extra covariates). The three
    random-effect scalars define R = [[intercept_var, cov], [cov, slope_var]].
    """
    beta: Tuple[float, ...]
    intercept_var: float
    slope_var: float
    intercept_slope_cov: float
    residual_var: float

    def __post_init__(self):
        object.__setattr__(self, 'beta', tuple(float(b) for b in self.beta))

    @property
    def beta_vector(self) -> np.ndarray:
        return np.asarray(self.beta, dtype=float)

    @classmethod
    def from_config(cls, beta: Sequence[float] = None) -> 'CovarianceSpec':
        """Paper scenario parameters from ResponseModelConfig."""
        return cls(
            beta=tuple(beta) if beta is not None else ResponseModelConfig.BETA,
            intercept_var=ResponseModelConfig.INTERCEPT_VARIANCE,
            slope_var=ResponseModelConfig.SLOPE_VARIANCE,
            intercept_slope_cov=ResponseModelConfig.INTERCEPT_SLOPE_COVARIANCE,
            residual_var=ResponseModelConfig.RESIDUAL_VARIANCE,
        )


@dataclass(frozen=True)
class CensoringSpec:
    """Logistic model for rescue therapy at the final visit."""
    intercept: float
    treatment_coef: float
    outcome_coef: float
    rescue_factor: float = field(default=CensoringConfig.RESCUE_FACTOR)

    @classmethod
    def from_config(cls) -> 'CensoringSpec':
        return cls(
            intercept=CensoringConfig.INTERCEPT,
            treatment_coef=CensoringConfig.TREATMENT_COEF,
            outcome_coef=CensoringConfig.OUTCOME_COEF,
            rescue_factor=CensoringConfig.RESCUE_FACTOR,
        )
