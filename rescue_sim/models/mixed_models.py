"""
Linear mixed models for estimated group trajectories.

Three handling strategies for rescued subjects are compared:
  - No censoring: true responses, as if rescue never happened
  - Ignoring censoring: rescue-adjusted final scores taken at face value
  - Excluding censored: final visit of rescued subjects treated as missing

Each is fitted by REML (statsmodels MixedLM) with a random intercept and
a random slope on time, grouped by subject.
"""

import pandas as pd
import numpy as np
from typing import Dict, List, Optional, Sequence, Any
from dataclasses import dataclass
import warnings

import statsmodels.formula.api as smf
from patsy import dmatrix
from scipy import stats

from ..config.settings import AnalysisConfig
from ..utils.errors import InvalidParameterError, NumericalError


@dataclass
class ModelFitResult:
    """Container for one mixed-model fit."""
    model_name: str
    params: pd.Series
    std_errors: pd.Series
    pvalues: pd.Series
    cov_params: pd.DataFrame
    converged: bool
    optimizer: str
    log_likelihood: float
    n_observations: int
    n_subjects: int
    result: Any = None

    @property
    def interaction(self) -> float:
        """Fitted treatment x time coefficient."""
        return float(self.params[AnalysisConfig.INTERACTION_TERM])

    def significant(self, alpha: float = AnalysisConfig.ALPHA) -> pd.Series:
        return self.pvalues < alpha


def prepare_model_data(dataset: pd.DataFrame, model_name: str) -> pd.DataFrame:
    """
    Build the (subject_id, treatment, time, score) frame for one variant.

    Args:
        dataset: Simulated dataset with response, censored and observed_response
        model_name: One of AnalysisConfig.MODEL_VARIANTS

    Returns:
        DataFrame ready for fitting
    """
    required = ['subject_id', 'treatment', 'time', 'response', 'censored', 'observed_response']
    missing = [c for c in required if c not in dataset.columns]
    if missing:
        raise InvalidParameterError(f"Dataset is missing columns: {missing}")

    base = dataset[['subject_id', 'treatment', 'time']].copy()

    if model_name == AnalysisConfig.MODEL_NO_CENSORING:
        base['score'] = dataset['response'].astype(float)
        return base

    base['score'] = dataset['observed_response'].astype(float)

    if model_name == AnalysisConfig.MODEL_IGNORE_CENSORING:
        return base

    if model_name == AnalysisConfig.MODEL_EXCLUDE_CENSORED:
        last_time = dataset.groupby('subject_id', sort=False)['time'].transform('max')
        rescued = (dataset['censored'] == 1) & (dataset['time'] == last_time)
        return base[~rescued].reset_index(drop=True)

    raise InvalidParameterError(
        f"Unknown model variant: {model_name}. Expected one of {AnalysisConfig.MODEL_VARIANTS}"
    )


class TrajectoryEstimator:
    """
    REML mixed-model fitting and trajectory prediction.

    Wraps statsmodels MixedLM with the fixed-effects formula
    score ~ treatment * time and random effects ~time by subject.
    """

    def __init__(self,
                 fixed_effects: str = AnalysisConfig.FIXED_EFFECTS_RHS,
                 re_formula: str = AnalysisConfig.RANDOM_EFFECTS_FORMULA,
                 optimizers: Sequence[str] = AnalysisConfig.OPTIMIZERS,
                 alpha: float = AnalysisConfig.ALPHA):
        """
        Initialize the estimator.

        Args:
            fixed_effects: Right-hand side of the fixed-effects formula
            re_formula: Random-effects formula
            optimizers: Optimizers tried in order until one converges
            alpha: Significance level for p-values and confidence bands
        """
        if not optimizers:
            raise InvalidParameterError("At least one optimizer is required")

        self.fixed_effects = fixed_effects
        self.re_formula = re_formula
        self.optimizers = tuple(optimizers)
        self.alpha = alpha
        self.fits: Dict[str, ModelFitResult] = {}

    @property
    def formula(self) -> str:
        return f"score ~ {self.fixed_effects}"

    def fit(self, data: pd.DataFrame, model_name: str = 'model') -> ModelFitResult:
        """
        Fit one mixed model.

        Args:
            data: Frame with subject_id, treatment, time and score
            model_name: Label stored with the result

        Returns:
            ModelFitResult

        Raises:
            NumericalError: If no optimizer converges
        """
        data = data.dropna(subset=['score'])
        if data.empty:
            raise InvalidParameterError(f"No observations to fit for {model_name}")

        model = smf.mixedlm(self.formula, data, groups=data['subject_id'],
                            re_formula=self.re_formula)

        result = None
        used = None
        errors = []
        for optimizer in self.optimizers:
            try:
                candidate = model.fit(reml=True, method=optimizer)
            except (ValueError, np.linalg.LinAlgError) as e:
                errors.append(f"{optimizer}: {e}")
                continue
            if candidate.converged:
                result, used = candidate, optimizer
                break
            errors.append(f"{optimizer}: did not converge")

        if result is None:
            raise NumericalError(f"Mixed model '{model_name}' failed to converge ({'; '.join(errors)})")

        if used != self.optimizers[0]:
            warnings.warn(f"Mixed model '{model_name}' converged only with the {used} optimizer")

        fe_names = result.fe_params.index
        fit = ModelFitResult(
            model_name=model_name,
            params=result.fe_params.copy(),
            std_errors=pd.Series(np.asarray(result.bse_fe), index=fe_names),
            pvalues=result.pvalues.loc[fe_names].copy(),
            cov_params=result.cov_params().loc[fe_names, fe_names].copy(),
            converged=bool(result.converged),
            optimizer=used,
            log_likelihood=float(result.llf),
            n_observations=int(result.nobs),
            n_subjects=int(data['subject_id'].nunique()),
            result=result,
        )
        self.fits[model_name] = fit
        return fit

    def fit_all(self, dataset: pd.DataFrame,
                model_names: Sequence[str] = AnalysisConfig.MODEL_VARIANTS,
                verbose: bool = True) -> Dict[str, ModelFitResult]:
        """
        Fit every missing-data handling variant on one simulated dataset.

        Returns:
            Dictionary model name -> ModelFitResult, in model_names order
        """
        fits = {}
        for name in model_names:
            data = prepare_model_data(dataset, name)
            fits[name] = self.fit(data, name)

            if verbose:
                print(f"  {name:<20} n={fits[name].n_observations:4d}  "
                      f"interaction={fits[name].interaction:+.4f}  "
                      f"p={fits[name].pvalues[AnalysisConfig.INTERACTION_TERM]:.4f}")

        return fits

    def predict_trajectories(self, fit: ModelFitResult, times: Sequence[float],
                             group_labels: Optional[Dict[int, str]] = None) -> pd.DataFrame:
        """
        Population-mean trajectory per group from the fixed effects.

        Args:
            fit: Fitted model
            times: Time grid
            group_labels: Mapping treatment indicator -> group label

        Returns:
            DataFrame with model, group, treatment, time, estimate, std_error, lower, upper
        """
        group_labels = group_labels or AnalysisConfig.GROUP_LABELS

        grid = pd.DataFrame(
            [(trt, float(t)) for trt in group_labels for t in times],
            columns=['treatment', 'time'],
        )
        x = dmatrix(self.fixed_effects, grid, return_type='dataframe')
        x = x[fit.params.index]

        estimate = x.to_numpy() @ fit.params.to_numpy()
        variance = np.einsum('ij,jk,ik->i', x.to_numpy(), fit.cov_params.to_numpy(), x.to_numpy())
        std_error = np.sqrt(np.maximum(variance, 0.0))
        z = stats.norm.ppf(1 - self.alpha / 2)

        return pd.DataFrame({
            'model': fit.model_name,
            'group': grid['treatment'].map(group_labels),
            'treatment': grid['treatment'].astype(int),
            'time': grid['time'],
            'estimate': estimate,
            'std_error': std_error,
            'lower': estimate - z * std_error,
            'upper': estimate + z * std_error,
        })

    def trajectory_table(self, fits: Dict[str, ModelFitResult],
                         times: Sequence[float]) -> pd.DataFrame:
        """Stack predicted trajectories of several fits."""
        frames = [self.predict_trajectories(fit, times) for fit in fits.values()]
        return pd.concat(frames, ignore_index=True)

    def coefficient_table(self, fits: Dict[str, ModelFitResult]) -> pd.DataFrame:
        """
        Fixed-effect estimates of several fits in long format.

        Returns:
            DataFrame with model, term, estimate, std_error, p_value, significant
        """
        rows = []
        for name, fit in fits.items():
            significant = fit.significant(self.alpha)
            for term in fit.params.index:
                rows.append({
                    'model': name,
                    'term': term,
                    'estimate': fit.params[term],
                    'std_error': fit.std_errors[term],
                    'p_value': fit.pvalues[term],
                    'significant': bool(significant[term]),
                })
        return pd.DataFrame(rows)
