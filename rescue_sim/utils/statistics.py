"""
Censoring diagnostics for the simulated rescue therapy dataset.
"""

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.linear_model import LogisticRegression
from typing import Dict, Any, Optional

from ..config.settings import AnalysisConfig
from .errors import InvalidParameterError


class CensoringDiagnostics:
    """
    Statistical checks on the rescue-censoring mechanism.

    Provides censoring rates, recovery of the logistic rescue model,
    comparisons of rescued vs. non-rescued subjects, and the attenuation
    of the interaction coefficient across missing-data strategies.
    """

    def __init__(self, alpha: float = AnalysisConfig.ALPHA):
        """
        Initialize the diagnostics.

        Args:
            alpha: Significance level for hypothesis tests
        """
        self.alpha = alpha

    @staticmethod
    def _subject_rows(dataset: pd.DataFrame, visit: str) -> pd.DataFrame:
        """One row per subject at the first or last visit."""
        required = ['subject_id', 'treatment', 'time', 'response', 'censored']
        missing = [c for c in required if c not in dataset.columns]
        if missing:
            raise InvalidParameterError(f"Dataset is missing columns: {missing}")

        how = 'max' if visit == 'final' else 'min'
        target = dataset.groupby('subject_id', sort=False)['time'].transform(how)
        return dataset[dataset['time'] == target].reset_index(drop=True)

    def censoring_summary(self, dataset: pd.DataFrame) -> Dict[str, Any]:
        """
        Overall and per-group censoring rates.

        Args:
            dataset: Simulated dataset

        Returns:
            Dictionary with counts and rates
        """
        final = self._subject_rows(dataset, 'final')

        by_group = {}
        for trt, label in AnalysisConfig.GROUP_LABELS.items():
            group = final[final['treatment'] == trt]
            by_group[label] = {
                'n_subjects': len(group),
                'n_censored': int(group['censored'].sum()),
                'censoring_rate': float(group['censored'].mean()) if len(group) else np.nan,
            }

        return {
            'n_subjects': len(final),
            'n_censored': int(final['censored'].sum()),
            'censoring_rate': float(final['censored'].mean()),
            'by_group': by_group,
        }

    def fit_censoring_model(self, dataset: pd.DataFrame) -> Dict[str, Any]:
        """
        Recover the rescue model by logistic regression on final visits.

        Uses a very weak penalty so the estimates approximate maximum
        likelihood. Requires both rescued and non-rescued subjects.

        Returns:
            Dictionary with intercept, treatment_coef, outcome_coef
        """
        final = self._subject_rows(dataset, 'final')
        y = final['censored'].to_numpy()

        if len(np.unique(y)) < 2:
            raise InvalidParameterError("Censoring model needs both censored and uncensored subjects")

        X = final[['treatment', 'response']].to_numpy(dtype=float)
        model = LogisticRegression(C=1e6, max_iter=1000)
        model.fit(X, y)

        return {
            'model': model,
            'intercept': float(model.intercept_[0]),
            'treatment_coef': float(model.coef_[0, 0]),
            'outcome_coef': float(model.coef_[0, 1]),
            'n_subjects': len(final),
        }

    def t_test(self, group1: pd.Series, group2: pd.Series) -> Dict[str, Any]:
        """
        Independent two-sample t-test, Welch when variances differ.

        Args:
            group1: First group data
            group2: Second group data

        Returns:
            Dictionary with t-test results
        """
        g1, g2 = group1.dropna(), group2.dropna()

        if len(g1) < 2 or len(g2) < 2:
            return {
                't_statistic': np.nan,
                'p_value': np.nan,
                'significant': False,
                'group1_mean': float(g1.mean()) if len(g1) else np.nan,
                'group2_mean': float(g2.mean()) if len(g2) else np.nan,
            }

        _, levene_p = stats.levene(g1, g2)
        equal_var = levene_p > self.alpha
        t_stat, p_value = stats.ttest_ind(g1, g2, equal_var=equal_var)

        return {
            't_statistic': float(t_stat),
            'p_value': float(p_value),
            'significant': bool(p_value < self.alpha),
            'equal_var': bool(equal_var),
            'group1_mean': float(g1.mean()),
            'group2_mean': float(g2.mean()),
        }

    def missingness_tests(self, dataset: pd.DataFrame) -> Dict[str, Any]:
        """
        Compare rescued vs. non-rescued subjects.

        A baseline difference means rescue is predictable from observed
        data (MAR signal); a final-visit difference on the true score means
        rescue depends on the value it hides (MNAR signal).

        Returns:
            Dictionary with baseline and final t-test results
        """
        results = {}
        for visit in ('baseline', 'final'):
            rows = self._subject_rows(dataset, visit)
            censored = rows[rows['censored'] == 1]['response']
            uncensored = rows[rows['censored'] == 0]['response']
            results[visit] = self.t_test(censored, uncensored)
        return results

    def interaction_attenuation(self, fits: Dict[str, Any],
                                reference: Optional[str] = AnalysisConfig.MODEL_NO_CENSORING) -> pd.DataFrame:
        """
        Interaction estimates relative to the no-censoring fit.

        Args:
            fits: Model name -> ModelFitResult
            reference: Name of the reference fit

        Returns:
            DataFrame with model, interaction, relative_bias
        """
        if reference not in fits:
            raise InvalidParameterError(f"Reference model '{reference}' not among fits")

        ref = fits[reference].interaction
        rows = []
        for name, fit in fits.items():
            rows.append({
                'model': name,
                'interaction': fit.interaction,
                'abs_interaction': abs(fit.interaction),
                'relative_bias': (fit.interaction - ref) / abs(ref) if ref != 0 else np.nan,
            })
        return pd.DataFrame(rows)
