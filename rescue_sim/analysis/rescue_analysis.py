"""
End-to-end rescue therapy analysis.

This module simulates one trial dataset, imposes rescue censoring, fits
the three mixed models and produces the trajectory figure. Random numbers
come from a single generator, consumed in a fixed order: extra design
covariates (if any), then responses subject by subject, then one rescue
draw per subject.
"""

import pandas as pd
import numpy as np
from typing import Dict, Any, Optional, Sequence
from pathlib import Path

from ..config.settings import (
    OUTPUT_DIR,
    DATASET_COLUMNS,
    TrialDesignConfig,
    ResponseModelConfig,
    AnalysisConfig,
)
from ..data.design import build_design_matrix, visit_times
from ..data.simulation import simulate_responses
from ..data.censoring import simulate_rescue_censoring
from ..models.specs import CovarianceSpec, CensoringSpec
from ..models.mixed_models import TrajectoryEstimator
from ..utils.statistics import CensoringDiagnostics
from ..utils.visualization import TrajectoryVisualizer


def simulate_trial_dataset(rng: np.random.Generator,
                           n_treatment: int = TrialDesignConfig.N_TREATMENT,
                           n_control: int = TrialDesignConfig.N_CONTROL,
                           n_visits: int = TrialDesignConfig.N_VISITS,
                           start: float = TrialDesignConfig.START_TIME,
                           increment: float = TrialDesignConfig.TIME_INCREMENT,
                           covariance_spec: Optional[CovarianceSpec] = None,
                           censoring_spec: Optional[CensoringSpec] = None,
                           random_effect_columns: Sequence[str] = ResponseModelConfig.RANDOM_EFFECT_COLUMNS,
                           shared_covariance: bool = ResponseModelConfig.SHARED_COVARIANCE,
                           verbose: bool = False) -> pd.DataFrame:
    """
    Simulate one longitudinal trial with rescue censoring.

    Args:
        rng: Random generator owned by the caller
        n_treatment: Subjects in the treatment arm
        n_control: Subjects in the control arm
        n_visits: Visits per subject
        start: Time of the first visit (months)
        increment: Months between visits
        covariance_spec: Response model; defaults to the paper scenario
        censoring_spec: Rescue model; defaults to the paper scenario
        random_effect_columns: Design columns forming each subject's Z
        shared_covariance: Use the first subject's covariance for everyone
        verbose: Whether to print progress

    Returns:
        DataFrame with subject_id, visit, treatment, time, response,
        censored and observed_response
    """
    covariance_spec = covariance_spec or CovarianceSpec.from_config()
    censoring_spec = censoring_spec or CensoringSpec.from_config()

    design = build_design_matrix(n_treatment, n_control, n_visits, start, increment,
                                 include_subject_id=True, rng=rng)

    response = simulate_responses(design, covariance_spec, rng,
                                  random_effect_columns=random_effect_columns,
                                  shared_covariance=shared_covariance)

    dataset = pd.DataFrame({
        'subject_id': design['subject_id'],
        'visit': design.groupby('subject_id', sort=False).cumcount(),
        'treatment': design['treatment'].astype(int),
        'time': design['time'],
        'response': response,
    })

    dataset = simulate_rescue_censoring(dataset, censoring_spec, rng)

    if verbose:
        n_subjects = dataset['subject_id'].nunique()
        n_censored = int(dataset.groupby('subject_id')['censored'].first().sum())
        print(f"🎲 Simulated {n_subjects} subjects x {n_visits} visits "
              f"({n_treatment} treatment, {n_control} control)")
        print(f"   Rescued subjects: {n_censored}/{n_subjects} ({100 * n_censored / n_subjects:.1f}%)")

    return dataset


def export_dataset(dataset: pd.DataFrame, path: Path) -> Path:
    """
    Write the subject-visit table in the fixed column order.

    Args:
        dataset: Simulated dataset
        path: CSV file path

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    dataset[DATASET_COLUMNS].to_csv(path, index=False)
    return path


def save_results(results: Dict[str, Any], output_path: Path) -> Dict[str, Path]:
    """
    Save dataset, coefficients and trajectories as CSV files.

    Args:
        results: Output of run_rescue_analysis
        output_path: Results directory

    Returns:
        Mapping artefact name -> file path
    """
    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    files = {
        'dataset': export_dataset(results['dataset'], output_path / AnalysisConfig.DATASET_FILE),
    }

    files['coefficients'] = output_path / AnalysisConfig.COEFFICIENTS_FILE
    results['coefficients'].to_csv(files['coefficients'], index=False)

    files['trajectories'] = output_path / AnalysisConfig.TRAJECTORIES_FILE
    results['trajectories'].to_csv(files['trajectories'], index=False)

    for name, path in files.items():
        print(f"💾 {name.capitalize()} saved to: {path}")

    return files


def run_rescue_analysis(seed: int = AnalysisConfig.RANDOM_SEED,
                        n_treatment: int = TrialDesignConfig.N_TREATMENT,
                        n_control: int = TrialDesignConfig.N_CONTROL,
                        output_dir: Optional[Path] = None,
                        save_outputs: bool = True,
                        create_figure: bool = True,
                        verbose: bool = True) -> Dict[str, Any]:
    """
    Run the full simulation and model comparison.

    Args:
        seed: Seed of the single random generator
        n_treatment: Subjects in the treatment arm
        n_control: Subjects in the control arm
        output_dir: Base output directory; defaults to OUTPUT_DIR
        save_outputs: Whether to write CSV tables and the figure
        create_figure: Whether to draw the trajectory figure
        verbose: Whether to print progress

    Returns:
        Dictionary with dataset, fits, coefficients, trajectories,
        diagnostics, figure and saved file paths
    """
    output_dir = Path(output_dir) if output_dir is not None else OUTPUT_DIR

    if verbose:
        print("=" * 70)
        print("RESCUE THERAPY SIMULATION")
        print("=" * 70)
        print(f"   Seed: {seed}")

    rng = np.random.default_rng(seed)
    dataset = simulate_trial_dataset(rng, n_treatment=n_treatment, n_control=n_control,
                                     verbose=verbose)

    if verbose:
        print("\n📈 Fitting mixed models (REML, random intercept + slope)...")

    estimator = TrajectoryEstimator()
    fits = estimator.fit_all(dataset, verbose=verbose)

    times = visit_times(TrialDesignConfig.N_VISITS, TrialDesignConfig.START_TIME,
                        TrialDesignConfig.TIME_INCREMENT)
    trajectories = estimator.trajectory_table(fits, times)
    coefficients = estimator.coefficient_table(fits)

    diagnostics = CensoringDiagnostics()
    censoring_summary = diagnostics.censoring_summary(dataset)
    attenuation = diagnostics.interaction_attenuation(fits)
    missingness = diagnostics.missingness_tests(dataset)

    censoring_model = None
    if 0 < censoring_summary['n_censored'] < censoring_summary['n_subjects']:
        censoring_model = diagnostics.fit_censoring_model(dataset)

    results = {
        'seed': seed,
        'dataset': dataset,
        'fits': fits,
        'coefficients': coefficients,
        'trajectories': trajectories,
        'censoring_summary': censoring_summary,
        'censoring_model': censoring_model,
        'missingness_tests': missingness,
        'attenuation': attenuation,
        'figure': None,
        'files': {},
    }

    if verbose:
        print("\n🔍 Censoring diagnostics")
        print(f"   Overall rescue rate: {100 * censoring_summary['censoring_rate']:.1f}%")
        for label, group in censoring_summary['by_group'].items():
            print(f"   {label}: {group['n_censored']}/{group['n_subjects']}")
        print("\n📊 Interaction attenuation")
        print(attenuation.to_string(index=False, float_format=lambda v: f"{v:.4f}"))

    if create_figure:
        visualizer = TrajectoryVisualizer(save_dir=output_dir / 'figures')
        results['figure'] = visualizer.trajectory_facets(
            trajectories,
            save_name=AnalysisConfig.FIGURE_FILE if save_outputs else None,
        )
        if save_outputs:
            results['files']['figure'] = visualizer.save_dir / AnalysisConfig.FIGURE_FILE

    if save_outputs:
        results['files'].update(save_results(results, output_dir / 'results'))

    if verbose:
        print("\n✅ Rescue therapy analysis complete")

    return results
