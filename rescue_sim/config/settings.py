"""
Configuration settings for the rescue therapy simulation.
"""

from pathlib import Path

# Output paths (relative to the working directory, created on first save)
OUTPUT_DIR = Path("output")
FIGURES_DIR = OUTPUT_DIR / "figures"
RESULTS_DIR = OUTPUT_DIR / "results"


class TrialDesignConfig:
    """Trial layout: arm sizes and visit schedule."""

    N_TREATMENT = 50
    N_CONTROL = 50

    # Visits at months 0, 3 and 6
    N_VISITS = 3
    START_TIME = 0.0
    TIME_INCREMENT = 3.0


class ResponseModelConfig:
    """Linear mixed model generating MG-ADL scores."""

    # Intercept, treatment, time, treatment x time
    BETA = (10.0, -1.0 / 6.0, 0.0, -0.5)

    INTERCEPT_VARIANCE = 2.15
    SLOPE_VARIANCE = 0.25
    INTERCEPT_SLOPE_COVARIANCE = -0.125
    RESIDUAL_VARIANCE = 2.0

    # Random-effect design columns of each subject's block
    RANDOM_EFFECT_COLUMNS = ('treatment', 'time')

    # One marginal covariance (first subject's template) for every subject
    SHARED_COVARIANCE = True

    # MG-ADL range
    SCORE_MIN = 0
    SCORE_MAX = 24


class CensoringConfig:
    """Logistic rescue-therapy model applied at the final visit."""

    INTERCEPT = -2.5
    TREATMENT_COEF = 0.0
    OUTCOME_COEF = 0.175

    # Final-visit score multiplier for rescued subjects
    RESCUE_FACTOR = 0.5


class AnalysisConfig:
    """Configuration parameters for model fitting and reporting."""

    # Statistical significance level
    ALPHA = 0.05

    # Random seed for reproducibility
    RANDOM_SEED = 2024

    # Mixed model specification
    FIXED_EFFECTS_RHS = 'treatment * time'
    RANDOM_EFFECTS_FORMULA = '~time'
    INTERACTION_TERM = 'treatment:time'
    OPTIMIZERS = ('lbfgs', 'bfgs', 'powell', 'nm')

    # Model variants, in facet order
    MODEL_NO_CENSORING = 'No censoring'
    MODEL_IGNORE_CENSORING = 'Ignoring censoring'
    MODEL_EXCLUDE_CENSORED = 'Excluding censored'
    MODEL_VARIANTS = (MODEL_NO_CENSORING, MODEL_IGNORE_CENSORING, MODEL_EXCLUDE_CENSORED)

    # Group labels and fixed palette
    GROUP_LABELS = {1: 'Treatment', 0: 'Control'}
    GROUP_PALETTE = {'Treatment': '#E69F00', 'Control': '#56B4E9'}

    # Output file names
    DATASET_FILE = 'rescue_simulated_dataset.csv'
    COEFFICIENTS_FILE = 'rescue_model_coefficients.csv'
    TRAJECTORIES_FILE = 'rescue_estimated_trajectories.csv'
    FIGURE_FILE = 'rescue_trajectories.png'


# Exported dataset columns, one row per subject-visit
DATASET_COLUMNS = [
    'subject_id',
    'treatment',
    'time',
    'response',
    'censored',
    'observed_response',
]
