"""
Configuration module for the rescue therapy simulation.
"""

from .settings import (
    OUTPUT_DIR,
    FIGURES_DIR,
    RESULTS_DIR,
    TrialDesignConfig,
    ResponseModelConfig,
    CensoringConfig,
    AnalysisConfig,
    DATASET_COLUMNS,
)

__all__ = [
    'OUTPUT_DIR',
    'FIGURES_DIR',
    'RESULTS_DIR',
    'TrialDesignConfig',
    'ResponseModelConfig',
    'CensoringConfig',
    'AnalysisConfig',
    'DATASET_COLUMNS',
]
