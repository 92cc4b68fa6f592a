"""
Models module for the rescue therapy simulation.
Contains parameter specifications and mixed-model trajectory estimation.
"""

from .specs import CovarianceSpec, CensoringSpec
from .mixed_models import ModelFitResult, TrajectoryEstimator, prepare_model_data

__all__ = [
    'CovarianceSpec',
    'CensoringSpec',
    'ModelFitResult',
    'TrajectoryEstimator',
    'prepare_model_data',
]
