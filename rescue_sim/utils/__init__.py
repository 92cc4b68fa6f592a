"""
Utilities module for the rescue therapy simulation.

This module provides exception types, censoring diagnostics and
visualization utilities.
"""

from .errors import RescueSimError, InvalidParameterError, NumericalError
from .statistics import CensoringDiagnostics
from .visualization import TrajectoryVisualizer

__all__ = [
    'RescueSimError',
    'InvalidParameterError',
    'NumericalError',
    'CensoringDiagnostics',
    'TrajectoryVisualizer',
]
