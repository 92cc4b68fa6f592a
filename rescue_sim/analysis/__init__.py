"""
Rescue therapy analysis: simulation, model comparison and figure.
"""

from .rescue_analysis import *

__all__ = [
    'simulate_trial_dataset',
    'export_dataset',
    'save_results',
    'run_rescue_analysis',
]
