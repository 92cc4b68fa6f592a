"""
Rescue Therapy Simulation Project
=================================

Simulation toolkit for a single manuscript figure: a two-arm longitudinal
trial scored on the MG-ADL scale, where subjects who worsen receive rescue
therapy that alters their final measurement.

Structure:
- config/: Scenario parameters and output paths
- data/: Design matrix builder, longitudinal simulator, rescue censoring
- models/: Parameter specifications and mixed-model trajectory estimation
- analysis/: End-to-end pipeline producing tables and the figure
- utils/: Errors, censoring diagnostics and visualization

Models compared:
1. No censoring (true responses)
2. Ignoring censoring (rescue-adjusted responses taken at face value)
3. Excluding censored (final visit of rescued subjects dropped)
"""

__version__ = "1.0.0"
__author__ = "Rescue Simulation Team"
