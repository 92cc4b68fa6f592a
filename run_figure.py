#!/usr/bin/env python3
"""
Quick runner for the rescue therapy figure.

Usage:
    python run_figure.py                # Simulate, fit and save with default seed
    python run_figure.py --seed 7       # Different seed
    python run_figure.py --no-save      # Don't save tables/figure
"""

import sys

from rescue_sim.main import main

if __name__ == "__main__":
    sys.exit(main())
