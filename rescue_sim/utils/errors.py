"""
Exception types raised by the simulation and fitting modules.
"""


class RescueSimError(Exception):
    """Base class for rescue simulation failures."""


class InvalidParameterError(RescueSimError, ValueError):
    """Malformed arguments, raised before any random draw is made."""


class NumericalError(RescueSimError, ArithmeticError):
    """Covariance not positive semi-definite, or a model fit did not converge."""
