"""
Exception and warning types raised by the age model.
"""


class AgeModelError(Exception):
    """Base class for age model errors."""


class ConfigurationError(AgeModelError, ValueError):
    """
    Invalid input detected before the bootstrap loop starts.

    All problems found during validation are collected in ``problems`` and
    reported together.
    """

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        message = "Invalid configuration:\n  - " + "\n  - ".join(self.problems)
        super().__init__(message)


class IterationError(AgeModelError):
    """A single bootstrap iteration could not produce a posterior draw."""

    def __init__(self, message, iteration=None):
        self.iteration = iteration
        self.detail = message
        if iteration is not None:
            message = f"iteration {iteration}: {message}"
        super().__init__(message)


class DataError(IterationError):
    """Too few resampled points survived the superposition filter."""


class FitConvergenceError(IterationError):
    """Local optimisation failed or the posterior curvature is not positive-definite."""


class NumericalWarning(RuntimeWarning):
    """The subsidence curve produced non-finite ages for some posterior draws."""
