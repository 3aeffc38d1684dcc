"""
Exception and warning classes raised by eobscreen.

Errors subclass the builtin exceptions the rest of the code would otherwise
raise, so callers catching ValueError or RuntimeError still catch them.
"""

class DataError(ValueError):
    """
    Malformed or missing input data (zero vehicle value, unparseable
    condition label, missing vehicle anchor, duplicate measurement, etc.).
    """

class ConfigError(ValueError):
    """
    Invalid analysis settings. Raised before any computation is done.
    """

class ModelFitError(RuntimeError):
    """
    The sampler did not produce enough complete chains to report a fit.
    """

class DataWarning(UserWarning):
    """
    Recoverable data problem, such as a combination record that was dropped
    because a single-agent counterpart was missing.
    """

class ModelFitWarning(UserWarning):
    """
    Posterior sampling finished but the convergence diagnostics are out of
    tolerance. The results are returned but should not be trusted blindly.
    """
