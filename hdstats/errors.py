# hdstats/errors.py
class ModelingError(ValueError):
    """
    Raised when a model cannot be fitted meaningfully on the given data.
    Routers report it as 422, not as a server error.
    """


class RankDeficientError(ModelingError):
    """Design matrix cross-product is singular (e.g. more features than rows)."""


class ConvergenceError(ModelingError):
    """Iterative fit stopped at max_iter before reaching the tolerance."""


class DegenerateFoldError(ModelingError):
    """A cross-validation fold cannot produce a finite error estimate."""
