"""hdstats: penalized regression, moderated testing and survival analysis for high-dimensional data."""

__version__ = "0.1.0"
