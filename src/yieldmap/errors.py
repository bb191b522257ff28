from __future__ import annotations


class YieldMapError(RuntimeError):
    """Base class for fatal data errors in a projection run."""


class LoadError(YieldMapError):
    """Input file missing, unreadable, or not laid out as expected."""


class JoinError(YieldMapError):
    """County codes could not be normalized or a county stayed without yield."""


class AggregationError(YieldMapError):
    """Raster grids or extents are not compatible."""


class RenderError(YieldMapError):
    """Invalid classification request."""
