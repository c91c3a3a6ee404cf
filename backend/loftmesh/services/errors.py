"""
Exception types raised by the loft services.

Route handlers translate these into HTTP errors; library callers can
catch :class:`LoftError` to handle every failure in one place.  The
"recoverable" branch covers the transient states an editor passes
through (no frames yet, empty profile) and is downgraded to a warning
by :func:`loftmesh.services.loft.extrude_shape`.
"""

from __future__ import annotations


class LoftError(Exception):
    """Base class for all loft service errors."""


class ConfigurationError(LoftError, ValueError):
    """Unsupported interpolation method, rotation policy or resolution."""


class ProfileIndexError(LoftError, IndexError):
    """A point or edge index is outside the profile's point range."""


class DegeneratePolygonError(LoftError, ValueError):
    """A polygon has fewer than three points and cannot be triangulated."""


class RecoverableLoftError(LoftError):
    """Precondition failures that should produce no mesh rather than crash."""


class InsufficientControlPointsError(RecoverableLoftError):
    """Fewer than two control frames were supplied to the loft."""


class EmptyProfileError(RecoverableLoftError):
    """The profile has no points to sweep."""
