"""
Exceptions raised while solving a perspective transform.
"""


class HomographyError(ValueError):
    """Base class for invalid homography inputs."""


class InvalidInputCardinality(HomographyError):
    """A correspondence set does not hold exactly four points."""


class DegenerateConfiguration(HomographyError):
    """The points are collinear or duplicated, so no unique solution exists."""
