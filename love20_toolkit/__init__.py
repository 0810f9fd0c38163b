"""LOVE20 Toolkit - extension resolution and participation aggregation."""

__version__ = "0.1.0"

from .extensions import ExtensionResolver
from .participation import ParticipationAggregator, ParticipationTracker

__all__ = [
    "ExtensionResolver",
    "ParticipationAggregator",
    "ParticipationTracker",
]
