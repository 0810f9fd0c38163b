from love20_toolkit.participation.service import (
    ParticipationAggregate,
    ParticipationAggregator,
    ParticipationTracker,
)

__all__ = [
    "ParticipationAggregate",
    "ParticipationAggregator",
    "ParticipationTracker",
]
