from love20_toolkit.actions.models import (
    ActionBody,
    ActionHead,
    ActionMetadata,
    JoinableAction,
    ParticipationRecord,
    VoteCount,
)

__all__ = [
    "ActionBody",
    "ActionHead",
    "ActionMetadata",
    "JoinableAction",
    "ParticipationRecord",
    "VoteCount",
]
